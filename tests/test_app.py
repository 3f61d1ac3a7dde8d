import io
import shutil
import tempfile
import unittest
import sys
from contextlib import redirect_stdout
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from wikimark.app import create_app
from wikimark.cli import main
from wikimark.version_info import __version__


class TestApi(unittest.TestCase):
    def setUp(self):
        self.root = Path(tempfile.mkdtemp())
        doc = self.root / "guides" / "intro" / "document.md"
        doc.parent.mkdir(parents=True)
        doc.write_text("# Intro", encoding='utf-8')
        self.app = create_app({'documents_root': str(self.root)})
        self.app.testing = True
        self.client = self.app.test_client()

    def tearDown(self):
        shutil.rmtree(self.root)

    def test_version(self):
        response = self.client.get('/api/version')
        self.assertEqual(response.status_code, 200)
        self.assertEqual(response.get_json(), {'version': __version__})

    def test_render_raw_body(self):
        response = self.client.post('/api/render?path=docs/page', data="![x](y.png)", content_type='text/plain')
        self.assertEqual(response.status_code, 200)
        self.assertIn('/api/files/docs/page/y.png', response.get_json()['html'])

    def test_render_json_body(self):
        response = self.client.post('/api/render', json={'markdown': '# Hi\n\n:::stats count=*:::'})
        html = response.get_json()['html']
        self.assertIn('Hi</h1>', html)
        self.assertIn('<div class="count-number">1</div>', html)

    def test_render_json_without_markdown(self):
        response = self.client.post('/api/render', json={'text': 'x'})
        self.assertEqual(response.status_code, 400)
        self.assertIn('error', response.get_json())

    def test_render_json_not_an_object(self):
        for body in (["# hi"], "# hi", 42):
            response = self.client.post('/api/render', json=body)
            self.assertEqual(response.status_code, 400)
            self.assertEqual(response.get_json()['error'], 'Missing markdown content')

    def test_links_parse(self):
        body = "# My Links\n## Tools\n- [Example](https://example.com) - A tool | 2024-01-01\n- [Bad](ftp://x)"
        response = self.client.post('/api/links/parse', data=body, content_type='text/plain')
        data = response.get_json()
        self.assertEqual(data['title'], 'My Links')
        self.assertEqual(data['total_links'], 1)
        self.assertEqual(data['categories']['Tools'][0]['url'], 'https://example.com')
        self.assertIn('## Tools', data['markdown'])

    def test_too_large(self):
        app = create_app({'documents_root': str(self.root), 'max_content_size': 16})
        response = app.test_client().post('/api/render', data="x" * 100, content_type='text/plain')
        self.assertEqual(response.status_code, 413)
        self.assertEqual(response.get_json()['error'], 'Content Too Large')


class TestCli(unittest.TestCase):
    def setUp(self):
        self.tmp = Path(tempfile.mkdtemp())
        self.config = str(self.tmp / "missing-config.json")

    def tearDown(self):
        shutil.rmtree(self.tmp)

    def test_version(self):
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(['--version']), 0)
        self.assertIn(f"wikimark v{__version__}", out.getvalue())

    def test_render_to_file(self):
        source = self.tmp / "page.md"
        source.write_text("# Title\n\n![pic](pic.png)", encoding='utf-8')
        output = self.tmp / "page.html"

        code = main(['--config', self.config, 'render', str(source), '--path', 'guides/page', '-o', str(output)])
        self.assertEqual(code, 0)
        html = output.read_text(encoding='utf-8')
        self.assertIn('Title</h1>', html)
        self.assertIn('/api/files/guides/page/pic.png', html)

    def test_render_to_stdout(self):
        source = self.tmp / "page.md"
        source.write_text("==hi==", encoding='utf-8')
        out = io.StringIO()
        with redirect_stdout(out):
            self.assertEqual(main(['--config', self.config, 'render', str(source)]), 0)
        self.assertIn('<mark>hi</mark>', out.getvalue())

    def test_missing_file(self):
        self.assertEqual(main(['--config', self.config, 'render', str(self.tmp / "nope.md")]), 1)


if __name__ == '__main__':
    unittest.main()
