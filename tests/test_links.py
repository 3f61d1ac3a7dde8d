import json
import unittest
import sys
from datetime import date, timedelta
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from wikimark.core.pipeline import render_document
from wikimark.layouts.links import (
    DEFAULT_CATEGORY, Link, LinksDocument, calculate_stats, favicon_url, links_to_dict, links_to_markdown,
    parse_link_date, parse_links, render_links, sanitize_category, validate_link, validate_url,
)

EXAMPLE = "# My Links\n## Tools\n- [Example](https://example.com) - A tool | 2024-01-01"


class TestLinksParser(unittest.TestCase):
    def test_example_document(self):
        document = parse_links(EXAMPLE, today=date(2024, 1, 3))
        self.assertEqual(document.title, "My Links")
        self.assertEqual(list(document.categories), ["Tools"])
        self.assertEqual(
            document.categories["Tools"],
            [Link(title="Example", url="https://example.com", description="A tool",
                  category="Tools", added_at=date(2024, 1, 1))],
        )

    def test_invalid_lines_are_dropped(self):
        md = "## Tools\n- [Bad](ftp://x)\n- [NoHost](https://)\n- [ ](https://blank.com)\n- [Good](https://good.com)"
        document = parse_links(md)
        self.assertEqual([l.title for l in document.categories["Tools"]], ["Good"])

    def test_default_category_and_optional_parts(self):
        document = parse_links("- [Bare](https://bare.com)\n- [Described](https://d.com) - Just words")
        links = document.categories[DEFAULT_CATEGORY]
        self.assertEqual(links[0].description, "")
        self.assertIsNone(links[0].added_at)
        self.assertEqual(links[1].description, "Just words")

    def test_categories_keep_document_order(self):
        document = parse_links("## Zebra\n- [a](https://a.com)\n## Alpha\n- [b](https://b.com)")
        self.assertEqual(list(document.categories), ["Zebra", "Alpha"])

    def test_stats(self):
        today = date(2024, 6, 30)
        md = "\n".join([
            "## A",
            f"- [one](https://1.com) | {(today - timedelta(days=3)).isoformat()}",
            f"- [two](https://2.com) | {(today - timedelta(days=20)).isoformat()}",
            "## B",
            f"- [three](https://3.com) | {(today - timedelta(days=60)).isoformat()}",
            "- [four](https://4.com)",
        ])
        stats = parse_links(md, today=today).stats
        self.assertEqual(stats.total_links, 4)
        self.assertEqual(stats.total_categories, 2)
        self.assertEqual(stats.per_category, {"A": 2, "B": 2})
        self.assertEqual(stats.recent_7_days, 1)
        self.assertEqual(stats.recent_30_days, 2)
        self.assertEqual(stats.latest_added, today - timedelta(days=3))

    def test_stats_recomputed(self):
        document = parse_links(EXAMPLE, today=date(2024, 1, 3))
        document.add_link(Link("New", "https://new.com", category="Tools", added_at=date(2024, 1, 2)))
        stats = calculate_stats(document, today=date(2024, 1, 3))
        self.assertEqual(stats.total_links, 2)
        self.assertEqual(stats.latest_added, date(2024, 1, 2))


class TestLinkValidation(unittest.TestCase):
    def test_validate_url(self):
        self.assertIsNone(validate_url("https://example.com/path"))
        self.assertIsNotNone(validate_url(""))
        self.assertIsNotNone(validate_url("example.com"))
        self.assertIsNotNone(validate_url("ftp://example.com"))
        self.assertIsNotNone(validate_url("http://"))

    def test_validate_link_collects_every_problem(self):
        errors = validate_link(Link(title=" ", url="ftp://x", category=""))
        self.assertEqual(len(errors), 3)

    def test_parse_link_date(self):
        self.assertEqual(parse_link_date("2024-01-05"), date(2024, 1, 5))
        self.assertEqual(parse_link_date("2024/01/05"), date(2024, 1, 5))
        self.assertEqual(parse_link_date("01/05/2024"), date(2024, 1, 5))
        with self.assertRaises(ValueError):
            parse_link_date("yesterday")

    def test_sanitize_category(self):
        self.assertEqual(sanitize_category("  Dev   Tools "), "Dev Tools")
        self.assertEqual(sanitize_category("   "), DEFAULT_CATEGORY)

    def test_favicon_url(self):
        self.assertEqual(
            favicon_url("https://docs.python.org/3/"),
            "https://www.google.com/s2/favicons?domain=docs.python.org&sz=32",
        )
        self.assertIn("domain=example.com", favicon_url("example.com"))


class TestLinksOutput(unittest.TestCase):
    def test_markdown_regeneration(self):
        original = "---\nlayout: links\n---\n" + EXAMPLE + "\n"
        document = parse_links(original)
        regenerated = links_to_markdown(document, original)
        self.assertEqual(
            regenerated,
            "---\nlayout: links\n---\n\n# My Links\n\n## Tools\n"
            "- [Example](https://example.com) - A tool | 2024-01-01\n",
        )
        self.assertEqual(parse_links(regenerated).categories, document.categories)

    def test_markdown_without_frontmatter_is_marked_as_links(self):
        regenerated = links_to_markdown(parse_links(EXAMPLE), EXAMPLE)
        self.assertTrue(regenerated.startswith("---\nlayout: links\n---\n\n# My Links\n"))
        self.assertIn('class="links-container"', render_document(regenerated))

    def test_empty_categories_not_written(self):
        document = LinksDocument(title="T", categories={"Empty": []})
        self.assertNotIn("## Empty", links_to_markdown(document))

    def test_dict_is_json_ready(self):
        data = links_to_dict(parse_links(EXAMPLE, today=date(2024, 1, 3)))
        self.assertEqual(data["total_links"], 1)
        self.assertEqual(data["categories"]["Tools"][0]["added_at"], "2024-01-01")
        self.assertEqual(data["stats"]["latest_added"], "2024-01-01")
        json.dumps(data)

    def test_render_links(self):
        html = render_links(EXAMPLE, today=date(2024, 1, 3))
        self.assertIn('class="links-container"', html)
        self.assertIn('<h2 class="links-category-header">Tools', html)
        self.assertIn('href="https://example.com"', html)
        self.assertIn('Added Jan 1, 2024', html)
        self.assertIn('favicons?domain=example.com', html)

    def test_render_escapes_text(self):
        html = render_links("## <b>\n- [<script>](https://x.com) - a & b")
        self.assertNotIn('<script>', html)
        self.assertIn('&lt;script&gt;', html)


if __name__ == '__main__':
    unittest.main()
