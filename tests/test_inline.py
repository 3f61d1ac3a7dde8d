import unittest
import sys
from pathlib import Path

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from wikimark.core.context import RenderContext
from wikimark.features.inline import (
    EMOJI_TABLE, apply_emoji, apply_highlight, apply_subscript, apply_superscript, apply_typography,
)
from wikimark.features.shortcodes import convert_task_lists


class TestHighlight(unittest.TestCase):
    def test_highlight(self):
        ctx = RenderContext()
        self.assertEqual(apply_highlight("a ==b== c", ctx), "a <mark>b</mark> c")
        self.assertEqual(apply_highlight("==a== ==b==", ctx), "<mark>a</mark> <mark>b</mark>")
        self.assertEqual(apply_highlight("x === y", ctx), "x === y")

    def test_code_span_untouched(self):
        self.assertEqual(apply_highlight("`==x==` ==y==", RenderContext()), "`==x==` <mark>y</mark>")


class TestTypography(unittest.TestCase):
    def test_replacements(self):
        result = apply_typography("(c) 2024 Acme(tm)... about 1/2 cup +- 5", RenderContext())
        self.assertEqual(result, "© 2024 Acme™… about ½ cup ± 5")

    def test_fractions_only_when_free_standing(self):
        ctx = RenderContext()
        self.assertEqual(apply_typography("on 2024/1/2", ctx), "on 2024/1/2")
        self.assertEqual(apply_typography("v1/2 and 11/4", ctx), "v1/2 and 11/4")
        self.assertEqual(apply_typography("3/4 done", ctx), "¾ done")


class TestEmoji(unittest.TestCase):
    def test_known_and_unknown(self):
        ctx = RenderContext()
        self.assertEqual(apply_emoji("hi :smile:", ctx), "hi \U0001F604")
        self.assertEqual(apply_emoji(":not_a_real_emoji:", ctx), ":not_a_real_emoji:")
        self.assertEqual(apply_emoji("at 10:30:45", ctx), "at 10:30:45")

    def test_code_span_untouched(self):
        self.assertEqual(apply_emoji("`:smile:`", RenderContext()), "`:smile:`")

    def test_table_is_read_only(self):
        with self.assertRaises(TypeError):
            EMOJI_TABLE[':new:'] = 'x'


class TestSuperSubscript(unittest.TestCase):
    def setUp(self):
        self.ctx = RenderContext()

    def test_superscript(self):
        self.assertEqual(apply_superscript("H^2^O", self.ctx), "H<sup>2</sup>O")
        self.assertEqual(apply_superscript("2^10^ and x[^note]", self.ctx), "2<sup>10</sup> and x[^note]")

    def test_footnotes_untouched(self):
        self.assertEqual(apply_superscript("text[^1]", self.ctx), "text[^1]")
        self.assertEqual(apply_superscript("a[^1] b[^2]", self.ctx), "a[^1] b[^2]")

    def test_math_untouched(self):
        self.assertEqual(apply_superscript("$a^2^$ b^3^", self.ctx), "$a^2^$ b<sup>3</sup>")
        md = "$$\nx^2^\n$$\ny^2^"
        self.assertEqual(apply_superscript(md, self.ctx), "$$\nx^2^\n$$\ny<sup>2</sup>")

    def test_inline_display_math_untouched(self):
        md = "The identity $$x^2+y^2$$ holds for H^2^O."
        self.assertEqual(apply_superscript(md, self.ctx), "The identity $$x^2+y^2$$ holds for H<sup>2</sup>O.")
        md = "Vectors $$v~1~$$ and C~2~ here."
        self.assertEqual(apply_subscript(md, self.ctx), "Vectors $$v~1~$$ and C<sub>2</sub> here.")

    def test_display_math_opened_mid_line(self):
        md = "Solve $$\na^2^ + b~1~\n$$ then x^2^"
        self.assertEqual(apply_superscript(md, self.ctx), "Solve $$\na^2^ + b~1~\n$$ then x^2^")
        self.assertEqual(apply_subscript(md, self.ctx), md)

    def test_unpaired_or_spaced_markers(self):
        self.assertEqual(apply_superscript("a ^ b ^ c", self.ctx), "a ^ b ^ c")
        self.assertEqual(apply_superscript("x^2", self.ctx), "x^2")

    def test_subscript(self):
        self.assertEqual(apply_subscript("H~2~O", self.ctx), "H<sub>2</sub>O")
        self.assertEqual(apply_subscript("~~gone~~", self.ctx), "~~gone~~")
        self.assertEqual(apply_subscript("a ~ b ~ c", self.ctx), "a ~ b ~ c")


class TestFencedCodeIsNeverTouched(unittest.TestCase):
    """Every inline transformer leaves the bytes inside a fence alone."""

    FENCED = "```\n==x== (c) 1/2 :smile: H^2^O H~2~O\n- [ ] task\n```"

    def test_all_transformers(self):
        md = f"before\n{self.FENCED}\nafter"
        for transform in (apply_highlight, apply_typography, apply_emoji,
                          apply_superscript, apply_subscript, convert_task_lists):
            with self.subTest(transform=transform.__name__):
                self.assertIn(self.FENCED, transform(md, RenderContext()))


if __name__ == '__main__':
    unittest.main()
