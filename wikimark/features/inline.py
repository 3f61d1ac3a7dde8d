"""
Inline decorations applied late in the chain: highlight, typography, emoji,
superscript and subscript.

All of them leave fenced code and inline code spans alone. Superscript and
subscript also skip $...$ and $$...$$ math, and superscript never touches
footnote markers such as [^1].
"""

from types import MappingProxyType
from typing import Callable, Dict, Mapping
import logging
import re

from pymdownx import gemoji_db

from wikimark.core.context import RenderContext
from wikimark.features.fences import FenceTracker, map_outside_code_spans, map_prose_lines

logger = logging.getLogger(__name__)


def _map_text(markdown: str, transform: Callable[[str], str]) -> str:
    return map_prose_lines(markdown, lambda line: map_outside_code_spans(line, transform))


# ==highlight==

HIGHLIGHT_PATTERN = re.compile(r'([^=]|^)==([^=\n]+?)==([^=]|$)')


def _highlight_segment(segment: str) -> str:
    # One pass can't match two adjacent marks that share a boundary character
    while '==' in segment:
        updated = HIGHLIGHT_PATTERN.sub(r'\1<mark>\2</mark>\3', segment)
        if updated == segment:
            break
        segment = updated
    return segment


def apply_highlight(markdown: str, ctx: RenderContext) -> str:
    if '==' not in markdown:
        return markdown
    return _map_text(markdown, _highlight_segment)


# Typography

TYPOGRAPHY_REPLACEMENTS = (
    ('(c)', '©'),
    ('(r)', '®'),
    ('(tm)', '™'),
    ('(p)', '¶'),
    ('+-', '±'),
    ('...', '…'),
)
FRACTIONS = {'1/2': '½', '1/4': '¼', '3/4': '¾'}
# Only free-standing fractions; not dates, versions or paths
FRACTION_PATTERN = re.compile(r'(?<![\w/.])(1/2|1/4|3/4)(?![\w/])')


def _typography_segment(segment: str) -> str:
    for shortcut, symbol in TYPOGRAPHY_REPLACEMENTS:
        if shortcut in segment:
            segment = segment.replace(shortcut, symbol)
    return FRACTION_PATTERN.sub(lambda m: FRACTIONS[m.group(1)], segment)


def apply_typography(markdown: str, ctx: RenderContext) -> str:
    return _map_text(markdown, _typography_segment)


# :emoji:

EMOJI_PATTERN = re.compile(r':[+\-\w]+:')


def _to_glyph(codepoints: str) -> str:
    return ''.join(chr(int(cp, 16)) for cp in codepoints.split('-'))


def _build_emoji_table() -> Mapping[str, str]:
    table: Dict[str, str] = {}
    for shortname, entry in gemoji_db.emoji.items():
        codepoints = entry.get('unicode_alt') or entry.get('unicode')
        if codepoints:  # GitHub-only custom emoji have no glyph
            table[shortname] = _to_glyph(codepoints)
    for alias, shortname in gemoji_db.aliases.items():
        if shortname in table:
            table[alias] = table[shortname]
    logger.debug(f"Emoji table loaded: {len(table)} shortcodes")
    return MappingProxyType(table)


EMOJI_TABLE = _build_emoji_table()


def _emoji_segment(segment: str) -> str:
    if ':' not in segment:
        return segment
    return EMOJI_PATTERN.sub(lambda m: EMOJI_TABLE.get(m.group(0), m.group(0)), segment)


def apply_emoji(markdown: str, ctx: RenderContext) -> str:
    return _map_text(markdown, _emoji_segment)


# ^superscript^ and ~subscript~

def _map_math_aware_lines(markdown: str, transform: Callable[[str], str]) -> str:
    """
    Like map_prose_lines, but $$ display-math blocks are skipped as well.
    A line with an odd number of $$ delimiters opens or closes a block.
    """
    tracker = FenceTracker()
    in_math_block = False
    out = []
    for line in markdown.split('\n'):
        event = tracker.feed(line)
        if not tracker.is_prose(event):
            out.append(line)
            continue
        out.append(line if in_math_block else transform(line))
        if line.count('$$') % 2 == 1:
            in_math_block = not in_math_block
    return '\n'.join(out)


def _find_closing(line: str, start: int, marker: str, skip_footnotes: bool) -> int:
    """Index of the closing marker, or -1 if whitespace, code, math or end of line comes first."""
    for j in range(start, len(line)):
        ch = line[j]
        if ch in '`$' or ch.isspace():
            return -1
        if ch == marker and not (skip_footnotes and line[j - 1] == '['):
            return j
    return -1


def _wrap_delimited(line: str, marker: str, tag: str, skip_footnotes: bool = False) -> str:
    if marker not in line:
        return line
    out = []
    in_code = False
    in_math = False
    i = 0
    n = len(line)
    while i < n:
        ch = line[i]
        if ch == '`':
            in_code = not in_code
        elif ch == '$' and not in_code:
            in_math = not in_math
            if line.startswith('$$', i):
                # $$ is one delimiter, not two toggles
                out.append('$$')
                i += 2
                continue
        elif ch == marker and not in_code and not in_math:
            is_footnote = skip_footnotes and i > 0 and line[i - 1] == '['
            if not is_footnote:
                j = _find_closing(line, i + 1, marker, skip_footnotes)
                if j > i + 1:
                    out.append(f'<{tag}>{line[i + 1:j]}</{tag}>')
                    i = j + 1
                    continue
        out.append(ch)
        i += 1
    return ''.join(out)


def apply_superscript(markdown: str, ctx: RenderContext) -> str:
    if '^' not in markdown:
        return markdown
    return _map_math_aware_lines(markdown, lambda line: _wrap_delimited(line, '^', 'sup', skip_footnotes=True))


def _subscript_line(line: str) -> str:
    # ~~strikethrough~~ belongs to the renderer
    if '~~' in line:
        return line
    return _wrap_delimited(line, '~', 'sub')


def apply_subscript(markdown: str, ctx: RenderContext) -> str:
    if '~' not in markdown:
        return markdown
    return _map_math_aware_lines(markdown, _subscript_line)
