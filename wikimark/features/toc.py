from typing import Dict, List
import html
import logging
import re

from wikimark.core.context import RenderContext
from wikimark.features.fences import FenceTracker, map_outside_code_spans

logger = logging.getLogger(__name__)

HEADING_PATTERN = re.compile(r'^(#{1,6})\s+(.+?)(?:\s+\{#([a-zA-Z0-9-]+)\})?$')
TOC_MARKER = '[toc]'
TOC_LINE_PATTERN = re.compile(r'^\s*\[toc\]\s*$')

_INLINE_CODE = re.compile(r'`([^`]+)`')
_INLINE_LINK = re.compile(r'\[([^\]]+)\]\([^)]+\)')
_EMPHASIS = re.compile(r'(\*\*|\*)(\S(?:.*?\S)?)\1')
_SLUG_PUNCTUATION = re.compile(r'[&+_,.()\[\]{}\'"!?;:~*]')


def toc_label(text: str) -> str:
    """Heading markdown as plain, escaped text for a TOC entry."""
    text = _INLINE_LINK.sub(r'\1', _INLINE_CODE.sub(r'\1', text))
    return html.escape(_EMPHASIS.sub(r'\2', text), quote=False)


class Heading:
    def __init__(self, level: int, text: str, anchor: str):
        self.level = level
        self.text = text
        self.anchor = anchor

    def __repr__(self):
        return f"Heading(h{self.level}, {self.anchor!r})"


def make_slug(text: str) -> str:
    text = _SLUG_PUNCTUATION.sub(' ', text.lower())
    text = re.sub(r'\s+', ' ', text).strip().replace(' ', '-')
    text = re.sub(r'[^a-z0-9-]', '', text)
    text = re.sub(r'-+', '-', text).strip('-')
    return text or 'heading'


def _unique(slug: str, used: Dict[str, bool]) -> str:
    candidate = slug
    counter = 1
    while candidate in used:
        candidate = f'{slug}-{counter}'
        counter += 1
    used[candidate] = True
    return candidate


def assign_heading_ids(lines: List[str]) -> List[Heading]:
    """
    Give every heading outside fenced code an explicit {#id}, rewriting lines in place.
    Ids that are already present are kept; generated ones are made unique.
    """
    tracker = FenceTracker()
    used: Dict[str, bool] = {}
    headings: List[Heading] = []

    for i, line in enumerate(lines):
        if not tracker.is_prose(tracker.feed(line)):
            continue
        if len(line) - len(line.lstrip(' ')) >= 4:
            continue  # indented code
        match = HEADING_PATTERN.match(line.strip())
        if not match:
            continue
        level = len(match.group(1))
        text = match.group(2).strip()
        existing = match.group(3)

        slug_source = _INLINE_LINK.sub(r'\1', _INLINE_CODE.sub('', text))
        anchor = _unique(existing or make_slug(slug_source), used)
        headings.append(Heading(level, text, anchor))
        if not existing:
            lines[i] = f"{'#' * level} {text} {{#{anchor}}}"

    return headings


def render_toc(headings: List[Heading]) -> str:
    if not headings:
        return '<div class="wiki-toc"><p class="toc-empty">No headings found in this document.</p></div>'

    parts = [
        '<nav class="wiki-toc table-of-contents" aria-label="Table of Contents">',
        '<div class="toc-title">Table of Contents</div>',
        '<ul class="toc-list">',
    ]
    open_levels = [headings[0].level]
    for index, heading in enumerate(headings):
        if index > 0:
            if heading.level > open_levels[-1]:
                parts.append('<ul>')
                open_levels.append(heading.level)
            else:
                parts.append('</li>')
                while len(open_levels) > 1 and heading.level < open_levels[-1]:
                    open_levels.pop()
                    parts.append('</ul></li>')
        parts.append(f'<li><a href="#{heading.anchor}">{toc_label(heading.text)}</a>')

    parts.append('</li>')
    while len(open_levels) > 1:
        open_levels.pop()
        parts.append('</ul></li>')
    parts.append('</ul></nav>')
    return ''.join(parts)


def expand_toc(markdown: str, ctx: RenderContext) -> str:
    """Assign heading ids and replace [toc] markers with a nested table of contents."""
    lines = markdown.split('\n')
    headings = assign_heading_ids(lines)

    if TOC_MARKER not in markdown:
        return '\n'.join(lines)

    toc_html = render_toc(headings)
    logger.debug(f"TOC built from {len(headings)} headings")

    tracker = FenceTracker()
    out = []
    for line in lines:
        if not tracker.is_prose(tracker.feed(line)):
            out.append(line)
        elif TOC_LINE_PATTERN.match(line):
            out.append(toc_html)
        else:
            out.append(map_outside_code_spans(line, lambda seg: seg.replace(TOC_MARKER, toc_html)))
    return '\n'.join(out)
