"""
YAML frontmatter at the top of a document:

    ---
    layout: kanban
    ---

Only `layout` changes how a document renders; other keys are carried along.
"""

from typing import Any, Dict, Optional, Tuple
import logging

import yaml

from wikimark.core.context import RenderContext

logger = logging.getLogger(__name__)

OPEN_DELIMITER = '---\n'
CLOSE_DELIMITER = '\n---'

LAYOUT_KANBAN = 'kanban'
LAYOUT_LINKS = 'links'


def _locate(content: str) -> Optional[Tuple[str, str]]:
    """Split content into (raw frontmatter, remainder), or None when there is no frontmatter."""
    if not content.startswith(OPEN_DELIMITER):
        return None
    end = content.find(CLOSE_DELIMITER, len(OPEN_DELIMITER) - 1)
    if end == -1:
        return None
    raw = content[len(OPEN_DELIMITER):end] if end >= len(OPEN_DELIMITER) else ''
    remainder = content[end + len(CLOSE_DELIMITER):]
    # drop the rest of the closing delimiter line
    newline = remainder.find('\n')
    remainder = '' if newline == -1 else remainder[newline + 1:]
    return raw, remainder.lstrip('\n')


def parse_frontmatter(content: str) -> Tuple[Dict[str, Any], str, bool]:
    """
    Returns (metadata, content without frontmatter, found).
    Invalid YAML is treated as no frontmatter at all and the content is returned unchanged.
    """
    located = _locate(content)
    if located is None:
        return {}, content, False
    raw, remainder = located
    try:
        data = yaml.safe_load(raw) if raw.strip() else {}
    except yaml.YAMLError as e:
        logger.warning(f"Ignoring invalid frontmatter: {e}")
        return {}, content, False
    if data is None:
        data = {}
    if not isinstance(data, dict):
        logger.warning(f"Ignoring frontmatter that is not a mapping ({type(data).__name__})")
        return {}, content, False
    return data, remainder, True


def has_frontmatter(content: str) -> bool:
    return _locate(content) is not None


def extract_frontmatter(content: str) -> str:
    located = _locate(content)
    return located[0] if located else ''


def get_layout(metadata: Dict[str, Any]) -> str:
    """Normalized layout name from parsed metadata, '' when there is none."""
    layout = metadata.get('layout', '')
    return str(layout).strip().lower() if layout else ''


def add_frontmatter(content: str, metadata: Dict[str, Any]) -> str:
    """Replace any existing frontmatter with metadata."""
    _, body, _ = parse_frontmatter(content)
    dumped = yaml.safe_dump(metadata, default_flow_style=False, sort_keys=False, allow_unicode=True, indent=2)
    return f'---\n{dumped}---\n\n{body}'


def strip_frontmatter(markdown: str, ctx: RenderContext) -> str:
    """Preprocessor: frontmatter is metadata, not content."""
    _, body, found = parse_frontmatter(markdown)
    return body if found else markdown
