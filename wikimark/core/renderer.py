from typing import Dict, List
import logging
import re

import markdown

from wikimark.core.errors import RenderError

logger = logging.getLogger(__name__)

# Core renderer: Markdown -> HTML with the extension set every document relies on.
# Wiki-specific syntax (mermaid, super/subscript, highlight, emoji, task lists)
# is handled by the preprocessors before this runs, so the matching
# pymdownx extensions stay disabled here.

EXTENSIONS: List[str] = [
    'tables',
    'footnotes',
    'def_list',
    'attr_list',
    'md_in_html',
    'toc',
    'nl2br',
    'sane_lists',
    'pymdownx.superfences',
    'pymdownx.tilde',
    'pymdownx.magiclink',
]

EXTENSION_CONFIGS: Dict[str, Dict] = {
    "pymdownx.tilde": {
        "subscript": False,
    },
    "pymdownx.magiclink": {
        "hide_protocol": False,
    },
}

_PARAGRAPH_WRAP = re.compile(r'^<p>(.*)</p>$', re.DOTALL)


def build_markdown() -> markdown.Markdown:
    """A new Markdown instance. Instances keep per-document state, so never share one between renders."""
    return markdown.Markdown(extensions=EXTENSIONS, extension_configs=EXTENSION_CONFIGS)


def render_markdown(md_text: str) -> str:
    logger.debug(f"Render markdown: {len(md_text)} chars input")
    try:
        return build_markdown().convert(md_text)
    except Exception as e:
        logger.error(f"Markdown renderer failed: {e}", exc_info=True)
        raise RenderError(str(e)) from e


def render_inline(md_text: str) -> str:
    """
    Render a short fragment and drop the paragraph wrapper the renderer adds,
    so the result can sit inside an inline element.
    """
    html_output = render_markdown(md_text).strip()
    match = _PARAGRAPH_WRAP.match(html_output)
    if match and '<p>' not in match.group(1):
        return match.group(1)
    return html_output
