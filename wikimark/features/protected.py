from typing import Callable, Dict
import logging

from wikimark.core.context import BlockKind, ProtectedBlock, RenderContext
from wikimark.core.errors import RenderError
from wikimark.core.renderer import render_markdown
from wikimark.features.fences import FencedBlock, transform_fenced_blocks

logger = logging.getLogger(__name__)

MERMAID_KEYWORDS = ('mermaid',)
DIRECTION_KEYWORDS = ('rtl', 'ltr')


def extract_mermaid_blocks(markdown: str, ctx: RenderContext) -> str:
    """Replace ```mermaid fences with placeholders so diagram source never reaches the renderer."""
    def protect(block: FencedBlock) -> str:
        return ctx.protect(BlockKind.MERMAID, block.content)

    return transform_fenced_blocks(markdown, MERMAID_KEYWORDS, protect)


def extract_direction_blocks(markdown: str, ctx: RenderContext) -> str:
    """Replace ```rtl / ```ltr fences with placeholders; their content is rendered on restore."""
    def protect(block: FencedBlock) -> str:
        return ctx.protect(BlockKind.DIRECTION, block.content, info=block.keyword)

    return transform_fenced_blocks(markdown, DIRECTION_KEYWORDS, protect)


def _restore_mermaid(block: ProtectedBlock) -> str:
    return f'<div class="mermaid">{block.raw_content}</div>'


def _restore_direction(block: ProtectedBlock) -> str:
    try:
        inner = render_markdown(block.raw_content)
    except RenderError as e:
        logger.warning(f"Direction block {block.id} failed to render, using raw content: {e}")
        inner = block.raw_content
    return f'<div class="{block.info}">{inner}</div>'


RESTORERS: Dict[BlockKind, Callable[[ProtectedBlock], str]] = {
    BlockKind.MERMAID: _restore_mermaid,
    BlockKind.DIRECTION: _restore_direction,
}


def substitute_placeholder(html: str, placeholder: str, replacement: str) -> str:
    """
    Swap the first occurrence of placeholder for replacement. A paragraph the
    renderer wrapped around the placeholder is replaced along with it.
    """
    wrapped = f'<p>{placeholder}</p>'
    if wrapped in html:
        return html.replace(wrapped, replacement, 1)
    if placeholder not in html:
        logger.warning(f"Placeholder {placeholder} missing from rendered output")
        return html
    return html.replace(placeholder, replacement, 1)


def restore_protected_blocks(html: str, ctx: RenderContext) -> str:
    """
    Put mermaid and direction blocks back after rendering.

    Only top-level fences are extracted, so a mermaid fence written inside an
    rtl/ltr block stays part of that block's source and is rendered with it as
    ordinary fenced code. Kinds without a restorer here (kanban boards) are
    left for their own layout.
    """
    for block in ctx.blocks():
        restorer = RESTORERS.get(block.kind)
        if restorer is None:
            continue
        html = substitute_placeholder(html, block.placeholder, restorer(block))
    return html
