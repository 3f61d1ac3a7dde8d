"""
Render entry point: markdown in, HTML out.

Documents whose frontmatter names a layout are handed to that layout's
renderer; everything else runs the preprocessor chain, the core renderer and
the post-processors. Every call builds its own RenderContext.
"""

from typing import Optional
import logging

from wikimark.core.context import RenderContext
from wikimark.core.errors import RenderError, error_fragment
from wikimark.core.renderer import render_markdown
from wikimark.features.registry import build_default_chain, build_postprocessors
from wikimark.features.stats import StatsProvider
from wikimark.layouts.frontmatter import LAYOUT_KANBAN, LAYOUT_LINKS, get_layout, parse_frontmatter
from wikimark.layouts.kanban import render_kanban, render_kanban_basic
from wikimark.layouts.links import render_links

logger = logging.getLogger(__name__)


def run_pipeline(markdown: str, ctx: RenderContext, enable_experimental: bool = False) -> str:
    """Chain, core renderer, post-processors. Raises RenderError if the renderer fails."""
    preprocessors = build_default_chain(enable_experimental)
    logger.debug(f"Running {len(preprocessors)} preprocessors for '{ctx.doc_path or '<home>'}'")
    processed = preprocessors.run(markdown, ctx)
    html_content = render_markdown(processed)
    return build_postprocessors().run(html_content, ctx)


def _render_kanban_layout(body: str, ctx: RenderContext, enable_experimental: bool) -> str:
    try:
        return render_kanban(body, build_default_chain(enable_experimental), build_postprocessors(), ctx)
    except Exception as e:
        logger.error(f"Kanban rendering failed, falling back to basic rendering: {e}", exc_info=True)
        return render_kanban_basic(body)


def render_document(markdown: str, doc_path: str = "", stats_provider: Optional[StatsProvider] = None,
                    enable_experimental: bool = False) -> str:
    markdown = markdown.replace('\r\n', '\n')
    ctx = RenderContext(doc_path, stats_provider)
    metadata, body, _ = parse_frontmatter(markdown)
    layout = get_layout(metadata)

    try:
        if layout == LAYOUT_KANBAN:
            logger.info(f"Rendering '{doc_path}' with kanban layout")
            return _render_kanban_layout(body, ctx, enable_experimental)
        if layout == LAYOUT_LINKS:
            logger.info(f"Rendering '{doc_path}' with links layout")
            return render_links(body)
        return run_pipeline(markdown, ctx, enable_experimental)
    except RenderError as e:
        logger.error(f"Failed to render '{doc_path}': {e}")
        return error_fragment(str(e))
