import logging
import re

from wikimark.core.context import RenderContext
from wikimark.features.fences import map_outside_code_spans, map_prose_lines

logger = logging.getLogger(__name__)

IMAGE_PATTERN = re.compile(r'!\[([^\]]*)\]\(([^)]+)\)')
LINK_PATTERN = re.compile(r'\[([^\]]*)\]\(([^)]+)\)')

# Targets that already point somewhere servable
NON_LOCAL_PREFIXES = ('#', '/', 'data:', 'mailto:')

FILES_ENDPOINT = '/api/files'
HOME_DOC_PATH = 'pages/home'


def is_local_path(path: str) -> bool:
    path = path.strip()
    if not path or '://' in path:
        return False
    return not path.startswith(NON_LOCAL_PREFIXES)


def asset_url(path: str, doc_path: str) -> str:
    """URL under which the file server exposes an asset stored next to a document."""
    doc_path = (doc_path or '').strip('/')
    if not doc_path:
        return f'{FILES_ENDPOINT}/{HOME_DOC_PATH}/{path}'
    return f'{FILES_ENDPOINT}/{doc_path}/{path}'


def resolve_local_path(path: str, doc_path: str) -> str:
    if not is_local_path(path):
        return path
    return asset_url(path.strip(), doc_path)


def _rewrite_segment(segment: str, doc_path: str) -> str:
    def image(match):
        return f'![{match.group(1)}]({resolve_local_path(match.group(2), doc_path)})'

    def link(match):
        return f'[{match.group(1)}]({resolve_local_path(match.group(2), doc_path)})'

    segment = IMAGE_PATTERN.sub(image, segment)
    # Images were rewritten to absolute paths above, so matching their
    # [alt](...) part again leaves them alone.
    return LINK_PATTERN.sub(link, segment)


def resolve_links(markdown: str, ctx: RenderContext) -> str:
    """Rewrite relative image and link targets to /api/files/... URLs for the current document."""
    if '](' not in markdown:
        return markdown
    return map_prose_lines(
        markdown,
        lambda line: map_outside_code_spans(line, lambda seg: _rewrite_segment(seg, ctx.doc_path)),
    )
