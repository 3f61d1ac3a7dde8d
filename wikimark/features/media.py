"""
Video embeds from tagged fences.

    ```youtube
    https://www.youtube.com/watch?v=dQw4w9WgXcQ
    ```

Each block becomes an embed plus a print-only fallback with a direct link,
since iframes and video players are useless on paper and in PDF exports.
Blocks without a usable ID disappear from the output.
"""

from pathlib import PurePosixPath
from typing import Callable, Optional, Pattern, Sequence
import html
import logging
import re

from wikimark.core.context import RenderContext
from wikimark.features.fences import FencedBlock, transform_fenced_blocks
from wikimark.features.local_links import asset_url

logger = logging.getLogger(__name__)


class VideoProvider:
    def __init__(self, keyword: str, label: str, is_bare_id: Callable[[str], bool],
                 url_patterns: Sequence[Pattern], embed_url: str, watch_url: str, allow: str):
        self.keyword = keyword
        self.label = label
        self.is_bare_id = is_bare_id
        self.url_patterns = url_patterns
        self.embed_url = embed_url
        self.watch_url = watch_url
        self.allow = allow

    def extract_id(self, value: str) -> Optional[str]:
        value = value.strip()
        if not value:
            return None
        if self.is_bare_id(value):
            return value
        for pattern in self.url_patterns:
            match = pattern.search(value)
            if match:
                return match.group(1)
        return None

    def render(self, video_id: str) -> str:
        embed = self.embed_url.format(id=video_id)
        watch = self.watch_url.format(id=video_id)
        return (
            f'<div class="video-container">\n'
            f'<iframe width="560" height="315" src="{embed}"\n'
            f'frameborder="0" allow="{self.allow}"\n'
            f'allowfullscreen></iframe>\n'
            f'</div>\n'
            f'<div class="video-print-placeholder">\n'
            f'<p><strong>{self.label}</strong></p>\n'
            f'<p>This embedded video is not available in print. You can view it online at:</p>\n'
            f'<p><a href="{watch}">{watch}</a></p>\n'
            f'</div>'
        )


YOUTUBE = VideoProvider(
    keyword='youtube',
    label='YouTube Video',
    is_bare_id=lambda v: '/' not in v and '.' not in v and len(v) >= 11,
    url_patterns=[
        re.compile(r'(?:youtube\.com/watch\?v=|youtu\.be/)([^&?\s]+)'),
        re.compile(r'youtube\.com/embed/([^&?\s]+)'),
        re.compile(r'youtube\.com/v/([^&?\s]+)'),
    ],
    embed_url='https://www.youtube.com/embed/{id}',
    watch_url='https://www.youtube.com/watch?v={id}',
    allow='accelerometer; autoplay; clipboard-write; encrypted-media; gyroscope; picture-in-picture',
)

VIMEO = VideoProvider(
    keyword='vimeo',
    label='Vimeo Video',
    is_bare_id=lambda v: v.isdigit(),
    url_patterns=[
        re.compile(r'player\.vimeo\.com/video/(\d+)'),
        re.compile(r'vimeo\.com/video/(\d+)'),
        re.compile(r'vimeo\.com/(\d+)'),
    ],
    embed_url='https://player.vimeo.com/video/{id}',
    watch_url='https://vimeo.com/{id}',
    allow='autoplay; fullscreen; picture-in-picture',
)


def _embed_transformer(provider: VideoProvider):
    def transform(markdown: str, ctx: RenderContext) -> str:
        def replace(block: FencedBlock) -> Optional[str]:
            video_id = provider.extract_id(block.content)
            if video_id is None:
                logger.warning(f"No {provider.keyword} video id in block: {block.content.strip()[:80]!r}")
                return None
            return provider.render(video_id)

        return transform_fenced_blocks(markdown, (provider.keyword,), replace)

    transform.__name__ = f'transform_{provider.keyword}'
    return transform


transform_youtube = _embed_transformer(YOUTUBE)
transform_vimeo = _embed_transformer(VIMEO)


def transform_mp4_path(video_path: str, doc_path: str) -> str:
    if video_path.startswith(('http://', 'https://', '/')):
        return video_path
    return asset_url(video_path, doc_path)


def render_mp4(src: str, filename: str) -> str:
    return (
        f'<div class="video-container">\n'
        f'<video class="local-video-player" style="max-width: 100%; height: auto;" controls>\n'
        f'<source src="{html.escape(src)}" type="video/mp4">\n'
        f'Your browser does not support the video tag.\n'
        f'</video>\n'
        f'</div>\n'
        f'<div class="video-print-placeholder">\n'
        f'<p><strong>Video Content</strong></p>\n'
        f'<p>This embedded video ({html.escape(filename)}) is not available in print.</p>\n'
        f'<p>To view this video, access this document at your wiki URL.</p>\n'
        f'</div>'
    )


def transform_mp4(markdown: str, ctx: RenderContext) -> str:
    """```mp4 fences holding a video path become a local video player."""
    def replace(block: FencedBlock) -> Optional[str]:
        video_path = block.content.strip()
        if not video_path:
            return None
        filename = PurePosixPath(video_path).name
        return render_mp4(transform_mp4_path(video_path, ctx.doc_path), filename)

    return transform_fenced_blocks(markdown, ('mp4',), replace)
