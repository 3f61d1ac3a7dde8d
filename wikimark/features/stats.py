"""
Stats shortcodes.

    :::stats count=*:::           total number of documents
    :::stats count=guides:::      documents under the guides folder
    :::stats recent=5:::          the five most recently edited documents

The numbers come from a StatsProvider attached to the render context. Without
one, counts are zero and the recent list is empty.
"""

from abc import ABC, abstractmethod
from datetime import datetime
from pathlib import Path
from typing import List, Optional
import html
import logging
import re

from wikimark.core.context import RenderContext
from wikimark.features.fences import map_outside_code_spans, map_prose_lines

logger = logging.getLogger(__name__)

STATS_PATTERN = re.compile(r':::stats\s+(recent|count)=([^:]+):::')
DEFAULT_RECENT_COUNT = 5
DOCUMENT_FILE = 'document.md'
EDIT_DATE_FORMAT = '%Y-%m-%d %H:%M'


class DocumentSummary:
    def __init__(self, title: str, path: str, modified: datetime):
        self.title = title
        self.path = path
        self.modified = modified

    def __repr__(self):
        return f"DocumentSummary({self.path!r}, {self.modified:%Y-%m-%d})"


class StatsProvider(ABC):
    """Source of document counts for the stats shortcode."""

    @abstractmethod
    def count_documents(self, folder: Optional[str] = None) -> int:
        """
        Number of documents under folder, or in the whole wiki when folder is empty.
        """
        pass

    @abstractmethod
    def recent_documents(self, limit: int) -> List[DocumentSummary]:
        """
        Up to limit documents, most recently modified first.
        """
        pass


class FileSystemStatsProvider(StatsProvider):
    """Documents stored as <root>/<path>/document.md."""

    def __init__(self, root):
        self.root = Path(root)

    def _folder(self, folder: Optional[str]) -> Optional[Path]:
        base = self.root.resolve()
        if not folder:
            return base
        target = (base / folder.strip().strip('/')).resolve()
        if target != base and not target.is_relative_to(base):
            logger.warning(f"Stats folder outside documents root ignored: {folder}")
            return None
        return target

    def count_documents(self, folder: Optional[str] = None) -> int:
        target = self._folder(folder)
        if target is None or not target.is_dir():
            return 0
        return sum(1 for p in target.rglob(DOCUMENT_FILE) if p.is_file())

    def recent_documents(self, limit: int) -> List[DocumentSummary]:
        base = self._folder(None)
        if not base.is_dir():
            return []
        docs = []
        for doc_file in base.rglob(DOCUMENT_FILE):
            try:
                modified = datetime.fromtimestamp(doc_file.stat().st_mtime)
            except OSError as e:
                logger.warning(f"Skipping unreadable document {doc_file}: {e}")
                continue
            rel_path = doc_file.parent.relative_to(base).as_posix()
            title = extract_document_title(doc_file) or format_dir_name(doc_file.parent.name)
            docs.append(DocumentSummary(title, rel_path, modified))
        docs.sort(key=lambda d: d.modified, reverse=True)
        return docs[:limit]


def extract_document_title(path: Path) -> str:
    """The text of the first '# ' heading in a markdown file."""
    try:
        with open(path, 'r', encoding='utf-8') as f:
            for line in f:
                line = line.strip()
                if line.startswith('# '):
                    return line[2:].strip()
    except (OSError, UnicodeDecodeError) as e:
        logger.debug(f"Could not read title from {path}: {e}")
    return ''


def format_dir_name(name: str) -> str:
    """'getting-started' -> 'Getting Started'"""
    words = name.replace('-', ' ').split()
    return ' '.join(w[:1].upper() + w[1:] for w in words)


def render_document_count(param: str, provider: Optional[StatsProvider]) -> str:
    param = param.strip()
    if param in ('*', 'all'):
        count = provider.count_documents() if provider else 0
        title = 'Total Documents'
        description = 'Total number of documents in the wiki'
    else:
        count = provider.count_documents(param) if provider else 0
        section = format_dir_name(param)
        title = f'Documents in {section}'
        description = f'Number of documents in the {section} section'

    return (
        '<div class="wiki-stats doc-count">\n'
        f'<h4>{html.escape(title)}</h4>\n'
        '<div class="count-container">\n'
        f'<div class="count-number">{count}</div>\n'
        f'<div class="count-description">{html.escape(description)}</div>\n'
        '</div>\n'
        '</div>\n'
    )


def render_recent_edits(limit: int, provider: Optional[StatsProvider]) -> str:
    docs = provider.recent_documents(limit) if provider else []
    parts = ['<div class="wiki-stats recent-edits">\n', '<h4>Recently Edited Documents</h4>\n']
    if not docs:
        parts.append('<p>No recently edited documents found.</p>\n')
    else:
        parts.append('<ul>\n')
        for doc in docs:
            href = html.escape('/' + doc.path)
            parts.append('<li>\n')
            parts.append('  <div class="doc-info">\n')
            parts.append(f'    <a href="{href}">{html.escape(doc.title)}</a>\n')
            parts.append(f'    <span class="doc-path">{href}</span>\n')
            parts.append('  </div>\n')
            parts.append(f'  <span class="edit-date">{doc.modified.strftime(EDIT_DATE_FORMAT)}</span>\n')
            parts.append('</li>\n')
        parts.append('</ul>\n')
    parts.append('</div>\n')
    return ''.join(parts)


def _parse_recent_count(value: str) -> int:
    try:
        count = int(value.strip())
    except ValueError:
        return DEFAULT_RECENT_COUNT
    return count if count > 0 else DEFAULT_RECENT_COUNT


def expand_stats_shortcodes(markdown: str, ctx: RenderContext) -> str:
    if ':::stats' not in markdown:
        return markdown

    def replace(match):
        kind, value = match.group(1), match.group(2)
        if kind == 'count':
            return render_document_count(value, ctx.stats_provider)
        return render_recent_edits(_parse_recent_count(value), ctx.stats_provider)

    def segment(seg: str) -> str:
        return STATS_PATTERN.sub(replace, seg) if ':::stats' in seg else seg

    return map_prose_lines(markdown, lambda line: map_outside_code_spans(line, segment))
