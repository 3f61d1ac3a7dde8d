"""
Link collections written as markdown:

    # Bookmarks
    ## Tools
    - [Example](https://example.com) - A tool | 2024-01-01

H1 is the document title, each H2 starts a category, and list items are links
with an optional description and date. Lines that fail validation are dropped
one at a time; a bad line never stops the parse.
"""

from dataclasses import dataclass, field
from datetime import date, datetime, timedelta
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse
import logging
import re

from wikimark.core.templates import register_filter, render_fragment
from wikimark.core.errors import WikimarkError
from wikimark.layouts.frontmatter import (
    LAYOUT_LINKS, add_frontmatter, extract_frontmatter, has_frontmatter, parse_frontmatter,
)

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = 'General'
LINKS_TEMPLATE = 'links.html'

H1_PATTERN = re.compile(r'^#\s+(.+)$')
H2_PATTERN = re.compile(r'^##\s+(.+)$')
LINK_PATTERN = re.compile(
    r'^\s*[-*+]\s+\[([^\]]+)\]\(([^)]+)\)(?:\s*-\s*(.+?))?(?:\s*\|\s*(\d{4}-\d{2}-\d{2}))?\s*$'
)

DATE_FORMATS = (
    '%Y-%m-%d',
    '%Y/%m/%d',
    '%m/%d/%Y',
    '%Y-%m-%d %H:%M:%S',
    '%Y/%m/%d %H:%M:%S',
)

FAVICON_SERVICE = 'https://www.google.com/s2/favicons?domain={host}&sz=32'


class LinkValidationError(WikimarkError):
    pass


@dataclass
class Link:
    title: str
    url: str
    description: str = ''
    category: str = DEFAULT_CATEGORY
    added_at: Optional[date] = None


@dataclass
class LinksStats:
    total_links: int = 0
    total_categories: int = 0
    per_category: Dict[str, int] = field(default_factory=dict)
    recent_7_days: int = 0
    recent_30_days: int = 0
    latest_added: Optional[date] = None


@dataclass
class LinksDocument:
    title: str = ''
    categories: Dict[str, List[Link]] = field(default_factory=dict)
    stats: LinksStats = field(default_factory=LinksStats)

    def links(self) -> List[Link]:
        return [link for links in self.categories.values() for link in links]

    def add_link(self, link: Link):
        self.categories.setdefault(link.category, []).append(link)


def validate_url(raw_url: str) -> Optional[LinkValidationError]:
    if not raw_url.strip():
        return LinkValidationError("URL cannot be empty")
    try:
        parsed = urlparse(raw_url.strip())
    except ValueError as e:
        return LinkValidationError(f"Invalid URL format: {e}")
    if not parsed.scheme:
        return LinkValidationError("URL must include a scheme (http:// or https://)")
    if parsed.scheme not in ('http', 'https'):
        return LinkValidationError("URL scheme must be http or https")
    if not parsed.netloc:
        return LinkValidationError("URL must include a valid host")
    return None


def validate_link(link: Link) -> List[LinkValidationError]:
    errors = []
    if not link.title.strip():
        errors.append(LinkValidationError("Title cannot be empty"))
    url_error = validate_url(link.url)
    if url_error:
        errors.append(url_error)
    if not link.category.strip():
        errors.append(LinkValidationError("Category cannot be empty"))
    return errors


def parse_link_date(value: str) -> date:
    """Parse the date formats authors use for links; raises ValueError if none fits."""
    value = value.strip()
    for fmt in DATE_FORMATS:
        try:
            return datetime.strptime(value, fmt).date()
        except ValueError:
            continue
    raise ValueError(f"unable to parse date: {value}")


def sanitize_category(category: str) -> str:
    category = re.sub(r'\s+', ' ', category.strip())
    return category or DEFAULT_CATEGORY


def favicon_url(url: str) -> str:
    if not url.startswith(('http://', 'https://')):
        url = 'https://' + url
    try:
        host = urlparse(url).netloc
    except ValueError:
        return ''
    return FAVICON_SERVICE.format(host=host) if host else ''


register_filter('favicon_url', favicon_url)


def calculate_stats(document: LinksDocument, today: Optional[date] = None) -> LinksStats:
    today = today or date.today()
    week_ago = today - timedelta(days=7)
    month_ago = today - timedelta(days=30)

    stats = LinksStats(total_categories=len(document.categories))
    for name, links in document.categories.items():
        stats.per_category[name] = len(links)
        stats.total_links += len(links)
        for link in links:
            if link.added_at is None:
                continue
            if link.added_at >= week_ago:
                stats.recent_7_days += 1
            if link.added_at >= month_ago:
                stats.recent_30_days += 1
            if stats.latest_added is None or link.added_at > stats.latest_added:
                stats.latest_added = link.added_at
    return stats


def parse_link_line(line: str, category: str) -> Optional[Link]:
    match = LINK_PATTERN.match(line)
    if not match:
        return None
    title, url, description, date_str = match.groups()
    link = Link(
        title=title.strip(),
        url=url.strip(),
        description=(description or '').strip(),
        category=category,
    )
    if date_str:
        try:
            link.added_at = parse_link_date(date_str)
        except ValueError:
            logger.debug(f"Ignoring bad link date {date_str!r}")
    return link


def parse_links(markdown: str, today: Optional[date] = None) -> LinksDocument:
    document = LinksDocument()
    category = DEFAULT_CATEGORY

    for raw_line in markdown.split('\n'):
        line = raw_line.strip()
        if not line:
            continue

        h1 = H1_PATTERN.match(line)
        if h1:
            document.title = h1.group(1).strip()
            continue

        h2 = H2_PATTERN.match(line)
        if h2:
            category = sanitize_category(h2.group(1))
            document.categories.setdefault(category, [])
            continue

        link = parse_link_line(line, category)
        if link is None:
            continue
        errors = validate_link(link)
        if errors:
            logger.debug(f"Dropping link line {line!r}: {'; '.join(str(e) for e in errors)}")
            continue
        document.add_link(link)

    document.stats = calculate_stats(document, today)
    logger.debug(f"Parsed links document: {document.stats.total_links} links in {document.stats.total_categories} categories")
    return document


def links_to_markdown(document: LinksDocument, original: str = '') -> str:
    """
    Serialize a links document, keeping the frontmatter and title of the
    original text. Without original frontmatter the result is marked with
    `layout: links` so it still renders as a links page. Empty categories are
    not written.
    """
    frontmatter = extract_frontmatter(original) if has_frontmatter(original) else None
    _, body, _ = parse_frontmatter(original)
    parts: List[str] = []

    title = document.title
    if not title:
        for line in body.split('\n'):
            if line.strip().startswith('# '):
                title = line.strip()[2:].strip()
                break
    if title:
        parts.append(f'# {title}')
        parts.append('')

    for category, links in document.categories.items():
        if not links:
            continue
        parts.append(f'## {category}')
        for link in links:
            entry = f'- [{link.title}]({link.url})'
            if link.description:
                entry += f' - {link.description}'
            if link.added_at:
                entry += f' | {link.added_at.isoformat()}'
            parts.append(entry)
        parts.append('')

    text = '\n'.join(parts).rstrip('\n') + '\n'
    if frontmatter is None:
        return add_frontmatter(text, {'layout': LAYOUT_LINKS})
    header = f'---\n{frontmatter}\n---\n' if frontmatter else '---\n---\n'
    return f'{header}\n{text}'


def links_to_dict(document: LinksDocument) -> Dict[str, Any]:
    def link_dict(link: Link) -> Dict[str, Any]:
        return {
            'title': link.title,
            'url': link.url,
            'description': link.description,
            'category': link.category,
            'added_at': link.added_at.isoformat() if link.added_at else None,
        }

    stats = document.stats
    return {
        'title': document.title,
        'categories': {name: [link_dict(l) for l in links] for name, links in document.categories.items()},
        'total_links': stats.total_links,
        'stats': {
            'total_links': stats.total_links,
            'total_categories': stats.total_categories,
            'per_category': dict(stats.per_category),
            'recent_7_days': stats.recent_7_days,
            'recent_30_days': stats.recent_30_days,
            'latest_added': stats.latest_added.isoformat() if stats.latest_added else None,
        },
    }


def render_links(markdown: str, today: Optional[date] = None) -> str:
    document = parse_links(markdown, today)
    return render_fragment(LINKS_TEMPLATE, document=document, stats=document.stats)
