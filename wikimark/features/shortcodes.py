from typing import List, Optional
import logging
import re

from wikimark.core.context import RenderContext
from wikimark.features.fences import FenceTracker, FencedBlock, transform_fenced_blocks

logger = logging.getLogger(__name__)

# Collapsible sections: ```details Title ... ```

def render_details(title: str, content: str) -> str:
    # markdown="1" lets md_in_html render the body as markdown
    return (
        '<details class="markdown-details" markdown="1">\n'
        f'<summary>{title}</summary>\n'
        '<div class="details-content" markdown="1">\n'
        '\n'
        f'{content}\n'
        '\n'
        '</div>\n'
        '</details>\n'
    )


def expand_details_blocks(markdown: str, ctx: RenderContext) -> str:
    def replace(block: FencedBlock) -> str:
        if not block.terminated:
            # Leave the author's text visible rather than swallowing the rest of the page
            return block.original_text()
        title = block.info or 'Details'
        return render_details(title, block.content)

    return transform_fenced_blocks(markdown, ('details',), replace)


# Task lists: - [ ] todo / - [x] done

TASK_PATTERN = re.compile(r'^[-*+]\s+\[(\s*|[xX])\]\s+(.*)$')


def indent_level(line: str) -> int:
    """Tabs count one level each, spaces one level per pair; any indent is at least level 1."""
    indent = line[:len(line) - len(line.lstrip())]
    level = indent.count('\t') + indent.count(' ') // 2
    if level == 0 and indent:
        return 1
    return level


def render_task_item(text: str, checked: bool, level: int) -> str:
    indent_attr = f' data-indent-level="{level}"' if level > 0 else ''
    checked_attr = ' checked' if checked else ''
    return (
        f'<li class="task-list-item-container" style="list-style-type: none;"{indent_attr}>'
        f'<span class="task-list-item">'
        f'<input type="checkbox" class="task-checkbox"{checked_attr} disabled> '
        f'<span class="task-text">{text}</span>'
        f'</span></li>'
    )


def _match_task(line: str) -> Optional[re.Match]:
    return TASK_PATTERN.match(line.strip())


def convert_task_lists(markdown: str, ctx: RenderContext) -> str:
    """
    Turn runs of consecutive task lines into one <ul class="task-list">.
    A run ends at the first line that is not a task, blank lines included.
    """
    if '[' not in markdown:
        return markdown

    tracker = FenceTracker()
    out: List[str] = []
    in_run = False

    for line in markdown.split('\n'):
        event = tracker.feed(line)
        match = _match_task(line) if tracker.is_prose(event) else None

        if match is None:
            if in_run:
                out.append('</ul>')
                in_run = False
            out.append(line)
            continue

        if not in_run:
            out.append('<ul class="task-list">')
            in_run = True
        checked = match.group(1).strip().lower() == 'x'
        out.append(render_task_item(match.group(2), checked, indent_level(line)))

    if in_run:
        out.append('</ul>')
    return '\n'.join(out)


# Permalink anchors for headings that carry an explicit {#id}

ANCHORED_HEADING_PATTERN = re.compile(r'^(#{1,6})\s+(.+?)\s+\{#([a-zA-Z0-9-]+)\}\s*$')


def add_heading_anchors(markdown: str, ctx: RenderContext) -> str:
    tracker = FenceTracker()
    out = []
    for line in markdown.split('\n'):
        event = tracker.feed(line)
        match = ANCHORED_HEADING_PATTERN.match(line) if tracker.is_prose(event) else None
        if match is None or 'heading-anchor' in line:
            out.append(line)
            continue
        hashes, text, anchor = match.groups()
        out.append(
            f'{hashes} {text} <a class="heading-anchor" href="#{anchor}" aria-label="Permalink">¶</a> {{#{anchor}}}'
        )
    return '\n'.join(out)
