"""
Kanban boards written as plain markdown:

    #### Sprint 12            <- board
    ##### Todo                <- column
    - [ ] Write docs          <- task
      - [x] Outline           <- nested task (indent level 1)
    ##### Done
    - [x] Ship it

Recognition is line based and strict about contiguity: once a board is open,
any line that is not a column heading, a task or blank closes the board and is
treated as ordinary prose again.

Boards are pulled out behind placeholders before the rest of the document goes
through the preprocessor chain and the core renderer, and are rebuilt from
their parsed fields afterwards. The chain and the post-processors are passed
in by the caller so this module never imports the registry.
"""

from dataclasses import dataclass, field
from enum import Enum, auto
from typing import TYPE_CHECKING, Callable, List, Optional, Union
import html
import logging
import re

from wikimark.core.context import BlockKind, RenderContext
from wikimark.core.errors import RenderError, error_fragment
from wikimark.core.renderer import render_inline, render_markdown
from wikimark.core.templates import render_fragment
from wikimark.features.fences import FenceTracker
from wikimark.features.protected import substitute_placeholder
from wikimark.features.shortcodes import indent_level

if TYPE_CHECKING:
    from wikimark.features.registry import Pipeline

logger = logging.getLogger(__name__)

BOARD_PATTERN = re.compile(r'^#{4}\s+(.+)$')
COLUMN_PATTERN = re.compile(r'^#{5}\s+(.+)$')
TASK_PATTERN = re.compile(r'^[-*+]\s+\[([ xX])\]\s+(.+)$')

BOARD_TEMPLATE = 'kanban_board.html'


@dataclass
class KanbanTask:
    text: str
    checked: bool = False
    indent_level: int = 0
    rendered_html: str = ''


@dataclass
class KanbanColumn:
    title: str
    tasks: List[KanbanTask] = field(default_factory=list)


@dataclass
class KanbanBoard:
    title: str
    columns: List[KanbanColumn] = field(default_factory=list)

    def board_id(self, ordinal: int) -> str:
        """Stable id for client-side drag and drop."""
        if self.title:
            return f"board-{self.title.lower().replace(' ', '-')}-{ordinal}"
        return f"board-{ordinal}"


class KanbanState(Enum):
    OUTSIDE_BOARD = auto()
    IN_BOARD = auto()
    IN_COLUMN = auto()


Segment = Union[str, KanbanBoard]


class KanbanParser:
    """
    Line-fed state machine:

        OUTSIDE_BOARD --H4--> IN_BOARD
        IN_BOARD/IN_COLUMN --H4--> IN_BOARD              (closes the open board first)
        IN_BOARD/IN_COLUMN --H5--> IN_COLUMN             (closes the open column first)
        IN_COLUMN --task--> IN_COLUMN
        IN_BOARD/IN_COLUMN --other non-blank--> OUTSIDE_BOARD  (line is kept as prose)

    Blank lines inside a board are dropped. Headings inside fenced code are
    never treated as boards.
    """

    def __init__(self):
        self.state = KanbanState.OUTSIDE_BOARD
        self.segments: List[Segment] = []
        self._board: Optional[KanbanBoard] = None
        self._column: Optional[KanbanColumn] = None
        self._fences = FenceTracker()

    def feed(self, line: str):
        if self.state is KanbanState.OUTSIDE_BOARD:
            event = self._fences.feed(line)
            if not self._fences.is_prose(event):
                self.segments.append(line)
                return

        board_match = BOARD_PATTERN.match(line)
        if board_match:
            self._close_board()
            self._board = KanbanBoard(board_match.group(1).strip())
            self.state = KanbanState.IN_BOARD
            return

        if self.state is KanbanState.OUTSIDE_BOARD:
            self.segments.append(line)
            return

        column_match = COLUMN_PATTERN.match(line)
        if column_match:
            self._close_column()
            self._column = KanbanColumn(column_match.group(1).strip())
            self.state = KanbanState.IN_COLUMN
            return

        stripped = line.strip()
        if not stripped:
            return

        if self.state is KanbanState.IN_COLUMN:
            task_match = TASK_PATTERN.match(stripped)
            if task_match:
                self._column.tasks.append(KanbanTask(
                    text=task_match.group(2),
                    checked=task_match.group(1) in ('x', 'X'),
                    indent_level=indent_level(line),
                ))
                return

        # Anything else ends the board; this line is prose again
        self._close_board()
        self._fences.feed(line)
        self.segments.append(line)

    def close(self) -> List[Segment]:
        self._close_board()
        return self.segments

    def _close_column(self):
        if self._column is not None:
            self._board.columns.append(self._column)
            self._column = None
        if self.state is KanbanState.IN_COLUMN:
            self.state = KanbanState.IN_BOARD

    def _close_board(self):
        if self._board is None:
            return
        self._close_column()
        self.segments.append(self._board)
        self._board = None
        self.state = KanbanState.OUTSIDE_BOARD


def parse_kanban_segments(markdown: str) -> List[Segment]:
    """The document as an ordered mix of prose lines and boards."""
    parser = KanbanParser()
    for line in markdown.split('\n'):
        parser.feed(line)
    return parser.close()


def parse_kanban(markdown: str) -> List[KanbanBoard]:
    return [s for s in parse_kanban_segments(markdown) if isinstance(s, KanbanBoard)]


def boards_to_markdown(boards: List[KanbanBoard]) -> str:
    """Write boards back out as markdown; parse_kanban reads the result back to the same structure."""
    lines: List[str] = []
    for board in boards:
        if lines:
            lines.append('')
        lines.append(f'#### {board.title}')
        for column in board.columns:
            lines.append(f'##### {column.title}')
            for task in column.tasks:
                mark = 'x' if task.checked else ' '
                lines.append(f"{'  ' * task.indent_level}- [{mark}] {task.text}")
    return '\n'.join(lines) + '\n'


def render_board(board: KanbanBoard, ordinal: int) -> str:
    return render_fragment(BOARD_TEMPLATE, board=board, board_id=board.board_id(ordinal))


def extract_kanban_boards(markdown: str, ctx: RenderContext) -> str:
    """Replace every board with a placeholder; surrounding prose is untouched."""
    out: List[str] = []
    for segment in parse_kanban_segments(markdown):
        if isinstance(segment, KanbanBoard):
            out.append(ctx.protect(BlockKind.KANBAN, boards_to_markdown([segment]), payload=segment))
        else:
            out.append(segment)
    return '\n'.join(out)


def render_task_html(task: KanbanTask, ctx: RenderContext, preprocessors: "Pipeline",
                     postprocessors: "Pipeline", inline_renderer: Callable[[str], str] = render_inline) -> str:
    """A task goes through the same chain as a document body, in its own context."""
    task_ctx = ctx.child()
    try:
        processed = preprocessors.run(task.text, task_ctx)
        rendered = inline_renderer(processed)
        return postprocessors.run(rendered, task_ctx)
    except RenderError as e:
        logger.warning(f"Kanban task failed to render: {e}")
        return error_fragment(str(e), tag='span')


def restore_kanban_boards(html_content: str, ctx: RenderContext, preprocessors: "Pipeline",
                          postprocessors: "Pipeline", inline_renderer: Callable[[str], str] = render_inline) -> str:
    for ordinal, block in enumerate(ctx.blocks(BlockKind.KANBAN)):
        board: KanbanBoard = block.payload
        for column in board.columns:
            for task in column.tasks:
                task.rendered_html = render_task_html(task, ctx, preprocessors, postprocessors, inline_renderer)
        html_content = substitute_placeholder(html_content, block.placeholder, render_board(board, ordinal))
    return html_content


def render_kanban(markdown: str, preprocessors: "Pipeline", postprocessors: "Pipeline",
                  ctx: Optional[RenderContext] = None,
                  renderer: Callable[[str], str] = render_markdown,
                  inline_renderer: Callable[[str], str] = render_inline) -> str:
    """
    Render a kanban-layout document.

    Boards are extracted first, the remaining prose runs through the injected
    preprocessors, the renderer and the post-processors, and finally each board
    is rebuilt with its tasks rendered individually.
    """
    ctx = ctx or RenderContext()
    prose = extract_kanban_boards(markdown, ctx)
    logger.debug(f"Kanban: {len(ctx.blocks(BlockKind.KANBAN))} boards extracted")

    prose = preprocessors.run(prose, ctx)
    try:
        html_content = renderer(prose)
    except RenderError as e:
        logger.error(f"Kanban document failed to render: {e}")
        return error_fragment(str(e))
    html_content = postprocessors.run(html_content, ctx)
    return restore_kanban_boards(html_content, ctx, preprocessors, postprocessors, inline_renderer)


# Fallback rendering without the preprocessor chain

_BASIC_CODE = re.compile(r'`([^`]+)`')
_BASIC_BOLD = re.compile(r'\*\*(.+?)\*\*')
_BASIC_ITALIC = re.compile(r'\*(.+?)\*')
_BASIC_LINK = re.compile(r'\[([^\]]+)\]\(([^)\s]+)\)')


def format_inline_basic(text: str) -> str:
    """Bold, italic, links and code with plain regexes; everything else is escaped."""
    text = html.escape(text, quote=False)
    codes: List[str] = []

    def stash(match):
        codes.append(f'<code>{match.group(1)}</code>')
        return f'\x00{len(codes) - 1}\x00'

    text = _BASIC_CODE.sub(stash, text)
    text = _BASIC_BOLD.sub(r'<strong>\1</strong>', text)
    text = _BASIC_ITALIC.sub(r'<em>\1</em>', text)
    text = _BASIC_LINK.sub(lambda m: f'<a href="{m.group(2).replace(chr(34), "&quot;")}">{m.group(1)}</a>', text)
    return re.sub(r'\x00(\d+)\x00', lambda m: codes[int(m.group(1))], text)


def render_kanban_basic(markdown: str, renderer: Callable[[str], str] = render_markdown) -> str:
    """
    Kanban rendering with no preprocessors: prose goes straight to the
    renderer and tasks use format_inline_basic. Used when the full path fails.
    """
    ctx = RenderContext()
    prose = extract_kanban_boards(markdown, ctx)
    try:
        html_content = renderer(prose)
    except RenderError as e:
        return error_fragment(str(e))
    for ordinal, block in enumerate(ctx.blocks(BlockKind.KANBAN)):
        board: KanbanBoard = block.payload
        for column in board.columns:
            for task in column.tasks:
                task.rendered_html = format_inline_basic(task.text)
        html_content = substitute_placeholder(html_content, block.placeholder, render_board(board, ordinal))
    return html_content
