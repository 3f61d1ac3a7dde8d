import unittest
import sys
from pathlib import Path

from bs4 import BeautifulSoup

# Add project root to sys.path
sys.path.insert(0, str(Path(__file__).resolve().parent.parent))

from wikimark.core.context import BlockKind, RenderContext
from wikimark.core.errors import RenderError
from wikimark.features.registry import build_default_chain, build_postprocessors
from wikimark.layouts.kanban import (
    KanbanBoard, KanbanParser, KanbanState, KanbanTask, boards_to_markdown, extract_kanban_boards,
    format_inline_basic, parse_kanban, parse_kanban_segments, render_kanban, render_kanban_basic,
    render_task_html,
)

BOARD = "#### Board\n##### Todo\n- [ ] Task 1\n- [x] Task 2"

SPRINT = """Intro paragraph.

#### Sprint One
##### Todo
- [ ] Write **docs**
  - [x] Outline
##### Done
- [x] Ship it

#### Backlog
##### Ideas
- [ ] Dark mode
"""


class TestKanbanParser(unittest.TestCase):
    def test_basic_board(self):
        boards = parse_kanban(BOARD)
        self.assertEqual(len(boards), 1)
        board = boards[0]
        self.assertEqual(board.title, "Board")
        self.assertEqual([c.title for c in board.columns], ["Todo"])
        tasks = board.columns[0].tasks
        self.assertEqual([t.text for t in tasks], ["Task 1", "Task 2"])
        self.assertEqual([t.checked for t in tasks], [False, True])

    def test_state_transitions(self):
        parser = KanbanParser()
        self.assertEqual(parser.state, KanbanState.OUTSIDE_BOARD)
        parser.feed("#### Board")
        self.assertEqual(parser.state, KanbanState.IN_BOARD)
        parser.feed("##### Column")
        self.assertEqual(parser.state, KanbanState.IN_COLUMN)
        parser.feed("- [ ] task")
        self.assertEqual(parser.state, KanbanState.IN_COLUMN)
        parser.feed("")
        self.assertEqual(parser.state, KanbanState.IN_COLUMN)
        parser.feed("Some prose")
        self.assertEqual(parser.state, KanbanState.OUTSIDE_BOARD)
        segments = parser.close()
        self.assertIsInstance(segments[0], KanbanBoard)
        self.assertEqual(segments[1], "Some prose")

    def test_multiple_boards_and_nesting(self):
        boards = parse_kanban(SPRINT)
        self.assertEqual([b.title for b in boards], ["Sprint One", "Backlog"])
        todo, done = boards[0].columns
        self.assertEqual([t.indent_level for t in todo.tasks], [0, 1])
        self.assertEqual(done.tasks[0].text, "Ship it")
        self.assertEqual(boards[1].columns[0].tasks[0].text, "Dark mode")

    def test_prose_ends_board(self):
        segments = parse_kanban_segments("#### B\n##### C\n- [ ] t\nafter\n- [ ] loose task")
        self.assertEqual(len(segments), 3)
        self.assertEqual(segments[1:], ["after", "- [ ] loose task"])
        self.assertEqual(len(segments[0].columns[0].tasks), 1)

    def test_headings_in_fences_are_not_boards(self):
        self.assertEqual(parse_kanban("```\n#### Not a board\n##### Nope\n```"), [])

    def test_board_ids(self):
        self.assertEqual(KanbanBoard("Sprint One").board_id(0), "board-sprint-one-0")
        self.assertEqual(KanbanBoard("").board_id(2), "board-2")

    def test_round_trip(self):
        boards = parse_kanban(SPRINT)
        self.assertEqual(parse_kanban(boards_to_markdown(boards)), boards)


class TestKanbanRendering(unittest.TestCase):
    def setUp(self):
        self.pre = build_default_chain()
        self.post = build_postprocessors()

    def test_extract_leaves_prose(self):
        ctx = RenderContext()
        result = extract_kanban_boards("Intro\n" + BOARD + "\nOutro", ctx)
        self.assertEqual(result, "Intro\n<!-- KANBAN_BLOCK_0 -->\nOutro")
        self.assertEqual(ctx.blocks(BlockKind.KANBAN)[0].payload.title, "Board")

    def test_render_preserves_structure(self):
        html = render_kanban(SPRINT, self.pre, self.post)
        soup = BeautifulSoup(html, 'html.parser')

        containers = soup.select('.kanban-container')
        self.assertEqual([c['data-board-id'] for c in containers], ["board-sprint-one-0", "board-backlog-1"])

        first = containers[0]
        self.assertEqual([s.get_text() for s in first.select('.column-title')], ["Todo", "Done"])
        checkboxes = first.select('input.task-checkbox')
        self.assertEqual([cb.has_attr('checked') for cb in checkboxes], [False, True, True])
        self.assertEqual(first.select('.task-text strong')[0].get_text(), "docs")
        self.assertEqual(first.select('li')[1]['data-indent-level'], "1")

        self.assertIn("Intro paragraph.", html)
        self.assertNotIn("KANBAN_BLOCK", html)

    def test_tasks_run_through_the_chain(self):
        html = render_kanban("#### B\n##### C\n- [ ] ==urgent== :smile:", self.pre, self.post)
        self.assertIn("<mark>urgent</mark>", html)
        self.assertIn("\U0001F604", html)

    def test_task_render_error_is_inline(self):
        def failing(text):
            raise RenderError("boom")

        task = KanbanTask("broken")
        result = render_task_html(task, RenderContext(), self.pre, self.post, inline_renderer=failing)
        self.assertEqual(result, '<span class="render-error">Error rendering markdown: boom</span>')

    def test_basic_rendering(self):
        html = render_kanban_basic(BOARD)
        self.assertIn('data-board-id="board-board-0"', html)
        self.assertIn("Task 2", html)

    def test_format_inline_basic(self):
        self.assertEqual(
            format_inline_basic("**b** *i* `c<d` [l](http://x)"),
            '<strong>b</strong> <em>i</em> <code>c&lt;d</code> <a href="http://x">l</a>',
        )


if __name__ == '__main__':
    unittest.main()
