"""
Fence scanning shared by every line-oriented preprocessor.

FenceTracker is a small state machine over the lines of a document:

    OUTSIDE --fence--> FENCED          (OPEN)
    FENCED  --bare fence, same style as innermost, last level--> OUTSIDE   (CLOSE)
    FENCED  --bare fence, same style as innermost--> FENCED                (NESTED_CLOSE)
    FENCED  --fence with info string, or other style--> FENCED             (NESTED_OPEN)

Backtick and tilde fences nest independently: a ``` line inside a ~~~ block
opens a nested level instead of closing anything, and only a bare fence of the
innermost style closes a level.
"""

from enum import Enum, auto
from typing import Callable, Iterable, List, Optional, Tuple
import logging

logger = logging.getLogger(__name__)

FENCE_MARKERS = ('```', '~~~')


class FenceState(Enum):
    OUTSIDE = auto()
    FENCED = auto()


class FenceEvent(Enum):
    NONE = auto()
    OPEN = auto()
    NESTED_OPEN = auto()
    NESTED_CLOSE = auto()
    CLOSE = auto()


def parse_fence(line: str) -> Optional[Tuple[str, str]]:
    """Return (style, info) for a fence line, None otherwise. Style is '`' or '~'."""
    stripped = line.strip()
    for marker in FENCE_MARKERS:
        if stripped.startswith(marker):
            return marker[0], stripped.lstrip(marker[0]).strip()
    return None


def split_info(info: str) -> Tuple[str, str]:
    """Split a fence info string into (keyword, remainder)."""
    parts = info.split(None, 1)
    if not parts:
        return '', ''
    keyword = parts[0].lower()
    return keyword, parts[1].strip() if len(parts) > 1 else ''


class FenceTracker:
    def __init__(self):
        self._stack: List[str] = []

    @property
    def state(self) -> FenceState:
        return FenceState.FENCED if self._stack else FenceState.OUTSIDE

    @property
    def depth(self) -> int:
        return len(self._stack)

    def feed(self, line: str) -> FenceEvent:
        fence = parse_fence(line)
        if fence is None:
            return FenceEvent.NONE
        style, info = fence

        if not self._stack:
            self._stack.append(style)
            return FenceEvent.OPEN

        if self._stack[-1] == style and not info:
            self._stack.pop()
            return FenceEvent.NESTED_CLOSE if self._stack else FenceEvent.CLOSE

        self._stack.append(style)
        return FenceEvent.NESTED_OPEN

    def is_prose(self, event: FenceEvent) -> bool:
        """True when the line just fed is ordinary text outside any fence."""
        return event is FenceEvent.NONE and self.state is FenceState.OUTSIDE


def map_prose_lines(markdown: str, transform: Callable[[str], str]) -> str:
    """Apply transform to every line outside fenced code; fence lines and their contents pass through."""
    tracker = FenceTracker()
    out = []
    for line in markdown.split('\n'):
        event = tracker.feed(line)
        out.append(transform(line) if tracker.is_prose(event) else line)
    return '\n'.join(out)


def map_outside_code_spans(line: str, transform: Callable[[str], str]) -> str:
    """
    Split a line on backticks and transform only the even-indexed segments,
    which are the ones outside inline code.
    """
    if '`' not in line:
        return transform(line)
    segments = line.split('`')
    return '`'.join(transform(seg) if i % 2 == 0 else seg for i, seg in enumerate(segments))


class FencedBlock:
    """A keyword-tagged fenced block collected by transform_fenced_blocks."""
    def __init__(self, keyword: str, info: str, opening: str):
        self.keyword = keyword
        self.info = info
        self.opening = opening
        self.lines: List[str] = []
        self.closing: Optional[str] = None

    @property
    def terminated(self) -> bool:
        return self.closing is not None

    @property
    def content(self) -> str:
        return '\n'.join(self.lines)

    def original_text(self) -> str:
        """The block exactly as it appeared in the source."""
        parts = [self.opening] + self.lines
        if self.closing is not None:
            parts.append(self.closing)
        return '\n'.join(parts)


BlockHandler = Callable[[FencedBlock], Optional[str]]


def transform_fenced_blocks(markdown: str, keywords: Iterable[str], handler: BlockHandler) -> str:
    """
    Replace top-level fenced blocks whose first info word is one of keywords.

    The handler receives the collected block and returns its replacement, or
    None to drop the block entirely. A block still open at end of input is
    handed over with terminated == False.
    """
    keywords = frozenset(k.lower() for k in keywords)
    tracker = FenceTracker()
    out: List[str] = []
    block: Optional[FencedBlock] = None

    for line in markdown.split('\n'):
        event = tracker.feed(line)

        if block is None:
            if event is FenceEvent.OPEN:
                keyword, rest = split_info(parse_fence(line)[1])
                if keyword in keywords:
                    block = FencedBlock(keyword, rest, line)
                    continue
            out.append(line)
            continue

        if event is FenceEvent.CLOSE:
            block.closing = line
            replacement = handler(block)
            if replacement is not None:
                out.append(replacement)
            block = None
            continue

        block.lines.append(line)

    if block is not None:
        logger.debug(f"Unterminated '{block.keyword}' block at end of document")
        replacement = handler(block)
        if replacement is not None:
            out.append(replacement)

    return '\n'.join(out)
