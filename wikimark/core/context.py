from enum import Enum
from typing import Any, Dict, List, Optional
import logging

logger = logging.getLogger(__name__)


class BlockKind(Enum):
    MERMAID = "mermaid"
    DIRECTION = "direction"
    KANBAN = "kanban"


class ProtectedBlock:
    """
    Content pulled out of the markdown stream before the core renderer runs.
    The placeholder is an HTML comment, so the renderer passes it through untouched.
    """
    def __init__(self, block_id: int, kind: BlockKind, raw_content: str, info: str = "", payload: Any = None):
        self.id = block_id
        self.kind = kind
        self.raw_content = raw_content
        self.info = info
        self.payload = payload

    @property
    def placeholder(self) -> str:
        return f"<!-- {self.kind.name}_BLOCK_{self.id} -->"

    def __repr__(self):
        return f"ProtectedBlock({self.placeholder!r}, {len(self.raw_content)} chars)"


class RenderContext:
    """
    Per-document state threaded through every preprocessor and restorer.

    Holds the protected-block table and the counter that numbers placeholders.
    A context belongs to exactly one render call; concurrent renders each get their own.
    """
    def __init__(self, doc_path: str = "", stats_provider: Optional[Any] = None):
        self.doc_path = doc_path or ""
        self.stats_provider = stats_provider
        self._blocks: Dict[str, ProtectedBlock] = {}
        self._counter = 0

    def reset(self):
        """Clear the block table and restart numbering."""
        self._blocks = {}
        self._counter = 0

    def protect(self, kind: BlockKind, raw_content: str, info: str = "", payload: Any = None) -> str:
        """Store a block and return the placeholder that stands in for it."""
        block = ProtectedBlock(self._counter, kind, raw_content, info=info, payload=payload)
        self._counter += 1
        self._blocks[block.placeholder] = block
        logger.debug(f"Protected {kind.value} block as {block.placeholder}")
        return block.placeholder

    def blocks(self, kind: Optional[BlockKind] = None) -> List[ProtectedBlock]:
        """Stored blocks in insertion order, optionally filtered by kind."""
        return [b for b in self._blocks.values() if kind is None or b.kind == kind]

    def lookup(self, placeholder: str) -> Optional[ProtectedBlock]:
        return self._blocks.get(placeholder)

    def child(self) -> "RenderContext":
        """A fresh context for rendering a fragment of this document (e.g. one kanban task)."""
        return RenderContext(self.doc_path, self.stats_provider)

    def __len__(self):
        return len(self._blocks)
