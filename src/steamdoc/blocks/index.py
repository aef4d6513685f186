"""In-memory index over a document's blocks.

Provides lookups by ID, order and type, keyword search, neighbour context,
and an overlay that shows a block's content as it would be once the
pending diffs against it are applied.
"""

from dataclasses import dataclass, field
from typing import Optional

from steamdoc.models.block import Block, BlockSummary, BlockType, sort_blocks
from steamdoc.models.pending_diff import PendingDiff


@dataclass
class BlockContext:
    """A block with its neighbours.

    Attributes:
        block: The requested block (None when not found)
        before: Up to context_size blocks preceding it
        after: Up to context_size blocks following it
    """

    block: Optional[Block]
    before: list[Block] = field(default_factory=list)
    after: list[Block] = field(default_factory=list)


class BlockIndex:
    """Lookup structure over one document's blocks."""

    def __init__(self, blocks: Optional[list[Block]] = None, preview_length: int = 50):
        self.preview_length = preview_length
        self._by_id: dict[str, Block] = {}
        self._ordered: list[Block] = []
        self.set_blocks(blocks or [])

    def set_blocks(self, blocks: list[Block]) -> None:
        """Replace the indexed blocks."""
        self._ordered = sort_blocks(blocks)
        self._by_id = {block.id: block for block in self._ordered}

    def get_blocks(self) -> list[Block]:
        return list(self._ordered)

    def get_block_index(self) -> list[BlockSummary]:
        """Summaries of all blocks in order, with truncated previews."""
        return [
            BlockSummary(
                id=block.id,
                type=block.type,
                preview=block.preview(self.preview_length),
                order=block.order,
            )
            for block in self._ordered
        ]

    def get_by_id(self, block_id: str) -> Optional[Block]:
        return self._by_id.get(block_id)

    def get_by_ids(self, block_ids: list[str]) -> list[Block]:
        """Blocks for the given IDs in request order; unknown IDs are skipped."""
        return [self._by_id[block_id] for block_id in block_ids if block_id in self._by_id]

    def get_effective_content(self, block_id: str, pending_diffs: list[PendingDiff]) -> Optional[str]:
        """Content of a block with pending diffs overlaid.

        The last pending diff targeting the block wins: an update supplies
        its new content, a delete hides the block (None). Adds anchored on
        the block do not affect its content.

        Args:
            block_id: Block to look up
            pending_diffs: Queue of diffs not yet applied, in queue order

        Returns:
            Effective content, or None if the block is unknown or pending deletion
        """
        for diff in reversed(pending_diffs):
            if diff.block_id != block_id:
                continue
            if diff.action == "delete":
                return None
            if diff.action == "update":
                return diff.new_content

        block = self._by_id.get(block_id)
        return block.content if block else None

    def get_effective_block(self, block_id: str, pending_diffs: list[PendingDiff]) -> Optional[Block]:
        """Copy of the block with its effective content, or None if unknown/deleted."""
        block = self._by_id.get(block_id)
        if block is None:
            return None

        content = self.get_effective_content(block_id, pending_diffs)
        if content is None:
            return None
        return block.model_copy(update={"content": content})

    def search(self, keyword: str) -> list[Block]:
        """Case-insensitive substring search over block content."""
        needle = keyword.lower()
        return [block for block in self._ordered if needle in block.content.lower()]

    def get_with_context(self, block_id: str, context_size: int = 1) -> BlockContext:
        """Return a block together with up to context_size neighbours on each side."""
        block = self._by_id.get(block_id)
        if block is None:
            return BlockContext(block=None)

        idx = self._ordered.index(block)
        before = self._ordered[max(0, idx - context_size):idx]
        after = self._ordered[idx + 1:idx + 1 + context_size]
        return BlockContext(block=block, before=before, after=after)

    def get_by_order(self, order: int) -> Optional[Block]:
        if 0 <= order < len(self._ordered):
            return self._ordered[order]
        return None

    def get_by_type(self, block_type: BlockType) -> list[Block]:
        return [block for block in self._ordered if block.type == block_type]

    def __len__(self) -> int:
        return len(self._by_id)

    def __contains__(self, block_id: object) -> bool:
        return block_id in self._by_id
