"""Read-before-write guard for agent tool calls.

Tracks which blocks an external agent has read in the current document so
edit and delete tools can refuse blind edits. Switching documents clears
everything.
"""

from dataclasses import dataclass, field
from typing import Iterable, Optional


@dataclass(frozen=True)
class GuardCheck:
    """Outcome of a single guard check."""

    allowed: bool
    error: Optional[str] = None


@dataclass(frozen=True)
class BatchGuardCheck:
    """Outcome of a batch guard check; errors maps block ID to message."""

    allowed: bool
    errors: dict[str, str] = field(default_factory=dict)


class ReadWriteGuard:
    """State machine enforcing list_blocks -> read_blocks -> edit ordering."""

    def __init__(self) -> None:
        self.document_read = False
        self.read_blocks: set[str] = set()

    def mark_document_read(self) -> None:
        self.document_read = True

    def mark_block_read(self, block_id: str) -> None:
        self.read_blocks.add(block_id)

    def mark_blocks_read(self, block_ids: Iterable[str]) -> None:
        self.read_blocks.update(block_ids)

    def has_read_document(self) -> bool:
        return self.document_read

    def has_read_block(self, block_id: str) -> bool:
        return block_id in self.read_blocks

    def has_read_blocks(self, block_ids: Iterable[str]) -> bool:
        return all(block_id in self.read_blocks for block_id in block_ids)

    def can_edit(self, block_id: str) -> GuardCheck:
        """Editing requires list_blocks on the document and read_blocks on the block."""
        if not self.document_read:
            return GuardCheck(
                allowed=False,
                error="Must call list_blocks before editing. Use list_blocks to see document structure first.",
            )
        if block_id not in self.read_blocks:
            return GuardCheck(
                allowed=False,
                error=(
                    f'Must call read_blocks(["{block_id}"]) before editing. '
                    "Read the block content first to ensure accurate edits."
                ),
            )
        return GuardCheck(allowed=True)

    def can_delete(self, block_id: str) -> GuardCheck:
        return self.can_edit(block_id)

    def can_add(self) -> GuardCheck:
        """Adding only requires list_blocks on the document."""
        if not self.document_read:
            return GuardCheck(
                allowed=False,
                error="Must call list_blocks before adding blocks. Use list_blocks to see document structure first.",
            )
        return GuardCheck(allowed=True)

    def can_edit_blocks(self, block_ids: list[str]) -> BatchGuardCheck:
        return self._check_batch(block_ids, verb="editing")

    def can_delete_blocks(self, block_ids: list[str]) -> BatchGuardCheck:
        return self._check_batch(block_ids, verb="deleting")

    def _check_batch(self, block_ids: list[str], verb: str) -> BatchGuardCheck:
        if not self.document_read:
            errors = {block_id: f"Must call list_blocks before {verb}." for block_id in block_ids}
            return BatchGuardCheck(allowed=False, errors=errors)

        errors = {
            block_id: "Must call read_blocks first."
            for block_id in block_ids
            if block_id not in self.read_blocks
        }
        return BatchGuardCheck(allowed=not errors, errors=errors)

    def reset(self) -> None:
        """Forget all reads (manual reset)."""
        self.document_read = False
        self.read_blocks.clear()

    def on_document_change(self) -> None:
        """Forget all reads because the active document changed."""
        self.reset()
