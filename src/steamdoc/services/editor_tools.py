"""Agent-facing editor tools.

Plain-Python tool functions an external tool-calling loop can expose to a
language model. Every tool returns a string (plain text or JSON) that is fed
back to the model verbatim; problems are reported as "Error: ..." strings
rather than raised, so the model can correct itself.

Edits never touch the document directly. Each edit, add or delete becomes a
PendingDiff in the session's queue for the user to accept or reject.
"""

import json
from typing import Any, Optional, Union

import structlog
from pydantic import BaseModel, Field, ValidationError, model_validator

from steamdoc.blocks.index import BlockIndex
from steamdoc.models.block import BLOCK_TYPES, Block, BlockType, check_heading_level
from steamdoc.models.pending_diff import START_SENTINEL, PendingDiff, encode_add_payload
from steamdoc.services.session import EditorSession
from steamdoc.utils.ids import generate_block_id, generate_diff_id

logger = structlog.get_logger()

CONTEXT_PREVIEW_LENGTH = 30
MESSAGE_PREVIEW_LENGTH = 50


class BlockEdit(BaseModel):
    """One entry of an edit_blocks call."""

    block_id: str = Field(..., description="Block ID")
    new_content: str = Field(..., description="New content")
    reason: str = Field(default="", description="Brief reason")


class BlockAddition(BaseModel):
    """One entry of an add_blocks call."""

    after_block_id: Optional[str] = Field(
        default=None,
        description="Block to insert after (existing or pending new block), or None for the start"
    )
    type: BlockType = Field(..., description="Type of the new block")
    content: str = Field(..., description="Content of the new block (must not be empty)")
    level: Optional[int] = Field(default=None, ge=0, description="Heading level or list nesting depth")
    reason: str = Field(default="", description="Why the block is being added")

    @model_validator(mode="after")
    def heading_level_in_range(self) -> "BlockAddition":
        check_heading_level(self.type, self.level)
        return self


class BlockDeletion(BaseModel):
    """One entry of a delete_blocks call."""

    block_id: str = Field(..., description="Block ID")
    reason: str = Field(default="", description="Why the block is being deleted")


def _to_json(data: Any) -> str:
    return json.dumps(data, indent=2, ensure_ascii=False)


def _validation_message(e: ValidationError) -> str:
    return "; ".join(f"{'.'.join(str(p) for p in err['loc'])}: {err['msg']}" for err in e.errors())


class EditorTools:
    """
    Tool surface bound to one EditorSession.

    The expected call sequence is list_blocks, then read_blocks, then edits;
    the session's ReadWriteGuard rejects edits and deletes of blocks that
    were not read first.
    """

    def __init__(self, session: EditorSession):
        self.session = session

    @property
    def max_batch_size(self) -> int:
        return self.session.config.agent.max_batch_size

    def _index(self) -> BlockIndex:
        return BlockIndex(self.session.active_blocks, preview_length=self.session.config.editor.preview_length)

    def _batch(self, tool: str, items: list) -> list:
        if len(items) > self.max_batch_size:
            logger.warning("tool_batch_truncated", tool=tool, requested=len(items), limit=self.max_batch_size)
        return list(items[: self.max_batch_size])

    def _known_anchors(self, index: BlockIndex, pending: list[PendingDiff]) -> set[str]:
        """IDs an add may anchor on: existing blocks plus blocks pending creation."""
        anchors = {block.id for block in index.get_blocks()}
        anchors.update(diff.new_block_id for diff in pending if diff.action == "add" and diff.new_block_id)
        return anchors

    def _propose(self, diff: PendingDiff) -> PendingDiff:
        queued = self.session.propose_diff(diff)
        logger.info("tool_diff_created", diff_id=diff.id, action=diff.action, block_id=diff.block_id)
        return queued

    # Read tools

    def list_blocks(self) -> str:
        """List every block with ID, type and preview. Marks the document as read."""
        if self.session.documents.get_active_document() is None:
            return "Error: No active document"

        self.session.guard.mark_document_read()
        summaries = self._index().get_block_index()
        formatted = "\n".join(f"[{s.id}] ({s.type}) {s.preview}" for s in summaries)
        return f"Document has {len(summaries)} blocks:\n{formatted}"

    def read_block(self, block_id: str) -> str:
        """Read one block with its neighbours, showing pending edits."""
        index = self._index()
        result = index.get_with_context(block_id, self.session.config.agent.context_size)
        if result.block is None:
            return f'Error: Block "{block_id}" not found'

        guard = self.session.guard
        guard.mark_block_read(block_id)
        guard.mark_blocks_read(b.id for b in result.before + result.after)

        content = index.get_effective_content(block_id, self.session.pending_diffs)
        if content is None:
            content = result.block.content

        output = f"Block {block_id} ({result.block.type}):\n{content}"
        if result.before:
            before = "\n".join(self._context_line(b) for b in result.before)
            output = f"Context before:\n{before}\n\n{output}"
        if result.after:
            after = "\n".join(self._context_line(b) for b in result.after)
            output += f"\n\nContext after:\n{after}"
        return output

    @staticmethod
    def _context_line(block: Block) -> str:
        return f"[{block.id}] {block.content[:CONTEXT_PREVIEW_LENGTH]}..."

    def read_blocks(self, block_ids: list[str], with_context: bool = False) -> str:
        """Read several blocks at once. Returns JSON {"blocks": [...]}."""
        if not block_ids:
            return "Error: block_ids must not be empty"

        ids = self._batch("read_blocks", block_ids)
        index = self._index()
        pending = self.session.pending_diffs
        guard = self.session.guard
        guard.mark_document_read()
        guard.mark_blocks_read(ids)

        blocks = []
        for block_id in ids:
            result = index.get_with_context(block_id, self.session.config.agent.context_size)
            if result.block is None:
                blocks.append({"id": block_id, "ok": False, "error": "Block not found"})
                continue

            content = index.get_effective_content(block_id, pending)
            entry: dict[str, Any] = {
                "id": block_id,
                "ok": True,
                "type": result.block.type,
                "content": content if content is not None else result.block.content,
            }
            if with_context:
                guard.mark_blocks_read(b.id for b in result.before + result.after)
                entry["context_before"] = [
                    {"id": b.id, "preview": b.content[:CONTEXT_PREVIEW_LENGTH]} for b in result.before
                ]
                entry["context_after"] = [
                    {"id": b.id, "preview": b.content[:CONTEXT_PREVIEW_LENGTH]} for b in result.after
                ]
            blocks.append(entry)

        return _to_json({"blocks": blocks})

    # Edit tools

    def edit_block(self, block_id: str, new_content: str, reason: str = "") -> str:
        """Propose replacing one block's content."""
        check = self.session.guard.can_edit(block_id)
        if not check.allowed:
            return f"Error: {check.error}"

        old_content = self._index().get_effective_content(block_id, self.session.pending_diffs)
        if old_content is None:
            return f'Error: Block "{block_id}" not found or deleted'

        diff = self._propose(
            PendingDiff(
                id=generate_diff_id(),
                block_id=block_id,
                action="update",
                old_content=old_content,
                new_content=new_content,
                reason=reason,
            )
        )
        return (
            f"Created pending edit for block {block_id}. Diff ID: {diff.id}\n"
            f"Old: {old_content[:MESSAGE_PREVIEW_LENGTH]}...\n"
            f"New: {new_content[:MESSAGE_PREVIEW_LENGTH]}...\n"
            f"Reason: {reason}\n\n"
            "User must confirm this change."
        )

    def edit_blocks(self, edits: list[Union[BlockEdit, dict]]) -> str:
        """Propose several edits at once. Returns JSON {"results": [...]}."""
        if not edits:
            return "Error: edits must not be empty"

        index = self._index()
        results = []
        for raw in self._batch("edit_blocks", edits):
            try:
                edit = BlockEdit.model_validate(raw)
            except ValidationError as e:
                results.append({"block_id": None, "ok": False, "error": _validation_message(e)})
                continue

            check = self.session.guard.can_edit(edit.block_id)
            if not check.allowed:
                results.append({"block_id": edit.block_id, "ok": False, "error": check.error})
                continue

            old_content = index.get_effective_content(edit.block_id, self.session.pending_diffs)
            if old_content is None:
                results.append({"block_id": edit.block_id, "ok": False, "error": "Block not found or deleted"})
                continue

            diff = self._propose(
                PendingDiff(
                    id=generate_diff_id(),
                    block_id=edit.block_id,
                    action="update",
                    old_content=old_content,
                    new_content=edit.new_content,
                    reason=edit.reason,
                )
            )
            results.append({"block_id": edit.block_id, "ok": True, "diff_id": diff.id})

        return _to_json({"results": results})

    # Add tools

    def add_block(
        self,
        after_block_id: Optional[str],
        block_type: str,
        content: str,
        level: Optional[int] = None,
        reason: str = "",
    ) -> str:
        """Propose inserting a block after another one (None inserts at the start)."""
        if not content.strip():
            return "Error: Content cannot be empty or whitespace-only. Please provide meaningful content."
        if block_type not in BLOCK_TYPES:
            return f"Error: Unknown block type \"{block_type}\". Expected one of: {', '.join(BLOCK_TYPES)}"
        try:
            check_heading_level(block_type, level)
        except ValueError as e:
            return f"Error: {e}"

        check = self.session.guard.can_add()
        if not check.allowed:
            return f"Error: {check.error}"

        if after_block_id and after_block_id not in self._known_anchors(self._index(), self.session.pending_diffs):
            return f'Error: Block "{after_block_id}" not found'

        diff = self._propose(self._add_diff(after_block_id, block_type, content, level, reason))
        return (
            f"Created pending add after {after_block_id or 'start'}. Diff ID: {diff.id}\n"
            f"New block ID: {diff.new_block_id}\n"
            f"Type: {block_type}\n"
            f"Content: {content[:MESSAGE_PREVIEW_LENGTH]}...\n"
            f"Reason: {reason}\n\n"
            "User must confirm this change."
        )

    def add_blocks(self, additions: list[Union[BlockAddition, dict]]) -> str:
        """
        Propose several inserts at once. Returns JSON {"results": [...]}.

        Each result carries the pre-allocated new_block_id, and later entries
        in the same call may use an earlier entry's new_block_id as their
        after_block_id to build a sequence of blocks.
        """
        if not additions:
            return "Error: additions must not be empty"

        batch = self._batch("add_blocks", additions)
        check = self.session.guard.can_add()
        if not check.allowed:
            return _to_json({"results": [{"ok": False, "error": check.error} for _ in batch]})

        anchors = self._known_anchors(self._index(), self.session.pending_diffs)
        results = []
        for raw in batch:
            try:
                addition = BlockAddition.model_validate(raw)
            except ValidationError as e:
                results.append({"ok": False, "error": _validation_message(e)})
                continue

            if not addition.content.strip():
                results.append(
                    {"after_block_id": addition.after_block_id, "ok": False, "error": "Content cannot be empty"}
                )
                continue

            if addition.after_block_id and addition.after_block_id not in anchors:
                results.append(
                    {"after_block_id": addition.after_block_id, "ok": False, "error": "Anchor block not found"}
                )
                continue

            diff = self._propose(
                self._add_diff(
                    addition.after_block_id, addition.type, addition.content, addition.level, addition.reason
                )
            )
            anchors.add(diff.new_block_id)
            results.append(
                {
                    "after_block_id": addition.after_block_id,
                    "ok": True,
                    "diff_id": diff.id,
                    "new_block_id": diff.new_block_id,
                }
            )

        return _to_json({"results": results})

    @staticmethod
    def _add_diff(
        after_block_id: Optional[str],
        block_type: BlockType,
        content: str,
        level: Optional[int],
        reason: str,
    ) -> PendingDiff:
        return PendingDiff(
            id=generate_diff_id(),
            block_id=after_block_id or START_SENTINEL,
            action="add",
            old_content="",
            new_content=encode_add_payload(block_type, content.strip(), level),
            reason=reason,
            new_block_id=generate_block_id(),
        )

    # Delete tools

    def delete_block(self, block_id: str, reason: str = "") -> str:
        """Propose deleting one block."""
        check = self.session.guard.can_delete(block_id)
        if not check.allowed:
            return f"Error: {check.error}"

        block = self._index().get_by_id(block_id)
        if block is None:
            return f'Error: Block "{block_id}" not found'

        diff = self._propose(
            PendingDiff(
                id=generate_diff_id(),
                block_id=block_id,
                action="delete",
                old_content=block.content,
                new_content="",
                reason=reason,
            )
        )
        return (
            f"Created pending delete for block {block_id}. Diff ID: {diff.id}\n"
            f"Content to delete: {block.content[:MESSAGE_PREVIEW_LENGTH]}...\n"
            f"Reason: {reason}\n\n"
            "User must confirm this change."
        )

    def delete_blocks(self, deletions: list[Union[BlockDeletion, dict]]) -> str:
        """Propose several deletions at once. Returns JSON {"results": [...]}."""
        if not deletions:
            return "Error: deletions must not be empty"

        parsed: list[BlockDeletion] = []
        results = []
        for raw in self._batch("delete_blocks", deletions):
            try:
                parsed.append(BlockDeletion.model_validate(raw))
            except ValidationError as e:
                results.append({"block_id": None, "ok": False, "error": _validation_message(e)})

        check = self.session.guard.can_delete_blocks([d.block_id for d in parsed])
        index = self._index()
        for deletion in parsed:
            if deletion.block_id in check.errors:
                results.append({"block_id": deletion.block_id, "ok": False, "error": check.errors[deletion.block_id]})
                continue

            block = index.get_by_id(deletion.block_id)
            if block is None:
                results.append({"block_id": deletion.block_id, "ok": False, "error": "Block not found"})
                continue

            diff = self._propose(
                PendingDiff(
                    id=generate_diff_id(),
                    block_id=deletion.block_id,
                    action="delete",
                    old_content=block.content,
                    new_content="",
                    reason=deletion.reason,
                )
            )
            results.append({"block_id": deletion.block_id, "ok": True, "diff_id": diff.id})

        return _to_json({"results": results})

    # Document tools

    def list_documents(self) -> str:
        """List open documents, marking the active one and unsaved changes."""
        documents = self.session.documents.get_all_documents()
        if not documents:
            return "No documents open."

        active_id = self.session.active_doc_id
        lines = []
        for doc in documents:
            marker = "→" if doc.id == active_id else " "
            dirty = "*" if doc.is_dirty else ""
            lines.append(f"{marker} [{doc.id}] {doc.name}{dirty} ({doc.type}, {len(doc.blocks)} blocks)")

        return f"Documents ({len(documents)}):\n" + "\n".join(lines) + "\n\n→ = active document, * = unsaved changes"

    def switch_document(self, doc_id: str) -> str:
        """Switch the active document. Clears everything the guard recorded."""
        document = self.session.documents.get_document(doc_id)
        if document is None:
            available = ", ".join(d.id for d in self.session.documents.get_all_documents())
            return f'Error: Document "{doc_id}" not found. Available: {available}'

        self.session.switch_document(doc_id)
        return (
            f"Switched to: {document.name} ({document.type}, {len(document.blocks)} blocks)\n"
            "You can now use list_blocks, read_blocks, edit_blocks on this document."
        )
