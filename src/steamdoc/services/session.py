"""Editor session: documents, pending diffs, read guard and undo history.

An EditorSession is the caller-owned context for one editing session. It
ties a DocumentManager to a per-document PendingDiffQueue, resets the
ReadWriteGuard whenever the active document changes, and keeps bounded
undo/redo stacks of block snapshots per document.

Every committed change updates both the document's blocks and its markdown
content, so content stays the source of truth.
"""

from collections import deque
from typing import Optional

import structlog

from steamdoc.blocks.operations import add_block, delete_block, find_block, update_block_content
from steamdoc.models.block import Block, BlockType
from steamdoc.models.config import Config
from steamdoc.models.document import EditorDocument
from steamdoc.models.pending_diff import PendingDiff
from steamdoc.services.apply_engine import ApplyResult, apply_diff_to_blocks, apply_diffs_to_blocks
from steamdoc.services.diff_queue import PendingDiffQueue
from steamdoc.services.document_manager import DocumentManager
from steamdoc.services.exceptions import DocumentNotFoundError
from steamdoc.services.guard import ReadWriteGuard

logger = structlog.get_logger()


class EditorSession:
    """
    Editing context owning documents, diff queues, guard and history.

    Example:
        >>> session = EditorSession()
        >>> doc_id = session.documents.add_document(name="Lesson", content="Old text")
        >>> block_id = session.active_blocks[0].id
        >>> session.propose_diff(PendingDiff(id="d1", block_id=block_id, action="update", new_content="New"))
        >>> session.apply_all_diffs().updated_lesson
        'New'
    """

    def __init__(
        self,
        documents: Optional[DocumentManager] = None,
        config: Optional[Config] = None,
        guard: Optional[ReadWriteGuard] = None,
        queue: Optional[PendingDiffQueue] = None,
    ):
        self.documents = documents if documents is not None else DocumentManager()
        self.config = config or Config()
        self.guard = guard or ReadWriteGuard()
        self.queue = queue or PendingDiffQueue()
        self._undo: dict[str, deque[list[Block]]] = {}
        self._redo: dict[str, deque[list[Block]]] = {}

    @property
    def lang(self) -> str:
        return self.config.editor.language

    @property
    def active_doc_id(self) -> Optional[str]:
        return self.documents.get_active_doc_id()

    @property
    def active_blocks(self) -> list[Block]:
        """Blocks of the active document (empty when none is active)."""
        document = self.documents.get_active_document()
        return list(document.blocks) if document else []

    @property
    def pending_diffs(self) -> list[PendingDiff]:
        """The active document's pending diffs, in queue order."""
        return self.queue.get(self.active_doc_id)

    def require_active_document(self) -> EditorDocument:
        """Return the active document.

        Raises:
            DocumentNotFoundError: If no document is active
        """
        document = self.documents.get_active_document()
        if document is None:
            raise DocumentNotFoundError(self.active_doc_id)
        return document

    def switch_document(self, doc_id: str) -> bool:
        """
        Make another document active.

        The current diff list becomes that document's queue and all
        read-guard state is cleared. Unknown IDs change nothing.

        Returns:
            Whether the switch happened
        """
        if not self.documents.set_active_document(doc_id):
            logger.warning("document_switch_unknown", doc_id=doc_id)
            return False

        self.guard.on_document_change()
        logger.info("document_switched", doc_id=doc_id, pending=self.queue.count(doc_id))
        return True

    def remove_document(self, doc_id: str) -> bool:
        """Remove a document along with its queue and history."""
        previous_active = self.active_doc_id
        if not self.documents.remove_document(doc_id):
            return False

        self.queue.drop_document(doc_id)
        self._undo.pop(doc_id, None)
        self._redo.pop(doc_id, None)
        if previous_active == doc_id:
            self.guard.on_document_change()
        return True

    # Pending diffs

    def propose_diff(self, diff: PendingDiff, doc_id: Optional[str] = None) -> PendingDiff:
        """Queue a diff for a document (default: diff.doc_id, then the active document)."""
        target = doc_id or diff.doc_id or self.require_active_document().id
        if target not in self.documents:
            raise DocumentNotFoundError(target)
        queued = self.queue.add(target, diff)
        logger.debug("diff_proposed", doc_id=target, diff_id=diff.id, action=diff.action, block_id=diff.block_id)
        return queued

    def apply_diff(self, diff_id: str) -> bool:
        """
        Apply one pending diff of the active document and remove it from the queue.

        Returns:
            False if the diff is not queued for the active document

        Raises:
            BlockNotFoundError: If it is an add whose anchor no longer exists;
                the diff stays queued and the document is unchanged
            DuplicateBlockIdError: If it is an add whose new_block_id is taken;
                handled the same way
        """
        doc_id = self.active_doc_id
        diff = self.queue.find(doc_id, diff_id)
        if diff is None:
            return False

        document = self.require_active_document()
        blocks, description = apply_diff_to_blocks(document.blocks, diff, self.lang)
        self.queue.remove(doc_id, diff_id)

        if description is not None:
            self._commit(doc_id, document.blocks, blocks)
        logger.info("diff_applied", doc_id=doc_id, diff_id=diff_id, changed=description is not None)
        return True

    def reject_diff(self, diff_id: str) -> bool:
        """Drop one pending diff of the active document without applying it."""
        removed = self.queue.remove(self.active_doc_id, diff_id)
        if removed is not None:
            logger.info("diff_rejected", doc_id=self.active_doc_id, diff_id=diff_id)
        return removed is not None

    def apply_all_diffs(self) -> Optional[ApplyResult]:
        """
        Apply every pending diff of the active document in queue order.

        All-or-nothing: if any add has an unresolvable anchor or a taken
        block ID, the error propagates, nothing is committed and the queue
        is left intact.

        Returns:
            ApplyResult, or None when there is no active document or no diff
        """
        doc_id = self.active_doc_id
        diffs = self.queue.get(doc_id)
        if doc_id is None or not diffs:
            return None

        document = self.require_active_document()
        result = apply_diffs_to_blocks(document.blocks, diffs, self.lang)

        self.queue.clear(doc_id)
        if result.applied_diff_ids:
            self._commit(doc_id, document.blocks, result.blocks)
        return result

    def reject_all_diffs(self) -> int:
        """Drop every pending diff of the active document. Returns how many were dropped."""
        dropped = self.queue.clear(self.active_doc_id)
        if dropped:
            logger.info("diffs_rejected", doc_id=self.active_doc_id, count=len(dropped))
        return len(dropped)

    # Direct user edits

    def set_markdown(self, markdown: str) -> bool:
        """Replace the active document's markdown (re-parses, so block IDs change)."""
        document = self.documents.get_active_document()
        if document is None:
            return False
        self._push_undo(document.id, document.blocks)
        return self.documents.update_document_content(document.id, markdown)

    def update_block(self, block_id: str, content: str) -> bool:
        document = self.documents.get_active_document()
        if document is None or find_block(document.blocks, block_id) is None:
            return False
        self._commit(document.id, document.blocks, update_block_content(document.blocks, block_id, content))
        return True

    def add_block_after(
        self,
        after_block_id: Optional[str],
        block_type: BlockType,
        content: str,
        level: Optional[int] = None,
    ) -> Block:
        """Insert a block into the active document.

        Raises:
            DocumentNotFoundError: If no document is active
            BlockNotFoundError: If after_block_id does not exist
        """
        document = self.require_active_document()
        result = add_block(document.blocks, after_block_id, block_type, content, level)
        self._commit(document.id, document.blocks, result.blocks)
        return result.new_block

    def remove_block(self, block_id: str) -> bool:
        document = self.documents.get_active_document()
        if document is None or find_block(document.blocks, block_id) is None:
            return False
        self._commit(document.id, document.blocks, delete_block(document.blocks, block_id))
        return True

    # History

    def can_undo(self) -> bool:
        return bool(self._undo.get(self.active_doc_id))

    def can_redo(self) -> bool:
        return bool(self._redo.get(self.active_doc_id))

    def undo(self) -> bool:
        """Restore the previous block snapshot of the active document."""
        doc_id = self.active_doc_id
        if not self.can_undo():
            return False

        document = self.require_active_document()
        previous = self._undo[doc_id].pop()
        self._history(self._redo, doc_id).append(list(document.blocks))
        self.documents.update_document_blocks(doc_id, previous, sync_content=True)
        return True

    def redo(self) -> bool:
        """Re-apply the most recently undone snapshot of the active document."""
        doc_id = self.active_doc_id
        if not self.can_redo():
            return False

        document = self.require_active_document()
        following = self._redo[doc_id].pop()
        self._history(self._undo, doc_id).append(list(document.blocks))
        self.documents.update_document_blocks(doc_id, following, sync_content=True)
        return True

    def _history(self, stacks: dict[str, deque[list[Block]]], doc_id: str) -> deque[list[Block]]:
        if doc_id not in stacks:
            stacks[doc_id] = deque(maxlen=self.config.editor.max_undo_depth)
        return stacks[doc_id]

    def _push_undo(self, doc_id: str, blocks: list[Block]) -> None:
        self._history(self._undo, doc_id).append(list(blocks))
        self._redo.pop(doc_id, None)

    def _commit(self, doc_id: str, previous: list[Block], blocks: list[Block]) -> None:
        self._push_undo(doc_id, previous)
        self.documents.update_document_blocks(doc_id, blocks, sync_content=True)


def session_from_markdown(markdown: str, name: str = "Untitled", config: Optional[Config] = None) -> EditorSession:
    """Create a session with a single document parsed from markdown."""
    session = EditorSession(config=config)
    session.documents.add_document(name=name, content=markdown, type="lesson")
    return session

