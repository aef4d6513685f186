"""Per-document queue of pending diffs."""

from typing import Optional

from steamdoc.models.pending_diff import PendingDiff


class PendingDiffQueue:
    """Pending diffs keyed by document ID, each list kept in arrival order."""

    def __init__(self) -> None:
        self._queues: dict[str, list[PendingDiff]] = {}

    def add(self, doc_id: str, diff: PendingDiff) -> PendingDiff:
        """Append a diff to a document's queue, tagging it with doc_id."""
        if diff.doc_id != doc_id:
            diff = diff.model_copy(update={"doc_id": doc_id})
        self._queues.setdefault(doc_id, []).append(diff)
        return diff

    def extend(self, doc_id: str, diffs: list[PendingDiff]) -> list[PendingDiff]:
        return [self.add(doc_id, diff) for diff in diffs]

    def get(self, doc_id: Optional[str]) -> list[PendingDiff]:
        """Copy of a document's queue (empty for unknown or None)."""
        if doc_id is None:
            return []
        return list(self._queues.get(doc_id, []))

    def find(self, doc_id: Optional[str], diff_id: str) -> Optional[PendingDiff]:
        if doc_id is None:
            return None
        for diff in self._queues.get(doc_id, []):
            if diff.id == diff_id:
                return diff
        return None

    def remove(self, doc_id: Optional[str], diff_id: str) -> Optional[PendingDiff]:
        """Remove and return one diff, or None if it is not queued."""
        diff = self.find(doc_id, diff_id)
        if diff is not None:
            self._queues[doc_id].remove(diff)
        return diff

    def clear(self, doc_id: Optional[str]) -> list[PendingDiff]:
        """Empty a document's queue, returning what was removed."""
        if doc_id is None:
            return []
        return self._queues.pop(doc_id, [])

    def count(self, doc_id: Optional[str]) -> int:
        return len(self._queues.get(doc_id, [])) if doc_id is not None else 0

    def drop_document(self, doc_id: str) -> None:
        self._queues.pop(doc_id, None)

    def document_ids(self) -> list[str]:
        """IDs of documents that currently have queued diffs."""
        return [doc_id for doc_id, diffs in self._queues.items() if diffs]
