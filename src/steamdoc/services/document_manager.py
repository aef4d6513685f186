"""Document manager: the in-memory collection of open documents.

One DocumentManager is owned per editing session and passed to whatever
needs it. Lookups return None rather than raising, so a stale document ID
coming from an agent is a no-op instead of a crash.
"""

from typing import Optional

import structlog

from steamdoc.blocks.parser import blocks_to_markdown, parse_markdown
from steamdoc.models.block import Block
from steamdoc.models.document import EditorDocument
from steamdoc.utils.ids import generate_document_id

logger = structlog.get_logger()


class DocumentManager:
    """
    Insertion-ordered collection of EditorDocuments with one active document.

    Example:
        >>> manager = DocumentManager()
        >>> doc_id = manager.add_document(name="Lesson", content="# Plants")
        >>> manager.get_active_document().blocks[0].content
        'Plants'
    """

    def __init__(
        self,
        documents: Optional[list[EditorDocument]] = None,
        active_doc_id: Optional[str] = None,
    ):
        """
        Initialize the manager with pre-loaded documents.

        Args:
            documents: Documents to load, in display order
            active_doc_id: Document to make active; falls back to the first
                document when missing or unknown
        """
        documents = documents or []
        self._documents: dict[str, EditorDocument] = {doc.id: doc for doc in documents}
        self._active_doc_id: Optional[str] = None

        if active_doc_id is not None and active_doc_id in self._documents:
            self._active_doc_id = active_doc_id
        elif documents:
            self._active_doc_id = documents[0].id

    def get_all_documents(self) -> list[EditorDocument]:
        """Documents in insertion order."""
        return list(self._documents.values())

    def get_document(self, doc_id: str) -> Optional[EditorDocument]:
        return self._documents.get(doc_id)

    def get_active_document(self) -> Optional[EditorDocument]:
        if self._active_doc_id is None:
            return None
        return self._documents.get(self._active_doc_id)

    def get_active_doc_id(self) -> Optional[str]:
        return self._active_doc_id

    def set_active_document(self, doc_id: str) -> bool:
        """Make doc_id the active document. Returns False (no change) if unknown."""
        if doc_id not in self._documents:
            return False
        self._active_doc_id = doc_id
        return True

    def add_document(self, name: str, content: str = "", type: str = "custom") -> str:
        """
        Create a document from markdown and store it.

        The new document becomes active only if no document was active.

        Args:
            name: Display name
            content: Initial markdown
            type: Free-form classification (lesson, guide, worksheet, custom, ...)

        Returns:
            The generated document ID
        """
        doc_id = generate_document_id()
        document = EditorDocument(
            id=doc_id,
            name=name,
            type=type,
            content=content,
            blocks=parse_markdown(content).blocks,
            is_dirty=False,
        )
        self._documents[doc_id] = document

        if self._active_doc_id is None:
            self._active_doc_id = doc_id

        logger.info("document_added", doc_id=doc_id, name=name, blocks=len(document.blocks))
        return doc_id

    def remove_document(self, doc_id: str) -> bool:
        """
        Remove a document.

        If it was active, the first remaining document becomes active (or
        none when the collection is empty).

        Returns:
            Whether a document was removed
        """
        if doc_id not in self._documents:
            return False

        del self._documents[doc_id]
        if self._active_doc_id == doc_id:
            self._active_doc_id = next(iter(self._documents), None)

        logger.info("document_removed", doc_id=doc_id, active_doc_id=self._active_doc_id)
        return True

    def update_document_content(self, doc_id: str, content: str) -> bool:
        """Replace a document's markdown, re-parse its blocks and mark it dirty."""
        document = self._documents.get(doc_id)
        if document is None:
            return False

        self._documents[doc_id] = document.model_copy(
            update={
                "content": content,
                "blocks": parse_markdown(content).blocks,
                "is_dirty": True,
            }
        )
        return True

    def update_document_blocks(self, doc_id: str, blocks: list[Block], sync_content: bool = False) -> bool:
        """
        Replace a document's blocks directly, bypassing the parser.

        Block IDs are kept as given. The markdown content is left alone
        unless sync_content is set, in which case it is re-rendered from
        the blocks.

        Args:
            doc_id: Document to update
            blocks: New blocks (typically from the block operations)
            sync_content: Also re-render content from blocks

        Returns:
            False if the document does not exist
        """
        document = self._documents.get(doc_id)
        if document is None:
            return False

        update: dict = {"blocks": list(blocks), "is_dirty": True}
        if sync_content:
            update["content"] = blocks_to_markdown(blocks)

        self._documents[doc_id] = document.model_copy(update=update)
        return True

    def mark_document_clean(self, doc_id: str) -> bool:
        """Clear the dirty flag after the document was persisted elsewhere."""
        document = self._documents.get(doc_id)
        if document is None:
            return False
        self._documents[doc_id] = document.model_copy(update={"is_dirty": False})
        return True

    def size(self) -> int:
        return len(self._documents)

    def __len__(self) -> int:
        return len(self._documents)

    def __contains__(self, doc_id: object) -> bool:
        return doc_id in self._documents
