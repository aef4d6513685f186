"""Custom exceptions for steamdoc services."""


class BlockNotFoundError(ValueError):
    """Raised when an insertion anchor does not resolve to a block.

    Only add operations raise this: updates and deletes against an unknown
    block are silent no-ops, but "insert after an unknown block" has no
    sensible default position.

    Attributes:
        block_id: The block ID that could not be resolved
        message: Human-readable error message
    """

    def __init__(self, block_id: str, message: str = "Block not found"):
        """Initialize BlockNotFoundError.

        Args:
            block_id: The block ID that could not be resolved
            message: Human-readable error message
        """
        self.block_id = block_id
        self.message = message
        super().__init__(f"{message}: {block_id}")


class DocumentNotFoundError(LookupError):
    """Raised when an operation requires a document that is not loaded.

    Attributes:
        doc_id: The missing document ID (None when no document is active)
    """

    def __init__(self, doc_id: str | None):
        self.doc_id = doc_id
        if doc_id is None:
            super().__init__("No active document")
        else:
            super().__init__(f"Document not found: {doc_id}")


class DuplicateBlockIdError(ValueError):
    """Raised when a new block would reuse an ID already in the document.

    Attributes:
        block_id: The conflicting block ID
    """

    def __init__(self, block_id: str):
        self.block_id = block_id
        super().__init__(f"Block ID already in use: {block_id}")
