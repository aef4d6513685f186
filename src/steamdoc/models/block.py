"""Block model: the addressable unit of document content."""

from typing import Literal, Optional

from pydantic import BaseModel, Field, model_validator


BlockType = Literal["heading", "paragraph", "list-item", "code"]

BLOCK_TYPES: tuple[str, ...] = ("heading", "paragraph", "list-item", "code")

MIN_HEADING_LEVEL = 1
MAX_HEADING_LEVEL = 6


def check_heading_level(block_type: str, level: Optional[int]) -> None:
    """Raise ValueError when a heading carries a level outside 1-6.

    A heading with no level renders as level 1.
    """
    if block_type != "heading" or level is None:
        return
    if not MIN_HEADING_LEVEL <= level <= MAX_HEADING_LEVEL:
        raise ValueError(
            f"Heading level must be between {MIN_HEADING_LEVEL} and {MAX_HEADING_LEVEL}, got {level}"
        )


class Block(BaseModel):
    """Single addressable block of a document."""

    id: str = Field(
        ...,
        description="Block identifier, unique within a document and stable across edits"
    )

    type: BlockType = Field(
        ...,
        description="Block type"
    )

    content: str = Field(
        default="",
        description="Textual payload (heading text, paragraph text, list item text or code body)"
    )

    order: int = Field(
        default=0,
        ge=0,
        description="Zero-based position in the document (dense across all blocks)"
    )

    level: Optional[int] = Field(
        default=None,
        ge=0,
        description="Heading level (1-6) or list nesting depth (0 = top level)"
    )

    lang: Optional[str] = Field(
        default=None,
        description="Fenced code language tag (code blocks only)"
    )

    model_config = {"frozen": False}

    @model_validator(mode="after")
    def heading_level_in_range(self) -> "Block":
        check_heading_level(self.type, self.level)
        return self

    def preview(self, length: int = 50) -> str:
        """Return the first `length` characters of content, with '...' when truncated."""
        if len(self.content) > length:
            return self.content[:length] + "..."
        return self.content


class BlockSummary(BaseModel):
    """Compact view of a block for listing document structure."""

    id: str
    type: BlockType
    preview: str = Field(..., description="First characters of the block content")
    order: int

    model_config = {"frozen": True}


def sort_blocks(blocks: list[Block]) -> list[Block]:
    """Return blocks sorted by order (stable for equal orders)."""
    return sorted(blocks, key=lambda b: b.order)
