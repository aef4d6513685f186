"""EditorDocument model for multi-document editing."""

from datetime import datetime

from pydantic import BaseModel, Field

from steamdoc.models.block import Block


DOCUMENT_TYPES = ("lesson", "guide", "worksheet", "custom")


class EditorDocument(BaseModel):
    """A named container of markdown content and its parsed blocks."""

    id: str = Field(
        ...,
        description="Opaque document identifier"
    )

    name: str = Field(
        ...,
        description="Display name"
    )

    type: str = Field(
        default="custom",
        description="Free-form classification (lesson, guide, worksheet, custom, ...)"
    )

    content: str = Field(
        default="",
        description="Raw markdown, the source of truth"
    )

    blocks: list[Block] = Field(
        default_factory=list,
        description="Blocks derived from content (kept consistent after every mutation)"
    )

    is_dirty: bool = Field(
        default=False,
        description="True after any change that has not been persisted yet"
    )

    created_at: datetime = Field(
        default_factory=datetime.now,
        description="Creation time"
    )

    model_config = {"frozen": False}
