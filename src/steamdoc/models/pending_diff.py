"""PendingDiff model: a proposed, not-yet-applied edit against a document's blocks."""

import json
from typing import Literal, Optional, Union

from pydantic import BaseModel, Field, ValidationError, model_validator

from steamdoc.models.block import BlockType, check_heading_level


START_SENTINEL = "__start__"

DiffAction = Literal["update", "add", "delete"]


class PendingDiff(BaseModel):
    """Edit proposed by an external agent, held in a per-document queue."""

    id: str = Field(
        ...,
        description="Unique diff identifier"
    )

    block_id: str = Field(
        ...,
        description=f"Target block ID, or '{START_SENTINEL}' to insert before the first block"
    )

    action: DiffAction = Field(
        ...,
        description="Type of edit"
    )

    old_content: str = Field(
        default="",
        description="Block content at proposal time (empty for adds)"
    )

    new_content: str = Field(
        default="",
        description="Replacement content; for adds a JSON {type, content, level} payload or plain text"
    )

    reason: str = Field(
        default="",
        description="Human-readable rationale shown to the user"
    )

    new_block_id: Optional[str] = Field(
        default=None,
        description="Pre-allocated ID for the block an 'add' creates, so later diffs can anchor on it"
    )

    doc_id: Optional[str] = Field(
        default=None,
        description="Document the diff targets (multi-document sessions)"
    )

    model_config = {"frozen": False}

    @property
    def inserts_at_start(self) -> bool:
        """Whether this is an add anchored before the first block."""
        return self.action == "add" and self.block_id == START_SENTINEL


class StructuredAddPayload(BaseModel):
    """Add payload decoded from the JSON form."""

    kind: Literal["structured"] = "structured"
    type: BlockType
    content: str
    level: Optional[int] = Field(default=None, ge=0)

    model_config = {"frozen": True}

    @model_validator(mode="after")
    def heading_level_in_range(self) -> "StructuredAddPayload":
        check_heading_level(self.type, self.level)
        return self


class PlainTextAddPayload(BaseModel):
    """Add payload that was not valid JSON; inserted as a paragraph."""

    kind: Literal["text"] = "text"
    content: str

    model_config = {"frozen": True}

    @property
    def type(self) -> BlockType:
        return "paragraph"

    @property
    def level(self) -> None:
        return None


AddPayload = Union[StructuredAddPayload, PlainTextAddPayload]


def encode_add_payload(block_type: BlockType, content: str, level: Optional[int] = None) -> str:
    """Encode a new block description into the JSON string carried by an 'add' diff."""
    payload: dict = {"type": block_type, "content": content}
    if level is not None:
        payload["level"] = level
    return json.dumps(payload, ensure_ascii=False)


def decode_add_payload(new_content: str) -> AddPayload:
    """Decode the new_content of an 'add' diff.

    Attempts a structured decode first; anything that is not a JSON object
    with a valid block type, string content and an in-range heading level
    falls back to plain text.

    Args:
        new_content: Raw new_content string from the diff

    Returns:
        StructuredAddPayload or PlainTextAddPayload
    """
    try:
        return StructuredAddPayload.model_validate_json(new_content)
    except ValidationError:
        return PlainTextAddPayload(content=new_content)
