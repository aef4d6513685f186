"""Identity-preserving block operations.

Unlike parse_markdown, which assigns fresh IDs on every call, these
operations keep the ID of every block they do not remove. They never
mutate their input: changed blocks are copies, unchanged blocks are
returned as-is.
"""

from dataclasses import dataclass
from typing import Optional

import structlog

from steamdoc.models.block import Block, BlockType, sort_blocks
from steamdoc.services.exceptions import BlockNotFoundError, DuplicateBlockIdError
from steamdoc.utils.ids import generate_block_id

logger = structlog.get_logger()


@dataclass
class AddBlockResult:
    """Result of add_block.

    Attributes:
        blocks: New block list with dense orders
        new_block: The inserted block
    """

    blocks: list[Block]
    new_block: Block


def _reindex(blocks: list[Block]) -> list[Block]:
    """Renumber orders to 0..N-1, copying only blocks whose order changes."""
    return [
        block if block.order == i else block.model_copy(update={"order": i})
        for i, block in enumerate(blocks)
    ]


def find_block(blocks: list[Block], block_id: str) -> Optional[Block]:
    """Return the block with the given ID, or None."""
    for block in blocks:
        if block.id == block_id:
            return block
    return None


def update_block_content(blocks: list[Block], block_id: str, new_content: str) -> list[Block]:
    """Replace the content of one block.

    Orders are untouched. An unknown block_id returns an unchanged copy of
    the list; callers that need to detect "not found" must check membership
    themselves.

    Args:
        blocks: Current blocks
        block_id: ID of the block to update
        new_content: Replacement content

    Returns:
        New list of blocks
    """
    return [
        block.model_copy(update={"content": new_content}) if block.id == block_id else block
        for block in blocks
    ]


def add_block(
    blocks: list[Block],
    after_block_id: Optional[str],
    block_type: BlockType,
    content: str,
    level: Optional[int] = None,
    explicit_id: Optional[str] = None,
) -> AddBlockResult:
    """Insert a new block and reindex.

    Args:
        blocks: Current blocks
        after_block_id: Anchor block ID; None inserts at the very start
        block_type: Type of the new block
        content: Content of the new block
        level: Heading level or list depth
        explicit_id: Pre-allocated ID for the new block (default: generated)

    Returns:
        AddBlockResult with the reindexed blocks and the new block

    Raises:
        BlockNotFoundError: If after_block_id is given but not present
        DuplicateBlockIdError: If explicit_id is already used by another block
    """
    ordered = sort_blocks(blocks)

    if explicit_id is not None and find_block(ordered, explicit_id) is not None:
        raise DuplicateBlockIdError(explicit_id)

    if after_block_id is None:
        position = 0
    else:
        anchor = next((i for i, b in enumerate(ordered) if b.id == after_block_id), None)
        if anchor is None:
            raise BlockNotFoundError(after_block_id, "Anchor block not found")
        position = anchor + 1

    new_block = Block(
        id=explicit_id or generate_block_id(),
        type=block_type,
        content=content,
        order=position,
        level=level,
    )

    updated = _reindex(ordered[:position] + [new_block] + ordered[position:])

    logger.debug(
        "block_added",
        block_id=new_block.id,
        after_block_id=after_block_id,
        block_type=block_type,
        order=position,
    )
    return AddBlockResult(blocks=updated, new_block=updated[position])


def delete_block(blocks: list[Block], block_id: str) -> list[Block]:
    """Remove a block and reindex the rest.

    An unknown block_id is a no-op (the remaining blocks are still returned
    with dense orders).

    Args:
        blocks: Current blocks
        block_id: ID of the block to remove

    Returns:
        New list of blocks
    """
    return _reindex([block for block in sort_blocks(blocks) if block.id != block_id])
