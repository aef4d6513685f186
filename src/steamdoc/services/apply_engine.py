"""Apply engine: commits pending diffs to a block list.

Diffs are processed strictly in the order given. The engine is pure: it
works on copies and returns the result, so a batch that fails part-way
(unresolvable add anchor) leaves the caller's blocks and markdown exactly
as they were. Batches are therefore all-or-nothing.

Failure policy:
- update/delete against an unknown block: skipped, logged as a warning
- add with a malformed payload: inserted as a plain paragraph
- add with an unknown anchor: BlockNotFoundError propagates to the caller
- add whose new_block_id is already taken: DuplicateBlockIdError propagates
"""

from dataclasses import dataclass, field
from typing import Optional

import structlog

from steamdoc.blocks.operations import add_block, delete_block, find_block, update_block_content
from steamdoc.blocks.parser import blocks_to_markdown, parse_markdown
from steamdoc.i18n import block_type_name, message
from steamdoc.models.block import Block
from steamdoc.models.pending_diff import START_SENTINEL, PendingDiff, decode_add_payload
from steamdoc.services.exceptions import BlockNotFoundError, DuplicateBlockIdError
from steamdoc.utils.ids import positional_ids

logger = structlog.get_logger()

PREVIEW_LENGTH = 40


@dataclass
class ApplyResult:
    """Outcome of applying a batch of diffs.

    Attributes:
        updated_lesson: Markdown rendered from the final blocks
        summary: Localized one-line summary of what was applied
        applied_changes: Localized description of each applied diff
        blocks: Final blocks (IDs of untouched blocks preserved)
        applied_diff_ids: IDs of diffs that changed the document
        skipped_diff_ids: IDs of diffs whose target block did not exist
    """

    updated_lesson: str
    summary: str
    applied_changes: list[str] = field(default_factory=list)
    blocks: list[Block] = field(default_factory=list)
    applied_diff_ids: list[str] = field(default_factory=list)
    skipped_diff_ids: list[str] = field(default_factory=list)


def _preview(text: str) -> str:
    text = " ".join(text.split())
    if len(text) > PREVIEW_LENGTH:
        return text[:PREVIEW_LENGTH] + "..."
    return text


def _describe(lang: str, key: str, diff: PendingDiff, **values: object) -> str:
    description = message(lang, key, **values)
    if diff.reason:
        description += message(lang, "reason", reason=diff.reason)
    return description


def apply_diff_to_blocks(
    blocks: list[Block],
    diff: PendingDiff,
    lang: str = "en",
) -> tuple[list[Block], Optional[str]]:
    """
    Apply a single diff.

    Args:
        blocks: Current blocks (not modified)
        diff: Diff to apply
        lang: Language for the change description

    Returns:
        Tuple of (new blocks, description). Description is None when the
        diff targeted a block that does not exist and nothing changed.

    Raises:
        BlockNotFoundError: If an add diff's anchor block does not exist
        DuplicateBlockIdError: If an add diff's new_block_id is already taken
    """
    if diff.action == "update":
        target = find_block(blocks, diff.block_id)
        if target is None:
            logger.warning("diff_target_not_found", diff_id=diff.id, block_id=diff.block_id, action=diff.action)
            return blocks, None
        updated = update_block_content(blocks, diff.block_id, diff.new_content)
        return updated, _describe(lang, "updated", diff, block_id=diff.block_id, preview=_preview(diff.new_content))

    if diff.action == "delete":
        target = find_block(blocks, diff.block_id)
        if target is None:
            logger.warning("diff_target_not_found", diff_id=diff.id, block_id=diff.block_id, action=diff.action)
            return blocks, None
        updated = delete_block(blocks, diff.block_id)
        return updated, _describe(lang, "deleted", diff, block_id=diff.block_id, preview=_preview(target.content))

    payload = decode_add_payload(diff.new_content)
    if payload.kind == "text":
        logger.debug("add_payload_plain_text", diff_id=diff.id)

    after_block_id = None if diff.block_id == START_SENTINEL else diff.block_id
    result = add_block(
        blocks,
        after_block_id,
        payload.type,
        payload.content,
        level=payload.level,
        explicit_id=diff.new_block_id,
    )

    type_name = block_type_name(lang, payload.type)
    if after_block_id is None:
        description = _describe(lang, "added_start", diff, block_type=type_name, preview=_preview(payload.content))
    else:
        description = _describe(
            lang, "added", diff, block_type=type_name, anchor=after_block_id, preview=_preview(payload.content)
        )
    return result.blocks, description


def apply_diffs_to_blocks(blocks: list[Block], diffs: list[PendingDiff], lang: str = "en") -> ApplyResult:
    """
    Apply diffs in order to a block list.

    Args:
        blocks: Blocks the diffs were generated against
        diffs: Diffs in queue order
        lang: "en" or "zh" for the summary strings

    Returns:
        ApplyResult with final blocks and rendered markdown

    Raises:
        BlockNotFoundError: If any add diff has an unresolvable anchor.
            No partial result is produced.
        DuplicateBlockIdError: If any add diff reuses an existing block ID
    """
    current = list(blocks)
    applied_changes: list[str] = []
    applied_ids: list[str] = []
    skipped_ids: list[str] = []
    counts = {"update": 0, "add": 0, "delete": 0}

    for diff in diffs:
        try:
            current, description = apply_diff_to_blocks(current, diff, lang)
        except (BlockNotFoundError, DuplicateBlockIdError) as e:
            logger.error(
                "diff_batch_aborted",
                diff_id=diff.id,
                block_id=e.block_id,
                error=str(e),
                applied_before_failure=len(applied_ids),
                total=len(diffs),
            )
            raise

        if description is None:
            skipped_ids.append(diff.id)
            continue

        counts[diff.action] += 1
        applied_ids.append(diff.id)
        applied_changes.append(description)

    if applied_ids:
        summary = message(
            lang,
            "summary",
            total=len(applied_ids),
            updated=counts["update"],
            added=counts["add"],
            deleted=counts["delete"],
        )
    else:
        summary = message(lang, "no_changes")

    logger.info("diff_batch_applied", applied=len(applied_ids), skipped=len(skipped_ids), blocks=len(current))

    return ApplyResult(
        updated_lesson=blocks_to_markdown(current),
        summary=summary,
        applied_changes=applied_changes,
        blocks=current,
        applied_diff_ids=applied_ids,
        skipped_diff_ids=skipped_ids,
    )


def apply_diffs(
    markdown: str,
    diffs: list[PendingDiff],
    lang: str = "en",
    blocks: Optional[list[Block]] = None,
) -> ApplyResult:
    """
    Apply diffs to a markdown document.

    The diffs must reference IDs from the parse they were generated
    against. Pass that parse as `blocks`; when omitted, the markdown is
    parsed with positional IDs (block-0, block-1, ...), which match
    parse_markdown(markdown, id_factory=positional_ids()).

    Args:
        markdown: Current document markdown
        diffs: Diffs in queue order
        lang: "en" or "zh" for the summary strings
        blocks: The exact parse the diffs were generated against

    Returns:
        ApplyResult; updated_lesson holds the new markdown

    Raises:
        BlockNotFoundError: If an add diff has an unresolvable anchor
        DuplicateBlockIdError: If an add diff reuses an existing block ID
    """
    if blocks is None:
        blocks = parse_markdown(markdown, id_factory=positional_ids()).blocks
    return apply_diffs_to_blocks(blocks, diffs, lang)
