"""Unit tests for applying pending diffs."""

import pytest

from steamdoc.blocks.parser import blocks_to_markdown, parse_markdown
from steamdoc.models.pending_diff import START_SENTINEL, PendingDiff, encode_add_payload
from steamdoc.services.apply_engine import apply_diff_to_blocks, apply_diffs, apply_diffs_to_blocks
from steamdoc.services.exceptions import BlockNotFoundError, DuplicateBlockIdError
from steamdoc.utils.ids import positional_ids


def _parse(md: str):
    return parse_markdown(md, id_factory=positional_ids()).blocks


class TestApplySingleDiff:
    """Tests for apply_diff_to_blocks."""

    def test_update(self):
        """Updating the only paragraph replaces its content in the markdown."""
        blocks = _parse("Original text")
        diff = PendingDiff(id="d1", block_id="block-0", action="update", new_content="New")

        updated, description = apply_diff_to_blocks(blocks, diff)

        markdown = blocks_to_markdown(updated)
        assert "New" in markdown
        assert "Original text" not in markdown
        assert description == 'Updated block-0: "New"'

    def test_delete(self):
        blocks = _parse("One\n\nTwo")
        diff = PendingDiff(id="d1", block_id="block-0", action="delete", reason="redundant")

        updated, description = apply_diff_to_blocks(blocks, diff)

        assert [b.content for b in updated] == ["Two"]
        assert updated[0].order == 0
        assert description == 'Deleted block-0: "One" (redundant)'

    def test_add_structured_after_anchor(self):
        blocks = _parse("# Title\n\nBody")
        diff = PendingDiff(
            id="d1",
            block_id="block-0",
            action="add",
            new_content=encode_add_payload("heading", "Objectives", 2),
        )

        updated, description = apply_diff_to_blocks(blocks, diff)

        assert [(b.type, b.content, b.level) for b in updated] == [
            ("heading", "Title", 1),
            ("heading", "Objectives", 2),
            ("paragraph", "Body", None),
        ]
        assert description == 'Added heading after block-0: "Objectives"'

    def test_add_at_start_sentinel(self):
        blocks = _parse("Body")
        diff = PendingDiff(
            id="d1",
            block_id=START_SENTINEL,
            action="add",
            new_content=encode_add_payload("heading", "Title", 1),
        )

        updated, description = apply_diff_to_blocks(blocks, diff)

        assert updated[0].content == "Title"
        assert updated[1].content == "Body"
        assert description.startswith("Added heading at start")

    def test_add_plain_text_fallback(self):
        """A payload that is not valid JSON becomes a paragraph."""
        blocks = _parse("Body")
        diff = PendingDiff(id="d1", block_id="block-0", action="add", new_content="{not json")

        updated, _ = apply_diff_to_blocks(blocks, diff)

        assert updated[1].type == "paragraph"
        assert updated[1].content == "{not json"

    def test_add_heading_level_out_of_range_falls_back_to_text(self):
        """A heading payload with level 9 is malformed and inserted as plain text."""
        raw = encode_add_payload("heading", "Deep", 9)
        diff = PendingDiff(id="d1", block_id=START_SENTINEL, action="add", new_content=raw)

        result = apply_diffs("Body", [diff])

        assert [(b.type, b.level) for b in result.blocks] == [("paragraph", None), ("paragraph", None)]
        assert result.blocks[0].content == raw
        assert not result.updated_lesson.startswith("#")

    def test_add_with_taken_block_id_raises(self):
        blocks = _parse("Body")
        diff = PendingDiff(
            id="d1",
            block_id="block-0",
            action="add",
            new_content=encode_add_payload("paragraph", "More"),
            new_block_id="block-0",
        )

        with pytest.raises(DuplicateBlockIdError) as exc_info:
            apply_diff_to_blocks(blocks, diff)
        assert exc_info.value.block_id == "block-0"

    def test_add_uses_new_block_id(self):
        blocks = _parse("Body")
        diff = PendingDiff(
            id="d1",
            block_id="block-0",
            action="add",
            new_content=encode_add_payload("paragraph", "More"),
            new_block_id="block-new",
        )

        updated, _ = apply_diff_to_blocks(blocks, diff)
        assert updated[1].id == "block-new"

    @pytest.mark.parametrize("action", ["update", "delete"])
    def test_unknown_target_is_skipped(self, action):
        blocks = _parse("Body")
        diff = PendingDiff(id="d1", block_id="ghost", action=action, new_content="x")

        updated, description = apply_diff_to_blocks(blocks, diff)

        assert updated == blocks
        assert description is None

    def test_unknown_anchor_raises(self):
        blocks = _parse("Body")
        diff = PendingDiff(id="d1", block_id="ghost", action="add", new_content="x")

        with pytest.raises(BlockNotFoundError) as exc_info:
            apply_diff_to_blocks(blocks, diff)
        assert exc_info.value.block_id == "ghost"

    def test_long_preview_truncated(self):
        blocks = _parse("Body")
        diff = PendingDiff(id="d1", block_id="block-0", action="update", new_content="x" * 100)

        _, description = apply_diff_to_blocks(blocks, diff)
        assert description == f'Updated block-0: "{"x" * 40}..."'


class TestApplyBatch:
    """Tests for apply_diffs_to_blocks and apply_diffs."""

    def test_diffs_applied_in_order(self):
        blocks = _parse("One\n\nTwo\n\nThree")
        diffs = [
            PendingDiff(id="d1", block_id="block-1", action="update", new_content="TWO"),
            PendingDiff(id="d2", block_id="block-2", action="delete"),
            PendingDiff(id="d3", block_id="block-0", action="add", new_content=encode_add_payload("paragraph", "1.5")),
        ]

        result = apply_diffs_to_blocks(blocks, diffs)

        assert result.updated_lesson == "One\n\n1.5\n\nTWO"
        assert result.applied_diff_ids == ["d1", "d2", "d3"]
        assert result.summary == "Applied 3 change(s): 1 updated, 1 added, 1 deleted"
        assert len(result.applied_changes) == 3
        assert [b.order for b in result.blocks] == [0, 1, 2]

    def test_chained_adds_via_new_block_id(self):
        """Later adds can anchor on blocks created earlier in the batch."""
        blocks = _parse("# Lesson")
        diffs = [
            PendingDiff(
                id="d1",
                block_id="block-0",
                action="add",
                new_content=encode_add_payload("heading", "Steps", 2),
                new_block_id="block-steps",
            ),
            PendingDiff(
                id="d2",
                block_id="block-steps",
                action="add",
                new_content=encode_add_payload("list-item", "Plant seeds", 0),
                new_block_id="block-step-1",
            ),
            PendingDiff(
                id="d3",
                block_id="block-step-1",
                action="add",
                new_content=encode_add_payload("list-item", "Water daily", 0),
            ),
        ]

        result = apply_diffs_to_blocks(blocks, diffs)
        assert result.updated_lesson == "# Lesson\n\n## Steps\n\n- Plant seeds\n- Water daily"

    def test_update_then_delete_same_block(self):
        blocks = _parse("One\n\nTwo")
        diffs = [
            PendingDiff(id="d1", block_id="block-0", action="update", new_content="changed"),
            PendingDiff(id="d2", block_id="block-0", action="delete"),
        ]

        result = apply_diffs_to_blocks(blocks, diffs)
        assert result.updated_lesson == "Two"

    def test_skipped_diffs_reported(self):
        blocks = _parse("One")
        diffs = [
            PendingDiff(id="d1", block_id="ghost", action="update", new_content="x"),
            PendingDiff(id="d2", block_id="block-0", action="update", new_content="Uno"),
        ]

        result = apply_diffs_to_blocks(blocks, diffs)

        assert result.applied_diff_ids == ["d2"]
        assert result.skipped_diff_ids == ["d1"]
        assert result.updated_lesson == "Uno"

    def test_no_changes_summary(self):
        result = apply_diffs_to_blocks(_parse("One"), [])
        assert result.summary == "No changes applied"
        assert result.updated_lesson == "One"

    def test_unknown_anchor_aborts_whole_batch(self):
        """A failing add leaves the caller's blocks untouched."""
        blocks = _parse("One\n\nTwo")
        snapshot = [b.model_copy() for b in blocks]
        diffs = [
            PendingDiff(id="d1", block_id="block-0", action="update", new_content="changed"),
            PendingDiff(id="d2", block_id="ghost", action="add", new_content="x"),
        ]

        with pytest.raises(BlockNotFoundError):
            apply_diffs_to_blocks(blocks, diffs)

        assert blocks == snapshot

    def test_taken_block_id_aborts_whole_batch(self):
        blocks = _parse("One\n\nTwo")
        snapshot = [b.model_copy() for b in blocks]
        diffs = [
            PendingDiff(id="d1", block_id="block-0", action="delete"),
            PendingDiff(
                id="d2",
                block_id="block-1",
                action="add",
                new_content=encode_add_payload("paragraph", "Three"),
                new_block_id="block-1",
            ),
        ]

        with pytest.raises(DuplicateBlockIdError):
            apply_diffs_to_blocks(blocks, diffs)

        assert blocks == snapshot

    def test_chinese_summary(self):
        blocks = _parse("One")
        diffs = [PendingDiff(id="d1", block_id="block-0", action="update", new_content="一")]

        result = apply_diffs_to_blocks(blocks, diffs, lang="zh")

        assert result.summary == "已套用 1 項修改：更新 1 項、新增 0 項、刪除 0 項"
        assert result.applied_changes == ["已更新 block-0：「一」"]

    def test_apply_diffs_uses_positional_ids(self):
        """Without explicit blocks, markdown is parsed with block-0, block-1, ..."""
        diffs = [PendingDiff(id="d1", block_id="block-1", action="update", new_content="Second!")]
        result = apply_diffs("First\n\nSecond", diffs)
        assert result.updated_lesson == "First\n\nSecond!"

    def test_apply_diffs_with_explicit_blocks(self):
        blocks = parse_markdown("First\n\nSecond").blocks
        diffs = [PendingDiff(id="d1", block_id=blocks[0].id, action="delete")]

        result = apply_diffs("First\n\nSecond", diffs, blocks=blocks)
        assert result.updated_lesson == "Second"
        assert result.blocks[0].id == blocks[1].id
