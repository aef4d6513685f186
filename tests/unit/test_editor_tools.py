"""Unit tests for the agent-facing editor tools."""

import json

from steamdoc.models.config import AgentConfig, Config
from steamdoc.models.pending_diff import START_SENTINEL, decode_add_payload
from steamdoc.services.editor_tools import EditorTools
from steamdoc.services.session import EditorSession, session_from_markdown


def _ids(session):
    return [b.id for b in session.active_blocks]


class TestReadTools:
    """Tests for list_blocks, read_block and read_blocks."""

    def test_list_blocks(self, tools, session):
        output = tools.list_blocks()

        assert output.startswith("Document has 7 blocks:")
        assert f"[{_ids(session)[0]}] (heading) Plant Growth Lab" in output
        assert session.guard.has_read_document() is True

    def test_list_blocks_without_document(self):
        assert EditorTools(EditorSession()).list_blocks() == "Error: No active document"

    def test_read_block_with_context(self, tools, session):
        ids = _ids(session)
        output = tools.read_block(ids[3])

        assert f"Block {ids[3]} (list-item):\nBean seeds" in output
        assert output.startswith("Context before:")
        assert f"[{ids[2]}] Materials..." in output
        assert f"Context after:\n[{ids[4]}] Paper cups..." in output
        assert session.guard.has_read_blocks([ids[2], ids[3], ids[4]])

    def test_read_block_unknown(self, tools):
        assert tools.read_block("missing") == 'Error: Block "missing" not found'

    def test_read_blocks_json(self, tools, session):
        ids = _ids(session)
        data = json.loads(tools.read_blocks([ids[0], "missing"]))

        assert data["blocks"][0] == {"id": ids[0], "ok": True, "type": "heading", "content": "Plant Growth Lab"}
        assert data["blocks"][1] == {"id": "missing", "ok": False, "error": "Block not found"}
        assert session.guard.has_read_document() is True
        assert session.guard.has_read_block(ids[0]) is True

    def test_read_blocks_with_context(self, tools, session):
        ids = _ids(session)
        data = json.loads(tools.read_blocks([ids[1]], with_context=True))
        entry = data["blocks"][0]

        assert entry["context_before"] == [{"id": ids[0], "preview": "Plant Growth Lab"}]
        assert entry["context_after"] == [{"id": ids[2], "preview": "Materials"}]
        assert session.guard.has_read_block(ids[2]) is True

    def test_read_shows_pending_edits(self, tools, session):
        ids = _ids(session)
        tools.list_blocks()
        tools.read_blocks([ids[1]])
        tools.edit_block(ids[1], "Updated intro", reason="clarity")

        data = json.loads(tools.read_blocks([ids[1]]))
        assert data["blocks"][0]["content"] == "Updated intro"

    def test_read_blocks_empty(self, tools):
        assert tools.read_blocks([]).startswith("Error:")


class TestEditTools:
    """Tests for edit_block and edit_blocks."""

    def test_edit_requires_reads(self, tools, session):
        block_id = _ids(session)[1]

        assert "list_blocks" in tools.edit_block(block_id, "x")
        tools.list_blocks()
        assert "read_blocks" in tools.edit_block(block_id, "x")
        assert session.pending_diffs == []

    def test_edit_creates_pending_diff(self, tools, session):
        block_id = _ids(session)[1]
        tools.list_blocks()
        tools.read_blocks([block_id])

        output = tools.edit_block(block_id, "New intro", reason="shorter")

        diff = session.pending_diffs[0]
        assert output.startswith(f"Created pending edit for block {block_id}. Diff ID: {diff.id}")
        assert "User must confirm this change." in output
        assert diff.action == "update"
        assert diff.old_content == "Students observe how light affects seedlings."
        assert diff.new_content == "New intro"
        assert diff.reason == "shorter"
        assert diff.id.startswith("diff-")

    def test_edit_chains_on_effective_content(self, tools, session):
        block_id = _ids(session)[1]
        tools.read_blocks([block_id])
        tools.edit_block(block_id, "First rewrite")
        tools.edit_block(block_id, "Second rewrite")

        assert session.pending_diffs[1].old_content == "First rewrite"

    def test_edit_pending_deleted_block(self, tools, session):
        block_id = _ids(session)[1]
        tools.read_blocks([block_id])
        tools.delete_block(block_id)

        assert tools.edit_block(block_id, "x") == f'Error: Block "{block_id}" not found or deleted'

    def test_edit_blocks_mixed_results(self, tools, session):
        ids = _ids(session)
        tools.read_blocks([ids[0]])

        data = json.loads(
            tools.edit_blocks(
                [
                    {"block_id": ids[0], "new_content": "Light Lab", "reason": "title"},
                    {"block_id": ids[1], "new_content": "unread"},
                    {"new_content": "no id"},
                ]
            )
        )
        results = data["results"]

        assert results[0]["ok"] is True
        assert results[0]["diff_id"] == session.pending_diffs[0].id
        assert results[1]["ok"] is False
        assert "read_blocks" in results[1]["error"]
        assert results[2]["ok"] is False
        assert "block_id" in results[2]["error"]
        assert len(session.pending_diffs) == 1

    def test_edit_blocks_truncated_to_batch_size(self, lesson_markdown):
        session = session_from_markdown(lesson_markdown, config=Config(agent=AgentConfig(max_batch_size=2)))
        tools = EditorTools(session)
        ids = _ids(session)
        tools.read_blocks(ids[:2])

        edits = [{"block_id": block_id, "new_content": "x"} for block_id in ids[:2]] * 3
        data = json.loads(tools.edit_blocks(edits))

        assert len(data["results"]) == 2
        assert len(session.pending_diffs) == 2


class TestAddTools:
    """Tests for add_block and add_blocks."""

    def test_add_requires_list_blocks(self, tools, session):
        output = tools.add_block(None, "paragraph", "Hello")
        assert output.startswith("Error: Must call list_blocks")
        assert session.pending_diffs == []

    def test_add_rejects_empty_content(self, tools):
        tools.list_blocks()
        assert tools.add_block(None, "paragraph", "   ").startswith("Error: Content cannot be empty")

    def test_add_rejects_unknown_type(self, tools):
        tools.list_blocks()
        assert tools.add_block(None, "table", "x").startswith('Error: Unknown block type "table"')

    def test_add_at_start(self, tools, session):
        tools.list_blocks()
        output = tools.add_block(None, "heading", "  Overview  ", level=1, reason="intro")

        diff = session.pending_diffs[0]
        assert output.startswith("Created pending add after start.")
        assert f"New block ID: {diff.new_block_id}" in output
        assert diff.block_id == START_SENTINEL
        payload = decode_add_payload(diff.new_content)
        assert (payload.type, payload.content, payload.level) == ("heading", "Overview", 1)

    def test_add_rejects_out_of_range_heading_level(self, tools, session):
        tools.list_blocks()

        output = tools.add_block(None, "heading", "Too deep", level=9)

        assert output == "Error: Heading level must be between 1 and 6, got 9"
        assert session.pending_diffs == []

    def test_add_blocks_rejects_out_of_range_heading_level(self, tools, session):
        tools.list_blocks()

        data = json.loads(
            tools.add_blocks(
                [
                    {"after_block_id": None, "type": "heading", "content": "Zero", "level": 0},
                    {"after_block_id": None, "type": "list-item", "content": "Deep item", "level": 4},
                ]
            )
        )

        results = data["results"]
        assert results[0]["ok"] is False
        assert "Heading level must be between 1 and 6" in results[0]["error"]
        assert results[1]["ok"] is True
        assert len(session.pending_diffs) == 1

    def test_add_unknown_anchor(self, tools):
        tools.list_blocks()
        assert tools.add_block("ghost", "paragraph", "x") == 'Error: Block "ghost" not found'

    def test_add_can_anchor_on_pending_block(self, tools, session):
        tools.list_blocks()
        tools.add_block(_ids(session)[0], "heading", "Objectives", level=2)
        pending_id = session.pending_diffs[0].new_block_id

        output = tools.add_block(pending_id, "list-item", "Explain photosynthesis", level=0)
        assert output.startswith(f"Created pending add after {pending_id}.")

    def test_add_blocks_chained(self, tools, session):
        """Entries can anchor on new_block_ids allocated earlier in the call."""
        tools.list_blocks()
        anchor = _ids(session)[-1]

        first = json.loads(
            tools.add_blocks([{"after_block_id": anchor, "type": "heading", "content": "Steps", "level": 2}])
        )["results"][0]
        data = json.loads(
            tools.add_blocks(
                [
                    {"after_block_id": first["new_block_id"], "type": "list-item", "content": "Plant", "level": 0},
                    {"after_block_id": "ghost", "type": "paragraph", "content": "lost"},
                    {"after_block_id": anchor, "type": "paragraph", "content": ""},
                ]
            )
        )
        results = data["results"]

        assert first["ok"] is True
        assert results[0]["ok"] is True
        assert results[1] == {"after_block_id": "ghost", "ok": False, "error": "Anchor block not found"}
        assert results[2]["ok"] is False

        result = session.apply_all_diffs()
        assert result.updated_lesson.endswith("## Steps\n\n- Plant")

    def test_add_blocks_guarded(self, tools, session):
        data = json.loads(tools.add_blocks([{"type": "paragraph", "content": "x"}]))

        assert data["results"][0]["ok"] is False
        assert "list_blocks" in data["results"][0]["error"]
        assert session.pending_diffs == []


class TestDeleteTools:
    """Tests for delete_block and delete_blocks."""

    def test_delete_requires_read(self, tools, session):
        block_id = _ids(session)[2]
        tools.list_blocks()
        assert "read_blocks" in tools.delete_block(block_id)

    def test_delete_creates_pending_diff(self, tools, session):
        block_id = _ids(session)[2]
        tools.read_blocks([block_id])

        output = tools.delete_block(block_id, reason="not needed")

        diff = session.pending_diffs[0]
        assert output.startswith(f"Created pending delete for block {block_id}.")
        assert "Content to delete: Materials..." in output
        assert diff.action == "delete"
        assert diff.old_content == "Materials"

    def test_delete_blocks(self, tools, session):
        ids = _ids(session)
        tools.read_blocks([ids[3], ids[4]])

        data = json.loads(
            tools.delete_blocks(
                [
                    {"block_id": ids[3], "reason": "dup"},
                    {"block_id": ids[5]},
                    {"block_id": ids[4]},
                ]
            )
        )
        results = {r["block_id"]: r for r in data["results"]}

        assert results[ids[3]]["ok"] is True
        assert results[ids[4]]["ok"] is True
        assert results[ids[5]]["ok"] is False
        assert [d.block_id for d in session.pending_diffs] == [ids[3], ids[4]]


class TestDocumentTools:
    """Tests for list_documents and switch_document."""

    def test_list_documents(self, tools, session):
        first_id = session.active_doc_id
        second_id = session.documents.add_document(name="Worksheet", content="Q1", type="worksheet")
        session.documents.update_document_content(second_id, "Q1 revised")

        output = tools.list_documents()

        assert output.startswith("Documents (2):")
        assert f"→ [{first_id}] Plant Growth (lesson, 7 blocks)" in output
        assert f"  [{second_id}] Worksheet* (worksheet, 1 blocks)" in output

    def test_list_documents_empty(self):
        assert EditorTools(EditorSession()).list_documents() == "No documents open."

    def test_switch_document_resets_guard(self, tools, session):
        second_id = session.documents.add_document(name="Worksheet", content="Q1")
        tools.list_blocks()

        output = tools.switch_document(second_id)

        assert output.startswith("Switched to: Worksheet (custom, 1 blocks)")
        assert session.active_doc_id == second_id
        assert session.guard.has_read_document() is False

    def test_switch_unknown_document(self, tools, session):
        output = tools.switch_document("doc-missing")
        assert output == f'Error: Document "doc-missing" not found. Available: {session.active_doc_id}'
