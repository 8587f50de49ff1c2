"""
Tests for the vault file tools, run through the registry against a
temporary vault.
"""

import pytest

from hermes_voice.vault.store import VaultFileExistsError, VaultFileNotFoundError, VaultPathError


def _last_tool_data(tool_callbacks):
    return tool_callbacks.on_system.call_args.args[1]


class TestListing:

    @pytest.mark.asyncio
    async def test_list_directory(self, registry, tool_context):
        result = await registry.execute("list_directory", {}, tool_context)

        assert result == {"files": ["notes.md", "projects/ideas.md"]}

    @pytest.mark.asyncio
    async def test_list_vault_files_paginates(self, registry, tool_context, vault):
        for i in range(5):
            (vault.root / f"n{i}.md").write_text("x" * i, encoding="utf-8")

        result = await registry.execute(
            "list_vault_files",
            {"limit": 2, "offset": 1, "sortBy": "name", "sortOrder": "asc"},
            tool_context,
        )

        assert result["total"] == 7
        assert [f["path"] for f in result["files"]] == ["n0.md", "n1.md"]
        assert set(result["files"][0]) == {"path", "name", "mtime", "size"}

    @pytest.mark.asyncio
    async def test_list_vault_files_filter(self, registry, tool_context):
        result = await registry.execute("list_vault_files", {"filter": "IDEA"}, tool_context)

        assert [f["path"] for f in result["files"]] == ["projects/ideas.md"]

    @pytest.mark.asyncio
    async def test_folder_tree(self, registry, tool_context, vault):
        (vault.root / "projects" / "archive").mkdir()

        result = await registry.execute("get_folder_tree", {}, tool_context)

        assert result == {"folders": ["projects", "projects/archive"]}

    @pytest.mark.asyncio
    async def test_folder_tree_of_folder(self, registry, tool_context):
        result = await registry.execute("get_folder_tree", {"folder": "projects"}, tool_context)

        assert result == {"folders": ["projects/ideas.md"]}


class TestContent:

    @pytest.mark.asyncio
    async def test_read_file_updates_file_state(self, registry, tool_context, tool_callbacks):
        result = await registry.execute("read_file", {"filename": "projects/ideas.md"}, tool_context)

        assert result == {"content": "Idea one\nidea two"}
        tool_callbacks.on_file_state.assert_called_once_with("projects", "projects/ideas.md")
        assert tool_context.current_note == "projects/ideas.md"

    @pytest.mark.asyncio
    async def test_read_missing_file(self, registry, tool_context):
        with pytest.raises(VaultFileNotFoundError):
            await registry.execute("read_file", {"filename": "ghost.md"}, tool_context)

    @pytest.mark.asyncio
    async def test_path_escape_blocked(self, registry, tool_context):
        with pytest.raises(VaultPathError):
            await registry.execute("read_file", {"filename": "../../etc/passwd"}, tool_context)

    @pytest.mark.asyncio
    async def test_create_file_with_parents(self, registry, tool_context, vault, tool_callbacks):
        result = await registry.execute(
            "create_file", {"filename": "journal/2026/today.md", "content": "line 1\nline 2"}, tool_context
        )

        assert result == {"status": "created"}
        assert vault.read("journal/2026/today.md") == "line 1\nline 2"
        assert _last_tool_data(tool_callbacks).additions == 2
        tool_callbacks.on_file_state.assert_called_once_with("journal/2026", "journal/2026/today.md")

    @pytest.mark.asyncio
    async def test_create_existing_file_fails(self, registry, tool_context):
        with pytest.raises(VaultFileExistsError):
            await registry.execute("create_file", {"filename": "notes.md", "content": "x"}, tool_context)

    @pytest.mark.asyncio
    async def test_update_file_counts_changes(self, registry, tool_context, vault, tool_callbacks):
        await registry.execute("update_file", {"filename": "notes.md", "content": "alpha\ndelta"}, tool_context)

        assert vault.read("notes.md") == "alpha\ndelta"
        data = _last_tool_data(tool_callbacks)
        assert (data.additions, data.removals) == (1, 2)
        assert data.old_content == "alpha\nbeta\ngamma"

    @pytest.mark.asyncio
    async def test_update_missing_file_fails(self, registry, tool_context):
        with pytest.raises(VaultFileNotFoundError):
            await registry.execute("update_file", {"filename": "new.md", "content": "x"}, tool_context)

    @pytest.mark.asyncio
    @pytest.mark.parametrize("args, expected", [
        ({"operation": "append", "text": "delta"}, "alpha\nbeta\ngamma\ndelta"),
        ({"operation": "replace_line", "text": "BETA", "lineNumber": 2}, "alpha\nBETA\ngamma"),
        ({"operation": "remove_line", "lineNumber": 1}, "beta\ngamma"),
    ])
    async def test_edit_file(self, registry, tool_context, vault, args, expected):
        result = await registry.execute("edit_file", {"filename": "notes.md", **args}, tool_context)

        assert result == {"status": "edited"}
        assert vault.read("notes.md") == expected

    @pytest.mark.asyncio
    async def test_edit_file_bad_line(self, registry, tool_context):
        with pytest.raises(ValueError, match="Invalid line number"):
            await registry.execute(
                "edit_file", {"filename": "notes.md", "operation": "remove_line", "lineNumber": 9}, tool_context
            )


class TestOrganisation:

    @pytest.mark.asyncio
    async def test_rename_file(self, registry, tool_context, vault):
        result = await registry.execute(
            "rename_file", {"oldFilename": "notes.md", "newFilename": "renamed.md"}, tool_context
        )

        assert result == {"status": "renamed", "from": "notes.md", "to": "renamed.md"}
        assert vault.read("renamed.md") == "alpha\nbeta\ngamma"

    @pytest.mark.asyncio
    async def test_move_file_refuses_existing_target(self, registry, tool_context):
        with pytest.raises(VaultFileExistsError):
            await registry.execute(
                "move_file", {"sourcePath": "notes.md", "targetPath": "projects/ideas.md"}, tool_context
            )

    @pytest.mark.asyncio
    async def test_move_file(self, registry, tool_context, vault):
        await registry.execute("move_file", {"sourcePath": "notes.md", "targetPath": "projects/notes.md"}, tool_context)

        assert vault.list_markdown_files() == ["projects/ideas.md", "projects/notes.md"]

    @pytest.mark.asyncio
    async def test_delete_moves_to_trash(self, registry, tool_context, vault, tool_callbacks):
        result = await registry.execute("delete_file", {"filename": "projects/ideas.md"}, tool_context)

        assert result == {"status": "moved_to_trash", "filename": "projects/ideas.md"}
        assert vault.list_markdown_files() == ["notes.md"]
        trashed = list((vault.root / "chat history" / "trash").iterdir())
        assert len(trashed) == 1
        assert trashed[0].name.endswith("-ideas.md")
        tool_callbacks.on_file_state.assert_called_once_with("projects", None)

    @pytest.mark.asyncio
    async def test_create_directory(self, registry, tool_context, vault):
        result = await registry.execute("create_directory", {"path": "archive/2025"}, tool_context)

        assert result == {"status": "created", "path": "archive/2025"}
        assert (vault.root / "archive" / "2025").is_dir()


class TestTrash:

    @pytest.mark.asyncio
    async def test_list_trash_newest_first(self, registry, tool_context, vault):
        trash = vault.root / "chat history" / "trash"
        trash.mkdir(parents=True)
        (trash / "2024-01-25T15-30-45-123Z-old.md").write_text("old", encoding="utf-8")
        (trash / "2025-03-01T08-00-00-000Z-new.md").write_text("new!", encoding="utf-8")
        (trash / "stray.md").write_text("no timestamp", encoding="utf-8")

        result = await registry.execute("list_trash", {}, tool_context)

        assert result["total"] == 2
        assert result["shown"] == 2
        assert [f["originalName"] for f in result["files"]] == ["new.md", "old.md"]
        assert result["files"][0]["trashPath"] == "chat history/trash/2025-03-01T08-00-00-000Z-new.md"
        assert result["files"][0]["size"] == 4

    @pytest.mark.asyncio
    async def test_list_trash_empty(self, registry, tool_context):
        result = await registry.execute("list_trash", {}, tool_context)

        assert result["files"] == []
        assert result["total"] == 0

    @pytest.mark.asyncio
    async def test_delete_then_restore(self, registry, tool_context, vault, tool_callbacks):
        await registry.execute("delete_file", {"filename": "notes.md"}, tool_context)
        [entry] = (await registry.execute("list_trash", {}, tool_context))["files"]

        result = await registry.execute("restore_from_trash", {"trash_filename": entry["trashFilename"]}, tool_context)

        assert result["status"] == "restored"
        assert result["restoredPath"] == "notes.md"
        assert vault.read("notes.md") == "alpha\nbeta\ngamma"
        assert vault.list_trash() == ([], 0)
        tool_callbacks.on_file_state.assert_called_with("/", "notes.md")

    @pytest.mark.asyncio
    async def test_restore_to_target_path(self, registry, tool_context, vault):
        await registry.execute("delete_file", {"filename": "projects/ideas.md"}, tool_context)
        [entry] = vault.list_trash()[0]

        result = await registry.execute(
            "restore_from_trash",
            {"trash_filename": entry.trash_path, "target_path": "archive/ideas.md"},
            tool_context,
        )

        assert result["restoredPath"] == "archive/ideas.md"
        assert vault.list_markdown_files() == ["archive/ideas.md", "notes.md"]

    @pytest.mark.asyncio
    async def test_restore_refuses_existing_target(self, registry, tool_context, vault):
        await registry.execute("delete_file", {"filename": "notes.md"}, tool_context)
        vault.create("notes.md", "replacement")
        [entry] = vault.list_trash()[0]

        with pytest.raises(VaultFileExistsError):
            await registry.execute("restore_from_trash", {"trash_filename": entry.trash_filename}, tool_context)

    @pytest.mark.asyncio
    async def test_restore_only_from_trash(self, registry, tool_context):
        with pytest.raises(VaultPathError):
            await registry.execute("restore_from_trash", {"trash_filename": "projects/ideas.md"}, tool_context)

    @pytest.mark.asyncio
    async def test_restore_missing(self, registry, tool_context):
        with pytest.raises(VaultFileNotFoundError):
            await registry.execute("restore_from_trash", {"trash_filename": "nothing-here.md"}, tool_context)


class TestConversationTools:

    @pytest.mark.asyncio
    async def test_topic_switch(self, registry, tool_context):
        result = await registry.execute("topic_switch", {"summary": "Talked about gardening"}, tool_context)

        assert result == {"status": "context_reset"}

    @pytest.mark.asyncio
    async def test_end_conversation_requests_stop(self, registry, tool_context, tool_callbacks):
        result = await registry.execute("end_conversation", {}, tool_context)

        assert result == {"status": "conversation_ended"}
        tool_callbacks.on_stop_session.assert_called_once_with()
