"""
Unit tests for ToolRegistry: registration, schema export and the
execute() dispatch contract.
"""

from unittest.mock import Mock

import pytest

from hermes_voice.tools.adapters.google import GoogleToolAdapter
from hermes_voice.tools.base import Tool, ToolArgumentError, ToolCategory, ToolDefinition, ToolParameter
from hermes_voice.tools.registry import ToolRegistry, UnknownToolError


class BigListTool(Tool):

    @property
    def definition(self):
        return ToolDefinition(
            name="big_list",
            description="Returns many files",
            category=ToolCategory.FILES,
            parameters=[ToolParameter("count", "integer", "How many", required=True)],
        )

    async def execute(self, args, context):
        return {"files": [f"f{i}.md" for i in range(args.count)]}


class FailingTool(Tool):

    @property
    def definition(self):
        return ToolDefinition(name="failing", description="Always fails", category=ToolCategory.FILES)

    async def execute(self, args, context):
        raise RuntimeError("disk on fire")


@pytest.fixture
def small_registry():
    reg = ToolRegistry()
    reg.register(BigListTool)
    reg.register(FailingTool)
    return reg


def _system_statuses(tool_callbacks):
    return [c.args[1].status for c in tool_callbacks.on_system.call_args_list if c.args[1] is not None]


class TestRegistration:

    def test_default_tools_registered(self, registry):
        assert set(registry.list_tools()) == {
            "list_directory", "list_vault_files", "get_folder_tree",
            "read_file", "create_file", "update_file", "edit_file",
            "rename_file", "move_file", "delete_file", "create_directory",
            "list_trash", "restore_from_trash",
            "search_keyword", "search_regexp",
            "search_and_replace_regex_in_file", "search_and_replace_regex_global",
            "topic_switch", "end_conversation",
        }

    def test_disabled_tools_skipped(self):
        reg = ToolRegistry()
        reg.initialize_default_tools(disabled=["delete_file", "search_and_replace_regex_global"])

        assert reg.get("delete_file") is None
        assert reg.get("search_and_replace_regex_global") is None
        assert reg.get("read_file") is not None

    def test_initialize_twice_is_noop(self, registry):
        count = len(registry.list_tools())
        registry.initialize_default_tools()
        assert len(registry.list_tools()) == count

    def test_google_schema(self, registry):
        declarations = {d["name"]: d for d in registry.to_google_schema()}

        read = declarations["read_file"]
        assert read["parameters"]["type"] == "OBJECT"
        assert read["parameters"]["properties"]["filename"]["type"] == "STRING"
        assert read["parameters"]["required"] == ["filename"]
        assert "parameters" not in declarations["list_directory"]
        assert declarations["list_vault_files"]["parameters"]["properties"]["sortBy"]["enum"] == ["mtime", "name", "size"]

    def test_adapter_wraps_declarations(self, registry):
        tools = GoogleToolAdapter(registry).get_tools_config()

        assert len(tools) == 1
        assert len(tools[0]["functionDeclarations"]) == len(registry.list_tools())

    def test_adapter_empty_registry(self):
        assert GoogleToolAdapter(ToolRegistry()).get_tools_config() == []

    def test_prompt_text_lists_tools(self, registry):
        text = registry.to_prompt_text()
        assert text.startswith("TOOLS:")
        assert "- read_file:" in text


class TestExecute:

    @pytest.mark.asyncio
    async def test_unknown_tool_raises_before_pending(self, small_registry, tool_context, tool_callbacks):
        with pytest.raises(UnknownToolError) as exc_info:
            await small_registry.execute("nope", {}, tool_context)

        assert str(exc_info.value) == "Command nope not found"
        tool_callbacks.on_log.assert_called_once()
        assert tool_callbacks.on_log.call_args.args[:2] == ("Tool not found: nope", "error")
        tool_callbacks.on_system.assert_not_called()

    @pytest.mark.asyncio
    async def test_success_logs_timing(self, small_registry, tool_context, tool_callbacks):
        result = await small_registry.execute("big_list", {"count": 3}, tool_context)

        assert result == {"files": ["f0.md", "f1.md", "f2.md"]}
        assert _system_statuses(tool_callbacks) == ["pending"]
        message, kind, duration_ms = tool_callbacks.on_log.call_args.args[:3]
        assert message.startswith("Executed big_list in ")
        assert kind == "action"
        assert isinstance(duration_ms, int)

    @pytest.mark.asyncio
    async def test_existing_id_suppresses_pending(self, small_registry, tool_context, tool_callbacks):
        await small_registry.execute("big_list", {"count": 1}, tool_context, tool_id="ui-42")

        tool_callbacks.on_system.assert_not_called()

    @pytest.mark.asyncio
    async def test_truncation_emits_updated_message(self, small_registry, tool_context, tool_callbacks):
        result = await small_registry.execute("big_list", {"count": 250}, tool_context)

        assert result["shownItems"] == 100
        assert result["totalPages"] == 3
        last_text, last_data = tool_callbacks.on_system.call_args.args
        assert last_data.truncated is True
        assert last_data.total_items == 250
        assert len(last_data.files) == 100
        assert (last_data.current_page, last_data.total_pages) == (1, 3)
        assert last_data.to_dict()["total_pages"] == 3

    @pytest.mark.asyncio
    async def test_handler_error_reported_and_reraised(self, small_registry, tool_context, tool_callbacks):
        with pytest.raises(RuntimeError, match="disk on fire"):
            await small_registry.execute("failing", {}, tool_context)

        assert _system_statuses(tool_callbacks) == ["pending", "error"]
        message, kind, duration_ms, details = tool_callbacks.on_log.call_args.args
        assert message == "Error in failing: disk on fire"
        assert kind == "error"
        assert details["tool_name"] == "failing"
        assert "RuntimeError" in details["stack"]

    @pytest.mark.asyncio
    async def test_invalid_arguments_rejected(self, small_registry, tool_context, tool_callbacks):
        with pytest.raises(ToolArgumentError, match="count"):
            await small_registry.execute("big_list", {"count": "many"}, tool_context)

        assert _system_statuses(tool_callbacks) == ["pending", "error"]


class TestArgumentValidation:

    def test_defaults_and_enums(self, registry):
        tool = registry.get("list_vault_files")

        args = tool.validate_parameters({})
        assert args.limit == 20
        assert args.sortBy == "mtime"

        with pytest.raises(ToolArgumentError):
            tool.validate_parameters({"sortBy": "colour"})

    def test_missing_required(self, registry):
        with pytest.raises(ToolArgumentError, match="filename"):
            registry.get("read_file").validate_parameters({})

    def test_unknown_keys_ignored(self, registry):
        args = registry.get("read_file").validate_parameters({"filename": "a.md", "extra": 1})
        assert args.filename == "a.md"
        assert not hasattr(args, "extra")
