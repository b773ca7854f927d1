"""Tests for the file tools and the registry dispatch."""

import json

import pytest

from codeforge_agent.errors import ToolError
from codeforge_agent.tools import FAILURE_MARKER, ToolRegistry, ToolResult
from codeforge_agent.tools import file_tools


class TestReadFile:
    def test_reads_content(self, workspace):
        result = file_tools.read_file(workspace, "src/index.tsx")
        assert result.ok
        assert "Hello CodeForge!" in result.message

    def test_bare_name_resolves_nested_file(self, workspace):
        assert "Hello CodeForge!" in file_tools.read_file(workspace, "index.tsx").message

    def test_missing_file(self, workspace):
        with pytest.raises(ToolError) as exc:
            file_tools.read_file(workspace, "src/nope.tsx")
        assert exc.value.message == "Error reading file: File not found at path src/nope.tsx"

    def test_folder_is_not_a_file(self, workspace):
        with pytest.raises(ToolError, match="is not a file"):
            file_tools.read_file(workspace, "src")


class TestListFiles:
    def test_root_listing(self, workspace):
        result = file_tools.list_files(workspace)
        assert json.loads(result.message) == ["src/", "package.json"]

    def test_subfolder(self, workspace):
        result = file_tools.list_files(workspace, "./src")
        assert json.loads(result.message) == ["index.tsx", "styles.css"]

    def test_file_is_not_a_directory(self, workspace):
        with pytest.raises(ToolError, match="is not a directory"):
            file_tools.list_files(workspace, "package.json")

    def test_missing_directory(self, workspace):
        with pytest.raises(ToolError, match="Directory not found"):
            file_tools.list_files(workspace, "lib")


class TestEditFile:
    def test_replaces_all_occurrences(self, workspace):
        workspace.set_content("file-2", "a a a")
        result = file_tools.edit_file(workspace, "src/styles.css", "a", "b")
        assert result.message == "✅ File edited successfully. (3 replacements)"
        assert workspace.get("file-2").content == "b b b"

    def test_single_replacement_message(self, workspace):
        result = file_tools.edit_file(workspace, "src/index.tsx", "Hello CodeForge!", "Hi")
        assert result.message == "✅ File edited successfully."
        assert "<div>Hi</div>" in workspace.get("file-1").content

    def test_replacement_text_is_literal(self, workspace):
        workspace.set_content("file-2", "x")
        file_tools.edit_file(workspace, "src/styles.css", "x", r"\1$&")
        assert workspace.get("file-2").content == r"\1$&"

    def test_same_old_and_new_rejected(self, workspace):
        with pytest.raises(ToolError, match="Invalid input parameters"):
            file_tools.edit_file(workspace, "src/index.tsx", "a", "a")

    def test_old_str_not_found(self, workspace):
        with pytest.raises(ToolError, match="old_str not found"):
            file_tools.edit_file(workspace, "src/index.tsx", "missing text", "x")

    def test_creates_missing_file_when_old_str_empty(self, workspace):
        result = file_tools.edit_file(workspace, "src/App.tsx", "", "export {}")
        assert result.message == "✅ Created new file at src/App.tsx"
        assert workspace.lookup("/project/src/App.tsx").content == "export {}"

    def test_missing_file_with_old_str_fails(self, workspace):
        with pytest.raises(ToolError, match="Use create_file"):
            file_tools.edit_file(workspace, "src/App.tsx", "x", "y")

    def test_empty_old_str_on_non_empty_file_fails(self, workspace):
        with pytest.raises(ToolError, match="already has content"):
            file_tools.edit_file(workspace, "src/index.tsx", "", "x")

    def test_empty_old_str_fills_empty_file(self, workspace):
        workspace.add_file("src", "empty.ts")
        file_tools.edit_file(workspace, "src/empty.ts", "", "let a = 1;")
        assert workspace.lookup("src/empty.ts").content == "let a = 1;"


class TestCreateFile:
    def test_creates_in_existing_folder(self, workspace):
        result = file_tools.create_file(workspace, "./src/NewFile.js", "console.log(1);")
        assert result.message == "✅ Created new file at ./src/NewFile.js"
        node = workspace.lookup("src/NewFile.js")
        assert node.content == "console.log(1);"
        assert node.id.startswith("file-")

    def test_overwrites_existing_file(self, workspace):
        result = file_tools.create_file(workspace, "package.json", "{}")
        assert result.message == "✅ Updated file at package.json"
        assert workspace.get("file-3").content == "{}"

    def test_bare_name_creates_at_root_not_nested_match(self, workspace):
        before = workspace.get("file-1").content
        result = file_tools.create_file(workspace, "index.tsx", "X")
        assert result.message == "✅ Created new file at index.tsx"
        assert workspace.lookup("/project/index.tsx").content == "X"
        assert workspace.get("file-1").content == before

    def test_missing_parent(self, workspace):
        with pytest.raises(ToolError, match="Parent directory not found"):
            file_tools.create_file(workspace, "lib/util.ts", "")

    def test_refuses_folder(self, workspace):
        with pytest.raises(ToolError, match="is a directory"):
            file_tools.create_file(workspace, "src", "x")


class TestRegistry:
    def test_registers_four_tools(self, registry):
        assert registry.names == ["read_file", "list_files", "edit_file", "create_file"]
        assert "edit_file" in registry
        assert "shell" not in registry

    def test_describe_includes_schema(self, registry):
        text = registry.describe()
        assert "- read_file:" in text
        assert '"required": ["path", "old_str", "new_str"]' in text

    def test_execute_never_raises(self, registry):
        result = registry.execute("read_file", {"path": "nope"})
        assert isinstance(result, ToolResult)
        assert not result.ok
        assert result.render() == f"{FAILURE_MARKER} Error reading file: File not found at path nope"

    def test_unknown_tool(self, registry):
        result = registry.execute("delete_file", {})
        assert not result.ok and "Unknown tool" in result.message

    def test_missing_argument(self, registry):
        result = registry.execute("read_file", {})
        assert not result.ok and "Missing argument" in result.message

    def test_non_object_input(self, registry):
        result = registry.execute("read_file", ["src/index.tsx"])
        assert not result.ok and "expected an object" in result.message

    def test_none_input_lists_root(self, registry):
        result = registry.execute("list_files", None)
        assert result.ok and "package.json" in result.message

    def test_unexpected_exception_becomes_failure(self, workspace):
        from codeforge_agent.tools import ToolDefinition

        def boom(**_):
            raise RuntimeError("kaput")

        reg = ToolRegistry(workspace)
        reg.register(ToolDefinition("boom", "explodes", {}, boom))
        result = reg.execute("boom", {})
        assert not result.ok and "RuntimeError: kaput" in result.message
        assert reg.get("boom").invoke({}).startswith(FAILURE_MARKER)
