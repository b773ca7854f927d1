"""Tests for the Workspace owner and the tab strip."""

from codeforge_agent.tabs import TabStrip
from codeforge_agent.workspace import Workspace


class TestWorkspace:
    def test_resolve_bare_name_fallback(self, workspace):
        assert workspace.resolve("styles.css").id == "file-2"
        assert workspace.resolve(".").id == "folder-1"
        assert workspace.resolve("nope.txt") is None

    def test_resolve_prefers_exact_path(self, workspace):
        workspace.add_file("/project", "index.tsx", "root copy")
        assert workspace.resolve("index.tsx").content == "root copy"
        assert workspace.resolve("src/index.tsx").id == "file-1"

    def test_resolve_against_snapshot(self, workspace):
        snapshot = workspace.tree
        workspace.delete("file-1")
        assert workspace.resolve("src/index.tsx") is None
        assert workspace.resolve("src/index.tsx", snapshot).id == "file-1"

    def test_add_file_returns_node_or_none(self, workspace):
        node = workspace.add_file("src", "App.tsx", "app")
        assert node.path == "/project/src/App.tsx"
        assert workspace.add_file("src", "App.tsx") is None

    def test_delete_clears_active_and_notifies(self, workspace):
        seen = []
        workspace.on_delete(seen.append)
        workspace.set_active_file("file-1")
        removed = workspace.delete("folder-2")
        assert removed == {"folder-2", "file-1", "file-2"}
        assert workspace.active_file_id is None
        assert seen == [removed]

    def test_delete_missing_is_empty(self, workspace):
        assert workspace.delete("nope") == set()

    def test_replace_tree_drops_stale_active(self, workspace):
        workspace.set_active_file("file-1")
        workspace.replace_tree(())
        assert workspace.active_file is None

    def test_mutators_report_change(self, workspace):
        assert workspace.rename("file-3", "pkg.json") is True
        assert workspace.rename("file-3", "pkg.json") is False
        assert workspace.set_content("folder-2", "x") is False
        assert workspace.toggle_expand("folder-2") is True

    def test_custom_root(self):
        ws = Workspace(root="/app")
        assert ws.resolve("src/index.tsx").path == "/app/src/index.tsx"


class TestTabStrip:
    def test_open_is_idempotent_and_activates(self):
        tabs = TabStrip()
        tabs.open("a", "a.ts")
        tabs.open("b", "b.ts")
        tabs.open("a", "a.ts")
        assert [t.id for t in tabs.tabs] == ["a", "b"]
        assert tabs.active_id == "a"

    def test_close_active_falls_back_to_last(self):
        tabs = TabStrip()
        for tab_id in ("a", "b", "c"):
            tabs.open(tab_id, tab_id)
        tabs.activate("b")
        assert tabs.close("b") is True
        assert tabs.active_id == "c"
        assert tabs.close("b") is False

    def test_close_last_tab_clears_active(self):
        tabs = TabStrip()
        tabs.open("a", "a")
        tabs.close("a")
        assert tabs.active_id is None and len(tabs) == 0

    def test_delete_listener_closes_tabs(self, workspace):
        tabs = TabStrip()
        workspace.on_delete(tabs.close_many)
        tabs.open("file-1", "index.tsx")
        tabs.open("file-3", "package.json")
        workspace.delete("folder-2")
        assert [t.id for t in tabs.tabs] == ["file-3"]

    def test_rename(self):
        tabs = TabStrip()
        tabs.open("a", "old")
        tabs.rename("a", "new")
        assert tabs.get("a").name == "new"
