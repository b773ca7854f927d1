"""File tools over the virtual workspace: read, list, edit, create.

Each tool reads one snapshot of the tree, resolves its target against it
and writes back only through :class:`~codeforge_agent.workspace.Workspace`.
Failures raise :class:`ToolError`; the registry turns them into failed
results so nothing escapes to the agent loop.
"""

import json

from .. import vfs
from ..errors import ToolError
from ..vfs import Tree
from ..workspace import Workspace
from .results import SUCCESS_MARKER, ToolResult


def read_file(workspace: Workspace, path: str) -> ToolResult:
    tree = workspace.tree
    node = workspace.resolve(path, tree)
    if node is None:
        raise ToolError("read_file", f"Error reading file: File not found at path {path}")
    if not node.is_file:
        raise ToolError("read_file", f"Error reading file: {path} is not a file")
    return ToolResult.success(node.content or "")


def list_files(workspace: Workspace, path: str = ".") -> ToolResult:
    tree = workspace.tree
    node = workspace.resolve(path or ".", tree)
    if node is None:
        raise ToolError("list_files", f"Error listing files: Directory not found at path {path}")
    if not node.is_folder:
        raise ToolError("list_files", f"Error listing files: {path} is not a directory")
    names = [f"{c.name}/" if c.is_folder else c.name for c in node.children or ()]
    return ToolResult.success(json.dumps(names, indent=2))


def edit_file(workspace: Workspace, path: str, old_str: str, new_str: str) -> ToolResult:
    """Replace every occurrence of ``old_str``.

    A missing file is created when ``old_str`` is empty. An empty
    ``old_str`` on an existing file only applies when that file is empty.
    """
    if not path or old_str == new_str:
        raise ToolError("edit_file", "Invalid input parameters: path is required and "
                                     "old_str must differ from new_str.")
    if not isinstance(old_str, str) or not isinstance(new_str, str):
        raise ToolError("edit_file", "Invalid input parameters: old_str and new_str must be strings.")

    tree = workspace.tree
    node = workspace.resolve(path, tree)

    if node is None:
        if old_str != "":
            raise ToolError("edit_file", f"File not found at path {path}. "
                                         "Use create_file to make a new file.")
        return _create(workspace, tree, path, new_str, verb="Created new file")

    if not node.is_file:
        raise ToolError("edit_file", f"Error: {path} is not a file")

    content = node.content or ""
    if old_str == "":
        if content:
            raise ToolError("edit_file", "old_str is empty but the file already has content. "
                                         "Provide the exact text to replace.")
        workspace.set_content(node.id, new_str)
        return ToolResult.success(f"{SUCCESS_MARKER} File edited successfully.")

    if old_str not in content:
        raise ToolError("edit_file", f"old_str not found in file {node.path}. "
                                     "Use read_file to see the current content, then retry "
                                     "with the exact text from the file.")

    count = content.count(old_str)
    workspace.set_content(node.id, content.replace(old_str, new_str))
    suffix = f" ({count} replacements)" if count > 1 else ""
    return ToolResult.success(f"{SUCCESS_MARKER} File edited successfully.{suffix}")


def create_file(workspace: Workspace, path: str, content: str) -> ToolResult:
    if not path:
        raise ToolError("create_file", "Invalid input parameters: path is required.")
    if not isinstance(content, str):
        raise ToolError("create_file", "Invalid input parameters: content must be a string.")

    tree = workspace.tree
    # exact target only; a bare name must not match a nested file
    node = vfs.find_by_path(tree, path, workspace.root)
    if node is not None:
        if node.is_folder:
            raise ToolError("create_file", f"{path} is a directory; refusing to overwrite it with a file")
        workspace.set_content(node.id, content)
        return ToolResult.success(f"{SUCCESS_MARKER} Updated file at {path}")
    return _create(workspace, tree, path, content, verb="Created new file")


def _create(workspace: Workspace, tree: Tree, path: str, content: str, verb: str) -> ToolResult:
    target = workspace.normalize(path)
    parent = vfs.find_by_path(tree, vfs.parent_path(target), workspace.root)
    if parent is None or not parent.is_folder:
        raise ToolError("create_file", f"Failed to create file: Parent directory not found "
                                       f"for {path}")
    created = workspace.add_file(parent.path, vfs.basename(target), content)
    if created is None or not created.is_file:
        raise ToolError("create_file", f"Failed to create file at {path}")
    return ToolResult.success(f"{SUCCESS_MARKER} {verb} at {path}")
