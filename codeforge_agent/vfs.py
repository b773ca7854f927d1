"""In-memory virtual file tree.

The tree is a tuple of frozen :class:`FileNode` objects. Every mutation
returns a new tuple: the changed node and its ancestors are rebuilt, all
other subtrees are shared. A mutation that cannot be applied (missing
parent, wrong kind, name collision) returns the *same* tuple, so callers
detect failure by identity or by a follow-up lookup, never by exception.
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, Iterator, List, Optional, Set, Tuple

ROOT_PATH = "/project"
SEP = "/"
FILE = "file"
FOLDER = "folder"


@dataclass(frozen=True)
class FileNode:
    id: str
    name: str
    kind: str
    path: str
    content: Optional[str] = None
    children: Optional[Tuple["FileNode", ...]] = None
    expanded: bool = False

    @property
    def is_file(self) -> bool:
        return self.kind == FILE

    @property
    def is_folder(self) -> bool:
        return self.kind == FOLDER

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": self.id,
            "name": self.name,
            "type": self.kind,
            "path": self.path,
        }
        if self.is_file:
            data["content"] = self.content
        else:
            data["expanded"] = self.expanded
            data["children"] = [child.to_dict() for child in self.children or ()]
        return data

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "FileNode":
        kind = data.get("type") or data.get("kind") or FILE
        if kind == FOLDER:
            return cls(
                id=data["id"], name=data["name"], kind=FOLDER, path=data["path"],
                children=tuple(cls.from_dict(c) for c in data.get("children") or []),
                expanded=bool(data.get("expanded", False)),
            )
        return cls(id=data["id"], name=data["name"], kind=FILE, path=data["path"],
                   content=data.get("content", ""))


Tree = Tuple[FileNode, ...]


def generate_id(kind: str) -> str:
    return f"{kind}-{uuid.uuid4().hex[:10]}"


def make_file(path: str, content: str = "", node_id: Optional[str] = None) -> FileNode:
    return FileNode(id=node_id or generate_id(FILE), name=basename(path), kind=FILE,
                    path=path, content=content)


def make_folder(path: str, children: Tuple[FileNode, ...] = (), expanded: bool = False,
                node_id: Optional[str] = None) -> FileNode:
    return FileNode(id=node_id or generate_id(FOLDER), name=basename(path), kind=FOLDER,
                    path=path, children=tuple(children), expanded=expanded)


# ── Paths ─────────────────────────────────────────


def normalize_path(path: Optional[str], root: str = ROOT_PATH) -> str:
    """Map any path spelling the model might use onto an absolute tree path.

    ``""``, ``"."`` and ``"./"`` are the root; ``./x`` and bare ``x`` are
    root-relative; ``project/x`` is accepted as the root folder spelled
    without its leading separator. ``.`` segments and repeated or trailing
    separators are dropped; ``..`` never climbs above ``/``.
    """
    raw = (path or "").strip()
    root_parts = [p for p in root.split(SEP) if p]

    if raw.startswith(SEP):
        parts: List[str] = []
        rest = raw
    else:
        segments = [p for p in raw.split(SEP) if p and p != "."]
        if segments and root_parts and segments[0] == root_parts[0]:
            parts = []
        else:
            parts = list(root_parts)
        rest = SEP.join(segments)

    for segment in rest.split(SEP):
        if not segment or segment == ".":
            continue
        if segment == "..":
            if parts:
                parts.pop()
            continue
        parts.append(segment)

    return SEP + SEP.join(parts) if parts else SEP


def parent_path(path: str) -> str:
    head, _, _ = path.rstrip(SEP).rpartition(SEP)
    return head or SEP


def basename(path: str) -> str:
    return path.rstrip(SEP).rpartition(SEP)[2]


def join_path(parent: str, name: str) -> str:
    if parent == SEP:
        return SEP + name
    return parent.rstrip(SEP) + SEP + name


def is_valid_name(name: Optional[str]) -> bool:
    if not name or not name.strip():
        return False
    return SEP not in name and name not in (".", "..")


# ── Lookup ────────────────────────────────────────


def iter_nodes(tree: Tree) -> Iterator[FileNode]:
    """Depth-first, pre-order walk over every node."""
    for node in tree:
        yield node
        if node.children:
            yield from iter_nodes(node.children)


def find_by_path(tree: Tree, path: Optional[str], root: str = ROOT_PATH) -> Optional[FileNode]:
    target = normalize_path(path, root)
    for node in iter_nodes(tree):
        if node.path == target:
            return node
    lowered = target.lower()
    for node in iter_nodes(tree):
        if node.path.lower() == lowered:
            return node
    return None


def find_by_name(tree: Tree, name: Optional[str]) -> Optional[FileNode]:
    if not name:
        return None
    lowered = name.lower()
    for node in iter_nodes(tree):
        if node.name.lower() == lowered:
            return node
    return None


def find_by_id(tree: Tree, node_id: Optional[str]) -> Optional[FileNode]:
    if not node_id:
        return None
    for node in iter_nodes(tree):
        if node.id == node_id:
            return node
    return None


def collect_ids(node: FileNode) -> Set[str]:
    ids = {node.id}
    for child in node.children or ():
        ids |= collect_ids(child)
    return ids


def display_children(node: FileNode) -> List[FileNode]:
    """Children ordered for display: folders first, then files, by name."""
    return sorted(node.children or (), key=lambda c: (c.kind != FOLDER, c.name.lower()))


# ── Mutation ──────────────────────────────────────

_DELETE = object()


def _transform(tree: Tree, node_id: str, fn: Callable[[FileNode], Any]) -> Tree:
    """Apply ``fn`` to the node with ``node_id``; rebuild only its ancestors.

    ``fn`` returns the replacement node, the same node for a no-op, or
    ``_DELETE`` to drop it.
    """

    def walk(items: Tuple[FileNode, ...]) -> Tuple[Tuple[FileNode, ...], bool]:
        for index, item in enumerate(items):
            if item.id == node_id:
                replacement = fn(item)
                if replacement is item:
                    return items, False
                if replacement is _DELETE:
                    return items[:index] + items[index + 1:], True
                return items[:index] + (replacement,) + items[index + 1:], True
            if item.children:
                children, changed = walk(item.children)
                if changed:
                    return items[:index] + (replace(item, children=children),) + items[index + 1:], True
        return items, False

    new_tree, changed = walk(tree)
    return new_tree if changed else tree


def _add_child(tree: Tree, parent: str, child_name: str, build: Callable[[str], FileNode],
               root: str) -> Tree:
    if not is_valid_name(child_name):
        return tree
    folder = find_by_path(tree, parent, root)
    if folder is None or not folder.is_folder:
        return tree
    if any(c.name == child_name for c in folder.children or ()):
        return tree

    def attach(node: FileNode) -> FileNode:
        new_child = build(join_path(node.path, child_name))
        return replace(node, expanded=True, children=(node.children or ()) + (new_child,))

    return _transform(tree, folder.id, attach)


def add_file(tree: Tree, parent: str, name: str, content: str = "", root: str = ROOT_PATH) -> Tree:
    return _add_child(tree, parent, name, lambda p: make_file(p, content), root)


def add_folder(tree: Tree, parent: str, name: str, root: str = ROOT_PATH) -> Tree:
    return _add_child(tree, parent, name, lambda p: make_folder(p), root)


def _rebase(node: FileNode, new_path: str) -> FileNode:
    if not node.children:
        return replace(node, path=new_path)
    children = tuple(_rebase(c, join_path(new_path, c.name)) for c in node.children)
    return replace(node, path=new_path, children=children)


def rename(tree: Tree, node_id: str, new_name: str) -> Tree:
    """Rename a node; descendant paths are recomputed along with it."""
    node = find_by_id(tree, node_id)
    if node is None or not is_valid_name(new_name):
        return tree
    if node.name == new_name:
        return tree
    siblings = _siblings(tree, node)
    if any(s.name == new_name for s in siblings if s.id != node.id):
        return tree
    new_path = join_path(parent_path(node.path), new_name)
    return _transform(tree, node_id, lambda n: _rebase(replace(n, name=new_name), new_path))


def remove(tree: Tree, node_id: str) -> Tree:
    return _transform(tree, node_id, lambda n: _DELETE)


def set_content(tree: Tree, node_id: str, content: str) -> Tree:
    def update(node: FileNode) -> Any:
        if not node.is_file:
            return node
        return replace(node, content=content)

    return _transform(tree, node_id, update)


def toggle_expand(tree: Tree, node_id: str) -> Tree:
    def flip(node: FileNode) -> Any:
        if not node.is_folder:
            return node
        return replace(node, expanded=not node.expanded)

    return _transform(tree, node_id, flip)


def _siblings(tree: Tree, node: FileNode) -> Tuple[FileNode, ...]:
    for candidate in iter_nodes(tree):
        if candidate.children and any(c.id == node.id for c in candidate.children):
            return candidate.children
    return tree


# ── Serialization ─────────────────────────────────


def tree_to_dicts(tree: Tree) -> List[Dict[str, Any]]:
    return [node.to_dict() for node in tree]


def tree_from_dicts(items: List[Dict[str, Any]]) -> Tree:
    return tuple(FileNode.from_dict(item) for item in items or [])
