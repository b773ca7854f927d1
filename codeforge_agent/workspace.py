"""Workspace: the single owner of the current file tree.

The editor commands and the agent tools both mutate files through this
object. Each mutation swaps ``tree`` for a new tuple under a lock, so
readers holding an older snapshot are never affected.
"""

import threading
from typing import Callable, List, Optional, Set

from . import vfs
from .logger import get_logger
from .seed import initial_file_system
from .vfs import FileNode, Tree

_log = get_logger(__name__)

DeleteListener = Callable[[Set[str]], None]


class Workspace:
    def __init__(self, tree: Optional[Tree] = None, root: str = vfs.ROOT_PATH):
        self.root = root
        self._tree: Tree = tuple(tree) if tree is not None else initial_file_system(root)
        self.active_file_id: Optional[str] = None
        self._lock = threading.RLock()
        self._delete_listeners: List[DeleteListener] = []

    @property
    def tree(self) -> Tree:
        return self._tree

    def replace_tree(self, tree: Tree):
        with self._lock:
            self._tree = tuple(tree)
            if vfs.find_by_id(self._tree, self.active_file_id) is None:
                self.active_file_id = None

    def on_delete(self, listener: DeleteListener):
        """Call ``listener`` with the removed ids after every delete."""
        self._delete_listeners.append(listener)

    # ── Lookup ──

    def normalize(self, path: Optional[str]) -> str:
        return vfs.normalize_path(path, self.root)

    def lookup(self, path: Optional[str]) -> Optional[FileNode]:
        return vfs.find_by_path(self._tree, path, self.root)

    def get(self, node_id: Optional[str]) -> Optional[FileNode]:
        return vfs.find_by_id(self._tree, node_id)

    def resolve(self, path: Optional[str], tree: Optional[Tree] = None) -> Optional[FileNode]:
        """Path lookup with a bare-name fallback for separator-free input.

        Pass ``tree`` to resolve against a snapshot taken earlier.
        """
        tree = self._tree if tree is None else tree
        node = vfs.find_by_path(tree, path, self.root)
        if node is None and path and vfs.SEP not in path and path.strip() != ".":
            node = vfs.find_by_name(tree, path.strip())
        return node

    @property
    def active_file(self) -> Optional[FileNode]:
        return self.get(self.active_file_id)

    def set_active_file(self, node_id: Optional[str]):
        self.active_file_id = node_id

    # ── Mutation ──

    def add_file(self, parent_path: str, name: str, content: str = "") -> Optional[FileNode]:
        """Create a file; returns the new node or ``None`` if nothing changed."""
        with self._lock:
            before = self._tree
            self._tree = vfs.add_file(before, parent_path, name, content, self.root)
            if self._tree is before:
                _log.info("add_file rejected: parent=%s name=%s", parent_path, name)
                return None
            return self.lookup(vfs.join_path(self.normalize(parent_path), name))

    def add_folder(self, parent_path: str, name: str) -> Optional[FileNode]:
        with self._lock:
            before = self._tree
            self._tree = vfs.add_folder(before, parent_path, name, self.root)
            if self._tree is before:
                _log.info("add_folder rejected: parent=%s name=%s", parent_path, name)
                return None
            return self.lookup(vfs.join_path(self.normalize(parent_path), name))

    def rename(self, node_id: str, new_name: str) -> bool:
        with self._lock:
            before = self._tree
            self._tree = vfs.rename(before, node_id, new_name)
            return self._tree is not before

    def delete(self, node_id: str) -> Set[str]:
        """Remove a node and its descendants; returns the removed ids."""
        with self._lock:
            node = self.get(node_id)
            if node is None:
                return set()
            removed = vfs.collect_ids(node)
            self._tree = vfs.remove(self._tree, node_id)
            if self.active_file_id in removed:
                self.active_file_id = None
        for listener in self._delete_listeners:
            listener(removed)
        _log.info("deleted %s (%d nodes)", node.path, len(removed))
        return removed

    def set_content(self, node_id: str, content: str) -> bool:
        with self._lock:
            before = self._tree
            self._tree = vfs.set_content(before, node_id, content)
            return self._tree is not before

    def toggle_expand(self, node_id: str) -> bool:
        with self._lock:
            before = self._tree
            self._tree = vfs.toggle_expand(before, node_id)
            return self._tree is not before
