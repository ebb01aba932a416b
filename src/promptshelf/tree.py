"""Folder tree: flat scan results -> indexed hierarchy, plus expand state.

The tree is rebuilt from scratch on every reload. Expand state lives outside
the tree (keyed by folder path) so a rebuild never collapses the sidebar.
"""

from __future__ import annotations

import re
from collections.abc import Iterable, Iterator
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Literal

if TYPE_CHECKING:
    from promptshelf.backend.base import PromptEntry

_SEPARATORS = re.compile(r"[/\\]")


@dataclass
class FolderNode:
    """One folder. ``expanded`` is not stored here; ask ``ExpandState``."""

    path: str
    children: dict[str, FolderNode] = field(default_factory=dict)
    files: list[PromptEntry] = field(default_factory=list)

    def file_count(self) -> int:
        return len(self.files) + sum(c.file_count() for c in self.children.values())

    def shape(self) -> dict:
        """Structural snapshot (names and file paths) for comparisons."""
        return {
            "children": {name: child.shape() for name, child in self.children.items()},
            "files": [e.file_path for e in self.files],
        }


class FolderTree:
    """A rooted folder hierarchy with O(1) lookup by folder or file path."""

    def __init__(self, root_path: str) -> None:
        self.root_path = _strip_trailing(root_path)
        self._sep = "\\" if "\\" in root_path and "/" not in root_path else "/"
        self.root = FolderNode(self.root_path)
        self._nodes: dict[str, FolderNode] = {}
        self._entries: dict[str, PromptEntry] = {}

    # ── Construction ──────────────────────────────────────────

    def _segments(self, path: str) -> list[str]:
        rel = path
        if path.startswith(self.root_path):
            rest = path[len(self.root_path):]
            if not rest or rest[0] in "/\\" or self.root_path[-1] in "/\\":
                rel = rest
        return [s for s in _SEPARATORS.split(rel) if s]

    def _join(self, parent: str, name: str) -> str:
        if parent.endswith(("/", "\\")):
            return f"{parent}{name}"
        return f"{parent}{self._sep}{name}"

    def _walk_create(self, segments: list[str]) -> FolderNode:
        node = self.root
        for name in segments:
            child = node.children.get(name)
            if child is None:
                child = FolderNode(self._join(node.path, name))
                node.children[name] = child
                self._nodes[child.path] = child
            node = child
        return node

    def add_folder(self, folder_path: str) -> None:
        segments = self._segments(folder_path)
        if segments:
            self._walk_create(segments)

    def add_entry(self, entry: PromptEntry) -> None:
        segments = self._segments(entry.file_path)[:-1]
        self._walk_create(segments).files.append(entry)
        self._entries[entry.file_path] = entry

    # ── Lookup ────────────────────────────────────────────────

    def node(self, path: str) -> FolderNode | None:
        if _strip_trailing(path) == self.root_path:
            return self.root
        return self._nodes.get(path)

    def entry(self, file_path: str) -> PromptEntry | None:
        return self._entries.get(file_path)

    @property
    def folder_paths(self) -> set[str]:
        return set(self._nodes)

    @property
    def is_empty(self) -> bool:
        return not self.root.children and not self.root.files


def _strip_trailing(path: str) -> str:
    stripped = path.rstrip("/\\")
    return stripped or path


def build_folder_tree(
    root_path: str,
    folders: Iterable[str],
    entries: Iterable[PromptEntry],
) -> FolderTree:
    """Build the hierarchy: folders first (empty ones included), then files."""
    tree = FolderTree(root_path)
    for folder in folders:
        tree.add_folder(folder)
    for entry in entries:
        tree.add_entry(entry)
    return tree


class ExpandState:
    """Session-scoped set of open folder paths."""

    def __init__(self) -> None:
        self._open: set[str] = set()

    def __contains__(self, path: str) -> bool:
        return path in self._open

    def is_expanded(self, path: str) -> bool:
        return path in self._open

    def toggle(self, path: str) -> bool:
        """Flip membership, returning the new state."""
        if path in self._open:
            self._open.discard(path)
            return False
        self._open.add(path)
        return True

    def expand(self, path: str) -> None:
        self._open.add(path)

    def collapse(self, path: str) -> None:
        self._open.discard(path)

    def rename_prefix(self, old_path: str, new_path: str) -> None:
        """Re-key a renamed folder and its open descendants."""
        for path in list(self._open):
            if path == old_path:
                self._open.discard(path)
                self._open.add(new_path)
            elif path.startswith(old_path) and path[len(old_path)] in "/\\":
                self._open.discard(path)
                self._open.add(new_path + path[len(old_path):])

    def clear(self) -> None:
        self._open.clear()

    def __len__(self) -> int:
        return len(self._open)


@dataclass(frozen=True)
class TreeRow:
    depth: int
    kind: Literal["folder", "file"]
    name: str
    path: str
    expanded: bool = False
    entry: PromptEntry | None = None


def render_tree(
    tree: FolderTree,
    expand_state: ExpandState,
    *,
    expand_all: bool = False,
) -> Iterator[TreeRow]:
    """Yield display rows: child folders by name, then files in scan order."""

    def _walk(node: FolderNode, depth: int) -> Iterator[TreeRow]:
        for name in sorted(node.children):
            child = node.children[name]
            expanded = expand_all or expand_state.is_expanded(child.path)
            yield TreeRow(depth, "folder", name, child.path, expanded=expanded)
            if expanded:
                yield from _walk(child, depth + 1)
        for entry in node.files:
            yield TreeRow(depth, "file", entry.title, entry.file_path, entry=entry)

    return _walk(tree.root, 0)
