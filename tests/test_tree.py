"""Tests for the folder tree builder, expand state and row rendering."""

import pytest

from promptshelf.backend.base import PromptEntry
from promptshelf.tree import ExpandState, build_folder_tree, render_tree


def entry(path: str) -> PromptEntry:
    title = path.rsplit("/", 1)[-1].rsplit(".", 1)[0]
    return PromptEntry(id=path, title=title, content="", file_path=path)


class TestBuildFolderTree:
    def test_single_nested_file(self):
        tree = build_folder_tree("/p", ["/p/a"], [entry("/p/a/x.txt")])
        assert tree.root.shape() == {
            "children": {"a": {"children": {}, "files": ["/p/a/x.txt"]}},
            "files": [],
        }

    def test_root_files(self):
        tree = build_folder_tree("/p", [], [entry("/p/top.md")])
        assert tree.root.shape() == {"children": {}, "files": ["/p/top.md"]}

    def test_empty_folders_kept(self):
        tree = build_folder_tree("/p", ["/p/empty", "/p/a/b"], [])
        assert tree.folder_paths == {"/p/empty", "/p/a", "/p/a/b"}
        assert tree.root.file_count() == 0

    def test_leaf_count_and_folder_union(self):
        folders = ["/p/a", "/p/c"]
        entries = [
            entry("/p/a/x.md"),
            entry("/p/a/deep/y.md"),
            entry("/p/b/z.txt"),
            entry("/p/root.md"),
        ]
        tree = build_folder_tree("/p", folders, entries)
        assert tree.root.file_count() == len(entries)
        assert tree.folder_paths == {"/p/a", "/p/c", "/p/a/deep", "/p/b"}

    def test_idempotent(self):
        folders = ["/p/a", "/p/b"]
        entries = [entry("/p/a/x.md"), entry("/p/b/c/y.md")]
        first = build_folder_tree("/p", folders, entries)
        second = build_folder_tree("/p", folders, entries)
        assert first.root.shape() == second.root.shape()

    def test_sibling_prefix_not_treated_as_root(self):
        tree = build_folder_tree("/p", [], [entry("/pa/x.md")])
        assert "/p/pa" in tree.folder_paths

    def test_trailing_separator_on_root(self):
        tree = build_folder_tree("/p/", ["/p/a"], [entry("/p/a/x.md")])
        assert tree.node("/p/a") is not None
        assert tree.node("/p/") is tree.root

    def test_backslash_paths(self):
        tree = build_folder_tree("C:\\p", ["C:\\p\\a"], [entry("C:\\p\\a\\x.md")])
        node = tree.node("C:\\p\\a")
        assert node is not None
        assert [e.file_path for e in node.files] == ["C:\\p\\a\\x.md"]

    def test_lookup_by_path(self):
        e = entry("/p/a/x.md")
        tree = build_folder_tree("/p", [], [e])
        assert tree.entry("/p/a/x.md") is e
        assert tree.entry("/p/missing.md") is None

    def test_empty(self):
        assert build_folder_tree("", [], []).is_empty


class TestExpandState:
    def test_toggle(self):
        state = ExpandState()
        assert state.toggle("/p/a") is True
        assert "/p/a" in state
        assert state.toggle("/p/a") is False
        assert "/p/a" not in state

    def test_survives_rebuild(self):
        state = ExpandState()
        state.toggle("/p/a")
        folders = ["/p/a", "/p/b"]
        tree = build_folder_tree("/p", folders, [])
        rebuilt = build_folder_tree("/p", folders, [])
        assert tree is not rebuilt
        assert state.is_expanded("/p/a")
        assert not state.is_expanded("/p/b")

    def test_rename_prefix(self):
        state = ExpandState()
        state.expand("/p/a")
        state.expand("/p/a/inner")
        state.expand("/p/ab")
        state.rename_prefix("/p/a", "/p/z")
        assert state.is_expanded("/p/z")
        assert state.is_expanded("/p/z/inner")
        assert state.is_expanded("/p/ab")
        assert not state.is_expanded("/p/a")
        assert len(state) == 3


class TestRenderTree:
    @pytest.fixture
    def tree(self):
        return build_folder_tree(
            "/p",
            ["/p/b", "/p/a"],
            [entry("/p/a/x.md"), entry("/p/top.md")],
        )

    def test_collapsed(self, tree):
        rows = list(render_tree(tree, ExpandState()))
        assert [(r.kind, r.name) for r in rows] == [
            ("folder", "a"),
            ("folder", "b"),
            ("file", "top"),
        ]

    def test_expanded_folder_shows_children(self, tree):
        state = ExpandState()
        state.toggle("/p/a")
        rows = list(render_tree(tree, state))
        assert [(r.depth, r.name) for r in rows] == [(0, "a"), (1, "x"), (0, "b"), (0, "top")]
        assert rows[0].expanded is True
        assert rows[1].entry is tree.entry("/p/a/x.md")

    def test_expand_all(self, tree):
        rows = list(render_tree(tree, ExpandState(), expand_all=True))
        assert len(rows) == 4
