import itertools

import pytest

from backtree.errors import MalformedPath, PathCollision
from backtree.fs_index import FileSystemIndex, split_path


FILES = {
    "Library/Cookies/a": "a",
    "Library/Cookies/b": "b",
    "Library/Preferences/com.example.test.plist": "c",
    "top.txt": "d",
    "Documents/deep/er/still/file": "e",
}


def test_walk_yields_exactly_inserted_files():
    index = FileSystemIndex()
    for path, cid in FILES.items():
        index.add_file(path, cid)

    seen = {}

    def visit(path, cid):
        assert path not in seen, f"duplicate {path}"
        seen[path] = cid

    assert index.walk(visit) is None
    assert seen == FILES
    assert index.file_count() == len(FILES)


@pytest.mark.parametrize("order", list(itertools.permutations(sorted(FILES)))[:24])
def test_walk_is_independent_of_insertion_order(order):
    index = FileSystemIndex()
    for path in order:
        index.add_file(path, FILES[path])
    assert dict(index.files()) == FILES


def test_file_under_root_has_no_leading_separator():
    index = FileSystemIndex()
    index.add_file("x", "1")
    assert index.files() == [("x", "1")]


def test_file_then_child_collides():
    index = FileSystemIndex()
    index.add_file("a/b", "1")
    with pytest.raises(PathCollision) as exc:
        index.add_file("a/b/c", "2")
    assert "a/b/c" in str(exc.value)
    assert index.file_count() == 1


def test_child_then_file_collides():
    index = FileSystemIndex()
    index.add_file("a/b/c", "1")
    with pytest.raises(PathCollision):
        index.add_file("a/b", "2")
    assert dict(index.files()) == {"a/b/c": "1"}


def test_duplicate_leaf_last_write_wins():
    index = FileSystemIndex()
    index.add_file("a/b", "old")
    index.add_file("a/b", "new")
    assert index.files() == [("a/b", "new")]
    assert index.file_count() == 1


@pytest.mark.parametrize("bad", ["", "/abs/path", "a//b", "a/./b", "a/../b", "..", "a/b/"])
def test_malformed_paths_rejected(bad):
    index = FileSystemIndex()
    with pytest.raises(MalformedPath):
        index.add_file(bad, "1")
    assert index.file_count() == 0
    assert index.files() == []


def test_split_path():
    assert split_path("L/C/a") == ["L", "C", "a"]
    assert split_path("a.b..c") == ["a.b..c"]


def test_walk_stops_at_first_error_value():
    index = FileSystemIndex()
    for i in range(10):
        index.add_file(f"d/f{i}", str(i))

    visited = []

    def visit(path, cid):
        visited.append(path)
        if len(visited) == 3:
            return ValueError(path)
        return None

    err = index.walk(visit)
    assert isinstance(err, ValueError)
    assert str(err) == visited[-1]
    assert len(visited) == 3


def test_components_are_interned_once():
    index = FileSystemIndex()
    index.add_file("Library/a", "1")
    index.add_file("Library/b", "2")
    index.add_file("Other/Library/c", "3")
    # Library, a, b, Other, c
    assert len(index.string_pool) == 5
