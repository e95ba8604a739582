from __future__ import annotations
from dataclasses import dataclass, field
from typing import Callable, Dict, List, Optional, Tuple, TypeVar, Union
import logging

from .errors import MalformedPath, PathCollision
from .interner import StringId, StringPool

logger = logging.getLogger(__name__)

E = TypeVar("E")

# visitor(full_path, content_id) -> None to continue, or an error value to stop
Visitor = Callable[[str, str], Optional[E]]


@dataclass
class FileEntry:
    name: StringId
    content_id: str


@dataclass
class DirEntry:
    name: Optional[StringId]  # None only for the implicit root
    children: Dict[StringId, "Entry"] = field(default_factory=dict)


Entry = Union[FileEntry, DirEntry]


def split_path(path: str) -> List[str]:
    """Split a manifest relative path into leaf-normal components."""
    parts = path.split("/")
    for part in parts:
        if part in ("", ".", ".."):
            raise MalformedPath(f"invalid path {path!r}, unexpected path component {part!r}")
    return parts


class FileSystemIndex:
    """
    In-memory directory tree rebuilt from flat (relative_path, content_id) pairs.

    Intermediate components become directories on first reference; the last
    component becomes a file leaf. A component can never be both a file and a
    directory. A second file at an identical path replaces the first.
    """

    def __init__(self, string_pool: StringPool | None = None):
        self.string_pool = string_pool if string_pool is not None else StringPool()
        self.root = DirEntry(name=None)
        self._file_count = 0

    def file_count(self) -> int:
        return self._file_count

    def add_file(self, path: str, content_id: str) -> None:
        parts = split_path(path)
        current = self.root
        walked: List[str] = []

        for component in parts[:-1]:
            walked.append(component)
            key = self.string_pool.intern(component)
            child = current.children.get(key)
            if child is None:
                child = DirEntry(name=key)
                current.children[key] = child
            elif isinstance(child, FileEntry):
                raise PathCollision(
                    f"cannot add {path!r}: intermediate path {'/'.join(walked)!r} is a file"
                )
            current = child

        key = self.string_pool.intern(parts[-1])
        existing = current.children.get(key)
        if isinstance(existing, DirEntry):
            raise PathCollision(f"cannot add {path!r}: path is already a directory")
        if existing is None:
            self._file_count += 1
        else:
            logger.debug("replacing %s (%s -> %s)", path, existing.content_id, content_id)
        current.children[key] = FileEntry(name=key, content_id=content_id)

    def walk(self, visitor: Visitor) -> Optional[E]:
        """
        Depth-first visit of every file leaf as `visitor(full_path, content_id)`.

        Paths are `/`-joined from the root without a leading separator. Sibling
        order is unspecified. Returns the first non-None value the visitor
        returns (remaining leaves are not visited), or None.
        """
        stack: List[Tuple[str, DirEntry]] = [("", self.root)]
        while stack:
            prefix, node = stack.pop()
            for name, child in node.children.items():
                child_path = f"{prefix}/{name.text}" if prefix else name.text
                if isinstance(child, FileEntry):
                    err = visitor(child_path, child.content_id)
                    if err is not None:
                        return err
                else:
                    stack.append((child_path, child))
        return None

    def files(self) -> List[Tuple[str, str]]:
        out: List[Tuple[str, str]] = []

        def _collect(path: str, content_id: str):
            out.append((path, content_id))

        self.walk(_collect)
        return out
