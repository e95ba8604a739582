from __future__ import annotations
from typing import Dict, List


class StringPool:
    """
    Arena of unique path-component strings.

    `intern()` hands out small `StringId` handles (pool + index). Handles compare
    and hash by the text they resolve to, so two handles for equal text from the
    same pool are interchangeable as dict keys. No eviction; the pool lives for
    one index build. Not safe for concurrent mutation.
    """

    def __init__(self):
        self._pool: List[str] = []
        self._idx_map: Dict[str, int] = {}

    def intern(self, s: str) -> "StringId":
        idx = self._idx_map.get(s)
        if idx is None:
            self._pool.append(s)
            idx = len(self._pool) - 1
            self._idx_map[s] = idx
        return StringId(self, idx)

    def resolve(self, idx: int) -> str:
        return self._pool[idx]

    def __len__(self) -> int:
        return len(self._pool)


class StringId:
    __slots__ = ("_pool", "_idx")

    def __init__(self, pool: StringPool, idx: int):
        self._pool = pool
        self._idx = idx

    @property
    def text(self) -> str:
        return self._pool.resolve(self._idx)

    def __hash__(self) -> int:
        return hash(self.text)

    def __eq__(self, other) -> bool:
        if not isinstance(other, StringId):
            return NotImplemented
        return self.text == other.text

    def __str__(self) -> str:
        return self.text

    def __repr__(self) -> str:
        return f"StringId({self.text!r})"
