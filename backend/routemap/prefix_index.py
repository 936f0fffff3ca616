from __future__ import annotations

import re
from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any

from .errors import QueryError

_NON_LETTERS_RE = re.compile(r"[^a-zA-Z ]")


def normalize_name(value: str) -> str:
    """Strip everything but ASCII letters and spaces, then lowercase."""
    return _NON_LETTERS_RE.sub("", value).lower()


@dataclass
class _TrieNode:
    children: dict[str, _TrieNode] = field(default_factory=dict)
    terminal: bool = False
    names: list[str] = field(default_factory=list)


class PrefixIndex:
    """Character trie from normalized names to original-case names.

    Lookups return names with unordered-set semantics; callers must not rely
    on the order of the returned list.
    """

    def __init__(self) -> None:
        self._root = _TrieNode()
        self._size = 0

    def __len__(self) -> int:
        return self._size

    def insert(self, name: str) -> None:
        if name is None:
            raise QueryError("invalid_argument", "cannot index a null name")
        node = self._root
        for ch in normalize_name(name):
            node = node.children.setdefault(ch, _TrieNode())
        node.terminal = True
        node.names.append(name)
        self._size += 1

    def _walk(self, key: str) -> _TrieNode | None:
        node = self._root
        for ch in key:
            nxt = node.children.get(ch)
            if nxt is None:
                return None
            node = nxt
        return node

    def lookup(self, prefix: str | None) -> list[str]:
        if prefix is None:
            raise QueryError("invalid_argument", "prefix must be a string, got null")
        start = self._walk(normalize_name(prefix))
        if start is None:
            return []
        found: list[str] = []
        stack = [start]
        while stack:
            node = stack.pop()
            if node.terminal:
                found.extend(node.names)
            stack.extend(node.children.values())
        return found


@dataclass(frozen=True)
class LocationRecord:
    id: int
    lon: float
    lat: float
    name: str

    def as_dict(self) -> dict[str, Any]:
        return {"lat": self.lat, "lon": self.lon, "name": self.name, "id": self.id}


class LocationIndex:
    """Normalized name -> every location record sharing that normalized form."""

    def __init__(self) -> None:
        self._by_name: dict[str, list[LocationRecord]] = {}

    def __len__(self) -> int:
        return sum(len(records) for records in self._by_name.values())

    def records(self) -> Iterator[LocationRecord]:
        for records in self._by_name.values():
            yield from records

    def add(self, record: LocationRecord) -> None:
        self._by_name.setdefault(normalize_name(record.name), []).append(record)

    def get(self, name: str | None) -> list[LocationRecord]:
        if name is None:
            raise QueryError("invalid_argument", "location name must be a string, got null")
        return list(self._by_name.get(normalize_name(name), ()))
