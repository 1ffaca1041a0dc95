# wn_platform/collection.py
# status-partitioned watchlist collection.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Iterable, Iterator, Mapping
from typing import Any

from .media import STATUS_ORDER, ItemKey, Status, WatchItem, item_from_payload, item_to_payload


class Collection:
    """
    All watch items of one identity as three disjoint ordered lists.

    ``_index`` maps every key to the partition currently holding it; each
    mutator keeps it in step with the lists, so a key is never in two
    partitions at once.
    """

    __slots__ = ("_parts", "_index")

    def __init__(self) -> None:
        self._parts: dict[Status, list[WatchItem]] = {s: [] for s in STATUS_ORDER}
        self._index: dict[ItemKey, Status] = {}

    @classmethod
    def empty(cls) -> "Collection":
        return cls()

    @classmethod
    def from_items(cls, items: Iterable[WatchItem]) -> "Collection":
        coll = cls()
        for it in items:
            if it.key in coll._index:
                continue
            coll._parts[it.status].append(it)
            coll._index[it.key] = it.status
        return coll

    def copy(self) -> "Collection":
        return Collection.from_items(self.items())

    # Queries
    def __len__(self) -> int:
        return len(self._index)

    def __iter__(self) -> Iterator[WatchItem]:
        return iter(self.items())

    def __contains__(self, key: object) -> bool:
        return key in self._index

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Collection):
            return NotImplemented
        return self._parts == other._parts

    def __repr__(self) -> str:
        counts = ", ".join(f"{s.value}={n}" for s, n in self.counts().items())
        return f"Collection({counts})"

    def items(self) -> list[WatchItem]:
        return [it for s in STATUS_ORDER for it in self._parts[s]]

    def by_status(self, status: Status) -> list[WatchItem]:
        return list(self._parts[status])

    def counts(self) -> dict[Status, int]:
        return {s: len(self._parts[s]) for s in STATUS_ORDER}

    def contains(self, key: ItemKey) -> bool:
        return key in self._index

    def status_of(self, key: ItemKey) -> Status | None:
        return self._index.get(key)

    def get(self, key: ItemKey) -> WatchItem | None:
        status = self._index.get(key)
        if status is None:
            return None
        for it in self._parts[status]:
            if it.key == key:
                return it
        return None

    # Mutators
    def insert(self, item: WatchItem) -> None:
        if item.key in self._index:
            raise KeyError(item.key)
        self._parts[item.status].append(item)
        self._index[item.key] = item.status

    def remove(self, key: ItemKey) -> WatchItem | None:
        status = self._index.pop(key, None)
        if status is None:
            return None
        part = self._parts[status]
        for i, it in enumerate(part):
            if it.key == key:
                return part.pop(i)
        return None

    def move(self, key: ItemKey, status: Status) -> WatchItem | None:
        cur = self.remove(key)
        if cur is None:
            return None
        moved = cur.with_status(status)
        self.insert(moved)
        return moved

    def replace(self, key: ItemKey, item: WatchItem) -> None:
        """Swap the stored item in place; a status change goes through move()."""
        status = self._index.get(key)
        if status is None:
            raise KeyError(key)
        if item.key != key or item.status is not status:
            raise ValueError("replace() keeps key and status; use move() to change status")
        part = self._parts[status]
        for i, it in enumerate(part):
            if it.key == key:
                part[i] = item
                return

    # Wire shape
    def to_payload(self) -> dict[str, list[dict[str, Any]]]:
        return {s.value: [item_to_payload(it) for it in self._parts[s]] for s in STATUS_ORDER}

    @classmethod
    def from_payload(cls, raw: Any) -> "Collection":
        """Strict parse; raises ValueError on any shape problem."""
        if not isinstance(raw, Mapping):
            raise ValueError("collection payload must be an object")
        coll = cls()
        for s in STATUS_ORDER:
            part = raw.get(s.value, [])
            if not isinstance(part, list):
                raise ValueError(f"partition {s.value} must be a list")
            for obj in part:
                it = item_from_payload(obj)
                if it.status is not s:
                    # partition wins over a stale status field
                    it = it.with_status(s)
                if it.key in coll._index:
                    continue
                coll._parts[s].append(it)
                coll._index[it.key] = s
        return coll


__all__ = ["Collection"]
