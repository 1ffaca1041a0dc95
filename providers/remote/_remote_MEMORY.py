# /providers/remote/_remote_MEMORY.py
# WatchNest in-process remote watchlist (offline mode, tests)
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any, Mapping

from wn_platform.media import ItemKey, WatchItem, item_from_row, item_to_row, now_iso
from wn_platform.sync import DuplicateKeyError, Identity, NotFoundError, RemoteError

__all__ = ["InMemoryMediaRepository"]


class InMemoryMediaRepository:
    name = "MEMORY"

    def __init__(self) -> None:
        self._rows: dict[str, dict[ItemKey, WatchItem]] = {}
        self.fail_inserts_for: set[ItemKey] = set()
        self.fail_all_writes = False
        self.fail_reads = False
        self.calls: list[tuple[str, ItemKey | None]] = []

    def _bucket(self, identity: Identity) -> dict[ItemKey, WatchItem]:
        return self._rows.setdefault(identity.user_id, {})

    def _guard_write(self, op: str, key: ItemKey) -> None:
        if self.fail_all_writes:
            raise RemoteError(f"{op}: writes rejected", status=503)

    def seed(self, identity: Identity, *items: WatchItem) -> None:
        bucket = self._bucket(identity)
        for it in items:
            bucket[it.key] = it

    def rows_for(self, identity: Identity) -> list[WatchItem]:
        return list(self._bucket(identity).values())

    async def list_all(self, identity: Identity) -> list[WatchItem]:
        self.calls.append(("list_all", None))
        if self.fail_reads:
            raise RemoteError("list_all: store unreachable", status=503)
        # newest first, like order=created_at.desc
        return list(reversed(list(self._bucket(identity).values())))

    async def insert(self, identity: Identity, item: WatchItem) -> WatchItem:
        self.calls.append(("insert", item.key))
        self._guard_write("insert", item.key)
        if item.key in self.fail_inserts_for:
            raise RemoteError(f"insert: rejected {item.key}", status=400)
        bucket = self._bucket(identity)
        if item.key in bucket:
            raise DuplicateKeyError(f"insert: {item.key} exists", status=409)
        stored = item if item.added_at else item_from_row({**item_to_row(item), "created_at": now_iso()})
        bucket[item.key] = stored
        return stored

    async def update(self, identity: Identity, key: ItemKey, fields: Mapping[str, Any]) -> WatchItem:
        self.calls.append(("update", key))
        self._guard_write("update", key)
        bucket = self._bucket(identity)
        cur = bucket.get(key)
        if cur is None:
            raise NotFoundError(f"update: no row for {key}", status=404)
        row = {**item_to_row(cur), "created_at": cur.added_at, **dict(fields)}
        updated = item_from_row(row)
        bucket[key] = updated
        return updated

    async def delete(self, identity: Identity, key: ItemKey) -> None:
        self.calls.append(("delete", key))
        self._guard_write("delete", key)
        self._bucket(identity).pop(key, None)
