# wn_platform/sync/coordinator.py
# write-through façade over the local cache and the remote media repository.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any, TypeVar

from _logging import Logger, log as _root_log

from ..collection import Collection
from ..media import ItemKey, MediaKind, Series, Status, WatchItem
from ._cache_store import LocalCacheStore
from ._errors import OpResult, Outcome, RemoteWriteFailed
from ._types import Identity, RemoteMediaRepository, Unsubscribe

if TYPE_CHECKING:
    from ..context import AppContext

__all__ = ["SyncCoordinator"]

R = TypeVar("R")


class SyncCoordinator:
    """
    The only entry point for reading and mutating the watchlist.

    Every mutation follows one order: when an identity is active the remote
    repository is written first, and the local cache is written only after
    that step succeeded (or was skipped in guest mode). A failed remote step
    raises RemoteWriteFailed and leaves the cache exactly as it was.
    Recoverable no-ops come back as an OpResult with a soft outcome.
    """

    def __init__(
        self,
        ctx: "AppContext",
        cache: LocalCacheStore,
        remote: RemoteMediaRepository,
        *,
        logger: Logger | None = None,
    ) -> None:
        self.ctx = ctx
        self.cache = cache
        self.remote = remote
        self.log = logger or _root_log.child("SYNC")

    # Subscriptions
    def on_collection_changed(self, callback: Callable[[Collection], None]) -> Unsubscribe:
        return self.cache.subscribe(callback)

    # Identity
    def _active(self) -> Identity | None:
        return self.ctx.identity

    def switch_identity(self, identity: Identity | None) -> None:
        # no data moves here: callers hydrate on login and clear on logout
        prev = self.ctx.identity
        self.ctx.set_identity(identity)
        if prev != identity:
            self.log.info(
                "identity switched",
                extra={"from": getattr(prev, "user_id", "guest"), "to": getattr(identity, "user_id", "guest")},
            )

    async def _remote_write(
        self,
        op: str,
        key: ItemKey | None,
        call: Callable[[Identity], Awaitable[R]],
    ) -> R | None:
        ident = self._active()
        if ident is None:
            return None
        try:
            return await call(ident)
        except Exception as e:
            self.log.error(f"{op} rejected by remote store: {e}", extra={"key": str(key) if key else None})
            raise RemoteWriteFailed(op, key, str(e) or type(e).__name__) from e

    # Mutations
    async def add_item(self, item: WatchItem) -> OpResult:
        cur = self.cache.read()
        if cur.contains(item.key):
            self.log.warn(f"item already in list: {item.key}")
            return OpResult.soft(Outcome.DUPLICATE_ITEM, str(item.key))

        await self._remote_write("add", item.key, lambda ident: self.remote.insert(ident, item))

        # re-read: the remote await is a suspension point
        coll = self.cache.read()
        if coll.contains(item.key):
            self.log.warn(f"item already in list: {item.key}")
            return OpResult.soft(Outcome.DUPLICATE_ITEM, str(item.key))
        coll.insert(item)
        self.cache.write(coll)
        if self.ctx.is_guest_mode():
            self.ctx.mark_has_guest_data()
        self.log.debug(f"added {item.key} to {item.status.value}")
        return OpResult.success(item)

    async def remove_item(self, key: ItemKey) -> OpResult:
        await self._remote_write("remove", key, lambda ident: self.remote.delete(ident, key))

        coll = self.cache.read()
        removed = coll.remove(key)
        if removed is None:
            return OpResult.success(None)
        self.cache.write(coll)
        self.log.debug(f"removed {key}")
        return OpResult.success(removed)

    async def change_status(self, key: ItemKey, new_status: Status) -> OpResult:
        if not self.cache.read().contains(key):
            self.log.warn(f"item not found in any list: {key}")
            return OpResult.soft(Outcome.ITEM_NOT_FOUND, str(key))

        await self._remote_write(
            "change_status",
            key,
            lambda ident: self.remote.update(ident, key, {"status": new_status.value}),
        )

        coll = self.cache.read()
        moved = coll.move(key, new_status)
        if moved is None:
            self.log.warn(f"item not found in any list: {key}")
            return OpResult.soft(Outcome.ITEM_NOT_FOUND, str(key))
        self.cache.write(coll)
        self.log.debug(f"moved {key} to {new_status.value}")
        return OpResult.success(moved)

    async def update_progress(self, key: ItemKey, season: int, episode: int) -> OpResult:
        if key.kind is not MediaKind.SERIES:
            self.log.warn(f"progress tracking is only for series: {key}")
            return OpResult.soft(Outcome.NOT_A_SERIES, str(key))
        if int(season) < 1 or int(episode) < 1:
            raise ValueError("season and episode must be positive")
        if not self.cache.read().contains(key):
            self.log.warn(f"item not found for progress update: {key}")
            return OpResult.soft(Outcome.ITEM_NOT_FOUND, str(key))

        fields: Mapping[str, Any] = {"current_season": int(season), "current_episode": int(episode)}
        await self._remote_write("update_progress", key, lambda ident: self.remote.update(ident, key, fields))

        coll = self.cache.read()
        cur = coll.get(key)
        if not isinstance(cur, Series):
            self.log.warn(f"item not found for progress update: {key}")
            return OpResult.soft(Outcome.ITEM_NOT_FOUND, str(key))
        updated = cur.with_progress(int(season), int(episode))
        coll.replace(key, updated)
        self.cache.write(coll)
        return OpResult.success(updated)

    async def hydrate_from_remote(self) -> OpResult:
        ident = self._active()
        if ident is None:
            return OpResult.soft(Outcome.SKIPPED_GUEST)
        try:
            rows = await self.remote.list_all(ident)
        except Exception as e:
            self.log.error(f"loading from remote store failed: {e}")
            return OpResult.soft(Outcome.REMOTE_UNAVAILABLE, str(e) or type(e).__name__)
        coll = Collection.from_items(rows)
        self.cache.write(coll)
        self.log.info(f"hydrated {len(coll)} item(s) from remote store")
        return OpResult.success()

    def clear(self) -> None:
        self.cache.clear()

    # Queries (local only)
    def query_by_status(self, status: Status) -> list[WatchItem]:
        return self.cache.read().by_status(status)

    def query_status_of(self, key: ItemKey) -> Status | None:
        return self.cache.read().status_of(key)

    def get_item(self, key: ItemKey) -> WatchItem | None:
        return self.cache.read().get(key)

    def is_in_list(self, key: ItemKey) -> bool:
        return self.cache.read().contains(key)

    def all_items(self) -> list[WatchItem]:
        return self.cache.read().items()

    def get_progress(self, key: ItemKey) -> tuple[int, int] | None:
        it = self.cache.read().get(key)
        return it.progress if isinstance(it, Series) else None

    def guest_data_count(self) -> int:
        return len(self.cache.read())

    def snapshot(self) -> Collection:
        return self.cache.read()
