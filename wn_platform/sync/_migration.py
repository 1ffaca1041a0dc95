# wn_platform/sync/_migration.py
# one-shot guest -> account migration.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import inspect
from typing import TYPE_CHECKING, Any

from _logging import Logger, log as _root_log

from ._types import MigrationDecision, MigrationPrompt

if TYPE_CHECKING:
    from ..context import AppContext
    from .coordinator import SyncCoordinator

__all__ = ["MigrationProtocol", "coerce_decision"]


def coerce_decision(value: Any) -> MigrationDecision:
    if isinstance(value, MigrationDecision):
        return value
    if isinstance(value, bool):
        return MigrationDecision.MIGRATE if value else MigrationDecision.DISCARD
    return MigrationDecision(str(value or "").strip().lower())


class MigrationProtocol:
    """
    Copies a guest collection into a freshly signed-in account.

    Best effort: every item gets one insert attempt, failures are logged and
    counted, and the batch never aborts. Afterwards the cache is re-derived
    from the remote store, which also drops whatever did not make it there.
    """

    def __init__(
        self,
        ctx: "AppContext",
        coordinator: "SyncCoordinator",
        offer_migration: MigrationPrompt,
        *,
        logger: Logger | None = None,
    ) -> None:
        self.ctx = ctx
        self.coordinator = coordinator
        self.offer_migration = offer_migration
        self.log = logger or _root_log.child("MIGRATE")

    def should_offer(self) -> bool:
        return self.ctx.is_authenticated() and self.ctx.has_guest_data

    async def _ask(self, count: int) -> MigrationDecision:
        answer = self.offer_migration(count)
        if inspect.isawaitable(answer):
            answer = await answer
        return coerce_decision(answer)

    async def migrate_guest_data(self) -> int:
        ident = self.ctx.identity
        if ident is None:
            self.log.warn("migration requested without an active identity; skipped")
            return 0

        items = self.coordinator.all_items()
        total = len(items)
        if total == 0:
            return 0

        try:
            decision = await self._ask(total)
        except Exception as e:
            self.log.error(f"migration prompt failed: {e!r}")
            return 0

        if decision is MigrationDecision.DISCARD:
            try:
                self.coordinator.clear()
                self.ctx.clear_guest_flags()
            except Exception as e:
                self.log.error(f"discarding guest data failed: {e!r}")
            self.log.info(f"guest data discarded ({total} item(s))")
            return 0

        migrated = 0
        for item in items:
            try:
                await self.coordinator.remote.insert(ident, item)
                migrated += 1
            except Exception as e:
                self.log.error(f"error migrating item {item.title!r} ({item.key}): {e}")

        try:
            res = await self.coordinator.hydrate_from_remote()
            if not res.ok:
                self.log.warn(f"post-migration reload did not complete: {res.outcome.value}")
        except Exception as e:
            self.log.error(f"post-migration reload failed: {e!r}")

        try:
            self.ctx.clear_guest_flags()
        except Exception as e:
            self.log.error(f"clearing guest flags failed: {e!r}")

        self.log.success(f"migrated {migrated}/{total} item(s)")
        return migrated
