# wn_platform/sync/_bootstrap.py
# start-up sequencing and the two-flag loading gate.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
import inspect
from collections.abc import Callable
from concurrent.futures import Future
from typing import TYPE_CHECKING, Any

from _logging import Logger, log as _root_log

from ._observers import Observers
from ._types import Identity, SessionOracle, Unsubscribe

if TYPE_CHECKING:
    from ..context import AppContext, AppState
    from ._migration import MigrationProtocol
    from .coordinator import SyncCoordinator

__all__ = ["BootstrapSequencer"]


class BootstrapSequencer:
    """
    Gates the UI on two flags, auth_resolved and data_hydrated. Each flag
    only goes false -> true until reset(); app_initialized is their AND and
    fires once per transition. bootstrap() always ends with both flags set,
    even when a step blows up, so the app never hangs on its loading screen.
    """

    def __init__(
        self,
        ctx: "AppContext",
        coordinator: "SyncCoordinator",
        session: SessionOracle | None = None,
        migration: "MigrationProtocol | None" = None,
        *,
        logger: Logger | None = None,
    ) -> None:
        self.ctx = ctx
        self.coordinator = coordinator
        self.session = session
        self.migration = migration
        self.log = logger or _root_log.child("BOOT")

        self._initialized: Observers["AppState"] = Observers("app-initialized", self.log)
        self._running = False
        self._session_unsub: Unsubscribe | None = None
        self._loop: asyncio.AbstractEventLoop | None = None
        self._pending: set[Any] = set()

    # Gate
    @property
    def initialized(self) -> bool:
        return self.ctx.app_initialized

    def on_initialized(self, callback: Callable[["AppState"], None]) -> Unsubscribe:
        return self._initialized.subscribe(callback)

    def mark_auth_resolved(self) -> None:
        if self.ctx.auth_resolved:
            return
        self.ctx.auth_resolved = True
        self.log.debug("auth resolved")
        self._check_initialized()

    def mark_data_hydrated(self) -> None:
        if self.ctx.data_hydrated:
            return
        self.ctx.data_hydrated = True
        self.log.debug("data hydrated")
        self._check_initialized()

    def _check_initialized(self) -> None:
        if self.ctx.auth_resolved and self.ctx.data_hydrated and not self.ctx.app_initialized:
            self.ctx.app_initialized = True
            self.log.success("app fully initialized")
            self.ctx.notify()
            self._initialized.publish(self.ctx.snapshot())

    def reset(self) -> None:
        self.ctx.auth_resolved = False
        self.ctx.data_hydrated = False
        self.ctx.app_initialized = False
        self.log.info("initialization flags reset")
        self.ctx.notify()

    # Sequence
    async def _resolve_session(self) -> Identity | None:
        if self.session is None:
            return self.ctx.identity
        restore = getattr(self.session, "restore", None)
        if callable(restore):
            if inspect.iscoroutinefunction(restore):
                await restore()
            else:
                # restore may block on a token refresh
                res = await asyncio.to_thread(restore)
                if inspect.isawaitable(res):
                    await res
        return self.session.current_identity()

    async def bootstrap(self) -> None:
        if self._running:
            self.log.debug("bootstrap already in flight; skipped")
            return
        self._running = True
        try:
            self.log.info("initializing session...")
            ident = await self._resolve_session()
            self.coordinator.switch_identity(ident)
            self.mark_auth_resolved()
            self.log.info(f"auth resolved: {'authenticated' if ident else 'guest mode'}")

            if ident is not None:
                res = await self.coordinator.hydrate_from_remote()
                if not res.ok:
                    self.log.warn(f"initial load incomplete: {res.outcome.value}")
            else:
                self.log.info("guest mode - using local cache")
            self.mark_data_hydrated()
        except Exception as e:
            self.log.error(f"failed to initialize session: {e!r}")
            self.mark_auth_resolved()
            self.mark_data_hydrated()
        finally:
            self._running = False

    # Login / logout
    async def handle_identity_change(self, identity: Identity | None) -> None:
        prev = self.ctx.identity
        if identity == prev:
            return

        if identity is not None and prev is not None and identity.user_id == prev.user_id:
            # token refresh: same account, nothing to reload
            self.coordinator.switch_identity(identity)
            return

        self.coordinator.switch_identity(identity)
        if identity is not None:
            if prev is None and self.migration is not None and self.migration.should_offer():
                n = await self.migration.migrate_guest_data()
                self.log.info(f"guest migration finished: {n} item(s)")
            await self.coordinator.hydrate_from_remote()
            return

        self.coordinator.clear()
        self.reset()
        await self.bootstrap()

    def _on_identity_change(self, identity: Identity | None) -> None:
        coro = self.handle_identity_change(identity)
        try:
            running = asyncio.get_running_loop()
        except RuntimeError:
            running = None

        if running is not None:
            task = running.create_task(coro)
            self._pending.add(task)
            task.add_done_callback(self._done)
        elif self._loop is not None and self._loop.is_running():
            fut: Future[None] = asyncio.run_coroutine_threadsafe(coro, self._loop)
            self._pending.add(fut)
            fut.add_done_callback(self._done)
        else:
            asyncio.run(coro)

    def _done(self, fut: Any) -> None:
        self._pending.discard(fut)
        if fut.cancelled():
            return
        exc = fut.exception()
        if exc is not None:
            self.log.error(f"identity change handling failed: {exc!r}")

    def attach_session(self) -> None:
        if self.session is None or self._session_unsub is not None:
            return
        try:
            self._loop = asyncio.get_running_loop()
        except RuntimeError:
            self._loop = None
        self._session_unsub = self.session.on_identity_change(self._on_identity_change)

    def detach_session(self) -> None:
        if self._session_unsub is not None:
            self._session_unsub()
            self._session_unsub = None

    async def wait_idle(self) -> None:
        tasks = [t if isinstance(t, asyncio.Future) else asyncio.wrap_future(t) for t in list(self._pending)]
        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)
