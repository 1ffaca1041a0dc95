# /watchnest.py
# WatchNest - local-first watchlist with an optional account store
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import time
from contextlib import asynccontextmanager
from pathlib import Path
from typing import Any, Mapping

import uvicorn
from fastapi import FastAPI, Request

from _logging import log
from api import register as register_api
from providers.auth import BaseSession, build_auth
from providers.metadata._meta_TMDB import TmdbProvider
from providers.remote import build_remote
from wn_platform.config_base import CONFIG_BASE, load_config
from wn_platform.context import AppContext
from wn_platform.sync import (
    BootstrapSequencer,
    LocalCacheStore,
    MigrationDecision,
    MigrationProtocol,
    RemoteMediaRepository,
    SyncCoordinator,
)

_HTTP = log.child("HTTP")


def create_app(
    cfg: Mapping[str, Any] | None = None,
    *,
    base_path: Path | None = None,
    remote: RemoteMediaRepository | None = None,
    session: BaseSession | None = None,
    metadata: TmdbProvider | None = None,
) -> FastAPI:
    """Wire context, cache, remote store, session and sequencer into one app."""
    cfg = dict(cfg) if cfg is not None else load_config()
    base = Path(base_path) if base_path is not None else CONFIG_BASE()
    base.mkdir(parents=True, exist_ok=True)

    ctx = AppContext(base)
    cache = LocalCacheStore(base)
    remote = remote if remote is not None else build_remote(cfg)
    session = session if session is not None else build_auth(cfg, base)
    coordinator = SyncCoordinator(ctx, cache, remote)

    app = FastAPI(title="WatchNest")

    # answered from the stored choice; the UI sets it before login
    def _offer_migration(count: int) -> MigrationDecision:
        decision = app.state.migration_decision
        log.child("MIGRATE").info(f"guest list holds {count} item(s); decision: {decision.value}")
        return decision

    migration = MigrationProtocol(ctx, coordinator, _offer_migration)
    sequencer = BootstrapSequencer(ctx, coordinator, session, migration)

    app.state.cfg = cfg
    app.state.ctx = ctx
    app.state.coordinator = coordinator
    app.state.session = session
    app.state.migration = migration
    app.state.sequencer = sequencer
    app.state.migration_decision = MigrationDecision.MIGRATE
    app.state.metadata = metadata if metadata is not None else TmdbProvider(lambda: app.state.cfg)

    @asynccontextmanager
    async def _lifespan(app: FastAPI):
        log.configure(app.state.cfg)
        await sequencer.bootstrap()
        sequencer.attach_session()
        try:
            yield
        finally:
            sequencer.detach_session()
            await sequencer.wait_idle()

    app.router.lifespan_context = _lifespan

    @app.middleware("http")
    async def access_logger(request: Request, call_next):
        t0 = time.time()
        response = await call_next(request)
        status = getattr(response, "status_code", 0) or 0
        if status >= 500:
            dt_ms = int((time.time() - t0) * 1000)
            _HTTP.warn(f'"{request.method} {request.url.path}" {status} ({dt_ms} ms)')
        return response

    register_api(app)
    return app


# Entry point
def main(host: str | None = None, port: int | None = None) -> None:
    cfg = load_config()
    srv = cfg.get("server") or {}
    host = host or str(srv.get("host") or "0.0.0.0")
    port = int(port or srv.get("port") or 8788)

    debug = bool((cfg.get("runtime") or {}).get("debug"))
    print("\nWatchNest running:")
    print(f"  Local:   http://127.0.0.1:{port}")
    print(f"  Bind:    {host}:{port}")
    print(f"  Config:  {CONFIG_BASE() / 'config.json'} (JSON)\n")

    uvicorn.run(
        create_app(cfg),
        host=host,
        port=port,
        log_level=("debug" if debug else "warning"),
    )


if __name__ == "__main__":
    main()
