# WatchNest test scripts
from __future__ import annotations

import sys
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Callable

import pytest

REPO_ROOT = Path(__file__).resolve().parents[1]
if str(REPO_ROOT) not in sys.path:
    sys.path.insert(0, str(REPO_ROOT))

from providers.remote import InMemoryMediaRepository  # noqa: E402
from wn_platform.collection import Collection  # noqa: E402
from wn_platform.context import AppContext  # noqa: E402
from wn_platform.media import Movie, Series, Status  # noqa: E402
from wn_platform.sync import Identity, LocalCacheStore, SyncCoordinator  # noqa: E402


@pytest.fixture()
def config_base(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> Path:
    monkeypatch.setenv("CONFIG_BASE", str(tmp_path))
    return tmp_path


@pytest.fixture()
def ident() -> Identity:
    return Identity(user_id="user-1", email="viewer@example.com", access_token="tok-1")


@pytest.fixture()
def make_movie() -> Callable[..., Movie]:
    def _mk(tmdb_id: int, status: Status = Status.WANT, **kw: Any) -> Movie:
        kw.setdefault("title", f"Movie {tmdb_id}")
        kw.setdefault("added_at", "2026-01-01T00:00:00.000Z")
        return Movie(external_id=tmdb_id, status=status, **kw)

    return _mk


@pytest.fixture()
def make_series() -> Callable[..., Series]:
    def _mk(tmdb_id: int, status: Status = Status.WANT, **kw: Any) -> Series:
        kw.setdefault("title", f"Series {tmdb_id}")
        kw.setdefault("added_at", "2026-01-01T00:00:00.000Z")
        return Series(external_id=tmdb_id, status=status, **kw)

    return _mk


@dataclass
class World:
    ctx: AppContext
    cache: LocalCacheStore
    remote: InMemoryMediaRepository
    coord: SyncCoordinator
    changes: list[Collection] = field(default_factory=list)


@pytest.fixture()
def world(config_base: Path) -> World:
    ctx = AppContext(config_base)
    cache = LocalCacheStore(config_base)
    remote = InMemoryMediaRepository()
    w = World(ctx=ctx, cache=cache, remote=remote, coord=SyncCoordinator(ctx, cache, remote))
    w.coord.on_collection_changed(w.changes.append)
    return w
