# providers/remote
# WatchNest remote watchlist adapters
from __future__ import annotations

from typing import Any, Mapping

from _logging import log as _root_log

from ._remote_MEMORY import InMemoryMediaRepository
from ._remote_POSTGREST import PostgrestMediaRepository

__all__ = ["InMemoryMediaRepository", "PostgrestMediaRepository", "build_remote"]


def build_remote(cfg: Mapping[str, Any]) -> PostgrestMediaRepository | InMemoryMediaRepository:
    sb = cfg.get("supabase") or {}
    if str(sb.get("url") or "").strip():
        return PostgrestMediaRepository.from_config(cfg)
    _root_log.child("REMOTE").warn("supabase.url is empty; using the in-memory remote store")
    return InMemoryMediaRepository()
