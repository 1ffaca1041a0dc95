# providers/auth
# WatchNest session adapters
from __future__ import annotations

from pathlib import Path
from typing import Any, Mapping

from ._auth_base import AuthStatus, BaseSession, StaticSession
from ._auth_SUPABASE import AuthError, SupabaseSession

__all__ = ["AuthStatus", "AuthError", "BaseSession", "StaticSession", "SupabaseSession", "build_auth"]


def build_auth(cfg: Mapping[str, Any], base_path: Path) -> BaseSession:
    sb = cfg.get("supabase") or {}
    if str(sb.get("url") or "").strip():
        return SupabaseSession.from_config(cfg, base_path)
    return StaticSession()
