# /providers/auth/_auth_SUPABASE.py
# WatchNest - Supabase (GoTrue) password sessions
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import time
from pathlib import Path
from typing import Any, Mapping

import requests

from _logging import Logger
from providers._http import build_session, request_with_retries, safe_json
from wn_platform.config_base import write_json_atomic
from wn_platform.sync import Identity

from ._auth_base import AuthStatus, BaseSession

__all__ = ["SupabaseSession", "AuthError"]

SESSION_FILE = "session.json"


class AuthError(Exception):
    pass


class SupabaseSession(BaseSession):
    name = "SUPABASE"
    label = "Supabase"

    def __init__(
        self,
        url: str,
        anon_key: str,
        base_path: Path,
        *,
        timeout: float = 10.0,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        super().__init__(logger=logger)
        self.base_url = url.rstrip("/")
        self.anon_key = anon_key
        self.base_path = Path(base_path)
        self.timeout = float(timeout)
        self.http = session or build_session()
        self._refresh_token: str | None = None
        self._expires_at: int = 0

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any], base_path: Path, **kw: Any) -> "SupabaseSession":
        sb = cfg.get("supabase") or {}
        return cls(
            str(sb.get("url") or ""),
            str(sb.get("anon_key") or ""),
            base_path,
            timeout=float(sb.get("timeout") or 10.0),
            **kw,
        )

    @property
    def session_path(self) -> Path:
        return self.base_path / SESSION_FILE

    def _auth_url(self, path: str) -> str:
        return f"{self.base_url}/auth/v1/{path.lstrip('/')}"

    def _headers(self, token: str | None = None) -> dict[str, str]:
        return {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {token or self.anon_key}",
            "Content-Type": "application/json",
        }

    # Token grant -> identity
    def _accept(self, data: Mapping[str, Any]) -> Identity:
        user = data.get("user") or {}
        token = str(data.get("access_token") or "")
        uid = str(user.get("id") or "")
        if not token or not uid:
            raise AuthError("token response without access_token / user.id")
        self._refresh_token = str(data.get("refresh_token") or "") or None
        exp = data.get("expires_at")
        if exp is None:
            exp = int(time.time()) + int(data.get("expires_in") or 3600)
        self._expires_at = int(exp)
        ident = Identity(user_id=uid, email=user.get("email"), access_token=token)
        self._persist(ident)
        return ident

    def _persist(self, ident: Identity | None) -> None:
        if ident is None:
            try:
                self.session_path.unlink()
            except FileNotFoundError:
                pass
            return
        write_json_atomic(
            self.session_path,
            {
                "user_id": ident.user_id,
                "email": ident.email,
                "access_token": ident.access_token,
                "refresh_token": self._refresh_token,
                "expires_at": self._expires_at,
            },
        )

    def _grant(self, grant_type: str, body: Mapping[str, Any]) -> dict[str, Any]:
        try:
            r = request_with_retries(
                self.http,
                "POST",
                self._auth_url("token"),
                params={"grant_type": grant_type},
                json=dict(body),
                headers=self._headers(),
                timeout=self.timeout,
                max_retries=2,
            )
        except requests.RequestException as e:
            raise AuthError(f"{grant_type} grant failed: {e}") from e
        data = safe_json(r)
        if r.status_code != 200 or not isinstance(data, dict):
            msg = (data.get("error_description") or data.get("msg")) if isinstance(data, dict) else None
            raise AuthError(msg or f"{grant_type} grant failed: HTTP {r.status_code}")
        return data

    # Public
    def sign_in(self, email: str, password: str) -> AuthStatus:
        ident = self._accept(self._grant("password", {"email": email, "password": password}))
        self.log.info(f"signed in as {ident.email or ident.user_id}")
        self._set(ident)
        return self.get_status()

    def refresh(self) -> AuthStatus:
        if not self._refresh_token:
            raise AuthError("no refresh token")
        ident = self._accept(self._grant("refresh_token", {"refresh_token": self._refresh_token}))
        self._set(ident)
        return self.get_status()

    def sign_out(self) -> AuthStatus:
        ident = self._identity
        if ident is not None and ident.access_token:
            try:
                self.http.post(
                    self._auth_url("logout"),
                    headers=self._headers(ident.access_token),
                    timeout=self.timeout,
                )
            except requests.RequestException as e:
                # local sign-out still proceeds
                self.log.warn(f"remote logout failed: {e}")
        self._refresh_token = None
        self._expires_at = 0
        self._persist(None)
        self._set(None)
        return self.get_status()

    def restore(self) -> Identity | None:
        """Reload the persisted session; refresh it when the access token has expired."""
        p = self.session_path
        if not p.exists():
            return None
        try:
            data = json.loads(p.read_text("utf-8"))
        except Exception:
            self.log.warn("stored session unreadable; starting signed out")
            return None
        if not isinstance(data, dict) or not data.get("user_id") or not data.get("access_token"):
            return None

        self._refresh_token = data.get("refresh_token") or None
        self._expires_at = int(data.get("expires_at") or 0)
        if self._expires_at and self._expires_at <= int(time.time()) + 30:
            try:
                self.refresh()
                return self._identity
            except AuthError as e:
                self.log.warn(f"session refresh failed: {e}")
                self._persist(None)
                return None

        ident = Identity(
            user_id=str(data["user_id"]),
            email=data.get("email"),
            access_token=str(data["access_token"]),
        )
        self._identity = ident
        return ident

    def get_status(self) -> AuthStatus:
        st = super().get_status()
        st.expires_at = self._expires_at or None
        return st
