# /providers/remote/_remote_POSTGREST.py
# WatchNest remote watchlist over a PostgREST (Supabase) table
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from datetime import datetime, timezone
from typing import Any, Mapping

import requests

from _logging import Logger, log as _root_log
from providers._http import build_session, parse_rate_limit, request_with_retries, safe_json
from wn_platform.media import ItemKey, WatchItem, item_from_row, item_to_row
from wn_platform.sync import DuplicateKeyError, Identity, NotFoundError, RemoteError

__all__ = ["PostgrestMediaRepository"]

_UNIQUE_VIOLATION = "23505"


class PostgrestMediaRepository:
    """
    user_media rows keyed by (user_id, tmdb_id, media_type).

    Calls are plain blocking requests; the async methods push them onto a
    worker thread so the event loop only suspends at these boundaries.
    """

    name = "POSTGREST"

    def __init__(
        self,
        url: str,
        anon_key: str,
        *,
        table: str = "user_media",
        timeout: float = 10.0,
        max_retries: int = 3,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        if not url:
            raise ValueError("PostgREST url is required")
        self.base_url = url.rstrip("/")
        self.anon_key = anon_key
        self.table = table
        self.timeout = float(timeout)
        self.max_retries = int(max_retries)
        self.http = session or build_session()
        self.log = logger or _root_log.child("REMOTE")

    @classmethod
    def from_config(cls, cfg: Mapping[str, Any], **kw: Any) -> "PostgrestMediaRepository":
        sb = cfg.get("supabase") or {}
        return cls(
            str(sb.get("url") or ""),
            str(sb.get("anon_key") or ""),
            table=str(sb.get("table") or "user_media"),
            timeout=float(sb.get("timeout") or 10.0),
            max_retries=int(sb.get("max_retries") or 3),
            **kw,
        )

    # Plumbing
    @property
    def endpoint(self) -> str:
        return f"{self.base_url}/rest/v1/{self.table}"

    def _headers(self, identity: Identity, *, representation: bool = False) -> dict[str, str]:
        h = {
            "apikey": self.anon_key,
            "Authorization": f"Bearer {identity.access_token or self.anon_key}",
            "Content-Type": "application/json",
        }
        if representation:
            h["Prefer"] = "return=representation"
        return h

    @staticmethod
    def _filters(identity: Identity, key: ItemKey | None = None) -> dict[str, str]:
        q = {"user_id": f"eq.{identity.user_id}"}
        if key is not None:
            q["tmdb_id"] = f"eq.{key.external_id}"
            q["media_type"] = f"eq.{key.kind.value}"
        return q

    def _call(self, op: str, method: str, **kw: Any) -> Any:
        try:
            resp = request_with_retries(
                self.http,
                method,
                self.endpoint,
                timeout=self.timeout,
                max_retries=self.max_retries,
                **kw,
            )
        except requests.RequestException as e:
            raise RemoteError(f"{op}: {e}") from e

        if 200 <= resp.status_code < 300:
            return safe_json(resp)

        body = safe_json(resp)
        code = str(body.get("code") or "") if isinstance(body, Mapping) else ""
        msg = (body.get("message") if isinstance(body, Mapping) else None) or resp.reason or "error"
        if resp.status_code == 429:
            self.log.warn(f"{op} rate limited", extra=parse_rate_limit(resp.headers))
        if resp.status_code == 409 or code == _UNIQUE_VIOLATION:
            raise DuplicateKeyError(f"{op}: {msg}", status=resp.status_code)
        raise RemoteError(f"{op}: HTTP {resp.status_code} {msg}", status=resp.status_code)

    # Blocking operations
    def list_all_sync(self, identity: Identity) -> list[WatchItem]:
        params = {"select": "*", "order": "created_at.desc", **self._filters(identity)}
        rows = self._call("list_all", "GET", params=params, headers=self._headers(identity))
        if not isinstance(rows, list):
            raise RemoteError("list_all: unexpected response shape")
        out: list[WatchItem] = []
        for row in rows:
            try:
                out.append(item_from_row(row))
            except ValueError as e:
                self.log.warn(f"skipping unreadable row: {e}")
        self.log.debug(f"list_all -> {len(out)} row(s)")
        return out

    def insert_sync(self, identity: Identity, item: WatchItem) -> WatchItem:
        row = {**item_to_row(item), "user_id": identity.user_id}
        data = self._call(
            "insert",
            "POST",
            json=row,
            headers=self._headers(identity, representation=True),
            # 5xx is not replayed: the row may already be committed
            retry_on=(429,),
        )
        if isinstance(data, list) and data:
            return item_from_row(data[0])
        return item

    def update_sync(self, identity: Identity, key: ItemKey, fields: Mapping[str, Any]) -> WatchItem:
        body = dict(fields)
        body["updated_at"] = datetime.now(timezone.utc).isoformat()
        data = self._call(
            "update",
            "PATCH",
            params=self._filters(identity, key),
            json=body,
            headers=self._headers(identity, representation=True),
        )
        if not isinstance(data, list) or not data:
            raise NotFoundError(f"update: no row for {key}", status=404)
        return item_from_row(data[0])

    def delete_sync(self, identity: Identity, key: ItemKey) -> None:
        self._call("delete", "DELETE", params=self._filters(identity, key), headers=self._headers(identity))

    # RemoteMediaRepository
    async def list_all(self, identity: Identity) -> list[WatchItem]:
        return await asyncio.to_thread(self.list_all_sync, identity)

    async def insert(self, identity: Identity, item: WatchItem) -> WatchItem:
        return await asyncio.to_thread(self.insert_sync, identity, item)

    async def update(self, identity: Identity, key: ItemKey, fields: Mapping[str, Any]) -> WatchItem:
        return await asyncio.to_thread(self.update_sync, identity, key, fields)

    async def delete(self, identity: Identity, key: ItemKey) -> None:
        await asyncio.to_thread(self.delete_sync, identity, key)
