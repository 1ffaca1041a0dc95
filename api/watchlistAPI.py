# /api/watchlistAPI.py
# WatchNest - watchlist endpoints over the sync coordinator
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from typing import Any

import requests
from fastapi import APIRouter, Body, Path as FPath, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel, Field

from wn_platform.media import (
    ItemKey,
    WatchItem,
    item_from_payload,
    item_to_payload,
    now_iso,
    parse_kind,
    parse_status,
)
from wn_platform.sync import OpResult, RemoteWriteFailed, SyncCoordinator

router = APIRouter(prefix="/api/watchlist", tags=["watchlist"])


class ItemIn(BaseModel):
    tmdbId: int
    mediaType: str
    status: str = "want_to_watch"
    title: str = ""
    posterPath: str | None = None
    releaseYear: str | None = None
    rating: float | None = None
    overview: str | None = None
    addedAt: str | None = None
    runtime: int | None = None
    currentSeason: int | None = None
    currentEpisode: int | None = None
    numberOfSeasons: int | None = None
    numberOfEpisodes: int | None = None


class StatusIn(BaseModel):
    status: str


class ProgressIn(BaseModel):
    season: int = Field(..., ge=1)
    episode: int = Field(..., ge=1)


def _coordinator(request: Request) -> SyncCoordinator:
    return request.app.state.coordinator


def _key(kind: str, tmdb_id: int) -> ItemKey:
    return ItemKey(int(tmdb_id), parse_kind(kind))


def _bad(msg: str) -> JSONResponse:
    return JSONResponse({"ok": False, "error": msg}, status_code=400)


def _result(res: OpResult) -> JSONResponse:
    if not res.ok:
        return JSONResponse({"ok": False, "outcome": res.outcome.value, "detail": res.detail})
    body: dict[str, Any] = {"ok": True, "outcome": res.outcome.value}
    if res.item is not None:
        body["item"] = item_to_payload(res.item)
    return JSONResponse(body)


def _remote_failed(e: RemoteWriteFailed) -> JSONResponse:
    return JSONResponse(
        {"ok": False, "error": str(e), "op": e.op, "key": str(e.key) if e.key else None},
        status_code=502,
    )


def _item_from_body(request: Request, body: ItemIn) -> WatchItem:
    payload = body.model_dump()
    if not payload.get("addedAt"):
        payload["addedAt"] = now_iso()
    meta = getattr(request.app.state, "metadata", None)
    if not body.title and meta is not None:
        # bare id: fill title and details from TMDb
        return meta.to_item(body.tmdbId, body.mediaType, parse_status(body.status))
    return item_from_payload(payload)


@router.get("/item/{kind}/{tmdb_id}")
def api_watchlist_item(request: Request, kind: str = FPath(...), tmdb_id: int = FPath(...)) -> JSONResponse:
    try:
        key = _key(kind, tmdb_id)
    except ValueError as e:
        return _bad(str(e))
    coord = _coordinator(request)
    it = coord.get_item(key)
    if it is None:
        return JSONResponse({"ok": False, "outcome": "item_not_found", "key": str(key)}, status_code=404)
    return JSONResponse(
        {"ok": True, "item": item_to_payload(it), "status": it.status.value, "progress": coord.get_progress(key)}
    )


@router.get("/{status}")
def api_watchlist_list(request: Request, status: str = FPath(...)) -> JSONResponse:
    try:
        st = parse_status(status)
    except ValueError as e:
        return _bad(str(e))
    items = _coordinator(request).query_by_status(st)
    return JSONResponse({"ok": True, "status": st.value, "count": len(items), "items": [item_to_payload(i) for i in items]})


@router.post("")
async def api_watchlist_add(request: Request, body: ItemIn = Body(...)) -> JSONResponse:
    try:
        item = await asyncio.to_thread(_item_from_body, request, body)
    except ValueError as e:
        return _bad(str(e))
    except (RuntimeError, requests.RequestException) as e:
        return JSONResponse({"ok": False, "error": f"metadata lookup failed: {e}"}, status_code=502)
    try:
        return _result(await _coordinator(request).add_item(item))
    except RemoteWriteFailed as e:
        return _remote_failed(e)


@router.delete("/{kind}/{tmdb_id}")
async def api_watchlist_remove(request: Request, kind: str = FPath(...), tmdb_id: int = FPath(...)) -> JSONResponse:
    try:
        key = _key(kind, tmdb_id)
    except ValueError as e:
        return _bad(str(e))
    try:
        return _result(await _coordinator(request).remove_item(key))
    except RemoteWriteFailed as e:
        return _remote_failed(e)


@router.patch("/{kind}/{tmdb_id}/status")
async def api_watchlist_status(
    request: Request,
    kind: str = FPath(...),
    tmdb_id: int = FPath(...),
    body: StatusIn = Body(...),
) -> JSONResponse:
    try:
        key = _key(kind, tmdb_id)
        st = parse_status(body.status)
    except ValueError as e:
        return _bad(str(e))
    try:
        return _result(await _coordinator(request).change_status(key, st))
    except RemoteWriteFailed as e:
        return _remote_failed(e)


@router.patch("/{kind}/{tmdb_id}/progress")
async def api_watchlist_progress(
    request: Request,
    kind: str = FPath(...),
    tmdb_id: int = FPath(...),
    body: ProgressIn = Body(...),
) -> JSONResponse:
    try:
        key = _key(kind, tmdb_id)
    except ValueError as e:
        return _bad(str(e))
    try:
        return _result(await _coordinator(request).update_progress(key, body.season, body.episode))
    except RemoteWriteFailed as e:
        return _remote_failed(e)
