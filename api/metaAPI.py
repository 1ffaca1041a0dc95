# /api/metaAPI.py
# WatchNest - TMDb search and details for the add-to-list flow
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from typing import Any

import requests
from fastapi import APIRouter, Path as FPath, Query, Request
from fastapi.responses import JSONResponse

from providers.metadata._meta_TMDB import TmdbProvider, poster_url

router = APIRouter(prefix="/api/metadata", tags=["metadata"])


def _provider(request: Request) -> TmdbProvider | None:
    return getattr(request.app.state, "metadata", None)


def _call(request: Request, fn_name: str, *args: Any, **kw: Any) -> JSONResponse:
    prov = _provider(request)
    if prov is None:
        return JSONResponse({"ok": False, "error": "metadata provider not available"}, status_code=503)
    try:
        data = getattr(prov, fn_name)(*args, **kw)
    except ValueError as e:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=400)
    except RuntimeError as e:
        # missing api key
        return JSONResponse({"ok": False, "error": str(e)}, status_code=200)
    except requests.RequestException as e:
        return JSONResponse({"ok": False, "error": f"TMDb unavailable: {e}"}, status_code=502)
    if isinstance(data, dict):
        for r in data.get("results") or []:
            if isinstance(r, dict):
                r["poster_url"] = poster_url(r.get("poster_path"))
    return JSONResponse({"ok": True, "data": data})


@router.get("/search")
def api_metadata_search(
    request: Request,
    q: str = Query(..., min_length=1),
    kind: str = Query("movie"),
    page: int = Query(1, ge=1, le=500),
) -> JSONResponse:
    return _call(request, "search", q, kind, page)


@router.get("/popular/{kind}")
def api_metadata_popular(request: Request, kind: str = FPath(...), page: int = Query(1, ge=1, le=500)) -> JSONResponse:
    return _call(request, "popular", kind, page)


@router.get("/{kind}/{tmdb_id}")
def api_metadata_details(request: Request, kind: str = FPath(...), tmdb_id: int = FPath(...)) -> JSONResponse:
    return _call(request, "details", tmdb_id, kind)
