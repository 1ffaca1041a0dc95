from __future__ import annotations

from fastapi import FastAPI

from .metaAPI import router as meta_router
from .sessionAPI import router as session_router
from .watchlistAPI import router as watchlist_router

__all__ = ["meta_router", "session_router", "watchlist_router", "register"]


def register(app: FastAPI) -> None:
    app.include_router(watchlist_router)
    app.include_router(session_router)
    app.include_router(meta_router)
