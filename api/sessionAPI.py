# /api/sessionAPI.py
# WatchNest - session, guest flags and migration choice
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import asyncio
from dataclasses import asdict
from typing import Any

from fastapi import APIRouter, Body, Request
from fastapi.responses import JSONResponse
from pydantic import BaseModel

from providers.auth import AuthError
from wn_platform.context import AppContext
from wn_platform.sync._migration import coerce_decision

router = APIRouter(prefix="/api/session", tags=["session"])


class LoginIn(BaseModel):
    email: str
    password: str = ""
    decision: str | None = None


class MigrateIn(BaseModel):
    decision: str


def _ctx(request: Request) -> AppContext:
    return request.app.state.ctx


def _state(request: Request) -> dict[str, Any]:
    ctx = _ctx(request)
    snap = ctx.snapshot()
    session = request.app.state.session
    return {
        "ok": True,
        "authenticated": snap.is_authenticated,
        "user": {"id": snap.identity.user_id, "email": snap.identity.email} if snap.identity else None,
        "auth": asdict(session.get_status()),
        "guest_warning_shown": snap.guest_warning_shown,
        "show_guest_warning": ctx.should_show_guest_warning(),
        "has_guest_data": snap.has_guest_data,
        "item_count": request.app.state.coordinator.guest_data_count(),
        "auth_resolved": snap.auth_resolved,
        "data_hydrated": snap.data_hydrated,
        "app_initialized": snap.app_initialized,
        "migration_decision": request.app.state.migration_decision.value,
    }


@router.get("")
def api_session(request: Request) -> JSONResponse:
    return JSONResponse(_state(request))


@router.post("/login")
async def api_session_login(request: Request, body: LoginIn = Body(...)) -> JSONResponse:
    if body.decision is not None:
        try:
            request.app.state.migration_decision = coerce_decision(body.decision)
        except ValueError:
            return JSONResponse({"ok": False, "error": f"unknown decision: {body.decision!r}"}, status_code=400)
    session = request.app.state.session
    try:
        await asyncio.to_thread(session.sign_in, body.email, body.password)
    except AuthError as e:
        return JSONResponse({"ok": False, "error": str(e)}, status_code=401)
    # migration and hydration run off the identity-change listener
    await request.app.state.sequencer.wait_idle()
    return JSONResponse(_state(request))


@router.post("/logout")
async def api_session_logout(request: Request) -> JSONResponse:
    await asyncio.to_thread(request.app.state.session.sign_out)
    await request.app.state.sequencer.wait_idle()
    return JSONResponse(_state(request))


@router.post("/migrate")
def api_session_migrate(request: Request, body: MigrateIn = Body(...)) -> JSONResponse:
    try:
        decision = coerce_decision(body.decision)
    except ValueError:
        return JSONResponse({"ok": False, "error": f"unknown decision: {body.decision!r}"}, status_code=400)
    request.app.state.migration_decision = decision
    return JSONResponse({"ok": True, "decision": decision.value, "pending": _ctx(request).has_guest_data})


@router.post("/guest-warning")
def api_session_guest_warning(request: Request) -> JSONResponse:
    _ctx(request).mark_guest_warning_shown()
    return JSONResponse({"ok": True, "show_guest_warning": False})
