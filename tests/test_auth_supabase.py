# WatchNest test scripts
from __future__ import annotations

import json
import time

import pytest
import responses

from providers.auth import AuthError, StaticSession, SupabaseSession, build_auth

BASE = "https://sb.example.co"
TOKEN_URL = f"{BASE}/auth/v1/token"
LOGOUT_URL = f"{BASE}/auth/v1/logout"


def _grant(access="at-1", refresh="rt-1", uid="u-9", email="viewer@example.com", expires_in=3600):
    return {
        "access_token": access,
        "refresh_token": refresh,
        "expires_in": expires_in,
        "user": {"id": uid, "email": email},
    }


def test_sign_in_sets_identity_persists_and_notifies(config_base):
    s = SupabaseSession(BASE, "anon-key", config_base)
    seen = []
    s.on_identity_change(seen.append)

    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json=_grant(), status=200)
        st = s.sign_in("viewer@example.com", "pw")
        assert "grant_type=password" in rsps.calls[0].request.url
        assert json.loads(rsps.calls[0].request.body) == {"email": "viewer@example.com", "password": "pw"}

    assert st.connected and st.user == "viewer@example.com"
    assert st.expires_at and st.expires_at > time.time()
    ident = s.current_identity()
    assert ident.user_id == "u-9" and ident.access_token == "at-1"
    assert seen == [ident]

    saved = json.loads((config_base / "session.json").read_text("utf-8"))
    assert saved["refresh_token"] == "rt-1"
    assert "at-1" not in repr(ident)


def test_bad_credentials_raise_auth_error(config_base):
    s = SupabaseSession(BASE, "anon-key", config_base)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"error_description": "Invalid login credentials"}, status=400)
        with pytest.raises(AuthError, match="Invalid login credentials"):
            s.sign_in("viewer@example.com", "wrong")
    assert s.current_identity() is None
    assert not (config_base / "session.json").exists()


def test_restore_reuses_valid_session_without_notifying(config_base):
    (config_base / "session.json").write_text(
        json.dumps({"user_id": "u-9", "email": "e@x", "access_token": "at-1",
                    "refresh_token": "rt-1", "expires_at": int(time.time()) + 3600}),
        "utf-8",
    )
    s = SupabaseSession(BASE, "anon-key", config_base)
    seen = []
    s.on_identity_change(seen.append)
    ident = s.restore()
    assert ident is not None and ident.user_id == "u-9"
    assert s.current_identity() == ident
    assert seen == []


def test_restore_refreshes_expired_session(config_base):
    (config_base / "session.json").write_text(
        json.dumps({"user_id": "u-9", "access_token": "old", "refresh_token": "rt-1", "expires_at": 1}),
        "utf-8",
    )
    s = SupabaseSession(BASE, "anon-key", config_base)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json=_grant(access="at-2", refresh="rt-2"), status=200)
        ident = s.restore()
        assert "grant_type=refresh_token" in rsps.calls[0].request.url
        assert json.loads(rsps.calls[0].request.body) == {"refresh_token": "rt-1"}
    assert ident.access_token == "at-2"


def test_restore_with_dead_refresh_token_starts_signed_out(config_base):
    (config_base / "session.json").write_text(
        json.dumps({"user_id": "u-9", "access_token": "old", "refresh_token": "rt-1", "expires_at": 1}),
        "utf-8",
    )
    s = SupabaseSession(BASE, "anon-key", config_base)
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json={"msg": "Invalid Refresh Token"}, status=400)
        assert s.restore() is None
    assert s.current_identity() is None
    assert not (config_base / "session.json").exists()


def test_restore_ignores_garbage(config_base):
    (config_base / "session.json").write_text("{nope", "utf-8")
    assert SupabaseSession(BASE, "anon-key", config_base).restore() is None


def test_sign_out_revokes_and_forgets(config_base):
    s = SupabaseSession(BASE, "anon-key", config_base)
    seen = []
    with responses.RequestsMock() as rsps:
        rsps.add(responses.POST, TOKEN_URL, json=_grant(), status=200)
        rsps.add(responses.POST, LOGOUT_URL, body="", status=204)
        s.sign_in("viewer@example.com", "pw")
        s.on_identity_change(seen.append)
        st = s.sign_out()
        assert rsps.calls[1].request.headers["Authorization"] == "Bearer at-1"
    assert not st.connected
    assert seen == [None]
    assert not (config_base / "session.json").exists()


def test_static_session_and_factory(config_base):
    s = StaticSession()
    seen = []
    s.on_identity_change(seen.append)
    s.sign_in(" Viewer@Example.com ", "")
    assert s.current_identity().user_id == "local:viewer@example.com"
    s.sign_out()
    assert seen[-1] is None and len(seen) == 2

    assert isinstance(build_auth({"supabase": {"url": ""}}, config_base), StaticSession)
    assert isinstance(build_auth({"supabase": {"url": BASE, "anon_key": "k"}}, config_base), SupabaseSession)
