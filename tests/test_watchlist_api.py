# WatchNest test scripts
from __future__ import annotations

import pytest
import responses
from fastapi.testclient import TestClient

from providers.auth import StaticSession
from providers.metadata._meta_TMDB import API_BASE, TmdbProvider
from providers.remote import InMemoryMediaRepository
from wn_platform.config_base import load_config
from wn_platform.sync import Identity


@pytest.fixture()
def app_env(config_base):
    from watchnest import create_app

    remote = InMemoryMediaRepository()
    session = StaticSession()
    meta = TmdbProvider(lambda: {"tmdb": {"api_key": "k-123"}})
    app = create_app(load_config(), base_path=config_base, remote=remote, session=session, metadata=meta)
    with TestClient(app) as client:
        yield client, app, remote


def _add(client, tmdb_id=550, kind="movie", **kw):
    body = {"tmdbId": tmdb_id, "mediaType": kind, "title": kw.pop("title", f"Title {tmdb_id}"), **kw}
    return client.post("/api/watchlist", json=body)


def test_guest_lifecycle_over_http(app_env):
    client, app, remote = app_env

    r = _add(client, 550)
    assert r.status_code == 200 and r.json()["ok"] is True
    assert r.json()["item"]["addedAt"]

    lst = client.get("/api/watchlist/want_to_watch").json()
    assert lst["count"] == 1 and lst["items"][0]["tmdbId"] == 550

    r = client.patch("/api/watchlist/movie/550/status", json={"status": "watching"})
    assert r.json()["item"]["status"] == "watching"
    assert client.get("/api/watchlist/want_to_watch").json()["count"] == 0

    r = client.patch("/api/watchlist/movie/550/progress", json={"season": 1, "episode": 1})
    assert r.status_code == 200
    assert r.json() == {"ok": False, "outcome": "not_a_series", "detail": "movie:550"}

    item = client.get("/api/watchlist/item/movie/550").json()
    assert item["status"] == "watching" and item["progress"] is None

    assert client.delete("/api/watchlist/movie/550").json()["ok"] is True
    assert client.get("/api/watchlist/item/movie/550").status_code == 404
    assert remote.calls == []


def test_series_progress_and_soft_outcomes(app_env):
    client, _, _ = app_env
    _add(client, 1399, "tv", status="watching")

    r = client.patch("/api/watchlist/tv/1399/progress", json={"season": 2, "episode": 3})
    assert r.json()["item"]["currentSeason"] == 2
    assert client.get("/api/watchlist/item/tv/1399").json()["progress"] == [2, 3]

    dup = _add(client, 1399, "tv")
    assert dup.status_code == 200 and dup.json()["outcome"] == "duplicate_item"

    missing = client.patch("/api/watchlist/tv/1/status", json={"status": "completed"})
    assert missing.json()["outcome"] == "item_not_found"

    assert client.patch("/api/watchlist/tv/1399/progress", json={"season": 0, "episode": 3}).status_code == 422


def test_bad_input_is_400(app_env):
    client, _, _ = app_env
    assert client.get("/api/watchlist/dropped").status_code == 400
    assert client.delete("/api/watchlist/episode/1").status_code == 400
    assert _add(client, 1, "movie", status="later").status_code == 400


def test_remote_rejection_is_502_and_leaves_no_trace(app_env):
    client, app, remote = app_env
    assert client.post("/api/session/login", json={"email": "viewer@example.com"}).json()["authenticated"]

    remote.fail_all_writes = True
    r = _add(client, 42)
    assert r.status_code == 502
    assert r.json()["op"] == "add" and r.json()["key"] == "movie:42"
    assert client.get("/api/watchlist/want_to_watch").json()["count"] == 0


def test_bare_id_is_filled_from_tmdb(app_env):
    client, _, _ = app_env
    with responses.RequestsMock() as rsps:
        rsps.add(
            responses.GET,
            f"{API_BASE}/movie/603",
            json={"id": 603, "title": "The Matrix", "release_date": "1999-03-31", "vote_average": 8.2},
            status=200,
        )
        r = client.post("/api/watchlist", json={"tmdbId": 603, "mediaType": "movie", "status": "completed"})
    item = r.json()["item"]
    assert item["title"] == "The Matrix" and item["releaseYear"] == "1999" and item["status"] == "completed"


def test_session_flow_migrates_guest_items(app_env):
    client, app, remote = app_env

    st = client.get("/api/session").json()
    assert st["authenticated"] is False and st["app_initialized"] is True
    assert st["show_guest_warning"] is True
    assert client.post("/api/session/guest-warning").json()["show_guest_warning"] is False
    assert client.get("/api/session").json()["show_guest_warning"] is False

    _add(client, 1)
    _add(client, 2, "tv")
    assert client.get("/api/session").json()["has_guest_data"] is True

    st = client.post("/api/session/login", json={"email": "viewer@example.com", "decision": "migrate"}).json()
    assert st["authenticated"] is True
    assert st["user"]["id"] == "local:viewer@example.com"
    assert st["has_guest_data"] is False
    assert st["item_count"] == 2
    rows = remote.rows_for(Identity(user_id="local:viewer@example.com"))
    assert {(it.external_id, it.kind.value) for it in rows} == {(1, "movie"), (2, "tv")}

    st = client.post("/api/session/logout").json()
    assert st["authenticated"] is False
    assert st["item_count"] == 0
    assert st["app_initialized"] is True


def test_discard_choice_is_applied_at_login(app_env):
    client, app, remote = app_env
    r = client.post("/api/session/migrate", json={"decision": "discard"})
    assert r.json() == {"ok": True, "decision": "discard", "pending": False}
    assert client.post("/api/session/migrate", json={"decision": "later"}).status_code == 400

    _add(client, 1)
    st = client.post("/api/session/login", json={"email": "viewer@example.com"}).json()
    assert st["item_count"] == 0
    assert st["migration_decision"] == "discard"
    assert remote.rows_for(Identity(user_id="local:viewer@example.com")) == []
