# WatchNest test scripts
from __future__ import annotations

import json

from wn_platform.collection import Collection
from wn_platform.media import Status
from wn_platform.sync import STORAGE_KEY, LocalCacheStore


def test_missing_file_reads_empty(config_base):
    store = LocalCacheStore(config_base)
    assert len(store.read()) == 0
    assert store.path.name == f"{STORAGE_KEY}.json"


def test_write_then_read_and_blob_shape(config_base, make_movie, make_series):
    store = LocalCacheStore(config_base)
    store.write(Collection.from_items([make_movie(1), make_series(2, Status.WATCHING, season=1, episode=1)]))

    blob = json.loads(store.path.read_text("utf-8"))
    assert set(blob) == {"want_to_watch", "watching", "completed"}
    assert blob["watching"][0]["mediaType"] == "tv"

    back = store.read()
    assert len(back) == 2
    assert back.by_status(Status.WATCHING)[0].progress == (1, 1)
    assert not list(config_base.glob("*.tmp"))


def test_corrupt_blob_degrades_to_empty(config_base):
    store = LocalCacheStore(config_base)
    store.path.write_text("{not json", "utf-8")
    assert len(store.read()) == 0

    store.path.write_text(json.dumps({"watching": [{"tmdbId": None, "mediaType": "movie"}]}), "utf-8")
    assert len(store.read()) == 0


def test_subscribers_get_snapshots_until_unsubscribed(config_base, make_movie):
    store = LocalCacheStore(config_base)
    seen: list[Collection] = []
    unsub = store.subscribe(seen.append)

    c = Collection.from_items([make_movie(1)])
    store.write(c)
    c.insert(make_movie(2))  # mutating the caller's copy must not leak into the event
    assert len(seen) == 1 and len(seen[0]) == 1

    unsub()
    store.clear()
    assert len(seen) == 1
    assert len(store.read()) == 0


def test_failing_subscriber_does_not_block_others(config_base, make_movie):
    store = LocalCacheStore(config_base)
    seen: list[int] = []

    def boom(_):
        raise RuntimeError("listener bug")

    store.subscribe(boom)
    store.subscribe(lambda coll: seen.append(len(coll)))
    store.write(Collection.from_items([make_movie(1)]))
    assert seen == [1]
