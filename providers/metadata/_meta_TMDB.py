# providers/metadata/_meta_TMDB.py
# WatchNest - TMDb Metadata Provider
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import hashlib
import random
import time
from collections.abc import Mapping
from typing import Any, Callable

import requests

from _logging import Logger, log as _root_log
from wn_platform.media import MediaKind, Movie, Series, Status, as_int, now_iso, parse_kind

API_BASE = "https://api.themoviedb.org/3"
IMG_BASE = "https://image.tmdb.org/t/p"

__all__ = ["TmdbProvider", "get_year", "poster_url", "movie_to_item", "tv_to_item"]


def get_year(date_string: str | None) -> str:
    if not date_string:
        return "N/A"
    return str(date_string).split("-")[0]


def poster_url(path: str | None, size: str = "w342") -> str | None:
    if not path:
        return None
    return f"{IMG_BASE}/{size}{path}"


def movie_to_item(movie: Mapping[str, Any], status: Status) -> Movie:
    return Movie(
        external_id=int(movie["id"]),
        title=str(movie.get("title") or ""),
        status=status,
        poster_path=movie.get("poster_path"),
        release_year=get_year(movie.get("release_date")),
        rating=float(movie.get("vote_average") or 0.0),
        added_at=now_iso(),
        overview=movie.get("overview"),
        runtime=as_int(movie.get("runtime")),
    )


def tv_to_item(tv: Mapping[str, Any], status: Status) -> Series:
    return Series(
        external_id=int(tv["id"]),
        title=str(tv.get("name") or ""),
        status=status,
        poster_path=tv.get("poster_path"),
        release_year=get_year(tv.get("first_air_date")),
        rating=float(tv.get("vote_average") or 0.0),
        added_at=now_iso(),
        overview=tv.get("overview"),
        number_of_seasons=as_int(tv.get("number_of_seasons")),
        number_of_episodes=as_int(tv.get("number_of_episodes")),
    )


class TmdbProvider:
    name = "TMDB"

    @staticmethod
    def manifest() -> dict[str, Any]:
        return {"id": "tmdb", "name": "TMDB", "enabled": True, "version": "1.0"}

    def __init__(
        self,
        load_cfg: Callable[[], Mapping[str, Any]],
        *,
        session: requests.Session | None = None,
        logger: Logger | None = None,
    ) -> None:
        self.load_cfg = load_cfg
        self.http = session or requests.Session()
        self.log = logger or _root_log.child("META")
        self._cache: dict[str, tuple[float, Any]] = {}

    def _tmdb_cfg(self) -> Mapping[str, Any]:
        return (self.load_cfg() or {}).get("tmdb") or {}

    def _apikey(self) -> str:
        api_key = str(self._tmdb_cfg().get("api_key") or "").strip()
        if not api_key:
            raise RuntimeError("TMDb API key is missing")
        return api_key

    def _ttl_seconds(self) -> int:
        hours = as_int(self._tmdb_cfg().get("ttl_hours"))
        return max(1, hours if hours is not None else 6) * 3600

    @staticmethod
    def _retry_delay(attempt: int, base_s: float = 0.5, max_s: float = 4.0) -> float:
        return min(max_s, base_s * (2**attempt)) + random.uniform(0.0, 0.25)

    def _get(self, path: str, params: Mapping[str, Any] | None = None, *, max_retries: int = 3) -> Any:
        url = f"{API_BASE}{path}"
        q = dict(params or {})
        q["api_key"] = self._apikey()
        lang = str(self._tmdb_cfg().get("language") or "").strip()
        if lang:
            q.setdefault("language", lang)
        ck = hashlib.sha1((url + "?" + "&".join(sorted(f"{k}={v}" for k, v in q.items()))).encode("utf-8")).hexdigest()

        hit = self._cache.get(ck)
        if hit and (time.time() - hit[0]) < self._ttl_seconds():
            return hit[1]

        attempt = 0
        while True:
            r = self.http.get(url, params=q, headers={"Accept": "application/json"}, timeout=15)
            status = r.status_code
            if (status == 429 or 500 <= status < 600) and attempt < max_retries:
                ra = (r.headers.get("Retry-After") or "").strip()
                time.sleep(float(ra) if ra.isdigit() else self._retry_delay(attempt))
                attempt += 1
                continue
            if status >= 400:
                self.log.warn(f"TMDb request failed ({status}) at {path}")
                r.raise_for_status()
            data = r.json()
            self._cache[ck] = (time.time(), data)
            return data

    def search(self, query: str, kind: MediaKind | str, page: int = 1) -> dict[str, Any]:
        k = parse_kind(kind)
        path = "/search/movie" if k is MediaKind.MOVIE else "/search/tv"
        return self._get(path, {"query": query, "page": int(page)})

    def popular(self, kind: MediaKind | str, page: int = 1) -> dict[str, Any]:
        k = parse_kind(kind)
        return self._get(f"/{'movie' if k is MediaKind.MOVIE else 'tv'}/popular", {"page": int(page)})

    def details(self, external_id: int, kind: MediaKind | str) -> dict[str, Any]:
        k = parse_kind(kind)
        return self._get(f"/{'movie' if k is MediaKind.MOVIE else 'tv'}/{int(external_id)}")

    def to_item(self, external_id: int, kind: MediaKind | str, status: Status) -> Movie | Series:
        """Fetch details and build a watch item with the detail fields cached on it."""
        k = parse_kind(kind)
        data = self.details(external_id, k)
        return movie_to_item(data, status) if k is MediaKind.MOVIE else tv_to_item(data, status)
