# wn_platform/media.py
# watch item model: Movie / Series tagged union and its wire shapes.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import dataclasses
from dataclasses import dataclass
from datetime import datetime, timezone
from enum import Enum
from collections.abc import Mapping
from typing import Any, ClassVar, NamedTuple, Union


class Status(str, Enum):
    WANT = "want_to_watch"
    WATCHING = "watching"
    COMPLETED = "completed"


# partition order of the stored blob and of flattened listings
STATUS_ORDER: tuple[Status, ...] = (Status.WANT, Status.WATCHING, Status.COMPLETED)


class MediaKind(str, Enum):
    MOVIE = "movie"
    SERIES = "tv"


class ItemKey(NamedTuple):
    external_id: int
    kind: MediaKind

    def __str__(self) -> str:
        return f"{self.kind.value}:{self.external_id}"


def now_iso() -> str:
    return datetime.now(timezone.utc).isoformat(timespec="milliseconds").replace("+00:00", "Z")


def as_int(v: Any) -> int | None:
    if v is None or isinstance(v, bool):
        return None
    if isinstance(v, int):
        return v
    if isinstance(v, float):
        return int(v)
    s = str(v).strip()
    if not s:
        return None
    try:
        return int(float(s)) if ("." in s or "e" in s.lower()) else int(s)
    except Exception:
        return None


def parse_kind(x: Any) -> MediaKind:
    t = str(getattr(x, "value", x) or "").strip().lower()
    if t in {"tv", "show", "shows", "series"}:
        return MediaKind.SERIES
    if t in {"movie", "movies", "film"}:
        return MediaKind.MOVIE
    raise ValueError(f"unknown media kind: {x!r}")


def parse_status(x: Any) -> Status:
    try:
        return Status(str(getattr(x, "value", x) or "").strip().lower())
    except ValueError:
        raise ValueError(f"unknown status: {x!r}") from None


@dataclass(frozen=True)
class _Base:
    external_id: int
    title: str
    status: Status = Status.WANT
    poster_path: str | None = None
    release_year: str = ""
    rating: float = 0.0
    added_at: str = ""
    overview: str | None = None

    kind: ClassVar[MediaKind]

    @property
    def key(self) -> ItemKey:
        return ItemKey(self.external_id, self.kind)

    def with_status(self, status: Status) -> "WatchItem":
        return dataclasses.replace(self, status=status)  # type: ignore[return-value]


@dataclass(frozen=True)
class Movie(_Base):
    runtime: int | None = None

    kind: ClassVar[MediaKind] = MediaKind.MOVIE


@dataclass(frozen=True)
class Series(_Base):
    season: int | None = None
    episode: int | None = None
    number_of_seasons: int | None = None
    number_of_episodes: int | None = None

    kind: ClassVar[MediaKind] = MediaKind.SERIES

    def __post_init__(self) -> None:
        if (self.season is None) != (self.episode is None):
            raise ValueError("season and episode must be set together")
        if self.season is not None and (self.season < 1 or (self.episode or 0) < 1):
            raise ValueError("season and episode must be positive")

    @property
    def progress(self) -> tuple[int, int] | None:
        if self.season is None or self.episode is None:
            return None
        return self.season, self.episode

    def with_progress(self, season: int, episode: int) -> "Series":
        return dataclasses.replace(self, season=season, episode=episode)


WatchItem = Union[Movie, Series]


# --- local blob (camelCase, as the browser client stored it) ------------------

def item_to_payload(item: WatchItem) -> dict[str, Any]:
    out: dict[str, Any] = {
        "tmdbId": item.external_id,
        "title": item.title,
        "mediaType": item.kind.value,
        "posterPath": item.poster_path,
        "releaseYear": item.release_year,
        "rating": item.rating,
        "status": item.status.value,
        "addedAt": item.added_at,
    }
    if item.overview is not None:
        out["overview"] = item.overview
    if isinstance(item, Series):
        extras = {
            "currentSeason": item.season,
            "currentEpisode": item.episode,
            "numberOfSeasons": item.number_of_seasons,
            "numberOfEpisodes": item.number_of_episodes,
        }
    else:
        extras = {"runtime": item.runtime}
    out.update({k: v for k, v in extras.items() if v is not None})
    return out


def _build(kind: MediaKind, common: dict[str, Any], extra: Mapping[str, Any]) -> WatchItem:
    if kind is MediaKind.SERIES:
        season, episode = as_int(extra.get("season")), as_int(extra.get("episode"))
        if season is None or episode is None or season < 1 or episode < 1:
            # half-set or zeroed progress columns read as no progress
            season = episode = None
        return Series(
            **common,
            season=season,
            episode=episode,
            number_of_seasons=as_int(extra.get("number_of_seasons")),
            number_of_episodes=as_int(extra.get("number_of_episodes")),
        )
    return Movie(**common, runtime=as_int(extra.get("runtime")))


def _common(external_id: Any, title: Any, status: Any, poster: Any, year: Any,
            rating: Any, added: Any, overview: Any) -> dict[str, Any]:
    eid = as_int(external_id)
    if eid is None:
        raise ValueError(f"missing external id: {external_id!r}")
    try:
        score = float(rating or 0.0)
    except (TypeError, ValueError):
        score = 0.0
    return {
        "external_id": eid,
        "title": str(title or ""),
        "status": parse_status(status),
        "poster_path": str(poster) if poster else None,
        "release_year": str(year or ""),
        "rating": score,
        "added_at": str(added or ""),
        "overview": str(overview) if overview is not None else None,
    }


def item_from_payload(obj: Any) -> WatchItem:
    if not isinstance(obj, Mapping):
        raise ValueError("item payload must be an object")
    common = _common(
        obj.get("tmdbId"), obj.get("title"), obj.get("status"), obj.get("posterPath"),
        obj.get("releaseYear"), obj.get("rating"), obj.get("addedAt"), obj.get("overview"),
    )
    extra = {
        "season": obj.get("currentSeason"),
        "episode": obj.get("currentEpisode"),
        "number_of_seasons": obj.get("numberOfSeasons"),
        "number_of_episodes": obj.get("numberOfEpisodes"),
        "runtime": obj.get("runtime"),
    }
    return _build(parse_kind(obj.get("mediaType")), common, extra)


# --- remote row (snake_case, user_media table) --------------------------------

def item_to_row(item: WatchItem) -> dict[str, Any]:
    row: dict[str, Any] = {
        "tmdb_id": item.external_id,
        "media_type": item.kind.value,
        "status": item.status.value,
        "title": item.title,
        "poster_path": item.poster_path,
        "release_year": item.release_year,
        "rating": item.rating,
        "overview": item.overview,
    }
    if isinstance(item, Series):
        row.update(
            current_season=item.season,
            current_episode=item.episode,
            number_of_seasons=item.number_of_seasons,
            number_of_episodes=item.number_of_episodes,
        )
    else:
        row["runtime"] = item.runtime
    return row


def item_from_row(row: Any) -> WatchItem:
    if not isinstance(row, Mapping):
        raise ValueError("row must be an object")
    common = _common(
        row.get("tmdb_id"), row.get("title"), row.get("status"), row.get("poster_path"),
        row.get("release_year"), row.get("rating"), row.get("created_at"), row.get("overview"),
    )
    extra = {
        "season": row.get("current_season"),
        "episode": row.get("current_episode"),
        "number_of_seasons": row.get("number_of_seasons"),
        "number_of_episodes": row.get("number_of_episodes"),
        "runtime": row.get("runtime"),
    }
    return _build(parse_kind(row.get("media_type")), common, extra)


__all__ = [
    "Status",
    "STATUS_ORDER",
    "MediaKind",
    "ItemKey",
    "Movie",
    "Series",
    "WatchItem",
    "now_iso",
    "as_int",
    "parse_kind",
    "parse_status",
    "item_to_payload",
    "item_from_payload",
    "item_to_row",
    "item_from_row",
]
