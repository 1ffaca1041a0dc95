# wn_platform/sync/_errors.py
# outcomes and errors of sync operations.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from ..media import ItemKey, WatchItem


class RemoteError(Exception):
    """Transport failure or unexpected answer from the remote store."""

    def __init__(self, message: str, *, status: int | None = None) -> None:
        super().__init__(message)
        self.status = status


class DuplicateKeyError(RemoteError):
    pass


class NotFoundError(RemoteError):
    pass


class SyncError(Exception):
    pass


class RemoteWriteFailed(SyncError):
    """The remote step of a write-through failed; the local cache was not touched."""

    def __init__(self, op: str, key: ItemKey | None, reason: str) -> None:
        where = f" {key}" if key is not None else ""
        super().__init__(f"{op}{where}: {reason}")
        self.op = op
        self.key = key


class Outcome(str, Enum):
    OK = "ok"
    DUPLICATE_ITEM = "duplicate_item"
    ITEM_NOT_FOUND = "item_not_found"
    NOT_A_SERIES = "not_a_series"
    SKIPPED_GUEST = "skipped_guest"
    REMOTE_UNAVAILABLE = "remote_unavailable"


@dataclass(frozen=True)
class OpResult:
    outcome: Outcome
    item: WatchItem | None = None
    detail: str | None = None

    @property
    def ok(self) -> bool:
        return self.outcome is Outcome.OK

    @classmethod
    def success(cls, item: WatchItem | None = None) -> "OpResult":
        return cls(Outcome.OK, item)

    @classmethod
    def soft(cls, outcome: Outcome, detail: str | None = None) -> "OpResult":
        return cls(outcome, None, detail)


__all__ = [
    "RemoteError",
    "DuplicateKeyError",
    "NotFoundError",
    "SyncError",
    "RemoteWriteFailed",
    "Outcome",
    "OpResult",
]
