# wn_platform/sync/_observers.py
# explicit observer lists with deterministic unsubscribe.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from collections.abc import Callable
from typing import Generic, TypeVar

from _logging import Logger, log as _root_log

from ._types import Unsubscribe

T = TypeVar("T")


class Observers(Generic[T]):
    """Listener list; every subscribe() hands back its own unsubscribe."""

    def __init__(self, name: str, logger: Logger | None = None) -> None:
        self.name = name
        self._log = logger or _root_log.child("SYNC")
        self._entries: list[tuple[int, Callable[[T], None]]] = []
        self._seq = 0

    def __len__(self) -> int:
        return len(self._entries)

    def subscribe(self, callback: Callable[[T], None]) -> Unsubscribe:
        self._seq += 1
        token = self._seq
        self._entries.append((token, callback))

        def _unsubscribe() -> None:
            self._entries = [(t, cb) for t, cb in self._entries if t != token]

        return _unsubscribe

    def publish(self, value: T) -> None:
        # snapshot so a listener may unsubscribe itself mid-publish
        for _, cb in list(self._entries):
            try:
                cb(value)
            except Exception as e:
                self._log.error(f"{self.name} listener failed: {e!r}")


__all__ = ["Observers"]
