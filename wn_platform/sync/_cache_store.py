# wn_platform/sync/_cache_store.py
# on-device cache of the current identity's collection.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
import os
from dataclasses import dataclass, field
from pathlib import Path
from collections.abc import Callable

from _logging import Logger, log as _root_log

from ..collection import Collection
from ._observers import Observers
from ._types import Unsubscribe

STORAGE_KEY = "wn_media_store"


@dataclass
class LocalCacheStore:
    base_path: Path
    logger: Logger | None = None

    _changed: Observers[Collection] = field(init=False)

    def __post_init__(self) -> None:
        self.base_path = Path(self.base_path)
        self.log = self.logger or _root_log.child("CACHE")
        self._changed = Observers("store-changed", self.log)

    @property
    def path(self) -> Path:
        return self.base_path / f"{STORAGE_KEY}.json"

    def read(self) -> Collection:
        p = self.path
        if not p.exists():
            return Collection.empty()
        try:
            return Collection.from_payload(json.loads(p.read_text("utf-8")))
        except Exception as e:
            # corrupt local state degrades to an empty collection
            self.log.debug(f"unreadable cache at {p.name}: {e!r}")
            return Collection.empty()

    def _write_atomic(self, data: object) -> None:
        p = self.path
        p.parent.mkdir(parents=True, exist_ok=True)
        tmp = p.with_suffix(p.suffix + f".{os.getpid()}.tmp")
        tmp.write_text(json.dumps(data, ensure_ascii=False, indent=2), "utf-8")
        tmp.replace(p)

    def write(self, collection: Collection) -> None:
        self._write_atomic(collection.to_payload())
        self._changed.publish(collection.copy())

    def clear(self) -> None:
        self.write(Collection.empty())

    def subscribe(self, callback: Callable[[Collection], None]) -> Unsubscribe:
        return self._changed.subscribe(callback)


__all__ = ["LocalCacheStore", "STORAGE_KEY"]
