# wn_platform/context.py
# process-wide app context: identity, guest flags, init flags, observers.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

import json
from dataclasses import dataclass
from pathlib import Path
from collections.abc import Callable
from typing import Any

from _logging import Logger, log as _root_log

from .config_base import write_json_atomic
from .sync._observers import Observers
from .sync._types import Identity, Unsubscribe

GUEST_FLAGS_FILE = "guest_flags.json"


@dataclass(frozen=True)
class AppState:
    identity: Identity | None
    is_authenticated: bool
    guest_warning_shown: bool
    has_guest_data: bool
    auth_resolved: bool
    data_hydrated: bool
    app_initialized: bool


class AppContext:
    """
    Owned by the process entry point and handed to the coordinator and the
    bootstrap sequencer. Holds who is signed in, the per-device migration
    flags and the loading gate flags; observers get an AppState snapshot.
    """

    def __init__(self, base_path: Path, *, logger: Logger | None = None) -> None:
        self.base_path = Path(base_path)
        self.log = logger or _root_log.child("CTX")
        self.observers: Observers[AppState] = Observers("app-state", self.log)

        self._identity: Identity | None = None
        self.auth_resolved = False
        self.data_hydrated = False
        self.app_initialized = False

        flags = self._read_flags()
        self.guest_warning_shown = bool(flags.get("guest_warning_shown"))
        self.has_guest_data = bool(flags.get("has_guest_data"))

    # Flags file
    @property
    def flags_path(self) -> Path:
        return self.base_path / GUEST_FLAGS_FILE

    def _read_flags(self) -> dict[str, Any]:
        p = self.flags_path
        if not p.exists():
            return {}
        try:
            data = json.loads(p.read_text("utf-8"))
        except Exception:
            return {}
        return data if isinstance(data, dict) else {}

    def _write_flags(self) -> None:
        write_json_atomic(
            self.flags_path,
            {"guest_warning_shown": self.guest_warning_shown, "has_guest_data": self.has_guest_data},
        )

    # Identity
    @property
    def identity(self) -> Identity | None:
        return self._identity

    def is_authenticated(self) -> bool:
        return self._identity is not None

    def is_guest_mode(self) -> bool:
        return self._identity is None

    def set_identity(self, identity: Identity | None) -> bool:
        was = self.is_authenticated()
        changed = identity != self._identity
        self._identity = identity
        if was != self.is_authenticated():
            self.log.info("auth state changed:", "logged in" if identity else "logged out")
        self.notify()
        return changed

    # Guest flags
    def mark_guest_warning_shown(self) -> None:
        self.guest_warning_shown = True
        self._write_flags()
        self.notify()

    def should_show_guest_warning(self) -> bool:
        return self.is_guest_mode() and not self.guest_warning_shown

    def mark_has_guest_data(self) -> None:
        if self.has_guest_data:
            return
        self.has_guest_data = True
        self._write_flags()
        self.notify()

    def clear_guest_flags(self) -> None:
        self.guest_warning_shown = False
        self.has_guest_data = False
        self._write_flags()
        self.notify()

    # Observers
    def snapshot(self) -> AppState:
        return AppState(
            identity=self._identity,
            is_authenticated=self.is_authenticated(),
            guest_warning_shown=self.guest_warning_shown,
            has_guest_data=self.has_guest_data,
            auth_resolved=self.auth_resolved,
            data_hydrated=self.data_hydrated,
            app_initialized=self.app_initialized,
        )

    def subscribe(self, callback: Callable[[AppState], None]) -> Unsubscribe:
        return self.observers.subscribe(callback)

    def notify(self) -> None:
        self.observers.publish(self.snapshot())


__all__ = ["AppContext", "AppState", "Observers"]
