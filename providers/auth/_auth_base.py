from __future__ import annotations
from dataclasses import dataclass, field
from typing import Any, Optional

from _logging import Logger, log as _root_log
from wn_platform.sync import Identity, Observers
from wn_platform.sync._types import IdentityListener, Unsubscribe

# Status for the UI
@dataclass
class AuthStatus:
    connected: bool
    label: str
    user: Optional[str] = None
    expires_at: Optional[int] = None
    extra: dict[str, Any] = field(default_factory=dict)

# Shared SessionOracle plumbing: current identity + change listeners
class BaseSession:
    name: str = "BASE"
    label: str = "Session"

    def __init__(self, *, logger: Logger | None = None) -> None:
        self.log = logger or _root_log.child("AUTH")
        self._identity: Identity | None = None
        self._listeners: Observers[Identity | None] = Observers("identity-change", self.log)

    def current_identity(self) -> Identity | None:
        return self._identity

    def on_identity_change(self, callback: IdentityListener) -> Unsubscribe:
        return self._listeners.subscribe(callback)

    def _set(self, identity: Identity | None) -> None:
        changed = identity != self._identity
        self._identity = identity
        if changed:
            self._listeners.publish(identity)

    def get_status(self) -> AuthStatus:
        ident = self._identity
        return AuthStatus(
            connected=ident is not None,
            label=self.label,
            user=(ident.email or ident.user_id) if ident else None,
        )

# Settable identity; offline mode and tests
class StaticSession(BaseSession):
    name = "STATIC"
    label = "Local"

    def __init__(self, identity: Identity | None = None, *, logger: Logger | None = None) -> None:
        super().__init__(logger=logger)
        self._identity = identity

    def set_identity(self, identity: Identity | None) -> None:
        self._set(identity)

    def sign_in(self, email: str, password: str) -> AuthStatus:
        self._set(Identity(user_id=f"local:{email.strip().lower()}", email=email.strip()))
        return self.get_status()

    def sign_out(self) -> AuthStatus:
        self._set(None)
        return self.get_status()
