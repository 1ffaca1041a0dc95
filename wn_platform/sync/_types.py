# wn_platform/sync/_types.py
# types and protocols for the sync layer.
# Copyright (c) 2025-2026 CrossWatch / Cenodude (https://github.com/cenodude/CrossWatch)
from __future__ import annotations

from dataclasses import dataclass
from collections.abc import Awaitable, Callable, Mapping, Sequence
from enum import Enum
from typing import Any, Protocol, Union

from ..media import ItemKey, WatchItem


@dataclass(frozen=True)
class Identity:
    user_id: str
    email: str | None = None
    access_token: str | None = None

    def __repr__(self) -> str:
        # keep tokens out of log lines
        return f"Identity(user_id={self.user_id!r}, email={self.email!r})"


Unsubscribe = Callable[[], None]
IdentityListener = Callable[[Union[Identity, None]], None]


class RemoteMediaRepository(Protocol):
    async def list_all(self, identity: Identity) -> Sequence[WatchItem]: ...
    async def insert(self, identity: Identity, item: WatchItem) -> WatchItem: ...
    async def update(
        self,
        identity: Identity,
        key: ItemKey,
        fields: Mapping[str, Any],
    ) -> WatchItem: ...
    async def delete(self, identity: Identity, key: ItemKey) -> None: ...


class SessionOracle(Protocol):
    def current_identity(self) -> Identity | None: ...
    def on_identity_change(self, callback: IdentityListener) -> Unsubscribe: ...


class MigrationDecision(str, Enum):
    MIGRATE = "migrate"
    DISCARD = "discard"


# offer_migration(count) -> decision; may be sync or async
MigrationPrompt = Callable[[int], Union[MigrationDecision, Awaitable[MigrationDecision]]]
