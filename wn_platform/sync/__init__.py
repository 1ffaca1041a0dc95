# Public surface of the sync package.
from ._types import Identity, MigrationDecision, MigrationPrompt, RemoteMediaRepository, SessionOracle
from ._errors import (
    DuplicateKeyError,
    NotFoundError,
    OpResult,
    Outcome,
    RemoteError,
    RemoteWriteFailed,
    SyncError,
)
from ._observers import Observers
from ._cache_store import LocalCacheStore, STORAGE_KEY
from .coordinator import SyncCoordinator
from ._migration import MigrationProtocol
from ._bootstrap import BootstrapSequencer

__all__ = [
    "Identity",
    "MigrationDecision",
    "MigrationPrompt",
    "RemoteMediaRepository",
    "SessionOracle",
    "DuplicateKeyError",
    "NotFoundError",
    "OpResult",
    "Outcome",
    "RemoteError",
    "RemoteWriteFailed",
    "SyncError",
    "Observers",
    "LocalCacheStore",
    "STORAGE_KEY",
    "SyncCoordinator",
    "MigrationProtocol",
    "BootstrapSequencer",
]
