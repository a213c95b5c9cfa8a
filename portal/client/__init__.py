"""
Client-side data layer.

EntityStore keeps the three collections in memory for one session and
routes every write through PersistenceBridge, which tries the REST API
first and falls back to durable local storage.
"""

from .bridge import PersistenceBridge, Persisted, ReconcileReport, SyncState, WriteResult
from .remote import RemoteApi, RemoteError, RemoteRejectedError, RemoteUnavailableError
from .store import EntityNotFoundError, EntityStore, StoreError

__all__ = [
    "EntityNotFoundError",
    "EntityStore",
    "PersistenceBridge",
    "Persisted",
    "ReconcileReport",
    "RemoteApi",
    "RemoteError",
    "RemoteRejectedError",
    "RemoteUnavailableError",
    "StoreError",
    "SyncState",
    "WriteResult",
]
