from .base import BaseStore, PurgeResult
from .factory import StoreKind
from .sqlite import SqliteStore

__all__ = [
    "BaseStore",
    "PurgeResult",
    "SqliteStore",
    "StoreKind",
]
