"""
Persistence and locking for the booking core.
"""

from .store import SQLiteStore
from .locks import KeyedLocks

__all__ = [
    "SQLiteStore",
    "KeyedLocks",
]
