"""
Storage Services Package

Provides the abstract ledger store interface and its implementations.
The JSON file store is the default backend; the in-memory store is for
tests and embedding.
"""

from family_ledger.services.storage.interface import (
    DuplicateError,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
    StoreConnectionError,
)
from family_ledger.services.storage.json_file import JsonFileLedgerStore
from family_ledger.services.storage.memory import InMemoryLedgerStore

__all__ = [
    # Interface
    "LedgerStoreInterface",
    # Exceptions
    "DuplicateError",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
    # Implementations
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
]
