"""Services package."""

from family_ledger.services.storage import (
    DuplicateError,
    InMemoryLedgerStore,
    JsonFileLedgerStore,
    LedgerStoreInterface,
    NotFoundError,
    StorageError,
    StoreConnectionError,
)

__all__ = [
    "DuplicateError",
    "InMemoryLedgerStore",
    "JsonFileLedgerStore",
    "LedgerStoreInterface",
    "NotFoundError",
    "StorageError",
    "StoreConnectionError",
]
