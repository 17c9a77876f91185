"""
Abstract Ledger Store Interface

DESIGN DECISION: The ledger is one aggregate. The store hands out the
whole snapshot and takes back a whole replacement; there is no partial
update API. This allows us to:
1. Keep every engine call a transaction boundary (read all, compute, replace)
2. Use in-memory storage for testing
3. Swap the JSON file for a database later without touching the engine
"""

from abc import ABC, abstractmethod

from family_ledger.models.ledger import LedgerSnapshot


class LedgerStoreInterface(ABC):
    """
    Abstract interface for ledger persistence.

    Any storage implementation (JSON file, SQLite, etc.)
    must implement these methods.
    """

    @abstractmethod
    async def load(self) -> LedgerSnapshot:
        """
        Load the current ledger snapshot.

        Returns:
            The stored snapshot, or an empty one if nothing was saved yet

        Raises:
            StorageError: If the stored data cannot be read
        """
        pass

    @abstractmethod
    async def save(self, snapshot: LedgerSnapshot) -> None:
        """
        Replace the stored ledger with `snapshot`, atomically.

        Args:
            snapshot: The full new ledger state

        Raises:
            StorageError: If the snapshot could not be written
        """
        pass


class StorageError(Exception):
    """Base exception for storage operations."""
    pass


class NotFoundError(StorageError):
    """Entity not found in the ledger."""
    pass


class DuplicateError(StorageError):
    """Attempted to insert a duplicate entity."""
    pass


class StoreConnectionError(StorageError):
    """Could not reach the storage backend."""
    pass
