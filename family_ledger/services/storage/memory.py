"""In-memory ledger store for tests and embedding."""

from typing import Optional

from family_ledger.models.ledger import LedgerSnapshot
from family_ledger.services.storage.interface import LedgerStoreInterface


class InMemoryLedgerStore(LedgerStoreInterface):
    """
    Keeps the snapshot in memory.

    Snapshots are deep-copied on the way in and out so callers can't
    alias the stored state.
    """

    def __init__(self, snapshot: Optional[LedgerSnapshot] = None):
        self._snapshot = (snapshot or LedgerSnapshot()).model_copy(deep=True)
        self.save_count = 0

    async def load(self) -> LedgerSnapshot:
        return self._snapshot.model_copy(deep=True)

    async def save(self, snapshot: LedgerSnapshot) -> None:
        self._snapshot = snapshot.model_copy(deep=True)
        self.save_count += 1

    @property
    def snapshot(self) -> LedgerSnapshot:
        return self._snapshot.model_copy(deep=True)
