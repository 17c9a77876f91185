"""
JSON File Ledger Store

DESIGN DECISION: A single JSON document holds the whole ledger, the same
shape the browser app kept in local storage. It is:
1. Human-readable and easy to back up
2. Written atomically (temp file + rename), so a crash mid-write leaves
   the previous snapshot intact
3. Good enough for one household; this is not a multi-writer database

Transient I/O failures (network drives, antivirus locks) are retried with
exponential backoff before giving up.
"""

import asyncio
import os
import tempfile
from pathlib import Path
from typing import Optional, Union

import structlog
from pydantic import ValidationError
from tenacity import (
    retry,
    retry_if_exception_type,
    stop_after_attempt,
    wait_exponential,
)

from family_ledger.config import get_settings
from family_ledger.models.ledger import LedgerSnapshot
from family_ledger.services.storage.interface import (
    LedgerStoreInterface,
    StorageError,
    StoreConnectionError,
)

logger = structlog.get_logger(__name__)


class JsonFileLedgerStore(LedgerStoreInterface):
    """
    Ledger store backed by one JSON file.
    """

    def __init__(
        self,
        path: Optional[Union[str, Path]] = None,
        default_currency: Optional[str] = None,
    ):
        """
        Args:
            path: JSON file location. Defaults to the configured storage path.
            default_currency: Currency of the empty ledger returned before the
                first save. Defaults to the configured currency.
        """
        settings = get_settings()
        self._path = Path(path if path is not None else settings.storage.path).expanduser()
        self._default_currency = default_currency or settings.app.currency

    @property
    def path(self) -> Path:
        return self._path

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _read_text(self) -> Optional[str]:
        if not self._path.exists():
            return None
        return self._path.read_text(encoding="utf-8")

    @retry(
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=0.1, min=0.1, max=2),
        retry=retry_if_exception_type(OSError),
        reraise=True,
    )
    def _write_text(self, payload: str) -> None:
        directory = self._path.parent
        directory.mkdir(parents=True, exist_ok=True)
        fd, temp_name = tempfile.mkstemp(
            prefix=f".{self._path.name}.",
            suffix=".tmp",
            dir=directory,
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(temp_name, self._path)
        except OSError:
            if os.path.exists(temp_name):
                os.unlink(temp_name)
            raise

    async def load(self) -> LedgerSnapshot:
        try:
            raw = await asyncio.to_thread(self._read_text)
        except OSError as e:
            raise StoreConnectionError(f"Failed to read ledger file {self._path}: {e}")

        if raw is None:
            logger.info("ledger_file_missing", path=str(self._path))
            return LedgerSnapshot(currency=self._default_currency)

        try:
            return LedgerSnapshot.model_validate_json(raw)
        except ValidationError as e:
            raise StorageError(f"Ledger file {self._path} is corrupt: {e}")

    async def save(self, snapshot: LedgerSnapshot) -> None:
        payload = snapshot.model_dump_json(indent=2)
        try:
            await asyncio.to_thread(self._write_text, payload)
        except OSError as e:
            raise StoreConnectionError(f"Failed to write ledger file {self._path}: {e}")

        logger.debug(
            "ledger_saved",
            path=str(self._path),
            transactions=len(snapshot.transactions),
            budgets=len(snapshot.budgets),
        )
