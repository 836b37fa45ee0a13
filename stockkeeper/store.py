"""Persistence of the stock and history collections.

Each collection is stored whole under its own key in ``storage_entries`` and
rewritten as a complete snapshot on every save.
"""

import logging

from pydantic import TypeAdapter, ValidationError
from sqlalchemy.orm import Session

from .models import StorageEntry
from .records import HistoryEntry, StockRecord

logger = logging.getLogger(__name__)

_stock_adapter = TypeAdapter(list[StockRecord])
_history_adapter = TypeAdapter(list[HistoryEntry])


class StorageError(RuntimeError):
    """Raised when a stored collection no longer matches the record schema."""


class InventoryStore:
    """Reads and writes the two persisted collections through a session."""

    def __init__(self, db_session: Session, stock_key: str, history_key: str):
        self.db_session = db_session
        self.stock_key = stock_key
        self.history_key = history_key

    def read(self, key: str) -> list | None:
        """Raw stored collection, or None if the key was never written."""
        entry = self.db_session.get(StorageEntry, key)
        if entry is None:
            return None
        return entry.value

    def write(self, key: str, value: list) -> None:
        entry = self.db_session.get(StorageEntry, key)
        if entry is None:
            self.db_session.add(StorageEntry(key=key, value=value))
        else:
            # Assign a new list so the JSON column registers the change
            entry.value = list(value)
        self.db_session.flush()

    def load(self) -> tuple[list[StockRecord], list[HistoryEntry]]:
        """Validate both collections; missing keys load as empty lists.

        Raises:
            StorageError: If a stored collection fails validation.
        """
        stock = self._load(self.stock_key, _stock_adapter)
        history = self._load(self.history_key, _history_adapter)
        logger.debug(f"[store] Loaded {len(stock)} stock records, {len(history)} history entries")
        return stock, history

    def save(self, stock: list[StockRecord], history: list[HistoryEntry]) -> None:
        self.write(self.stock_key, _stock_adapter.dump_python(stock, mode="json"))
        self.write(self.history_key, _history_adapter.dump_python(history, mode="json"))

    def _load(self, key: str, adapter: TypeAdapter) -> list:
        raw = self.read(key)
        if not raw:
            return []
        try:
            return adapter.validate_python(raw)
        except ValidationError as e:
            logger.error(f"[store] Stored collection '{key}' is corrupt: {e}")
            raise StorageError(f"Stored collection '{key}' is corrupt") from e
