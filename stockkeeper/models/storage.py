"""Key-value storage model holding whole persisted collections."""

from sqlalchemy import String, JSON
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, TimestampMixin


class StorageEntry(Base, TimestampMixin):
    """One named collection, stored as a complete JSON snapshot.

    The stock and history collections each live under their own key and are
    rewritten in full after every mutation.
    """

    __tablename__ = "storage_entries"

    key: Mapped[str] = mapped_column(String(100), primary_key=True)
    value: Mapped[list] = mapped_column(JSON, default=list, nullable=False)

    def __repr__(self) -> str:
        size = len(self.value) if self.value else 0
        return f"<StorageEntry(key='{self.key}', records={size})>"
