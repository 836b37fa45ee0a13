"""Event log model for audit trail and observability."""

import enum
from datetime import datetime

from sqlalchemy import Integer, DateTime, Enum, Text, JSON
from sqlalchemy.orm import Mapped, mapped_column

from .base import Base, utcnow


class ActionType(str, enum.Enum):
    """Types of persisted mutations that get logged."""

    SEED_STOCK = "seed_stock"
    ADD_ITEM = "add_item"
    EDIT_ITEM = "edit_item"
    DELETE_ITEM = "delete_item"
    SET_PRICE = "set_price"
    SET_MANUAL_QUANTITY = "set_manual_quantity"
    COMPLETE_PURCHASE = "complete_purchase"
    COMPLETE_CHECKED = "complete_checked"
    CLEAR_HISTORY = "clear_history"
    IMPORT_SNAPSHOT = "import_snapshot"


class EventLog(Base):
    """Audit trail for inventory mutations."""

    __tablename__ = "event_log"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    timestamp: Mapped[datetime] = mapped_column(
        DateTime(timezone=True), default=utcnow, nullable=False
    )
    action_type: Mapped[ActionType] = mapped_column(
        Enum(ActionType, values_callable=lambda x: [e.value for e in x]),
        nullable=False,
    )
    input_summary: Mapped[str] = mapped_column(Text, nullable=False)
    output_summary: Mapped[str] = mapped_column(Text, nullable=False)
    related_ids: Mapped[dict | None] = mapped_column(JSON, nullable=True)

    def __repr__(self) -> str:
        return f"<EventLog(id={self.id}, action={self.action_type.value})>"
