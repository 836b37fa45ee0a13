"""Database models for the stock keeper."""

from .base import Base, TimestampMixin
from .storage import StorageEntry
from .event_log import EventLog, ActionType

__all__ = [
    # Base
    "Base",
    "TimestampMixin",
    # Models
    "StorageEntry",
    "EventLog",
    "ActionType",
]
