"""Record shapes for stock, purchase history and exported snapshots.

These are plain pydantic models: they describe what gets persisted and
exported, and validate anything read back from storage or an import file.
The business rules that operate on them live in ``engine``.
"""

import enum
from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field, model_validator


class StockStatus(str, enum.Enum):
    """Replenishment status derived from minimum vs. current quantity."""

    SUFFICIENT = "sufficient"
    AT_LIMIT = "at_limit"
    NEEDS_PURCHASE = "needs_purchase"
    OUT_OF_STOCK = "out_of_stock"


class PurchaseOutcome(str, enum.Enum):
    """Result of completing the purchase of a single item."""

    PURCHASED = "purchased"
    NOTHING_TO_PURCHASE = "nothing_to_purchase"
    NOT_FOUND = "not_found"


class StockRecord(BaseModel):
    """One tracked inventory item.

    Unknown keys are ignored on validation, so legacy documents that still
    carry a per-record ``checked`` flag load cleanly without it.
    """

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    name: str = Field(min_length=1)
    category: str = ""
    purchase_frequency: str = ""
    min_quantity: int = Field(default=0, ge=0)
    current_quantity: int = Field(default=0, ge=0)
    unit_price: float = Field(default=0.0, ge=0)
    manual_quantity: int = Field(default=0, ge=0)
    last_purchase_date: datetime | None = None


class HistoryEntry(BaseModel):
    """Immutable record of one completed purchase."""

    model_config = ConfigDict(frozen=True, extra="ignore")

    id: int
    date: datetime
    item_name: str
    quantity_purchased: int = Field(gt=0)
    total_cost: float = Field(ge=0)


class Snapshot(BaseModel):
    """Export/import document carrying the whole persisted state."""

    stock: list[StockRecord]
    history: list[HistoryEntry]

    @model_validator(mode="after")
    def check_unique_stock_ids(self):
        ids = [record.id for record in self.stock]
        if len(ids) != len(set(ids)):
            raise ValueError("stock record ids must be unique")
        return self


class StockRow(BaseModel):
    """A derived stock record, ready for display."""

    model_config = ConfigDict(frozen=True)

    record: StockRecord
    quantity_to_buy: int
    status: StockStatus
    checked: bool = False

    @property
    def planned_cost(self) -> float:
        return round(self.record.manual_quantity * self.record.unit_price, 2)
