"""Request and response bodies for the HTTP API."""

from datetime import datetime

from pydantic import BaseModel, Field

from .records import PurchaseOutcome, StockStatus


# Numeric form fields arrive as whatever the client typed; the engine coerces them.
RawNumber = int | float | str | None


# --- Requests ---


class ItemCreate(BaseModel):
    name: str = Field(min_length=1)
    category: str = ""
    purchase_frequency: str = ""
    min_quantity: RawNumber = 0
    current_quantity: RawNumber = 0


class ItemUpdate(BaseModel):
    # Both quantities must be sent; an edit always replaces them
    min_quantity: RawNumber
    current_quantity: RawNumber
    name: str | None = None
    category: str | None = None
    purchase_frequency: str | None = None


class ValueUpdate(BaseModel):
    value: RawNumber = None


class CheckedUpdate(BaseModel):
    checked: bool


# --- Responses ---


class StockRowView(BaseModel):
    id: int
    name: str
    category: str
    purchase_frequency: str
    status: StockStatus
    status_label: str
    min_quantity: int
    current_quantity: int
    quantity_to_buy: int
    manual_quantity: int
    unit_price: float
    unit_price_display: str
    planned_cost: float
    planned_cost_display: str
    checked: bool
    last_purchase_date: datetime | None
    last_purchase_display: str | None


class StockGroupView(BaseModel):
    category: str
    items: list[StockRowView]


class StockView(BaseModel):
    groups: list[StockGroupView]
    item_count: int


class ShoppingListView(BaseModel):
    items: list[StockRowView]
    checked_count: int
    total_cost: float
    total_cost_display: str


class HistoryRowView(BaseModel):
    id: int
    date: datetime
    date_display: str
    item_name: str
    quantity_purchased: int
    total_cost: float
    total_cost_display: str


class HistoryView(BaseModel):
    entries: list[HistoryRowView]
    total_spent: float
    total_spent_display: str


class PurchaseResult(BaseModel):
    success: bool
    outcome: PurchaseOutcome
    message: str


class CheckoutResult(BaseModel):
    succeeded: int
    skipped: int
    message: str


class ImportResult(BaseModel):
    success: bool
    stock_count: int
    history_count: int
