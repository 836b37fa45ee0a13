"""View projections for the stock table, shopping list and history.

Rendering consumes only what is built here; no business rule is evaluated
outside ``engine``.
"""

from datetime import date, datetime, timezone
from typing import Iterable

from . import engine
from .records import HistoryEntry, StockRecord, StockRow, StockStatus
from .schemas import (
    HistoryRowView,
    HistoryView,
    ShoppingListView,
    StockGroupView,
    StockRowView,
    StockView,
)


STATUS_LABELS = {
    StockStatus.SUFFICIENT: "Sufficient",
    StockStatus.AT_LIMIT: "At limit",
    StockStatus.NEEDS_PURCHASE: "Buy",
    StockStatus.OUT_OF_STOCK: "Out of stock",
}


def format_currency(value: float) -> str:
    """Format a number as Brazilian reais, e.g. ``R$ 1.234,56``."""
    formatted = f"{abs(value):,.2f}".replace(",", "X").replace(".", ",").replace("X", ".")
    sign = "-" if value < 0 else ""
    return f"{sign}R$ {formatted}"


def format_date(d: date | datetime) -> str:
    return d.strftime("%d/%m/%Y")


def stock_row_view(row: StockRow) -> StockRowView:
    record = row.record
    return StockRowView(
        id=record.id,
        name=record.name,
        category=record.category,
        purchase_frequency=record.purchase_frequency,
        status=row.status,
        status_label=STATUS_LABELS[row.status],
        min_quantity=record.min_quantity,
        current_quantity=record.current_quantity,
        quantity_to_buy=row.quantity_to_buy,
        manual_quantity=record.manual_quantity,
        unit_price=record.unit_price,
        unit_price_display=format_currency(record.unit_price),
        planned_cost=row.planned_cost,
        planned_cost_display=format_currency(row.planned_cost),
        checked=row.checked,
        last_purchase_date=record.last_purchase_date,
        last_purchase_display=(
            format_date(record.last_purchase_date) if record.last_purchase_date else None
        ),
    )


def build_stock_view(stock: list[StockRecord], checked: Iterable[int] = ()) -> StockView:
    groups = [
        StockGroupView(category=category, items=[stock_row_view(row) for row in rows])
        for category, rows in engine.group_by_category(stock, checked)
    ]
    return StockView(groups=groups, item_count=len(stock))


def build_shopping_list_view(
    stock: list[StockRecord], checked: Iterable[int] = ()
) -> ShoppingListView:
    rows = engine.shopping_list(stock, checked)
    total = round(sum(row.planned_cost for row in rows), 2)
    return ShoppingListView(
        items=[stock_row_view(row) for row in rows],
        checked_count=sum(1 for row in rows if row.checked),
        total_cost=total,
        total_cost_display=format_currency(total),
    )


def _history_sort_key(entry: HistoryEntry) -> datetime:
    # Imported entries may carry naive timestamps; treat those as UTC
    if entry.date.tzinfo is None:
        return entry.date.replace(tzinfo=timezone.utc)
    return entry.date


def build_history_view(history: list[HistoryEntry]) -> HistoryView:
    """History newest first."""
    entries = sorted(history, key=_history_sort_key, reverse=True)
    total = round(sum(entry.total_cost for entry in entries), 2)
    return HistoryView(
        entries=[
            HistoryRowView(
                id=entry.id,
                date=entry.date,
                date_display=format_date(entry.date),
                item_name=entry.item_name,
                quantity_purchased=entry.quantity_purchased,
                total_cost=entry.total_cost,
                total_cost_display=format_currency(entry.total_cost),
            )
            for entry in entries
        ],
        total_spent=total,
        total_spent_display=format_currency(total),
    )
