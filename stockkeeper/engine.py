"""Inventory reconciliation engine.

Every function here is pure. Operations take an ``InventoryState`` and
return a new one alongside their result; nothing touches the database or
reads the clock, so callers pass ``now`` in explicitly.
"""

import json
import math
import re
import unicodedata
from dataclasses import dataclass, field, replace
from datetime import datetime
from typing import Any, Iterable

from pydantic import ValidationError

from .records import (
    HistoryEntry,
    PurchaseOutcome,
    Snapshot,
    StockRecord,
    StockRow,
    StockStatus,
)


SHOPPING_STATUSES = frozenset({StockStatus.NEEDS_PURCHASE, StockStatus.OUT_OF_STOCK})

_LEADING_INT = re.compile(r"\s*([+-]?\d+)")


class SnapshotError(ValueError):
    """Raised when an import document cannot be turned into state."""


@dataclass(frozen=True)
class InventoryState:
    """The whole application state the engine works on.

    ``checked`` holds the ids currently in the cart. It is session state and
    never part of the persisted records.
    """

    stock: list[StockRecord] = field(default_factory=list)
    history: list[HistoryEntry] = field(default_factory=list)
    checked: frozenset[int] = frozenset()


@dataclass(frozen=True)
class CheckoutSummary:
    succeeded: int = 0
    skipped: int = 0


# =============================================================================
# Input coercion
# =============================================================================


def coerce_quantity(value: Any) -> int:
    """Read a whole, non-negative quantity out of loose user input.

    Strings contribute their leading integer ("12 rolls" -> 12), fractions are
    truncated, and anything unreadable or negative becomes 0.
    """
    if isinstance(value, bool) or value is None:
        return 0
    if isinstance(value, int):
        number = value
    elif isinstance(value, float):
        if not math.isfinite(value):
            return 0
        number = int(value)
    else:
        match = _LEADING_INT.match(str(value))
        if not match:
            return 0
        try:
            number = int(match.group(1))
        except ValueError:
            # more digits than int() will convert
            return 0
    return max(0, number)


def coerce_price(value: Any) -> float:
    """Read a non-negative unit price; unreadable or negative input becomes 0."""
    if isinstance(value, bool) or value is None:
        return 0.0
    try:
        price = float(str(value).strip().replace(",", "."))
    except (ValueError, TypeError):
        return 0.0
    if not math.isfinite(price) or price < 0:
        return 0.0
    return price


def next_id(existing: Iterable[int], now: datetime) -> int:
    """Millisecond timestamp id, bumped past any id already in use."""
    return max(int(now.timestamp() * 1000), max(existing, default=0) + 1)


# =============================================================================
# Derivation
# =============================================================================


def quantity_to_buy(min_quantity: int, current_quantity: int) -> int:
    return max(0, min_quantity - current_quantity)


def classify_stock(min_quantity: int, current_quantity: int) -> StockStatus:
    """Status rule; the order of the checks matters at the boundaries."""
    if current_quantity > min_quantity:
        return StockStatus.SUFFICIENT
    if current_quantity == min_quantity:
        return StockStatus.AT_LIMIT
    if current_quantity > 0:
        return StockStatus.NEEDS_PURCHASE
    return StockStatus.OUT_OF_STOCK


def derive_item(record: StockRecord) -> StockRecord:
    """Raise the suggested purchase quantity to at least the current shortfall.

    A manual quantity already above the shortfall is left alone.
    """
    need = quantity_to_buy(record.min_quantity, record.current_quantity)
    if record.manual_quantity < need:
        return record.model_copy(update={"manual_quantity": need})
    return record


def derive_all(stock: Iterable[StockRecord]) -> list[StockRecord]:
    return [derive_item(record) for record in stock]


def derive_state(state: InventoryState) -> InventoryState:
    """Derive every record and drop cart markers for ids that no longer exist."""
    stock = derive_all(state.stock)
    ids = {record.id for record in stock}
    return replace(state, stock=stock, checked=state.checked & ids)


def project_item(record: StockRecord, checked: bool = False) -> StockRow:
    record = derive_item(record)
    return StockRow(
        record=record,
        quantity_to_buy=quantity_to_buy(record.min_quantity, record.current_quantity),
        status=classify_stock(record.min_quantity, record.current_quantity),
        checked=checked,
    )


def project_stock(
    stock: Iterable[StockRecord], checked: Iterable[int] = ()
) -> list[StockRow]:
    checked = set(checked)
    return [project_item(record, record.id in checked) for record in stock]


# =============================================================================
# Shopping list and grouping
# =============================================================================


def collation_key(text: str) -> tuple[str, str]:
    """Sort key approximating a locale-aware comparison.

    Accents and case are ignored first ("Açúcar" sorts with "acucar"); the
    raw text only separates strings that fold to the same value.
    """
    decomposed = unicodedata.normalize("NFKD", text)
    folded = "".join(c for c in decomposed if not unicodedata.combining(c))
    return folded.casefold(), text


def shopping_list(
    stock: Iterable[StockRecord], checked: Iterable[int] = ()
) -> list[StockRow]:
    """Rows that need buying, by category; ties keep collection order."""
    rows = [row for row in project_stock(stock, checked) if row.status in SHOPPING_STATUSES]
    return sorted(rows, key=lambda row: collation_key(row.record.category))


def group_by_category(
    stock: Iterable[StockRecord], checked: Iterable[int] = ()
) -> list[tuple[str, list[StockRow]]]:
    """Stock table layout: category groups in order, items by name within each."""
    groups: dict[str, list[StockRow]] = {}
    for row in project_stock(stock, checked):
        groups.setdefault(row.record.category, []).append(row)

    return [
        (category, sorted(groups[category], key=lambda row: collation_key(row.record.name)))
        for category in sorted(groups, key=collation_key)
    ]


# =============================================================================
# Purchase completion
# =============================================================================


def complete_purchase(
    record: StockRecord, now: datetime, entry_id: int
) -> tuple[StockRecord, HistoryEntry | None]:
    """Apply one purchase of the record's manual quantity.

    Returns the record unchanged and no history entry when there is nothing
    to buy.
    """
    purchased = record.manual_quantity
    if purchased <= 0:
        return record, None

    entry = HistoryEntry(
        id=entry_id,
        date=now,
        item_name=record.name,
        quantity_purchased=purchased,
        total_cost=round(purchased * record.unit_price, 2),
    )
    updated = record.model_copy(
        update={
            "current_quantity": record.current_quantity + purchased,
            "last_purchase_date": now,
            "manual_quantity": 0,
        }
    )
    return updated, entry


def _index_of(stock: list[StockRecord], item_id: int) -> int | None:
    for index, record in enumerate(stock):
        if record.id == item_id:
            return index
    return None


def complete_one(
    state: InventoryState, item_id: int, now: datetime
) -> tuple[InventoryState, PurchaseOutcome]:
    index = _index_of(state.stock, item_id)
    if index is None:
        return state, PurchaseOutcome.NOT_FOUND

    entry_id = next_id((entry.id for entry in state.history), now)
    updated, entry = complete_purchase(state.stock[index], now, entry_id)
    if entry is None:
        return state, PurchaseOutcome.NOTHING_TO_PURCHASE

    stock = list(state.stock)
    stock[index] = updated
    return (
        InventoryState(
            stock=stock,
            history=[*state.history, entry],
            checked=state.checked - {item_id},
        ),
        PurchaseOutcome.PURCHASED,
    )


def complete_checked(
    state: InventoryState, now: datetime
) -> tuple[InventoryState, CheckoutSummary]:
    """Purchase every checked item; items with nothing to buy are skipped."""
    stock = list(state.stock)
    history = list(state.history)
    checked = set(state.checked)
    succeeded = skipped = 0

    for index, record in enumerate(stock):
        if record.id not in checked:
            continue
        entry_id = next_id((entry.id for entry in history), now)
        updated, entry = complete_purchase(record, now, entry_id)
        if entry is None:
            skipped += 1
            continue
        stock[index] = updated
        history.append(entry)
        checked.discard(record.id)
        succeeded += 1

    new_state = InventoryState(stock=stock, history=history, checked=frozenset(checked))
    return new_state, CheckoutSummary(succeeded=succeeded, skipped=skipped)


# =============================================================================
# Record edits
# =============================================================================


def add_item(
    state: InventoryState,
    name: str,
    category: str = "",
    purchase_frequency: str = "",
    min_quantity: Any = 0,
    current_quantity: Any = 0,
    *,
    now: datetime,
) -> tuple[InventoryState, StockRecord]:
    name = (name or "").strip()
    if not name:
        raise ValueError("Item name must not be empty")

    record = derive_item(
        StockRecord(
            id=next_id((r.id for r in state.stock), now),
            name=name,
            category=(category or "").strip(),
            purchase_frequency=(purchase_frequency or "").strip(),
            min_quantity=coerce_quantity(min_quantity),
            current_quantity=coerce_quantity(current_quantity),
        )
    )
    return replace(state, stock=[*state.stock, record]), record


def _update_record(
    state: InventoryState, item_id: int, **changes
) -> tuple[InventoryState, StockRecord | None]:
    index = _index_of(state.stock, item_id)
    if index is None:
        return state, None
    stock = list(state.stock)
    stock[index] = stock[index].model_copy(update=changes)
    return replace(state, stock=stock), stock[index]


def edit_item(
    state: InventoryState,
    item_id: int,
    min_quantity: Any,
    current_quantity: Any,
    name: str | None = None,
    category: str | None = None,
    purchase_frequency: str | None = None,
) -> tuple[InventoryState, StockRecord | None]:
    """Replace the quantities and reset the suggestion to the new shortfall."""
    minimum = coerce_quantity(min_quantity)
    current = coerce_quantity(current_quantity)
    changes = {
        "min_quantity": minimum,
        "current_quantity": current,
        "manual_quantity": quantity_to_buy(minimum, current),
    }
    if name is not None and name.strip():
        changes["name"] = name.strip()
    if category is not None:
        changes["category"] = category.strip()
    if purchase_frequency is not None:
        changes["purchase_frequency"] = purchase_frequency.strip()
    return _update_record(state, item_id, **changes)


def delete_item(state: InventoryState, item_id: int) -> tuple[InventoryState, bool]:
    stock = [record for record in state.stock if record.id != item_id]
    if len(stock) == len(state.stock):
        return state, False
    return replace(state, stock=stock, checked=state.checked - {item_id}), True


def set_price(
    state: InventoryState, item_id: int, value: Any
) -> tuple[InventoryState, StockRecord | None]:
    return _update_record(state, item_id, unit_price=coerce_price(value))


def set_manual_quantity(
    state: InventoryState, item_id: int, value: Any
) -> tuple[InventoryState, StockRecord | None]:
    return _update_record(state, item_id, manual_quantity=coerce_quantity(value))


def toggle_checked(
    state: InventoryState, item_id: int, value: bool
) -> tuple[InventoryState, bool]:
    if _index_of(state.stock, item_id) is None:
        return state, False
    checked = state.checked | {item_id} if value else state.checked - {item_id}
    return replace(state, checked=checked), True


def clear_history(state: InventoryState) -> InventoryState:
    return replace(state, history=[])


# =============================================================================
# Snapshots
# =============================================================================


def export_snapshot(state: InventoryState) -> dict:
    """JSON-ready document of both collections, without cart markers."""
    return Snapshot(stock=state.stock, history=state.history).model_dump(mode="json")


def import_snapshot(document: Any) -> InventoryState:
    """Build fresh state from an export document (dict, JSON text or bytes).

    Raises:
        SnapshotError: If the document is unparseable or misses a collection.
    """
    if isinstance(document, (str, bytes, bytearray)):
        try:
            document = json.loads(document)
        except ValueError as e:
            raise SnapshotError(f"Snapshot is not valid JSON: {e}") from e

    if not isinstance(document, dict):
        raise SnapshotError("Snapshot must be an object with 'stock' and 'history'")
    missing = [key for key in ("stock", "history") if key not in document]
    if missing:
        raise SnapshotError(f"Snapshot is missing required keys: {', '.join(missing)}")

    try:
        snapshot = Snapshot.model_validate(document)
    except ValidationError as e:
        raise SnapshotError(f"Snapshot has an invalid shape: {e.error_count()} error(s)") from e

    return InventoryState(stock=derive_all(snapshot.stock), history=list(snapshot.history))
