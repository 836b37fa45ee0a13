"""Inventory service: the collaborator contract the presentation layer calls.

Each mutating call loads state, applies one engine operation, re-derives,
persists both collections, commits and writes an audit row. The cart
(checked ids) is session state owned by the caller and is never persisted.
"""

import logging
from datetime import datetime, timezone
from typing import Any, Callable

from sqlalchemy.orm import Session

from . import engine
from .config import Settings, get_settings
from .engine import CheckoutSummary, InventoryState
from .models import ActionType, EventLog
from .records import PurchaseOutcome, StockRecord
from .schemas import HistoryView, ShoppingListView, StockView
from .seeds import build_example_stock
from .store import InventoryStore
from .views import build_history_view, build_shopping_list_view, build_stock_view

logger = logging.getLogger(__name__)


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


class InventoryService:
    """Engine operations bound to a database session and a cart.

    Args:
        db_session: Session used for storage and the event log.
        checked: Mutable set of ids in the cart; updated in place.
        settings: Overrides for storage keys and seeding.
        clock: Returns the current time; replaceable in tests.
    """

    def __init__(
        self,
        db_session: Session,
        checked: set[int] | None = None,
        settings: Settings | None = None,
        clock: Callable[[], datetime] = utc_now,
    ):
        self.db_session = db_session
        self.checked = checked if checked is not None else set()
        self.settings = settings or get_settings()
        self.clock = clock
        self.store = InventoryStore(
            db_session,
            stock_key=self.settings.stock_storage_key,
            history_key=self.settings.history_storage_key,
        )

    # =========================================================================
    # Loading and derivation
    # =========================================================================

    def load_all(self) -> InventoryState:
        """Load and derive both collections, seeding example stock on first run."""
        stock, history = self.store.load()

        if not stock and self.settings.seed_example_items:
            stock = build_example_stock(self.clock())
            self.store.save(stock, history)
            self._log_event(
                ActionType.SEED_STOCK,
                "empty stock collection",
                f"seeded {len(stock)} example items",
                {"item_ids": [r.id for r in stock]},
            )
            self.db_session.commit()
            logger.info(f"[load_all] Seeded {len(stock)} example items")

        state = engine.derive_state(
            InventoryState(stock=stock, history=history, checked=frozenset(self.checked))
        )
        self._sync_checked(state)
        return state

    def derive_all(self, stock: list[StockRecord]) -> list[StockRecord]:
        return engine.derive_all(stock)

    # =========================================================================
    # Views
    # =========================================================================

    def stock_view(self) -> StockView:
        state = self.load_all()
        return build_stock_view(state.stock, state.checked)

    def shopping_list_view(self) -> ShoppingListView:
        state = self.load_all()
        return build_shopping_list_view(state.stock, state.checked)

    def history_view(self) -> HistoryView:
        return build_history_view(self.load_all().history)

    # =========================================================================
    # Mutations
    # =========================================================================

    def add_item(
        self,
        name: str,
        category: str = "",
        purchase_frequency: str = "",
        min_quantity: Any = 0,
        current_quantity: Any = 0,
    ) -> StockRecord:
        logger.info(f"[add_item] Called: name={name!r}, category={category!r}")
        state, record = engine.add_item(
            self.load_all(),
            name,
            category,
            purchase_frequency,
            min_quantity,
            current_quantity,
            now=self.clock(),
        )
        self._commit(
            state,
            ActionType.ADD_ITEM,
            f"name={record.name}, min={record.min_quantity}, current={record.current_quantity}",
            f"added item {record.id}",
            {"item_id": record.id},
        )
        logger.info(f"[add_item] SUCCESS: '{record.name}' (id={record.id})")
        return record

    def edit_item(
        self,
        item_id: int,
        min_quantity: Any,
        current_quantity: Any,
        name: str | None = None,
        category: str | None = None,
        purchase_frequency: str | None = None,
    ) -> StockRecord | None:
        logger.info(f"[edit_item] Called: id={item_id}")
        state, record = engine.edit_item(
            self.load_all(),
            item_id,
            min_quantity,
            current_quantity,
            name=name,
            category=category,
            purchase_frequency=purchase_frequency,
        )
        if record is None:
            logger.warning(f"[edit_item] Not found: id={item_id}")
            return None
        self._commit(
            state,
            ActionType.EDIT_ITEM,
            f"id={item_id}, min={min_quantity!r}, current={current_quantity!r}",
            f"min={record.min_quantity}, current={record.current_quantity}, "
            f"manual={record.manual_quantity}",
            {"item_id": item_id},
        )
        logger.info(f"[edit_item] SUCCESS: '{record.name}'")
        return record

    def delete_item(self, item_id: int) -> bool:
        logger.info(f"[delete_item] Called: id={item_id}")
        state, deleted = engine.delete_item(self.load_all(), item_id)
        if not deleted:
            logger.warning(f"[delete_item] Not found: id={item_id}")
            return False
        self._commit(state, ActionType.DELETE_ITEM, f"id={item_id}", "deleted", {"item_id": item_id})
        logger.info(f"[delete_item] SUCCESS: id={item_id}")
        return True

    def set_price(self, item_id: int, value: Any) -> StockRecord | None:
        state, record = engine.set_price(self.load_all(), item_id, value)
        if record is None:
            logger.warning(f"[set_price] Not found: id={item_id}")
            return None
        self._commit(
            state,
            ActionType.SET_PRICE,
            f"id={item_id}, value={value!r}",
            f"unit_price={record.unit_price}",
            {"item_id": item_id},
        )
        return record

    def set_manual_quantity(self, item_id: int, value: Any) -> StockRecord | None:
        """Write the manual quantity; returns the record after re-derivation."""
        state, record = engine.set_manual_quantity(self.load_all(), item_id, value)
        if record is None:
            logger.warning(f"[set_manual_quantity] Not found: id={item_id}")
            return None
        state = self._commit(
            state,
            ActionType.SET_MANUAL_QUANTITY,
            f"id={item_id}, value={value!r}",
            f"manual_quantity={record.manual_quantity}",
            {"item_id": item_id},
        )
        return next(r for r in state.stock if r.id == item_id)

    def toggle_checked(self, item_id: int, value: bool) -> bool:
        """Mark an item as in or out of the cart. Session state only."""
        state, found = engine.toggle_checked(self.load_all(), item_id, value)
        if not found:
            logger.warning(f"[toggle_checked] Not found: id={item_id}")
            return False
        self._sync_checked(state)
        return True

    def complete_one(self, item_id: int) -> PurchaseOutcome:
        logger.info(f"[complete_one] Called: id={item_id}")
        state, outcome = engine.complete_one(self.load_all(), item_id, self.clock())
        if outcome is not PurchaseOutcome.PURCHASED:
            logger.info(f"[complete_one] No-op for id={item_id}: {outcome.value}")
            return outcome

        entry = state.history[-1]
        self._commit(
            state,
            ActionType.COMPLETE_PURCHASE,
            f"id={item_id}",
            f"bought {entry.quantity_purchased} of '{entry.item_name}' for {entry.total_cost:.2f}",
            {"item_id": item_id, "history_id": entry.id},
        )
        logger.info(f"[complete_one] SUCCESS: '{entry.item_name}' x{entry.quantity_purchased}")
        return outcome

    def complete_checked(self) -> CheckoutSummary:
        before = self.load_all()
        logger.info(f"[complete_checked] Called: {len(before.checked)} checked items")
        state, summary = engine.complete_checked(before, self.clock())
        if not summary.succeeded:
            logger.info(f"[complete_checked] No-op: {summary.skipped} skipped")
            return summary

        new_entries = state.history[len(before.history):]
        self._commit(
            state,
            ActionType.COMPLETE_CHECKED,
            f"checked={sorted(before.checked)}",
            f"succeeded={summary.succeeded}, skipped={summary.skipped}",
            {"history_ids": [entry.id for entry in new_entries]},
        )
        logger.info(
            f"[complete_checked] SUCCESS: {summary.succeeded} purchased, {summary.skipped} skipped"
        )
        return summary

    def clear_history(self) -> int:
        """Empty the purchase history; returns how many entries were removed."""
        state = self.load_all()
        removed = len(state.history)
        self._commit(
            engine.clear_history(state),
            ActionType.CLEAR_HISTORY,
            "clear all",
            f"removed {removed} entries",
            None,
        )
        logger.info(f"[clear_history] SUCCESS: removed {removed} entries")
        return removed

    # =========================================================================
    # Snapshots
    # =========================================================================

    def export_snapshot(self) -> dict:
        return engine.export_snapshot(self.load_all())

    def import_snapshot(self, document: Any) -> InventoryState:
        """Replace both collections wholesale.

        Raises:
            SnapshotError: If the document is malformed; nothing is changed.
        """
        try:
            state = engine.import_snapshot(document)
        except engine.SnapshotError as e:
            logger.warning(f"[import_snapshot] FAILED: {e}")
            raise

        state = self._commit(
            state,
            ActionType.IMPORT_SNAPSHOT,
            "snapshot document",
            f"{len(state.stock)} stock records, {len(state.history)} history entries",
            None,
        )
        logger.info(f"[import_snapshot] SUCCESS: {len(state.stock)} items, {len(state.history)} entries")
        return state

    # =========================================================================
    # Helpers
    # =========================================================================

    def _commit(
        self,
        state: InventoryState,
        action: ActionType,
        input_summary: str,
        output_summary: str,
        related_ids: dict | None,
    ) -> InventoryState:
        """Derive, persist both collections and record the event in one transaction."""
        state = engine.derive_state(state)
        try:
            self.store.save(state.stock, state.history)
            self._log_event(action, input_summary, output_summary, related_ids)
            self.db_session.commit()
        except Exception as e:
            logger.error(f"[{action.value}] FAILED: {type(e).__name__}: {e}")
            self.db_session.rollback()
            raise
        self._sync_checked(state)
        return state

    def _log_event(
        self,
        action: ActionType,
        input_summary: str,
        output_summary: str,
        related_ids: dict | None,
    ) -> None:
        self.db_session.add(
            EventLog(
                action_type=action,
                input_summary=input_summary,
                output_summary=output_summary,
                related_ids=related_ids,
            )
        )

    def _sync_checked(self, state: InventoryState) -> None:
        # Adjust in place; the set is shared by concurrent requests
        self.checked.difference_update(self.checked - state.checked)
        self.checked.update(state.checked)
