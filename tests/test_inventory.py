import logging

import pytest

from stockkeeper.config import Settings
from stockkeeper.engine import SnapshotError
from stockkeeper.inventory import InventoryService
from stockkeeper.models import ActionType, EventLog, StorageEntry
from stockkeeper.records import PurchaseOutcome
from stockkeeper.seeds import EXAMPLE_ITEMS
from stockkeeper.store import InventoryStore, StorageError


def _actions(db_session):
    return [event.action_type for event in db_session.query(EventLog).order_by(EventLog.id)]


def test_first_load_seeds_example_items(db_session, clock):
    settings = Settings(database_url="sqlite://", seed_example_items=True)
    service = InventoryService(db_session, settings=settings, clock=clock)

    state = service.load_all()

    base_id = int(clock().timestamp() * 1000)
    assert [record.id for record in state.stock] == [
        base_id + offset for offset in range(len(EXAMPLE_ITEMS))
    ]
    assert state.history == []
    assert _actions(db_session) == [ActionType.SEED_STOCK]

    # a later load reads the persisted seed instead of seeding again
    clock.advance(minutes=5)
    again = InventoryService(db_session, settings=settings, clock=clock).load_all()
    assert [record.id for record in again.stock] == [record.id for record in state.stock]
    assert _actions(db_session) == [ActionType.SEED_STOCK]


def test_seeding_can_be_disabled(service, db_session):
    state = service.load_all()
    assert state.stock == []
    assert db_session.query(StorageEntry).count() == 0


def test_mutations_survive_a_new_service(service, db_session, settings, clock):
    record = service.add_item("Milk", "Dairy", "Weekly", 6, 2)
    service.set_price(record.id, "5.20")

    reloaded = InventoryService(db_session, settings=settings, clock=clock).load_all()

    assert len(reloaded.stock) == 1
    stored = reloaded.stock[0]
    assert stored.name == "Milk"
    assert stored.unit_price == 5.2
    assert stored.manual_quantity == 4
    assert _actions(db_session) == [ActionType.ADD_ITEM, ActionType.SET_PRICE]


def test_complete_one_persists_stock_and_history(service, db_session, settings, clock):
    record = service.add_item("Milk", "Dairy", "Weekly", 6, 2)
    service.set_price(record.id, 5.2)

    outcome = service.complete_one(record.id)

    assert outcome is PurchaseOutcome.PURCHASED
    state = InventoryService(db_session, settings=settings, clock=clock).load_all()
    assert state.stock[0].current_quantity == 6
    assert state.stock[0].manual_quantity == 0
    assert len(state.history) == 1
    assert state.history[0].quantity_purchased == 4
    assert state.history[0].total_cost == 20.8

    event = db_session.query(EventLog).order_by(EventLog.id.desc()).first()
    assert event.action_type is ActionType.COMPLETE_PURCHASE
    assert event.related_ids == {"item_id": record.id, "history_id": state.history[0].id}


def test_complete_one_with_nothing_to_buy_writes_nothing(service, db_session):
    record = service.add_item("Rice", "Pantry", "", 2, 2)
    outcome = service.complete_one(record.id)
    assert outcome is PurchaseOutcome.NOTHING_TO_PURCHASE
    assert service.load_all().history == []
    assert _actions(db_session) == [ActionType.ADD_ITEM]


def test_missing_ids_are_noops(service):
    assert service.edit_item(123, 1, 1) is None
    assert service.delete_item(123) is False
    assert service.set_price(123, 1) is None
    assert service.set_manual_quantity(123, 1) is None
    assert service.toggle_checked(123, True) is False
    assert service.complete_one(123) is PurchaseOutcome.NOT_FOUND


def test_set_manual_quantity_returns_derived_record(service):
    record = service.add_item("Milk", "Dairy", "", 6, 2)
    assert service.set_manual_quantity(record.id, 1).manual_quantity == 4
    assert service.set_manual_quantity(record.id, "10").manual_quantity == 10


def test_checked_items_are_never_persisted(service, cart, db_session, settings, clock):
    record = service.add_item("Milk", "Dairy", "", 6, 2)
    assert service.toggle_checked(record.id, True) is True
    assert cart == {record.id}

    raw = InventoryStore(db_session, settings.stock_storage_key, settings.history_storage_key)
    assert all("checked" not in item for item in raw.read(settings.stock_storage_key))
    assert "checked" not in service.export_snapshot()["stock"][0]

    fresh = InventoryService(db_session, checked=set(), settings=settings, clock=clock)
    assert fresh.load_all().checked == frozenset()


def test_complete_checked_flushes_once(service, cart, db_session):
    milk = service.add_item("Milk", "Dairy", "", 6, 2)
    rice = service.add_item("Rice", "Pantry", "", 2, 2)
    coffee = service.add_item("Coffee", "Pantry", "", 1, 0)
    for item in (milk, rice, coffee):
        service.toggle_checked(item.id, True)

    summary = service.complete_checked()

    assert (summary.succeeded, summary.skipped) == (2, 1)
    assert cart == {rice.id}
    assert len(service.load_all().history) == 2
    assert _actions(db_session).count(ActionType.COMPLETE_CHECKED) == 1


def test_complete_checked_with_nothing_to_buy_is_noop(service, cart, db_session, caplog):
    rice = service.add_item("Rice", "Pantry", "", 2, 2)
    service.toggle_checked(rice.id, True)

    with caplog.at_level(logging.INFO, logger="stockkeeper.inventory"):
        summary = service.complete_checked()

    assert (summary.succeeded, summary.skipped) == (0, 1)
    assert cart == {rice.id}
    assert ActionType.COMPLETE_CHECKED not in _actions(db_session)
    assert "[complete_checked] No-op: 1 skipped" in caplog.text
    assert "[complete_checked] SUCCESS" not in caplog.text


class RecordingCart(set):
    """Set that remembers its contents after every in-place change."""

    def __init__(self, *args):
        super().__init__(*args)
        self.states = []

    def _record(self):
        self.states.append(frozenset(self))

    def clear(self):
        super().clear()
        self._record()

    def difference_update(self, *others):
        super().difference_update(*others)
        self._record()

    def update(self, *others):
        super().update(*others)
        self._record()


def test_cart_sync_never_drops_items_that_stay(db_session, settings, clock):
    cart = RecordingCart()
    service = InventoryService(db_session, checked=cart, settings=settings, clock=clock)
    milk = service.add_item("Milk", "Dairy", "", 6, 2)
    clock.advance(seconds=1)
    coffee = service.add_item("Coffee", "Pantry", "", 1, 0)
    service.toggle_checked(milk.id, True)
    cart.states.clear()

    service.toggle_checked(coffee.id, True)

    assert service.checked is cart
    assert cart == {milk.id, coffee.id}
    assert cart.states
    assert all(milk.id in state for state in cart.states)


def test_delete_item_leaves_history(service):
    record = service.add_item("Milk", "Dairy", "", 6, 2)
    service.complete_one(record.id)
    assert service.delete_item(record.id) is True
    state = service.load_all()
    assert state.stock == []
    assert [entry.item_name for entry in state.history] == ["Milk"]


def test_clear_history(service, db_session):
    record = service.add_item("Milk", "Dairy", "", 6, 2)
    service.complete_one(record.id)
    assert service.clear_history() == 1
    assert service.load_all().history == []
    assert _actions(db_session)[-1] is ActionType.CLEAR_HISTORY


def test_import_replaces_state_wholesale(service, cart):
    old = service.add_item("Old item", "Misc", "", 1, 0)
    service.toggle_checked(old.id, True)

    state = service.import_snapshot(
        {
            "stock": [{"id": 5, "name": "Rice", "category": "Pantry", "min_quantity": 2, "current_quantity": 0}],
            "history": [
                {"id": 9, "date": "2026-01-02T10:00:00Z", "item_name": "Beans",
                 "quantity_purchased": 2, "total_cost": 13.0}
            ],
        }
    )

    assert [record.id for record in state.stock] == [5]
    assert cart == set()
    loaded = service.load_all()
    assert [record.name for record in loaded.stock] == ["Rice"]
    assert loaded.stock[0].manual_quantity == 2
    assert [entry.item_name for entry in loaded.history] == ["Beans"]


def test_failed_import_leaves_state_untouched(service, db_session):
    service.add_item("Milk", "Dairy", "", 6, 2)
    before = service.export_snapshot()

    with pytest.raises(SnapshotError):
        service.import_snapshot({"stock": []})

    assert service.export_snapshot() == before
    assert ActionType.IMPORT_SNAPSHOT not in _actions(db_session)


def test_export_import_round_trip_through_service(service, db_session, settings, clock):
    milk = service.add_item("Milk", "Dairy", "", 6, 2)
    service.set_price(milk.id, 5.2)
    service.complete_one(milk.id)
    document = service.export_snapshot()

    other = InventoryService(db_session, settings=settings, clock=clock)
    other.import_snapshot(document)

    assert other.export_snapshot() == document


def test_corrupt_storage_raises(db_session, settings, service):
    db_session.add(StorageEntry(key=settings.stock_storage_key, value=[{"id": "x"}]))
    db_session.commit()
    with pytest.raises(StorageError):
        service.load_all()
