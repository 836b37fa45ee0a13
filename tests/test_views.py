from datetime import datetime, timezone

from stockkeeper.records import HistoryEntry, StockStatus
from stockkeeper.views import (
    build_history_view,
    build_shopping_list_view,
    build_stock_view,
    format_currency,
    format_date,
)


def test_format_currency():
    assert format_currency(0) == "R$ 0,00"
    assert format_currency(20.8) == "R$ 20,80"
    assert format_currency(1234.5) == "R$ 1.234,50"
    assert format_currency(-3) == "-R$ 3,00"


def test_format_date():
    assert format_date(datetime(2026, 3, 7, 15, 30)) == "07/03/2026"


def test_stock_view_groups_and_labels(make_record):
    stock = [
        make_record(id=1, name="Milk", category="Dairy", current_quantity=8),
        make_record(id=2, name="Coffee", category="Pantry", current_quantity=0),
        make_record(id=3, name="Butter", category="Dairy", current_quantity=6),
    ]
    view = build_stock_view(stock, checked={2})

    assert view.item_count == 3
    assert [group.category for group in view.groups] == ["Dairy", "Pantry"]
    dairy = view.groups[0].items
    assert [(row.name, row.status_label) for row in dairy] == [
        ("Butter", "At limit"),
        ("Milk", "Sufficient"),
    ]
    coffee = view.groups[1].items[0]
    assert coffee.status is StockStatus.OUT_OF_STOCK
    assert coffee.status_label == "Out of stock"
    assert coffee.checked is True
    assert coffee.manual_quantity == 6


def test_shopping_list_view_totals_planned_cost(make_record):
    stock = [
        make_record(id=1, current_quantity=2, unit_price=5.2),
        make_record(id=2, current_quantity=5, manual_quantity=3, unit_price=1.5),
        make_record(id=3, current_quantity=7, unit_price=100),
    ]
    view = build_shopping_list_view(stock, checked={1})

    assert [row.id for row in view.items] == [1, 2]
    assert view.total_cost == 25.3
    assert view.total_cost_display == "R$ 25,30"
    assert view.checked_count == 1
    assert view.items[0].status_label == "Buy"


def test_history_view_newest_first():
    history = [
        HistoryEntry(id=1, date=datetime(2026, 1, 1, tzinfo=timezone.utc), item_name="Rice",
                     quantity_purchased=2, total_cost=10.0),
        HistoryEntry(id=2, date=datetime(2026, 2, 1, tzinfo=timezone.utc), item_name="Milk",
                     quantity_purchased=4, total_cost=20.8),
        HistoryEntry(id=3, date=datetime(2026, 1, 15), item_name="Eggs",
                     quantity_purchased=1, total_cost=0.5),
    ]
    view = build_history_view(history)

    assert [entry.item_name for entry in view.entries] == ["Milk", "Eggs", "Rice"]
    assert view.entries[0].date_display == "01/02/2026"
    assert view.total_spent == 31.3
    assert view.total_spent_display == "R$ 31,30"
