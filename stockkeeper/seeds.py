"""Example stock used to populate an empty store on first run."""

from datetime import datetime

from .engine import derive_all
from .records import StockRecord


EXAMPLE_ITEMS = [
    {"name": "Rice", "category": "Pantry", "purchase_frequency": "Monthly", "min_quantity": 2, "current_quantity": 1},
    {"name": "Black beans", "category": "Pantry", "purchase_frequency": "Monthly", "min_quantity": 2, "current_quantity": 2},
    {"name": "Coffee", "category": "Pantry", "purchase_frequency": "Biweekly", "min_quantity": 1, "current_quantity": 0},
    {"name": "Milk", "category": "Dairy", "purchase_frequency": "Weekly", "min_quantity": 6, "current_quantity": 2},
    {"name": "Eggs", "category": "Dairy", "purchase_frequency": "Weekly", "min_quantity": 12, "current_quantity": 18},
    {"name": "Toilet paper", "category": "Hygiene", "purchase_frequency": "Monthly", "min_quantity": 8, "current_quantity": 4},
    {"name": "Toothpaste", "category": "Hygiene", "purchase_frequency": "Monthly", "min_quantity": 1, "current_quantity": 2},
    {"name": "Dish soap", "category": "Cleaning", "purchase_frequency": "Monthly", "min_quantity": 2, "current_quantity": 0},
]


def build_example_stock(now: datetime) -> list[StockRecord]:
    """Example records with ids taken from ``now`` in ms plus the item's position."""
    base_id = int(now.timestamp() * 1000)
    records = [
        StockRecord(id=base_id + offset, **item)
        for offset, item in enumerate(EXAMPLE_ITEMS)
    ]
    return derive_all(records)
