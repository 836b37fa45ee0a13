from datetime import datetime, timedelta, timezone

import pytest
from sqlalchemy import create_engine
from sqlalchemy.orm import sessionmaker
from sqlalchemy.pool import StaticPool

from stockkeeper.config import Settings
from stockkeeper.inventory import InventoryService
from stockkeeper.models import Base
from stockkeeper.records import StockRecord


class FakeClock:
    def __init__(self, start: datetime):
        self.now = start

    def __call__(self) -> datetime:
        return self.now

    def advance(self, **kwargs) -> None:
        self.now += timedelta(**kwargs)


@pytest.fixture
def clock():
    return FakeClock(datetime(2026, 10, 19, 12, 0, tzinfo=timezone.utc))


@pytest.fixture
def db_engine():
    engine = create_engine(
        "sqlite://",
        connect_args={"check_same_thread": False},
        poolclass=StaticPool,
    )
    Base.metadata.create_all(bind=engine)
    yield engine
    engine.dispose()


@pytest.fixture
def db_session(db_engine):
    session = sessionmaker(autoflush=False, bind=db_engine)()
    yield session
    session.close()


@pytest.fixture
def settings():
    return Settings(database_url="sqlite://", seed_example_items=False)


@pytest.fixture
def cart():
    return set()


@pytest.fixture
def service(db_session, cart, settings, clock):
    return InventoryService(db_session, checked=cart, settings=settings, clock=clock)


@pytest.fixture
def make_record():
    def _make(**overrides) -> StockRecord:
        fields = {
            "id": 1,
            "name": "Milk",
            "category": "Dairy",
            "purchase_frequency": "Weekly",
            "min_quantity": 6,
            "current_quantity": 2,
        }
        fields.update(overrides)
        return StockRecord(**fields)

    return _make
