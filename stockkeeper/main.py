"""Main application entry point with FastAPI."""

import logging
import sys
from contextlib import asynccontextmanager
from typing import Any

from fastapi import Body, Depends, FastAPI, HTTPException, Request
from pydantic import ValidationError
from sqlalchemy.orm import Session

from .config import get_settings
from .database import check_database_health, dispose_engine, get_db, init_db, list_tables
from .engine import SnapshotError
from .inventory import InventoryService
from .records import PurchaseOutcome, StockRecord
from .schemas import (
    CheckedUpdate,
    CheckoutResult,
    HistoryView,
    ImportResult,
    ItemCreate,
    ItemUpdate,
    PurchaseResult,
    ShoppingListView,
    StockView,
    ValueUpdate,
)

# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)

PURCHASE_MESSAGES = {
    PurchaseOutcome.PURCHASED: "Purchase recorded.",
    PurchaseOutcome.NOTHING_TO_PURCHASE: "This item does not need to be bought.",
}


def validate_environment():
    """Validate settings on startup and apply the configured log level."""
    try:
        settings = get_settings()
        logging.getLogger().setLevel(settings.log_level)
        logger.info("Settings validated successfully")
        return settings
    except ValidationError as e:
        logger.error("ERROR: Missing or invalid environment variables:")
        logger.error(str(e))
        sys.exit(1)


@asynccontextmanager
async def lifespan(app: FastAPI):
    """Application lifespan manager for startup and shutdown."""
    # Startup
    logger.info("Starting Stockkeeper...")
    validate_environment()

    init_db()
    logger.info(f"=== Tables in database: {list_tables()} ===")

    logger.info("Stockkeeper started successfully")

    yield

    # Shutdown
    logger.info("Shutting down Stockkeeper...")
    dispose_engine()
    logger.info("Stockkeeper shutdown complete")


# Create FastAPI app
app = FastAPI(
    title="Stockkeeper",
    description="Household stock tracker and shopping list",
    version="1.0.0",
    lifespan=lifespan,
)

# Ids currently in the cart; single user, lives as long as the process
app.state.checked_items = set()


def get_inventory(request: Request, db_session: Session = Depends(get_db)) -> InventoryService:
    return InventoryService(db_session, checked=request.app.state.checked_items)


def _not_found(item_id: int) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Item {item_id} not found")


@app.get("/health")
async def health_check():
    """Health check endpoint.

    Verifies database connection and returns status.
    """
    db_healthy = check_database_health()

    if db_healthy:
        return {
            "status": "healthy",
            "database": "connected",
        }
    else:
        return {
            "status": "unhealthy",
            "database": "disconnected",
        }


@app.get("/")
async def root():
    """Root endpoint."""
    return {
        "name": "Stockkeeper",
        "status": "running",
        "version": "1.0.0",
    }


# --- Stock ---


@app.get("/stock", response_model=StockView)
def get_stock(inventory: InventoryService = Depends(get_inventory)):
    return inventory.stock_view()


@app.post("/stock", response_model=StockRecord, status_code=201)
def add_item(payload: ItemCreate, inventory: InventoryService = Depends(get_inventory)):
    try:
        return inventory.add_item(
            payload.name,
            payload.category,
            payload.purchase_frequency,
            payload.min_quantity,
            payload.current_quantity,
        )
    except ValueError as e:
        raise HTTPException(status_code=422, detail=str(e))


@app.put("/stock/{item_id}", response_model=StockRecord)
def edit_item(item_id: int, payload: ItemUpdate, inventory: InventoryService = Depends(get_inventory)):
    record = inventory.edit_item(
        item_id,
        payload.min_quantity,
        payload.current_quantity,
        name=payload.name,
        category=payload.category,
        purchase_frequency=payload.purchase_frequency,
    )
    if record is None:
        raise _not_found(item_id)
    return record


@app.delete("/stock/{item_id}")
def delete_item(item_id: int, inventory: InventoryService = Depends(get_inventory)):
    if not inventory.delete_item(item_id):
        raise _not_found(item_id)
    return {"success": True, "deleted": item_id}


@app.put("/stock/{item_id}/price", response_model=StockRecord)
def set_price(item_id: int, payload: ValueUpdate, inventory: InventoryService = Depends(get_inventory)):
    record = inventory.set_price(item_id, payload.value)
    if record is None:
        raise _not_found(item_id)
    return record


@app.put("/stock/{item_id}/manual-quantity", response_model=StockRecord)
def set_manual_quantity(
    item_id: int, payload: ValueUpdate, inventory: InventoryService = Depends(get_inventory)
):
    record = inventory.set_manual_quantity(item_id, payload.value)
    if record is None:
        raise _not_found(item_id)
    return record


@app.put("/stock/{item_id}/checked")
def toggle_checked(
    item_id: int, payload: CheckedUpdate, inventory: InventoryService = Depends(get_inventory)
):
    if not inventory.toggle_checked(item_id, payload.checked):
        raise _not_found(item_id)
    return {"success": True, "id": item_id, "checked": payload.checked}


@app.post("/stock/{item_id}/purchase", response_model=PurchaseResult)
def complete_one(item_id: int, inventory: InventoryService = Depends(get_inventory)):
    outcome = inventory.complete_one(item_id)
    if outcome is PurchaseOutcome.NOT_FOUND:
        raise _not_found(item_id)
    return PurchaseResult(
        success=outcome is PurchaseOutcome.PURCHASED,
        outcome=outcome,
        message=PURCHASE_MESSAGES[outcome],
    )


# --- Shopping list ---


@app.get("/shopping-list", response_model=ShoppingListView)
def get_shopping_list(inventory: InventoryService = Depends(get_inventory)):
    return inventory.shopping_list_view()


@app.post("/shopping-list/checkout", response_model=CheckoutResult)
def complete_checked(inventory: InventoryService = Depends(get_inventory)):
    summary = inventory.complete_checked()
    message = f"{summary.succeeded} item(s) purchased."
    if summary.skipped:
        message += f" {summary.skipped} item(s) had nothing to buy."
    return CheckoutResult(succeeded=summary.succeeded, skipped=summary.skipped, message=message)


# --- History ---


@app.get("/history", response_model=HistoryView)
def get_history(inventory: InventoryService = Depends(get_inventory)):
    return inventory.history_view()


@app.delete("/history")
def clear_history(inventory: InventoryService = Depends(get_inventory)):
    removed = inventory.clear_history()
    return {"success": True, "entries_removed": removed}


# --- Snapshot export/import ---


@app.get("/snapshot")
def export_snapshot(inventory: InventoryService = Depends(get_inventory)):
    return inventory.export_snapshot()


@app.post("/snapshot", response_model=ImportResult)
def import_snapshot(
    document: Any = Body(...), inventory: InventoryService = Depends(get_inventory)
):
    try:
        state = inventory.import_snapshot(document)
    except SnapshotError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ImportResult(
        success=True,
        stock_count=len(state.stock),
        history_count=len(state.history),
    )
