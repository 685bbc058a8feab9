"""Stock persistence: the server side of saveAdjustment plus the helpers the
item routes share with it (snapshotting, writing a distribution, low-stock
checks and change broadcasts).
"""

from dataclasses import dataclass
from typing import Iterable, List, Optional
from uuid import UUID

import structlog
from fastapi.encoders import jsonable_encoder
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.category import Category as CategoryModel
from db.inventory.activity import InventoryActivity as InventoryActivityModel
from db.inventory.item import InventoryItem as InventoryItemModel
from db.inventory.stock import InventoryStockLocation as InventoryStockLocationModel
from db.location import Location as LocationModel
from services.activity import append_activity
from stock.alerts import LowStockAlert, LowStockNotifier, effective_threshold, get_notifier, is_low_stock
from stock.errors import ErrorReporter, get_error_reporter
from stock.ledger import (
    ActionType,
    RevisionConflict,
    StockItem,
    StockLocationEntry,
    apply_adjustment,
)
from stock.realtime import ChangeEvent, RealtimeBridge, get_bridge
from stock.recorder import ActivityAction, adjustment_changes

logger = structlog.get_logger(__name__)

BROADCAST_ERROR_KEY = "realtime.broadcastError"
LOW_STOCK_ERROR_KEY = "inventory.lowStockAlertError"


class ItemNotFound(LookupError):
    pass


@dataclass
class AdjustmentResult:
    item: InventoryItemModel
    activity: Optional[InventoryActivityModel]
    alert: Optional[LowStockAlert]


# ----------------------------
# Loading and snapshots
# ----------------------------

async def load_item(db: AsyncSession, item_id: UUID) -> InventoryItemModel:
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    item = res.scalar_one_or_none()
    if not item:
        raise ItemNotFound(f"Inventory item {item_id} not found")
    return item


def to_snapshot(item: InventoryItemModel) -> StockItem:
    return StockItem(
        id=str(item.id),
        stock=int(item.stock or 0),
        stock_locations=tuple(
            StockLocationEntry(
                location=loc.location,
                quantity=int(loc.quantity or 0),
                parent_location=loc.parent_location,
            )
            for loc in item.stock_locations
        ),
        name=item.name,
        revision=int(item.revision or 0),
    )


def write_distribution(item: InventoryItemModel, entries: Iterable[StockLocationEntry]) -> None:
    """Replace the item's location rows with `entries`, reusing rows by name."""
    existing = {loc.location.strip().lower(): loc for loc in item.stock_locations}
    rows: List[InventoryStockLocationModel] = []
    for position, entry in enumerate(entries):
        row = existing.pop(entry.location.strip().lower(), None)
        if row is None:
            row = InventoryStockLocationModel(location=entry.location)
        row.quantity = int(entry.quantity)
        row.parent_location = entry.parent_location
        row.position = position
        rows.append(row)
    item.stock_locations = rows


async def resolve_parent_location(db: AsyncSession, location: Optional[str]) -> Optional[str]:
    """Parent name of a registered location, or None if unknown or top-level."""
    if not location:
        return None
    res = await db.execute(select(LocationModel).where(func.lower(LocationModel.name) == location.strip().lower()))
    loc = res.scalar_one_or_none()
    if loc is None or loc.parent is None:
        return None
    return loc.parent.name


def item_record(item: InventoryItemModel, user_id: Optional[str] = None) -> dict:
    data = item.to_schema
    data["user_id"] = user_id
    return jsonable_encoder(data)


def activity_record(row: InventoryActivityModel) -> dict:
    return jsonable_encoder(row.to_schema)


# ----------------------------
# Side effects after a committed write
# ----------------------------

async def check_low_stock(
    db: AsyncSession,
    item: InventoryItemModel,
    *,
    user_id: Optional[str] = None,
    notifier: Optional[LowStockNotifier] = None,
    reporter: Optional[ErrorReporter] = None,
) -> Optional[LowStockAlert]:
    category_threshold = None
    if item.category:
        res = await db.execute(
            select(CategoryModel.low_stock_threshold).where(
                func.lower(CategoryModel.name) == item.category.lower()
            )
        )
        category_threshold = res.scalar_one_or_none()

    threshold = effective_threshold(item.low_stock_threshold, category_threshold)
    if not is_low_stock(item.stock, threshold):
        return None

    alert = LowStockAlert(
        item_id=str(item.id),
        item_name=item.name,
        current_stock=int(item.stock or 0),
        threshold=threshold,
        user_id=user_id,
    )
    try:
        (notifier or get_notifier()).notify(alert)
    except Exception as e:
        logger.exception("low_stock_alert_failed", item_id=alert.item_id)
        (reporter or get_error_reporter()).handle_error(e, LOW_STOCK_ERROR_KEY)
    return alert


async def broadcast(
    events: Iterable[ChangeEvent],
    *,
    bridge: Optional[RealtimeBridge] = None,
    reporter: Optional[ErrorReporter] = None,
) -> None:
    bridge = bridge or get_bridge()
    for event in events:
        try:
            await bridge.publish(event)
        except Exception as e:
            logger.exception("broadcast_failed", table=event.table, change_event=event.event)
            (reporter or get_error_reporter()).handle_error(e, BROADCAST_ERROR_KEY)


# ----------------------------
# saveAdjustment
# ----------------------------

def _infer_action_type(delta: int, action_type) -> Optional[ActionType]:
    if action_type:
        return ActionType(action_type)
    if delta > 0:
        return ActionType.ADD
    if delta < 0:
        return ActionType.REMOVE
    return None


async def save_adjustment(
    db: AsyncSession,
    item_id: UUID,
    new_stock: int,
    *,
    location: Optional[str] = None,
    action_type=None,
    parent_location: Optional[str] = None,
    recipient: Optional[str] = None,
    destination_location: Optional[str] = None,
    expected_revision: Optional[int] = None,
    user_id: Optional[str] = None,
    bridge: Optional[RealtimeBridge] = None,
    reporter: Optional[ErrorReporter] = None,
    notifier: Optional[LowStockNotifier] = None,
) -> AdjustmentResult:
    """Set an item's aggregate stock and move the difference through `location`.

    The item row and its location rows are written in one transaction. The
    activity record follows in a second one; if that fails the stock change
    stays committed and the failure goes to the error reporter. Ledger
    violations raise StockLedgerError subclasses before anything is written.
    """
    reporter = reporter or get_error_reporter()
    item = await load_item(db, item_id)

    if expected_revision is not None and expected_revision != item.revision:
        raise RevisionConflict(
            f"Item {item_id} is at revision {item.revision}, expected {expected_revision}."
        )

    snapshot = to_snapshot(item)
    old_stock = snapshot.stock
    action = _infer_action_type(new_stock - old_stock, action_type)

    if location and parent_location is None and snapshot.find_location(location) is None:
        parent_location = await resolve_parent_location(db, location)

    entries = apply_adjustment(
        snapshot,
        new_stock,
        location=location,
        parent_location=parent_location,
        action_type=action,
    )
    entry = next((e for e in entries if location and e.location.strip().lower() == location.strip().lower()), None)
    if entry is not None:
        parent_location = entry.parent_location

    old_record = item_record(item, user_id)
    try:
        item.stock = new_stock
        item.revision = int(item.revision or 0) + 1
        write_distribution(item, entries)
        await db.commit()
    except Exception:
        await db.rollback()
        raise
    await db.refresh(item)

    logger.info(
        "stock_adjusted",
        item_id=str(item.id),
        old_stock=old_stock,
        new_stock=new_stock,
        action_type=action.value if action else None,
        location=location,
        revision=item.revision,
    )

    activity = await append_activity(
        db,
        reporter=reporter,
        inventory_id=item.id,
        action=ActivityAction.UPDATED,
        item_name=item.name,
        user_id=user_id,
        changes=adjustment_changes(
            new_stock=new_stock,
            old_stock=old_stock,
            action_type=action,
            location=location,
            parent_location=parent_location,
            recipient=recipient,
            destination_location=destination_location,
        ),
    )
    if activity is None:
        # The failed append rolled the session back and expired the item
        await db.refresh(item)

    alert = await check_low_stock(db, item, user_id=user_id, notifier=notifier, reporter=reporter)

    events = [ChangeEvent("inventory", "UPDATE", record=item_record(item, user_id), old_record=old_record)]
    if activity is not None:
        events.append(ChangeEvent("inventory_activity", "INSERT", record=activity_record(activity)))
    await broadcast(events, bridge=bridge, reporter=reporter)

    return AdjustmentResult(item=item, activity=activity, alert=alert)
