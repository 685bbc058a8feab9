from typing import Dict, Iterable, List, Optional, Tuple
from uuid import UUID

import structlog
from fastapi import APIRouter, Depends, HTTPException, Query, status
from sqlalchemy import func, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from core.auth import current_user_id
from db.category import Category as CategoryModel
from db.database import get_async_session
from db.inventory.item import InventoryItem as InventoryItemModel
from schemas.inventory import (
    HistoryEntryOut,
    InventoryItemCreate,
    InventoryItemOut,
    InventoryItemUpdate,
    StockAdjustmentRequest,
    StockLocationIn,
)
from services.activity import append_activity, history_record, list_activity
from services.stock import (
    ItemNotFound,
    activity_record,
    broadcast,
    check_low_stock,
    item_record,
    resolve_parent_location,
    save_adjustment,
    write_distribution,
)
from stock.alerts import LowStockNotifier, effective_threshold, get_notifier, is_low_stock
from stock.errors import ErrorReporter, get_error_reporter
from stock.ledger import (
    InsufficientLocationStock,
    InvalidAdjustment,
    LocationRequired,
    RevisionConflict,
    StockLedgerError,
    StockLocationEntry,
    UnknownLocation,
    distribute,
)
from stock.narrator import narrate_history
from stock.realtime import ChangeEvent, RealtimeBridge, get_bridge
from stock.recorder import ActivityAction, deletion_changes, edit_changes

logger = structlog.get_logger(__name__)

router = APIRouter()

LEDGER_STATUS = (
    (InsufficientLocationStock, status.HTTP_409_CONFLICT),
    (UnknownLocation, status.HTTP_409_CONFLICT),
    (RevisionConflict, status.HTTP_409_CONFLICT),
    (LocationRequired, status.HTTP_422_UNPROCESSABLE_ENTITY),
    (InvalidAdjustment, status.HTTP_422_UNPROCESSABLE_ENTITY),
)


def _ledger_http_error(e: StockLedgerError) -> HTTPException:
    status_code = next((code for cls, code in LEDGER_STATUS if isinstance(e, cls)), status.HTTP_400_BAD_REQUEST)
    return HTTPException(status_code=status_code, detail={"message": str(e), "message_key": e.message_key})


async def _ensure_category(db: AsyncSession, name: Optional[str]) -> None:
    """Unknown category names are registered on first use."""
    if not name:
        return
    res = await db.execute(select(CategoryModel).where(func.lower(CategoryModel.name) == name.lower()))
    if res.scalar_one_or_none() is None:
        db.add(CategoryModel(name=name))


async def _sku_taken(db: AsyncSession, sku: Optional[str], exclude_id: Optional[UUID] = None) -> bool:
    if not sku:
        return False
    stmt = select(InventoryItemModel.id).where(InventoryItemModel.sku == sku)
    if exclude_id is not None:
        stmt = stmt.where(InventoryItemModel.id != exclude_id)
    res = await db.execute(stmt)
    return res.first() is not None


async def _submitted_distribution(
    db: AsyncSession, locations: Iterable[StockLocationIn]
) -> Tuple[int, Tuple[StockLocationEntry, ...]]:
    total, entries = distribute(
        StockLocationEntry(location=loc.location, quantity=loc.quantity, parent_location=loc.parent_location)
        for loc in locations
    )
    resolved = []
    for entry in entries:
        parent = entry.parent_location or await resolve_parent_location(db, entry.location)
        resolved.append(StockLocationEntry(location=entry.location, quantity=entry.quantity, parent_location=parent))
    return total, tuple(resolved)


async def _commit_item(db: AsyncSession, operation: str, item_id=None) -> None:
    try:
        await db.commit()
    except IntegrityError:
        await db.rollback()
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU already exists")
    except Exception as e:
        await db.rollback()
        logger.exception("inventory_write_failed", operation=operation, item_id=str(item_id) if item_id else None)
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to {operation}: {e}")


@router.get("/items", response_model=List[InventoryItemOut])
async def list_inventory_items(
    q: Optional[str] = None,
    category: Optional[str] = None,
    location: Optional[str] = None,
    low_stock: bool = False,
    db: AsyncSession = Depends(get_async_session),
):
    """
    List inventory items, alphabetically.

    - q matches name or SKU (case-insensitive).
    - location keeps items holding a row at that location.
    - low_stock keeps items at or below their effective threshold.
    """
    stmt = select(InventoryItemModel)
    if q:
        pattern = f"%{q.strip()}%"
        stmt = stmt.where(InventoryItemModel.name.ilike(pattern) | InventoryItemModel.sku.ilike(pattern))
    if category:
        stmt = stmt.where(func.lower(InventoryItemModel.category) == category.strip().lower())

    res = await db.execute(stmt.order_by(func.lower(InventoryItemModel.name).asc()))
    items = res.scalars().all()

    if location:
        key = location.strip().lower()
        items = [it for it in items if any(loc.location.strip().lower() == key for loc in it.stock_locations)]

    if low_stock:
        res = await db.execute(select(CategoryModel))
        category_thresholds = {c.name.lower(): c.low_stock_threshold for c in res.scalars().all()}
        items = [
            it
            for it in items
            if is_low_stock(
                it.stock,
                effective_threshold(
                    it.low_stock_threshold,
                    category_thresholds.get((it.category or "").lower()),
                ),
            )
        ]

    return [InventoryItemOut(**it.to_schema) for it in items]


@router.post("/items", response_model=InventoryItemOut, status_code=status.HTTP_201_CREATED)
async def create_inventory_item(
    payload: InventoryItemCreate,
    user_id: Optional[str] = Depends(current_user_id),
    db: AsyncSession = Depends(get_async_session),
    bridge: RealtimeBridge = Depends(get_bridge),
    reporter: ErrorReporter = Depends(get_error_reporter),
    notifier: LowStockNotifier = Depends(get_notifier),
):
    if await _sku_taken(db, payload.sku):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU already exists")

    stock = payload.stock
    entries: Tuple[StockLocationEntry, ...] = ()
    if payload.stock_locations:
        stock, entries = await _submitted_distribution(db, payload.stock_locations)

    await _ensure_category(db, payload.category)
    model = InventoryItemModel(
        name=payload.name,
        sku=payload.sku,
        category=payload.category,
        description=payload.description,
        low_stock_threshold=payload.low_stock_threshold,
        stock=stock,
        revision=0,
    )
    write_distribution(model, entries)
    db.add(model)
    await _commit_item(db, "create item")
    await db.refresh(model)
    logger.info("item_created", item_id=str(model.id), stock=model.stock)

    fields = payload.model_dump(mode="json")
    fields["stock"] = model.stock
    activity = await append_activity(
        db,
        reporter=reporter,
        inventory_id=model.id,
        action=ActivityAction.CREATED,
        item_name=model.name,
        user_id=user_id,
        changes=edit_changes(fields, None),
    )
    if activity is None:
        await db.refresh(model)

    await check_low_stock(db, model, user_id=user_id, notifier=notifier, reporter=reporter)

    events = [ChangeEvent("inventory", "INSERT", record=item_record(model, user_id))]
    if activity is not None:
        events.append(ChangeEvent("inventory_activity", "INSERT", record=activity_record(activity)))
    await broadcast(events, bridge=bridge, reporter=reporter)

    return InventoryItemOut(**model.to_schema)


@router.get("/items/{item_id}", response_model=InventoryItemOut)
async def get_inventory_item(
    item_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    return InventoryItemOut(**model.to_schema)


@router.patch("/items/{item_id}", response_model=InventoryItemOut)
async def update_inventory_item(
    item_id: UUID,
    payload: InventoryItemUpdate,
    user_id: Optional[str] = Depends(current_user_id),
    db: AsyncSession = Depends(get_async_session),
    bridge: RealtimeBridge = Depends(get_bridge),
    reporter: ErrorReporter = Depends(get_error_reporter),
    notifier: LowStockNotifier = Depends(get_notifier),
):
    """
    Direct edit. When stock_locations is submitted the aggregate stock is
    derived from it; an empty list stops location tracking. A bare stock
    change on a location-tracked item is refused.
    """
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    if payload.expected_revision is not None and payload.expected_revision != model.revision:
        raise _ledger_http_error(
            RevisionConflict(f"Item {item_id} is at revision {model.revision}, expected {payload.expected_revision}.")
        )

    data = payload.model_dump(exclude_unset=True, exclude={"expected_revision"}, mode="json")
    if data.get("sku") and await _sku_taken(db, data["sku"], exclude_id=model.id):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="SKU already exists")

    old_record = item_record(model, user_id)
    old_stock = model.stock

    if payload.stock_locations is not None:
        stock, entries = await _submitted_distribution(db, payload.stock_locations)
        if entries:
            model.stock = stock
        elif payload.stock is not None:
            model.stock = payload.stock
        write_distribution(model, entries)
    elif payload.stock is not None and payload.stock != model.stock:
        if model.stock_locations:
            raise _ledger_http_error(
                LocationRequired(f"Item {item_id} is tracked by location; submit stock_locations instead.")
            )
        model.stock = payload.stock

    if payload.name is not None:
        model.name = payload.name
    for field in ("sku", "category", "description", "low_stock_threshold"):
        if field in data:
            setattr(model, field, getattr(payload, field))
    if "category" in data:
        await _ensure_category(db, payload.category)

    model.revision = int(model.revision or 0) + 1
    await _commit_item(db, "update item", item_id)
    await db.refresh(model)
    logger.info("item_updated", item_id=str(model.id), old_stock=old_stock, stock=model.stock)

    data["stock"] = model.stock
    activity = await append_activity(
        db,
        reporter=reporter,
        inventory_id=model.id,
        action=ActivityAction.UPDATED,
        item_name=model.name,
        user_id=user_id,
        changes=edit_changes(data, old_stock),
    )
    if activity is None:
        await db.refresh(model)

    await check_low_stock(db, model, user_id=user_id, notifier=notifier, reporter=reporter)

    events = [ChangeEvent("inventory", "UPDATE", record=item_record(model, user_id), old_record=old_record)]
    if activity is not None:
        events.append(ChangeEvent("inventory_activity", "INSERT", record=activity_record(activity)))
    await broadcast(events, bridge=bridge, reporter=reporter)

    return InventoryItemOut(**model.to_schema)


@router.delete("/items/{item_id}", response_model=Dict)
async def delete_inventory_item(
    item_id: UUID,
    user_id: Optional[str] = Depends(current_user_id),
    db: AsyncSession = Depends(get_async_session),
    bridge: RealtimeBridge = Depends(get_bridge),
    reporter: ErrorReporter = Depends(get_error_reporter),
):
    res = await db.execute(select(InventoryItemModel).where(InventoryItemModel.id == item_id))
    model = res.scalar_one_or_none()
    if not model:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")

    old_record = item_record(model, user_id)
    item_name = model.name

    await db.delete(model)
    await _commit_item(db, "delete item", item_id)
    logger.info("item_deleted", item_id=str(item_id))

    # Activity rows are kept; they carry the name snapshot
    activity = await append_activity(
        db,
        reporter=reporter,
        inventory_id=item_id,
        action=ActivityAction.DELETED,
        item_name=item_name,
        user_id=user_id,
        changes=deletion_changes(item_id),
    )

    events = [ChangeEvent("inventory", "DELETE", old_record=old_record)]
    if activity is not None:
        events.append(ChangeEvent("inventory_activity", "INSERT", record=activity_record(activity)))
    await broadcast(events, bridge=bridge, reporter=reporter)

    return {"ok": True}


@router.put("/items/{item_id}/stock", response_model=InventoryItemOut)
async def update_item_stock(
    item_id: UUID,
    payload: StockAdjustmentRequest,
    user_id: Optional[str] = Depends(current_user_id),
    db: AsyncSession = Depends(get_async_session),
    bridge: RealtimeBridge = Depends(get_bridge),
    reporter: ErrorReporter = Depends(get_error_reporter),
    notifier: LowStockNotifier = Depends(get_notifier),
):
    try:
        result = await save_adjustment(
            db,
            item_id,
            payload.new_stock,
            location=payload.location,
            action_type=payload.action_type,
            parent_location=payload.parent_location,
            recipient=payload.recipient,
            destination_location=payload.destination_location,
            expected_revision=payload.expected_revision,
            user_id=user_id,
            bridge=bridge,
            reporter=reporter,
            notifier=notifier,
        )
    except ItemNotFound:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Item not found")
    except StockLedgerError as e:
        logger.info("stock_adjustment_rejected", item_id=str(item_id), reason=e.message_key, error=str(e))
        raise _ledger_http_error(e)
    except Exception as e:
        await db.rollback()
        logger.exception("stock_adjustment_failed", item_id=str(item_id))
        raise HTTPException(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=f"Failed to update stock: {e}")

    return InventoryItemOut(**result.item.to_schema)


@router.get("/items/{item_id}/history", response_model=List[HistoryEntryOut])
async def get_item_history(
    item_id: UUID,
    limit: int = Query(50, ge=1, le=500),
    db: AsyncSession = Depends(get_async_session),
):
    """Narrated activity for one item, newest first. Works for deleted items too."""
    rows, _ = await list_activity(db, inventory_id=item_id, page=0, page_size=limit)
    entries = narrate_history(history_record(r) for r in rows)
    return [HistoryEntryOut(**e.to_dict()) for e in entries]
