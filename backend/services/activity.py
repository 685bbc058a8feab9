"""Activity trail persistence.

Rows are only ever inserted; there is no update or delete path.
"""

from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple
from uuid import UUID

import structlog
from sqlalchemy import func, or_, select
from sqlalchemy.ext.asyncio import AsyncSession

from db.inventory.activity import InventoryActivity as InventoryActivityModel
from stock.errors import ErrorReporter, get_error_reporter
from stock.recorder import ActivityAction

logger = structlog.get_logger(__name__)

ACTIVITY_ERROR_KEY = "inventory.activityLogError"

# actionFilter values besides the concrete actions
ALL_ACTIONS = "all"
STOCK_ACTIONS = "stock"


async def record_activity(
    db: AsyncSession,
    *,
    inventory_id: UUID,
    action: ActivityAction,
    item_name: Optional[str],
    changes: Dict[str, Any],
    user_id: Optional[str] = None,
) -> InventoryActivityModel:
    row = InventoryActivityModel(
        inventory_id=inventory_id,
        user_id=user_id,
        action=ActivityAction(action).value,
        item_name=item_name,
        changes=changes,
    )
    db.add(row)
    await db.commit()
    await db.refresh(row)
    return row


async def append_activity(
    db: AsyncSession,
    *,
    reporter: Optional[ErrorReporter] = None,
    **fields,
) -> Optional[InventoryActivityModel]:
    """record_activity in its own transaction; failures are reported, not raised.

    Called after the mutation it describes has been committed, so a failure
    here never undoes that mutation.
    """
    try:
        return await record_activity(db, **fields)
    except Exception as e:
        await db.rollback()
        logger.exception(
            "activity_append_failed",
            inventory_id=str(fields.get("inventory_id")),
            action=str(fields.get("action")),
        )
        (reporter or get_error_reporter()).handle_error(e, ACTIVITY_ERROR_KEY)
        return None


async def list_activity(
    db: AsyncSession,
    *,
    inventory_id: Optional[UUID] = None,
    page: int = 0,
    page_size: int = 10,
    action_filter: str = ALL_ACTIONS,
    search_term: Optional[str] = None,
    start_date: Optional[datetime] = None,
    end_date: Optional[datetime] = None,
    location: Optional[str] = None,
    action_type: Optional[str] = None,
) -> Tuple[List[InventoryActivityModel], int]:
    """Newest first. Returns one page of rows plus the unpaged total."""
    action_type_col = InventoryActivityModel.changes["action_type"].as_string()
    destination_col = InventoryActivityModel.changes["destination_location"].as_string()

    conditions = []
    if inventory_id is not None:
        conditions.append(InventoryActivityModel.inventory_id == inventory_id)
    if action_filter == STOCK_ACTIONS:
        conditions.append(action_type_col.is_not(None))
    elif action_filter and action_filter != ALL_ACTIONS:
        conditions.append(InventoryActivityModel.action == action_filter)
    if search_term:
        pattern = f"%{search_term.strip()}%"
        conditions.append(
            or_(
                InventoryActivityModel.item_name.ilike(pattern),
                InventoryActivityModel.user_id.ilike(pattern),
            )
        )
    if start_date:
        conditions.append(InventoryActivityModel.created_at >= start_date)
    if end_date:
        conditions.append(InventoryActivityModel.created_at < end_date)
    if location and location != ALL_ACTIONS:
        conditions.append(destination_col == location)
    if action_type:
        conditions.append(action_type_col == action_type)

    total = (
        await db.execute(select(func.count()).select_from(InventoryActivityModel).where(*conditions))
    ).scalar_one()

    stmt = (
        select(InventoryActivityModel)
        .where(*conditions)
        .order_by(InventoryActivityModel.created_at.desc())
        .limit(page_size)
        .offset(page * page_size)
    )
    rows = (await db.execute(stmt)).scalars().all()
    return list(rows), int(total)


def history_record(row: InventoryActivityModel) -> Dict[str, Any]:
    """Mapping consumed by stock.narrator; the user id doubles as display name."""
    data = row.to_schema
    data["id"] = str(row.id)
    data["user_display_name"] = row.user_id
    return data
