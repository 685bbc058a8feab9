from datetime import datetime
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.ext.asyncio import AsyncSession

from db.database import get_async_session
from schemas.inventory import ActivityOut, ActivityPage
from services.activity import ALL_ACTIONS, list_activity

router = APIRouter()


@router.get("/", response_model=ActivityPage)
async def get_activity(
    page: int = Query(0, ge=0),
    page_size: int = Query(10, ge=1, le=500, alias="pageSize"),
    action_filter: str = Query(ALL_ACTIONS, alias="actionFilter"),
    search_term: Optional[str] = Query(None, alias="searchTerm"),
    start_date: Optional[datetime] = Query(None, alias="startDate"),
    end_date: Optional[datetime] = Query(None, alias="endDate"),
    location: Optional[str] = None,
    action_type: Optional[str] = Query(None, alias="actionType"),
    inventory_id: Optional[UUID] = None,
    db: AsyncSession = Depends(get_async_session),
):
    """
    Activity log, newest first.

    - actionFilter: all | stock | created | updated | deleted ("stock" keeps add/remove/adjust records)
    - location matches the removal destination
    - endDate is exclusive
    """
    rows, total = await list_activity(
        db,
        inventory_id=inventory_id,
        page=page,
        page_size=page_size,
        action_filter=action_filter,
        search_term=search_term,
        start_date=start_date,
        end_date=end_date,
        location=location,
        action_type=action_type,
    )
    return ActivityPage(
        items=[ActivityOut(**r.to_schema) for r in rows],
        total=total,
        page=page,
        page_size=page_size,
    )
