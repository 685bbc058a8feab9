from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List, Optional
from uuid import UUID

from db.database import get_async_session
from db.location import Location as LocationModel
from schemas.locations import LocationCreate, LocationRead, LocationUpdate

router = APIRouter()


async def _get_location(db: AsyncSession, location_id: UUID) -> LocationModel:
    res = await db.execute(select(LocationModel).where(LocationModel.id == location_id))
    m = res.scalar_one_or_none()
    if not m:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Location not found")
    return m


async def _name_taken(db: AsyncSession, name: str, exclude_id: Optional[UUID] = None) -> bool:
    stmt = select(LocationModel.id).where(func.lower(LocationModel.name) == name.lower())
    if exclude_id is not None:
        stmt = stmt.where(LocationModel.id != exclude_id)
    res = await db.execute(stmt)
    return res.first() is not None


@router.get("/", response_model=List[LocationRead])
async def list_locations(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(LocationModel).order_by(func.lower(LocationModel.name).asc()))
    return [LocationRead(**m.to_schema) for m in res.scalars().all()]


@router.post("/", response_model=LocationRead, status_code=status.HTTP_201_CREATED)
async def create_location(
    payload: LocationCreate,
    db: AsyncSession = Depends(get_async_session),
):
    if await _name_taken(db, payload.name):
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location already exists")
    if payload.parent_id is not None:
        await _get_location(db, payload.parent_id)

    m = LocationModel(name=payload.name, parent_id=payload.parent_id, description=payload.description)
    db.add(m)
    await db.commit()
    await db.refresh(m)
    return LocationRead(**m.to_schema)


@router.patch("/{location_id}", response_model=LocationRead)
async def update_location(
    location_id: UUID,
    payload: LocationUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    m = await _get_location(db, location_id)

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        name = data["name"].strip()
        if not name:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="name is required")
        if await _name_taken(db, name, exclude_id=m.id):
            raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location already exists")
        m.name = name
    if "parent_id" in data:
        parent_id = data["parent_id"]
        if parent_id is not None:
            if parent_id == m.id:
                raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="A location cannot be its own parent")
            await _get_location(db, parent_id)
        m.parent_id = parent_id
    if "description" in data:
        m.description = data["description"]

    await db.commit()
    await db.refresh(m)
    return LocationRead(**m.to_schema)


@router.delete("/{location_id}", response_model=dict)
async def delete_location(
    location_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    m = await _get_location(db, location_id)
    children = await db.execute(select(func.count()).select_from(LocationModel).where(LocationModel.parent_id == m.id))
    if children.scalar_one() > 0:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Location has child locations")

    await db.delete(m)
    await db.commit()
    return {"ok": True}
