from fastapi import APIRouter, Depends, HTTPException, status
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession
from typing import List
from uuid import UUID

from db.category import Category as CategoryModel
from db.database import get_async_session
from schemas.locations import CategoryCreate, CategoryRead, CategoryUpdate

router = APIRouter()


@router.get("/", response_model=List[CategoryRead])
async def list_categories(db: AsyncSession = Depends(get_async_session)):
    res = await db.execute(select(CategoryModel).order_by(func.lower(CategoryModel.name).asc()))
    return [CategoryRead(**c.to_schema) for c in res.scalars().all()]


@router.post("/", response_model=CategoryRead, status_code=status.HTTP_201_CREATED)
async def create_category(
    payload: CategoryCreate,
    db: AsyncSession = Depends(get_async_session),
):
    existing = await db.execute(select(CategoryModel).where(func.lower(CategoryModel.name) == payload.name.lower()))
    if existing.scalar_one_or_none():
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Category already exists")

    c = CategoryModel(name=payload.name, low_stock_threshold=payload.low_stock_threshold)
    db.add(c)
    await db.commit()
    await db.refresh(c)
    return CategoryRead(**c.to_schema)


@router.patch("/{category_id}", response_model=CategoryRead)
async def update_category(
    category_id: UUID,
    payload: CategoryUpdate,
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    c = res.scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    data = payload.model_dump(exclude_unset=True)
    if "name" in data and data["name"] is not None:
        c.name = data["name"].strip()
    if "low_stock_threshold" in data:
        threshold = data["low_stock_threshold"]
        if threshold is not None and threshold < 0:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="low_stock_threshold must be >= 0")
        c.low_stock_threshold = threshold

    await db.commit()
    await db.refresh(c)
    return CategoryRead(**c.to_schema)


@router.delete("/{category_id}", response_model=dict)
async def delete_category(
    category_id: UUID,
    db: AsyncSession = Depends(get_async_session),
):
    res = await db.execute(select(CategoryModel).where(CategoryModel.id == category_id))
    c = res.scalar_one_or_none()
    if not c:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Category not found")

    # Items keep their free-text category
    await db.delete(c)
    await db.commit()
    return {"ok": True}
