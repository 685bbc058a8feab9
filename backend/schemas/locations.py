from pydantic import BaseModel, field_validator
from typing import Optional
from uuid import UUID


class LocationRead(BaseModel):
    id: UUID
    name: str
    parent_id: Optional[UUID] = None
    parent_name: Optional[str] = None
    description: Optional[str] = None


class LocationCreate(BaseModel):
    name: str
    parent_id: Optional[UUID] = None
    description: Optional[str] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class LocationUpdate(BaseModel):
    name: Optional[str] = None
    parent_id: Optional[UUID] = None
    description: Optional[str] = None


class CategoryRead(BaseModel):
    id: UUID
    name: str
    low_stock_threshold: Optional[int] = None


class CategoryCreate(BaseModel):
    name: str
    low_stock_threshold: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("name is required")
        return v


class CategoryUpdate(BaseModel):
    name: Optional[str] = None
    low_stock_threshold: Optional[int] = None
