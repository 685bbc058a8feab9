from datetime import datetime
from typing import Any, Dict, List, Literal, Optional
from uuid import UUID

from pydantic import BaseModel, Field, field_validator


AdjustmentActionType = Literal["add", "remove", "adjust"]
ActivityAction = Literal["created", "updated", "deleted"]


def _strip_or_none(v: Optional[str]) -> Optional[str]:
    if v is None:
        return None
    v = v.strip()
    return v or None


class StockLocationIn(BaseModel):
    location: str
    quantity: int = Field(default=0, ge=0)
    parent_location: Optional[str] = None

    @field_validator("location")
    @classmethod
    def _strip_location(cls, v: str) -> str:
        return (v or "").strip()

    @field_validator("parent_location")
    @classmethod
    def _strip_parent(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class StockLocationOut(BaseModel):
    location: str
    quantity: int
    parent_location: Optional[str] = None


class InventoryItemCreate(BaseModel):
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)
    stock: int = Field(default=0, ge=0)
    stock_locations: List[StockLocationIn] = Field(default_factory=list)

    @field_validator("name")
    @classmethod
    def _strip_required(cls, v: str) -> str:
        v = (v or "").strip()
        if not v:
            raise ValueError("field is required")
        return v

    @field_validator("sku", "category", "description")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class InventoryItemUpdate(BaseModel):
    name: Optional[str] = None
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    low_stock_threshold: Optional[int] = Field(default=None, ge=0)
    stock: Optional[int] = Field(default=None, ge=0)
    stock_locations: Optional[List[StockLocationIn]] = None
    expected_revision: Optional[int] = None

    @field_validator("name")
    @classmethod
    def _strip_name(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        v = v.strip()
        if not v:
            raise ValueError("cannot be empty")
        return v

    @field_validator("sku", "category", "description")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class InventoryItemOut(BaseModel):
    id: UUID
    name: str
    sku: Optional[str] = None
    category: Optional[str] = None
    description: Optional[str] = None
    low_stock_threshold: Optional[int] = None
    stock: int
    revision: int
    stock_locations: List[StockLocationOut] = Field(default_factory=list)
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class StockAdjustmentRequest(BaseModel):
    """Body of PUT /inventory/items/{id}/stock (the saveAdjustment call)."""

    new_stock: int = Field(ge=0)
    location: Optional[str] = None
    action_type: Optional[AdjustmentActionType] = None
    parent_location: Optional[str] = None
    recipient: Optional[str] = None
    destination_location: Optional[str] = None
    expected_revision: Optional[int] = None

    @field_validator("location", "parent_location", "recipient", "destination_location")
    @classmethod
    def _strip_optional(cls, v: Optional[str]) -> Optional[str]:
        return _strip_or_none(v)


class ActivityOut(BaseModel):
    id: UUID
    inventory_id: UUID
    user_id: Optional[str] = None
    action: ActivityAction
    item_name: Optional[str] = None
    changes: Dict[str, Any] = Field(default_factory=dict)
    created_at: datetime


class ActivityPage(BaseModel):
    items: List[ActivityOut]
    total: int
    page: int
    page_size: int


class StockChangeOut(BaseModel):
    old_stock: int
    new_stock: int
    diff: int
    delta_text: str
    chip: str
    color: Literal["success", "error"]


class HistoryEntryOut(BaseModel):
    id: Optional[str] = None
    icon: str
    narrative: str
    created_at: Optional[datetime] = None
    stock_change: Optional[StockChangeOut] = None
