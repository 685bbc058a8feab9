"""Activity record payloads.

Every accepted stock mutation, item creation and item deletion appends one
activity row. These helpers build its `changes` JSON; the row itself is
written by services.activity.
"""

from enum import Enum
from typing import Any, Dict, Optional

from stock.ledger import ActionType


class ActivityAction(str, Enum):
    CREATED = "created"
    UPDATED = "updated"
    DELETED = "deleted"


UNKNOWN_ITEM = "Unknown Item"


def adjustment_changes(
    *,
    new_stock: int,
    old_stock: Optional[int],
    action_type=None,
    location: Optional[str] = None,
    parent_location: Optional[str] = None,
    recipient: Optional[str] = None,
    destination_location: Optional[str] = None,
) -> Dict[str, Any]:
    changes: Dict[str, Any] = {
        "stock": int(new_stock),
        "old_stock": int(old_stock) if old_stock is not None else None,
    }
    if action_type:
        changes["action_type"] = ActionType(action_type).value
    if location:
        changes["location"] = location
    if parent_location:
        changes["parent_location"] = parent_location
    if recipient:
        changes["recipient"] = recipient
    if destination_location:
        changes["destination_location"] = destination_location
    return changes


def edit_changes(fields: Dict[str, Any], old_stock: Optional[int]) -> Dict[str, Any]:
    """Changes for a direct edit: the submitted fields plus the previous stock."""
    changes = {k: v for k, v in fields.items() if v is not None}
    changes["old_stock"] = old_stock
    if "stock" in changes and old_stock is not None and changes["stock"] != old_stock:
        changes["action_type"] = ActionType.ADJUST.value
    return changes


def deletion_changes(item_id: str) -> Dict[str, Any]:
    return {"id": str(item_id)}
