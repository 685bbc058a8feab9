"""
History narrator.

Turns stored activity records into display entries: an icon tag, a sentence
and, when both stock figures are known, a "10 → 8" delta with a signed chip.
Pure functions of their input; malformed or partial records never raise.
"""

from dataclasses import dataclass
from typing import Any, Iterable, List, Mapping, Optional

from stock.ledger import ActionType
from stock.recorder import UNKNOWN_ITEM, ActivityAction

SYSTEM_ACTOR = "System"

NARRATIVES = {
    "created": "{user} created {item}",
    "deleted": "{user} deleted {item}",
    "stock_added": "{user} added {count} {item} to {location}",
    "stock_removed": "{user} removed {count} {item} from {location}",
    "stock_removed_recipient": "{user} gave {count} {item} to {recipient}",
    "stock_removed_full": "{user} gave {count} {item} to {recipient} at {destination}",
    "updated": "{user} updated {item}",
}


@dataclass(frozen=True)
class StockChange:
    old_stock: int
    new_stock: int
    diff: int

    @property
    def color(self) -> str:
        return "success" if self.diff > 0 else "error"

    @property
    def delta_text(self) -> str:
        return f"{self.old_stock} → {self.new_stock}"

    @property
    def chip(self) -> str:
        return f"+{self.diff}" if self.diff > 0 else str(self.diff)


@dataclass(frozen=True)
class HistoryEntry:
    id: Optional[str]
    icon: str
    narrative: str
    created_at: Any = None
    stock_change: Optional[StockChange] = None

    def to_dict(self) -> dict:
        change = self.stock_change
        return {
            "id": self.id,
            "icon": self.icon,
            "narrative": self.narrative,
            "created_at": self.created_at,
            "stock_change": (
                {
                    "old_stock": change.old_stock,
                    "new_stock": change.new_stock,
                    "diff": change.diff,
                    "delta_text": change.delta_text,
                    "chip": change.chip,
                    "color": change.color,
                }
                if change
                else None
            ),
        }


def _as_int(x) -> Optional[int]:
    if x is None or isinstance(x, bool):
        return None
    try:
        return int(x)
    except (TypeError, ValueError):
        return None


def _changes(record: Mapping) -> Mapping:
    changes = record.get("changes") if record else None
    return changes if isinstance(changes, Mapping) else {}


def action_icon(action: Optional[str], changes: Optional[Mapping]) -> str:
    if action == ActivityAction.CREATED.value:
        return "add"
    if action == ActivityAction.DELETED.value:
        return "delete"
    action_type = (changes or {}).get("action_type")
    if action_type == ActionType.ADD.value:
        return "trending_up"
    if action_type == ActionType.REMOVE.value:
        return "trending_down"
    return "edit"


def stock_change(changes: Optional[Mapping]) -> Optional[StockChange]:
    changes = changes or {}
    old_stock = _as_int(changes.get("old_stock"))
    new_stock = _as_int(changes.get("stock"))
    if old_stock is None or new_stock is None:
        return None
    diff = new_stock - old_stock
    if diff == 0:
        return None
    return StockChange(old_stock=old_stock, new_stock=new_stock, diff=diff)


def narrative(record: Mapping) -> str:
    changes = _changes(record)
    action = record.get("action")
    user = record.get("user_display_name") or SYSTEM_ACTOR
    item = record.get("item_name") or UNKNOWN_ITEM

    if action == ActivityAction.CREATED.value:
        return NARRATIVES["created"].format(user=user, item=item)
    if action == ActivityAction.DELETED.value:
        return NARRATIVES["deleted"].format(user=user, item=item)

    change = stock_change(changes)
    count = abs(change.diff) if change else 0
    location = " ".join(str(p) for p in (changes.get("parent_location"), changes.get("location")) if p)
    action_type = changes.get("action_type")

    if action_type == ActionType.ADD.value:
        return NARRATIVES["stock_added"].format(user=user, count=count, item=item, location=location or SYSTEM_ACTOR)
    if action_type == ActionType.REMOVE.value:
        recipient = changes.get("recipient")
        destination = changes.get("destination_location")
        if recipient and destination:
            return NARRATIVES["stock_removed_full"].format(
                user=user, count=count, item=item, recipient=recipient, destination=destination
            )
        if recipient:
            return NARRATIVES["stock_removed_recipient"].format(user=user, count=count, item=item, recipient=recipient)
        return NARRATIVES["stock_removed"].format(user=user, count=count, item=item, location=location or SYSTEM_ACTOR)

    return NARRATIVES["updated"].format(user=user, item=item)


def narrate(record: Mapping) -> HistoryEntry:
    changes = _changes(record)
    return HistoryEntry(
        id=str(record["id"]) if record.get("id") is not None else None,
        icon=action_icon(record.get("action"), changes),
        narrative=narrative(record),
        created_at=record.get("created_at"),
        stock_change=stock_change(changes),
    )


def narrate_history(records: Iterable[Mapping]) -> List[HistoryEntry]:
    return [narrate(r) for r in records]
