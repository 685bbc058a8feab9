"""
Stock ledger (pure).

An item carries one aggregate `stock` count and an optional ordered
distribution of that count across named storage locations. When the
distribution is non-empty its quantities must add up to `stock`.

Nothing here touches the database: callers pass plain snapshots in and get
new values back.
"""

from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Iterable, Optional, Tuple

MAX_INPUT_DIGITS = 5
MAX_ADJUSTMENT = 10 ** MAX_INPUT_DIGITS - 1


class ActionType(str, Enum):
    ADD = "add"
    REMOVE = "remove"
    ADJUST = "adjust"


# ══════════════════════════════════════════════════════════════
# ERRORS
# ══════════════════════════════════════════════════════════════

class StockLedgerError(ValueError):
    """Base class for adjustments the ledger refuses to apply."""

    message_key = "inventory.updateStockError"


class InvalidAdjustment(StockLedgerError):
    message_key = "inventory.invalidQuantity"


class LocationRequired(StockLedgerError):
    message_key = "inventory.locationRequired"


class UnknownLocation(StockLedgerError):
    message_key = "inventory.unknownLocation"


class InsufficientLocationStock(StockLedgerError):
    message_key = "inventory.insufficientStock"


class RevisionConflict(StockLedgerError):
    message_key = "inventory.concurrentUpdate"


# ══════════════════════════════════════════════════════════════
# SNAPSHOTS
# ══════════════════════════════════════════════════════════════

@dataclass(frozen=True)
class StockLocationEntry:
    location: str
    quantity: int = 0
    parent_location: Optional[str] = None

    @property
    def label(self) -> str:
        return " ".join(p for p in (self.parent_location, self.location) if p)


@dataclass(frozen=True)
class StockItem:
    id: str
    stock: int = 0
    stock_locations: Tuple[StockLocationEntry, ...] = field(default_factory=tuple)
    name: Optional[str] = None
    revision: int = 0

    @property
    def is_location_tracked(self) -> bool:
        return len(self.stock_locations) > 0

    def find_location(self, location: Optional[str]) -> Optional[StockLocationEntry]:
        if not location:
            return None
        key = location.strip().lower()
        for entry in self.stock_locations:
            if entry.location.strip().lower() == key:
                return entry
        return None


# ══════════════════════════════════════════════════════════════
# OPERATIONS
# ══════════════════════════════════════════════════════════════

def parse_amount(input_value: Optional[str]) -> int:
    """Parse the keypad buffer. Empty means 0."""
    value = (input_value or "").strip()
    if not value:
        return 0
    if not value.isdigit() or len(value) > MAX_INPUT_DIGITS:
        raise InvalidAdjustment(f"'{input_value}' is not a quantity of at most {MAX_INPUT_DIGITS} digits.")
    return int(value)


def _check_delta(delta: int) -> int:
    if isinstance(delta, bool) or not isinstance(delta, int):
        raise InvalidAdjustment("delta must be an integer.")
    if delta <= 0:
        raise InvalidAdjustment("delta must be positive.")
    if delta > MAX_ADJUSTMENT:
        raise InvalidAdjustment(f"delta must be at most {MAX_ADJUSTMENT}.")
    return delta


def compute_new_total(item: StockItem, mode, delta: int) -> int:
    """New aggregate stock after adding or removing `delta` units.

    Removal floors at zero instead of failing.
    """
    delta = _check_delta(delta)
    current = max(0, int(item.stock or 0))
    action = ActionType(mode)
    if action == ActionType.ADD:
        return current + delta
    if action == ActionType.REMOVE:
        return max(0, current - delta)
    raise InvalidAdjustment(f"Unsupported adjustment mode '{action.value}'.")


def max_removable(item: StockItem, selected_location: Optional[StockLocationEntry] = None) -> int:
    if selected_location is not None:
        return int(selected_location.quantity or 0)
    return int(item.stock or 0)


def reconciled_total(entries: Iterable[StockLocationEntry]) -> int:
    return sum(int(e.quantity or 0) for e in entries)


def is_reconciled(item: StockItem) -> bool:
    if not item.is_location_tracked:
        return True
    return reconciled_total(item.stock_locations) == item.stock


def apply_adjustment(
    item: StockItem,
    new_stock: int,
    location: Optional[str] = None,
    parent_location: Optional[str] = None,
    action_type=None,
) -> Tuple[StockLocationEntry, ...]:
    """Distribution after moving the aggregate from `item.stock` to `new_stock`.

    The signed difference lands on `location`. Items without locations keep an
    empty distribution unless an addition names a location, which starts
    tracking it.
    """
    if isinstance(new_stock, bool) or not isinstance(new_stock, int) or new_stock < 0:
        raise InvalidAdjustment("new_stock must be a non-negative integer.")

    delta = new_stock - int(item.stock or 0)
    entries = list(item.stock_locations)
    action = ActionType(action_type) if action_type else None

    if not location:
        if item.is_location_tracked and delta != 0:
            raise LocationRequired(f"Item {item.id} is tracked by location; a location is required.")
        return tuple(entries)

    entry = item.find_location(location)
    if entry is None:
        if delta < 0 or action == ActionType.REMOVE:
            raise UnknownLocation(f"Item {item.id} has no stock at '{location}'.")
        if not item.is_location_tracked and item.stock:
            raise LocationRequired(
                f"Item {item.id} holds {item.stock} untracked units; distribute them before adding to '{location}'."
            )
        entries.append(StockLocationEntry(location=location.strip(), quantity=delta, parent_location=parent_location))
        return tuple(entries)

    quantity = int(entry.quantity or 0) + delta
    if quantity < 0:
        raise InsufficientLocationStock(
            f"Only {entry.quantity} available at '{entry.location}', cannot remove {-delta}."
        )
    idx = entries.index(entry)
    entries[idx] = replace(
        entry,
        quantity=quantity,
        parent_location=entry.parent_location or parent_location,
    )
    return tuple(entries)


def distribute(entries: Iterable[StockLocationEntry]) -> Tuple[int, Tuple[StockLocationEntry, ...]]:
    """Normalize a submitted distribution and derive the aggregate from it.

    Blank location names are dropped and negative quantities floor at zero.
    Names that differ only by case are one location: their quantities are
    summed under the first spelling submitted.
    """
    merged = {}
    for e in entries:
        name = (e.location or "").strip()
        if not name:
            continue
        quantity = max(0, int(e.quantity or 0))
        key = name.lower()
        if key in merged:
            first = merged[key]
            merged[key] = replace(
                first,
                quantity=first.quantity + quantity,
                parent_location=first.parent_location or e.parent_location,
            )
        else:
            merged[key] = replace(e, location=name, quantity=quantity)
    cleaned = list(merged.values())
    return reconciled_total(cleaned), tuple(cleaned)
