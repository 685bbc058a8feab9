"""
Stock adjustment session.

Drives the interactive add/remove workflow independently of any UI toolkit:

    menu -> selectLocation -> add | remove -> confirm
                 ^                 |
                 +------ back -----+

The host renders whatever `mode` says, forwards user input to the matching
method and supplies two collaborators:

- save_adjustment(item_id, new_stock, location, action_type, parent_location,
  recipient, destination_location), plain or async; with check_revision=True
  it also receives expected_revision=item.revision as a keyword
- handle_error(error, message_key)

Nothing is persisted until confirm() succeeds; close() discards everything.
"""

from __future__ import annotations

import inspect
from dataclasses import dataclass
from enum import Enum
from typing import Any, Callable, Optional

import structlog

from stock.errors import get_error_reporter
from stock.ledger import (
    MAX_INPUT_DIGITS,
    ActionType,
    StockItem,
    StockLocationEntry,
    compute_new_total,
    max_removable,
    parse_amount,
)

logger = structlog.get_logger(__name__)

SAVE_ERROR_KEY = "inventory.updateStockError"


class Mode(str, Enum):
    MENU = "menu"
    SELECT_LOCATION = "selectLocation"
    ADD = "add"
    REMOVE = "remove"


@dataclass(frozen=True)
class Provenance:
    """Where removed stock went. Both fields are optional free text."""

    recipient: Optional[str] = None
    destination_location: Optional[str] = None

    @classmethod
    def from_input(cls, recipient: Optional[str], destination_location: Optional[str]) -> "Provenance":
        return cls(
            recipient=(recipient or "").strip() or None,
            destination_location=(destination_location or "").strip() or None,
        )

    @property
    def is_empty(self) -> bool:
        return self.recipient is None and self.destination_location is None


@dataclass(frozen=True)
class AdjustmentRequest:
    item_id: str
    new_stock: int
    action_type: ActionType
    location: Optional[str] = None
    parent_location: Optional[str] = None
    provenance: Provenance = Provenance()
    expected_revision: Optional[int] = None

    def as_call_args(self) -> tuple:
        return (
            self.item_id,
            self.new_stock,
            self.location,
            self.action_type.value,
            self.parent_location,
            self.provenance.recipient,
            self.provenance.destination_location,
        )

    def as_call_kwargs(self) -> dict:
        if self.expected_revision is None:
            return {}
        return {"expected_revision": self.expected_revision}


class AdjustmentSession:
    def __init__(
        self,
        item: StockItem,
        save_adjustment: Callable[..., Any],
        handle_error: Optional[Callable[[BaseException, Optional[str]], None]] = None,
        on_close: Optional[Callable[[], None]] = None,
        check_revision: bool = False,
    ):
        self.item = item
        self.check_revision = check_revision
        self._save_adjustment = save_adjustment
        self._handle_error = handle_error or get_error_reporter().handle_error
        self._on_close = on_close
        self.closed = False
        self.loading = False
        self._reset()

    def _reset(self):
        self.mode = Mode.MENU
        self.pending_action: Optional[ActionType] = None
        self.selected_location: Optional[StockLocationEntry] = None
        self.input_value = ""
        self.recipient = ""
        self.destination_location = ""

    # ----------------------------
    # Navigation
    # ----------------------------

    def _choose(self, action: ActionType):
        self._require_mode(Mode.MENU)
        self.pending_action = action
        if self.item.is_location_tracked:
            self.mode = Mode.SELECT_LOCATION
        else:
            self.mode = Mode(action.value)

    def choose_add(self):
        self._choose(ActionType.ADD)

    def choose_remove(self):
        self._choose(ActionType.REMOVE)

    def select_location(self, entry: StockLocationEntry):
        self._require_mode(Mode.SELECT_LOCATION)
        self.selected_location = entry
        self.mode = Mode.ADD if self.pending_action == ActionType.ADD else Mode.REMOVE

    def back(self):
        if self.mode in (Mode.ADD, Mode.REMOVE):
            self.mode = Mode.SELECT_LOCATION if self.item.is_location_tracked else Mode.MENU
        elif self.mode == Mode.SELECT_LOCATION:
            self.mode = Mode.MENU

    def close(self):
        self._reset()
        self.loading = False
        if not self.closed:
            self.closed = True
            if self._on_close is not None:
                self._on_close()

    def _require_mode(self, *modes: Mode):
        if self.closed:
            raise RuntimeError("Adjustment session is closed.")
        if self.mode not in modes:
            raise RuntimeError(f"Not allowed in '{self.mode.value}' mode.")

    # ----------------------------
    # Keypad and provenance
    # ----------------------------

    def append_digit(self, digit: str):
        if not (isinstance(digit, str) and len(digit) == 1 and digit.isdigit()):
            raise ValueError(f"'{digit}' is not a single digit.")
        if len(self.input_value) < MAX_INPUT_DIGITS:
            self.input_value += digit

    def backspace(self):
        self.input_value = self.input_value[:-1]

    def set_recipient(self, value: Optional[str]):
        self.recipient = value or ""

    def set_destination(self, value: Optional[str]):
        self.destination_location = value or ""

    # ----------------------------
    # Derived state
    # ----------------------------

    @property
    def amount(self) -> int:
        return parse_amount(self.input_value)

    @property
    def max_removable(self) -> int:
        return max_removable(self.item, self.selected_location)

    @property
    def insufficient_stock(self) -> bool:
        return self.mode == Mode.REMOVE and self.amount > self.max_removable

    @property
    def can_confirm(self) -> bool:
        if self.closed or self.loading or self.mode not in (Mode.ADD, Mode.REMOVE):
            return False
        if self.amount <= 0:
            return False
        return not self.insufficient_stock

    @property
    def provenance(self) -> Provenance:
        if self.mode != Mode.REMOVE:
            return Provenance()
        return Provenance.from_input(self.recipient, self.destination_location)

    def build_request(self) -> AdjustmentRequest:
        action = ActionType(self.mode.value)
        return AdjustmentRequest(
            item_id=self.item.id,
            new_stock=compute_new_total(self.item, action, self.amount),
            action_type=action,
            location=self.selected_location.location if self.selected_location else None,
            parent_location=self.selected_location.parent_location if self.selected_location else None,
            provenance=self.provenance,
            expected_revision=self.item.revision if self.check_revision else None,
        )

    # ----------------------------
    # Confirmation
    # ----------------------------

    async def confirm(self) -> Optional[AdjustmentRequest]:
        """Persist the adjustment. Returns the request on success, None otherwise."""
        if not self.can_confirm:
            return None

        request = self.build_request()
        self.loading = True
        try:
            result = self._save_adjustment(*request.as_call_args(), **request.as_call_kwargs())
            if inspect.isawaitable(result):
                await result
        except Exception as e:
            self.loading = False
            logger.warning("adjustment_save_failed", item_id=request.item_id, error=str(e))
            self._handle_error(e, getattr(e, "message_key", None) or SAVE_ERROR_KEY)
            return None

        logger.info(
            "adjustment_confirmed",
            item_id=request.item_id,
            action_type=request.action_type.value,
            new_stock=request.new_stock,
            location=request.location,
        )
        self.close()
        return request
