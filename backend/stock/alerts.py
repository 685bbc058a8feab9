"""Low-stock alerts.

The effective threshold is the item's own value, else its category's, else
the global default from settings. Delivery happens behind LowStockNotifier.
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import List, Optional

import structlog

from core.config import settings

logger = structlog.get_logger(__name__)


@dataclass(frozen=True)
class LowStockAlert:
    item_id: str
    item_name: str
    current_stock: int
    threshold: int
    user_id: Optional[str] = None


def effective_threshold(
    item_threshold: Optional[int],
    category_threshold: Optional[int] = None,
    global_threshold: Optional[int] = None,
) -> int:
    if item_threshold is not None:
        return int(item_threshold)
    if category_threshold is not None:
        return int(category_threshold)
    if global_threshold is not None:
        return int(global_threshold)
    return settings.low_stock_threshold


def is_low_stock(stock: Optional[int], threshold: int) -> bool:
    return int(stock or 0) <= threshold


class LowStockNotifier(ABC):
    @abstractmethod
    def notify(self, alert: LowStockAlert) -> None:
        ...


class LoggingLowStockNotifier(LowStockNotifier):
    def notify(self, alert: LowStockAlert) -> None:
        logger.warning(
            "low_stock",
            item_id=alert.item_id,
            item_name=alert.item_name,
            current_stock=alert.current_stock,
            threshold=alert.threshold,
        )


class FakeLowStockNotifier(LowStockNotifier):
    """Records alerts in memory for test assertions."""

    def __init__(self):
        self.alerts: List[LowStockAlert] = []
        self.should_succeed = True

    def configure(self, should_succeed: bool = True):
        self.should_succeed = should_succeed

    def notify(self, alert: LowStockAlert) -> None:
        if not self.should_succeed:
            raise RuntimeError("Low stock alert delivery failed")
        self.alerts.append(alert)

    def reset(self):
        self.alerts.clear()
        self.should_succeed = True


_current_notifier: Optional[LowStockNotifier] = None


def get_notifier() -> LowStockNotifier:
    global _current_notifier
    if _current_notifier is None:
        _current_notifier = LoggingLowStockNotifier()
    return _current_notifier


def set_notifier(notifier: LowStockNotifier) -> None:
    global _current_notifier
    _current_notifier = notifier


def reset_notifier() -> None:
    global _current_notifier
    _current_notifier = None
