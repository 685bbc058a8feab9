import os
from pathlib import Path

import pytest

# Settings are read at import time; point everything at in-memory SQLite first.
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite://")
os.environ.setdefault("ENVIRONMENT", "test")


def pytest_collection_modifyitems(config, items):
    """Automatically mark tests based on their directory location."""
    for item in items:
        test_path = str(Path(item.fspath))
        if "/domain/" in test_path:
            item.add_marker(pytest.mark.domain)
        elif "/application/" in test_path:
            item.add_marker(pytest.mark.application)
        elif "/integration/" in test_path:
            item.add_marker(pytest.mark.integration)


@pytest.fixture(autouse=True)
def reporter():
    from stock.errors import RecordingErrorReporter, reset_error_reporter, set_error_reporter

    recording = RecordingErrorReporter()
    set_error_reporter(recording)
    yield recording
    reset_error_reporter()


@pytest.fixture(autouse=True)
def bridge():
    from stock.realtime import RecordingBroadcastBridge, reset_bridge, set_bridge

    in_memory = RecordingBroadcastBridge(channel="test-activity")
    set_bridge(in_memory)
    yield in_memory
    reset_bridge()


@pytest.fixture(autouse=True)
def notifier():
    from stock.alerts import FakeLowStockNotifier, reset_notifier, set_notifier

    fake = FakeLowStockNotifier()
    set_notifier(fake)
    yield fake
    reset_notifier()
