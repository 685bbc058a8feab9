"""Tests for the acting-user dependency and its log context."""

import pytest
import structlog

from core.auth import current_user_id
from core.logging import clear_context


@pytest.fixture(autouse=True)
def log_context():
    clear_context()
    yield structlog.contextvars.get_contextvars
    clear_context()


class TestCurrentUserId:
    async def test_binds_user_to_log_context(self, log_context):
        assert await current_user_id(" alice ") == "alice"
        assert log_context() == {"user_id": "alice"}

    async def test_blank_header_is_system_originated(self, log_context):
        structlog.contextvars.bind_contextvars(request_id="stale")

        assert await current_user_id("   ") is None
        assert log_context() == {"user_id": None}
