"""Acting-user resolution.

Authentication is handled upstream; the gateway forwards the authenticated
user's id in the X-User-Id header. Requests without it are treated as
system-originated (user_id null in activity records).
"""

from typing import Optional

from fastapi import Header

from core.logging import add_context, clear_context


async def current_user_id(x_user_id: Optional[str] = Header(default=None)) -> Optional[str]:
    value = (x_user_id or "").strip() or None
    # Log lines for the rest of the request carry the acting user
    clear_context()
    add_context(user_id=value)
    return value
