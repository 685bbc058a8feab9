"""
HTTP client for the stock API, for hosts that drive an AdjustmentSession
outside this process (bots, kiosks, scripts).

    client = make_client_from_env()
    session = AdjustmentSession(item, client.save_adjustment)

Environment variables:
- STOCK_API_URL: e.g. "https://your-domain.com/api" (defaults to settings)
- STOCK_API_USER_ID: user id sent as X-User-Id; omit for system writes
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Any, Dict, Optional

import requests

from core.config import settings
from stock.ledger import StockItem, StockLocationEntry


class ApiError(RuntimeError):
    def __init__(self, message: str, status_code: Optional[int] = None, message_key: Optional[str] = None):
        super().__init__(message)
        self.status_code = status_code
        self.message_key = message_key


@dataclass
class StockApiClient:
    base_url: str
    user_id: Optional[str] = None
    timeout: float = 30

    def _headers(self) -> Dict[str, str]:
        headers = {"Accept": "application/json"}
        if self.user_id:
            headers["X-User-Id"] = self.user_id
        return headers

    def _request(self, method: str, path: str, *, json: Any = None, params: Dict[str, Any] | None = None) -> Any:
        url = f"{self.base_url.rstrip('/')}/{path.lstrip('/')}"
        resp = requests.request(
            method,
            url,
            json=json,
            params=params,
            headers=self._headers(),
            timeout=self.timeout,
        )

        if resp.status_code >= 400:
            message_key = None
            try:
                detail = resp.json().get("detail")
            except ValueError:
                detail = None
            if isinstance(detail, dict):
                message_key = detail.get("message_key")
            raise ApiError(
                f"{method} {path} failed ({resp.status_code}): {resp.text}",
                status_code=resp.status_code,
                message_key=message_key,
            )

        if resp.status_code == 204:
            return None
        return resp.json()

    # ----------------------------
    # Stock helpers
    # ----------------------------

    def get_item(self, item_id: str) -> StockItem:
        """Calls: GET /inventory/items/{id} and returns a ledger snapshot."""
        data = self._request("GET", f"/inventory/items/{item_id}")
        return StockItem(
            id=str(data["id"]),
            stock=int(data.get("stock") or 0),
            stock_locations=tuple(
                StockLocationEntry(
                    location=loc["location"],
                    quantity=int(loc.get("quantity") or 0),
                    parent_location=loc.get("parent_location"),
                )
                for loc in data.get("stock_locations") or []
            ),
            name=data.get("name"),
            revision=int(data.get("revision") or 0),
        )

    def save_adjustment(
        self,
        item_id: str,
        new_stock: int,
        location: Optional[str] = None,
        action_type: Optional[str] = None,
        parent_location: Optional[str] = None,
        recipient: Optional[str] = None,
        destination_location: Optional[str] = None,
        expected_revision: Optional[int] = None,
    ) -> Any:
        """
        Calls: PUT /inventory/items/{id}/stock

        Positional order matches what AdjustmentSession passes to its
        save_adjustment collaborator.
        """
        payload: Dict[str, Any] = {"new_stock": new_stock}
        optional = {
            "location": location,
            "action_type": action_type,
            "parent_location": parent_location,
            "recipient": recipient,
            "destination_location": destination_location,
            "expected_revision": expected_revision,
        }
        payload.update({k: v for k, v in optional.items() if v is not None})
        return self._request("PUT", f"/inventory/items/{item_id}/stock", json=payload)

    def get_history(self, item_id: str, limit: int = 50) -> Any:
        """Calls: GET /inventory/items/{id}/history"""
        return self._request("GET", f"/inventory/items/{item_id}/history", params={"limit": limit})


def make_client_from_env() -> StockApiClient:
    base_url = os.getenv("STOCK_API_URL", "").strip() or settings.api_base_url
    user_id = os.getenv("STOCK_API_USER_ID", "").strip() or None

    if not base_url:
        raise RuntimeError("Missing STOCK_API_URL")

    return StockApiClient(base_url=base_url, user_id=user_id)
