"""
Remote row store client.

The remote backend is a PostgREST (Supabase style) REST API with three
tables: `items` keyed by `item_id`, the append-only `events` audit log and
`orders`. Every failure, whether transport or a non-2xx answer, surfaces as
RemoteError so callers can fall back to local state.
"""
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Optional
import logging

import httpx

logger = logging.getLogger(__name__)


class RemoteError(Exception):
    """The remote store could not be reached or rejected the call."""

    def __init__(self, message: str, status_code: Optional[int] = None):
        super().__init__(message)
        self.status_code = status_code


class BaseRemoteStore(ABC):
    """
    Operations the device app needs from the remote store
    """

    # ========== Items ==========

    @abstractmethod
    async def fetch_items(self, limit: int) -> List[Dict[str, Any]]:
        """Most recently updated item rows, newest first, at most `limit`."""

    @abstractmethod
    async def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        """Point lookup by item id; None when the row does not exist."""

    @abstractmethod
    async def upsert_item(self, row: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def delete_item(self, item_id: str) -> None:
        pass

    @abstractmethod
    async def delete_all_items(self) -> None:
        pass

    # ========== Events ==========

    @abstractmethod
    async def insert_event(self, row: Dict[str, Any]) -> None:
        pass

    # ========== Orders ==========

    @abstractmethod
    async def list_orders(self, limit: int) -> List[Dict[str, Any]]:
        pass

    @abstractmethod
    async def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        pass

    @abstractmethod
    async def insert_order(self, row: Dict[str, Any]) -> Dict[str, Any]:
        """Inserts an order and returns the stored row."""

    @abstractmethod
    async def update_order(self, order_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        """Updates an order and returns the stored row."""

    async def aclose(self) -> None:
        pass


class PostgrestRemoteStore(BaseRemoteStore):
    """
    PostgREST client

    Base URL: {REMOTE_URL}/rest/v1/
    Auth: `apikey` header plus the same key as bearer token
    """

    def __init__(self, base_url: str, api_key: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/rest/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    async def _request(
        self,
        method: str,
        path: str,
        params: Optional[Dict[str, str]] = None,
        json: Any = None,
        prefer: Optional[str] = None,
    ) -> Any:
        headers = {"Prefer": prefer} if prefer else None
        try:
            response = await self._client.request(method, path, params=params, json=json, headers=headers)
        except httpx.HTTPError as e:
            logger.warning(f"Remote {method} {path} failed: {e}")
            raise RemoteError(f"{method} {path} failed: {e}") from e

        if response.is_error:
            logger.warning(f"Remote {method} {path} returned {response.status_code}: {response.text}")
            raise RemoteError(
                f"{method} {path} returned {response.status_code}",
                status_code=response.status_code,
            )
        if not response.content:
            return None
        return response.json()

    async def fetch_items(self, limit: int) -> List[Dict[str, Any]]:
        rows = await self._request(
            "GET", "/items", params={"select": "*", "order": "updated_at.desc", "limit": str(limit)}
        )
        return rows or []

    async def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        rows = await self._request(
            "GET", "/items", params={"select": "*", "item_id": f"eq.{item_id}", "limit": "1"}
        )
        return rows[0] if rows else None

    async def upsert_item(self, row: Dict[str, Any]) -> None:
        await self._request(
            "POST",
            "/items",
            params={"on_conflict": "item_id"},
            json=row,
            prefer="resolution=merge-duplicates,return=minimal",
        )

    async def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        await self._request(
            "PATCH", "/items", params={"item_id": f"eq.{item_id}"}, json=fields, prefer="return=minimal"
        )

    async def delete_item(self, item_id: str) -> None:
        await self._request("DELETE", "/items", params={"item_id": f"eq.{item_id}"})

    async def delete_all_items(self) -> None:
        # PostgREST refuses an unfiltered DELETE; every row has a non-empty id.
        await self._request("DELETE", "/items", params={"item_id": "neq."})

    async def insert_event(self, row: Dict[str, Any]) -> None:
        await self._request("POST", "/events", json=row, prefer="return=minimal")

    async def list_orders(self, limit: int) -> List[Dict[str, Any]]:
        rows = await self._request(
            "GET", "/orders", params={"select": "*", "order": "created_at.desc", "limit": str(limit)}
        )
        return rows or []

    async def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        rows = await self._request(
            "GET", "/orders", params={"select": "*", "id": f"eq.{order_id}", "limit": "1"}
        )
        return rows[0] if rows else None

    async def insert_order(self, row: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request("POST", "/orders", json=row, prefer="return=representation")
        if not rows:
            raise RemoteError("POST /orders returned no row")
        return rows[0]

    async def update_order(self, order_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        rows = await self._request(
            "PATCH", "/orders", params={"id": f"eq.{order_id}"}, json=fields, prefer="return=representation"
        )
        if not rows:
            raise RemoteError(f"Order {order_id} not found", status_code=404)
        return rows[0]

    async def aclose(self) -> None:
        await self._client.aclose()
