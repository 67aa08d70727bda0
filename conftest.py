"""
Root conftest for the pytest test suite.

This file contains the main fixtures that are used across the entire test suite.

Each test runs against a fresh, isolated in-memory SQLite database, the
same way the application initializes Tortoise ORM. The cloud side is
replaced by in-memory fakes that can be switched offline or told to reject
single operations.

Key Fixtures:
- `initialize_test_db`: (autouse) Creates a fresh DB schema for each test.
- `reset_busy_guards`: (autouse) Releases the create guard between tests.
- `remote_store`: In-memory stand-in for the PostgREST row store.
- `photo_storage`: In-memory stand-in for the photo bucket.
- `app_for_testing`: The FastAPI application with the remote clients overridden.
- `client`: A non-authenticated httpx AsyncClient.
- `auth_client`: An httpx AsyncClient holding a session token.
"""

import copy
import datetime
from typing import Any, AsyncGenerator, Dict, Generator, List, Optional, Set

import httpx
import pytest
import pytest_asyncio
from fastapi import FastAPI
from tortoise import Tortoise

from gold_inventory.core.config import ACCESS_PIN
from gold_inventory.features.items.service import create_guard
from gold_inventory.main import app as actual_app
from gold_inventory.remote.client import BaseRemoteStore, RemoteError
from gold_inventory.remote.dependencies import get_photo_storage, get_remote_store
from gold_inventory.remote.storage import BasePhotoStorage


class FakeRemoteStore(BaseRemoteStore):
    """Keeps rows in dicts. `offline` fails every call, `fail_on` names single operations to fail."""

    def __init__(self):
        self.items: Dict[str, Dict[str, Any]] = {}
        self.events: List[Dict[str, Any]] = []
        self.orders: Dict[str, Dict[str, Any]] = {}
        self.offline = False
        self.fail_on: Set[str] = set()
        self.calls: List[str] = []
        self._order_seq = 0

    def _call(self, operation: str) -> None:
        self.calls.append(operation)
        if self.offline or operation in self.fail_on:
            raise RemoteError(f"{operation} failed: network unreachable")

    async def fetch_items(self, limit: int) -> List[Dict[str, Any]]:
        self._call("fetch_items")
        rows = sorted(self.items.values(), key=lambda row: row.get("updated_at") or "", reverse=True)
        return copy.deepcopy(rows[:limit])

    async def get_item(self, item_id: str) -> Optional[Dict[str, Any]]:
        self._call("get_item")
        row = self.items.get(item_id)
        return copy.deepcopy(row) if row else None

    async def upsert_item(self, row: Dict[str, Any]) -> None:
        self._call("upsert_item")
        self.items[row["item_id"]] = {**self.items.get(row["item_id"], {}), **copy.deepcopy(row)}

    async def update_item(self, item_id: str, fields: Dict[str, Any]) -> None:
        self._call("update_item")
        if item_id in self.items:
            self.items[item_id].update(copy.deepcopy(fields))

    async def delete_item(self, item_id: str) -> None:
        self._call("delete_item")
        self.items.pop(item_id, None)

    async def delete_all_items(self) -> None:
        self._call("delete_all_items")
        self.items.clear()

    async def insert_event(self, row: Dict[str, Any]) -> None:
        self._call("insert_event")
        self.events.append(dict(row))

    async def list_orders(self, limit: int) -> List[Dict[str, Any]]:
        self._call("list_orders")
        rows = sorted(self.orders.values(), key=lambda row: row["created_at"], reverse=True)
        return copy.deepcopy(rows[:limit])

    async def get_order(self, order_id: Any) -> Optional[Dict[str, Any]]:
        self._call("get_order")
        row = self.orders.get(str(order_id))
        return copy.deepcopy(row) if row else None

    async def insert_order(self, row: Dict[str, Any]) -> Dict[str, Any]:
        self._call("insert_order")
        self._order_seq += 1
        now = datetime.datetime(2024, 1, 1, tzinfo=datetime.timezone.utc) + datetime.timedelta(minutes=self._order_seq)
        stored = {**copy.deepcopy(row), "id": str(self._order_seq), "created_at": now.isoformat(), "updated_at": now.isoformat()}
        self.orders[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update_order(self, order_id: Any, fields: Dict[str, Any]) -> Dict[str, Any]:
        self._call("update_order")
        row = self.orders.get(str(order_id))
        if row is None:
            raise RemoteError(f"Order {order_id} not found", status_code=404)
        row.update(copy.deepcopy(fields))
        return copy.deepcopy(row)


class FakePhotoStorage(BasePhotoStorage):
    """Stores uploads in a dict. Payloads listed in `reject` fail to upload."""

    def __init__(self):
        self.objects: Dict[str, bytes] = {}
        self.reject: Set[bytes] = set()
        self.offline = False

    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        if self.offline or data in self.reject:
            raise RemoteError(f"upload {path} failed")
        self.objects[path] = data
        return f"https://cdn.example.test/{path}"


@pytest_asyncio.fixture(scope="function", autouse=True)
async def initialize_test_db() -> AsyncGenerator[None, None]:
    """
    Initializes the database for each test function.

    This async, autouse fixture creates a fresh in-memory database and schema
    for each test and tears it down afterwards.
    """
    test_db_config = {
        "connections": {"default": "sqlite://:memory:"},
        "apps": {
            "models": {
                "models": ["gold_inventory.features.items.models"],
                "default_connection": "default",
            }
        },
    }
    await Tortoise.init(config=test_db_config)
    await Tortoise.generate_schemas()

    yield

    await Tortoise.close_connections()


@pytest.fixture(autouse=True)
def reset_busy_guards() -> Generator[None, None, None]:
    yield
    create_guard._busy = False


@pytest.fixture
def remote_store() -> FakeRemoteStore:
    return FakeRemoteStore()


@pytest.fixture
def photo_storage() -> FakePhotoStorage:
    return FakePhotoStorage()


@pytest.fixture(scope="function")
def app_for_testing(
    remote_store: FakeRemoteStore, photo_storage: FakePhotoStorage
) -> Generator[FastAPI, Any, None]:
    """
    Provides the FastAPI application with the cloud clients replaced by the
    in-memory fakes. The production lifespan is not run by the ASGI
    transport, so `initialize_test_db` owns the database connection.
    """
    actual_app.dependency_overrides[get_remote_store] = lambda: remote_store
    actual_app.dependency_overrides[get_photo_storage] = lambda: photo_storage

    yield actual_app

    actual_app.dependency_overrides.clear()


@pytest_asyncio.fixture(scope="function")
async def client(app_for_testing: FastAPI) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """
    Provides a non-authenticated client.
    """
    transport = httpx.ASGITransport(app=app_for_testing)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac


@pytest_asyncio.fixture(scope="function")
async def auth_client(app_for_testing: FastAPI) -> AsyncGenerator[httpx.AsyncClient, Any]:
    """
    Provides a client that logged in with the shared PIN.
    """
    transport = httpx.ASGITransport(app=app_for_testing)
    async with httpx.AsyncClient(transport=transport, base_url="http://test") as ac:
        response = await ac.post("/api/v1/auth/login", data={"pin": ACCESS_PIN})
        if response.status_code != 200:
            raise Exception("PIN login failed for the test client")

        ac.headers["Authorization"] = f"Bearer {response.json()['access_token']}"
        yield ac
