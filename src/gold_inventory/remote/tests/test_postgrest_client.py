import json

import httpx
import pytest

from gold_inventory.remote.client import PostgrestRemoteStore, RemoteError
from gold_inventory.remote.storage import SupabasePhotoStorage

pytestmark = pytest.mark.asyncio

BASE_URL = "https://project.example.test/"


class Recorder:
    """Mock transport handler answering with canned responses, remembering every request."""

    def __init__(self, *responses: httpx.Response):
        self.responses = list(responses)
        self.requests = []

    def __call__(self, request: httpx.Request) -> httpx.Response:
        self.requests.append(request)
        return self.responses.pop(0) if self.responses else httpx.Response(204)


def _store(recorder: Recorder) -> PostgrestRemoteStore:
    return PostgrestRemoteStore(BASE_URL, "anon-key", transport=httpx.MockTransport(recorder))


async def test_fetch_items_orders_newest_first_with_limit():
    rows = [{"item_id": "AG-24-000002"}, {"item_id": "AG-24-000001"}]
    recorder = Recorder(httpx.Response(200, json=rows))
    store = _store(recorder)

    assert await store.fetch_items(500) == rows

    request = recorder.requests[0]
    assert request.method == "GET"
    assert request.url.path == "/rest/v1/items"
    assert request.url.params["order"] == "updated_at.desc"
    assert request.url.params["limit"] == "500"
    assert request.headers["apikey"] == "anon-key"
    assert request.headers["authorization"] == "Bearer anon-key"
    await store.aclose()


async def test_get_item_returns_none_when_missing():
    recorder = Recorder(httpx.Response(200, json=[]))
    store = _store(recorder)

    assert await store.get_item("AG-24-000001") is None
    assert recorder.requests[0].url.params["item_id"] == "eq.AG-24-000001"


async def test_upsert_item_merges_on_item_id():
    recorder = Recorder(httpx.Response(201))
    store = _store(recorder)

    await store.upsert_item({"item_id": "AG-24-000001", "net_wt": 4.5})

    request = recorder.requests[0]
    assert request.method == "POST"
    assert request.url.params["on_conflict"] == "item_id"
    assert "resolution=merge-duplicates" in request.headers["prefer"]
    assert json.loads(request.content) == {"item_id": "AG-24-000001", "net_wt": 4.5}


async def test_update_and_delete_filter_by_item_id():
    recorder = Recorder(httpx.Response(204), httpx.Response(204), httpx.Response(204))
    store = _store(recorder)

    await store.update_item("AG-24-000001", {"status": "SOLD"})
    await store.delete_item("AG-24-000001")
    await store.delete_all_items()

    update, delete, delete_all = recorder.requests
    assert (update.method, update.url.params["item_id"]) == ("PATCH", "eq.AG-24-000001")
    assert (delete.method, delete.url.params["item_id"]) == ("DELETE", "eq.AG-24-000001")
    assert (delete_all.method, delete_all.url.params["item_id"]) == ("DELETE", "neq.")


async def test_error_status_raises_remote_error():
    store = _store(Recorder(httpx.Response(401, json={"message": "JWT expired"})))

    with pytest.raises(RemoteError) as exc_info:
        await store.fetch_items(10)
    assert exc_info.value.status_code == 401


async def test_transport_error_raises_remote_error():
    def refuse(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    store = PostgrestRemoteStore(BASE_URL, "anon-key", transport=httpx.MockTransport(refuse))

    with pytest.raises(RemoteError) as exc_info:
        await store.insert_event({"item_id": "AG-24-000001", "action": "CREATE"})
    assert exc_info.value.status_code is None


async def test_orders_return_stored_rows():
    stored = {"id": 5, "party_name": "Shah", "status": "RECEIVED"}
    recorder = Recorder(
        httpx.Response(201, json=[stored]),
        httpx.Response(200, json=[{**stored, "status": "DELIVERED"}]),
        httpx.Response(200, json=[]),
    )
    store = _store(recorder)

    assert await store.insert_order({"party_name": "Shah"}) == stored
    assert (await store.update_order(5, {"status": "DELIVERED"}))["status"] == "DELIVERED"
    assert recorder.requests[1].url.params["id"] == "eq.5"
    assert recorder.requests[0].headers["prefer"] == "return=representation"

    with pytest.raises(RemoteError) as exc_info:
        await store.update_order(6, {"status": "DELIVERED"})
    assert exc_info.value.status_code == 404


async def test_photo_upload_returns_public_url():
    recorder = Recorder(httpx.Response(200, json={"Key": "item-images/items/a.jpg"}))
    storage = SupabasePhotoStorage(BASE_URL, "anon-key", "item-images", transport=httpx.MockTransport(recorder))

    url = await storage.upload("items/a.jpg", b"jpeg", "image/jpeg")

    assert url == "https://project.example.test/storage/v1/object/public/item-images/items/a.jpg"
    request = recorder.requests[0]
    assert request.url.path == "/storage/v1/object/item-images/items/a.jpg"
    assert request.headers["x-upsert"] == "true"
    assert request.headers["content-type"] == "image/jpeg"
    assert request.content == b"jpeg"
    await storage.aclose()


async def test_photo_upload_failure_raises_remote_error():
    storage = SupabasePhotoStorage(
        BASE_URL, "anon-key", "item-images", transport=httpx.MockTransport(lambda request: httpx.Response(413))
    )

    with pytest.raises(RemoteError):
        await storage.upload("items/big.jpg", b"x" * 10)
