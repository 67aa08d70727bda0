"""Customer orders. The remote store is the only copy; every call returns its row."""
import datetime
import logging
import re
from typing import List, Optional
from urllib.parse import quote

from fastapi import HTTPException, status

from ...common.models import generate_ksuid, utc_now_iso
from ...core.config import ORDERS_PULL_LIMIT, WHATSAPP_NUMBER
from ...remote.client import BaseRemoteStore, RemoteError
from ...remote.storage import BasePhotoStorage, PhotoUpload
from .schemas import Order, OrderCreate, OrderStatus

logger = logging.getLogger(__name__)


def _remote_unavailable(action: str, e: RemoteError) -> HTTPException:
    logger.error(f"{action} failed: {e}")
    return HTTPException(
        status_code=status.HTTP_502_BAD_GATEWAY,
        detail=f"{action} failed, check network / cloud access.",
    )


def _order_photo_path(photo: PhotoUpload) -> str:
    safe_name = re.sub(r"\s+", "_", photo.filename or "photo.jpg")
    return f"orders/{generate_ksuid()}-{safe_name}"


async def list_recent_orders(remote: BaseRemoteStore, limit: int = ORDERS_PULL_LIMIT) -> List[Order]:
    """
    Lists the most recent orders, newest first.

    Args:
        remote: Remote store client.
        limit: Maximum number of orders.

    Returns:
        The orders as stored remotely.
    """
    try:
        rows = await remote.list_orders(limit)
    except RemoteError as e:
        raise _remote_unavailable("Loading orders", e)
    return [Order.from_remote_row(row) for row in rows]


async def get_order(remote: BaseRemoteStore, order_id: str) -> Order:
    try:
        row = await remote.get_order(order_id)
    except RemoteError as e:
        raise _remote_unavailable("Loading order", e)
    if row is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found.")
    return Order.from_remote_row(row)


async def create_order(
    remote: BaseRemoteStore,
    storage: BasePhotoStorage,
    order_in: OrderCreate,
    photos: Optional[List[PhotoUpload]] = None,
) -> Order:
    """
    Uploads the order photos, then inserts the order row.

    A photo that fails to upload is left out; the order is still saved.
    """
    photo_urls = []
    for photo in photos or []:
        try:
            photo_urls.append(await storage.upload(_order_photo_path(photo), photo.data, photo.content_type))
        except RemoteError as e:
            logger.warning(f"Order photo {photo.filename!r} not uploaded: {e}")

    row = {
        "party_name": order_in.party_name,
        "order_date": (order_in.order_date or datetime.date.today()).isoformat(),
        "delivery_date": order_in.delivery_date.isoformat() if order_in.delivery_date else None,
        "karat": order_in.karat,
        "product_type": order_in.product_type.strip(),
        "design_no": order_in.design_no.strip(),
        "weight_required": order_in.weight_required,
        "status": order_in.status.value,
        "photo_urls": photo_urls or None,
    }
    try:
        created = await remote.insert_order(row)
    except RemoteError as e:
        raise _remote_unavailable("Order save", e)
    logger.info(f"Order saved for {order_in.party_name} with {len(photo_urls)} photo(s)")
    return Order.from_remote_row(created)


async def update_order_status(remote: BaseRemoteStore, order_id: str, new_status: OrderStatus) -> Order:
    try:
        updated = await remote.update_order(
            order_id, {"status": new_status.value, "updated_at": utc_now_iso()}
        )
    except RemoteError as e:
        if e.status_code == 404:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail=f"Order {order_id} not found.")
        raise _remote_unavailable("Status update", e)
    return Order.from_remote_row(updated)


def order_message(order: Order) -> str:
    lines = [
        f"Order: {order.party_name}",
        f"Product: {order.product_type or '-'}",
        f"Design No: {order.design_no or '-'}",
        f"Karat: {order.karat or '-'}",
    ]
    if order.weight_required:
        lines.append(f"Weight: {order.weight_required} g")
    lines.append(f"Order date: {order.order_date or '-'}")
    if order.delivery_date:
        lines.append(f"Delivery: {order.delivery_date}")
    lines.append(f"Status: {order.status.value}")
    lines.extend(order.photo_urls)
    return "\n".join(lines)


def whatsapp_link(order: Order, phone: Optional[str] = None) -> str:
    """wa.me deep link with the order summary; without a number WhatsApp asks for a contact."""
    digits = re.sub(r"\D", "", phone if phone is not None else WHATSAPP_NUMBER)
    text = quote(order_message(order), safe="")
    return f"https://wa.me/{digits}?text={text}"
