from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from typing import Annotated, List, Optional
import datetime

from .schemas import Order, OrderCreate, OrderStatus, OrderStatusUpdate, WhatsAppLink
from . import service
from ..auth.security import require_session
from ...remote.client import BaseRemoteStore
from ...remote.dependencies import get_photo_storage, get_remote_store, read_photo_uploads
from ...remote.storage import BasePhotoStorage

router = APIRouter(
    prefix="/orders",
    tags=["Orders"],
    dependencies=[Depends(require_session)],
)

RemoteStore = Annotated[BaseRemoteStore, Depends(get_remote_store)]


@router.get("/", response_model=List[Order])
async def list_orders(remote: RemoteStore):
    return await service.list_recent_orders(remote)


@router.post("/", response_model=Order, status_code=status.HTTP_201_CREATED)
async def create_order(
    remote: RemoteStore,
    storage: Annotated[BasePhotoStorage, Depends(get_photo_storage)],
    party_name: Annotated[str, Form(min_length=1, max_length=255)],
    order_date: Annotated[Optional[datetime.date], Form()] = None,
    delivery_date: Annotated[Optional[datetime.date], Form()] = None,
    karat: Annotated[str, Form(max_length=10)] = "22K",
    product_type: Annotated[str, Form(max_length=100)] = "",
    design_no: Annotated[str, Form(max_length=100)] = "",
    weight_required: Annotated[Optional[float], Form(ge=0)] = None,
    order_status: Annotated[OrderStatus, Form(alias="status")] = OrderStatus.RECEIVED,
    photos: Annotated[Optional[List[UploadFile]], File()] = None,
):
    if not party_name.strip():
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
            detail="Party name required.",
        )
    order_in = OrderCreate(
        party_name=party_name,
        order_date=order_date,
        delivery_date=delivery_date,
        karat=karat,
        product_type=product_type,
        design_no=design_no,
        weight_required=weight_required,
        status=order_status,
    )
    uploads = await read_photo_uploads(photos)
    return await service.create_order(remote, storage, order_in, uploads)


@router.patch("/{order_id}/status", response_model=Order)
async def update_order_status(order_id: str, status_in: OrderStatusUpdate, remote: RemoteStore):
    return await service.update_order_status(remote, order_id, status_in.status)


@router.get("/{order_id}/whatsapp", response_model=WhatsAppLink)
async def order_whatsapp_link(
    order_id: str,
    remote: RemoteStore,
    phone: Optional[str] = Query(None, description="Number to send to; defaults to the configured shop number"),
):
    order = await service.get_order(remote, order_id)
    return WhatsAppLink(url=service.whatsapp_link(order, phone))
