"""API routes for gold items: add, edit, status changes, photos, delete and cloud sync."""
from fastapi import APIRouter, Depends, File, Form, HTTPException, Query, UploadFile, status
from typing import Annotated, List, Optional

from .schemas import (
    Item,
    ItemCreate,
    ItemListResponse,
    ItemUpdate,
    NextIdResponse,
    PullResult,
    StatusChangeRequest,
    SyncResult,
)
from . import service
from ..auth.security import require_session
from ...remote.client import BaseRemoteStore
from ...remote.dependencies import get_photo_storage, get_remote_store, read_photo_uploads
from ...remote.storage import BasePhotoStorage

router = APIRouter(
    prefix="/items",
    tags=["Items"],
    dependencies=[Depends(require_session)],
    responses={404: {"description": "Not found"}},
)

RemoteStore = Annotated[BaseRemoteStore, Depends(get_remote_store)]
PhotoStorage = Annotated[BasePhotoStorage, Depends(get_photo_storage)]


@router.get(
    "/",
    response_model=ItemListResponse,
    summary="List the local item collection",
)
async def list_items(
    q: Optional[str] = Query(None, description="Filter by item id or design number"),
):
    return await service.list_items(q)


@router.get(
    "/next-id",
    response_model=NextIdResponse,
    summary="Preview the id the next new piece will get",
)
async def next_item_id():
    return NextIdResponse(item_id=await service.preview_next_id())


@router.post(
    "/refresh",
    response_model=PullResult,
    summary="Pull from the cloud and merge into the local collection",
)
async def refresh_from_cloud(remote: RemoteStore):
    return await service.pull_and_merge(remote)


@router.get(
    "/lookup/{scanned}",
    response_model=Item,
    summary="Find a scanned or typed item id (cloud first, local fallback)",
)
async def lookup_item(scanned: str, remote: RemoteStore):
    return await service.find_item(remote, scanned)


@router.post(
    "/",
    response_model=SyncResult,
    status_code=status.HTTP_201_CREATED,
    summary="Add a new piece",
)
async def create_item(
    remote: RemoteStore,
    storage: PhotoStorage,
    design_no: Annotated[str, Form(max_length=100)] = "",
    category: Annotated[str, Form(max_length=100)] = "",
    karat: Annotated[str, Form(max_length=10)] = "22K",
    gross_wt: Annotated[str, Form()] = "",
    less_wt: Annotated[str, Form()] = "",
    notes: Annotated[str, Form(max_length=1000)] = "",
    actor: Annotated[Optional[str], Form()] = None,
    place: Annotated[Optional[str], Form()] = None,
    photos: Annotated[Optional[List[UploadFile]], File()] = None,
):
    item_in = ItemCreate(
        design_no=design_no,
        category=category,
        karat=karat,
        gross_wt=gross_wt,
        less_wt=less_wt,
        notes=notes,
    )
    uploads = await read_photo_uploads(photos)
    return await service.create_item(remote, storage, item_in, uploads, actor, place)


@router.put(
    "/{item_id}",
    response_model=SyncResult,
    summary="Edit a piece",
)
async def edit_item(
    item_id: str,
    item_in: ItemUpdate,
    remote: RemoteStore,
    actor: Optional[str] = Query(None),
    place: Optional[str] = Query(None),
):
    return await service.edit_item(remote, item_id.upper(), item_in, actor, place)


@router.post(
    "/{item_id}/status",
    response_model=SyncResult,
    summary="Mark a piece IN_STOCK, SOLD or RETURNED",
)
async def change_status(item_id: str, request: StatusChangeRequest, remote: RemoteStore):
    return await service.change_status(remote, item_id.upper(), request)


@router.post(
    "/{item_id}/photos",
    response_model=SyncResult,
    summary="Upload more photos for a piece",
)
async def add_photos(
    item_id: str,
    remote: RemoteStore,
    storage: PhotoStorage,
    photos: Annotated[List[UploadFile], File()],
):
    uploads = await read_photo_uploads(photos)
    return await service.add_photos(remote, storage, item_id.upper(), uploads)


@router.delete(
    "/{item_id}/photos",
    response_model=SyncResult,
    summary="Remove one photo from a piece",
)
async def remove_photo(
    item_id: str,
    remote: RemoteStore,
    url: str = Query(..., description="URL of the photo to remove"),
):
    return await service.remove_photo(remote, item_id.upper(), url)


@router.delete(
    "/{item_id}",
    response_model=SyncResult,
    summary="Delete a piece (local + cloud)",
)
async def delete_item(
    item_id: str,
    remote: RemoteStore,
    actor: Optional[str] = Query(None),
    place: Optional[str] = Query(None),
):
    return await service.delete_item(remote, item_id.upper(), actor, place)


@router.delete(
    "/",
    response_model=SyncResult,
    summary="Delete ALL items (local + cloud)",
)
async def wipe_all_items(
    remote: RemoteStore,
    confirm: bool = Query(False, description="Must be true; this cannot be undone"),
):
    if not confirm:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail="Pass confirm=true to delete every item.",
        )
    return await service.wipe_all(remote)
