import logging
from contextlib import asynccontextmanager
from pathlib import PurePosixPath
from typing import Callable, List, Optional, Tuple

from fastapi import HTTPException, status

from ...common.models import generate_ksuid, utc_now_iso
from ...core.config import DEFAULT_ACTOR, DEFAULT_PLACE, REMOTE_PULL_LIMIT
from ...remote.client import BaseRemoteStore, RemoteError
from ...remote.storage import BasePhotoStorage, PhotoUpload
from .ids import next_item_id, parse_item_id
from .local_store import clear_items, load_items, save_items
from .reconcile import (
    ordered,
    reconcile,
    remove_local,
    replace_local,
    status_counts,
    upsert_local,
)
from .schemas import (
    STATUS_EVENT_ACTIONS,
    Item,
    ItemCreate,
    ItemListResponse,
    ItemStatus,
    ItemUpdate,
    PullResult,
    StatusChangeRequest,
    SyncOutcome,
    SyncResult,
)
from .weights import compute_net_wt

logger = logging.getLogger(__name__)


class BusyGuard:
    """Refuses a second submission of the same form while one is in flight."""

    def __init__(self, name: str):
        self.name = name
        self._busy = False

    @asynccontextmanager
    async def hold(self):
        if self._busy:
            raise HTTPException(
                status_code=status.HTTP_409_CONFLICT,
                detail=f"{self.name} already in progress, try again.",
            )
        self._busy = True
        try:
            yield
        finally:
            self._busy = False


# Allocation reads the local snapshot; only one create may run at a time.
create_guard = BusyGuard("Save")


async def log_event(
    remote: BaseRemoteStore,
    item_id: str,
    action: str,
    actor: Optional[str] = None,
    place: Optional[str] = None,
) -> None:
    """Appends to the remote audit log. Failures are logged and ignored."""
    try:
        await remote.insert_event(
            {
                "item_id": item_id,
                "action": action,
                "actor": actor or DEFAULT_ACTOR,
                "place": place or DEFAULT_PLACE,
                "created_at": utc_now_iso(),
            }
        )
    except RemoteError as e:
        logger.warning(f"Event {action} for {item_id} not recorded: {e}")


def _rows_to_items(rows: List[dict]) -> List[Item]:
    items = []
    for row in rows:
        if not row.get("item_id"):
            logger.warning(f"Ignoring remote row without item_id: {row}")
            continue
        items.append(Item.from_remote_row(row))
    return items


def _find(items: List[Item], item_id: str) -> Optional[Item]:
    return next((x for x in items if x.item_id == item_id), None)


def _put(items: List[Item], item: Item) -> List[Item]:
    # Keeps the entry's position; re-adds it if it vanished meanwhile.
    if _find(items, item.item_id) is None:
        return upsert_local(items, item)
    return replace_local(items, item)


def _photo_path(item_id: str, photo: PhotoUpload) -> str:
    suffix = PurePosixPath(photo.filename or "").suffix.lower() or ".jpg"
    return f"items/{item_id}-{generate_ksuid()}{suffix}"


# --- Reads ---
async def list_items(query: Optional[str] = None) -> ItemListResponse:
    """
    Lists the local collection, optionally filtered by item id or design number.

    Args:
        query: Case-insensitive substring to look for.

    Returns:
        Matching items newest first, with status counts over the whole collection.
    """
    items = ordered(await load_items())
    counts = status_counts(items)
    q = (query or "").strip().lower()
    if q:
        items = [x for x in items if q in x.item_id.lower() or q in x.design_no.lower()]
    return ItemListResponse(items=items, total=len(items), counts=counts)


async def preview_next_id() -> str:
    return next_item_id(await load_items())


async def pull_and_merge(
    remote: BaseRemoteStore, is_cancelled: Optional[Callable[[], bool]] = None
) -> Optional[PullResult]:
    """
    Pulls the newest remote rows and merges them into the local collection.

    Only the most recent REMOTE_PULL_LIMIT rows are read; an item changed on
    another device beyond that page and unknown here stays invisible until it
    is looked up directly (see `find_item`).

    Args:
        remote: Remote store client.
        is_cancelled: Checked once the remote answers; when it returns True
            the result is dropped and nothing is persisted.

    Returns:
        The pull result, or None when the pull was cancelled.
    """
    try:
        rows = await remote.fetch_items(REMOTE_PULL_LIMIT)
    except RemoteError as e:
        logger.warning(f"Pull failed, keeping local data: {e}")
        return PullResult(
            outcome=SyncOutcome.FAILED,
            message="Cloud sync failed, showing local data.",
            items=ordered(await load_items()),
        )

    if is_cancelled is not None and is_cancelled():
        logger.info("Pull finished after its consumer went away, result dropped")
        return None

    # Read local only now so writes made while the pull was in flight are kept.
    local = await load_items()
    merged = reconcile(local, _rows_to_items(rows))
    await save_items(merged)
    logger.info(f"Pulled {len(rows)} remote rows, {len(merged)} items after merge")
    return PullResult(
        outcome=SyncOutcome.SYNCED,
        message="Cloud sync done.",
        items=merged,
        pulled=len(rows),
    )


async def find_item(remote: BaseRemoteStore, scanned: str) -> Item:
    """
    Looks up a scanned or typed item id, remote first, local as fallback.

    A remotely found item is merged into the local collection under the
    usual last-write-wins rule, so the returned copy is whichever is newer.
    """
    item_id = parse_item_id(scanned)
    if item_id is None:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST,
            detail=f"'{scanned}' is not an item id.",
        )

    row = None
    try:
        row = await remote.get_item(item_id)
    except RemoteError as e:
        logger.warning(f"Remote lookup of {item_id} failed, trying local: {e}")

    local = await load_items()
    if row is not None:
        merged = reconcile(local, [Item.from_remote_row(row)])
        await save_items(merged)
        return _find(merged, item_id)

    found = _find(local, item_id)
    if found is None:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Item {item_id} not found (cloud + local).",
        )
    return found


async def _get_known_item(remote: BaseRemoteStore, item_id: str) -> Item:
    local = _find(await load_items(), item_id)
    if local is not None:
        return local
    return await find_item(remote, item_id)


# --- Pushes ---
async def _upload_photos(
    storage: BasePhotoStorage, item_id: str, photos: List[PhotoUpload]
) -> Tuple[List[str], int]:
    urls, failed = [], 0
    for photo in photos:
        try:
            urls.append(await storage.upload(_photo_path(item_id, photo), photo.data, photo.content_type))
        except RemoteError as e:
            failed += 1
            logger.warning(f"Photo {photo.filename!r} for {item_id} not uploaded: {e}")
    return urls, failed


async def _attach_photos(
    remote: BaseRemoteStore,
    storage: BasePhotoStorage,
    item_id: str,
    photos: List[PhotoUpload],
) -> Tuple[Optional[Item], int, int, bool]:
    """Uploads photos and appends their URLs to the item, local then remote.

    Returns the updated item (None if nothing uploaded), uploaded and failed
    counts, and whether the remote photo list update went through.
    """
    urls, failed = await _upload_photos(storage, item_id, photos)
    if not urls:
        return None, 0, failed, True

    items = await load_items()
    current = _find(items, item_id)
    if current is None:
        # Deleted while uploading; nothing left to attach to.
        return None, len(urls), failed, True
    updated = current.model_copy(
        update={"image_urls": current.image_urls + urls, "updated_at": utc_now_iso()}
    )
    await save_items(replace_local(items, updated))

    try:
        await remote.update_item(
            item_id,
            {
                "image_url": updated.primary_image_url,
                "image_urls": updated.image_urls,
                "updated_at": updated.updated_at,
            },
        )
    except RemoteError:
        return updated, len(urls), failed, False
    return updated, len(urls), failed, True


def _photo_message(item_id: str, uploaded: int, failed: int) -> str:
    if failed and not uploaded:
        return f"Saved, photo upload failed, item has no new photo ({item_id})"
    if failed:
        return f"Saved, {failed} of {uploaded + failed} photos failed to upload ({item_id})"
    return f"Saved + {uploaded} photo(s) uploaded ({item_id})"


async def create_item(
    remote: BaseRemoteStore,
    storage: BasePhotoStorage,
    item_in: ItemCreate,
    photos: Optional[List[PhotoUpload]] = None,
    actor: Optional[str] = None,
    place: Optional[str] = None,
) -> SyncResult:
    """
    Creates a new piece with a freshly allocated id.

    The item is persisted locally before the remote upsert is attempted.
    Photos are uploaded only after the row is stored remotely; a photo
    failure never turns a saved row into a failed save.

    Args:
        remote: Remote store client.
        storage: Photo storage client.
        item_in: Form values.
        photos: Optional photos in upload order.
        actor: Who is adding the piece, for the audit log.
        place: Where, for the audit log.

    Returns:
        The sync result with the created item.
    """
    photos = photos or []
    async with create_guard.hold():
        items = await load_items()
        now = utc_now_iso()
        less_wt = item_in.less_wt.strip() or "0"
        item = Item(
            item_id=next_item_id(items),
            design_no=item_in.design_no.strip(),
            category=item_in.category.strip(),
            karat=item_in.karat.strip(),
            gross_wt=item_in.gross_wt.strip(),
            less_wt=less_wt,
            net_wt=compute_net_wt(item_in.gross_wt, less_wt),
            notes=item_in.notes.strip(),
            status=ItemStatus.IN_STOCK,
            created_at=now,
            updated_at=now,
        )
        await save_items(upsert_local(items, item))
        logger.info(f"Created {item.item_id} locally")

        try:
            await remote.upsert_item(item.to_remote_row())
        except RemoteError:
            return SyncResult(
                outcome=SyncOutcome.PENDING,
                message=f"Saved locally, cloud sync failed ({item.item_id})",
                item=item,
            )
        await log_event(remote, item.item_id, "CREATE", actor, place)

        if not photos:
            return SyncResult(
                outcome=SyncOutcome.SYNCED,
                message=f"Cloud saved ({item.item_id})",
                item=item,
            )

        updated, uploaded, failed, photo_synced = await _attach_photos(remote, storage, item.item_id, photos)
        if not photo_synced:
            return SyncResult(
                outcome=SyncOutcome.PENDING,
                message=f"Saved, photos kept locally, cloud sync failed ({item.item_id})",
                item=updated,
                photos_uploaded=uploaded,
                photos_failed=failed,
            )
        return SyncResult(
            outcome=SyncOutcome.SYNCED,
            message=_photo_message(item.item_id, uploaded, failed),
            item=updated or item,
            photos_uploaded=uploaded,
            photos_failed=failed,
        )


async def edit_item(
    remote: BaseRemoteStore,
    item_id: str,
    item_in: ItemUpdate,
    actor: Optional[str] = None,
    place: Optional[str] = None,
) -> SyncResult:
    """
    Edits the descriptive fields and weights of a piece.

    Net weight is recomputed from the resulting gross and less weights.
    """
    update_data = item_in.model_dump(exclude_unset=True, exclude_none=True)
    if not update_data:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No fields for update"
        )

    existing = await _get_known_item(remote, item_id)
    update_data = {key: value.strip() for key, value in update_data.items()}
    if "less_wt" in update_data and not update_data["less_wt"]:
        update_data["less_wt"] = "0"
    gross_wt = update_data.get("gross_wt", existing.gross_wt)
    less_wt = update_data.get("less_wt", existing.less_wt)
    updated = Item.model_validate(
        {
            **existing.model_dump(),
            **update_data,
            "net_wt": compute_net_wt(gross_wt, less_wt),
            "updated_at": utc_now_iso(),
        }
    )

    items = await load_items()
    await save_items(_put(items, updated))

    try:
        await remote.upsert_item(updated.to_remote_row())
    except RemoteError:
        return SyncResult(
            outcome=SyncOutcome.PENDING,
            message=f"Updated locally, cloud sync failed ({item_id})",
            item=updated,
        )
    await log_event(remote, item_id, "EDIT", actor, place)
    return SyncResult(outcome=SyncOutcome.SYNCED, message=f"Updated ({item_id})", item=updated)


async def change_status(
    remote: BaseRemoteStore, item_id: str, request: StatusChangeRequest
) -> SyncResult:
    """
    Moves a piece to IN_STOCK, SOLD or RETURNED.

    Any status may follow any other; each move stamps `updated_at`.
    """
    existing = await _get_known_item(remote, item_id)
    updated = existing.model_copy(update={"status": request.status, "updated_at": utc_now_iso()})

    items = await load_items()
    await save_items(_put(items, updated))

    try:
        await remote.update_item(
            item_id, {"status": updated.status.value, "updated_at": updated.updated_at}
        )
    except RemoteError:
        return SyncResult(
            outcome=SyncOutcome.PENDING,
            message=f"Cloud sync failed ({item_id}), local updated only.",
            item=updated,
        )
    await log_event(remote, item_id, STATUS_EVENT_ACTIONS[updated.status], request.actor, request.place)
    return SyncResult(
        outcome=SyncOutcome.SYNCED,
        message=f"Status synced ({item_id} -> {updated.status.value})",
        item=updated,
    )


async def add_photos(
    remote: BaseRemoteStore,
    storage: BasePhotoStorage,
    item_id: str,
    photos: List[PhotoUpload],
) -> SyncResult:
    """Uploads more photos for a piece; new URLs are appended to the existing list."""
    if not photos:
        raise HTTPException(
            status_code=status.HTTP_400_BAD_REQUEST, detail="No photos given"
        )
    existing = await _get_known_item(remote, item_id)
    updated, uploaded, failed, photo_synced = await _attach_photos(remote, storage, item_id, photos)

    if updated is None:
        return SyncResult(
            outcome=SyncOutcome.FAILED,
            message=f"Photo upload failed ({item_id})",
            item=existing,
            photos_failed=failed,
        )
    if not photo_synced:
        return SyncResult(
            outcome=SyncOutcome.PENDING,
            message=f"Photos kept locally, cloud sync failed ({item_id})",
            item=updated,
            photos_uploaded=uploaded,
            photos_failed=failed,
        )
    await log_event(remote, item_id, "PHOTO_ADD")
    return SyncResult(
        outcome=SyncOutcome.SYNCED,
        message=_photo_message(item_id, uploaded, failed),
        item=updated,
        photos_uploaded=uploaded,
        photos_failed=failed,
    )


async def remove_photo(remote: BaseRemoteStore, item_id: str, url: str) -> SyncResult:
    existing = await _get_known_item(remote, item_id)
    if url not in existing.image_urls:
        raise HTTPException(
            status_code=status.HTTP_404_NOT_FOUND,
            detail=f"Photo not found on item {item_id}",
        )
    updated = existing.model_copy(
        update={
            "image_urls": [u for u in existing.image_urls if u != url],
            "updated_at": utc_now_iso(),
        }
    )
    items = await load_items()
    await save_items(_put(items, updated))

    try:
        await remote.update_item(
            item_id,
            {
                "image_url": updated.primary_image_url,
                "image_urls": updated.image_urls,
                "updated_at": updated.updated_at,
            },
        )
    except RemoteError:
        return SyncResult(
            outcome=SyncOutcome.PENDING,
            message=f"Photo removed locally, cloud sync failed ({item_id})",
            item=updated,
        )
    await log_event(remote, item_id, "PHOTO_REMOVE")
    return SyncResult(outcome=SyncOutcome.SYNCED, message=f"Photo removed ({item_id})", item=updated)


async def delete_item(
    remote: BaseRemoteStore,
    item_id: str,
    actor: Optional[str] = None,
    place: Optional[str] = None,
) -> SyncResult:
    """
    Deletes a piece locally and remotely.

    If the remote delete fails the row is still in the cloud and will come
    back on the next pull; the result says so. An id known neither locally
    nor in the cloud is a 404.
    """
    items = await load_items()
    if _find(items, item_id) is None:
        try:
            row = await remote.get_item(item_id)
        except RemoteError:
            return SyncResult(
                outcome=SyncOutcome.FAILED,
                message=f"{item_id} is not on this device and the cloud is unreachable, nothing deleted.",
            )
        if row is None:
            raise HTTPException(
                status_code=status.HTTP_404_NOT_FOUND,
                detail=f"Item {item_id} not found (cloud + local).",
            )
    await save_items(remove_local(items, item_id))

    try:
        await remote.delete_item(item_id)
    except RemoteError:
        return SyncResult(
            outcome=SyncOutcome.FAILED,
            message=f"Local deleted; cloud delete failed ({item_id}), it will return on the next refresh.",
        )
    await log_event(remote, item_id, "DELETE", actor, place)
    return SyncResult(outcome=SyncOutcome.SYNCED, message=f"Deleted {item_id} (local + cloud)")


async def wipe_all(remote: BaseRemoteStore) -> SyncResult:
    """Clears every item, locally and in the cloud."""
    await clear_items()
    logger.warning("Local item collection wiped")
    try:
        await remote.delete_all_items()
    except RemoteError:
        return SyncResult(
            outcome=SyncOutcome.FAILED,
            message="Local cleared. Cloud delete failed.",
        )
    return SyncResult(outcome=SyncOutcome.SYNCED, message="All items deleted (local + cloud)")
