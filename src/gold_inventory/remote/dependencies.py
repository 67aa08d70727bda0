"""FastAPI dependencies handing out the clients created in the app lifespan."""
from typing import List, Optional

from fastapi import Request, UploadFile

from .client import BaseRemoteStore
from .storage import BasePhotoStorage, PhotoUpload


def get_remote_store(request: Request) -> BaseRemoteStore:
    return request.app.state.remote_store


def get_photo_storage(request: Request) -> BasePhotoStorage:
    return request.app.state.photo_storage


async def read_photo_uploads(photos: Optional[List[UploadFile]]) -> List[PhotoUpload]:
    """Reads multipart photo parts into memory; empty parts are dropped."""
    uploads = []
    for photo in photos or []:
        data = await photo.read()
        if not data:
            continue
        uploads.append(
            PhotoUpload(
                filename=photo.filename or "photo.jpg",
                data=data,
                content_type=photo.content_type or "image/jpeg",
            )
        )
    return uploads
