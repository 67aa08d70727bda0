"""Photo storage: given bytes, returns a public URL or raises RemoteError."""
from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Optional
import logging

import httpx

from .client import RemoteError

logger = logging.getLogger(__name__)


@dataclass
class PhotoUpload:
    filename: str
    data: bytes
    content_type: str = "image/jpeg"


class BasePhotoStorage(ABC):
    @abstractmethod
    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        """Stores `data` at `path` (overwriting) and returns its public URL."""

    async def aclose(self) -> None:
        pass


class SupabasePhotoStorage(BasePhotoStorage):
    """
    Storage bucket client

    Upload: POST {REMOTE_URL}/storage/v1/object/{bucket}/{path}
    Public URL: {REMOTE_URL}/storage/v1/object/public/{bucket}/{path}
    """

    def __init__(self, base_url: str, api_key: str, bucket: str, timeout: float = 30.0, transport: Optional[httpx.AsyncBaseTransport] = None):
        self.base_url = base_url.rstrip("/")
        self.bucket = bucket
        self._client = httpx.AsyncClient(
            base_url=f"{self.base_url}/storage/v1",
            headers={"apikey": api_key, "Authorization": f"Bearer {api_key}"},
            timeout=timeout,
            transport=transport,
        )

    def public_url(self, path: str) -> str:
        return f"{self.base_url}/storage/v1/object/public/{self.bucket}/{path}"

    async def upload(self, path: str, data: bytes, content_type: str = "image/jpeg") -> str:
        try:
            response = await self._client.post(
                f"/object/{self.bucket}/{path}",
                content=data,
                headers={"Content-Type": content_type, "x-upsert": "true"},
            )
        except httpx.HTTPError as e:
            logger.warning(f"Upload of {path} failed: {e}")
            raise RemoteError(f"upload {path} failed: {e}") from e

        if response.is_error:
            logger.warning(f"Upload of {path} returned {response.status_code}: {response.text}")
            raise RemoteError(f"upload {path} returned {response.status_code}", status_code=response.status_code)
        return self.public_url(path)

    async def aclose(self) -> None:
        await self._client.aclose()
