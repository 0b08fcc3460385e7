import logging
from contextlib import asynccontextmanager
from typing import Optional

import httpx
from pydantic import ValidationError

from .errors import UploadError
from .schemas import UploadResult, UploadTicket

logger = logging.getLogger(__name__)


class StorageUploader:
    """Two-step upload to object storage: ask the signer function for a
    presigned URL, then PUT the bytes straight to it."""

    def __init__(self, signer_url: str, api_key: Optional[str] = None,
                 client: Optional[httpx.AsyncClient] = None, timeout: float = 10.0):
        self.signer_url = signer_url
        self.api_key = api_key
        self.timeout = timeout
        self._client = client

    @asynccontextmanager
    async def _http(self):
        if self._client is not None:
            yield self._client
        else:
            async with httpx.AsyncClient(timeout=self.timeout) as client:
                yield client

    def _signer_headers(self):
        if not self.api_key:
            return {}
        return {"apikey": self.api_key, "Authorization": f"Bearer {self.api_key}"}

    async def sign(self, filename: str, file_type: str, folder: str = "uploads") -> UploadTicket:
        if not self.signer_url:
            raise UploadError("Failed to get upload URL: STORAGE_SIGNER_URL is not configured")
        body = {"filename": filename, "fileType": file_type, "folder": folder}
        async with self._http() as client:
            try:
                response = await client.post(self.signer_url, json=body, headers=self._signer_headers())
            except httpx.HTTPError as e:
                logger.error("Upload signer unreachable: %s", e)
                raise UploadError(f"Failed to get upload URL: {e}") from e

        if response.is_error:
            logger.error("Upload signer returned %s: %s", response.status_code, response.text)
            raise UploadError(f"Failed to get upload URL: {response.status_code} {response.reason_phrase}")
        try:
            return UploadTicket.model_validate(response.json())
        except (ValueError, ValidationError) as e:
            logger.error("Invalid upload signer response: %s", response.text)
            raise UploadError("Invalid response from upload signer") from e

    async def upload(self, data: bytes, filename: str, file_type: str, folder: str = "uploads") -> UploadResult:
        ticket = await self.sign(filename, file_type, folder)
        async with self._http() as client:
            try:
                response = await client.put(ticket.upload_url, content=data, headers={"Content-Type": file_type})
            except httpx.HTTPError as e:
                logger.error("Storage upload of %s failed: %s", filename, e)
                raise UploadError(f"Failed to upload to storage: {e}") from e

        if response.is_error:
            logger.error("Storage upload of %s failed: %s", filename, response.text)
            raise UploadError(f"Failed to upload to storage: {response.reason_phrase}")

        logger.info("Uploaded %s to %s", filename, ticket.public_url)
        return UploadResult(public_url=ticket.public_url, object_key=ticket.object_key)
