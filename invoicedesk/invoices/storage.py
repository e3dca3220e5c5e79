"""
storage.py — Object storage client for rendered invoice PDFs.

Talks to a Supabase-style storage REST API:
    POST {storage_url}/object/{bucket}/{path}   (x-upsert: true)
    GET  {storage_url}/object/{bucket}/{path}

Objects are keyed "{consultant_id}/{invoice_no}.pdf"; re-sending overwrites.
"""
from __future__ import annotations

import logging

import httpx

from invoicedesk.errors import NotFoundError, UpstreamError
from invoicedesk.results import Err, Ok, Result

logger = logging.getLogger(__name__)


def invoice_pdf_path(consultant_id: str, invoice_no: str) -> str:
    return f"{consultant_id}/{invoice_no}.pdf"


class DocumentStore:
    def __init__(self, http: httpx.AsyncClient, base_url: str, bucket: str, service_key: str) -> None:
        self._http = http
        self._base_url = base_url.rstrip("/")
        self._bucket = bucket
        self._service_key = service_key

    def _url(self, path: str) -> str:
        return f"{self._base_url}/object/{self._bucket}/{path}"

    def _headers(self) -> dict[str, str]:
        return {"Authorization": f"Bearer {self._service_key}", "apikey": self._service_key}

    async def upload(self, path: str, data: bytes, content_type: str = "application/pdf") -> Result[str]:
        """Store (or overwrite) an object. Ok(path) on success."""
        headers = {**self._headers(), "Content-Type": content_type, "x-upsert": "true"}
        try:
            response = await self._http.post(self._url(path), content=data, headers=headers)
        except httpx.HTTPError as exc:
            logger.error("Storage upload failed path=%s: %s", path, type(exc).__name__)
            return Err(UpstreamError("Document storage is unavailable"))
        if response.status_code >= 300:
            logger.error("Storage upload rejected path=%s status=%d", path, response.status_code)
            return Err(UpstreamError(f"Document storage rejected upload ({response.status_code})"))
        logger.info("Stored document path=%s bytes=%d", path, len(data))
        return Ok(path)

    async def download(self, path: str) -> Result[bytes]:
        try:
            response = await self._http.get(self._url(path), headers=self._headers())
        except httpx.HTTPError as exc:
            logger.error("Storage download failed path=%s: %s", path, type(exc).__name__)
            return Err(UpstreamError("Document storage is unavailable"))
        if response.status_code in (400, 404):
            return Err(NotFoundError(f"Stored document {path} not found"))
        if response.status_code >= 300:
            logger.error("Storage download rejected path=%s status=%d", path, response.status_code)
            return Err(UpstreamError(f"Document storage rejected download ({response.status_code})"))
        return Ok(response.content)
