"""
Persistence gateway used by the capture workflow.

The workflow only sees ``ReceiptGateway``: list / create / delete, all
awaitable, all failing with ``GatewayError``. ``HttpReceiptGateway`` talks to
the ``/api/receipts`` surface of this service; ``StoreGateway`` drives the
SQL store in-process.
"""
from __future__ import annotations

import asyncio
import logging
from typing import Callable, Optional, Protocol

import httpx
from pydantic import ValidationError
from sqlalchemy.orm import Session

from app.config import settings
from app.pipeline.store import (
    StorageError,
    create_receipt,
    delete_receipt,
    list_receipts,
)
from app.schemas import ReceiptCreate, ReceiptRecord

logger = logging.getLogger(__name__)


class GatewayError(Exception):
    """A persistence call failed; the caller keeps its input for a retry."""


class ReceiptGateway(Protocol):
    async def list_receipts(self) -> list[ReceiptRecord]: ...

    async def create_receipt(self, record: ReceiptCreate) -> int: ...

    async def delete_receipt(self, receipt_id: int) -> bool: ...


# ---------------------------------------------------------------------------
# HTTP
# ---------------------------------------------------------------------------

class HttpReceiptGateway:
    """``ReceiptGateway`` over the JSON API with ``httpx``."""

    def __init__(
        self,
        base_url: Optional[str] = None,
        client: Optional[httpx.AsyncClient] = None,
        timeout: float = 15.0,
    ):
        self._client = client or httpx.AsyncClient(
            base_url=base_url or settings.API_BASE_URL,
            timeout=timeout,
        )

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _request(self, method: str, path: str, **kwargs) -> httpx.Response:
        try:
            resp = await self._client.request(method, path, **kwargs)
        except httpx.HTTPError as e:
            logger.warning("%s %s failed: %s", method, path, e)
            raise GatewayError("Network error. Please check your connection.") from e
        return resp

    @staticmethod
    def _error_detail(resp: httpx.Response, fallback: str) -> str:
        try:
            body = resp.json()
        except ValueError:
            return fallback
        if isinstance(body, dict):
            detail = body.get("detail") or body.get("error")
            if isinstance(detail, str):
                return detail
        return fallback

    async def list_receipts(self) -> list[ReceiptRecord]:
        resp = await self._request("GET", "/api/receipts")
        if resp.status_code >= 400:
            raise GatewayError(self._error_detail(resp, "Failed to fetch receipts"))
        data = resp.json()
        if not isinstance(data, list):
            raise GatewayError("Failed to fetch receipts: unexpected response")
        try:
            return [ReceiptRecord.model_validate(item) for item in data]
        except ValidationError as e:
            raise GatewayError("Failed to fetch receipts: unexpected response") from e

    async def create_receipt(self, record: ReceiptCreate) -> int:
        resp = await self._request(
            "POST", "/api/receipts", json=record.model_dump(exclude_none=True)
        )
        if resp.status_code >= 400:
            raise GatewayError(self._error_detail(resp, "Failed to save receipt"))
        return int(resp.json()["id"])

    async def delete_receipt(self, receipt_id: int) -> bool:
        resp = await self._request("DELETE", f"/api/receipts/{receipt_id}")
        if resp.status_code == 404:
            return True
        if resp.status_code >= 400:
            raise GatewayError(self._error_detail(resp, "Failed to delete receipt"))
        return True


# ---------------------------------------------------------------------------
# In-process
# ---------------------------------------------------------------------------

class StoreGateway:
    """``ReceiptGateway`` over the SQL store, one session per call."""

    def __init__(self, session_factory: Callable[[], Session]):
        self._session_factory = session_factory

    async def _run(self, fn, *args):
        def _call():
            db = self._session_factory()
            try:
                return fn(db, *args)
            finally:
                db.close()

        try:
            return await asyncio.to_thread(_call)
        except StorageError as e:
            raise GatewayError(str(e)) from e

    async def list_receipts(self) -> list[ReceiptRecord]:
        return await self._run(list_receipts)

    async def create_receipt(self, record: ReceiptCreate) -> int:
        return await self._run(create_receipt, record)

    async def delete_receipt(self, receipt_id: int) -> bool:
        await self._run(delete_receipt, receipt_id)
        return True
