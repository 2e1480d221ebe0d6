"""
Receipt API endpoints.

GET    /api/receipts           — list receipts, latest date first
POST   /api/receipts           — store a confirmed receipt
GET    /api/receipts/summary   — totals, VAT estimate, average, chart
GET    /api/receipts/{id}      — get one receipt
DELETE /api/receipts/{id}      — delete receipt (idempotent)
POST   /api/extract            — run the vision extractor on one image
GET    /api/catalog            — categories and currencies for the form
"""
from __future__ import annotations

import logging

from fastapi import APIRouter, Depends, HTTPException
from sqlalchemy.orm import Session

from app.config import settings
from app.database import get_db
from app.pipeline.aggregate import summarize
from app.pipeline.extraction import ReceiptExtractor, strip_data_uri
from app.pipeline.store import (
    StorageError,
    create_receipt,
    delete_receipt,
    get_receipt,
    list_receipts,
)
from app.schemas import (
    CATEGORIES,
    CURRENCY_SYMBOLS,
    Catalog,
    CurrencyInfo,
    DeleteResult,
    ExtractRequest,
    ExtractResponse,
    ReceiptCreate,
    ReceiptCreated,
    ReceiptRecord,
    ReceiptSummary,
)

logger = logging.getLogger(__name__)
router = APIRouter()

_extractor: ReceiptExtractor | None = None


def get_extractor() -> ReceiptExtractor:
    global _extractor
    if _extractor is None:
        _extractor = ReceiptExtractor()
    return _extractor


def _check_image_size(image: str | None) -> None:
    # base64 expands by 4/3
    if image and len(strip_data_uri(image)) * 3 // 4 > settings.IMAGE_MAX_BYTES:
        raise HTTPException(status_code=413, detail="Image too large")


# ── GET /api/receipts ────────────────────────────────────────────────────
@router.get("/receipts", response_model=list[ReceiptRecord])
def list_all(db: Session = Depends(get_db)):
    try:
        receipts = list_receipts(db)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch receipts")
    logger.info("Found %d receipts in database", len(receipts))
    return receipts


# ── POST /api/receipts ───────────────────────────────────────────────────
@router.post("/receipts", response_model=ReceiptCreated)
def create(req: ReceiptCreate, db: Session = Depends(get_db)):
    _check_image_size(req.image_url)
    try:
        receipt_id = create_receipt(db, req)
    except StorageError as e:
        logger.warning("Rejected receipt: %s", e)
        raise HTTPException(status_code=500, detail=f"Failed to save receipt: {e}")
    return ReceiptCreated(id=receipt_id)


# ── GET /api/receipts/summary ────────────────────────────────────────────
@router.get("/receipts/summary", response_model=ReceiptSummary)
def summary(db: Session = Depends(get_db)):
    try:
        receipts = list_receipts(db)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch receipts")
    return summarize(receipts)


# ── GET /api/receipts/{receipt_id} ───────────────────────────────────────
@router.get("/receipts/{receipt_id}", response_model=ReceiptRecord)
def get_one(receipt_id: int, db: Session = Depends(get_db)):
    try:
        receipt = get_receipt(db, receipt_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to fetch receipt")
    if not receipt:
        logger.warning("Receipt not found: %s", receipt_id)
        raise HTTPException(status_code=404, detail="Receipt not found")
    return receipt


# ── DELETE /api/receipts/{receipt_id} ────────────────────────────────────
@router.delete("/receipts/{receipt_id}", response_model=DeleteResult)
def delete(receipt_id: int, db: Session = Depends(get_db)):
    try:
        existed = delete_receipt(db, receipt_id)
    except StorageError:
        raise HTTPException(status_code=500, detail="Failed to delete receipt")
    if existed:
        logger.info("Deleted receipt %s", receipt_id)
    return DeleteResult(success=True)


# ── POST /api/extract ────────────────────────────────────────────────────
@router.post("/extract", response_model=ExtractResponse)
async def extract(req: ExtractRequest, extractor: ReceiptExtractor = Depends(get_extractor)):
    _check_image_size(req.image)
    outcome = await extractor.extract(req.image)
    if outcome.ok:
        return ExtractResponse(ok=True, result=outcome.result)
    return ExtractResponse(ok=False, reason=outcome.reason)


# ── GET /api/catalog ─────────────────────────────────────────────────────
@router.get("/catalog", response_model=Catalog)
def catalog():
    return Catalog(
        categories=CATEGORIES,
        currencies=[CurrencyInfo(code=c, symbol=s) for c, s in CURRENCY_SYMBOLS.items()],
        default_currency=settings.DEFAULT_CURRENCY,
        default_category=settings.DEFAULT_CATEGORY,
    )
