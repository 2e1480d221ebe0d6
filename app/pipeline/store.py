"""
SQL-backed receipt store.

Each function is one unit of work against the session it is given: a failed
``create_receipt`` rolls back and leaves nothing behind.
"""
from __future__ import annotations

import logging
import math
import re
from datetime import date

from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session

from app.config import settings
from app.models.receipt import ReceiptModel
from app.schemas import CURRENCY_SYMBOLS, ReceiptCreate, ReceiptRecord

logger = logging.getLogger(__name__)

_ISO_DATE = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class StorageError(Exception):
    """A record could not be stored (bad input or unreachable store)."""


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

def _check_date(value: str | None) -> str:
    if not value or not _ISO_DATE.match(value.strip()):
        raise StorageError(f"date must be YYYY-MM-DD, got {value!r}")
    try:
        date.fromisoformat(value.strip())
    except ValueError:
        raise StorageError(f"date is not a calendar date: {value!r}") from None
    return value.strip()


def _check_currency(value: str | None) -> str:
    code = (value or "").strip().upper()
    if not code:
        return settings.DEFAULT_CURRENCY
    if code not in CURRENCY_SYMBOLS and code != settings.DEFAULT_CURRENCY:
        raise StorageError(f"unknown currency code: {value!r}")
    return code


def validate_candidate(candidate: ReceiptCreate) -> dict:
    """Return storable column values for *candidate* or raise ``StorageError``."""
    merchant = (candidate.merchant or "").strip()
    if not merchant:
        raise StorageError("merchant is required")

    if candidate.amount is None:
        raise StorageError("amount is required")
    if not math.isfinite(candidate.amount):
        raise StorageError("amount must be a finite number")
    if candidate.amount < 0:
        raise StorageError("amount must not be negative")

    if candidate.tax is not None:
        if not math.isfinite(candidate.tax):
            raise StorageError("tax must be a finite number")
        if candidate.tax < 0:
            raise StorageError("tax must not be negative")
        if candidate.tax > candidate.amount:
            raise StorageError("tax must not exceed amount")

    category = (candidate.category or "").strip()
    if not category:
        raise StorageError("category is required")

    return {
        "merchant": merchant,
        "date": _check_date(candidate.date),
        "amount": candidate.amount,
        "tax": candidate.tax,
        "currency": _check_currency(candidate.currency),
        "category": category,
        "image_url": candidate.image_url,
    }


# ---------------------------------------------------------------------------
# Operations
# ---------------------------------------------------------------------------

def list_receipts(db: Session) -> list[ReceiptRecord]:
    """All receipts, latest receipt date first, newer inserts first on ties."""
    try:
        rows = (
            db.query(ReceiptModel)
            .order_by(ReceiptModel.date.desc(), ReceiptModel.id.desc())
            .all()
        )
    except SQLAlchemyError as e:
        logger.exception("Failed to fetch receipts")
        raise StorageError("store unavailable") from e
    return [ReceiptRecord.model_validate(r) for r in rows]


def get_receipt(db: Session, receipt_id: int) -> ReceiptRecord | None:
    try:
        row = db.query(ReceiptModel).filter(ReceiptModel.id == receipt_id).first()
    except SQLAlchemyError as e:
        logger.exception("Failed to fetch receipt %s", receipt_id)
        raise StorageError("store unavailable") from e
    if not row:
        return None
    return ReceiptRecord.model_validate(row)


def create_receipt(db: Session, candidate: ReceiptCreate) -> int:
    values = validate_candidate(candidate)
    row = ReceiptModel(**values)
    try:
        db.add(row)
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to store receipt for %s", values["merchant"])
        raise StorageError("store unavailable") from e
    logger.info("Stored receipt %s (%s %s)", row.id, values["amount"], values["currency"])
    return row.id


def delete_receipt(db: Session, receipt_id: int) -> bool:
    """Delete by id. Returns whether a row existed; absence is not an error."""
    try:
        deleted = (
            db.query(ReceiptModel)
            .filter(ReceiptModel.id == receipt_id)
            .delete(synchronize_session=False)
        )
        db.commit()
    except SQLAlchemyError as e:
        db.rollback()
        logger.exception("Failed to delete receipt %s", receipt_id)
        raise StorageError("store unavailable") from e
    if not deleted:
        logger.info("Receipt %s already gone", receipt_id)
    return bool(deleted)
