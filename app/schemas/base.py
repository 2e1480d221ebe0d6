"""
Canonical JSON shapes for the receipt capture workflow.

Every stage (extraction, review form, storage, reporting) produces and
consumes these Pydantic v2 models.
"""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field


# ---------------------------------------------------------------------------
# Catalog
# ---------------------------------------------------------------------------

CATEGORIES: list[str] = [
    "Food & Drinks",
    "Travel",
    "Supplies",
    "Entertainment",
    "Other",
]

CURRENCY_SYMBOLS: dict[str, str] = {
    "USD": "$",
    "EUR": "€",
    "GBP": "£",
    "JPY": "¥",
    "CAD": "C$",
    "AUD": "A$",
    "INR": "₹",
}

FALLBACK_SYMBOL = "$"


# ---------------------------------------------------------------------------
# Extraction (model output, before review)
# ---------------------------------------------------------------------------

class ExtractionResult(BaseModel):
    """The model's best guess for one captured image."""
    merchant: str
    date: str = Field(..., description="ISO date or human readable date from receipt")
    amount: float
    tax: Optional[float] = Field(None, description="Tax amount if listed on the receipt")
    currency: str
    category: str


# ---------------------------------------------------------------------------
# Review form (mutable, client side)
# ---------------------------------------------------------------------------

class FormState(BaseModel):
    merchant: str = ""
    date: str = ""
    amount: float = 0.0
    tax: Optional[float] = None
    currency: str = ""
    category: str = ""


# ---------------------------------------------------------------------------
# Stored receipt
# ---------------------------------------------------------------------------

class ReceiptCreate(BaseModel):
    """Candidate record. Invariants are enforced by the store, not here."""
    merchant: Optional[str] = None
    date: Optional[str] = None
    amount: Optional[float] = None
    tax: Optional[float] = None
    currency: Optional[str] = None
    category: Optional[str] = None
    image_url: Optional[str] = None


class ReceiptRecord(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    merchant: str
    date: str
    amount: float
    tax: Optional[float] = None
    currency: str
    category: str
    image_url: Optional[str] = None
    created_at: Optional[datetime] = None


# ---------------------------------------------------------------------------
# Reporting
# ---------------------------------------------------------------------------

class ChartPoint(BaseModel):
    label: str
    value: float


class ReceiptSummary(BaseModel):
    count: int = 0
    total: float = 0.0
    tax_estimate: float = 0.0
    average: float = 0.0
    currency: str
    symbol: str
    chart: list[ChartPoint] = Field(default_factory=list)


# ---------------------------------------------------------------------------
# API request / response envelopes
# ---------------------------------------------------------------------------

class ReceiptCreated(BaseModel):
    id: int


class DeleteResult(BaseModel):
    success: bool = True


class ExtractRequest(BaseModel):
    image: str = Field(..., description="JPEG as a data URI or bare base64")


class ExtractResponse(BaseModel):
    ok: bool
    result: Optional[ExtractionResult] = None
    reason: Optional[str] = None


class CurrencyInfo(BaseModel):
    code: str
    symbol: str


class Catalog(BaseModel):
    categories: list[str]
    currencies: list[CurrencyInfo]
    default_currency: str
    default_category: str
