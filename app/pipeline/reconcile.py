"""
Review-form reconciliation.

Seeds the review form from an extraction outcome, applies user edits one
field at a time and finalizes the form into a storable candidate. No I/O
and no validation beyond numeric coercion; invariants are enforced when
the record is stored.
"""
from __future__ import annotations

import math
from datetime import date
from typing import Any, Optional

from app.config import settings
from app.schemas import ExtractionResult, FormState, ReceiptCreate

NUMERIC_FIELDS = ("amount", "tax")
TEXT_FIELDS = ("merchant", "date", "currency", "category")


def to_number(value: Any) -> float:
    """Parse *value* as a float; anything unparsable becomes ``0``."""
    if isinstance(value, bool):
        return 0.0
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0.0
    if math.isnan(number) or math.isinf(number):
        return 0.0
    return number


def seed_form(extraction: Optional[ExtractionResult]) -> FormState:
    """Initial review form for a capture.

    Without an extraction every field gets its default. With one, each field
    is copied verbatim; a missing ``tax`` stays missing.
    """
    if extraction is None:
        return FormState(
            merchant="",
            date=date.today().isoformat(),
            amount=0.0,
            tax=0.0,
            currency=settings.DEFAULT_CURRENCY,
            category=settings.DEFAULT_CATEGORY,
        )

    return FormState(
        merchant=extraction.merchant,
        date=extraction.date,
        amount=to_number(extraction.amount),
        tax=None if extraction.tax is None else to_number(extraction.tax),
        currency=extraction.currency,
        category=extraction.category,
    )


def apply_edit(form: FormState, field: str, value: Any) -> FormState:
    """Set one field of *form* in place and return it."""
    if field == "tax" and (value is None or (isinstance(value, str) and not value.strip())):
        # cleared tax is absent, not zero
        form.tax = None
    elif field in NUMERIC_FIELDS:
        setattr(form, field, to_number(value))
    elif field in TEXT_FIELDS:
        setattr(form, field, "" if value is None else str(value))
    else:
        raise KeyError(f"Unknown form field: {field}")
    return form


def finalize(form: FormState, image: Optional[str]) -> ReceiptCreate:
    """Attach the captured image and hand the form over for persistence."""
    return ReceiptCreate(**form.model_dump(), image_url=image)
