"""
Aggregate reporting over the stored receipt list.

All functions take records in list order (newest first) and never convert
between currencies: a report is shown in the first record's currency.
"""
from __future__ import annotations

from typing import Optional, Protocol, Sequence

from app.config import settings
from app.schemas import CURRENCY_SYMBOLS, FALLBACK_SYMBOL, ChartPoint, ReceiptSummary

# Inclusive VAT divisor used when a receipt states no tax
VAT_DIVISOR = 1.07
CHART_WINDOW = 5


class _Priced(Protocol):
    merchant: str
    amount: float
    tax: Optional[float]
    currency: str


def total(records: Sequence[_Priced]) -> float:
    return sum(r.amount for r in records)


def tax_for(record: _Priced) -> float:
    if record.tax is not None:
        return record.tax
    return record.amount - (record.amount / VAT_DIVISOR)


def tax_estimate(records: Sequence[_Priced]) -> float:
    return sum(tax_for(r) for r in records)


def average(records: Sequence[_Priced]) -> float:
    if not records:
        return 0.0
    return total(records) / len(records)


def chart_projection(records: Sequence[_Priced]) -> list[ChartPoint]:
    """Latest five receipts, oldest first, as ``(merchant, amount)`` bars."""
    window = list(records[:CHART_WINDOW])
    window.reverse()
    return [ChartPoint(label=r.merchant, value=r.amount) for r in window]


def currency_symbol(code: Optional[str]) -> str:
    return CURRENCY_SYMBOLS.get((code or "").upper(), FALLBACK_SYMBOL)


def report_currency(records: Sequence[_Priced]) -> str:
    if records and records[0].currency:
        return records[0].currency
    return settings.DEFAULT_CURRENCY


def summarize(records: Sequence[_Priced]) -> ReceiptSummary:
    code = report_currency(records)
    return ReceiptSummary(
        count=len(records),
        total=total(records),
        tax_estimate=tax_estimate(records),
        average=average(records),
        currency=code,
        symbol=currency_symbol(code),
        chart=chart_projection(records),
    )
