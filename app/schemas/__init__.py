from app.schemas.base import (  # noqa: F401
    CATEGORIES,
    CURRENCY_SYMBOLS,
    FALLBACK_SYMBOL,
    Catalog,
    ChartPoint,
    CurrencyInfo,
    DeleteResult,
    ExtractionResult,
    ExtractRequest,
    ExtractResponse,
    FormState,
    ReceiptCreate,
    ReceiptCreated,
    ReceiptRecord,
    ReceiptSummary,
)
