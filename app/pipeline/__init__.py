"""
Receipt capture pipeline.

capture (camera) → extract (vision model) → seed review form → edits →
finalize → store → summarize.
"""
from app.pipeline.aggregate import summarize
from app.pipeline.extraction import (
    Extraction,
    ExtractionFailed,
    ExtractionOk,
    ReceiptExtractor,
)
from app.pipeline.gateway import GatewayError, HttpReceiptGateway, StoreGateway
from app.pipeline.reconcile import apply_edit, finalize, seed_form
from app.pipeline.session import AppState, CaptureWorkflow, WorkflowError
from app.pipeline.store import StorageError

__all__ = [
    "AppState",
    "CaptureWorkflow",
    "Extraction",
    "ExtractionFailed",
    "ExtractionOk",
    "GatewayError",
    "HttpReceiptGateway",
    "ReceiptExtractor",
    "StorageError",
    "StoreGateway",
    "WorkflowError",
    "apply_edit",
    "finalize",
    "seed_form",
    "summarize",
]
