"""
Capture workflow state machine.

LIST ──add──▶ SCANNING ──capture/extract──▶ REVIEW_DETAIL ──confirm──▶ LIST
               │  ▲                              │
               │  └────────────retake────────────┘
               └──close──▶ LIST

The workflow owns the single active capture session as an explicit phase
value (``Idle``, ``Capturing`` or ``Reviewing``). Collaborator failures never
escape: they are logged and exposed on ``workflow.error`` while the machine
stays in a state from which the user can retry or back out. Calling an action
that is not defined for the current state raises ``WorkflowError``.
"""
from __future__ import annotations

import asyncio
import itertools
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Optional, Protocol, Union

from app.config import settings
from app.pipeline.aggregate import summarize
from app.pipeline.camera import Camera, CaptureUnavailable
from app.pipeline.extraction import Extraction
from app.pipeline.gateway import GatewayError, ReceiptGateway
from app.pipeline.reconcile import apply_edit, finalize, seed_form
from app.schemas import FormState, ReceiptRecord, ReceiptSummary

logger = logging.getLogger(__name__)

PROGRESS_START = 10
PROGRESS_STEP = 5
PROGRESS_CEILING = 85


class AppState(str, Enum):
    LIST = "LIST"
    SCANNING = "SCANNING"
    REVIEW_DETAIL = "REVIEW_DETAIL"


class WorkflowError(Exception):
    """An action was requested in a state that does not define it."""


class Extractor(Protocol):
    async def extract(self, image: str) -> Extraction: ...


# ---------------------------------------------------------------------------
# Phases
# ---------------------------------------------------------------------------

@dataclass
class Idle:
    state = AppState.LIST


@dataclass
class Capturing:
    session_id: int
    device_ready: bool = False
    extracting: bool = False
    ticker: Optional[asyncio.Task] = field(default=None, repr=False)
    state = AppState.SCANNING


@dataclass
class Reviewing:
    session_id: int
    image: str
    extraction: Extraction
    form: FormState = field(default_factory=FormState)
    state = AppState.REVIEW_DETAIL


Phase = Union[Idle, Capturing, Reviewing]


# ---------------------------------------------------------------------------
# Workflow
# ---------------------------------------------------------------------------

class CaptureWorkflow:
    def __init__(
        self,
        gateway: ReceiptGateway,
        extractor: Extractor,
        camera: Camera,
        tick_interval: Optional[float] = None,
        settle_delay: Optional[float] = None,
    ):
        self.gateway = gateway
        self.extractor = extractor
        self.camera = camera
        self.tick_interval = settings.SCAN_TICK_INTERVAL if tick_interval is None else tick_interval
        self.settle_delay = settings.SCAN_SETTLE_DELAY if settle_delay is None else settle_delay

        self.phase: Phase = Idle()
        self.receipts: list[ReceiptRecord] = []
        self.error: Optional[str] = None
        self.progress = 0
        self._session_ids = itertools.count(1)

    # -- views -------------------------------------------------------------

    @property
    def state(self) -> AppState:
        return self.phase.state

    @property
    def summary(self) -> ReceiptSummary:
        return summarize(self.receipts)

    @property
    def form(self) -> FormState:
        return self._expect(Reviewing, "read form").form

    def _expect(self, kind, action: str):
        if not isinstance(self.phase, kind):
            raise WorkflowError(f"cannot {action} while in {self.state.value}")
        return self.phase

    def _is_active(self, session_id: int) -> bool:
        return getattr(self.phase, "session_id", None) == session_id

    # -- list --------------------------------------------------------------

    async def refresh(self) -> bool:
        try:
            self.receipts = await self.gateway.list_receipts()
        except GatewayError as e:
            logger.warning("Failed to fetch receipts: %s", e)
            self.error = str(e)
            return False
        return True

    async def delete(self, receipt_id: int) -> bool:
        self._expect(Idle, "delete")
        try:
            await self.gateway.delete_receipt(receipt_id)
        except GatewayError as e:
            logger.warning("Failed to delete receipt %s: %s", receipt_id, e)
            self.error = str(e)
            return False
        self.error = None
        return await self.refresh()

    # -- scanning ----------------------------------------------------------

    async def add_receipt(self) -> bool:
        self._expect(Idle, "add a receipt")
        return await self._start_capture()

    async def _start_capture(self) -> bool:
        phase = Capturing(session_id=next(self._session_ids))
        self.phase = phase
        self.progress = 0
        self.error = None
        logger.info("Capture session %s started", phase.session_id)
        return await self._acquire(phase)

    async def _acquire(self, phase: Capturing) -> bool:
        try:
            await self.camera.acquire()
        except CaptureUnavailable as e:
            logger.warning("Camera access denied: %s", e)
            self.error = f"Camera unavailable: {e}"
            return False
        if not self._is_active(phase.session_id):
            # closed while waiting for the device
            self.camera.release()
            return False
        phase.device_ready = True
        return True

    async def retry_camera(self) -> bool:
        phase = self._expect(Capturing, "retry the camera")
        if phase.device_ready:
            return True
        self.error = None
        return await self._acquire(phase)

    def close(self) -> None:
        phase = self._expect(Capturing, "close the scanner")
        self._release(phase)
        self.phase = Idle()
        self.progress = 0
        logger.info("Capture session %s closed", phase.session_id)

    def _release(self, phase: Capturing) -> None:
        self._stop_ticker(phase)
        if phase.device_ready:
            self.camera.release()
            phase.device_ready = False

    @staticmethod
    def _stop_ticker(phase: Capturing) -> None:
        if phase.ticker is not None:
            phase.ticker.cancel()
            phase.ticker = None

    async def _tick(self) -> None:
        if self.tick_interval <= 0:
            return
        while True:
            await asyncio.sleep(self.tick_interval)
            self.progress = min(self.progress + PROGRESS_STEP, PROGRESS_CEILING)

    async def capture(self) -> bool:
        """Take a still, extract it and move to review.

        Returns False when the still could not be taken or when the session
        was closed before extraction finished (the late result is dropped).
        """
        phase = self._expect(Capturing, "capture")
        if not phase.device_ready:
            raise WorkflowError("capture device not acquired")
        if phase.extracting:
            raise WorkflowError("capture already in progress")

        try:
            image = self.camera.snapshot()
        except CaptureUnavailable as e:
            logger.warning("Snapshot failed: %s", e)
            self.error = f"Camera unavailable: {e}"
            return False

        phase.extracting = True
        self.progress = PROGRESS_START
        phase.ticker = asyncio.create_task(self._tick())
        try:
            outcome = await self.extractor.extract(image)
        finally:
            self._stop_ticker(phase)
            phase.extracting = False

        if not self._is_active(phase.session_id):
            logger.warning("Discarding extraction for closed session %s", phase.session_id)
            return False

        self.progress = 100
        if self.settle_delay > 0:
            await asyncio.sleep(self.settle_delay)
            if not self._is_active(phase.session_id):
                logger.warning("Discarding extraction for closed session %s", phase.session_id)
                return False

        if not outcome.ok:
            logger.info("No extraction for session %s (%s); opening blank form",
                        phase.session_id, outcome.reason)

        self._release(phase)
        self.phase = Reviewing(
            session_id=phase.session_id,
            image=image,
            extraction=outcome,
            form=seed_form(outcome.result),
        )
        return True

    # -- review ------------------------------------------------------------

    def edit(self, field_name: str, value: Any) -> FormState:
        phase = self._expect(Reviewing, "edit")
        return apply_edit(phase.form, field_name, value)

    async def retake(self) -> bool:
        self._expect(Reviewing, "retake")
        return await self._start_capture()

    async def confirm(self) -> bool:
        phase = self._expect(Reviewing, "confirm")
        record = finalize(phase.form, phase.image)
        try:
            receipt_id = await self.gateway.create_receipt(record)
        except GatewayError as e:
            logger.warning("Failed to save receipt: %s", e)
            self.error = str(e)
            return False

        logger.info("Capture session %s saved as receipt %s", phase.session_id, receipt_id)
        self.phase = Idle()
        self.progress = 0
        self.error = None
        await self.refresh()
        return True
