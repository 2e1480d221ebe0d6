"""
Capture device boundary.

The workflow only needs to acquire a device, take a still and release it.
``FileCamera`` serves a JPEG from disk, which is what scripted or headless
clients use in place of a live viewfinder.
"""
from __future__ import annotations

import base64
import logging
from pathlib import Path
from typing import Protocol

logger = logging.getLogger(__name__)


class CaptureUnavailable(Exception):
    """The capture device could not be acquired or read."""


class Camera(Protocol):
    async def acquire(self) -> None: ...

    def snapshot(self) -> str: ...

    def release(self) -> None: ...


def to_data_uri(data: bytes, media_type: str = "image/jpeg") -> str:
    return f"data:{media_type};base64,{base64.b64encode(data).decode('ascii')}"


class FileCamera:
    """Camera that "captures" the current contents of a JPEG file."""

    def __init__(self, path: str | Path):
        self.path = Path(path)
        self.acquired = False

    async def acquire(self) -> None:
        if not self.path.is_file():
            raise CaptureUnavailable(f"no image at {self.path}")
        self.acquired = True
        logger.info("Camera acquired: %s", self.path)

    def snapshot(self) -> str:
        if not self.acquired:
            raise CaptureUnavailable("camera not acquired")
        try:
            data = self.path.read_bytes()
        except OSError as e:
            raise CaptureUnavailable(str(e)) from e
        return to_data_uri(data)

    def release(self) -> None:
        if self.acquired:
            logger.info("Camera released: %s", self.path)
        self.acquired = False
