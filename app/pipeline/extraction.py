"""
Vision extraction client.

Sends one captured receipt image to a structured-extraction model and
returns either an ``ExtractionOk`` carrying the parsed fields or an
``ExtractionFailed`` carrying a short reason. ``extract`` never raises:
transport errors, API errors, empty bodies, malformed JSON and schema
mismatches all collapse to ``ExtractionFailed`` so the review form can
still be opened with defaults.
"""
from __future__ import annotations

import json
import logging
from dataclasses import dataclass
from typing import Optional, Union

from openai import AsyncOpenAI, OpenAIError
from pydantic import ValidationError

from app.config import settings
from app.schemas import CATEGORIES, CURRENCY_SYMBOLS, ExtractionResult

logger = logging.getLogger(__name__)

# ---------------------------------------------------------------------------
# Request contract
# ---------------------------------------------------------------------------

RECEIPT_SCHEMA: dict = {
    "type": "object",
    "properties": {
        "merchant": {"type": "string"},
        "date": {
            "type": "string",
            "description": "ISO date or human readable date from receipt",
        },
        "amount": {"type": "number"},
        "tax": {
            "type": "number",
            "description": "The tax amount if listed on the receipt",
        },
        "currency": {"type": "string"},
        "category": {"type": "string"},
    },
    "required": ["merchant", "date", "amount", "currency", "category"],
}

INSTRUCTIONS = (
    "Extract the following details from this receipt: merchant name, date, "
    "total amount, tax amount (if explicitly listed), currency code (e.g., "
    f"{', '.join(CURRENCY_SYMBOLS)}), and a likely category (e.g., "
    f"{', '.join(CATEGORIES)}). If the currency is not explicitly stated, "
    "infer it from the symbols or merchant location. Return the data in JSON format."
)


# ---------------------------------------------------------------------------
# Outcome types
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ExtractionOk:
    result: ExtractionResult
    ok = True


@dataclass(frozen=True)
class ExtractionFailed:
    reason: str
    ok = False
    result = None


Extraction = Union[ExtractionOk, ExtractionFailed]


def strip_data_uri(image: str) -> str:
    """Return the base64 payload of *image*, dropping any ``data:...,`` prefix."""
    if "," in image:
        return image.split(",", 1)[1]
    return image


# ---------------------------------------------------------------------------
# Client
# ---------------------------------------------------------------------------

class ReceiptExtractor:
    """Structured receipt extraction through the OpenAI Responses API."""

    def __init__(
        self,
        client: Optional[AsyncOpenAI] = None,
        model: Optional[str] = None,
    ):
        self._client = client
        self.model = model or settings.LLM_MODEL

    def _get_client(self) -> AsyncOpenAI:
        if self._client is None:
            self._client = AsyncOpenAI(
                api_key=settings.LLM_API_KEY or None,
                base_url=settings.LLM_BASE_URL,
                timeout=settings.LLM_TIMEOUT,
                max_retries=0,
            )
        return self._client

    async def extract(self, image: str) -> Extraction:
        payload = strip_data_uri(image)
        if not payload:
            return ExtractionFailed("empty image")

        logger.info("Extraction start: model=%s  payload=%d chars", self.model, len(payload))
        try:
            resp = await self._get_client().responses.create(
                model=self.model,
                input=[
                    {
                        "role": "user",
                        "content": [
                            {
                                "type": "input_image",
                                "image_url": f"data:image/jpeg;base64,{payload}",
                            },
                            {"type": "input_text", "text": INSTRUCTIONS},
                        ],
                    }
                ],
                text={
                    "format": {
                        "type": "json_schema",
                        "name": "receipt",
                        "schema": RECEIPT_SCHEMA,
                        "strict": False,
                    }
                },
            )
            text = resp.output_text
            if not text or not text.strip():
                logger.warning("Extraction returned an empty body")
                return ExtractionFailed("empty response")
            result = ExtractionResult.model_validate(json.loads(text))
        except OpenAIError as e:
            logger.warning("Extraction call failed: %s", e)
            return ExtractionFailed(f"model call failed: {e}")
        except json.JSONDecodeError as e:
            logger.warning("Extraction returned malformed JSON: %s", e)
            return ExtractionFailed("malformed JSON")
        except ValidationError as e:
            logger.warning("Extraction response does not match schema: %d errors", e.error_count())
            return ExtractionFailed("schema mismatch")
        except Exception:
            logger.exception("Unexpected extraction failure")
            return ExtractionFailed("unexpected error")

        logger.info("Extraction done: merchant=%r amount=%s %s", result.merchant, result.amount, result.currency)
        return ExtractionOk(result)
