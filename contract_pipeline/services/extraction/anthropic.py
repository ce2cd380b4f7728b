"""Anthropic Messages API extraction provider."""

from __future__ import annotations

import base64
import time
from typing import Any, Optional

import httpx

from contract_pipeline.config import Settings
from contract_pipeline.exceptions import ExtractionError
from contract_pipeline.logging_config import get_logger
from contract_pipeline.schemas.extraction import AIProvider, ExtractionOptions, ExtractionResult
from contract_pipeline.services.extraction.base import DEFAULT_EXTRACTION_PROMPT, ExtractionProvider

logger = get_logger(__name__)

ANTHROPIC_MESSAGES_URL = "https://api.anthropic.com/v1/messages"
ANTHROPIC_API_VERSION = "2023-06-01"


class AnthropicExtractionProvider(ExtractionProvider):
    name = AIProvider.ANTHROPIC

    def __init__(
        self,
        settings: Settings,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self._settings = settings
        self._transport = transport

    async def extract(
        self,
        document: bytes,
        filename: str,
        options: ExtractionOptions,
    ) -> ExtractionResult:
        settings = self._settings
        if not settings.anthropic_api_key:
            raise ExtractionError("ANTHROPIC_API_KEY is not configured")

        model = options.model_id or settings.anthropic_model
        logger.info("anthropic_extraction_started", filename=filename, model=model, size_bytes=len(document))

        request_body = {
            "model": model,
            "max_tokens": options.max_tokens or settings.anthropic_max_tokens,
            "temperature": settings.anthropic_temperature if options.temperature is None else options.temperature,
            "messages": [
                {
                    "role": "user",
                    "content": [
                        {
                            "type": "document",
                            "source": {
                                "type": "base64",
                                "media_type": "application/pdf",
                                "data": base64.b64encode(document).decode("ascii"),
                            },
                            "title": filename,
                        },
                        {"type": "text", "text": options.extraction_prompt or DEFAULT_EXTRACTION_PROMPT},
                    ],
                }
            ],
        }

        started = time.monotonic()
        try:
            async with httpx.AsyncClient(
                timeout=settings.anthropic_timeout_seconds,
                transport=self._transport,
            ) as client:
                response = await client.post(
                    ANTHROPIC_MESSAGES_URL,
                    headers={
                        "x-api-key": settings.anthropic_api_key,
                        "anthropic-version": ANTHROPIC_API_VERSION,
                        "content-type": "application/json",
                    },
                    json=request_body,
                )
                response.raise_for_status()
                data = response.json()
        except httpx.HTTPStatusError as e:
            logger.error("anthropic_extraction_failed", status=e.response.status_code)
            raise ExtractionError(f"Anthropic API returned HTTP {e.response.status_code}") from e
        except (httpx.HTTPError, ValueError) as e:
            logger.error("anthropic_extraction_failed", error=str(e))
            raise ExtractionError(f"Anthropic API call failed: {e}") from e
        elapsed_ms = int((time.monotonic() - started) * 1000)

        try:
            blocks: list[dict[str, Any]] = data.get("content") or []
            text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
            citations = [c for block in blocks for c in block.get("citations") or []]
            usage = dict(data.get("usage") or {})
            response_model = data.get("model", model)
        except (TypeError, AttributeError, ValueError) as e:
            logger.error("anthropic_extraction_failed", error=str(e))
            raise ExtractionError(f"Anthropic API returned an unexpected response shape ({e})") from e

        if not text:
            raise ExtractionError("Anthropic API response contained no text")

        logger.info("anthropic_extraction_complete", elapsed_ms=elapsed_ms)

        return ExtractionResult(
            extracted_text=text,
            provider=self.name,
            api_type="messages",
            model=response_model,
            citations=citations,
            usage=usage,
            processing_time_ms=elapsed_ms,
        )
