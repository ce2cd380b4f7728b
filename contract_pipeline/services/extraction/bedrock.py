"""
Amazon Bedrock extraction provider.

Small PDFs go through the Converse API with a native document block;
larger ones are sent base64-encoded through InvokeModel. Anything over
the InvokeModel payload limit is rejected before calling out.
"""

from __future__ import annotations

import asyncio
import base64
import json
import re
import time
from typing import Any, Callable, Optional

import boto3
from botocore.exceptions import BotoCoreError, ClientError

from contract_pipeline.config import Settings
from contract_pipeline.exceptions import ExtractionError
from contract_pipeline.logging_config import get_logger
from contract_pipeline.schemas.extraction import AIProvider, ExtractionOptions, ExtractionResult
from contract_pipeline.services.extraction.base import DEFAULT_EXTRACTION_PROMPT, ExtractionProvider

logger = get_logger(__name__)

CONVERSE_MAX_BYTES = int(4.5 * 1024 * 1024)
INVOKE_MODEL_MAX_BYTES = 20 * 1024 * 1024
ANTHROPIC_BEDROCK_VERSION = "bedrock-2023-05-31"


def sanitize_document_name(filename: str) -> str:
    """Reduce *filename* to the characters Bedrock accepts for document names."""
    name = re.sub(r"[^a-zA-Z0-9\s\-\(\)\[\]]", "-", filename)
    name = re.sub(r"\s+", " ", name)
    name = re.sub(r"-+", "-", name)
    return name[:200]


class BedrockExtractionProvider(ExtractionProvider):
    name = AIProvider.BEDROCK

    def __init__(
        self,
        settings: Settings,
        client_factory: Optional[Callable[[], Any]] = None,
    ) -> None:
        self._settings = settings
        self._client_factory = client_factory or self._create_client
        self._client: Any = None

    def _create_client(self) -> Any:
        settings = self._settings
        credentials: dict[str, str] = {}
        if settings.has_explicit_aws_credentials:
            credentials = {
                "aws_access_key_id": settings.aws_access_key_id,
                "aws_secret_access_key": settings.aws_secret_access_key,
            }
            if settings.aws_session_token:
                credentials["aws_session_token"] = settings.aws_session_token
        return boto3.client("bedrock-runtime", region_name=settings.aws_region, **credentials)

    @property
    def client(self) -> Any:
        if self._client is None:
            self._client = self._client_factory()
            logger.info(
                "bedrock_client_initialized",
                region=self._settings.aws_region,
                model=self._settings.bedrock_model_id,
            )
        return self._client

    async def extract(
        self,
        document: bytes,
        filename: str,
        options: ExtractionOptions,
    ) -> ExtractionResult:
        size_mb = len(document) / (1024 * 1024)
        logger.info("bedrock_extraction_started", filename=filename, size_mb=round(size_mb, 2))

        if len(document) <= CONVERSE_MAX_BYTES:
            call, api_type = self._converse, "converse"
        elif len(document) <= INVOKE_MODEL_MAX_BYTES:
            call, api_type = self._invoke_model, "invoke_model"
        else:
            raise ExtractionError(f"PDF too large ({size_mb:.2f} MB). Maximum supported: 20MB")

        model_id = options.model_id or self._settings.bedrock_model_id
        started = time.monotonic()
        try:
            text, usage, citations = await asyncio.to_thread(call, document, filename, model_id, options)
        except (ClientError, BotoCoreError) as e:
            logger.error("bedrock_extraction_failed", api_type=api_type, error=str(e))
            raise ExtractionError(f"Bedrock {api_type} API failed: {e}") from e
        elapsed_ms = int((time.monotonic() - started) * 1000)

        logger.info("bedrock_extraction_complete", api_type=api_type, elapsed_ms=elapsed_ms)

        return ExtractionResult(
            extracted_text=text,
            provider=self.name,
            api_type=api_type,
            model=model_id,
            citations=citations,
            usage=usage,
            processing_time_ms=elapsed_ms,
        )

    def _converse(
        self,
        document: bytes,
        filename: str,
        model_id: str,
        options: ExtractionOptions,
    ) -> tuple[str, dict[str, Any], list[Any]]:
        response = self.client.converse(
            modelId=model_id,
            messages=[
                {
                    "role": "user",
                    "content": [
                        {
                            "document": {
                                "format": "pdf",
                                "name": sanitize_document_name(filename),
                                "source": {"bytes": document},
                            }
                        },
                        {"text": options.extraction_prompt or DEFAULT_EXTRACTION_PROMPT},
                    ],
                }
            ],
            inferenceConfig={
                "maxTokens": options.max_tokens or self._settings.bedrock_max_tokens,
                "temperature": _pick(options.temperature, self._settings.bedrock_temperature),
            },
        )

        return _converse_output(response)

    def _invoke_model(
        self,
        document: bytes,
        filename: str,
        model_id: str,
        options: ExtractionOptions,
    ) -> tuple[str, dict[str, Any], list[Any]]:
        settings = self._settings
        body = {
            "anthropic_version": ANTHROPIC_BEDROCK_VERSION,
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
                        },
                        {"type": "text", "text": options.extraction_prompt or DEFAULT_EXTRACTION_PROMPT},
                    ],
                }
            ],
            "max_tokens": options.max_tokens or settings.bedrock_max_tokens,
            "temperature": _pick(options.temperature, settings.bedrock_temperature),
            "top_k": settings.bedrock_top_k,
            "top_p": settings.bedrock_top_p,
        }

        response = self.client.invoke_model(
            modelId=model_id,
            contentType="application/json",
            accept="application/json",
            body=json.dumps(body),
        )

        try:
            payload = json.loads(response["body"].read())
        except (KeyError, ValueError) as e:
            raise ExtractionError("Bedrock InvokeModel returned an unreadable body") from e

        return _invoke_model_output(payload)


def _pick(value: Optional[float], fallback: float) -> float:
    return fallback if value is None else value


def _converse_output(response: Any) -> tuple[str, dict[str, Any], list[Any]]:
    """Unpack text, usage and citations from a Converse response."""
    try:
        blocks = response["output"]["message"]["content"]
        text = "".join(block["text"] for block in blocks if block.get("text"))
        citations = [block["citationsContent"] for block in blocks if block.get("citationsContent")]
        usage = dict(response.get("usage") or {})
    except (KeyError, TypeError, AttributeError, ValueError) as e:
        raise ExtractionError(f"Bedrock converse API failed: unexpected response shape ({e})") from e

    if not text:
        raise ExtractionError("Bedrock converse API failed: response contained no text")
    return text, usage, citations


def _invoke_model_output(payload: Any) -> tuple[str, dict[str, Any], list[Any]]:
    """Unpack text and usage from an InvokeModel (Anthropic messages) payload."""
    try:
        blocks = payload.get("content") or []
        text = "".join(block.get("text", "") for block in blocks if block.get("type") == "text")
        usage = dict(payload.get("usage") or {})
    except (TypeError, AttributeError, ValueError) as e:
        raise ExtractionError(f"Bedrock invoke_model API failed: unexpected response shape ({e})") from e

    if not text:
        raise ExtractionError("Bedrock invoke_model API failed: response contained no text")
    return text, usage, []
