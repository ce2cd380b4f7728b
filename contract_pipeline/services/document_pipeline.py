"""
Document Pipeline.

Takes one object from the incoming prefix through fetch, extraction and
JSON parsing, then files it under the processed prefix. Any failure after
the fetch moves the object to the failed prefix (best effort) and re-raises
the original error. A fetch failure is re-raised without touching storage.
"""

from __future__ import annotations

from typing import Any, Mapping, Optional

from contract_pipeline.config import Settings, get_settings
from contract_pipeline.logging_config import document_scope, get_logger
from contract_pipeline.schemas.document import DocumentResult
from contract_pipeline.schemas.extraction import ExtractionOptions
from contract_pipeline.services.extraction.router import ExtractionRouter
from contract_pipeline.services.json_parsing import parse_extraction_text
from contract_pipeline.storage import StorageGateway

logger = get_logger(__name__)


def relocate_key(key: str, from_prefix: str, to_prefix: str) -> str:
    """
    Swap the lifecycle prefix of *key*, keeping its relative path.

    Keys outside *from_prefix* keep their full path under *to_prefix*,
    so the destination never equals the source.
    """
    relative = key[len(from_prefix):] if key.startswith(from_prefix) else key
    return f"{to_prefix}{relative}"


def unpack_extraction(parsed: Any) -> tuple[Any, dict[str, Any], Any]:
    """
    Split parsed provider JSON into (data, confidence, notes).

    Providers return either ``{"extractedData": {...}, "confidence": ...}``
    or the flat data object itself; both shapes are accepted.
    """
    if not isinstance(parsed, Mapping):
        return parsed, {}, None

    data = parsed.get("extractedData") or parsed
    confidence = parsed.get("confidence") or {}
    return data, dict(confidence) if isinstance(confidence, Mapping) else {}, parsed.get("notes")


class DocumentPipeline:
    """Processes single documents against injected storage and extraction collaborators."""

    def __init__(
        self,
        storage: StorageGateway,
        router: ExtractionRouter,
        settings: Settings | None = None,
    ) -> None:
        settings = settings or get_settings()
        self.storage = storage
        self.router = router
        self.incoming_prefix = settings.incoming_prefix
        self.processed_prefix = settings.processed_prefix
        self.failed_prefix = settings.failed_prefix

    async def process_document(
        self,
        key: str,
        options: Optional[ExtractionOptions] = None,
    ) -> DocumentResult:
        """
        Process the object at *key* and return the normalized result.

        Raises:
            TransportError: the fetch failed (object left in place) or a move failed.
            ExtractionError: the provider failed.
            ParseError: the provider output was not JSON.
        """
        options = options or ExtractionOptions()
        with document_scope(key):
            logger.info("document_fetch_started")
            document = await self.storage.fetch(key)
            filename = key.rsplit("/", 1)[-1]

            try:
                return await self._extract_and_file(key, filename, document, options)
            except Exception as e:
                logger.error("document_processing_failed", error=str(e), error_type=type(e).__name__)
                await self._move_to_failed(key)
                raise

    async def _extract_and_file(
        self,
        key: str,
        filename: str,
        document: bytes,
        options: ExtractionOptions,
    ) -> DocumentResult:
        extraction = await self.router.extract(document, filename, options)
        parsed = parse_extraction_text(extraction.extracted_text)

        processed_key = relocate_key(key, self.incoming_prefix, self.processed_prefix)
        await self.storage.move(key, processed_key)

        data, confidence, notes = unpack_extraction(parsed)
        logger.info(
            "document_processed",
            filename=filename,
            processed_key=processed_key,
            provider=extraction.provider.value,
            api_type=extraction.api_type,
        )

        return DocumentResult(
            filename=filename,
            original_key=key,
            processed_key=processed_key,
            extracted_data=data,
            confidence=confidence,
            notes=notes,
            citations=extraction.citations,
            usage=extraction.usage,
            processing_time_ms=extraction.processing_time_ms,
            api_type=extraction.api_type,
            provider=extraction.provider,
        )

    async def _move_to_failed(self, key: str) -> None:
        failed_key = relocate_key(key, self.incoming_prefix, self.failed_prefix)
        try:
            await self.storage.move(key, failed_key)
        except Exception as move_error:
            logger.error("move_to_failed_folder_failed", failed_key=failed_key, error=str(move_error))
