"""Extraction Router: picks a provider per call (options > configured default) and delegates."""

from __future__ import annotations

from typing import Mapping, Optional

from contract_pipeline.config import Settings, get_settings
from contract_pipeline.exceptions import ExtractionError
from contract_pipeline.logging_config import get_logger
from contract_pipeline.schemas.extraction import AIProvider, ExtractionOptions, ExtractionResult
from contract_pipeline.services.extraction.anthropic import AnthropicExtractionProvider
from contract_pipeline.services.extraction.base import ExtractionProvider
from contract_pipeline.services.extraction.bedrock import BedrockExtractionProvider

logger = get_logger(__name__)


class ExtractionRouter:
    """
    Dispatches extraction to one of a closed set of providers.

    Provider outputs are returned as-is; the router does not reconcile
    differences in what each model puts in ``extracted_text``.
    """

    def __init__(
        self,
        providers: Mapping[AIProvider, ExtractionProvider],
        default_provider: str = AIProvider.BEDROCK.value,
    ) -> None:
        self._providers = dict(providers)
        self._default_provider = default_provider

    def resolve(self, options: Optional[ExtractionOptions] = None) -> AIProvider:
        """Return the provider selected by *options*, falling back to the default."""
        if options is not None and options.ai_provider is not None:
            return options.ai_provider

        name = (self._default_provider or AIProvider.BEDROCK.value).lower().strip()
        try:
            return AIProvider(name)
        except ValueError as e:
            raise ExtractionError(f"Unknown extraction provider {name!r}") from e

    async def extract(
        self,
        document: bytes,
        filename: str,
        options: Optional[ExtractionOptions] = None,
    ) -> ExtractionResult:
        options = options or ExtractionOptions()
        selected = self.resolve(options)
        provider = self._providers.get(selected)
        if provider is None:
            raise ExtractionError(f"Extraction provider {selected.value!r} is not registered")

        logger.info("extraction_dispatched", provider=selected.value, filename=filename)
        return await provider.extract(document, filename, options)


def build_extraction_router(settings: Settings | None = None) -> ExtractionRouter:
    """Router wired with both providers and the configured default."""
    settings = settings or get_settings()
    return ExtractionRouter(
        providers={
            AIProvider.BEDROCK: BedrockExtractionProvider(settings),
            AIProvider.ANTHROPIC: AnthropicExtractionProvider(settings),
        },
        default_provider=settings.default_ai_provider,
    )
