from __future__ import annotations

from typing import Optional

import pytest

from contract_pipeline.config import Settings, get_settings
from contract_pipeline.exceptions import NotFoundError, TransportError
from contract_pipeline.schemas.document import StorageObject
from contract_pipeline.schemas.extraction import AIProvider, ExtractionOptions, ExtractionResult
from contract_pipeline.services.extraction.base import ExtractionProvider
from contract_pipeline.storage import StorageGateway


@pytest.fixture(autouse=True)
def _reset_settings_cache():
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


@pytest.fixture
def settings() -> Settings:
    return Settings(
        _env_file=None,
        s3_contract_bucket="test-bucket",
        aws_region="us-west-2",
        aws_access_key_id="",
        aws_secret_access_key="",
        aws_session_token="",
        default_ai_provider="bedrock",
        anthropic_api_key="test-key",
        batch_delay_ms=2000,
    )


class InMemoryStorage(StorageGateway):
    """Dict-backed gateway that records every move."""

    def __init__(self, objects: Optional[dict[str, bytes]] = None) -> None:
        self.bucket = "test-bucket"
        self.objects: dict[str, bytes] = dict(objects or {})
        self.moves: list[tuple[str, str]] = []
        self.fail_fetch_for: set[str] = set()
        self.fail_move_to: set[str] = set()

    async def fetch(self, key: str) -> bytes:
        if key in self.fail_fetch_for:
            raise TransportError(f"connection reset while reading {key}")
        if key not in self.objects:
            raise NotFoundError(f"{key} does not exist")
        return self.objects[key]

    async def store(self, content: bytes, key: str, metadata: dict[str, str] | None = None) -> str:
        self.objects[key] = content
        return f"s3://{self.bucket}/{key}"

    async def list(self, prefix: str) -> list[StorageObject]:
        return [
            StorageObject(key=key, size=len(body))
            for key, body in sorted(self.objects.items())
            if key.startswith(prefix)
        ]

    async def move(self, source_key: str, destination_key: str) -> None:
        if destination_key in self.fail_move_to:
            raise TransportError(f"copy to {destination_key} denied")
        self.objects[destination_key] = self.objects[source_key]
        del self.objects[source_key]
        self.moves.append((source_key, destination_key))


class ScriptedProvider(ExtractionProvider):
    """Returns canned extraction text per filename, or raises a canned error."""

    def __init__(self, name: AIProvider = AIProvider.BEDROCK, default_text: str = "{}") -> None:
        self.name = name
        self.default_text = default_text
        self.texts: dict[str, str] = {}
        self.errors: dict[str, Exception] = {}
        self.calls: list[tuple[bytes, str, ExtractionOptions]] = []

    async def extract(self, document: bytes, filename: str, options: ExtractionOptions) -> ExtractionResult:
        self.calls.append((document, filename, options))
        if filename in self.errors:
            raise self.errors[filename]
        return ExtractionResult(
            extracted_text=self.texts.get(filename, self.default_text),
            provider=self.name,
            api_type="converse" if self.name is AIProvider.BEDROCK else "messages",
            model="test-model",
            citations=[{"page": 1}],
            usage={"inputTokens": 10, "outputTokens": 5},
            processing_time_ms=42,
        )


@pytest.fixture
def storage() -> InMemoryStorage:
    return InMemoryStorage()


@pytest.fixture
def bedrock_provider() -> ScriptedProvider:
    return ScriptedProvider(AIProvider.BEDROCK)


@pytest.fixture
def anthropic_provider() -> ScriptedProvider:
    return ScriptedProvider(AIProvider.ANTHROPIC)
