"""
Application configuration via environment variables.

Uses Pydantic BaseSettings to load and validate all config from env vars
or a .env.local file. Every setting has a sensible default for local
development so the worker can start with minimal configuration.
"""

from __future__ import annotations

from enum import Enum
from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Environment(str, Enum):
    """Deployment environment selector."""

    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    """
    Central configuration for the contract document pipeline.

    Values are loaded from environment variables first, falling back
    to a `.env.local` file in the project root. AWS credentials are
    optional: when left empty boto3 resolves them from its ambient
    credential chain (instance role, shared config, SSO).
    """

    model_config = SettingsConfigDict(
        env_file=".env.local",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # ── Environment ──────────────────────────────────────────────
    environment: Environment = Environment.DEVELOPMENT

    # ── Object storage ───────────────────────────────────────────
    s3_contract_bucket: str = Field(default="bloom-contracts", description="Bucket holding contract documents")
    aws_region: str = Field(default="us-west-2", description="AWS region for S3 and Bedrock")
    aws_access_key_id: str = Field(default="", description="Explicit AWS access key (optional)")
    aws_secret_access_key: str = Field(default="", description="Explicit AWS secret key (optional)")
    aws_session_token: str = Field(default="", description="Explicit AWS session token (optional)")

    use_local_storage: bool = Field(default=False, description="Serve the bucket from the local filesystem")
    local_storage_dir: str = Field(default="./storage", description="Root directory for local storage mode")

    incoming_prefix: str = Field(default="incoming/", description="Prefix of documents awaiting processing")
    processed_prefix: str = Field(default="processed/", description="Prefix of successfully processed documents")
    failed_prefix: str = Field(default="failed/", description="Prefix of documents that failed processing")

    # ── Extraction providers ─────────────────────────────────────
    default_ai_provider: str = Field(default="bedrock", description="Provider used when a call does not choose one")

    bedrock_model_id: str = Field(
        default="anthropic.claude-3-5-haiku-20241022-v1:0",
        description="Bedrock model used for document extraction",
    )
    bedrock_max_tokens: int = Field(default=8000, ge=1, description="Max output tokens per extraction")
    bedrock_temperature: float = Field(default=0.3, ge=0.0, le=1.0)
    bedrock_top_k: int = Field(default=250, ge=0)
    bedrock_top_p: float = Field(default=1.0, ge=0.0, le=1.0)

    anthropic_api_key: str = Field(default="", description="Anthropic API key for direct extraction")
    anthropic_model: str = Field(default="claude-3-5-sonnet-20241022", description="Anthropic model for extraction")
    anthropic_timeout_seconds: float = Field(default=120.0, gt=0, description="HTTP timeout per extraction call")
    anthropic_max_tokens: int = Field(default=8000, ge=1, description="Max output tokens per Anthropic extraction")
    anthropic_temperature: float = Field(default=0.3, ge=0.0, le=1.0)

    # ── Batch processing ─────────────────────────────────────────
    batch_delay_ms: int = Field(default=2000, ge=0, description="Pause between documents in a batch")
    batch_poll_interval_seconds: float = Field(
        default=0.0,
        ge=0.0,
        description="Seconds between batches in worker mode; 0 runs a single batch",
    )

    # ── Logging ──────────────────────────────────────────────────
    log_level: str = Field(default="INFO", description="Root log level")

    # ── Derived helpers ──────────────────────────────────────────

    @property
    def is_production(self) -> bool:
        return self.environment == Environment.PRODUCTION

    @property
    def has_explicit_aws_credentials(self) -> bool:
        return bool(self.aws_access_key_id)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """
    Return cached Settings instance.

    Using lru_cache ensures we read env vars exactly once, and every
    module that calls ``get_settings()`` gets the same object.
    """
    return Settings()
