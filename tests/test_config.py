"""Tests for environment-driven settings and logging setup."""

from __future__ import annotations

import logging

import structlog

from contract_pipeline.config import Environment, Settings, get_settings
from contract_pipeline.logging_config import (
    _inject_context_vars,
    batch_id_var,
    batch_scope,
    document_key_var,
    document_scope,
    setup_logging,
)


def test_defaults(monkeypatch) -> None:
    for name in ("S3_CONTRACT_BUCKET", "AWS_REGION", "DEFAULT_AI_PROVIDER", "USE_LOCAL_STORAGE", "BATCH_DELAY_MS"):
        monkeypatch.delenv(name, raising=False)

    settings = Settings(_env_file=None)

    assert settings.s3_contract_bucket == "bloom-contracts"
    assert settings.aws_region == "us-west-2"
    assert settings.default_ai_provider == "bedrock"
    assert settings.use_local_storage is False
    assert settings.batch_delay_ms == 2000
    assert (settings.incoming_prefix, settings.processed_prefix, settings.failed_prefix) == (
        "incoming/",
        "processed/",
        "failed/",
    )


def test_environment_variables_are_read_once(monkeypatch) -> None:
    monkeypatch.setenv("S3_CONTRACT_BUCKET", "contracts-prod")
    monkeypatch.setenv("USE_LOCAL_STORAGE", "true")
    monkeypatch.setenv("ENVIRONMENT", "production")

    settings = get_settings()
    monkeypatch.setenv("S3_CONTRACT_BUCKET", "changed-later")

    assert settings.s3_contract_bucket == "contracts-prod"
    assert settings.use_local_storage is True
    assert settings.is_production
    assert get_settings() is settings


def test_explicit_credentials_flag(settings: Settings) -> None:
    assert not settings.has_explicit_aws_credentials
    assert settings.model_copy(update={"aws_access_key_id": "AKIA..."}).has_explicit_aws_credentials


def test_context_vars_are_injected() -> None:
    batch_token = batch_id_var.set("b-1")
    key_token = document_key_var.set("incoming/a.pdf")
    try:
        event = _inject_context_vars(None, "info", {"event": "x"})
    finally:
        document_key_var.reset(key_token)
        batch_id_var.reset(batch_token)

    assert event == {"event": "x", "batch_id": "b-1", "document_key": "incoming/a.pdf"}


def test_setup_logging_routes_root_logger(monkeypatch) -> None:
    monkeypatch.setenv("ENVIRONMENT", Environment.PRODUCTION.value)
    monkeypatch.setenv("LOG_LEVEL", "warning")

    setup_logging()

    root = logging.getLogger()
    assert root.level == logging.WARNING
    assert isinstance(root.handlers[0].formatter, structlog.stdlib.ProcessorFormatter)
    assert logging.getLogger("botocore").level == logging.WARNING


def test_scopes_bind_and_restore_correlation() -> None:
    with batch_scope() as batch_id:
        with document_scope("incoming/a.pdf"):
            event = _inject_context_vars(None, "info", {"event": "x"})
        after_document = _inject_context_vars(None, "info", {"event": "y"})

    assert len(batch_id) == 12
    assert event == {"event": "x", "batch_id": batch_id, "document_key": "incoming/a.pdf"}
    assert after_document == {"event": "y", "batch_id": batch_id}
    assert batch_id_var.get() == ""


def test_scope_is_reset_when_body_raises() -> None:
    try:
        with document_scope("incoming/a.pdf"):
            raise ValueError("boom")
    except ValueError:
        pass

    assert document_key_var.get() == ""


def test_anthropic_tuning_is_independent_of_bedrock(monkeypatch) -> None:
    monkeypatch.setenv("BEDROCK_TEMPERATURE", "0.9")
    monkeypatch.setenv("BEDROCK_MAX_TOKENS", "100")

    settings = Settings(_env_file=None)

    assert settings.anthropic_temperature == 0.3
    assert settings.anthropic_max_tokens == 8000
