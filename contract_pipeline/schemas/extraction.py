"""
Data models for provider selection and extraction results.
"""

from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, Field


class AIProvider(str, Enum):
    BEDROCK = "bedrock"
    ANTHROPIC = "anthropic"


class ExtractionOptions(BaseModel):
    """Per-call knobs for extraction and batch processing."""
    ai_provider: Optional[AIProvider] = None  # None -> configured default
    model_id: Optional[str] = None
    extraction_prompt: Optional[str] = None
    max_tokens: Optional[int] = Field(default=None, ge=1)
    temperature: Optional[float] = Field(default=None, ge=0.0, le=1.0)
    delay_between_docs_ms: Optional[int] = Field(default=None, ge=0)


class ExtractionResult(BaseModel):
    """Provider-agnostic output of a single extraction call."""
    extracted_text: str
    provider: AIProvider
    api_type: str
    model: str
    citations: list[Any] = Field(default_factory=list)
    usage: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: int = 0
