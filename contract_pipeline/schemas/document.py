"""
Data models for storage objects, per-document results and batch outcomes.
"""

from datetime import datetime
from typing import Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from contract_pipeline.schemas.extraction import AIProvider


class StorageObject(BaseModel):
    """A single object listed under a storage prefix."""
    key: str
    size: int = 0
    last_modified: Optional[datetime] = None
    etag: Optional[str] = None


class DocumentResult(BaseModel):
    """Successful outcome of processing one document."""
    success: Literal[True] = True
    filename: str
    original_key: str
    processed_key: str
    extracted_data: Any
    confidence: dict[str, Any] = Field(default_factory=dict)
    notes: Optional[Any] = None
    citations: list[Any] = Field(default_factory=list)
    usage: dict[str, Any] = Field(default_factory=dict)
    processing_time_ms: int = 0
    api_type: str
    provider: AIProvider


class BatchItemFailure(BaseModel):
    """A document that failed inside a batch run."""
    success: Literal[False] = False
    key: str
    error: str
    error_code: str = "pipeline_error"


class BatchOutcome(BaseModel):
    """Aggregated result of one batch run, in listing order."""
    processed: int = 0
    failed: int = 0
    results: list[Union[DocumentResult, BatchItemFailure]] = Field(default_factory=list)
