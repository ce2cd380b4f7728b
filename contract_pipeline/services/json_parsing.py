"""Parse provider output that should be JSON, possibly wrapped in a markdown code fence."""

from __future__ import annotations

import json
import re
from typing import Any

from contract_pipeline.exceptions import ParseError
from contract_pipeline.logging_config import get_logger

logger = get_logger(__name__)

_JSON_FENCE = re.compile(r"```json\n?")
_BARE_FENCE = re.compile(r"```\n?")


def strip_code_fences(text: str) -> str:
    """Remove every ```json / ``` marker and surrounding whitespace."""
    return _BARE_FENCE.sub("", _JSON_FENCE.sub("", text)).strip()


def parse_extraction_text(text: str) -> Any:
    """
    Parse extraction text as JSON.

    Strategy:
    1. ``json.loads`` on the raw text.
    2. Strip code-fence markers and try again.
    3. Raise ``ParseError`` if the cleaned text still is not JSON.
    """
    try:
        return json.loads(text)
    except (json.JSONDecodeError, TypeError):
        logger.warning("extraction_json_invalid_retrying_without_fences")

    try:
        return json.loads(strip_code_fences(text or ""))
    except json.JSONDecodeError as exc:
        raise ParseError(f"Extraction output is not valid JSON: {exc.msg} (line {exc.lineno}, column {exc.colno})") from exc
