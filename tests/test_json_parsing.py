"""Tests for parsing provider extraction text."""

from __future__ import annotations

import pytest

from contract_pipeline.exceptions import ParseError
from contract_pipeline.services.json_parsing import parse_extraction_text, strip_code_fences

PAYLOAD = '{"extractedData": {"systemCapacity": "1300"}, "confidence": {"systemCapacity": 0.95}, "notes": "ok"}'


class TestParseExtractionText:

    def test_plain_json(self) -> None:
        assert parse_extraction_text(PAYLOAD)["extractedData"] == {"systemCapacity": "1300"}

    def test_fenced_json_matches_unfenced(self) -> None:
        fenced = f"```json\n{PAYLOAD}\n```"

        assert parse_extraction_text(fenced) == parse_extraction_text(PAYLOAD)

    def test_bare_fence_with_surrounding_whitespace(self) -> None:
        fenced = f"\n\n```\n{PAYLOAD}\n```\n  "

        assert parse_extraction_text(fenced) == parse_extraction_text(PAYLOAD)

    def test_json_array(self) -> None:
        assert parse_extraction_text("[1, 2, 3]") == [1, 2, 3]

    def test_prose_raises_parse_error(self) -> None:
        with pytest.raises(ParseError) as exc_info:
            parse_extraction_text("I could not read this contract.")

        assert exc_info.value.error_code == "parse_failed"

    def test_fenced_garbage_raises_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_extraction_text("```json\n{not json}\n```")

    def test_empty_text_raises_parse_error(self) -> None:
        with pytest.raises(ParseError):
            parse_extraction_text("")


class TestStripCodeFences:

    def test_removes_all_markers(self) -> None:
        assert strip_code_fences("```json\n{}\n```") == "{}"

    def test_leaves_unfenced_text_alone(self) -> None:
        assert strip_code_fences('  {"a": 1}  ') == '{"a": 1}'
