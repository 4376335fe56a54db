"""Unit tests for provider response normalization"""
from types import SimpleNamespace

import pytest

from ticket_assistant.triage.application.normalization import (
    decode_payload, extract_payloads, strip_code_fence
)

PAYLOAD = '{"summary": "s", "priority": "high", "helpfulNotes": "n", "relatedSkills": ["React"]}'


class TestExtractPayloads:
    def test_raw_string(self):
        assert extract_payloads(PAYLOAD) == [PAYLOAD]

    def test_output_items_text_context_content(self):
        response = {"output": [{"text": "a"}, {"context": "b"}, {"content": "c"}, "d"]}
        assert extract_payloads(response) == ["a", "b", "c", "d"]

    def test_output_string(self):
        assert extract_payloads({"output": PAYLOAD}) == [PAYLOAD]

    def test_openai_style_object(self):
        response = SimpleNamespace(
            choices=[SimpleNamespace(message=SimpleNamespace(content=PAYLOAD))]
        )
        assert extract_payloads(response) == [PAYLOAD]

    def test_combined_fields_in_priority_order(self):
        response = {"outputString": "last", "content": "second", "text": "first"}
        assert extract_payloads(response) == ["first", "second", "last"]

    def test_duplicates_and_blanks_dropped(self):
        response = {"output": [{"text": PAYLOAD}, {"text": "  "}], "text": PAYLOAD}
        assert extract_payloads(response) == [PAYLOAD]

    def test_unknown_shape(self):
        assert extract_payloads({"data": 1}) == []
        assert extract_payloads(None) == []
        assert extract_payloads(42) == []


class TestDecodePayload:
    def test_fenced_json(self):
        raw = f"Here you go:\n```json\n{PAYLOAD}\n```\nThanks"
        assert decode_payload(raw)["priority"] == "high"

    def test_fence_without_language(self):
        assert strip_code_fence("```\n{}\n```") == "{}"

    def test_unfenced_is_trimmed(self):
        assert strip_code_fence(f"  {PAYLOAD}\n") == PAYLOAD

    def test_not_json(self):
        with pytest.raises(ValueError):
            decode_payload("I could not classify this ticket")

    def test_json_array_rejected(self):
        with pytest.raises(ValueError):
            decode_payload('["React"]')
