"""
Tests for the report simplifier.
"""

import asyncio
import json

import pytest

from medsimplify.config import Settings
from medsimplify.core.errors import UpstreamFailure, ValidationError
from medsimplify.services.prompts import SECTION_HEADINGS, TRUNCATION_MARKER
from medsimplify.services.simplifier import (
    DEGRADED_MESSAGE,
    STATIC_VISUAL_KEYWORDS,
    ReportSimplifier,
    SimplificationRequest,
    parse_json_reply,
    parse_text_reply,
    summarize_lines,
    truncate_report,
)

from conftest import FakeTextGenerator, SAMPLE_REPLY


def simplify(simplifier, report, **kwargs):
    return asyncio.run(simplifier.simplify(SimplificationRequest.create(report, **kwargs)))


@pytest.fixture
def text_settings():
    return Settings(_env_file=None, response_contract="text", max_input_chars=100)


@pytest.fixture
def json_settings():
    return Settings(_env_file=None, response_contract="json", max_input_chars=100)


class TestSimplificationRequest:
    """Test request validation."""

    def test_report_trimmed(self):
        request = SimplificationRequest.create("  Glucose: 95  \n")
        assert request.report == "Glucose: 95"

    def test_defaults(self):
        request = SimplificationRequest.create("Glucose: 95", None, "  ")
        assert request.target_lang == "en"
        assert request.tone == "friendly"

    @pytest.mark.parametrize("report", [None, "", "   ", "\n\t"])
    def test_blank_report_rejected(self, report):
        with pytest.raises(ValidationError) as exc_info:
            SimplificationRequest.create(report)
        assert exc_info.value.message == "report text required"

    def test_request_is_immutable(self):
        request = SimplificationRequest.create("Glucose: 95")
        with pytest.raises(AttributeError):
            request.report = "changed"


class TestTruncation:
    """Test input truncation."""

    def test_short_text_unchanged(self):
        assert truncate_report("abc", 10) == "abc"

    def test_text_at_limit_unchanged(self):
        assert truncate_report("a" * 10, 10) == "a" * 10

    def test_long_text_cut_with_marker(self):
        text = "".join(str(i % 10) for i in range(25))
        assert truncate_report(text, 10) == text[:10] + TRUNCATION_MARKER

    def test_truncated_text_sent_downstream(self, text_settings):
        generator = FakeTextGenerator()
        simplifier = ReportSimplifier(generator, text_settings)
        report = "Hemoglobin 10.2 " * 20

        simplify(simplifier, report)

        user = generator.calls[0]["user"]
        expected = report.strip()[:100] + TRUNCATION_MARKER
        assert f'"""{expected}"""' in user

    def test_default_limit_is_8000(self):
        assert Settings(_env_file=None).max_input_chars == 8000


class TestPrompts:
    """Test prompt construction."""

    def test_text_contract_prompts(self, text_settings):
        generator = FakeTextGenerator()
        simplify(ReportSimplifier(generator, text_settings), "TSH: 6.1", target_lang="de", tone="calm")

        call = generator.calls[0]
        for heading in SECTION_HEADINGS:
            assert heading in call["system"]
        assert "Keep medical accuracy" in call["system"]
        assert "Target language: de" in call["user"]
        assert "Tone: calm" in call["user"]
        assert "Return plain text only" in call["user"]

    def test_json_contract_prompts(self, json_settings):
        generator = FakeTextGenerator(reply='{"simplified": "ok"}')
        simplify(ReportSimplifier(generator, json_settings), "TSH: 6.1")

        call = generator.calls[0]
        assert '"visual_keywords"' in call["system"]
        assert "Return JSON only" in call["user"]

    def test_generation_parameters(self, text_settings):
        generator = FakeTextGenerator()
        simplify(ReportSimplifier(generator, text_settings), "TSH: 6.1")

        assert generator.calls[0]["temperature"] == 0.2
        assert generator.calls[0]["max_tokens"] == 800


class TestTextContract:
    """Test the plain-text response contract."""

    def test_reply_passed_through(self, text_settings):
        result = simplify(ReportSimplifier(FakeTextGenerator(), text_settings), "Hb: 10.2")

        assert result.simplified == SAMPLE_REPLY
        assert result.visual_keywords == list(STATIC_VISUAL_KEYWORDS)
        assert result.degraded is False

    def test_summary_from_first_lines(self):
        result = parse_text_reply(SAMPLE_REPLY)
        assert result.short_summary == (
            "What this report says Your hemoglobin is a little low. What the results mean"
        )

    def test_summary_skips_blank_lines(self):
        assert summarize_lines("\n\nOne\n\n  Two  \nThree\nFour") == "One Two Three"

    def test_summary_of_short_reply(self):
        assert summarize_lines("Only line") == "Only line"


class TestJSONContract:
    """Test the JSON response contract."""

    def test_strict_json(self):
        raw = json.dumps({
            "simplified": "Your blood count is slightly low.",
            "visual_keywords": ["blood", "iron rich food"],
            "short_summary": "Slightly low hemoglobin."
        })
        result = parse_json_reply(raw)

        assert result.simplified == "Your blood count is slightly low."
        assert result.short_summary == "Slightly low hemoglobin."
        assert result.visual_keywords == ["blood", "iron rich food"]

    def test_embedded_json(self):
        raw = 'Here you go:\n```json\n{"simplified": "All good.", "visual_keywords": ["heart"]}\n```'
        result = parse_json_reply(raw)

        assert result.simplified == "All good."
        assert result.visual_keywords == ["heart"]
        assert result.short_summary == ""

    def test_plain_text_wrapped(self):
        raw = "Your results look fine.\nKeep up the good work.\nSee your doctor yearly.\nExtra."
        result = parse_json_reply(raw)

        assert result.simplified == raw
        assert result.visual_keywords == []
        assert result.short_summary == (
            "Your results look fine. Keep up the good work. See your doctor yearly."
        )

    def test_non_object_json_wrapped(self):
        result = parse_json_reply('["a", "b"]')
        assert result.simplified == '["a", "b"]'
        assert result.visual_keywords == []

    def test_bad_field_types_ignored(self):
        raw = json.dumps({"simplified": "Fine.", "visual_keywords": "heart", "short_summary": None})
        result = parse_json_reply(raw)

        assert result.simplified == "Fine."
        assert result.short_summary == ""
        assert result.visual_keywords == []

    @pytest.mark.parametrize("payload", [
        {"summary": "Hemoglobin is low."},
        {"simplified": 5, "visual_keywords": ["heart"]},
        {"simplified": "   ", "short_summary": "Low iron."},
    ])
    def test_object_without_simplified_text_wrapped(self, payload):
        raw = json.dumps(payload)
        result = parse_json_reply(raw)

        assert result.simplified == raw
        assert result.short_summary == raw
        assert result.visual_keywords == []

    def test_blank_keywords_dropped(self):
        raw = json.dumps({"simplified": "x", "visual_keywords": ["  ", "lungs", 3, None]})
        assert parse_json_reply(raw).visual_keywords == ["lungs"]

    def test_json_contract_through_simplifier(self, json_settings):
        reply = json.dumps({"simplified": "Plain words.", "visual_keywords": ["kidney"], "short_summary": "Fine."})
        result = simplify(ReportSimplifier(FakeTextGenerator(reply=reply), json_settings), "Creatinine: 1.0")

        assert result.simplified == "Plain words."
        assert result.visual_keywords == ["kidney"]


class TestDegradedResult:
    """Test upstream failure handling."""

    @pytest.mark.parametrize("error", [
        UpstreamFailure("quota exceeded"),
        ConnectionError("connection reset"),
        TimeoutError("timed out"),
    ])
    def test_failure_returns_degraded(self, text_settings, error):
        generator = FakeTextGenerator(error=error)
        result = simplify(ReportSimplifier(generator, text_settings), "Hb: 10.2")

        assert result.degraded is True
        assert result.simplified == DEGRADED_MESSAGE
        assert result.short_summary == ""
        assert result.visual_keywords == []

    def test_no_retry(self, text_settings):
        generator = FakeTextGenerator(error=ConnectionError("down"))
        simplify(ReportSimplifier(generator, text_settings), "Hb: 10.2")

        assert len(generator.calls) == 1

    def test_empty_reply_degrades(self, json_settings):
        generator = FakeTextGenerator(reply="   ")
        result = simplify(ReportSimplifier(generator, json_settings), "Hb: 10.2")

        assert result.degraded is True
