"""Tests for LEARNINGS_CANDIDATE extraction and stripping."""

import pytest

from src.memory.extractor import clean_response, extract_learnings

BLOCK = (
    '{"observed_preferences": [{"key": "defaults.export_format", "value": "DOCX", '
    '"durability_days": 60}], "corrections": ["use Bluebook citations"], '
    '"repeated_tasks": [{"name": "weekly digest", "trigger_phrases": ["digest"], '
    '"steps": ["search", "summarize"]}]}'
)


class TestExtractLearnings:
    def test_plain_block(self):
        learnings = extract_learnings(f"Here you go.\nLEARNINGS_CANDIDATE\n{BLOCK}")
        assert learnings.observed_preferences[0].key == "defaults.export_format"
        assert learnings.observed_preferences[0].durability_days == 60
        assert learnings.corrections == ["use Bluebook citations"]
        assert learnings.repeated_tasks[0].steps == ["search", "summarize"]

    def test_fenced_block(self):
        text = f"Done.\n\n```json\nLEARNINGS_CANDIDATE\n{BLOCK}\n```"
        assert extract_learnings(text) is not None

    def test_marker_then_fence(self):
        text = f"Done.\nLEARNINGS_CANDIDATE:\n```json\n{BLOCK}\n```\n"
        assert extract_learnings(text).corrections == ["use Bluebook citations"]

    def test_missing_fields_default_empty(self):
        learnings = extract_learnings('ok LEARNINGS_CANDIDATE {"corrections": []}')
        assert learnings.is_empty
        assert learnings.redact_notes == []

    def test_null_lists_read_as_empty(self):
        learnings = extract_learnings(
            'Done.\nLEARNINGS_CANDIDATE: {"observed_preferences": [{"key": "defaults.export_format", '
            '"value": "DOCX", "durability_days": 45}], "corrections": null, '
            '"repeated_tasks": null, "redact_notes": null}'
        )
        assert learnings is not None
        assert learnings.observed_preferences[0].value == "DOCX"
        assert learnings.corrections == []
        assert learnings.repeated_tasks == []
        assert learnings.redact_notes == []

    @pytest.mark.parametrize(
        "text",
        [
            None,
            "",
            "No learnings here.",
            "Answer.\nLEARNINGS_CANDIDATE\n{not json}",
            "Answer.\nLEARNINGS_CANDIDATE\n{\"observed_preferences\": \"oops\"}",
            "Answer.\nLEARNINGS_CANDIDATE\n[1, 2, 3]",
        ],
    )
    def test_absent_or_malformed_is_none(self, text):
        assert extract_learnings(text) is None

    def test_negative_durability_rejected(self):
        text = (
            'x LEARNINGS_CANDIDATE {"observed_preferences": '
            '[{"key": "persona.tone", "value": "concise", "durability_days": -1}]}'
        )
        assert extract_learnings(text) is None


class TestCleanResponse:
    def test_strips_block(self):
        assert clean_response(f"Here you go.\nLEARNINGS_CANDIDATE\n{BLOCK}") == "Here you go."

    def test_strips_fenced_block(self):
        text = f"Done.\n\n```json\nLEARNINGS_CANDIDATE\n{BLOCK}\n```"
        assert clean_response(text) == "Done."

    def test_only_complete_blocks_stripped(self):
        assert clean_response("Answer.\nLEARNINGS_CANDIDATE\n{broken") == "Answer.\nLEARNINGS_CANDIDATE\n{broken"
        assert clean_response("Answer.\nLEARNINGS_CANDIDATE\n{bad json}") == "Answer."

    def test_text_without_block_unchanged(self):
        assert clean_response("  Just an answer.  ") == "Just an answer."

    def test_none(self):
        assert clean_response(None) == ""
