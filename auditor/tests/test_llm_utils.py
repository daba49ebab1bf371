"""Tests for shared LLM/agent response parsing utilities."""

import pytest

from auditor.common.errors import MalformedResponse
from auditor.common.llm_utils import extract_issue_list, parse_llm_json


class TestParseLlmJson:
    def test_valid_json(self):
        assert parse_llm_json('{"issues": []}') == {"issues": []}

    def test_json_with_markdown_fences(self):
        raw = '```json\n{"issues": [{"type": "HIPAA"}]}\n```'
        assert parse_llm_json(raw) == {"issues": [{"type": "HIPAA"}]}

    def test_json_with_plain_fences(self):
        assert parse_llm_json('```\n{"a": 1}\n```') == {"a": 1}

    def test_json_embedded_in_text(self):
        raw = 'Here are the findings: {"issues": []} Let me know if you need more.'
        assert parse_llm_json(raw) == {"issues": []}

    @pytest.mark.parametrize("raw", ["", "   ", None])
    def test_empty_raises(self, raw):
        with pytest.raises(MalformedResponse):
            parse_llm_json(raw)

    def test_no_json_raises(self):
        with pytest.raises(MalformedResponse):
            parse_llm_json("I could not analyze this content.")

    def test_invalid_json_raises(self):
        with pytest.raises(MalformedResponse):
            parse_llm_json('{"issues: [')

    def test_array_is_not_an_object(self):
        with pytest.raises(MalformedResponse, match="Expected JSON object"):
            parse_llm_json('[{"type": "HIPAA"}]')


class TestExtractIssueList:
    def test_top_level(self):
        assert extract_issue_list({"issues": [1, 2]}) == [1, 2]

    def test_wrapped_in_result(self):
        assert extract_issue_list({"result": {"issues": [1]}, "status": "completed"}) == [1]

    def test_empty_list_is_valid(self):
        assert extract_issue_list({"issues": []}) == []

    @pytest.mark.parametrize("data", [{}, {"issues": None}, {"issues": "none"}, {"result": "ok"}])
    def test_missing_or_wrong_type_raises(self, data):
        with pytest.raises(MalformedResponse):
            extract_issue_list(data)
