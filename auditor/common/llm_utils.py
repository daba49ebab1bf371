"""Shared utilities for parsing structured LLM and agent responses."""

from __future__ import annotations

import json

from .errors import MalformedResponse


def parse_llm_json(raw: str) -> dict:
    """Parse a JSON object from an LLM response.

    Tries in order:
    1. Strip markdown code fences, then json.loads
    2. Extract substring between first '{' and last '}', then json.loads

    Raises:
        MalformedResponse: if no JSON object can be recovered
    """
    if not raw or not raw.strip():
        raise MalformedResponse("Empty response from classifier")

    text = raw.strip()
    if text.startswith("```"):
        lines = [l for l in text.split("\n") if not l.strip().startswith("```")]
        text = "\n".join(lines)

    try:
        data = json.loads(text)
    except json.JSONDecodeError:
        start = raw.find("{")
        end = raw.rfind("}") + 1
        if start < 0 or end <= start:
            raise MalformedResponse("No JSON object in response")
        try:
            data = json.loads(raw[start:end])
        except json.JSONDecodeError as e:
            raise MalformedResponse(f"Invalid JSON in response: {e}") from e

    if not isinstance(data, dict):
        raise MalformedResponse(f"Expected JSON object, got {type(data).__name__}")
    return data


def extract_issue_list(data: dict) -> list:
    """Return the raw ``issues`` list from a response object.

    Agent responses may wrap the list in a ``result`` object.

    Raises:
        MalformedResponse: if no ``issues`` list is present
    """
    container = data
    if "issues" not in container and isinstance(data.get("result"), dict):
        container = data["result"]

    issues = container.get("issues")
    if not isinstance(issues, list):
        raise MalformedResponse("Response is missing an 'issues' list")
    return issues
