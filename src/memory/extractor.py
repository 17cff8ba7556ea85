"""Extraction of the trailing LEARNINGS_CANDIDATE block from AI replies.

The model is asked to end each reply with ``LEARNINGS_CANDIDATE`` followed
by one JSON object (optionally inside a code fence). The object is
validated against ``LearningsCandidate``; a missing or malformed block
means "no learnings" and is not an error.
"""

import json
import logging
import re

from pydantic import ValidationError

from src.memory.schemas import LearningsCandidate

logger = logging.getLogger(__name__)

LEARNINGS_MARKER = "LEARNINGS_CANDIDATE"

_FENCE_OPEN = r"(?:```(?:json)?\s*)?"
_BLOCK_RE = re.compile(
    r"\s*" + _FENCE_OPEN + LEARNINGS_MARKER + r"[:\s]*" + _FENCE_OPEN
    + r"(\{.*\})\s*(?:```)?\s*$",
    re.DOTALL,
)


def extract_learnings(response: str | None) -> LearningsCandidate | None:
    """Parse the trailing learnings block, or return None if there is none."""
    if not response:
        return None

    match = _BLOCK_RE.search(response)
    if match is None:
        return None

    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        logger.warning("Failed to parse learnings block as JSON: %s", e)
        return None
    if not isinstance(data, dict):
        return None

    try:
        return LearningsCandidate.model_validate(data)
    except ValidationError as e:
        logger.warning("Learnings block failed validation: %s", e.error_count())
        return None


def clean_response(response: str | None) -> str:
    """Return the reply with any trailing learnings block removed."""
    if not response:
        return ""
    return _BLOCK_RE.sub("", response, count=1).strip()
