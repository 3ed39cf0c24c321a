"""Best-effort signal extraction from free-form model text.

Pure functions, no DB access. Neither function raises on unexpected input:
model output is not guaranteed to be well formed.
"""

import json
import re
from dataclasses import dataclass, field

from arena.llm.helpers import parse_json_response

_FENCED_JSON_RE = re.compile(r"```json\s*(\{[\s\S]*?\})\s*```", re.IGNORECASE)
_INLINE_MARKER_RE = re.compile(r"\{[^{}]*\"stage_complete\"\s*:\s*true[^{}]*\}", re.IGNORECASE)
_MARKER_TEXT_RE = re.compile(r"\"stage_complete\"\s*:\s*true", re.IGNORECASE)

_SCORE_BEFORE_RE = re.compile(r"saturation (?:score|level|rating)[^\d]*?(\d+)", re.IGNORECASE)
_SCORE_AFTER_RE = re.compile(
    r"\b(\d{1,3})\s*(?:/\s*100|%)?\s*(?:on\s+the\s+)?(?:market\s+)?saturation", re.IGNORECASE
)

DEFAULT_SATURATION = 50

# Checked in order; first matching tier wins
_SATURATION_KEYWORDS: tuple[tuple[tuple[str, ...], int], ...] = (
    (("highly saturated", "high saturation", "crowded market", "very competitive"), 85),
    (("moderately saturated", "moderate saturation", "medium saturation"), 50),
    (("low saturation", "lightly saturated", "few competitors"), 25),
)


@dataclass
class CompletionMarker:
    """Embedded ``{"stage_complete": true, ...}`` found in evaluator text."""

    score: int | None = None
    takeaways: list[str] = field(default_factory=list)


def _marker_from_payload(payload: object) -> CompletionMarker | None:
    if not isinstance(payload, dict) or payload.get("stage_complete") is not True:
        return None
    score = payload.get("score")
    if isinstance(score, bool) or not isinstance(score, (int, float)):
        score = None
    takeaways = payload.get("takeaways")
    if not isinstance(takeaways, list):
        takeaways = []
    return CompletionMarker(
        score=int(max(0, min(10, score))) if score is not None else None,
        takeaways=[str(t) for t in takeaways],
    )


def extract_completion_marker(text: str) -> CompletionMarker | None:
    """Find a stage completion marker in evaluator text.

    Tries a fenced ```json block first, then an inline object mentioning
    ``stage_complete``, then a bare textual match. Returns None when the text
    carries no marker.
    """
    for pattern in (_FENCED_JSON_RE, _INLINE_MARKER_RE):
        for match in pattern.finditer(text):
            try:
                marker = _marker_from_payload(parse_json_response(match.group(1) if pattern.groups else match.group(0)))
            except json.JSONDecodeError:
                continue
            if marker is not None:
                return marker

    if _MARKER_TEXT_RE.search(text):
        return CompletionMarker()
    return None


def heuristic_saturation(text: str) -> tuple[int, str]:
    """Estimate market saturation (1-100) from a competitor narrative.

    Returns ``(score, source)`` where source is ``"heuristic"`` when a number
    or keyword was found, otherwise ``"default"`` with a score of 50.
    """
    for pattern in (_SCORE_BEFORE_RE, _SCORE_AFTER_RE):
        match = pattern.search(text)
        if match:
            return max(1, min(100, int(match.group(1)))), "heuristic"

    lowered = text.lower()
    for keywords, score in _SATURATION_KEYWORDS:
        if any(keyword in lowered for keyword in keywords):
            return score, "heuristic"

    return DEFAULT_SATURATION, "default"
