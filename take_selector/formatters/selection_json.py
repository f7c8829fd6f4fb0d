"""Selection JSON formatter: the cut list for the video-cutting stage.

WHY: The cutting stage needs machine-readable time ranges of the takes
to keep, and the review UI needs the rejected ones with their reasons.
Both read this one document.

HOW: Selected and rejected candidates are serialized with their final
score, breakdown, and reason; missing sentences carry their text so a
warning can quote them. The document is validated against
``schemas/selection.schema.json`` before it is returned.

RULES:
- Output suffix is "-selection.json"
- Segments appear in start-time order
- Schema validation is mandatory and raises on invalid output
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any

import jsonschema

from take_selector import __version__
from take_selector.core.ir import Candidate, Score, SelectionResult
from take_selector.formatters.base import BaseFormatter, FormatterOutput

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "selection.schema.json"


def _load_schema() -> dict[str, Any]:
    """Load the selection JSON schema from disk."""
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: dict[str, Any] | None = None


def _get_schema() -> dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def _segment_to_dict(candidate: Candidate, score: Score) -> dict[str, Any]:
    return {
        "id": candidate.id,
        "start_ms": candidate.start_ms,
        "end_ms": candidate.end_ms,
        "text": candidate.transcribed_text,
        "score": score.total_score,
        "reason": score.reason,
        "is_ambiguous": score.is_ambiguous,
        "sentence_index": candidate.sentence_index,
        "group_id": candidate.group_id,
        "take_number": candidate.take_number,
        "take_count": candidate.take_count,
        "is_false_start": candidate.is_false_start,
        "breakdown": score.breakdown.as_dict(),
    }


def build_selection_document(result: SelectionResult) -> dict[str, Any]:
    """Build the JSON-ready selection document (not yet validated)."""
    sentence_text = {s.index: s.text for s in result.sentences}
    stats = result.stats
    return {
        "version": __version__,
        "mode": result.mode.value,
        "selected": [_segment_to_dict(c, result.score_for(c.id)) for c in result.selected],
        "rejected": [_segment_to_dict(c, result.score_for(c.id)) for c in result.rejected],
        "missing": [
            {"sentence_index": index, "text": sentence_text.get(index, "")}
            for index in result.missing
        ],
        "stats": {
            "total_candidates": stats.total_candidates,
            "selected_candidates": stats.selected_candidates,
            "original_duration_ms": stats.original_duration_ms,
            "selected_duration_ms": stats.selected_duration_ms,
            "script_coverage": stats.script_coverage,
            "repetitions_removed": stats.repetitions_removed,
            "average_score": stats.average_score,
            "ambiguous_candidates": stats.ambiguous_candidates,
            "false_starts_detected": stats.false_starts_detected,
        },
    }


class SelectionJSONFormatter(BaseFormatter):
    """Formatter that produces the selection JSON document."""

    @property
    def name(self) -> str:
        return "Selection JSON"

    def format(self, result: SelectionResult) -> list[FormatterOutput]:
        """Serialize the selection result.

        Raises:
            jsonschema.ValidationError: If the document does not conform
                to the selection schema.
        """
        output = build_selection_document(result)

        schema = _get_schema()
        jsonschema.validate(instance=output, schema=schema)

        content = json.dumps(output, indent=2, ensure_ascii=False)

        return [
            FormatterOutput(
                suffix="-selection.json",
                content=content,
                media_type="application/json",
            )
        ]
