"""Adapter: caption transcript JSON to Caption IR objects.

WHY: The upstream transcription and cleanup stage writes captions as
JSON with camelCase keys (``startMs``, ``endMs``); hand-edited files and
other tools use snake_case. The selection core only ever sees Caption
objects, so every input shape is reconciled here, once.

HOW: The decoded document is validated against
``schemas/transcript.schema.json`` with jsonschema, unwrapped from its
optional ``{"captions": [...]}`` envelope, and converted caption by
caption.

RULES:
- Accepts a bare array or an object with a "captions" array
- camelCase keys win over snake_case when both are present
- Captions are returned sorted by start time (stable)
- end before start raises TranscriptFormatError
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any, Dict, List, Optional

import jsonschema

from take_selector.core.ir import Caption

_SCHEMA_PATH = Path(__file__).resolve().parent.parent / "schemas" / "transcript.schema.json"


class TranscriptFormatError(ValueError):
    """Raised when a transcript file cannot be turned into captions."""


def _load_schema() -> Dict[str, Any]:
    with open(_SCHEMA_PATH, encoding="utf-8") as f:
        return json.load(f)


_CACHED_SCHEMA: Optional[Dict[str, Any]] = None


def _get_schema() -> Dict[str, Any]:
    global _CACHED_SCHEMA
    if _CACHED_SCHEMA is None:
        _CACHED_SCHEMA = _load_schema()
    return _CACHED_SCHEMA


def _pick(item: Dict[str, Any], camel: str, snake: str) -> float:
    value = item[camel] if camel in item else item[snake]
    return float(value)


def captions_from_json(data: Any) -> List[Caption]:
    """Convert a decoded transcript document into Caption objects.

    Raises:
        jsonschema.ValidationError: If the document does not match the
            transcript schema.
        TranscriptFormatError: If a caption ends before it starts.
    """
    jsonschema.validate(instance=data, schema=_get_schema())

    items = data["captions"] if isinstance(data, dict) else data
    captions: List[Caption] = []
    for position, item in enumerate(items):
        start_ms = _pick(item, "startMs", "start_ms")
        end_ms = _pick(item, "endMs", "end_ms")
        if end_ms < start_ms:
            raise TranscriptFormatError(
                "Caption {} ends before it starts ({} < {})".format(position, end_ms, start_ms)
            )
        confidence = item.get("confidence")
        captions.append(Caption(
            text=item["text"],
            start_ms=start_ms,
            end_ms=end_ms,
            confidence=float(confidence) if confidence is not None else None,
        ))

    captions.sort(key=lambda c: c.start_ms)
    return captions


def load_transcript(path: str | Path) -> List[Caption]:
    """Read and convert a transcript JSON file.

    Raises:
        TranscriptFormatError: If the file is not valid JSON or a caption
            has inverted timing.
        jsonschema.ValidationError: If the document does not match the
            transcript schema.
    """
    try:
        data = json.loads(Path(path).read_text(encoding="utf-8"))
    except json.JSONDecodeError as e:
        raise TranscriptFormatError("Transcript {} is not valid JSON: {}".format(path, e))
    return captions_from_json(data)
