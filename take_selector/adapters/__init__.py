"""Adapter modules for converting external transcript files into IR.

WHY: Transcripts arrive from more than one tool, with different key
conventions. Adapters keep those differences out of the selection core.

RULES:
- Adapters validate before converting and never return partial data
- Each adapter lives in its own module under this package
"""

from take_selector.adapters.transcript_adapter import (
    TranscriptFormatError,
    captions_from_json,
    load_transcript,
)

__all__ = ["TranscriptFormatError", "captions_from_json", "load_transcript"]
