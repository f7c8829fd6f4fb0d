"""Plain text selection report for editors.

WHY: Editors reviewing a rough cut want to see at a glance which takes
were kept, which were dropped and why, and which script lines were never
recorded, without opening JSON.

HOW: One line per candidate in start-time order, marked "+" (kept) or
"-" (dropped), with its timecode range and reason, followed by a
section listing missing script lines.

RULES:
- Timecodes are mm:ss.mmm
- No trailing whitespace on any line
- Output suffix: "-selection.txt"
- Media type: "text/plain"
"""

from __future__ import annotations

from typing import List

from take_selector.core.ir import Candidate, SelectionResult
from take_selector.formatters.base import BaseFormatter, FormatterOutput


def format_timecode(ms: float) -> str:
    """Format milliseconds as mm:ss.mmm ("01:02.500")."""
    total = int(round(max(ms, 0.0)))
    minutes, rest = divmod(total, 60000)
    seconds, millis = divmod(rest, 1000)
    return "{:02d}:{:02d}.{:03d}".format(minutes, seconds, millis)


def _line(marker: str, candidate: Candidate, reason: str) -> str:
    return "{} [{} - {}] {}\n    {}".format(
        marker,
        format_timecode(candidate.start_ms),
        format_timecode(candidate.end_ms),
        reason,
        candidate.transcribed_text.strip(),
    ).rstrip()


class PlainTextFormatter(BaseFormatter):
    """Formatter that produces a human-readable selection report."""

    @property
    def name(self) -> str:
        return "Plain Text"

    def format(self, result: SelectionResult) -> List[FormatterOutput]:
        stats = result.stats
        lines: List[str] = [
            "Mode: {}".format(result.mode.value),
            "Kept {} of {} take(s), {} repetition(s) removed".format(
                stats.selected_candidates, stats.total_candidates, stats.repetitions_removed,
            ),
        ]
        if result.sentences:
            lines.append("Script coverage: {:.0f}%".format(stats.script_coverage))
        lines.append("")

        candidates = sorted(
            result.selected + result.rejected,
            key=lambda c: (c.start_ms, c.id),
        )
        for candidate in candidates:
            marker = "+" if candidate.selected else "-"
            lines.append(_line(marker, candidate, result.score_for(candidate.id).reason))

        if result.missing:
            sentence_text = {s.index: s.text for s in result.sentences}
            lines.append("")
            lines.append("Missing script lines:")
            for index in result.missing:
                lines.append("  {}. {}".format(index + 1, sentence_text.get(index, "")).rstrip())

        content = "\n".join(lines) + "\n"

        return [
            FormatterOutput(
                suffix="-selection.txt",
                content=content,
                media_type="text/plain",
            )
        ]
