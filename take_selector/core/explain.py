"""Explainability log: a per-run trace of scoring and selection.

WHY: When an editor asks "why did it cut my best take?", the answer has
to be on record: every sub-score, how each edge of the take was judged,
and what the selector decided. The trace is for humans and analytics;
the engine never reads it back.

HOW: The engine calls log_scoring() once per candidate and
log_decision() once per final decision. finalize() assembles a plain
dict (JSON-ready) with segment entries sorted by start time, a
chronological timeline, and the wall-clock processing time.

RULES:
- Optional: passing no collector changes nothing in the results
- finalize() never mutates selection results
- Timeline events are "selected", "rejected" or "ambiguous"
"""

from __future__ import annotations

import time
from dataclasses import asdict
from datetime import datetime, timezone
from typing import Any, Dict, List, Optional

from take_selector.config import SelectionConfig
from take_selector.core.ir import Candidate, GroupingMode, Score, SelectionStats
from take_selector.core.scorer import ScoreDetail


class LogCollector:
    """Accumulates scoring and decision records for one run."""

    def __init__(self) -> None:
        self._started = time.perf_counter()
        self._entries: Dict[str, Dict[str, Any]] = {}
        self._timeline: List[Dict[str, Any]] = []
        self.context: Dict[str, Any] = {}

    def set_context(
        self,
        mode: GroupingMode,
        caption_count: int,
        sentence_count: int,
        candidate_count: int,
    ) -> None:
        self.context = {
            "mode": mode.value,
            "has_script": mode is GroupingMode.SCRIPT,
            "caption_count": caption_count,
            "sentence_count": sentence_count,
            "candidate_count": candidate_count,
        }

    def log_scoring(self, candidate: Candidate, score: Score, detail: ScoreDetail) -> None:
        entry = self._entries.setdefault(candidate.id, {"candidate_id": candidate.id})
        entry.update({
            "timing": {
                "start_ms": candidate.start_ms,
                "end_ms": candidate.end_ms,
                "duration_ms": candidate.duration_ms,
            },
            "text": candidate.transcribed_text,
            "scores": {
                "total": score.total_score,
                "raw": score.breakdown.as_dict(),
                "weighted": score.weighted(),
            },
            "take_info": {
                "sentence_index": candidate.sentence_index,
                "group_id": candidate.group_id,
                "take_number": candidate.take_number,
                "take_count": candidate.take_count,
                "is_false_start": candidate.is_false_start,
                "fluency_score": candidate.fluency_score,
            },
            "completeness": {
                "is_complete_sentence": detail.is_complete_sentence,
                "start_boundary": detail.start_boundary,
                "end_boundary": detail.end_boundary,
            },
            "duration_analysis": {
                "duration_ms": candidate.duration_ms,
                "status": detail.duration_status,
            },
            "script_match": {
                "matched_words": detail.matched_words,
                "sentence_words": detail.sentence_words,
            },
            "criterion_reasons": dict(detail.criterion_reasons),
        })

    def log_decision(self, candidate: Candidate, score: Score) -> None:
        entry = self._entries.setdefault(candidate.id, {"candidate_id": candidate.id})
        entry["decision"] = {
            "selected": candidate.selected,
            "reason": score.reason,
            "is_ambiguous": score.is_ambiguous,
        }
        if score.is_ambiguous:
            event = "ambiguous"
        elif candidate.selected:
            event = "selected"
        else:
            event = "rejected"
        self._timeline.append({
            "timestamp_ms": candidate.start_ms,
            "candidate_id": candidate.id,
            "event": event,
            "score": score.total_score,
        })

    def finalize(
        self,
        recording_id: str,
        config: SelectionConfig,
        stats: Optional[SelectionStats] = None,
    ) -> Dict[str, Any]:
        """Assemble the trace.

        Args:
            recording_id: Name of the recording the run was about.
            config: The config the run used.
            stats: Aggregate statistics of the run, if available.

        Returns:
            A JSON-serializable dict.
        """
        processing_ms = (time.perf_counter() - self._started) * 1000.0
        has_script = bool(self.context.get("has_script"))

        entries = sorted(
            (dict(e) for e in self._entries.values() if "timing" in e),
            key=lambda e: (e["timing"]["start_ms"], e["candidate_id"]),
        )
        timeline = sorted(self._timeline, key=lambda e: (e["timestamp_ms"], e["candidate_id"]))

        return {
            "recording_id": recording_id,
            "created_at": datetime.now(timezone.utc).isoformat(),
            "processing_time_ms": round(processing_ms, 3),
            "config": {
                "mode": self.context.get("mode"),
                "weights": config.weights_for(has_script).as_dict(),
                "min_score": config.min_score,
                "tie_band": config.tie_band,
            },
            "context": dict(self.context),
            "segments": entries,
            "timeline": [dict(e) for e in timeline],
            "stats": asdict(stats) if stats is not None else None,
        }
