"""Multi-criteria scoring of candidate takes.

WHY: No single signal tells a good take from a bad one. A take can match
the script perfectly and still be cut mid-word, or be fluent but belong
to an earlier, abandoned attempt. Five independent sub-scores, weighted
per grouping mode, make the trade-off explicit and explainable.

HOW: score_candidate() computes the five sub-scores (0–100), combines
them with the mode's ScoringWeights, and renders a reason from short
criterion notes. It also returns a ScoreDetail with everything the
explainability log needs. score_candidates() maps it over a run.

RULES:
- Every sub-score and the total lie within [0, 100]
- Coverage is 0 without a script; its weight is 0 in that mode
- Take order rewards recency: the last take gets the first tier
- The verdict in the reason is provisional (total ≥ min_score);
  the selector re-renders it after deciding
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Tuple

from take_selector.config import SelectionConfig
from take_selector.core.ir import (
    Candidate,
    Caption,
    GroupingMode,
    Score,
    ScoreBreakdown,
    ScriptSentence,
)
from take_selector.core.text import normalize, split_words, token_similarity

logger = logging.getLogger(__name__)

VERDICT_SELECTED = "Selected"
VERDICT_REJECTED = "Rejected"

DURATION_TOO_SHORT = "too_short"
DURATION_IDEAL = "ideal"
DURATION_TOO_LONG = "too_long"

_SENTENCE_END_RE = re.compile(r"[.!?]$")
_BOUNDARY_END_RE = re.compile(r"[.!?,;]$")
_ELLIPSIS_SUFFIXES = ("...", "…")
_OPENING_MARKS = ("¿", "¡")


@dataclass
class ScoreDetail:
    """Intermediate values behind a Score, kept for the explainability log."""

    is_complete_sentence: bool
    start_boundary: float
    end_boundary: float
    duration_status: str
    matched_words: int = 0
    sentence_words: int = 0
    criterion_reasons: Dict[str, str] = field(default_factory=dict)


# ---------------------------------------------------------------------------
# Sub-scores
# ---------------------------------------------------------------------------

def is_complete_sentence(text: str) -> bool:
    """True when text reads as a whole sentence on its own.

    RULES:
    - Starts with a letter, "¿" or "¡"
    - Ends with ".", "!" or "?", but not with an ellipsis
    """
    stripped = text.strip()
    if not stripped:
        return False
    if stripped.endswith(_ELLIPSIS_SUFFIXES):
        return False
    if not _SENTENCE_END_RE.search(stripped):
        return False
    first = stripped[0]
    return first.isalpha() or first in _OPENING_MARKS


def _caption_at(captions: Sequence[Caption], ms: float) -> Optional[Caption]:
    for caption in captions:
        if caption.start_ms <= ms <= caption.end_ms:
            return caption
    return None


def boundary_scores(candidate: Candidate, captions: Sequence[Caption]) -> Tuple[float, float]:
    """Score how well the candidate's edges fall on natural pauses.

    RULES:
    - Edges are the unpadded speech span (Candidate.speech_span)
    - Start: 100 within 100 ms of its caption's start, 75 within 300 ms
    - End: 100 for trailing punctuation within 100 ms of its caption's
      end, 80 for punctuation alone, 70 for timing alone
    - A trailing ellipsis is not boundary punctuation
    - 50 when no caption spans the edge or neither condition holds
    """
    start_score = 50.0
    end_score = 50.0

    start_ms, end_ms = candidate.speech_span

    start_caption = _caption_at(captions, start_ms)
    if start_caption is not None:
        diff = abs(start_ms - start_caption.start_ms)
        if diff < 100:
            start_score = 100.0
        elif diff < 300:
            start_score = 75.0

    end_caption = _caption_at(captions, end_ms)
    if end_caption is not None:
        end_text = end_caption.text.strip()
        has_punctuation = (
            bool(_BOUNDARY_END_RE.search(end_text))
            and not end_text.endswith(_ELLIPSIS_SUFFIXES)
        )
        diff = abs(end_ms - end_caption.end_ms)
        if has_punctuation and diff < 100:
            end_score = 100.0
        elif has_punctuation:
            end_score = 80.0
        elif diff < 100:
            end_score = 70.0

    return start_score, end_score


def duration_score(duration_ms: float, config: SelectionConfig) -> Tuple[float, str]:
    """Score a duration against the ideal range.

    Returns:
        (score, status) where status is "too_short", "ideal" or "too_long".
    """
    low = config.ideal_min_ms
    high = config.ideal_max_ms

    if low <= duration_ms <= high:
        return 100.0, DURATION_IDEAL
    if duration_ms < low:
        if duration_ms < config.duration_floor_ms:
            return 30.0, DURATION_TOO_SHORT
        return float(round(30 + 70 * duration_ms / low)), DURATION_TOO_SHORT
    if duration_ms > high * 2:
        return 50.0, DURATION_TOO_LONG
    return float(round(50 + 50 * high / duration_ms)), DURATION_TOO_LONG


def take_order_score(candidate: Candidate, tiers: Sequence[float]) -> float:
    """Recency tier: the last take gets tiers[0], the one before tiers[1]..."""
    takes_after = max(0, candidate.take_count - candidate.take_number)
    return float(tiers[min(takes_after, len(tiers) - 1)])


def coverage_score(
    candidate: Candidate,
    sentence: Optional[ScriptSentence],
    threshold: float,
) -> Tuple[float, int, int]:
    """Share of sentence words found in the candidate text.

    Returns:
        (score 0–100, matched word count, sentence word count). Without a
        sentence the score is 0.
    """
    if sentence is None:
        return 0.0, 0, 0
    sentence_words = split_words(sentence.normalized_text)
    if not sentence_words:
        return 0.0, 0, 0
    take_words = split_words(normalize(candidate.transcribed_text))

    matched = 0
    for word in sentence_words:
        if any(token_similarity(word, other) > threshold for other in take_words):
            matched += 1
    return 100.0 * matched / len(sentence_words), matched, len(sentence_words)


def confidence_score(candidate: Candidate, captions: Sequence[Caption]) -> float:
    """Mean reported caption confidence ×100, or a neutral 50."""
    values = [
        captions[i].confidence
        for i in candidate.caption_indices
        if 0 <= i < len(captions) and captions[i].confidence is not None
    ]
    if not values:
        return 50.0
    return max(0.0, min(100.0, 100.0 * sum(values) / len(values)))


# ---------------------------------------------------------------------------
# Reasons
# ---------------------------------------------------------------------------

def render_reason(verdict: str, total_score: float, notes: Sequence[str]) -> str:
    """Render "<Verdict> (<total>%): note, note"."""
    text = "{} ({}%)".format(verdict, int(round(total_score)))
    if notes:
        text += ": " + ", ".join(notes)
    return text


def _notes_for(
    breakdown: ScoreBreakdown,
    candidate: Candidate,
    detail: ScoreDetail,
    has_script: bool,
) -> List[str]:
    notes: List[str] = []

    if has_script:
        if breakdown.coverage >= 80:
            notes.append("covers script text")
        elif breakdown.coverage >= 50:
            notes.append("partial script coverage")
        elif breakdown.coverage < 30:
            notes.append("low script match")

    if candidate.take_count > 1:
        if candidate.take_number > 1:
            notes.append("repetition (take {} of {})".format(candidate.take_number, candidate.take_count))
        else:
            notes.append("take 1 of {}".format(candidate.take_count))

    if detail.duration_status == DURATION_TOO_SHORT:
        notes.append("too short")
    elif detail.duration_status == DURATION_TOO_LONG:
        notes.append("too long")

    if detail.is_complete_sentence:
        notes.append("complete sentence")
    elif breakdown.completeness < 75:
        notes.append("incomplete fragment")

    if candidate.fluency_score < 70:
        notes.append("hesitant delivery ({}%)".format(int(round(candidate.fluency_score))))

    return notes


def _criterion_reasons(
    breakdown: ScoreBreakdown,
    candidate: Candidate,
    detail: ScoreDetail,
    has_script: bool,
) -> Dict[str, str]:
    reasons: Dict[str, str] = {}

    if has_script:
        if breakdown.coverage >= 80:
            reasons["coverage"] = "High script coverage ({:.0f}%)".format(breakdown.coverage)
        elif breakdown.coverage >= 50:
            reasons["coverage"] = "Partial script coverage ({:.0f}%)".format(breakdown.coverage)
        elif breakdown.coverage > 0:
            reasons["coverage"] = "Low script coverage ({:.0f}%)".format(breakdown.coverage)
        else:
            reasons["coverage"] = "No match with the script"

    if breakdown.confidence >= 80:
        reasons["confidence"] = "High transcription confidence ({:.0f}%)".format(breakdown.confidence)
    elif breakdown.confidence >= 50:
        reasons["confidence"] = "Medium transcription confidence ({:.0f}%)".format(breakdown.confidence)
    else:
        reasons["confidence"] = "Low transcription confidence ({:.0f}%)".format(breakdown.confidence)

    if candidate.is_last_take:
        reasons["take_order"] = "Most recent take (preferred)"
    else:
        reasons["take_order"] = "Take {} of {} ({:.0f}%)".format(
            candidate.take_number, candidate.take_count, breakdown.take_order
        )

    if detail.is_complete_sentence:
        reasons["completeness"] = "Complete sentence"
    elif breakdown.completeness >= 75:
        reasons["completeness"] = "Good natural boundaries ({:.0f}%)".format(breakdown.completeness)
    else:
        reasons["completeness"] = "Acceptable boundaries ({:.0f}%)".format(breakdown.completeness)

    if detail.duration_status == DURATION_IDEAL:
        reasons["duration"] = "Ideal duration"
    elif detail.duration_status == DURATION_TOO_SHORT:
        reasons["duration"] = "Too short ({:.0f}%)".format(breakdown.duration)
    else:
        reasons["duration"] = "Too long ({:.0f}%)".format(breakdown.duration)

    return reasons


# ---------------------------------------------------------------------------
# Entry points
# ---------------------------------------------------------------------------

def score_candidate(
    candidate: Candidate,
    captions: Sequence[Caption],
    config: SelectionConfig,
    mode: GroupingMode,
    sentence: Optional[ScriptSentence] = None,
) -> Tuple[Score, ScoreDetail]:
    """Score one candidate.

    Args:
        candidate: The take to score.
        captions: The full transcript (for confidence and boundaries).
        config: Validated selection config.
        mode: Grouping mode of the run; picks weights and recency tiers.
        sentence: The script sentence the take belongs to (script mode).

    Returns:
        (Score, ScoreDetail).
    """
    has_script = mode is GroupingMode.SCRIPT
    weights = config.weights_for(has_script)

    coverage, matched, sentence_word_count = coverage_score(
        candidate, sentence if has_script else None, config.coverage_word_similarity
    )

    complete = is_complete_sentence(candidate.transcribed_text)
    start_boundary, end_boundary = boundary_scores(candidate, captions)
    completeness = 100.0 if complete else (start_boundary + end_boundary) / 2

    duration, status = duration_score(candidate.duration_ms, config)

    breakdown = ScoreBreakdown(
        coverage=coverage,
        take_order=take_order_score(candidate, config.take_order_tiers_for(has_script)),
        completeness=completeness,
        duration=duration,
        confidence=confidence_score(candidate, captions),
    )

    raw = breakdown.as_dict()
    weight_map = weights.as_dict()
    total = sum(raw[name] * weight_map[name] for name in raw)
    total = round(max(0.0, min(100.0, total)), 2)

    detail = ScoreDetail(
        is_complete_sentence=complete,
        start_boundary=start_boundary,
        end_boundary=end_boundary,
        duration_status=status,
        matched_words=matched,
        sentence_words=sentence_word_count,
    )
    detail.criterion_reasons = _criterion_reasons(breakdown, candidate, detail, has_script)

    notes = tuple(_notes_for(breakdown, candidate, detail, has_script))
    verdict = VERDICT_SELECTED if total >= config.min_score else VERDICT_REJECTED

    score = Score(
        candidate_id=candidate.id,
        total_score=total,
        breakdown=breakdown,
        weights=weight_map,
        notes=notes,
        reason=render_reason(verdict, total, notes),
        is_ambiguous=config.ambiguous_low <= total <= config.ambiguous_high,
    )
    return score, detail


def score_candidates(
    candidates: Sequence[Candidate],
    captions: Sequence[Caption],
    config: SelectionConfig,
    mode: GroupingMode,
    sentences: Sequence[ScriptSentence] = (),
) -> Dict[str, Tuple[Score, ScoreDetail]]:
    """Score every candidate, keyed by candidate id."""
    by_index = {s.index: s for s in sentences}
    results: Dict[str, Tuple[Score, ScoreDetail]] = {}
    for candidate in candidates:
        sentence = by_index.get(candidate.sentence_index) if candidate.sentence_index is not None else None
        results[candidate.id] = score_candidate(candidate, captions, config, mode, sentence)
        logger.debug("Scored %s: %s", candidate.id, results[candidate.id][0].reason)
    return results
