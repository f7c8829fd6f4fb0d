"""Intermediate representation dataclasses for take selection.

WHY: Detection, scoring, selection, logging, and formatting all talk
about the same handful of things: captions, word tokens, script
sentences, candidate takes, scores, and groups. One set of typed
dataclasses keeps those stages decoupled and the contract explicit.

HOW: The hierarchy, leaves first:
  Caption          one time-stamped unit from the transcript
  Token            one word of a caption with interpolated timing
  ScriptSentence   one line of the authored script
  Candidate        one detected take (a time span worth considering)
  ScoreBreakdown   per-criterion sub-scores of a candidate
  Score            weighted total, explanation, ambiguity flag
  Group            candidates believed to be the same intended content
  SelectionStats   aggregate numbers about one selection run
  SelectionResult  selected / rejected / missing plus scores and stats

RULES:
- All times are integer-ish milliseconds stored as float
- Token is frozen; Candidate only ever changes its ``selected`` flag
- Everything is created fresh per run; nothing is shared across runs
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from typing import Dict, List, Optional, Tuple


class GroupingMode(enum.Enum):
    """How candidates were grouped for one run.

    SCRIPT: one group per script sentence (script alignment).
    SIMILARITY: one group per cluster of near-duplicate phrases.
    """

    SCRIPT = "script"
    SIMILARITY = "similarity"


@dataclass
class Caption:
    """One time-stamped caption unit from the speech-to-text stage.

    RULES:
    - confidence is 0–1 or None when the transcriber did not report it
    - Upstream cleanup has already removed duplicates and noise
    """

    text: str
    start_ms: float
    end_ms: float
    confidence: Optional[float] = None


@dataclass(frozen=True)
class Token:
    """A single word with timing interpolated from its caption.

    WHY: Captions carry one time span for several words. Alignment works
    word by word, so each word gets an even share of its caption's span.

    RULES:
    - text keeps the original casing and punctuation
    - normalized_text is normalize(text) and may be empty
    - caption_index points back into the caption list it came from
    """

    text: str
    normalized_text: str
    start_ms: float
    end_ms: float
    caption_index: int


@dataclass
class ScriptSentence:
    """One line of the authored script, in order of appearance."""

    index: int
    text: str
    normalized_text: str


@dataclass
class Candidate:
    """A scored, time-bounded span considered for selection (a "take").

    WHY: Both grouping strategies (script alignment and phrase
    similarity) produce the same shape, so scoring and selection do not
    need to know where a candidate came from.

    HOW: Created by the take detector (script mode) or the phrase grouper
    (no-script mode). take_number / take_count describe its position in
    its group in time order (1 = earliest).

    RULES:
    - sentence_index is set in script mode, group_id in no-script mode
    - confidence is the 0–1 detection quality, not the transcriber's
    - start_ms / end_ms are the cut points (padded in script mode);
      speech_start_ms / speech_end_ms, when set, are the unpadded span of
      the spoken words
    - selected is the only field changed after creation
    """

    id: str
    start_ms: float
    end_ms: float
    transcribed_text: str
    confidence: float
    caption_indices: List[int] = field(default_factory=list)
    sentence_index: Optional[int] = None
    group_id: Optional[str] = None
    take_number: int = 1
    take_count: int = 1
    is_false_start: bool = False
    fluency_score: float = 100.0
    speech_start_ms: Optional[float] = None
    speech_end_ms: Optional[float] = None
    selected: bool = False

    @property
    def duration_ms(self) -> float:
        return self.end_ms - self.start_ms

    @property
    def is_last_take(self) -> bool:
        return self.take_number == self.take_count

    @property
    def speech_span(self) -> Tuple[float, float]:
        """Unpadded (start, end) of the spoken words, or the cut span."""
        start = self.start_ms if self.speech_start_ms is None else self.speech_start_ms
        end = self.end_ms if self.speech_end_ms is None else self.speech_end_ms
        return start, end


@dataclass
class ScoreBreakdown:
    """Per-criterion sub-scores, each within 0–100."""

    coverage: float
    take_order: float
    completeness: float
    duration: float
    confidence: float

    def as_dict(self) -> Dict[str, float]:
        return {
            "coverage": self.coverage,
            "take_order": self.take_order,
            "completeness": self.completeness,
            "duration": self.duration,
            "confidence": self.confidence,
        }


@dataclass
class Score:
    """Scoring result for one candidate.

    RULES:
    - total_score is the weighted sum of the breakdown, within 0–100
    - notes are short criterion remarks; reason is the rendered sentence
      "<Verdict> (<total>%): note, note"
    - is_ambiguous is True when total_score lies in the ambiguous band
    """

    candidate_id: str
    total_score: float
    breakdown: ScoreBreakdown
    weights: Dict[str, float]
    notes: Tuple[str, ...]
    reason: str
    is_ambiguous: bool

    def weighted(self) -> Dict[str, float]:
        raw = self.breakdown.as_dict()
        return {name: raw[name] * self.weights.get(name, 0.0) for name in raw}


@dataclass
class Group:
    """Candidates believed to represent the same intended content.

    RULES:
    - members are ordered by start time
    - at most one member is ever selected
    - sentence_index is set for script groups; label holds the sentence
      text or the canonical phrase
    """

    id: str
    mode: GroupingMode
    members: List[Candidate]
    label: str = ""
    sentence_index: Optional[int] = None

    @property
    def has_repetitions(self) -> bool:
        return len(self.members) > 1


@dataclass
class SelectionStats:
    """Aggregate numbers about one selection run."""

    total_candidates: int = 0
    selected_candidates: int = 0
    original_duration_ms: float = 0.0
    selected_duration_ms: float = 0.0
    script_coverage: float = 100.0
    repetitions_removed: int = 0
    average_score: float = 0.0
    ambiguous_candidates: int = 0
    false_starts_detected: int = 0
    covered_sentences: List[int] = field(default_factory=list)
    missing_sentences: List[int] = field(default_factory=list)


@dataclass
class SelectionResult:
    """The outcome of one selection run.

    RULES:
    - selected and rejected are ordered by start time
    - missing lists script sentence indices with zero candidates
    - scores holds one final Score per candidate (selected + rejected)
    """

    mode: GroupingMode
    selected: List[Candidate]
    rejected: List[Candidate]
    missing: List[int]
    scores: List[Score]
    groups: List[Group] = field(default_factory=list)
    sentences: List[ScriptSentence] = field(default_factory=list)
    stats: SelectionStats = field(default_factory=SelectionStats)

    def score_for(self, candidate_id: str) -> Score:
        for score in self.scores:
            if score.candidate_id == candidate_id:
                return score
        raise KeyError(candidate_id)
