"""Take selection orchestrator.

WHY: Callers want one call: captions (and maybe a script) in, a cut
list out. The grouping mode is decided once here so detection, scoring,
and selection never disagree about it.

HOW: select_takes() builds the script sentences, picks the grouping
mode, produces groups (take detection or phrase grouping), scores every
candidate, selects, and computes SelectionStats. An optional
LogCollector receives every score and decision as they happen.

RULES:
- SCRIPT mode iff the script yields at least one sentence
- Empty transcript: every sentence is missing (empty result without a
  script)
- Pure and deterministic: no I/O, no randomness, nothing shared between
  calls
"""

from __future__ import annotations

import logging
from typing import List, Optional, Sequence

from take_selector.config import SelectionConfig
from take_selector.core.explain import LogCollector
from take_selector.core.ir import (
    Candidate,
    Caption,
    Group,
    GroupingMode,
    Score,
    ScriptSentence,
    SelectionResult,
    SelectionStats,
)
from take_selector.core.phrases import build_phrase_candidates
from take_selector.core.script import build_sentences
from take_selector.core.scorer import score_candidates
from take_selector.core.selector import Selection, select
from take_selector.core.takes import detect_takes

logger = logging.getLogger(__name__)


def resolve_mode(sentences: Sequence[ScriptSentence]) -> GroupingMode:
    return GroupingMode.SCRIPT if sentences else GroupingMode.SIMILARITY


def compute_stats(
    captions: Sequence[Caption],
    sentences: Sequence[ScriptSentence],
    groups: Sequence[Group],
    candidates: Sequence[Candidate],
    selection: Selection,
) -> SelectionStats:
    """Aggregate numbers for one run.

    RULES:
    - original_duration_ms spans the first caption start to the last end
    - script_coverage is the share of sentences with at least one take
      (100 without a script)
    - repetitions_removed counts members of competing groups that were
      not selected
    """
    if captions:
        original = max(c.end_ms for c in captions) - min(c.start_ms for c in captions)
    else:
        original = 0.0

    covered = sorted({c.sentence_index for c in candidates if c.sentence_index is not None})
    missing = [s.index for s in sentences if s.index not in covered]
    coverage = 100.0 * len(covered) / len(sentences) if sentences else 100.0

    repetitions_removed = sum(
        sum(1 for m in g.members if not m.selected)
        for g in groups
        if len(g.members) >= 2
    )

    totals = [s.total_score for s in selection.scores.values()]

    return SelectionStats(
        total_candidates=len(candidates),
        selected_candidates=len(selection.selected),
        original_duration_ms=original,
        selected_duration_ms=sum(c.duration_ms for c in selection.selected),
        script_coverage=round(coverage, 2),
        repetitions_removed=repetitions_removed,
        average_score=round(sum(totals) / len(totals), 2) if totals else 0.0,
        ambiguous_candidates=sum(1 for s in selection.scores.values() if s.is_ambiguous),
        false_starts_detected=sum(1 for c in candidates if c.is_false_start),
        covered_sentences=covered,
        missing_sentences=missing,
    )


def select_takes(
    captions: Sequence[Caption],
    script: Optional[str] = None,
    config: Optional[SelectionConfig] = None,
    collector: Optional[LogCollector] = None,
) -> SelectionResult:
    """Pick the takes to keep from a transcript.

    Args:
        captions: Transcript caption units in time order.
        script: Optional script text (style markers allowed).
        config: Selection config; defaults are used when None.
        collector: Optional LogCollector to record the run.

    Returns:
        SelectionResult with selected and rejected candidates, missing
        sentence indices, final scores, groups, and statistics.

    Raises:
        ConfigError: If the config is invalid.
    """
    config = (config or SelectionConfig()).validate()
    sentences = build_sentences(script)
    mode = resolve_mode(sentences)
    logger.info(
        "Selecting takes: %d caption(s), %d sentence(s), mode=%s",
        len(captions), len(sentences), mode.value,
    )

    if mode is GroupingMode.SCRIPT:
        groups = detect_takes(sentences, captions, config)
        ungrouped: List[Candidate] = []
    else:
        groups, ungrouped = build_phrase_candidates(captions, config)

    candidates: List[Candidate] = [m for g in groups for m in g.members] + list(ungrouped)
    if collector is not None:
        collector.set_context(mode, len(captions), len(sentences), len(candidates))

    scored = score_candidates(candidates, captions, config, mode, sentences)
    if collector is not None:
        for candidate in candidates:
            score, detail = scored[candidate.id]
            collector.log_scoring(candidate, score, detail)

    selection = select(
        groups,
        ungrouped,
        {cid: pair[0] for cid, pair in scored.items()},
        config,
        mode,
    )

    ordered = sorted(candidates, key=lambda c: (c.start_ms, c.id))
    final_scores: List[Score] = [selection.scores[c.id] for c in ordered]
    if collector is not None:
        for candidate in ordered:
            collector.log_decision(candidate, selection.scores[candidate.id])

    stats = compute_stats(captions, sentences, groups, candidates, selection)
    if stats.missing_sentences:
        logger.warning("No take found for sentence(s): %s", stats.missing_sentences)

    return SelectionResult(
        mode=mode,
        selected=selection.selected,
        rejected=selection.rejected,
        missing=list(stats.missing_sentences),
        scores=final_scores,
        groups=list(groups),
        sentences=list(sentences),
        stats=stats,
    )
