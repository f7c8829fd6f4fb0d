"""Repetition detection without a script.

WHY: Without a script there is no ground truth to align against, but
repeated attempts still look alike: the speaker says nearly the same
phrase two or three times in a row. Clustering near-duplicate phrases
gives the selector the same kind of groups the script path produces.

HOW: Each caption is a phrase; when merge_gap_ms is configured,
merge_captions() first coalesces captions separated by short gaps.
group_similar_phrases() walks the phrases in time order; each
unconsumed phrase of sufficient length becomes a canonical phrase and
pulls in every later unconsumed phrase similar enough to it.
build_phrase_candidates() turns clusters with two or more members into
Groups and leaves everything else as ungrouped Candidates.

RULES:
- No merging by default (merge_gap_ms is None): a repeat after a short
  breath stays a separate phrase
- With merge_gap_ms set, captions whose gap is ≤ merge_gap_ms are merged
- Phrases shorter than min_phrase_length normalized characters
  (default 10) neither start nor join a group
- A phrase joins when whole-phrase similarity to the canonical phrase
  is ≥ phrase_similarity_threshold (default 0.75)
- Groups are ordered by first occurrence; takes are numbered in time
  order (take 1 = first attempt)
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional, Sequence, Tuple

from take_selector.config import SelectionConfig
from take_selector.core.ir import Candidate, Caption, Group, GroupingMode
from take_selector.core.text import normalize, similarity

logger = logging.getLogger(__name__)


@dataclass
class Phrase:
    """One or more consecutive captions spoken without a long pause."""

    text: str
    start_ms: float
    end_ms: float
    confidence: Optional[float]
    caption_indices: List[int] = field(default_factory=list)


def _min_confidence(a: Optional[float], b: Optional[float]) -> Optional[float]:
    if a is None:
        return b
    if b is None:
        return a
    return min(a, b)


def merge_captions(captions: Sequence[Caption], max_gap_ms: Optional[float] = 500.0) -> List[Phrase]:
    """Merge consecutive captions into phrases.

    RULES:
    - Captions are processed in start-time order
    - A caption starting at most max_gap_ms after the current phrase ends
      is appended to it; otherwise it starts a new phrase
    - max_gap_ms=None disables merging: one phrase per caption
    - Merged confidence is the minimum reported confidence
    """
    ordered = sorted(enumerate(captions), key=lambda item: item[1].start_ms)
    phrases: List[Phrase] = []
    current: Optional[Phrase] = None

    for index, caption in ordered:
        if (
            current is not None
            and max_gap_ms is not None
            and caption.start_ms - current.end_ms <= max_gap_ms
        ):
            current.text = "{} {}".format(current.text, caption.text).strip()
            current.end_ms = max(current.end_ms, caption.end_ms)
            current.confidence = _min_confidence(current.confidence, caption.confidence)
            current.caption_indices.append(index)
            continue

        if current is not None:
            phrases.append(current)
        current = Phrase(
            text=caption.text.strip(),
            start_ms=caption.start_ms,
            end_ms=caption.end_ms,
            confidence=caption.confidence,
            caption_indices=[index],
        )

    if current is not None:
        phrases.append(current)
    return phrases


def group_similar_phrases(
    phrases: Sequence[Phrase],
    threshold: float,
    min_phrase_length: int,
) -> List[List[Tuple[int, float]]]:
    """Cluster near-duplicate phrases.

    Args:
        phrases: Phrases in time order.
        threshold: Minimum similarity to the canonical phrase.
        min_phrase_length: Minimum normalized length to take part.

    Returns:
        Clusters in order of first occurrence. Each cluster is a list of
        (phrase index, similarity to canonical) pairs, canonical first
        with similarity 1.0. Phrases too short to take part are absent.
    """
    normalized = [normalize(p.text) for p in phrases]
    consumed = [False] * len(phrases)
    clusters: List[List[Tuple[int, float]]] = []

    for i in range(len(phrases)):
        if consumed[i] or len(normalized[i]) < min_phrase_length:
            continue
        consumed[i] = True
        cluster = [(i, 1.0)]

        for j in range(i + 1, len(phrases)):
            if consumed[j] or len(normalized[j]) < min_phrase_length:
                continue
            sim = similarity(normalized[i], normalized[j])
            if sim >= threshold:
                cluster.append((j, sim))
                consumed[j] = True

        clusters.append(cluster)

    return clusters


def _phrase_candidate(index: int, phrase: Phrase, confidence: float, **extra) -> Candidate:
    return Candidate(
        id="phrase-{}".format(index),
        start_ms=phrase.start_ms,
        end_ms=phrase.end_ms,
        transcribed_text=phrase.text,
        confidence=confidence,
        caption_indices=list(phrase.caption_indices),
        **extra
    )


def build_phrase_candidates(
    captions: Sequence[Caption],
    config: SelectionConfig,
) -> Tuple[List[Group], List[Candidate]]:
    """Produce repetition groups and ungrouped candidates from captions.

    WHY: The selector needs the same inputs in both modes: groups whose
    members compete, plus candidates that stand alone.

    Returns:
        (groups, ungrouped): groups with two or more members, in order of
        first occurrence; every other phrase as an ungrouped Candidate.
    """
    phrases = merge_captions(captions, config.merge_gap_ms)
    clusters = group_similar_phrases(
        phrases,
        config.phrase_similarity_threshold,
        config.min_phrase_length,
    )

    groups: List[Group] = []
    grouped_indices = set()

    for cluster in clusters:
        if len(cluster) < 2:
            continue
        group_id = "repeat-{}".format(len(groups))
        ordered = sorted(cluster, key=lambda item: phrases[item[0]].start_ms)
        members: List[Candidate] = []
        for take_number, (index, sim) in enumerate(ordered, start=1):
            members.append(_phrase_candidate(
                index,
                phrases[index],
                sim,
                group_id=group_id,
                take_number=take_number,
                take_count=len(ordered),
            ))
            grouped_indices.add(index)
        canonical = phrases[cluster[0][0]]
        groups.append(Group(
            id=group_id,
            mode=GroupingMode.SIMILARITY,
            members=members,
            label=canonical.text,
        ))

    ungrouped = [
        _phrase_candidate(i, phrase, 1.0)
        for i, phrase in enumerate(phrases)
        if i not in grouped_indices
    ]

    logger.info(
        "Phrase grouping: %d phrase(s), %d repetition group(s), %d ungrouped",
        len(phrases), len(groups), len(ungrouped),
    )
    return groups, ungrouped
