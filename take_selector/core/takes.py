"""Take detection: find every occurrence of each script sentence.

WHY: Speakers repeat a line until they get it right. Each attempt that
reads like the script line is a "take"; the selector later keeps one.
Finding takes means locating plausible starts, aligning a bounded window
from each, and keeping the best non-overlapping matches.

HOW: build_tokens() flattens captions into word tokens with evenly
interpolated timing. For each sentence, find_anchors() lists transcript
positions that look like the sentence start. Each anchor seeds a window
of ceil(1.5·m) + 4 tokens that is aligned with align_words(). Windows
passing the acceptance filter are sorted by score and taken greedily as
long as their padded spans do not overlap. classify_false_starts() then
flags attempts that were abandoned in favour of a fuller take.

RULES:
- Anchor: one of the first two sentence words with similarity > 0.6
- Accept a window only if aligned_ratio ≥ 0.6 and avg_similarity ≥ 0.5
- Window score = 0.6·aligned_ratio + 0.4·avg_similarity
- Padded span: start − 100 ms, end + 150 ms; no two takes of the same
  sentence may overlap; different sentences may share a span
- Take ids are "take-{sentence}-{ordinal}", ordinal in time order
- A sentence with a single take never has a false start
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, replace
from typing import Dict, List, Optional, Sequence

from take_selector.config import SelectionConfig
from take_selector.core.aligner import align_words
from take_selector.core.ir import Candidate, Caption, Group, GroupingMode, ScriptSentence, Token
from take_selector.core.text import normalize, split_words, token_similarity

logger = logging.getLogger(__name__)

_STUTTER_MARKERS = ("...", "…")


@dataclass
class _ScoredWindow:
    first: int
    last: int
    aligned_ratio: float
    avg_similarity: float
    score: float


def build_tokens(captions: Sequence[Caption]) -> List[Token]:
    """Flatten captions into word tokens with interpolated timestamps.

    WHY: Transcribers time whole caption units, but alignment works per
    word. Spreading the caption span evenly over its words is a cheap,
    deterministic estimate.

    RULES:
    - Word i of n in a caption spans [start + i·d, start + (i+1)·d] with
      d = (end − start) / n
    - Captions without words contribute no tokens
    """
    tokens: List[Token] = []
    for caption_index, caption in enumerate(captions):
        words = split_words(caption.text)
        if not words:
            continue
        word_duration = (caption.end_ms - caption.start_ms) / len(words)
        for i, word in enumerate(words):
            tokens.append(Token(
                text=word,
                normalized_text=normalize(word),
                start_ms=caption.start_ms + i * word_duration,
                end_ms=caption.start_ms + (i + 1) * word_duration,
                caption_index=caption_index,
            ))
    return tokens


def find_anchors(
    sentence_words: Sequence[str],
    tokens: Sequence[Token],
    threshold: float,
) -> List[int]:
    """Transcript positions where the sentence plausibly begins."""
    anchors = list(sentence_words[:2])
    positions: List[int] = []
    for i, token in enumerate(tokens):
        if any(token_similarity(anchor, token.normalized_text) > threshold for anchor in anchors):
            positions.append(i)
    return positions


def window_length(sentence_word_count: int, config: SelectionConfig) -> int:
    return int(math.ceil(sentence_word_count * config.window_scale)) + config.window_extra_tokens


def _score_window(
    sentence_words: Sequence[str],
    tokens: Sequence[Token],
    start: int,
    config: SelectionConfig,
) -> Optional[_ScoredWindow]:
    end = min(start + window_length(len(sentence_words), config), len(tokens))
    window = tokens[start:end]
    if not window:
        return None

    alignment = align_words(
        sentence_words,
        [t.normalized_text for t in window],
        emit_threshold=config.alignment_emit_similarity,
    )

    aligned_count = 0
    total_similarity = 0.0
    first = -1
    last = -1
    for si, wi in enumerate(alignment):
        if wi is None:
            continue
        sim = token_similarity(sentence_words[si], window[wi].normalized_text)
        if sim > config.aligned_word_similarity:
            aligned_count += 1
            total_similarity += sim
            if first == -1:
                first = start + wi
            last = start + wi

    if aligned_count == 0:
        return None

    aligned_ratio = aligned_count / len(sentence_words)
    avg_similarity = total_similarity / aligned_count
    if aligned_ratio < config.min_aligned_ratio or avg_similarity < config.min_avg_similarity:
        return None

    return _ScoredWindow(
        first=first,
        last=last,
        aligned_ratio=aligned_ratio,
        avg_similarity=avg_similarity,
        score=0.6 * aligned_ratio + 0.4 * avg_similarity,
    )


def _padded_span(window: _ScoredWindow, tokens: Sequence[Token], config: SelectionConfig):
    return (
        tokens[window.first].start_ms - config.take_start_padding_ms,
        tokens[window.last].end_ms + config.take_end_padding_ms,
    )


def find_sentence_takes(
    sentence: ScriptSentence,
    tokens: Sequence[Token],
    config: SelectionConfig,
) -> List[Candidate]:
    """Detect the non-overlapping takes of one script sentence.

    WHY: Collect-then-select keeps the strongest windows: a weak window
    seeded by an early anchor must not block a strong one starting a
    word later.

    HOW: Score every anchor's window, sort by score (descending, stable),
    accept each window whose padded span overlaps no accepted one, then
    build Candidates in time order.

    Args:
        sentence: The script sentence to look for.
        tokens: Word tokens of the whole transcript.
        config: Validated selection config.

    Returns:
        Candidates ordered by start time; empty if the sentence was not
        found.
    """
    sentence_words = split_words(sentence.normalized_text)
    if not sentence_words or not tokens:
        return []

    scored: List[_ScoredWindow] = []
    for position in find_anchors(sentence_words, tokens, config.anchor_similarity):
        window = _score_window(sentence_words, tokens, position, config)
        if window is not None:
            scored.append(window)

    scored.sort(key=lambda w: w.score, reverse=True)

    accepted: List[_ScoredWindow] = []
    for window in scored:
        start, end = _padded_span(window, tokens, config)
        overlaps = False
        for other in accepted:
            other_start, other_end = _padded_span(other, tokens, config)
            if start < other_end and end > other_start:
                overlaps = True
                break
        if not overlaps:
            accepted.append(window)

    accepted.sort(key=lambda w: tokens[w.first].start_ms)

    takes: List[Candidate] = []
    for ordinal, window in enumerate(accepted):
        span = tokens[window.first:window.last + 1]
        caption_indices: List[int] = []
        for token in span:
            if token.caption_index not in caption_indices:
                caption_indices.append(token.caption_index)
        takes.append(Candidate(
            id="take-{}-{}".format(sentence.index, ordinal),
            start_ms=max(0.0, span[0].start_ms - config.take_start_padding_ms),
            end_ms=span[-1].end_ms + config.take_end_padding_ms,
            transcribed_text=" ".join(t.text for t in span),
            confidence=window.score,
            caption_indices=caption_indices,
            sentence_index=sentence.index,
            take_number=ordinal + 1,
            take_count=len(accepted),
            speech_start_ms=span[0].start_ms,
            speech_end_ms=span[-1].end_ms,
        ))

    logger.debug(
        "Sentence %d: %d window(s) accepted, %d take(s)",
        sentence.index, len(scored), len(takes),
    )
    return takes


def take_fluency(take: Candidate, captions: Sequence[Caption]) -> float:
    """Fluency proxy (0–100) from the transcript alone.

    RULES:
    - −15 for every extra occurrence of a repeated word bigram (stutter)
    - up to −20 in proportion to captions with confidence < 0.5
    - −5 per gap > 500 ms and −10 per gap > 1000 ms between captions
    - Clamped to [0, 100]
    """
    score = 100.0

    words = [normalize(w) for w in split_words(take.transcribed_text)]
    bigrams: Dict[str, int] = {}
    for a, b in zip(words, words[1:]):
        key = "{} {}".format(a, b)
        bigrams[key] = bigrams.get(key, 0) + 1
    for count in bigrams.values():
        if count > 1:
            score -= 15 * (count - 1)

    take_captions = [captions[i] for i in take.caption_indices if 0 <= i < len(captions)]
    if take_captions:
        low = sum(1 for c in take_captions if (c.confidence if c.confidence is not None else 1.0) < 0.5)
        score -= round(20 * low / len(take_captions))

    ordered = sorted(take_captions, key=lambda c: c.start_ms)
    for prev, cur in zip(ordered, ordered[1:]):
        gap = cur.start_ms - prev.end_ms
        if gap > 1000:
            score -= 10
        elif gap > 500:
            score -= 5

    return max(0.0, min(100.0, score))


def classify_false_starts(
    takes: Sequence[Candidate],
    sentence_word_count: int,
    captions: Sequence[Caption],
    config: SelectionConfig,
) -> List[Candidate]:
    """Return copies of the takes with false-start and fluency fields set.

    WHY: An abandoned attempt ("Hoy vamos a hablar de...") can still pass
    the acceptance filter. Flagging it lets the selector prefer a fuller
    take even when scores are close.

    RULES:
    - A single take is never a false start
    - Coverage ratio = take word count / sentence word count
    - False start if coverage < false_start_coverage_ratio and another
      take covers more, or if the text carries a stutter marker ("..."
      or "…") and another take covers more
    """
    if not takes:
        return []

    ratios = [
        len(split_words(t.transcribed_text)) / sentence_word_count if sentence_word_count else 0.0
        for t in takes
    ]
    max_ratio = max(ratios)

    classified: List[Candidate] = []
    for take, ratio in zip(takes, ratios):
        is_false_start = False
        if len(takes) > 1 and max_ratio > ratio:
            has_stutter = any(marker in take.transcribed_text for marker in _STUTTER_MARKERS)
            if ratio < config.false_start_coverage_ratio or has_stutter:
                is_false_start = True
        classified.append(replace(
            take,
            is_false_start=is_false_start,
            fluency_score=take_fluency(take, captions),
        ))
    return classified


def detect_takes(
    sentences: Sequence[ScriptSentence],
    captions: Sequence[Caption],
    config: SelectionConfig,
) -> List[Group]:
    """Build one script group per sentence.

    Args:
        sentences: Script sentences in order.
        captions: The transcript.
        config: Validated selection config.

    Returns:
        One Group per sentence, in sentence order. Groups of sentences
        that were not found have no members.
    """
    tokens = build_tokens(captions)
    groups: List[Group] = []

    for sentence in sentences:
        takes = find_sentence_takes(sentence, tokens, config)
        takes = classify_false_starts(
            takes,
            len(split_words(sentence.normalized_text)),
            captions,
            config,
        )
        groups.append(Group(
            id="sentence-{}".format(sentence.index),
            mode=GroupingMode.SCRIPT,
            members=takes,
            label=sentence.text,
            sentence_index=sentence.index,
        ))

    logger.info(
        "Detected %d take(s) for %d sentence(s) from %d token(s)",
        sum(len(g.members) for g in groups), len(sentences), len(tokens),
    )
    return groups
