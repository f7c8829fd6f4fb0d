"""Group selection: keep at most one take per group.

WHY: Scores rank takes, but the cut needs a decision. Repeated attempts
compete inside their group; everything else stands or falls on its own
score.

HOW: select() resolves each group once, then runs the threshold on the
candidates that belong to no competing group. Every final Score is
re-rendered with the actual verdict and an annotation explaining it.

RULES:
- A group with ≥2 members selects at most one member
- Eligible members score ≥ min_score; non-false-starts are preferred
- Among eligible members within tie_band of the best score, the one
  that starts latest wins (speakers re-record to fix earlier takes)
- No eligible member: the group selects nothing
- Script mode: a sentence with a single take always keeps it
- Candidates outside any ≥2 group are accepted iff score ≥ min_score
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field, replace
from typing import Dict, List, Optional, Sequence

from take_selector.config import SelectionConfig
from take_selector.core.ir import Candidate, Group, GroupingMode, Score
from take_selector.core.scorer import VERDICT_REJECTED, VERDICT_SELECTED, render_reason

logger = logging.getLogger(__name__)


@dataclass
class Selection:
    """Decisions for one run, before statistics are computed."""

    selected: List[Candidate] = field(default_factory=list)
    rejected: List[Candidate] = field(default_factory=list)
    scores: Dict[str, Score] = field(default_factory=dict)


def _finalize(score: Score, selected: bool, extra_notes: Sequence[str] = ()) -> Score:
    notes = tuple(score.notes) + tuple(n for n in extra_notes if n not in score.notes)
    verdict = VERDICT_SELECTED if selected else VERDICT_REJECTED
    return replace(score, notes=notes, reason=render_reason(verdict, score.total_score, notes))


def _preferred_pool(
    members: Sequence[Candidate],
    scores: Dict[str, Score],
    config: SelectionConfig,
) -> List[Candidate]:
    """Eligible members, without false starts when a full take is eligible."""
    eligible = [m for m in members if scores[m.id].total_score >= config.min_score]
    return [m for m in eligible if not m.is_false_start] or eligible


def pick_winner(
    members: Sequence[Candidate],
    scores: Dict[str, Score],
    config: SelectionConfig,
) -> Optional[Candidate]:
    """Choose the member of a competing group to keep, or None.

    HOW: Filter to eligible members, drop false starts if any full take
    is eligible, then take the latest-starting member within tie_band of
    the best score.
    """
    preferred = _preferred_pool(members, scores, config)
    if not preferred:
        return None

    best = max(scores[m.id].total_score for m in preferred)
    in_band = [m for m in preferred if best - scores[m.id].total_score <= config.tie_band]
    return max(in_band, key=lambda m: (m.start_ms, m.take_number))


def _resolve_group(
    group: Group,
    scores: Dict[str, Score],
    config: SelectionConfig,
    selection: Selection,
) -> None:
    winner = pick_winner(group.members, scores, config)
    pool = _preferred_pool(group.members, scores, config)
    pool_ids = {m.id for m in pool}
    best = max((scores[m.id].total_score for m in pool), default=0.0)

    for member in group.members:
        score = scores[member.id]
        if winner is not None and member.id == winner.id:
            notes = []
            if score.total_score < best:
                notes.append("most recent within tie band")
            if any(
                m.is_false_start and m.id not in pool_ids and scores[m.id].total_score > score.total_score
                for m in group.members
            ):
                notes.append("preferred over false start")
            member.selected = True
            selection.selected.append(member)
            selection.scores[member.id] = _finalize(score, True, notes)
            continue

        notes = []
        if member.is_false_start:
            notes.append("false start")
        if score.total_score < config.min_score:
            notes.append("below threshold")
        if winner is not None:
            notes.append("superseded by take {}".format(winner.take_number))
        else:
            notes.append("no take reached threshold")
        selection.rejected.append(member)
        selection.scores[member.id] = _finalize(score, False, notes)

    logger.debug(
        "Group %s: %d member(s), winner %s",
        group.id, len(group.members), winner.id if winner is not None else "none",
    )


def _resolve_alone(candidate: Candidate, score: Score, config: SelectionConfig, selection: Selection) -> None:
    if score.total_score >= config.min_score:
        candidate.selected = True
        selection.selected.append(candidate)
        selection.scores[candidate.id] = _finalize(score, True)
    else:
        selection.rejected.append(candidate)
        selection.scores[candidate.id] = _finalize(score, False, ["below threshold"])


def select(
    groups: Sequence[Group],
    ungrouped: Sequence[Candidate],
    scores: Dict[str, Score],
    config: SelectionConfig,
    mode: GroupingMode,
) -> Selection:
    """Resolve every group and threshold every stand-alone candidate.

    Args:
        groups: Groups of the run (script sentences or phrase clusters).
        ungrouped: Candidates that belong to no group.
        scores: Provisional Score per candidate id.
        config: Validated selection config.
        mode: Grouping mode of the run.

    Returns:
        Selection with selected and rejected candidates ordered by start
        time and the final Score of every candidate.
    """
    selection = Selection()

    for group in groups:
        if not group.members:
            continue
        if len(group.members) >= 2:
            _resolve_group(group, scores, config, selection)
        elif mode is GroupingMode.SCRIPT:
            only = group.members[0]
            only.selected = True
            selection.selected.append(only)
            selection.scores[only.id] = _finalize(scores[only.id], True, ["only take"])
        else:
            _resolve_alone(group.members[0], scores[group.members[0].id], config, selection)

    for candidate in ungrouped:
        _resolve_alone(candidate, scores[candidate.id], config, selection)

    selection.selected.sort(key=lambda c: (c.start_ms, c.id))
    selection.rejected.sort(key=lambda c: (c.start_ms, c.id))

    logger.info(
        "Selection: %d selected, %d rejected",
        len(selection.selected), len(selection.rejected),
    )
    return selection
