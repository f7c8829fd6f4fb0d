"""Word-level global alignment between a script sentence and a window.

WHY: A take rarely matches its script line word for word. Words get
dropped, inserted, or misheard. A dynamic-programming alignment finds
the best monotonic pairing of script words to transcript words, using
the similarity ratio as the match reward.

HOW: Needleman-Wunsch style fill of an (m+1)×(n+1) matrix. Each cell is
the best of a diagonal step (reward = pair similarity), skipping a
script word, or skipping a transcript word. Skips cost nothing beyond
the reward they forgo. Backtracking starts from the EARLIEST column of
the last row that reaches the row maximum.

RULES:
- Inputs are already-normalized words
- Ties prefer the diagonal, then skipping the script word
- Earliest-column tie-break: without gap penalties the last row is
  non-decreasing, and starting from a later column would let the path
  wander into a later repetition of the same words
- A script word is mapped only when its pair similarity exceeds the
  emit threshold; otherwise it is None (unaligned)
- O(m·n) time and space; the caller bounds both to sentence scale
"""

from __future__ import annotations

from typing import List, Optional, Sequence

from take_selector.core.text import token_similarity

_DIAGONAL = 0
_UP = 1  # skip a script word
_LEFT = 2  # skip a transcript word


def align_words(
    script_words: Sequence[str],
    window_words: Sequence[str],
    emit_threshold: float = 0.3,
) -> List[Optional[int]]:
    """Align script words to transcript words.

    Args:
        script_words: Normalized words of the script sentence (length m).
        window_words: Normalized words of the transcript window (length n).
        emit_threshold: Minimum pair similarity (exclusive) for a mapping
            to be reported.

    Returns:
        A list of length m. Entry i is the window index aligned with
        script word i, or None if it is unaligned.
    """
    m = len(script_words)
    n = len(window_words)

    if m == 0:
        return []
    if n == 0:
        return [None] * m

    pair_sim = [[token_similarity(s, w) for w in window_words] for s in script_words]

    dp = [[0.0] * (n + 1) for _ in range(m + 1)]
    moves = [[_DIAGONAL] * (n + 1) for _ in range(m + 1)]

    for i in range(1, m + 1):
        row = dp[i]
        prev = dp[i - 1]
        sims = pair_sim[i - 1]
        move_row = moves[i]
        for j in range(1, n + 1):
            match = prev[j - 1] + sims[j - 1]
            up = prev[j]
            left = row[j - 1]
            if match >= up and match >= left:
                row[j] = match
                move_row[j] = _DIAGONAL
            elif up >= left:
                row[j] = up
                move_row[j] = _UP
            else:
                row[j] = left
                move_row[j] = _LEFT

    last_row = dp[m]
    max_score = last_row[n]
    best_j = n
    for j in range(1, n + 1):
        if last_row[j] >= max_score:
            best_j = j
            break

    result: List[Optional[int]] = [None] * m
    i, j = m, best_j
    while i > 0 and j > 0:
        move = moves[i][j]
        if move == _DIAGONAL:
            if pair_sim[i - 1][j - 1] > emit_threshold:
                result[i - 1] = j - 1
            i -= 1
            j -= 1
        elif move == _UP:
            i -= 1
        else:
            j -= 1

    assert all(idx is None or 0 <= idx < n for idx in result), "alignment index out of range"
    return result
