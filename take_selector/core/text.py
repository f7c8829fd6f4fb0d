"""Text normalization, edit-distance similarity, and sentence splitting.

WHY: Speech-to-text output and authored scripts never agree on casing,
accents, or punctuation ("Inteligencia" vs "inteligencia,"). Every
comparison in the selector goes through the same canonical form and the
same bounded similarity ratio so that all stages agree on what "the same
word" means.

HOW: normalize() lowercases, strips diacritics via NFD decomposition,
drops punctuation, and collapses whitespace. similarity() compares two
normalized strings with Levenshtein distance (rapidfuzz) scaled by the
longer length. split_into_sentences() cuts a script into lines.

RULES:
- normalize() is total and pure: any string in, a string out
- similarity() is symmetric, 1.0 for identical non-empty input, 0.0 when
  either side normalizes to the empty string
- Callers pass words or short phrases, never whole transcripts
"""

from __future__ import annotations

import re
import unicodedata
from typing import List

from rapidfuzz.distance import Levenshtein

_PUNCTUATION_RE = re.compile(r"[^\w\s]")
_UNDERSCORE_RE = re.compile(r"_")
_WHITESPACE_RE = re.compile(r"\s+")

# Sentence terminators followed by whitespace, or a newline.
_SENTENCE_SPLIT_RE = re.compile(r"(?<=[.!?])\s+|(?<=\n)\s*")
# Clause punctuation, used when a long script has no terminators.
_CLAUSE_SPLIT_RE = re.compile(r"(?<=[,;:])\s+")

# A script shorter than this is kept as a single line.
_CLAUSE_FALLBACK_MIN_CHARS = 50


def normalize(text: str) -> str:
    """Canonicalize text for comparison.

    RULES:
    - Lowercase
    - Diacritics removed ("inteligéncia" → "inteligencia")
    - Punctuation removed, underscores included
    - Runs of whitespace collapsed to one space, ends stripped
    """
    decomposed = unicodedata.normalize("NFD", text.lower())
    stripped = "".join(ch for ch in decomposed if not unicodedata.combining(ch))
    stripped = _PUNCTUATION_RE.sub("", stripped)
    stripped = _UNDERSCORE_RE.sub("", stripped)
    return _WHITESPACE_RE.sub(" ", stripped).strip()


def token_similarity(a: str, b: str) -> float:
    """Similarity ratio of two already-normalized strings.

    The aligner calls this m·n times per window, so it skips the
    normalization that similarity() performs.
    """
    if not a or not b:
        return 0.0
    if a == b:
        return 1.0
    distance = Levenshtein.distance(a, b)
    return 1.0 - distance / max(len(a), len(b))


def similarity(a: str, b: str) -> float:
    """Edit-distance similarity ratio between two words or phrases.

    WHY: Transcription errors are mostly small spelling differences
    ("artificial" / "artifical"). A normalized edit distance tolerates
    them while still separating different words.

    HOW: ratio = 1 - levenshtein(a', b') / max(len(a'), len(b')) on the
    normalized forms a' and b'.

    Args:
        a: First word or phrase (raw text).
        b: Second word or phrase (raw text).

    Returns:
        A ratio in [0, 1].
    """
    return token_similarity(normalize(a), normalize(b))


def split_words(text: str) -> List[str]:
    """Split on whitespace, dropping empty pieces."""
    return [w for w in _WHITESPACE_RE.split(text) if w]


def split_into_sentences(text: str) -> List[str]:
    """Split script text into lines.

    WHY: A take is detected per script line. Authors mostly write one
    sentence per line, but some paste a single run-on paragraph.

    HOW: Split after ".", "!" or "?" followed by whitespace, and at
    newlines. If that yields at most one piece and the text is longer
    than 50 characters, split after ",", ";" or ":" instead.

    RULES:
    - Pieces are stripped; empty pieces are dropped
    - Order of appearance is preserved
    """
    sentences = [s.strip() for s in _SENTENCE_SPLIT_RE.split(text)]
    sentences = [s for s in sentences if s]

    if len(sentences) <= 1 and len(text) > _CLAUSE_FALLBACK_MIN_CHARS:
        clauses = [s.strip() for s in _CLAUSE_SPLIT_RE.split(text)]
        return [s for s in clauses if s]

    return sentences
