"""Script parsing: style-marker stripping and sentence construction.

WHY: Authors annotate scripts with rendering cues such as ``[zoom]``,
``[zoom:slow]`` and ``{word}`` highlights. They belong to a separate
rendering stage. Alignment must only ever see the clean spoken text.

HOW: parse_script() walks the marker pattern once, keeps highlighted
words, drops zoom cues, and records each marker's position in the clean
text. build_sentences() splits the clean text into ScriptSentence items.

RULES:
- ``[zoom]`` → punch zoom, ``[zoom:slow]`` → slow zoom; no text kept
- ``{word}`` → the word is kept in the clean text
- Marker positions are character offsets into the clean text
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import List

from take_selector.core.ir import ScriptSentence
from take_selector.core.text import normalize, split_into_sentences

_MARKER_RE = re.compile(r"\[zoom(?::(\w+))?\]|\{([^}]+)\}")


@dataclass
class ScriptMarker:
    """A style marker found in the script.

    kind is "zoom" or "highlight"; style is "punch"/"slow" for zooms;
    word is the highlighted word for highlights.
    """

    kind: str
    position: int
    style: str = ""
    word: str = ""


@dataclass
class ParsedScript:
    text: str
    original: str
    markers: List[ScriptMarker] = field(default_factory=list)


def parse_script(script: str) -> ParsedScript:
    """Strip inline style markers from a script.

    Args:
        script: Raw script text, possibly containing markers.

    Returns:
        ParsedScript with the clean text, the markers in order of
        appearance, and the original text.
    """
    parts: List[str] = []
    markers: List[ScriptMarker] = []
    last_index = 0
    clean_position = 0

    for match in _MARKER_RE.finditer(script):
        before = script[last_index:match.start()]
        parts.append(before)
        clean_position += len(before)

        if match.group(0).startswith("[zoom"):
            style = "slow" if match.group(1) == "slow" else "punch"
            markers.append(ScriptMarker(kind="zoom", position=clean_position, style=style))
        else:
            word = match.group(2)
            markers.append(ScriptMarker(kind="highlight", position=clean_position, word=word))
            parts.append(word)
            clean_position += len(word)

        last_index = match.end()

    parts.append(script[last_index:])

    return ParsedScript(text="".join(parts), original=script, markers=markers)


def build_sentences(script: str | None) -> List[ScriptSentence]:
    """Turn raw script text into indexed ScriptSentence items.

    RULES:
    - None or whitespace-only scripts yield an empty list
    - Markers are stripped before splitting
    - Indices are 0-based in order of appearance
    """
    if not script or not script.strip():
        return []

    clean = parse_script(script).text
    return [
        ScriptSentence(index=i, text=text, normalized_text=normalize(text))
        for i, text in enumerate(split_into_sentences(clean))
    ]
