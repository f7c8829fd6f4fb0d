"""Shared test fixtures for the take_selector test suite.

WHY: Most test modules need the same recordings: a stuttered false start
followed by a clean take, a phrase repeated without a script, and a
five-line script with one line never recorded. Centralizing them keeps
every module testing against identical data.

HOW: Fixtures return fresh Caption lists and script strings, plus small
factories for hand-built Candidates and Scores used by the selector and
scorer tests.

RULES:
- Captions are in time order with realistic (Spanish) speech
- Every fixture returns new objects; tests may mutate them
- Expected numbers in the tests are derived from these exact timings
"""

from typing import List, Optional

import pytest

from take_selector.config import SelectionConfig
from take_selector.core.ir import Candidate, Caption, Score, ScoreBreakdown


# ---------------------------------------------------------------------------
# Scenario A: stuttered partial, filler, then the complete take
# ---------------------------------------------------------------------------

SCRIPT_A = "Hoy vamos a hablar de inteligencia artificial."


@pytest.fixture
def script_a() -> str:
    return SCRIPT_A


@pytest.fixture
def captions_a() -> List[Caption]:
    """Partial attempt (5 of 7 words), a 10-word aside, the full line."""
    return [
        Caption("Hoy vamos a hablar de...", 0, 1500, 0.9),
        Caption("perdón, lo repito otra vez desde el principio ahora mismo", 2000, 4500, 0.9),
        Caption("Hoy vamos a hablar de inteligencia artificial.", 5000, 8000, 0.95),
    ]


# ---------------------------------------------------------------------------
# Scenario B: the same 12-word phrase twice, no script
# ---------------------------------------------------------------------------

@pytest.fixture
def repeated_phrase_captions() -> List[Caption]:
    return [
        Caption(
            "La inteligencia artificial está cambiando la forma en que trabajamos cada día.",
            0, 5000, 0.9,
        ),
        Caption(
            "La inteligencia artificial está cambiando la forma en que trabajamos todos los días.",
            6500, 11500, 0.92,
        ),
    ]


# ---------------------------------------------------------------------------
# Scenario C: five script lines, four recorded
# ---------------------------------------------------------------------------

SCRIPT_C = (
    "Bienvenidos al canal de tecnología.\n"
    "Hoy hablamos de servidores.\n"
    "La nube cambió todo.\n"
    "Los costes bajaron mucho.\n"
    "Gracias por vernos."
)


@pytest.fixture
def script_c() -> str:
    return SCRIPT_C


@pytest.fixture
def captions_c() -> List[Caption]:
    """Lines 0, 1, 2 and 4 of SCRIPT_C; line 3 was never recorded."""
    return [
        Caption("Bienvenidos al canal de tecnología.", 0, 2500, 0.9),
        Caption("Hoy hablamos de servidores.", 3500, 6000, 0.9),
        Caption("La nube cambió todo.", 7000, 9000, 0.9),
        Caption("Gracias por vernos.", 10000, 12000, 0.9),
    ]


# ---------------------------------------------------------------------------
# Config and factories
# ---------------------------------------------------------------------------

@pytest.fixture
def config() -> SelectionConfig:
    return SelectionConfig().validate()


@pytest.fixture
def make_candidate():
    """Factory for hand-built candidates."""

    def _make(
        cid: str,
        start_ms: float,
        end_ms: float,
        text: str = "Una frase de prueba.",
        take_number: int = 1,
        take_count: int = 1,
        is_false_start: bool = False,
        sentence_index: Optional[int] = None,
        group_id: Optional[str] = None,
        caption_indices: Optional[List[int]] = None,
    ) -> Candidate:
        return Candidate(
            id=cid,
            start_ms=start_ms,
            end_ms=end_ms,
            transcribed_text=text,
            confidence=1.0,
            caption_indices=list(caption_indices or []),
            sentence_index=sentence_index,
            group_id=group_id,
            take_number=take_number,
            take_count=take_count,
            is_false_start=is_false_start,
        )

    return _make


@pytest.fixture
def make_score():
    """Factory for Scores with a given total and neutral breakdown."""

    def _make(cid: str, total: float, ambiguous: bool = False) -> Score:
        return Score(
            candidate_id=cid,
            total_score=total,
            breakdown=ScoreBreakdown(
                coverage=total, take_order=total, completeness=total,
                duration=total, confidence=total,
            ),
            weights={},
            notes=(),
            reason="Selected ({}%)".format(int(round(total))),
            is_ambiguous=ambiguous,
        )

    return _make
