"""Unit tests for take detection and false-start classification.

WHY: The take detector decides which spans of the recording are even
considered. A missed take can never be selected; overlapping takes would
cut the same audio twice.

HOW: Uses the Scenario A recording from conftest.py (partial attempt,
aside, complete take) and small hand-built inputs. Token timings are
evenly interpolated, so expected boundaries can be computed by hand.
"""

import pytest

from take_selector.core.ir import Caption, Candidate, ScriptSentence
from take_selector.core.script import build_sentences
from take_selector.core.takes import (
    build_tokens,
    classify_false_starts,
    detect_takes,
    find_anchors,
    find_sentence_takes,
    take_fluency,
    window_length,
)


class TestBuildTokens:
    """Word tokens with evenly interpolated timing."""

    def test_even_interpolation(self):
        tokens = build_tokens([Caption("uno dos tres", 0, 900)])
        assert [t.text for t in tokens] == ["uno", "dos", "tres"]
        assert [(t.start_ms, t.end_ms) for t in tokens] == [(0, 300), (300, 600), (600, 900)]

    def test_caption_index_and_normalization(self):
        tokens = build_tokens([Caption("", 0, 100), Caption("¡Hola!", 100, 400)])
        assert len(tokens) == 1
        assert tokens[0].caption_index == 1
        assert tokens[0].normalized_text == "hola"


class TestAnchorsAndWindows:

    def test_anchors_match_first_two_words(self, captions_a):
        tokens = build_tokens(captions_a)
        anchors = find_anchors(["hoy", "vamos"], tokens, 0.6)
        assert anchors == [0, 1, 15, 16]

    def test_window_length(self, config):
        # ceil(7 * 1.5) + 4
        assert window_length(7, config) == 15


class TestFindSentenceTakes:
    """Scenario A detection."""

    def test_two_takes_in_time_order(self, captions_a, script_a, config):
        sentence = build_sentences(script_a)[0]
        takes = find_sentence_takes(sentence, build_tokens(captions_a), config)

        assert [t.id for t in takes] == ["take-0-0", "take-0-1"]
        assert takes[0].transcribed_text == "Hoy vamos a hablar de..."
        assert takes[1].transcribed_text == "Hoy vamos a hablar de inteligencia artificial."
        assert [t.take_number for t in takes] == [1, 2]
        assert all(t.take_count == 2 for t in takes)

    def test_padding_applied_and_clamped(self, captions_a, script_a, config):
        sentence = build_sentences(script_a)[0]
        first, second = find_sentence_takes(sentence, build_tokens(captions_a), config)
        assert first.start_ms == 0
        assert first.end_ms == pytest.approx(1650)
        assert second.start_ms == pytest.approx(4900)
        assert second.end_ms == pytest.approx(8150)

    def test_padded_spans_do_not_overlap(self, captions_a, script_a, config):
        sentence = build_sentences(script_a)[0]
        takes = find_sentence_takes(sentence, build_tokens(captions_a), config)
        for a, b in zip(takes, takes[1:]):
            assert a.end_ms <= b.start_ms

    def test_caption_indices(self, captions_a, script_a, config):
        sentence = build_sentences(script_a)[0]
        first, second = find_sentence_takes(sentence, build_tokens(captions_a), config)
        assert first.caption_indices == [0]
        assert second.caption_indices == [2]

    def test_sentence_not_spoken(self, captions_a, config):
        sentence = ScriptSentence(0, "Gracias por vernos.", "gracias por vernos")
        assert find_sentence_takes(sentence, build_tokens(captions_a), config) == []

    def test_no_tokens(self, script_a, config):
        sentence = build_sentences(script_a)[0]
        assert find_sentence_takes(sentence, [], config) == []


class TestFalseStarts:
    """Abandoned attempts are flagged only when a fuller take exists."""

    def _take(self, cid, text):
        return Candidate(id=cid, start_ms=0, end_ms=1000, transcribed_text=text, confidence=1.0)

    def test_single_take_never_false_start(self, config):
        takes = classify_false_starts([self._take("t", "Hoy vamos")], 7, [], config)
        assert takes[0].is_false_start is False

    def test_short_take_flagged(self, config):
        takes = classify_false_starts(
            [self._take("a", "Hoy vamos a"), self._take("b", "Hoy vamos a hablar de inteligencia artificial.")],
            7, [], config,
        )
        assert [t.is_false_start for t in takes] == [True, False]

    def test_stutter_marker_flags_long_partial(self, config):
        takes = classify_false_starts(
            [self._take("a", "Hoy vamos a hablar de..."), self._take("b", "Hoy vamos a hablar de inteligencia artificial.")],
            7, [], config,
        )
        assert takes[0].is_false_start is True
        assert takes[1].is_false_start is False

    def test_equal_coverage_not_flagged(self, config):
        takes = classify_false_starts(
            [self._take("a", "uno dos tres"), self._take("b", "uno dos tres")],
            3, [], config,
        )
        assert [t.is_false_start for t in takes] == [False, False]

    def test_inputs_not_mutated(self, config):
        original = [self._take("a", "Hoy"), self._take("b", "Hoy vamos a hablar")]
        classify_false_starts(original, 4, [], config)
        assert original[0].is_false_start is False


class TestFluency:

    def test_clean_take(self):
        take = Candidate(id="t", start_ms=0, end_ms=1000, transcribed_text="hoy vamos a hablar", confidence=1.0)
        assert take_fluency(take, []) == 100.0

    def test_repeated_bigram(self):
        take = Candidate(id="t", start_ms=0, end_ms=1000, transcribed_text="vamos a vamos a hablar", confidence=1.0)
        assert take_fluency(take, []) == 85.0

    def test_low_confidence_and_gaps(self):
        captions = [
            Caption("uno", 0, 500, 0.3),
            Caption("dos", 1600, 2000, 0.9),
        ]
        take = Candidate(
            id="t", start_ms=0, end_ms=2000, transcribed_text="uno dos",
            confidence=1.0, caption_indices=[0, 1],
        )
        # -10 for half the captions below 0.5, -10 for an 1100 ms gap
        assert take_fluency(take, captions) == 80.0


class TestDetectTakes:

    def test_one_group_per_sentence(self, captions_c, script_c, config):
        groups = detect_takes(build_sentences(script_c), captions_c, config)
        assert [g.id for g in groups] == ["sentence-0", "sentence-1", "sentence-2", "sentence-3", "sentence-4"]
        assert [len(g.members) for g in groups] == [1, 1, 1, 0, 1]

    def test_empty_transcript(self, script_c, config):
        groups = detect_takes(build_sentences(script_c), [], config)
        assert all(not g.members for g in groups)

    def test_scenario_a_false_start_flagged(self, captions_a, script_a, config):
        groups = detect_takes(build_sentences(script_a), captions_a, config)
        members = groups[0].members
        assert [m.is_false_start for m in members] == [True, False]
