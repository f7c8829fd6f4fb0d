"""Unit tests for the no-script phrase grouper.

WHY: Without a script, repetition groups are the only thing standing
between the editor and a cut that says the same sentence twice.

HOW: Hand-built captions with controlled gaps and wording, plus the
Scenario B recording (same 12-word phrase twice) from conftest.py.
"""

from take_selector.config import SelectionConfig
from take_selector.core.ir import Caption, GroupingMode
from take_selector.core.phrases import (
    Phrase,
    build_phrase_candidates,
    group_similar_phrases,
    merge_captions,
)


class TestMergeCaptions:

    def test_short_gap_merges(self):
        phrases = merge_captions([
            Caption("Hoy vamos", 0, 1000, 0.9),
            Caption("a hablar", 1400, 2000, 0.7),
        ], max_gap_ms=500)
        assert len(phrases) == 1
        assert phrases[0].text == "Hoy vamos a hablar"
        assert (phrases[0].start_ms, phrases[0].end_ms) == (0, 2000)
        assert phrases[0].confidence == 0.7
        assert phrases[0].caption_indices == [0, 1]

    def test_gap_equal_to_threshold_merges(self):
        phrases = merge_captions([Caption("uno", 0, 1000), Caption("dos", 1500, 2000)], max_gap_ms=500)
        assert len(phrases) == 1

    def test_long_gap_splits(self):
        phrases = merge_captions([Caption("uno", 0, 1000), Caption("dos", 1600, 2000)], max_gap_ms=500)
        assert [p.text for p in phrases] == ["uno", "dos"]

    def test_missing_confidence(self):
        phrases = merge_captions([Caption("uno", 0, 1000), Caption("dos", 1100, 2000, 0.8)])
        assert phrases[0].confidence == 0.8
        assert merge_captions([Caption("uno", 0, 1000)])[0].confidence is None

    def test_empty(self):
        assert merge_captions([]) == []

    def test_no_gap_disables_merging(self):
        phrases = merge_captions([Caption("uno", 0, 1000), Caption("dos", 1000, 2000)], max_gap_ms=None)
        assert [p.text for p in phrases] == ["uno", "dos"]
        assert [p.caption_indices for p in phrases] == [[0], [1]]


class TestGroupSimilarPhrases:

    def _phrase(self, text, start):
        return Phrase(text=text, start_ms=start, end_ms=start + 1000, confidence=None)

    def test_near_duplicates_cluster(self):
        phrases = [
            self._phrase("La nube cambió todo en la empresa.", 0),
            self._phrase("Algo completamente distinto aquí.", 2000),
            self._phrase("La nube cambió todo en la empresa", 4000),
        ]
        clusters = group_similar_phrases(phrases, 0.75, 10)
        assert [[i for i, _ in c] for c in clusters] == [[0, 2], [1]]
        assert clusters[0][0] == (0, 1.0)
        assert clusters[0][1][1] == 1.0

    def test_short_phrases_never_group(self):
        phrases = [self._phrase("vale", 0), self._phrase("vale", 2000)]
        assert group_similar_phrases(phrases, 0.75, 10) == []


class TestBuildPhraseCandidates:
    """Scenario B: the same phrase twice without a script."""

    def test_one_group_two_takes(self, repeated_phrase_captions, config):
        groups, ungrouped = build_phrase_candidates(repeated_phrase_captions, config)
        assert ungrouped == []
        assert len(groups) == 1
        group = groups[0]
        assert group.id == "repeat-0"
        assert group.mode is GroupingMode.SIMILARITY
        assert [m.id for m in group.members] == ["phrase-0", "phrase-1"]
        assert [m.take_number for m in group.members] == [1, 2]
        assert all(m.take_count == 2 and m.group_id == "repeat-0" for m in group.members)

    def test_distinct_phrases_stay_ungrouped(self, captions_c, config):
        groups, ungrouped = build_phrase_candidates(captions_c, config)
        assert groups == []
        assert [c.id for c in ungrouped] == ["phrase-0", "phrase-1", "phrase-2", "phrase-3"]
        assert all(c.group_id is None for c in ungrouped)

    def test_repeat_after_short_breath(self, config):
        text = "La inteligencia artificial está cambiando la forma en que trabajamos cada día."
        captions = [Caption(text, 0, 5000, 0.9), Caption(text, 5300, 10300, 0.9)]
        groups, ungrouped = build_phrase_candidates(captions, config)
        assert ungrouped == []
        assert len(groups) == 1
        assert [m.caption_indices for m in groups[0].members] == [[0], [1]]

    def test_configured_merge_gap(self):
        config = SelectionConfig(merge_gap_ms=500).validate()
        captions = [
            Caption("Hoy vamos a hablar", 0, 1000),
            Caption("de inteligencia artificial.", 1300, 3000),
        ]
        groups, ungrouped = build_phrase_candidates(captions, config)
        assert groups == []
        assert [c.transcribed_text for c in ungrouped] == [
            "Hoy vamos a hablar de inteligencia artificial."
        ]

    def test_empty_transcript(self, config):
        assert build_phrase_candidates([], config) == ([], [])
