"""End-to-end tests for select_takes().

WHY: The orchestrator is what callers use. These tests pin the
behaviour editors rely on: the stuttered partial is dropped for the
complete take, repeats without a script collapse to the last one, and
unrecorded script lines are reported instead of failing the run.

HOW: Runs the full pipeline on the shared recordings from conftest.py
and checks selections, reasons, missing lines, and statistics, plus
determinism and the missing-coverage invariant.
"""

import pytest

from take_selector.config import ConfigError, SelectionConfig
from take_selector.core.engine import select_takes
from take_selector.core.explain import LogCollector
from take_selector.core.ir import Caption, GroupingMode
from take_selector.formatters.selection_json import build_selection_document


class TestScenarioA:
    """Stuttered partial attempt followed by the complete take."""

    def test_complete_take_selected(self, captions_a, script_a):
        result = select_takes(captions_a, script_a)
        assert result.mode is GroupingMode.SCRIPT
        assert [c.id for c in result.selected] == ["take-0-1"]
        assert [c.id for c in result.rejected] == ["take-0-0"]

    def test_partial_rejected_with_reason(self, captions_a, script_a):
        result = select_takes(captions_a, script_a)
        partial = result.rejected[0]
        reason = result.score_for(partial.id).reason
        assert partial.is_false_start is True
        assert reason.startswith("Rejected (")
        assert "false start" in reason
        assert "superseded by take 2" in reason

    def test_stats(self, captions_a, script_a):
        stats = select_takes(captions_a, script_a).stats
        assert stats.total_candidates == 2
        assert stats.selected_candidates == 1
        assert stats.false_starts_detected == 1
        assert stats.repetitions_removed == 1
        assert stats.script_coverage == 100.0
        assert stats.original_duration_ms == 8000
        assert stats.selected_duration_ms == pytest.approx(3250)

    def test_back_to_back_stutter_is_trimmed(self, script_a):
        """Restart with no pause: one take, cut where the full attempt starts."""
        captions = [
            Caption("Hoy vamos a... Hoy vamos a hablar de inteligencia artificial.", 0, 5000, 0.9),
        ]
        result = select_takes(captions, script_a)
        assert result.rejected == []
        [take] = result.selected
        assert take.transcribed_text == "Hoy vamos a hablar de inteligencia artificial."
        assert take.speech_span == pytest.approx((1500, 5000))
        assert take.start_ms == pytest.approx(1400)
        assert take.is_false_start is False
        assert "only take" in result.score_for(take.id).notes


class TestScenarioB:
    """Same phrase twice without a script."""

    def test_later_repeat_selected(self, repeated_phrase_captions):
        result = select_takes(repeated_phrase_captions)
        assert result.mode is GroupingMode.SIMILARITY
        assert len(result.groups) == 1
        assert len(result.groups[0].members) == 2
        assert [c.id for c in result.selected] == ["phrase-1"]
        assert [c.id for c in result.rejected] == ["phrase-0"]
        assert result.missing == []

    def test_repeat_after_short_breath(self):
        text = "La inteligencia artificial está cambiando la forma en que trabajamos cada día."
        result = select_takes([Caption(text, 0, 5000, 0.9), Caption(text, 5300, 10300, 0.9)])
        assert len(result.groups) == 1
        assert [c.id for c in result.selected] == ["phrase-1"]
        assert [c.id for c in result.rejected] == ["phrase-0"]

    def test_blank_script_means_no_script(self, repeated_phrase_captions):
        result = select_takes(repeated_phrase_captions, "   \n")
        assert result.mode is GroupingMode.SIMILARITY


class TestScenarioC:
    """Five script lines, four recorded."""

    def test_missing_line_reported(self, captions_c, script_c):
        result = select_takes(captions_c, script_c)
        assert result.missing == [3]
        assert [c.sentence_index for c in result.selected] == [0, 1, 2, 4]
        assert result.stats.script_coverage == 80.0
        assert result.stats.covered_sentences == [0, 1, 2, 4]

    def test_missing_coverage_completeness(self, captions_c, script_c):
        result = select_takes(captions_c, script_c)
        resolved = {c.sentence_index for c in result.selected + result.rejected}
        assert resolved.isdisjoint(result.missing)
        assert resolved | set(result.missing) == {s.index for s in result.sentences}


class TestDegenerateInputs:

    def test_empty_transcript_all_missing(self, script_c):
        result = select_takes([], script_c)
        assert result.mode is GroupingMode.SCRIPT
        assert result.selected == [] and result.rejected == []
        assert result.missing == [0, 1, 2, 3, 4]

    def test_empty_transcript_without_script(self):
        result = select_takes([])
        assert result.mode is GroupingMode.SIMILARITY
        assert result.selected == [] and result.rejected == [] and result.missing == []
        assert result.stats.total_candidates == 0

    def test_invalid_config_fails_before_scoring(self, captions_a, script_a):
        with pytest.raises(ConfigError):
            select_takes(captions_a, script_a, SelectionConfig(min_score=150))


class TestInvariants:

    def test_deterministic(self, captions_c, script_c):
        first = build_selection_document(select_takes(captions_c, script_c))
        second = build_selection_document(select_takes(captions_c, script_c))
        assert first == second

    def test_one_score_per_candidate(self, captions_a, script_a):
        result = select_takes(captions_a, script_a)
        ids = [s.candidate_id for s in result.scores]
        assert sorted(ids) == sorted(c.id for c in result.selected + result.rejected)

    def test_at_most_one_selected_per_group(self, captions_a, script_a):
        result = select_takes(captions_a, script_a)
        for group in result.groups:
            assert sum(1 for m in group.members if m.selected) <= 1

    def test_collector_does_not_change_results(self, captions_a, script_a):
        plain = build_selection_document(select_takes(captions_a, script_a))
        logged = build_selection_document(select_takes(captions_a, script_a, collector=LogCollector()))
        assert plain == logged
