"""Unit tests for the word-level sequence aligner.

WHY: Take boundaries come straight from the alignment. A wrong
tie-break lets the path drift into a later repetition of the same words
and cuts the wrong take.

HOW: Small script/window pairs whose optimal alignment can be worked
out by hand, including the earliest-column tie-break.
"""

from take_selector.core.aligner import align_words


class TestAlignWords:
    """Dynamic-programming alignment with earliest-column backtracking."""

    def test_identical_sequences(self):
        words = ["hoy", "vamos", "a", "hablar"]
        assert align_words(words, list(words)) == [0, 1, 2, 3]

    def test_empty_script(self):
        assert align_words([], ["hola"]) == []

    def test_empty_window(self):
        assert align_words(["hola", "mundo"], []) == [None, None]

    def test_inserted_words_are_skipped(self):
        script = ["hoy", "vamos", "hablar"]
        window = ["hoy", "eh", "vamos", "a", "hablar"]
        assert align_words(script, window) == [0, 2, 4]

    def test_earliest_column_tie_break(self):
        # Both occurrences score the same; the first one must be chosen.
        script = ["hola", "mundo"]
        window = ["hola", "mundo", "hola", "mundo"]
        assert align_words(script, window) == [0, 1]

    def test_dissimilar_word_not_emitted(self):
        assert align_words(["casa"], ["perro"]) == [None]

    def test_misspelled_word_still_aligned(self):
        script = ["inteligencia", "artificial"]
        window = ["inteligencia", "artifical"]
        assert align_words(script, window) == [0, 1]

    def test_result_length_matches_script(self):
        script = ["uno", "dos", "tres", "cuatro"]
        window = ["dos", "tres"]
        result = align_words(script, window)
        assert len(result) == len(script)
        assert all(idx is None or 0 <= idx < len(window) for idx in result)
