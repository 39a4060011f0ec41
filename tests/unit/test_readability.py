"""Unit tests for the local readability estimate."""

import pytest

from sibylline_scribe.analysis import estimate_readability
from sibylline_scribe.analysis.readability import count_syllables, flesch_reading_ease
from sibylline_scribe.analysis.spans import Complexity


class TestCountSyllables:
    @pytest.mark.parametrize(
        "word,expected",
        [("cat", 1), ("make", 1), ("table", 2), ("water", 2), ("readability", 5), ("a", 1), ("42", 2)],
    )
    def test_counts(self, word, expected):
        assert count_syllables(word) == expected


class TestComplexity:
    @pytest.mark.parametrize(
        "score,expected",
        [
            (100, Complexity.EASY),
            (80, Complexity.EASY),
            (79.9, Complexity.MODERATE),
            (60, Complexity.MODERATE),
            (59.9, Complexity.DIFFICULT),
            (0, Complexity.DIFFICULT),
        ],
    )
    def test_from_score(self, score, expected):
        assert Complexity.from_score(score) is expected


class TestEstimateReadability:
    def test_simple_sentence(self):
        metrics = estimate_readability("The cat sat on the mat.")
        assert metrics.word_count == 6
        assert metrics.sentence_count == 1
        assert metrics.average_word_length == pytest.approx(2.83)
        assert metrics.average_sentence_length == 6.0
        # Raw score is above 100 and gets clipped
        assert metrics.flesch_reading_ease == 100.0
        assert metrics.complexity is Complexity.EASY

    def test_sentence_count(self):
        metrics = estimate_readability("One here. Two there! Three? Done")
        assert metrics.sentence_count == 3

    def test_dense_text_is_harder(self):
        easy = estimate_readability("The dog ran. The cat sat. We had fun.")
        hard = estimate_readability(
            "Institutional considerations notwithstanding, organizational "
            "responsibilities necessitate comprehensive evaluation methodologies."
        )
        assert hard.flesch_reading_ease < easy.flesch_reading_ease
        assert hard.complexity is Complexity.DIFFICULT

    def test_empty_text(self):
        metrics = estimate_readability("   ")
        assert metrics.word_count == 0
        assert metrics.flesch_reading_ease == 0.0
        assert metrics.complexity is Complexity.DIFFICULT

    def test_formula(self):
        assert flesch_reading_ease(10, 1.5) == pytest.approx(206.835 - 10.15 - 126.9)

    def test_to_dict_wire_values(self):
        data = estimate_readability("The cat sat on the mat.").to_dict()
        assert data["complexity"] == "easy"
        assert set(data) == {
            "word_count",
            "sentence_count",
            "average_word_length",
            "average_sentence_length",
            "flesch_reading_ease",
            "complexity",
        }
