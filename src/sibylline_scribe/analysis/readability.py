"""Local readability estimate.

Computes the same metrics the analysis service returns, using the Flesch
Reading Ease formula with a vowel-group syllable heuristic. Used for
instant feedback while the service request is outstanding.
"""

from __future__ import annotations

import re

import numpy as np

from .spans import Complexity, ReadabilityMetrics

_WORD_RE = re.compile(r"[A-Za-zÀ-ɏ]+(?:['’][A-Za-z]+)?|\d+(?:[.,]\d+)*")
_SENTENCE_END_RE = re.compile(r"[.!?]+(?=\s|$)")
_VOWEL_GROUP_RE = re.compile(r"[aeiouy]+")


def count_syllables(word: str) -> int:
    """Rough English syllable count: vowel groups, minus a silent final ``e``."""
    lowered = word.lower()
    if lowered.isdigit():
        return max(1, len(lowered))
    groups = len(_VOWEL_GROUP_RE.findall(lowered))
    if lowered.endswith("e") and not lowered.endswith(("le", "ee")) and groups > 1:
        groups -= 1
    return max(1, groups)


def flesch_reading_ease(words_per_sentence: float, syllables_per_word: float) -> float:
    return 206.835 - 1.015 * words_per_sentence - 84.6 * syllables_per_word


def estimate_readability(text: str) -> ReadabilityMetrics:
    """Estimate readability metrics for *text* without calling the service."""
    words = _WORD_RE.findall(text)
    if not words:
        return ReadabilityMetrics(
            word_count=0,
            sentence_count=0,
            average_word_length=0.0,
            average_sentence_length=0.0,
            flesch_reading_ease=0.0,
            complexity=Complexity.DIFFICULT,
        )

    sentence_count = max(1, len(_SENTENCE_END_RE.findall(text)))
    lengths = np.fromiter((len(w) for w in words), dtype=np.int64, count=len(words))
    syllables = np.fromiter((count_syllables(w) for w in words), dtype=np.int64, count=len(words))

    words_per_sentence = len(words) / sentence_count
    score = flesch_reading_ease(words_per_sentence, float(syllables.mean()))
    score = float(np.clip(score, 0.0, 100.0))

    return ReadabilityMetrics(
        word_count=len(words),
        sentence_count=sentence_count,
        average_word_length=round(float(lengths.mean()), 2),
        average_sentence_length=round(words_per_sentence, 2),
        flesch_reading_ease=round(score, 1),
        complexity=Complexity.from_score(score),
    )
