"""Shared test fixtures for sibylline-scribe."""

import asyncio

import pytest

from sibylline_scribe.analysis import AnalysisService, IssueKind, ReadabilityMetrics, TextSpan
from sibylline_scribe.analysis.spans import Complexity
from sibylline_scribe.config import ScribeConfig
from sibylline_scribe.errors import AnalysisServiceError
from sibylline_scribe.scheduler import ManualClock
from sibylline_scribe.store import InMemoryDocumentStore, InMemoryWritingSampleStore


class FakeAnalysisService(AnalysisService):
    """In-process analysis service.

    Flags the first occurrence of each registered word. ``gates`` maps a
    request text to an event the call waits on, to simulate slow responses.
    """

    def __init__(self):
        self.rules: list[tuple[str, str, IssueKind, str]] = []
        self.extra_spans: list[TextSpan] = []
        self.calls: list[str] = []
        self.gates: dict[str, asyncio.Event] = {}
        self.error: Exception | None = None
        self.metrics = ReadabilityMetrics(
            word_count=4,
            sentence_count=1,
            average_word_length=3.5,
            average_sentence_length=4.0,
            flesch_reading_ease=90.0,
            complexity=Complexity.EASY,
        )
        self.rewrites: list[tuple[str, str]] = []

    @classmethod
    def name(cls) -> str:
        return "fake"

    def flag(self, word, suggestion, kind=IssueKind.SPELLING, explanation="Check this word"):
        self.rules.append((word, suggestion, kind, explanation))

    async def proofread(self, text):
        self.calls.append(text)
        gate = self.gates.get(text)
        if gate is not None:
            await gate.wait()
        if self.error is not None:
            raise self.error

        spans = []
        for word, suggestion, kind, explanation in self.rules:
            idx = text.find(word)
            if idx != -1:
                spans.append(TextSpan(kind, idx, idx + len(word), suggestion, explanation))
        spans.extend(self.extra_spans)
        return spans

    async def readability(self, text):
        if self.error is not None:
            raise self.error
        return self.metrics

    async def rewrite(self, text, writing_sample):
        if self.error is not None:
            raise self.error
        self.rewrites.append((text, writing_sample))
        return f"{text} (in style)"


@pytest.fixture
def isolated_home(tmp_path, monkeypatch):
    """Point HOME and the working directory at an empty temp dir."""
    home = tmp_path / "home"
    work = tmp_path / "work"
    home.mkdir()
    work.mkdir()
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.chdir(work)
    return tmp_path


@pytest.fixture
def config(isolated_home):
    """Package defaults only."""
    return ScribeConfig()


@pytest.fixture
def clock():
    return ManualClock()


@pytest.fixture
def service():
    return FakeAnalysisService()


@pytest.fixture
def store():
    return InMemoryDocumentStore()


@pytest.fixture
def sample_store():
    return InMemoryWritingSampleStore()


@pytest.fixture
def service_error():
    return AnalysisServiceError("Failed to get response from AI")
