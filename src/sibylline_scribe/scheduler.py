"""Debounced analysis scheduling.

Decides when accumulated edits are settled enough to send the current text
to the analysis service. Each edit is classified by comparing it with the
previous text snapshot:

* ``IMMEDIATE``: document switched or initially loaded (no debounce).
* ``WORD_BOUNDARY``: text got shorter, or the last inserted character is
  whitespace or punctuation (short window).
* ``TYPING``: anything else (long window).

A new edit cancels the pending timer and re-arms it with its own window,
so only the most recent pending request ever fires. Requests carry a
monotonic sequence number; a response whose sequence is not the latest
dispatched one is stale and should be discarded by the caller.
"""

from __future__ import annotations

import asyncio
import heapq
import itertools
import logging
import unicodedata
from collections.abc import Callable
from dataclasses import dataclass
from enum import Enum
from typing import Protocol

logger = logging.getLogger(__name__)


class TriggerClass(Enum):
    IMMEDIATE = "immediate"
    WORD_BOUNDARY = "word-boundary"
    TYPING = "typing"


class SchedulerState(Enum):
    IDLE = "idle"
    PENDING = "pending"


@dataclass(frozen=True)
class AnalysisRequest:
    """A request handed to the dispatcher when a debounce window elapses."""

    seq: int
    text: str
    trigger: TriggerClass


@dataclass(frozen=True)
class DebounceWindows:
    """Debounce window per trigger class, in seconds."""

    immediate: float = 0.0
    word_boundary: float = 0.3
    typing: float = 0.8

    @classmethod
    def from_config(cls, settings: dict) -> DebounceWindows:
        """Build from the ``scheduler`` config section (values in milliseconds)."""
        return cls(
            immediate=settings.get("immediate_ms", 0) / 1000.0,
            word_boundary=settings.get("word_boundary_ms", 300) / 1000.0,
            typing=settings.get("typing_ms", 800) / 1000.0,
        )

    def for_trigger(self, trigger: TriggerClass) -> float:
        if trigger is TriggerClass.IMMEDIATE:
            return self.immediate
        if trigger is TriggerClass.WORD_BOUNDARY:
            return self.word_boundary
        return self.typing


# ---------------------------------------------------------------------------
# Clocks
# ---------------------------------------------------------------------------


class TimerHandle(Protocol):
    def cancel(self) -> None: ...


class Clock(Protocol):
    """Time source and timer factory used by the scheduler."""

    def time(self) -> float: ...

    def call_later(self, delay: float, callback: Callable[[], None]) -> TimerHandle: ...


class AsyncioClock:
    """Clock backed by the running asyncio event loop."""

    def __init__(self, loop: asyncio.AbstractEventLoop | None = None) -> None:
        self._loop = loop

    @property
    def loop(self) -> asyncio.AbstractEventLoop:
        if self._loop is None:
            self._loop = asyncio.get_running_loop()
        return self._loop

    def time(self) -> float:
        return self.loop.time()

    def call_later(self, delay: float, callback: Callable[[], None]) -> asyncio.TimerHandle:
        return self.loop.call_later(delay, callback)


class _ManualTimer:
    __slots__ = ("when", "callback", "cancelled")

    def __init__(self, when: float, callback: Callable[[], None]) -> None:
        self.when = when
        self.callback = callback
        self.cancelled = False

    def cancel(self) -> None:
        self.cancelled = True


class ManualClock:
    """Deterministic clock: time only moves when :meth:`advance` is called.

    Due callbacks fire in time order (ties in scheduling order), each with
    :meth:`time` set to its due time.
    """

    def __init__(self, start: float = 0.0) -> None:
        self._now = start
        self._timers: list[tuple[float, int, _ManualTimer]] = []
        self._counter = itertools.count()

    def time(self) -> float:
        return self._now

    def call_later(self, delay: float, callback: Callable[[], None]) -> _ManualTimer:
        timer = _ManualTimer(self._now + max(0.0, delay), callback)
        heapq.heappush(self._timers, (timer.when, next(self._counter), timer))
        return timer

    def advance(self, seconds: float) -> None:
        target = self._now + seconds
        while self._timers and self._timers[0][0] <= target:
            when, _, timer = heapq.heappop(self._timers)
            if timer.cancelled:
                continue
            self._now = when
            timer.callback()
        self._now = target

    @property
    def pending(self) -> int:
        return sum(1 for _, _, t in self._timers if not t.cancelled)


# ---------------------------------------------------------------------------
# Classification
# ---------------------------------------------------------------------------


def is_boundary_char(ch: str) -> bool:
    """Whitespace or punctuation: a character that completes a word."""
    return ch.isspace() or unicodedata.category(ch).startswith("P")


def classify_edit(old_text: str, new_text: str) -> TriggerClass:
    """Classify an edit from the previous snapshot to the new text."""
    if len(new_text) < len(old_text):
        return TriggerClass.WORD_BOUNDARY

    # Last inserted character: first difference from the end of the common prefix
    prefix = 0
    limit = min(len(old_text), len(new_text))
    while prefix < limit and old_text[prefix] == new_text[prefix]:
        prefix += 1
    inserted = len(new_text) - len(old_text)
    if inserted > 0:
        last_inserted = new_text[prefix + inserted - 1]
    elif prefix < len(new_text):
        # Same-length replacement
        last_inserted = new_text[prefix]
    else:
        return TriggerClass.TYPING

    if is_boundary_char(last_inserted):
        return TriggerClass.WORD_BOUNDARY
    return TriggerClass.TYPING


# ---------------------------------------------------------------------------
# Scheduler
# ---------------------------------------------------------------------------


class AnalysisScheduler:
    """Debounced, last-write-wins dispatcher for analysis requests.

    Args:
        on_dispatch: Called with an :class:`AnalysisRequest` when a window
            elapses. Must not block; it typically spawns an async task.
        on_skip: Called when a window elapses with text below
            *min_text_length*; the caller should clear its spans.
        clock: Timer source. Defaults to the running asyncio loop.
        windows: Debounce window per trigger class.
        min_text_length: Shorter texts are never sent.
    """

    def __init__(
        self,
        on_dispatch: Callable[[AnalysisRequest], None],
        on_skip: Callable[[], None] | None = None,
        clock: Clock | None = None,
        windows: DebounceWindows | None = None,
        min_text_length: int = 10,
    ) -> None:
        self._on_dispatch = on_dispatch
        self._on_skip = on_skip
        self._clock = clock or AsyncioClock()
        self.windows = windows or DebounceWindows()
        self.min_text_length = min_text_length

        self._snapshot = ""
        self._pending_text: str | None = None
        self._pending_trigger: TriggerClass | None = None
        self._timer: TimerHandle | None = None
        self._seq = 0
        self._outstanding: set[int] = set()

    @property
    def state(self) -> SchedulerState:
        return SchedulerState.PENDING if self._timer is not None else SchedulerState.IDLE

    @property
    def pending_trigger(self) -> TriggerClass | None:
        return self._pending_trigger

    @property
    def latest_seq(self) -> int:
        """Most recently issued sequence number (0 if none).

        Invalidation also consumes a number, so this can run ahead of the
        last dispatched request.
        """
        return self._seq

    @property
    def in_flight(self) -> int:
        return len(self._outstanding)

    def reset_snapshot(self, text: str = "") -> None:
        """Set the baseline text edits are classified against."""
        self._snapshot = text

    def on_edit(self, text: str) -> TriggerClass:
        """Record an edit and (re)arm the debounce timer."""
        trigger = classify_edit(self._snapshot, text)
        self._snapshot = text
        self._arm(text, trigger)
        return trigger

    def trigger_immediate(self, text: str) -> None:
        """Document switched or initially loaded: bypass the debounce."""
        self._snapshot = text
        self._arm(text, TriggerClass.IMMEDIATE)

    def cancel(self) -> None:
        """Drop any pending request and invalidate those in flight."""
        if self._timer is not None:
            self._timer.cancel()
        self._timer = None
        self._pending_text = None
        self._pending_trigger = None
        self._invalidate()

    def is_latest(self, seq: int) -> bool:
        """Whether a response for *seq* is neither superseded nor invalidated."""
        return seq == self._seq

    def complete(self, seq: int) -> bool:
        """Mark request *seq* as answered. Returns ``False`` for stale responses."""
        self._outstanding.discard(seq)
        fresh = self.is_latest(seq)
        if not fresh:
            logger.debug("Discarding stale response %d (latest is %d)", seq, self._seq)
        return fresh

    def _invalidate(self) -> None:
        # Consuming a sequence number makes every outstanding response stale
        if self._outstanding:
            logger.debug("Invalidating %d in-flight request(s)", len(self._outstanding))
            self._outstanding.clear()
            self._seq += 1

    def _arm(self, text: str, trigger: TriggerClass) -> None:
        if self._timer is not None:
            self._timer.cancel()
        self._pending_text = text
        self._pending_trigger = trigger
        delay = self.windows.for_trigger(trigger)
        logger.debug("Edit classified as %s; firing in %.0f ms", trigger.value, delay * 1000)
        self._timer = self._clock.call_later(delay, self._fire)

    def _fire(self) -> None:
        text = self._pending_text or ""
        trigger = self._pending_trigger or TriggerClass.TYPING
        self._timer = None
        self._pending_text = None
        self._pending_trigger = None

        if len(text) < self.min_text_length:
            logger.debug("Skipping analysis: text length %d below minimum", len(text))
            self._invalidate()
            if self._on_skip is not None:
                self._on_skip()
            return

        self._seq += 1
        self._outstanding.add(self._seq)
        logger.debug("Dispatching analysis request %d (%s)", self._seq, trigger.value)
        self._on_dispatch(AnalysisRequest(seq=self._seq, text=text, trigger=trigger))
