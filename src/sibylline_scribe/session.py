"""Editing session for a single open document.

The session owns the document buffer. Every mutation (user edit or
accepted suggestion) goes through :meth:`DocumentSession.replace_range` or
:meth:`DocumentSession.apply_html`, which keep decorations, the scheduler
and the dirty state consistent.

Analysis cycle::

    edit -> scheduler (debounce) -> service.proofread(plain text)
         -> stale? drop : validate -> map onto current document -> render
"""

from __future__ import annotations

import asyncio
import logging
from dataclasses import dataclass

from .analysis import (
    AnalysisService,
    DecorationRenderer,
    DecorationSet,
    PositionMapper,
    ReadabilityMetrics,
    SpanValidator,
    TextSpan,
    estimate_readability,
    render_html,
)
from .config import ScribeConfig
from .document import DEFAULT_BLOCK_SEPARATOR, RichDocument
from .errors import (
    AnalysisServiceError,
    InputValidationError,
    NotAuthorizedError,
    NotFoundError,
    PersistenceError,
)
from .scheduler import AnalysisRequest, AnalysisScheduler, Clock, DebounceWindows
from .store import DocumentStore, WritingSampleStore

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class Notice:
    """A user-visible message."""

    level: str  # "error" | "info"
    title: str
    message: str


class DocumentSession:
    """Holds one document, its analysis state and its save state.

    Args:
        store: Document persistence; enforces ownership.
        service: Analysis backend shared across sessions.
        owner_id: The user editing the document.
        config: Settings for debounce windows, autosave and decorations.
        clock: Timer source for the scheduler. Defaults to the event loop.
        renderer: Decoration renderer (defaults from config palette).
        mapper: Plain-text to document position mapper.
        validator: Span range validator.
        sample_store: Writing samples for :meth:`rewrite`.
    """

    def __init__(
        self,
        store: DocumentStore,
        service: AnalysisService,
        owner_id: str,
        *,
        config: ScribeConfig | None = None,
        clock: Clock | None = None,
        renderer: DecorationRenderer | None = None,
        mapper: PositionMapper | None = None,
        validator: SpanValidator | None = None,
        sample_store: WritingSampleStore | None = None,
    ) -> None:
        config = config or ScribeConfig()
        session_settings = config.session
        scheduler_settings = config.scheduler

        self.owner_id = owner_id
        self.block_separator = session_settings.get("block_separator", DEFAULT_BLOCK_SEPARATOR)
        self.autosave_interval = float(session_settings.get("autosave_interval_seconds", 30))

        self._store = store
        self._service = service
        self._sample_store = sample_store
        self._renderer = renderer or DecorationRenderer(config.decorations or None)
        self._mapper = mapper or PositionMapper(self.block_separator)
        self._validator = validator or SpanValidator()
        self._scheduler = AnalysisScheduler(
            on_dispatch=self._dispatch,
            on_skip=self._on_skip,
            clock=clock,
            windows=DebounceWindows.from_config(scheduler_settings),
            min_text_length=int(scheduler_settings.get("min_text_length", 10)),
        )

        self.document_id: str | None = None
        self.title = ""
        self.document = RichDocument()
        self.notices: list[Notice] = []
        self.readability: ReadabilityMetrics | None = None

        self._spans: list[TextSpan] = []
        self._selected: int | None = None
        self._decorations = DecorationSet()
        self._saved_html: str | None = None
        self._saving_html: str | None = None
        self._tasks: set[asyncio.Task] = set()
        self._autosave_task: asyncio.Task | None = None

    # ------------------------------------------------------------------
    # State
    # ------------------------------------------------------------------

    @property
    def spans(self) -> list[TextSpan]:
        """Current issues in document coordinates."""
        return list(self._spans)

    @property
    def decorations(self) -> DecorationSet:
        return self._decorations

    @property
    def selected(self) -> int | None:
        return self._selected

    @property
    def scheduler(self) -> AnalysisScheduler:
        return self._scheduler

    @property
    def dirty(self) -> bool:
        """Whether the buffer differs from the last saved content."""
        return self.document_id is not None and self.document.to_html() != self._saved_html

    def plain_text(self) -> str:
        return self.document.plain_text(self.block_separator)

    def render_html(self) -> str:
        """The document HTML with issue decorations applied."""
        return render_html(self.document, self._decorations)

    def _notify(self, level: str, title: str, message: str) -> None:
        self.notices.append(Notice(level=level, title=title, message=message))

    def _render(self) -> None:
        self._decorations = self._renderer.render(self.document, self._spans, self._selected)

    def _clear_spans(self) -> None:
        self._spans = []
        self._selected = None
        self._decorations = DecorationSet()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    async def open(self, document_id: str) -> None:
        """Load a document and analyse it immediately.

        Raises:
            NotFoundError: If the document does not exist.
            NotAuthorizedError: If another user owns it.
        """
        record = await self._store.get_owned(document_id, self.owner_id)

        self._scheduler.cancel()
        await self._cancel_tasks()
        self.document_id = record.id
        self.title = record.title
        self.document = RichDocument.from_html(record.content or "")
        self._saved_html = self.document.to_html()
        self._saving_html = None
        self.readability = None
        self._clear_spans()

        logger.info("Opened document %s", document_id)
        self._scheduler.trigger_immediate(self.plain_text())

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def apply_html(self, html: str) -> None:
        """Replace the whole buffer with editor HTML.

        Existing spans cannot be carried across an arbitrary rewrite and are
        cleared until the next analysis completes.
        """
        self.document = RichDocument.from_html(html)
        self._clear_spans()
        self._after_edit()

    def replace_range(self, start: int, end: int, text: str) -> None:
        """Replace ``[start, end)`` in the buffer with *text*.

        Spans before the edit are kept, spans after it shift by the length
        difference, and spans overlapping it are dropped.

        Raises:
            InputValidationError: If the range is invalid or crosses blocks.
        """
        self.document.replace_range(start, end, text)

        delta = len(text) - (end - start)
        kept: list[TextSpan] = []
        selected = None
        for idx, span in enumerate(self._spans):
            if span.end <= start:
                moved = span
            elif span.start >= end:
                moved = span.with_offsets(span.start + delta, span.end + delta)
            else:
                continue
            if idx == self._selected:
                selected = len(kept)
            kept.append(moved)

        self._spans = kept
        self._selected = selected
        self._after_edit()

    def _after_edit(self) -> None:
        self._render()
        self._scheduler.on_edit(self.plain_text())

    def accept_suggestion(self, index: int) -> bool:
        """Apply the suggestion of span *index* to the document.

        Returns ``False`` (with a notice) when the span can no longer be
        applied, in which case it is dropped without editing.
        """
        span = self._span_at(index)
        try:
            self.replace_range(span.start, span.end, span.suggestion)
        except InputValidationError as exc:
            logger.warning("Could not apply suggestion %d: %s", index, exc)
            self._drop(index)
            self._notify("info", "Suggestion not applied", "The text has changed since it was checked")
            return False
        logger.debug("Accepted suggestion %d", index)
        return True

    def dismiss_suggestion(self, index: int) -> None:
        self._span_at(index)
        self._drop(index)

    def select(self, index: int | None) -> None:
        """Highlight span *index*, or clear the selection with ``None``."""
        if index is not None:
            self._span_at(index)
        self._selected = index
        self._render()

    def _span_at(self, index: int) -> TextSpan:
        if not 0 <= index < len(self._spans):
            raise InputValidationError(f"No suggestion at index {index}")
        return self._spans[index]

    def _drop(self, index: int) -> None:
        del self._spans[index]
        if self._selected == index:
            self._selected = None
        elif self._selected is not None and self._selected > index:
            self._selected -= 1
        self._render()

    # ------------------------------------------------------------------
    # Analysis
    # ------------------------------------------------------------------

    def _dispatch(self, request: AnalysisRequest) -> None:
        task = asyncio.get_running_loop().create_task(self._run_analysis(request))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    def _on_skip(self) -> None:
        self._clear_spans()

    async def _run_analysis(self, request: AnalysisRequest) -> None:
        try:
            spans = await self._service.proofread(request.text)
        except (AnalysisServiceError, InputValidationError) as exc:
            if not self._scheduler.complete(request.seq):
                return
            logger.error("Analysis request %d failed: %s", request.seq, exc)
            self._clear_spans()
            self._notify("error", "Error", "Failed to check text")
            return

        if not self._scheduler.complete(request.seq):
            return

        valid = self._validator.filter(spans, request.text)
        self._spans = self._mapper.map_spans(self.document, request.text, valid)
        self._selected = None
        self._render()
        logger.info(
            "Analysis %d: %d issues received, %d valid, %d shown",
            request.seq,
            len(spans),
            len(valid),
            len(self._decorations),
        )

    async def refresh_readability(self) -> ReadabilityMetrics:
        """Estimate readability locally, then replace it with the service's answer."""
        text = self.document.plain_text(" ")
        self.readability = estimate_readability(text)
        if not text.strip():
            return self.readability

        try:
            self.readability = await self._service.readability(text)
        except (AnalysisServiceError, InputValidationError) as exc:
            logger.error("Readability analysis failed: %s", exc)
            self._notify("error", "Error", "Failed to analyze readability")
        return self.readability

    async def rewrite(self, start: int, end: int, sample_id: str) -> str | None:
        """Rewrite ``[start, end)`` in the style of a stored writing sample.

        The buffer is not modified; pass the result to :meth:`replace_range`
        to apply it. Returns ``None`` (with a notice) on failure.

        Raises:
            InputValidationError: If the range selects no text or no sample
                store is configured.
        """
        if self._sample_store is None:
            raise InputValidationError("No writing sample store configured")
        text = self.document.text_between(start, end, self.block_separator)
        if not text.strip():
            raise InputValidationError("Text is required and must be a string")

        try:
            sample = await self._sample_store.get_owned(sample_id, self.owner_id)
            return await self._service.rewrite(text, sample.content)
        except (NotFoundError, NotAuthorizedError) as exc:
            logger.info("Writing sample %s unavailable: %s", sample_id, exc)
            self._notify("error", "Error", str(exc))
        except AnalysisServiceError as exc:
            logger.error("Rewrite failed: %s", exc)
            self._notify("error", "Error", "Failed to rewrite text")
        return None

    async def wait_idle(self) -> None:
        """Wait until no analysis request is running."""
        while self._tasks:
            await asyncio.gather(*list(self._tasks), return_exceptions=True)

    # ------------------------------------------------------------------
    # Saving
    # ------------------------------------------------------------------

    async def save(self) -> bool:
        """Persist the buffer if it changed.

        Skipped when the content equals the last saved snapshot or a save of
        the same content is already running. Failures become notices.

        Returns:
            ``True`` if a write happened.
        """
        if self.document_id is None:
            return False

        html = self.document.to_html()
        if html == self._saved_html or html == self._saving_html:
            logger.debug("Save of document %s skipped: content unchanged", self.document_id)
            return False

        self._saving_html = html
        try:
            await self._store.update(
                self.document_id,
                self.owner_id,
                content=html,
                word_count=self.document.word_count(),
                character_count=self.document.character_count(),
            )
        except (PersistenceError, NotFoundError, NotAuthorizedError) as exc:
            logger.error("Saving document %s failed: %s", self.document_id, exc)
            self._notify("error", "Error", "Failed to save document")
            return False
        finally:
            if self._saving_html == html:
                self._saving_html = None

        self._saved_html = html
        self._notify("info", "Saved", "Document saved successfully")
        logger.info("Saved document %s", self.document_id)
        return True

    def start_autosave(self) -> None:
        if self._autosave_task is None or self._autosave_task.done():
            self._autosave_task = asyncio.get_running_loop().create_task(self._autosave_loop())

    async def stop_autosave(self) -> None:
        task, self._autosave_task = self._autosave_task, None
        if task is None:
            return
        task.cancel()
        try:
            await task
        except asyncio.CancelledError:
            pass

    async def _autosave_loop(self) -> None:
        while True:
            await asyncio.sleep(self.autosave_interval)
            if self.dirty:
                await self.save()

    async def close(self) -> None:
        """Stop timers and background work. In-flight results are discarded."""
        self._scheduler.cancel()
        await self.stop_autosave()
        await self._cancel_tasks()

    async def _cancel_tasks(self) -> None:
        tasks = list(self._tasks)
        for task in tasks:
            task.cancel()
        await asyncio.gather(*tasks, return_exceptions=True)
        self._tasks.clear()
