"""TrackerWorker: per-stream polling loop that fetches, handles, checkpoints.

Each cycle goes ``IDLE -> FETCHING -> HANDLING -> ADVANCING -> IDLE`` or
ends in ``BACKOFF`` when any step fails. The cursor is saved only after the
handler applied the batch, so a crash anywhere before ``ADVANCING``
completes replays the same batch on restart.
"""

from __future__ import annotations

import asyncio
import contextlib
import enum
import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING

from .exceptions import IngestionError, MalformedEventError
from .observability import log_event

if TYPE_CHECKING:
    from .events import EventId, EventPage
    from .ports import ICursorStore, IEventSource
    from .registry import Tracker, TrackerRegistry

logger = logging.getLogger(__name__)


class WorkerState(str, enum.Enum):
    IDLE = "IDLE"
    FETCHING = "FETCHING"
    HANDLING = "HANDLING"
    ADVANCING = "ADVANCING"
    BACKOFF = "BACKOFF"
    STOPPED = "STOPPED"


@dataclass(frozen=True)
class CycleResult:
    """Outcome of one fetch/handle/advance cycle."""

    events: int = 0
    advanced: bool = False
    has_more: bool = False
    position: EventId | None = None
    error: Exception | None = None
    stopped: bool = False

    @property
    def failed(self) -> bool:
        return self.error is not None

    @property
    def drain(self) -> bool:
        """True when the next cycle should start without waiting."""
        return self.advanced and self.has_more


@dataclass
class WorkerStats:
    cycles: int = 0
    events_handled: int = 0
    advances: int = 0
    failures: int = 0
    last_error: str | None = None
    errors_by_type: dict[str, int] = field(default_factory=dict)


class TrackerWorker:
    """Runs one tracker: fetch after the saved cursor, handle, advance."""

    def __init__(
        self,
        tracker: Tracker,
        source: IEventSource,
        cursor_store: ICursorStore,
        *,
        polling_interval_seconds: float = 1.0,
        page_size: int = 50,
    ) -> None:
        self._tracker = tracker
        self._source = source
        self._cursor_store = cursor_store
        self._poll_interval = polling_interval_seconds
        self._page_size = page_size
        self._cursor: EventId | None = None
        self._cursor_loaded = False
        self._state = WorkerState.IDLE
        self._stop_event = asyncio.Event()
        self._task: asyncio.Task[None] | None = None
        self.stats = WorkerStats()

    @property
    def stream_id(self) -> str:
        return self._tracker.stream_id

    @property
    def state(self) -> WorkerState:
        return self._state

    @property
    def cursor(self) -> EventId | None:
        return self._cursor

    @property
    def running(self) -> bool:
        return self._task is not None and not self._task.done()

    async def start(self) -> None:
        if self.running:
            return
        self._stop_event = asyncio.Event()
        self._state = WorkerState.IDLE
        self._task = asyncio.create_task(self._run(), name=f"tracker:{self.stream_id}")

    async def stop(self) -> None:
        """Signal the loop to stop and wait for it.

        A pending fetch or idle wait is abandoned; a batch being handled or
        a cursor being saved is completed first.
        """
        self._stop_event.set()
        if self._task is not None:
            with contextlib.suppress(asyncio.CancelledError):
                await self._task
            self._task = None
        self._state = WorkerState.STOPPED

    async def _run(self) -> None:
        """Main loop; only the stop signal ends it."""
        logger.info("Tracker %s started", self.stream_id)
        while not self._stop_event.is_set():
            result = await self.run_once()
            if result.stopped or self._stop_event.is_set():
                break
            if result.drain:
                continue
            await self._wait(self._poll_interval)
        logger.info("Tracker %s stopped at cursor %s", self.stream_id, self._cursor)

    async def _wait(self, delay: float) -> None:
        """Sleep for ``delay`` unless stopped earlier."""
        with contextlib.suppress(asyncio.TimeoutError):
            await asyncio.wait_for(self._stop_event.wait(), timeout=delay)
        if not self._stop_event.is_set():
            self._state = WorkerState.IDLE

    async def run_once(self) -> CycleResult:
        """Run a single fetch/handle/advance cycle and report its outcome."""
        self.stats.cycles += 1
        try:
            if not self._cursor_loaded:
                self._cursor = await self._cursor_store.load(self.stream_id)
                self._cursor_loaded = True

            self._state = WorkerState.FETCHING
            page = await self._fetch(self._cursor)
            if page is None:
                return CycleResult(stopped=True, position=self._cursor)

            if not page.events:
                # Never advance on an empty page, even if the source moved.
                self._state = WorkerState.IDLE
                return CycleResult(has_more=page.has_more, position=self._cursor)

            commit = asyncio.ensure_future(self._commit(page))
            try:
                result = await asyncio.shield(commit)
            except asyncio.CancelledError:
                logger.info(
                    "Tracker %s cancelled mid-commit; finishing step", self.stream_id
                )
                await asyncio.wait({commit})
                raise
        except IngestionError as e:
            return self._fail(e)
        except Exception as e:  # noqa: BLE001
            logger.error(
                "Unexpected error in tracker %s", self.stream_id, exc_info=True
            )
            return self._fail(e)

        self.stats.events_handled += result.events
        self.stats.advances += 1
        log_event(
            logger,
            "tracker.advanced",
            stream_id=self.stream_id,
            events=result.events,
            has_more=result.has_more,
            last_event_ms=page.events[-1].timestamp_ms,
            position=result.position.to_dict() if result.position else None,
        )
        self._state = WorkerState.IDLE
        return result

    async def _fetch(self, cursor: EventId | None) -> EventPage | None:
        """Fetch the next page; return None if stopped while waiting."""
        fetch = asyncio.ensure_future(
            self._source.fetch_events(
                self._tracker.filter, cursor, limit=self._page_size
            )
        )
        stopped = asyncio.ensure_future(self._stop_event.wait())
        try:
            done, _ = await asyncio.wait(
                {fetch, stopped}, return_when=asyncio.FIRST_COMPLETED
            )
        finally:
            stopped.cancel()
        if fetch not in done:
            fetch.cancel()
            with contextlib.suppress(asyncio.CancelledError):
                await fetch
            return None
        return fetch.result()

    async def _commit(self, page: EventPage) -> CycleResult:
        """HANDLING then ADVANCING; the cursor moves only if both succeed."""
        self._state = WorkerState.HANDLING
        await self._tracker.handler.handle(self.stream_id, page.events)

        self._state = WorkerState.ADVANCING
        position = page.next_cursor or page.events[-1].id
        await self._cursor_store.save(self.stream_id, position)
        self._cursor = position
        return CycleResult(
            events=len(page.events),
            advanced=True,
            has_more=page.has_more,
            position=position,
        )

    def _fail(self, error: Exception) -> CycleResult:
        self._state = WorkerState.BACKOFF
        self.stats.failures += 1
        self.stats.last_error = str(error)
        name = type(error).__name__
        self.stats.errors_by_type[name] = self.stats.errors_by_type.get(name, 0) + 1
        if isinstance(error, MalformedEventError):
            # Foreign or unknown events point at a misconfigured filter.
            logger.error(
                "Tracker %s rejected batch: %s (event type %s)",
                self.stream_id,
                error,
                error.event_type,
            )
        else:
            logger.warning(
                "Tracker %s cycle failed, retrying in %ss: %s",
                self.stream_id,
                self._poll_interval,
                error,
            )
        log_event(
            logger,
            "tracker.failed",
            level=logging.DEBUG,
            stream_id=self.stream_id,
            error_type=name,
            position=self._cursor.to_dict() if self._cursor else None,
        )
        return CycleResult(error=error, position=self._cursor)


class IndexerRunner:
    """Starts one TrackerWorker per registered tracker and stops them all."""

    def __init__(
        self,
        registry: TrackerRegistry,
        source: IEventSource,
        cursor_store: ICursorStore,
        *,
        polling_interval_seconds: float = 1.0,
        page_size: int = 50,
    ) -> None:
        if not registry.frozen:
            registry.freeze()
        self._workers = [
            TrackerWorker(
                tracker,
                source,
                cursor_store,
                polling_interval_seconds=polling_interval_seconds,
                page_size=page_size,
            )
            for tracker in registry.all()
        ]

    @property
    def workers(self) -> list[TrackerWorker]:
        return list(self._workers)

    async def start(self) -> None:
        for worker in self._workers:
            await worker.start()
        logger.info("Indexer started with %d tracker(s)", len(self._workers))

    async def stop(self) -> None:
        await asyncio.gather(*(worker.stop() for worker in self._workers))
        logger.info("Indexer stopped")

    async def run_until_stopped(self, stop_event: asyncio.Event) -> None:
        """Run all workers until ``stop_event`` is set."""
        await self.start()
        try:
            await stop_event.wait()
        finally:
            await self.stop()
