"""Protocols for the ingestion engine and the query side."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Protocol, runtime_checkable

if TYPE_CHECKING:
    from collections.abc import Sequence

    from .events import EventId, EventPage, RawEvent


@runtime_checkable
class IEventSource(Protocol):
    """Append-only, ordered event history filtered per stream."""

    async def fetch_events(
        self,
        event_filter: dict[str, Any],
        after: EventId | None,
        *,
        limit: int,
        descending: bool = False,
    ) -> EventPage:
        """Return the page of events strictly after ``after``.

        Raises:
            SourceUnavailableError: the source could not be queried.
        """
        ...


@runtime_checkable
class ICursorStore(Protocol):
    """Durable stream id -> position mapping."""

    async def load(self, stream_id: str) -> EventId | None:
        """Return the saved position; None means replay from the beginning."""
        ...

    async def save(self, stream_id: str, position: EventId) -> None:
        """Persist the position. Durable once this returns.

        Raises:
            StoreWriteError: the position could not be persisted.
        """
        ...

    async def reset(self, stream_id: str) -> None:
        """Forget the position so the stream replays from the beginning.

        Raises:
            StoreWriteError: the position could not be removed.
        """
        ...


@runtime_checkable
class IProjectionStore(Protocol):
    """Mutable records keyed by object id, with a stable surrogate id."""

    async def upsert(self, kind: str, object_id: str, fields: dict[str, Any]) -> None:
        """Insert the record if absent (assigning a new surrogate id),
        otherwise merge ``fields`` into it.

        Raises:
            StoreWriteError: the write failed.
        """
        ...

    async def get(self, kind: str, object_id: str) -> dict[str, Any] | None:
        """Return the record for ``object_id`` or None."""
        ...

    async def find_page(
        self,
        kind: str,
        filters: dict[str, Any],
        *,
        limit: int,
        descending: bool = True,
        after_id: int | None = None,
    ) -> list[dict[str, Any]]:
        """Return up to ``limit`` records matching ``filters`` (equality),
        ordered by surrogate id, strictly after ``after_id``."""
        ...


@runtime_checkable
class IEventHandler(Protocol):
    """Turns one ordered batch of a stream's events into projection upserts."""

    kind: str

    async def handle(self, stream_id: str, events: Sequence[RawEvent]) -> None:
        """Apply the batch.

        Raises:
            MalformedEventError: an event does not belong to the stream or
                cannot be decoded; nothing is written.
            StoreWriteError: an upsert failed.
        """
        ...
