"""Event sources: Sui JSON-RPC client and an in-memory source."""

from __future__ import annotations

import itertools
import logging
from typing import TYPE_CHECKING, Any

import httpx

from .events import EventId, EventPage, RawEvent
from .exceptions import SourceUnavailableError
from .ports import IEventSource

if TYPE_CHECKING:
    from types import TracebackType

logger = logging.getLogger(__name__)

QUERY_EVENTS_METHOD = "suix_queryEvents"


class SuiEventSource(IEventSource):
    """
    Reads events through a Sui fullnode's ``suix_queryEvents`` method.

    Every transport failure, non-2xx response, JSON-RPC error member or
    unparseable page is reported as ``SourceUnavailableError`` so the
    worker retries the same cursor on its next cycle. An event whose own
    envelope cannot be parsed raises ``MalformedEventError``.
    """

    def __init__(
        self,
        rpc_url: str,
        *,
        timeout: float = 10.0,
        client: httpx.AsyncClient | None = None,
    ) -> None:
        self._rpc_url = rpc_url
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(timeout=timeout)
        self._request_ids = itertools.count(1)

    async def __aenter__(self) -> SuiEventSource:
        return self

    async def __aexit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: TracebackType | None,
    ) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        if self._owns_client:
            await self._client.aclose()

    async def fetch_events(
        self,
        event_filter: dict[str, Any],
        after: EventId | None,
        *,
        limit: int,
        descending: bool = False,
    ) -> EventPage:
        cursor = after.to_dict() if after is not None else None
        result = await self._call(
            QUERY_EVENTS_METHOD, [event_filter, cursor, limit, descending]
        )
        try:
            items = list(result["data"])
            raw_next = result.get("nextCursor")
            next_cursor = EventId.from_dict(raw_next) if raw_next else None
            has_more = bool(result.get("hasNextPage", False))
        except (KeyError, TypeError) as e:
            raise SourceUnavailableError(
                f"Unexpected {QUERY_EVENTS_METHOD} result: {e}"
            ) from e
        # Undecodable envelopes raise MalformedEventError.
        events = [RawEvent.from_rpc(item) for item in items]
        return EventPage(events=events, next_cursor=next_cursor, has_more=has_more)

    async def _call(self, method: str, params: list[Any]) -> dict[str, Any]:
        payload = {
            "jsonrpc": "2.0",
            "id": next(self._request_ids),
            "method": method,
            "params": params,
        }
        try:
            response = await self._client.post(self._rpc_url, json=payload)
            response.raise_for_status()
            body = response.json()
        except httpx.HTTPStatusError as e:
            raise SourceUnavailableError(
                f"{method} returned HTTP {e.response.status_code}"
            ) from e
        except httpx.HTTPError as e:
            raise SourceUnavailableError(f"{method} request failed: {e}") from e
        except ValueError as e:
            raise SourceUnavailableError(f"{method} returned invalid JSON") from e

        if not isinstance(body, dict):
            raise SourceUnavailableError(f"{method} returned a non-object body")
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else error
            raise SourceUnavailableError(f"{method} error: {message}")
        result = body.get("result")
        if not isinstance(result, dict):
            raise SourceUnavailableError(f"{method} returned no result")
        return result


class InMemoryEventSource(IEventSource):
    """In-memory append-only event history for testing and local replays.

    Supports ``MoveEventModule`` filters; a module can be marked
    unavailable to simulate an outage of that stream.
    """

    def __init__(self, events: list[RawEvent] | None = None) -> None:
        self._events: list[RawEvent] = list(events or [])
        self._unavailable: set[str] = set()
        self.calls = 0

    def append(self, *events: RawEvent) -> None:
        self._events.extend(events)

    def set_unavailable(self, module: str, unavailable: bool = True) -> None:
        if unavailable:
            self._unavailable.add(module)
        else:
            self._unavailable.discard(module)

    @staticmethod
    def _prefix(event_filter: dict[str, Any]) -> tuple[str, str]:
        target = event_filter.get("MoveEventModule")
        if not isinstance(target, dict):
            raise ValueError(f"Unsupported event filter: {event_filter!r}")
        return target["package"], target["module"]

    async def fetch_events(
        self,
        event_filter: dict[str, Any],
        after: EventId | None,
        *,
        limit: int,
        descending: bool = False,
    ) -> EventPage:
        self.calls += 1
        package, module = self._prefix(event_filter)
        if module in self._unavailable:
            raise SourceUnavailableError(f"Source unavailable for module {module!r}")

        stream = [e for e in self._events if e.belongs_to(f"{package}::{module}")]
        if descending:
            stream.reverse()
        start = 0
        if after is not None:
            ids = [e.id for e in stream]
            if after not in ids:
                raise SourceUnavailableError(f"Unknown cursor {after!r}")
            start = ids.index(after) + 1

        page = stream[start : start + limit]
        next_cursor = page[-1].id if page else after
        has_more = start + limit < len(stream)
        return EventPage(events=page, next_cursor=next_cursor, has_more=has_more)
