"""BatchProjectionHandler: ordered event batch -> per-object upserts."""

from __future__ import annotations

import logging
from collections.abc import Callable
from typing import TYPE_CHECKING, Any, ClassVar, TypeAlias

from ..events import MoveEvent, decode_event
from ..exceptions import MalformedEventError, StoreWriteError
from ..ports import IEventHandler

if TYPE_CHECKING:
    from collections.abc import Mapping, Sequence

    from ..events import RawEvent
    from ..ports import IProjectionStore

logger = logging.getLogger(__name__)

Reducer: TypeAlias = Callable[[Any], "tuple[str, dict[str, Any]]"]


class BatchProjectionHandler(IEventHandler):
    """Base class that folds a batch of decoded events into partial updates.

    Subclasses set ``kind`` (the projection record kind they write),
    ``variants`` (the closed set of event shapes of their stream) and
    register one reducer per variant. A reducer maps an event to
    ``(object_id, fields)``; fields of later events in the batch overwrite
    earlier ones for the same object, in event order.
    """

    kind: ClassVar[str]
    variants: ClassVar[Mapping[str, type[MoveEvent]]]

    def __init__(self, store: IProjectionStore) -> None:
        self._store = store
        self._reducers: dict[type[MoveEvent], Reducer] = {}

    @property
    def handles(self) -> set[type[MoveEvent]]:
        """Return event types with a registered reducer."""
        return set(self._reducers.keys())

    def add_reducer(self, event_type: type[MoveEvent], reducer: Reducer) -> None:
        """Register the reducer for a specific event variant."""
        self._reducers[event_type] = reducer

    def collect_updates(
        self, stream_id: str, events: Sequence[RawEvent]
    ) -> dict[str, dict[str, Any]]:
        """Validate and fold the batch into ``{object_id: partial update}``.

        Raises:
            MalformedEventError: for the first event that is foreign to the
                stream or cannot be decoded.
        """
        updates: dict[str, dict[str, Any]] = {}
        for raw in events:
            if not raw.belongs_to(stream_id):
                raise MalformedEventError(
                    f"Event {raw.type!r} does not originate from stream {stream_id!r}",
                    event_type=raw.type,
                )
            decoded = decode_event(raw, self.variants)
            reducer = self._reducers.get(type(decoded))
            if reducer is None:
                raise MalformedEventError(
                    f"No reducer for {raw.tag!r} in {type(self).__name__}",
                    event_type=raw.type,
                )
            object_id, fields = reducer(decoded)
            updates.setdefault(object_id, {}).update(fields)
        return updates

    async def handle(self, stream_id: str, events: Sequence[RawEvent]) -> None:
        updates = self.collect_updates(stream_id, events)
        # Sequential, in first-touch order, so merge order follows event order.
        for object_id, fields in updates.items():
            try:
                await self._store.upsert(self.kind, object_id, fields)
            except StoreWriteError:
                raise
            except Exception as e:
                raise StoreWriteError(
                    f"Upsert of {self.kind}:{object_id} failed: {e}"
                ) from e
        logger.debug(
            "Applied %d event(s) to %d %s record(s)",
            len(events),
            len(updates),
            self.kind,
        )
