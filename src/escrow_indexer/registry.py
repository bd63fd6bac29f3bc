"""TrackerRegistry: static declaration of the streams to ingest."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from .exceptions import DuplicateTrackerError, RegistryFrozenError
from .handlers import EscrowHandler, LockedHandler

if TYPE_CHECKING:
    from .config import IndexerConfig
    from .ports import IEventHandler, IProjectionStore


@dataclass(frozen=True)
class Tracker:
    """One tracked stream: its id, the source filter and its handler."""

    stream_id: str
    filter: dict[str, Any] = field(hash=False)
    handler: IEventHandler = field(hash=False, compare=False)


class TrackerRegistry:
    """Holds the trackers; sealed with ``freeze()`` before workers start."""

    def __init__(self) -> None:
        self._trackers: dict[str, Tracker] = {}
        self._frozen = False

    def register(
        self,
        stream_id: str,
        event_filter: dict[str, Any],
        handler: IEventHandler,
    ) -> Tracker:
        if self._frozen:
            raise RegistryFrozenError(
                f"Cannot register {stream_id!r}: registry is frozen"
            )
        if stream_id in self._trackers:
            raise DuplicateTrackerError(stream_id)
        tracker = Tracker(stream_id=stream_id, filter=event_filter, handler=handler)
        self._trackers[stream_id] = tracker
        return tracker

    def freeze(self) -> TrackerRegistry:
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def all(self) -> tuple[Tracker, ...]:
        return tuple(self._trackers.values())

    def get(self, stream_id: str) -> Tracker | None:
        return self._trackers.get(stream_id)


def module_filter(package_id: str, module: str) -> dict[str, Any]:
    """JSON-RPC event filter for every event emitted by ``package::module``."""
    return {"MoveEventModule": {"package": package_id, "module": module}}


def build_trackers(config: IndexerConfig, store: IProjectionStore) -> TrackerRegistry:
    """Assemble the frozen registry for the escrow package.

    ``lock`` events feed the locked projection, ``shared`` events feed the
    escrow projection.
    """
    package_id = config.require_package_id()
    registry = TrackerRegistry()
    registry.register(
        f"{package_id}::lock",
        module_filter(package_id, "lock"),
        LockedHandler(store),
    )
    registry.register(
        f"{package_id}::shared",
        module_filter(package_id, "shared"),
        EscrowHandler(store),
    )
    return registry.freeze()
