"""Checkpointed event indexer for the Sui escrow package, with a query API."""

from __future__ import annotations

from .checkpoint import InMemoryCursorStore
from .config import IndexerConfig
from .events import EventId, EventPage, RawEvent
from .exceptions import (
    IndexerError,
    IngestionError,
    InvalidFilterValueError,
    InvalidPaginationValueError,
    MalformedEventError,
    QueryError,
    SourceUnavailableError,
    StoreWriteError,
)
from .handlers import EscrowHandler, LockedHandler
from .ports import ICursorStore, IEventHandler, IEventSource, IProjectionStore
from .projection import EscrowRecord, InMemoryProjectionStore, LockedRecord
from .query import Page, QueryService
from .registry import Tracker, TrackerRegistry, build_trackers
from .source import InMemoryEventSource, SuiEventSource
from .worker import IndexerRunner, TrackerWorker, WorkerState

__all__ = [
    "EscrowHandler",
    "EscrowRecord",
    "EventId",
    "EventPage",
    "ICursorStore",
    "IEventHandler",
    "IEventSource",
    "IProjectionStore",
    "InMemoryCursorStore",
    "InMemoryEventSource",
    "InMemoryProjectionStore",
    "IndexerConfig",
    "IndexerError",
    "IndexerRunner",
    "IngestionError",
    "InvalidFilterValueError",
    "InvalidPaginationValueError",
    "LockedHandler",
    "LockedRecord",
    "MalformedEventError",
    "Page",
    "QueryError",
    "QueryService",
    "RawEvent",
    "SourceUnavailableError",
    "StoreWriteError",
    "SuiEventSource",
    "Tracker",
    "TrackerRegistry",
    "TrackerWorker",
    "WorkerState",
]
