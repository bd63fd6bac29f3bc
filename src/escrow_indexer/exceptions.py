"""Exception hierarchy for the escrow indexer."""

from __future__ import annotations


class IndexerError(Exception):
    """Root exception for the escrow indexer."""


class ConfigError(IndexerError):
    """Raised when configuration values are missing or malformed."""


# ── Ingestion ────────────────────────────────────────────────────────


class IngestionError(IndexerError):
    """Base class for errors raised while ingesting a batch.

    Every ingestion error is recoverable: the worker logs it, leaves the
    cursor untouched and retries after the polling interval.
    """


class SourceUnavailableError(IngestionError):
    """Raised when the event source cannot be reached or returns an error."""


class MalformedEventError(IngestionError):
    """Raised when an event does not belong to the stream being processed
    or its payload does not decode into a known event shape."""

    def __init__(self, message: str, *, event_type: str | None = None) -> None:
        self.event_type = event_type
        super().__init__(message)


class StoreError(IngestionError):
    """Base class for cursor and projection store failures."""


class StoreReadError(StoreError):
    """Raised when a saved cursor cannot be read."""


class StoreWriteError(StoreError):
    """Raised when a projection upsert or cursor save fails."""


# ── Registry ─────────────────────────────────────────────────────────


class RegistryError(IndexerError):
    """Base class for tracker registry errors."""


class RegistryFrozenError(RegistryError):
    """Raised when registering a tracker after the registry was frozen."""


class DuplicateTrackerError(RegistryError):
    """Raised when the same stream id is registered twice."""

    def __init__(self, stream_id: str) -> None:
        self.stream_id = stream_id
        super().__init__(f"Tracker for stream {stream_id!r} is already registered")


# ── Queries ──────────────────────────────────────────────────────────


class QueryError(IndexerError):
    """Raised when client query input is rejected.

    Carries structured errors: ``{field: [messages]}``.
    """

    def __init__(self, errors: dict[str, list[str]] | str | None = None) -> None:
        if isinstance(errors, str):
            self.errors: dict[str, list[str]] = {"__root__": [errors]}
        elif errors is None:
            self.errors = {}
        else:
            self.errors = errors
        super().__init__(str(self.errors))

    @property
    def message(self) -> str:
        """Flattened human readable message."""
        parts = []
        for field, messages in self.errors.items():
            prefix = "" if field == "__root__" else f"{field}: "
            parts.extend(f"{prefix}{m}" for m in messages)
        return "; ".join(parts)


class InvalidFilterValueError(QueryError):
    """Raised when a whitelisted filter value fails type coercion."""


class InvalidPaginationValueError(QueryError):
    """Raised when limit, sort or cursor cannot be parsed."""


class UnknownEntityKindError(QueryError):
    """Raised when querying an entity kind that has no whitelist."""

    def __init__(self, entity_kind: str) -> None:
        self.entity_kind = entity_kind
        super().__init__(f"Unknown entity kind {entity_kind!r}")
