"""In-memory cursor store for testing."""

from __future__ import annotations

from typing import TYPE_CHECKING

from .ports import ICursorStore

if TYPE_CHECKING:
    from .events import EventId


class InMemoryCursorStore(ICursorStore):
    """In-memory cursor store for testing.

    Keeps the full history of saved positions per stream so tests can
    assert on the sequence of advances.
    """

    def __init__(self) -> None:
        self._positions: dict[str, EventId] = {}
        self.history: dict[str, list[EventId]] = {}

    async def load(self, stream_id: str) -> EventId | None:
        return self._positions.get(stream_id)

    async def save(self, stream_id: str, position: EventId) -> None:
        self._positions[stream_id] = position
        self.history.setdefault(stream_id, []).append(position)

    async def reset(self, stream_id: str) -> None:
        self._positions.pop(stream_id, None)

    def clear(self) -> None:
        """Reset all positions (for tests)."""
        self._positions.clear()
        self.history.clear()
