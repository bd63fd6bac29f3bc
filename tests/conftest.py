"""Shared fixtures."""

from __future__ import annotations

import pytest

from escrow_indexer.checkpoint import InMemoryCursorStore
from escrow_indexer.projection import InMemoryProjectionStore
from escrow_indexer.source import InMemoryEventSource


@pytest.fixture
def projection_store() -> InMemoryProjectionStore:
    return InMemoryProjectionStore()


@pytest.fixture
def cursor_store() -> InMemoryCursorStore:
    return InMemoryCursorStore()


@pytest.fixture
def event_source() -> InMemoryEventSource:
    return InMemoryEventSource()
