"""SQLAlchemy (async) persistence for cursors and projections."""

from __future__ import annotations

from .cursor_store import SQLAlchemyCursorStore
from .database import create_engine, create_schema, create_session_factory, drop_schema
from .models import Base, CursorModel, EscrowModel, LockedModel
from .projection_store import SQLAlchemyProjectionStore

__all__ = [
    "Base",
    "CursorModel",
    "EscrowModel",
    "LockedModel",
    "SQLAlchemyCursorStore",
    "SQLAlchemyProjectionStore",
    "create_engine",
    "create_schema",
    "create_session_factory",
    "drop_schema",
]
