"""SQLAlchemy cursor store implementing ICursorStore."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import text
from sqlalchemy.exc import SQLAlchemyError

from ..events import EventId
from ..exceptions import StoreReadError, StoreWriteError
from ..ports import ICursorStore
from .models import CursorModel

if TYPE_CHECKING:
    from collections.abc import Callable

    AsyncSessionFactory = Callable[[], Any]

logger = logging.getLogger(__name__)

TABLE_NAME = CursorModel.__tablename__


class SQLAlchemyCursorStore(ICursorStore):
    """
    SQLAlchemy implementation of ICursorStore.

    Stores one row per stream in ``cursors`` (id PK, tx_digest, event_seq).
    Every save commits its own session, so the position is durable before
    ``save`` returns.
    """

    def __init__(
        self,
        session_factory: AsyncSessionFactory,
        *,
        table_name: str = TABLE_NAME,
    ) -> None:
        self._session_factory = session_factory
        self._table = table_name

    async def load(self, stream_id: str) -> EventId | None:
        try:
            async with self._session_factory() as session:
                r = await session.execute(
                    text(
                        f"SELECT tx_digest, event_seq FROM {self._table} "
                        "WHERE id = :id"
                    ),
                    {"id": stream_id},
                )
                row = r.fetchone()
        except SQLAlchemyError as e:
            raise StoreReadError(f"Cannot load cursor for {stream_id!r}: {e}") from e
        if row is None:
            return None
        return EventId(tx_digest=row[0], event_seq=row[1])

    async def save(self, stream_id: str, position: EventId) -> None:
        try:
            async with self._session_factory() as session:
                await session.execute(
                    text(
                        f"""
                        INSERT INTO {self._table} (id, tx_digest, event_seq, updated_at)
                        VALUES (:id, :tx_digest, :event_seq, CURRENT_TIMESTAMP)
                        ON CONFLICT (id) DO UPDATE SET
                            tx_digest = :tx_digest,
                            event_seq = :event_seq,
                            updated_at = CURRENT_TIMESTAMP
                        """
                    ),
                    {
                        "id": stream_id,
                        "tx_digest": position.tx_digest,
                        "event_seq": position.event_seq,
                    },
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Cannot save cursor for {stream_id!r}: {e}") from e
        logger.debug("Saved cursor %s for %s", position, stream_id)

    async def reset(self, stream_id: str) -> None:
        """Forget the position so the stream replays from the beginning."""
        try:
            async with self._session_factory() as session:
                await session.execute(
                    text(f"DELETE FROM {self._table} WHERE id = :id"),
                    {"id": stream_id},
                )
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Cannot reset cursor for {stream_id!r}: {e}") from e
