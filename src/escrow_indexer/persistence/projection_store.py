"""SQLAlchemy projection store implementing IProjectionStore."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from sqlalchemy import select
from sqlalchemy.dialects import postgresql, sqlite
from sqlalchemy.exc import SQLAlchemyError

from ..exceptions import StoreWriteError
from ..ports import IProjectionStore
from .models import PROJECTION_MODELS

if TYPE_CHECKING:
    from collections.abc import Callable

    from sqlalchemy.ext.asyncio import AsyncSession

    AsyncSessionFactory = Callable[[], Any]

logger = logging.getLogger(__name__)

_INSERTS = {
    "sqlite": sqlite.insert,
    "postgresql": postgresql.insert,
}


class SQLAlchemyProjectionStore(IProjectionStore):
    """
    SQLAlchemy implementation of IProjectionStore.

    Features:
    - Upsert keyed by ``object_id`` via ``INSERT .. ON CONFLICT DO UPDATE``;
      only the given fields are updated on conflict, so terminal flags merge
      into existing rows without touching descriptive fields
    - Surrogate ``id`` assigned by the database on first insert only
    - Keyset pagination by surrogate id (stable under concurrent inserts)

    Supports the SQLite and PostgreSQL dialects.
    """

    def __init__(self, session_factory: AsyncSessionFactory) -> None:
        self._session_factory = session_factory

    @staticmethod
    def _model(kind: str) -> Any:
        try:
            return PROJECTION_MODELS[kind]
        except KeyError:
            raise KeyError(f"Unknown projection kind {kind!r}") from None

    @staticmethod
    def _columns(model: Any, fields: dict[str, Any]) -> dict[str, Any]:
        table_columns = model.__table__.columns
        unknown = [k for k in fields if k not in table_columns]
        if unknown:
            raise ValueError(f"Unknown column(s) for {model.__tablename__}: {unknown}")
        return {k: v for k, v in fields.items() if k not in ("id", "object_id")}

    def _insert(self, session: AsyncSession) -> Any:
        dialect = session.bind.dialect.name
        insert = _INSERTS.get(dialect)
        if insert is None:
            raise StoreWriteError(f"Upsert not supported for dialect {dialect!r}")
        return insert

    async def upsert(self, kind: str, object_id: str, fields: dict[str, Any]) -> None:
        model = self._model(kind)
        values = self._columns(model, fields)
        try:
            async with self._session_factory() as session:
                insert = self._insert(session)
                stmt = insert(model).values(object_id=object_id, **values)
                if values:
                    stmt = stmt.on_conflict_do_update(
                        index_elements=[model.object_id], set_=values
                    )
                else:
                    stmt = stmt.on_conflict_do_nothing(index_elements=[model.object_id])
                await session.execute(stmt)
                await session.commit()
        except SQLAlchemyError as e:
            raise StoreWriteError(f"Upsert of {kind}:{object_id} failed: {e}") from e

    @staticmethod
    def _as_dict(model: Any, row: Any) -> dict[str, Any]:
        return {c.name: getattr(row, c.key) for c in model.__table__.columns}

    async def get(self, kind: str, object_id: str) -> dict[str, Any] | None:
        model = self._model(kind)
        async with self._session_factory() as session:
            r = await session.execute(select(model).where(model.object_id == object_id))
            row = r.scalar_one_or_none()
            return self._as_dict(model, row) if row is not None else None

    async def find_page(
        self,
        kind: str,
        filters: dict[str, Any],
        *,
        limit: int,
        descending: bool = True,
        after_id: int | None = None,
    ) -> list[dict[str, Any]]:
        model = self._model(kind)
        query = select(model)
        for column, value in filters.items():
            if column not in model.__table__.columns:
                raise ValueError(f"Unknown column for {kind}: {column!r}")
            query = query.where(getattr(model, column) == value)
        if after_id is not None:
            query = query.where(model.id < after_id if descending else model.id > after_id)
        query = query.order_by(model.id.desc() if descending else model.id.asc())
        query = query.limit(limit)

        async with self._session_factory() as session:
            r = await session.execute(query)
            return [self._as_dict(model, row) for row in r.scalars()]
