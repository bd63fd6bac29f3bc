"""Projection record shapes and an in-memory projection store."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict
from pydantic.alias_generators import to_camel

from .ports import IProjectionStore

LOCKED = "locked"
ESCROWS = "escrows"


class ProjectionRecord(BaseModel):
    """Base for projected records; serialized with camelCase field names."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, from_attributes=True
    )

    id: int
    object_id: str


class LockedRecord(ProjectionRecord):
    key_id: str | None = None
    creator: str | None = None
    item_id: str | None = None
    deleted: bool = False


class EscrowRecord(ProjectionRecord):
    sender: str | None = None
    recipient: str | None = None
    key_id: str | None = None
    item_id: str | None = None
    swapped: bool = False
    cancelled: bool = False


RECORD_TYPES: dict[str, type[ProjectionRecord]] = {
    LOCKED: LockedRecord,
    ESCROWS: EscrowRecord,
}


def _defaults(kind: str) -> dict[str, Any]:
    model = RECORD_TYPES[kind]
    return {
        name: info.default
        for name, info in model.model_fields.items()
        if name not in ("id", "object_id")
    }


class InMemoryProjectionStore(IProjectionStore):
    """In-memory projection store for testing and local replays."""

    def __init__(self) -> None:
        self._records: dict[str, dict[str, dict[str, Any]]] = {
            kind: {} for kind in RECORD_TYPES
        }
        self._next_id: dict[str, int] = {kind: 1 for kind in RECORD_TYPES}

    def _table(self, kind: str) -> dict[str, dict[str, Any]]:
        if kind not in self._records:
            raise KeyError(f"Unknown projection kind {kind!r}")
        return self._records[kind]

    async def upsert(self, kind: str, object_id: str, fields: dict[str, Any]) -> None:
        table = self._table(kind)
        record = table.get(object_id)
        if record is None:
            record = {"id": self._next_id[kind], "object_id": object_id}
            record.update(_defaults(kind))
            self._next_id[kind] += 1
            table[object_id] = record
        record.update({k: v for k, v in fields.items() if k not in ("id", "object_id")})

    async def get(self, kind: str, object_id: str) -> dict[str, Any] | None:
        record = self._table(kind).get(object_id)
        return dict(record) if record is not None else None

    async def find_page(
        self,
        kind: str,
        filters: dict[str, Any],
        *,
        limit: int,
        descending: bool = True,
        after_id: int | None = None,
    ) -> list[dict[str, Any]]:
        rows = [
            r
            for r in self._table(kind).values()
            if all(r.get(k) == v for k, v in filters.items())
        ]
        if after_id is not None:
            if descending:
                rows = [r for r in rows if r["id"] < after_id]
            else:
                rows = [r for r in rows if r["id"] > after_id]
        rows.sort(key=lambda r: r["id"], reverse=descending)
        return [dict(r) for r in rows[:limit]]

    def snapshot(self) -> dict[str, dict[str, dict[str, Any]]]:
        """Deep-ish copy of all records (for tests)."""
        return {
            kind: {oid: dict(rec) for oid, rec in table.items()}
            for kind, table in self._records.items()
        }
