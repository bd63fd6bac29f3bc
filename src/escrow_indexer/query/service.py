"""QueryService: filter + pagination params -> a page of projection records."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from ..exceptions import UnknownEntityKindError
from ..projection import RECORD_TYPES, ProjectionRecord
from .pagination import CURSOR, LIMIT, SORT, PaginationParser
from .parser import FilterParser
from .whitelist import ENTITY_WHITELISTS

if TYPE_CHECKING:
    from collections.abc import Mapping

    from ..ports import IProjectionStore
    from .whitelist import FieldWhitelist

logger = logging.getLogger(__name__)

PAGINATION_KEYS = (LIMIT, SORT, CURSOR)


@dataclass(frozen=True)
class Page:
    """Records plus the surrogate id to pass as ``cursor`` for the next page."""

    data: list[ProjectionRecord] = field(default_factory=list)
    next_cursor: int | None = None

    def to_response(self) -> dict[str, Any]:
        return {
            "data": [record.model_dump(by_alias=True) for record in self.data],
            "nextCursor": self.next_cursor,
        }


class QueryService:
    """Translate untyped query parameters into projection store queries."""

    def __init__(
        self,
        store: IProjectionStore,
        *,
        max_limit: int = 50,
        whitelists: Mapping[str, FieldWhitelist] | None = None,
    ) -> None:
        self._store = store
        self._whitelists = dict(whitelists or ENTITY_WHITELISTS)
        self._filters = FilterParser()
        self._pagination = PaginationParser(max_limit=max_limit)

    async def query(
        self,
        entity_kind: str,
        raw_filters: Mapping[str, Any],
        raw_pagination: Mapping[str, Any] | None = None,
    ) -> Page:
        """
        Raises:
            UnknownEntityKindError: no whitelist for ``entity_kind``.
            InvalidFilterValueError: a whitelisted filter failed coercion.
            InvalidPaginationValueError: bad limit, sort or cursor.
        """
        whitelist = self._whitelists.get(entity_kind)
        if whitelist is None:
            raise UnknownEntityKindError(entity_kind)

        filters = self._filters.parse(raw_filters, whitelist)
        pagination = self._pagination.parse(dict(raw_pagination or {}))
        rows = await self._store.find_page(
            entity_kind,
            filters,
            limit=pagination.limit,
            descending=pagination.descending,
            after_id=pagination.cursor,
        )
        record_type = RECORD_TYPES[entity_kind]
        records = [record_type.model_validate(row) for row in rows]
        next_cursor = records[-1].id if records else None
        logger.debug(
            "Query %s filters=%s limit=%d -> %d row(s)",
            entity_kind,
            filters,
            pagination.limit,
            len(records),
        )
        return Page(data=records, next_cursor=next_cursor)

    async def query_params(
        self, entity_kind: str, params: Mapping[str, Any]
    ) -> Page:
        """Split one flat parameter mapping into filters and pagination."""
        pagination = {k: params[k] for k in PAGINATION_KEYS if k in params}
        filters = {k: v for k, v in params.items() if k not in PAGINATION_KEYS}
        return await self.query(entity_kind, filters, pagination)
