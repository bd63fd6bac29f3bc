"""PaginationParser: limit, sort direction and surrogate-id cursor."""

from __future__ import annotations

from typing import Any, NamedTuple

from ..exceptions import InvalidPaginationValueError

ASC = "asc"
DESC = "desc"

LIMIT = "limit"
SORT = "sort"
CURSOR = "cursor"


class PaginationResult(NamedTuple):
    limit: int
    descending: bool
    cursor: int | None


class PaginationParser:
    """Parse limit/sort/cursor from query params."""

    def __init__(self, max_limit: int = 50) -> None:
        self.max_limit = max_limit

    def parse(self, query_params: dict[str, Any]) -> PaginationResult:
        """
        Args:
            query_params: raw parameters; empty strings count as absent.

        Raises:
            InvalidPaginationValueError: non-integer limit or cursor, or a
                sort other than ``asc`` / ``desc``.
        """
        limit = self._parse_limit(_present(query_params.get(LIMIT)))
        descending = self._parse_sort(_present(query_params.get(SORT)))
        cursor = self._parse_cursor(_present(query_params.get(CURSOR)))
        return PaginationResult(limit=limit, descending=descending, cursor=cursor)

    def _parse_limit(self, raw: Any) -> int:
        if raw is None:
            return self.max_limit
        value = _as_int(raw, LIMIT)
        return min(self.max_limit, max(1, value))

    @staticmethod
    def _parse_sort(raw: Any) -> bool:
        if raw is None:
            return True
        direction = str(raw).lower()
        if direction not in (ASC, DESC):
            raise InvalidPaginationValueError(
                {SORT: [f"Invalid sort {raw!r}; expected 'asc' or 'desc'"]}
            )
        return direction == DESC

    @staticmethod
    def _parse_cursor(raw: Any) -> int | None:
        if raw is None:
            return None
        return _as_int(raw, CURSOR)


def _present(value: Any) -> Any:
    if isinstance(value, str) and not value.strip():
        return None
    return value


def _as_int(raw: Any, key: str) -> int:
    if isinstance(raw, bool):
        raise InvalidPaginationValueError({key: [f"Invalid integer {raw!r}"]})
    try:
        return int(raw)
    except (TypeError, ValueError):
        raise InvalidPaginationValueError(
            {key: [f"Invalid integer {raw!r}"]}
        ) from None
