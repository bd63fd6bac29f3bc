"""Query side: whitelist filter parsing, pagination, paged reads."""

from __future__ import annotations

from .pagination import PaginationParser, PaginationResult
from .parser import FilterParser
from .service import Page, QueryService
from .whitelist import (
    ENTITY_WHITELISTS,
    ESCROW_WHITELIST,
    LOCKED_WHITELIST,
    FieldType,
    FieldWhitelist,
    WhitelistedField,
)

__all__ = [
    "ENTITY_WHITELISTS",
    "ESCROW_WHITELIST",
    "FieldType",
    "FieldWhitelist",
    "FilterParser",
    "LOCKED_WHITELIST",
    "Page",
    "PaginationParser",
    "PaginationResult",
    "QueryService",
    "WhitelistedField",
]
