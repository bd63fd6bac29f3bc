"""FilterParser: untyped query params -> typed equality filters."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any

from ..exceptions import InvalidFilterValueError

if TYPE_CHECKING:
    from collections.abc import Mapping

    from .whitelist import FieldWhitelist

logger = logging.getLogger(__name__)


class FilterParser:
    """Keep whitelisted keys, coerce their values, ignore everything else."""

    def parse(
        self, query_params: Mapping[str, Any], whitelist: FieldWhitelist
    ) -> dict[str, Any]:
        """Return ``{column: value}``.

        Raises:
            InvalidFilterValueError: with every offending field, not just
                the first.
        """
        filters: dict[str, Any] = {}
        errors: dict[str, list[str]] = {}
        for key, raw in query_params.items():
            if key not in whitelist:
                continue
            try:
                filters[whitelist.fields[key].column] = whitelist.coerce(key, raw)
            except InvalidFilterValueError as e:
                errors.update(e.errors)
        if errors:
            raise InvalidFilterValueError(errors)
        return filters
