"""FieldWhitelist: per-entity-kind filterable fields and their types."""

from __future__ import annotations

import enum
from dataclasses import dataclass
from typing import Any

from ..exceptions import InvalidFilterValueError
from ..projection import ESCROWS, LOCKED


class FieldType(str, enum.Enum):
    STRING = "string"
    NUMBER = "number"
    BOOLEAN = "boolean"


@dataclass(frozen=True)
class WhitelistedField:
    """Query parameter name -> store column, with its declared type."""

    column: str
    type: FieldType = FieldType.STRING


class FieldWhitelist:
    """Per-resource allowed filter fields.

    Keys are the public query parameter names; anything else is ignored.
    """

    def __init__(self, fields: dict[str, WhitelistedField]) -> None:
        self.fields = dict(fields)

    def __contains__(self, name: object) -> bool:
        return name in self.fields

    def coerce(self, name: str, raw: Any) -> Any:
        """Convert ``raw`` to the field's declared type.

        Raises:
            InvalidFilterValueError: value does not parse as the declared type.
        """
        field = self.fields[name]
        if field.type is FieldType.BOOLEAN:
            return _coerce_bool(name, raw)
        if field.type is FieldType.NUMBER:
            return _coerce_number(name, raw)
        return str(raw)


def _coerce_bool(name: str, raw: Any) -> bool:
    if isinstance(raw, bool):
        return raw
    if raw == "true":
        return True
    if raw == "false":
        return False
    raise InvalidFilterValueError(
        {name: [f"Invalid boolean value {raw!r}; expected 'true' or 'false'"]}
    )


def _coerce_number(name: str, raw: Any) -> int:
    if isinstance(raw, bool):
        raise InvalidFilterValueError({name: [f"Invalid number value {raw!r}"]})
    if isinstance(raw, int):
        return raw
    try:
        return int(str(raw).strip())
    except ValueError:
        raise InvalidFilterValueError(
            {name: [f"Invalid number value {raw!r}"]}
        ) from None


LOCKED_WHITELIST = FieldWhitelist(
    {
        "deleted": WhitelistedField("deleted", FieldType.BOOLEAN),
        "creator": WhitelistedField("creator"),
        "keyId": WhitelistedField("key_id"),
        "itemId": WhitelistedField("item_id"),
        "objectId": WhitelistedField("object_id"),
    }
)

ESCROW_WHITELIST = FieldWhitelist(
    {
        "cancelled": WhitelistedField("cancelled", FieldType.BOOLEAN),
        "swapped": WhitelistedField("swapped", FieldType.BOOLEAN),
        "recipient": WhitelistedField("recipient"),
        "sender": WhitelistedField("sender"),
        "keyId": WhitelistedField("key_id"),
        "itemId": WhitelistedField("item_id"),
        "objectId": WhitelistedField("object_id"),
    }
)

ENTITY_WHITELISTS: dict[str, FieldWhitelist] = {
    LOCKED: LOCKED_WHITELIST,
    ESCROWS: ESCROW_WHITELIST,
}
