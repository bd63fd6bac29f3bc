"""Raw events as delivered by the source, and their decoded variants."""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any

from pydantic import BaseModel, ConfigDict, ValidationError

from .exceptions import MalformedEventError

if TYPE_CHECKING:
    from collections.abc import Mapping


@dataclass(frozen=True)
class EventId:
    """Position of an event in the source: transaction digest + sequence.

    This is the opaque cursor token handed back by the source and persisted
    per stream.
    """

    tx_digest: str
    event_seq: str

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> EventId:
        return cls(tx_digest=str(data["txDigest"]), event_seq=str(data["eventSeq"]))

    def to_dict(self) -> dict[str, str]:
        return {"txDigest": self.tx_digest, "eventSeq": self.event_seq}


@dataclass(frozen=True)
class RawEvent:
    """Event as returned by ``suix_queryEvents`` before decoding."""

    id: EventId
    type: str
    parsed_json: dict[str, Any] = field(default_factory=dict)
    timestamp_ms: int | None = None

    @property
    def tag(self) -> str:
        """Struct name of the event type, e.g. ``LockCreated``."""
        base = self.type.split("<", 1)[0]
        return base.rsplit("::", 1)[-1]

    def belongs_to(self, stream_id: str) -> bool:
        return self.type.startswith(f"{stream_id}::")

    @classmethod
    def from_rpc(cls, data: Mapping[str, Any]) -> RawEvent:
        try:
            timestamp = data.get("timestampMs")
            return cls(
                id=EventId.from_dict(data["id"]),
                type=str(data["type"]),
                parsed_json=dict(data.get("parsedJson") or {}),
                timestamp_ms=int(timestamp) if timestamp is not None else None,
            )
        except (KeyError, TypeError, ValueError) as e:
            raise MalformedEventError(f"Cannot parse event envelope: {e}") from e


@dataclass(frozen=True)
class EventPage:
    """One page of events after a cursor."""

    events: list[RawEvent]
    next_cursor: EventId | None
    has_more: bool


# ── Decoded variants ─────────────────────────────────────────────────


class MoveEvent(BaseModel):
    """Base class for decoded Move event payloads."""

    model_config = ConfigDict(frozen=True)


class LockCreated(MoveEvent):
    lock_id: str
    key_id: str
    creator: str
    item_id: str


class LockDestroyed(MoveEvent):
    lock_id: str


class EscrowCreated(MoveEvent):
    escrow_id: str
    key_id: str
    sender: str
    recipient: str
    item_id: str


class EscrowSwapped(MoveEvent):
    escrow_id: str


class EscrowCancelled(MoveEvent):
    escrow_id: str


LOCK_EVENTS: dict[str, type[MoveEvent]] = {
    "LockCreated": LockCreated,
    "LockDestroyed": LockDestroyed,
}

ESCROW_EVENTS: dict[str, type[MoveEvent]] = {
    "EscrowCreated": EscrowCreated,
    "EscrowSwapped": EscrowSwapped,
    "EscrowCancelled": EscrowCancelled,
}


def decode_event(
    event: RawEvent, variants: Mapping[str, type[MoveEvent]]
) -> MoveEvent:
    """Decode ``event.parsed_json`` into one of the closed set of variants.

    Raises:
        MalformedEventError: unknown tag or payload not matching the variant.
    """
    model = variants.get(event.tag)
    if model is None:
        raise MalformedEventError(
            f"Unknown event shape {event.tag!r}", event_type=event.type
        )
    try:
        return model.model_validate(event.parsed_json)
    except ValidationError as e:
        raise MalformedEventError(
            f"Invalid {event.tag} payload: {e.error_count()} error(s)",
            event_type=event.type,
        ) from e
