"""Tests for raw event parsing and variant decoding."""

from __future__ import annotations

import pytest

from escrow_indexer.events import (
    ESCROW_EVENTS,
    LOCK_EVENTS,
    EscrowCreated,
    EventId,
    LockDestroyed,
    RawEvent,
    decode_event,
)
from escrow_indexer.exceptions import MalformedEventError

RPC_EVENT = {
    "id": {"txDigest": "9xYz", "eventSeq": "2"},
    "packageId": "0xpkg",
    "transactionModule": "shared",
    "sender": "0xsender",
    "type": "0xpkg::shared::EscrowCreated",
    "parsedJson": {
        "escrow_id": "0xe1",
        "key_id": "0xk1",
        "sender": "0xsender",
        "recipient": "0xrecipient",
        "item_id": "0xi1",
    },
    "timestampMs": "1700000000000",
}


def test_from_rpc_parses_envelope() -> None:
    event = RawEvent.from_rpc(RPC_EVENT)
    assert event.id == EventId(tx_digest="9xYz", event_seq="2")
    assert event.tag == "EscrowCreated"
    assert event.timestamp_ms == 1700000000000
    assert event.belongs_to("0xpkg::shared")
    assert not event.belongs_to("0xpkg::lock")


def test_from_rpc_rejects_missing_id() -> None:
    with pytest.raises(MalformedEventError):
        RawEvent.from_rpc({"type": "0xpkg::lock::LockDestroyed"})


def test_event_id_round_trips_to_rpc_shape() -> None:
    event_id = EventId.from_dict({"txDigest": "abc", "eventSeq": 7})
    assert event_id.event_seq == "7"
    assert event_id.to_dict() == {"txDigest": "abc", "eventSeq": "7"}


def test_decode_known_variant() -> None:
    decoded = decode_event(RawEvent.from_rpc(RPC_EVENT), ESCROW_EVENTS)
    assert isinstance(decoded, EscrowCreated)
    assert decoded.recipient == "0xrecipient"


def test_decode_ignores_generic_type_arguments() -> None:
    event = RawEvent(
        id=EventId("t", "0"),
        type="0xpkg::lock::LockDestroyed<0x2::sui::SUI>",
        parsed_json={"lock_id": "0xl1"},
    )
    decoded = decode_event(event, LOCK_EVENTS)
    assert isinstance(decoded, LockDestroyed)


def test_decode_rejects_variant_of_other_stream() -> None:
    with pytest.raises(MalformedEventError) as exc_info:
        decode_event(RawEvent.from_rpc(RPC_EVENT), LOCK_EVENTS)
    assert exc_info.value.event_type == "0xpkg::shared::EscrowCreated"


def test_event_id_has_no_ordering() -> None:
    # Digests carry no source order; positions only compare for equality.
    with pytest.raises(TypeError):
        _ = EventId("a", "0") < EventId("b", "0")  # type: ignore[operator]
