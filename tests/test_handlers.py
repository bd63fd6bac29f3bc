"""Tests for LockedHandler and EscrowHandler."""

from __future__ import annotations

from unittest.mock import AsyncMock

import pytest
from factories import (
    LOCK_STREAM,
    SHARED_STREAM,
    escrow_cancelled,
    escrow_created,
    escrow_swapped,
    lock_created,
    lock_destroyed,
    make_event,
)

from escrow_indexer.exceptions import MalformedEventError, StoreWriteError
from escrow_indexer.handlers import EscrowHandler, LockedHandler
from escrow_indexer.projection import ESCROWS, LOCKED, InMemoryProjectionStore


@pytest.mark.asyncio
async def test_lock_created_populates_record(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    await handler.handle(
        LOCK_STREAM, [lock_created("L1", creator="C1", key_id="K1", item_id="I1")]
    )

    record = await projection_store.get(LOCKED, "L1")
    assert record is not None
    assert record["object_id"] == "L1"
    assert record["creator"] == "C1"
    assert record["key_id"] == "K1"
    assert record["item_id"] == "I1"
    assert record["deleted"] is False


@pytest.mark.asyncio
async def test_lock_destroyed_only_sets_deleted(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    await handler.handle(LOCK_STREAM, [lock_created("L1")])
    before = await projection_store.get(LOCKED, "L1")

    await handler.handle(LOCK_STREAM, [lock_destroyed("L1")])
    after = await projection_store.get(LOCKED, "L1")

    assert before is not None and after is not None
    assert after["deleted"] is True
    assert {k: v for k, v in after.items() if k != "deleted"} == {
        k: v for k, v in before.items() if k != "deleted"
    }


@pytest.mark.asyncio
async def test_escrow_terminal_flags_merge(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = EscrowHandler(projection_store)
    await handler.handle(
        SHARED_STREAM, [escrow_created("E1", sender="S", recipient="R")]
    )
    await handler.handle(SHARED_STREAM, [escrow_swapped("E1")])

    record = await projection_store.get(ESCROWS, "E1")
    assert record is not None
    assert record["swapped"] is True
    assert record["cancelled"] is False
    assert record["sender"] == "S"
    assert record["recipient"] == "R"


@pytest.mark.asyncio
async def test_same_object_in_one_batch_is_merged_in_event_order(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = EscrowHandler(projection_store)
    batch = [escrow_created("E1"), escrow_cancelled("E1"), escrow_created("E2")]

    updates = handler.collect_updates(SHARED_STREAM, batch)
    assert list(updates) == ["E1", "E2"]
    assert updates["E1"]["cancelled"] is True
    assert updates["E1"]["sender"] == "S1"

    await handler.handle(SHARED_STREAM, batch)
    e1 = await projection_store.get(ESCROWS, "E1")
    e2 = await projection_store.get(ESCROWS, "E2")
    assert e1 is not None and e2 is not None
    assert e1["cancelled"] is True
    assert e1["id"] < e2["id"]


@pytest.mark.asyncio
async def test_terminal_before_creation_still_converges(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    await handler.handle(LOCK_STREAM, [lock_destroyed("L9")])
    await handler.handle(LOCK_STREAM, [lock_created("L9", creator="C9")])

    record = await projection_store.get(LOCKED, "L9")
    assert record is not None
    assert record["deleted"] is True
    assert record["creator"] == "C9"


@pytest.mark.asyncio
async def test_replaying_a_batch_is_idempotent(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    await handler.handle(LOCK_STREAM, [lock_created("L0")])
    batch = [lock_created("L1"), lock_created("L2"), lock_destroyed("L1")]

    await handler.handle(LOCK_STREAM, batch)
    once = projection_store.snapshot()
    await handler.handle(LOCK_STREAM, batch)

    assert projection_store.snapshot() == once


@pytest.mark.asyncio
async def test_foreign_event_rejects_whole_batch(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    batch = [lock_created("L1"), escrow_created("E1")]

    with pytest.raises(MalformedEventError) as exc_info:
        await handler.handle(LOCK_STREAM, batch)

    assert exc_info.value.event_type == f"{SHARED_STREAM}::EscrowCreated"
    assert await projection_store.get(LOCKED, "L1") is None


@pytest.mark.asyncio
async def test_stream_prefix_must_match_module_boundary(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    impostor = make_event(f"{LOCK_STREAM}er", "LockCreated", lock_id="L1")

    with pytest.raises(MalformedEventError):
        await handler.handle(LOCK_STREAM, [impostor])


@pytest.mark.asyncio
async def test_unknown_event_shape_is_malformed(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    unknown = make_event(LOCK_STREAM, "LockUpgraded", lock_id="L1")

    with pytest.raises(MalformedEventError):
        await handler.handle(LOCK_STREAM, [lock_created("L1"), unknown])
    assert await projection_store.get(LOCKED, "L1") is None


@pytest.mark.asyncio
async def test_invalid_payload_is_malformed(
    projection_store: InMemoryProjectionStore,
) -> None:
    handler = LockedHandler(projection_store)
    broken = make_event(LOCK_STREAM, "LockCreated", lock_id="L1")

    with pytest.raises(MalformedEventError):
        await handler.handle(LOCK_STREAM, [broken])


@pytest.mark.asyncio
async def test_store_failure_is_wrapped() -> None:
    store = AsyncMock()
    store.upsert = AsyncMock(side_effect=RuntimeError("db down"))
    handler = LockedHandler(store)

    with pytest.raises(StoreWriteError):
        await handler.handle(LOCK_STREAM, [lock_created("L1")])


@pytest.mark.asyncio
async def test_partial_failure_then_replay_converges(
    projection_store: InMemoryProjectionStore,
) -> None:
    batch = [lock_created("L1"), lock_created("L2"), lock_destroyed("L1")]

    reference = InMemoryProjectionStore()
    await LockedHandler(reference).handle(LOCK_STREAM, batch)

    real_upsert = projection_store.upsert
    calls = 0

    async def flaky_upsert(kind: str, object_id: str, fields: dict) -> None:
        nonlocal calls
        calls += 1
        if calls == 2:
            raise StoreWriteError("connection reset")
        await real_upsert(kind, object_id, fields)

    projection_store.upsert = flaky_upsert  # type: ignore[method-assign]
    handler = LockedHandler(projection_store)
    with pytest.raises(StoreWriteError):
        await handler.handle(LOCK_STREAM, batch)

    await handler.handle(LOCK_STREAM, batch)
    assert projection_store.snapshot() == reference.snapshot()


def test_handles_lists_registered_variants(
    projection_store: InMemoryProjectionStore,
) -> None:
    names = {t.__name__ for t in EscrowHandler(projection_store).handles}
    assert names == {"EscrowCreated", "EscrowSwapped", "EscrowCancelled"}
