"""Projection of ``shared`` module events into EscrowRecord rows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..events import ESCROW_EVENTS, EscrowCancelled, EscrowCreated, EscrowSwapped
from ..projection import ESCROWS
from .base import BatchProjectionHandler

if TYPE_CHECKING:
    from ..ports import IProjectionStore


class EscrowHandler(BatchProjectionHandler):
    kind = ESCROWS
    variants = ESCROW_EVENTS

    def __init__(self, store: IProjectionStore) -> None:
        super().__init__(store)
        self.add_reducer(EscrowCreated, self._on_created)
        self.add_reducer(EscrowSwapped, self._on_swapped)
        self.add_reducer(EscrowCancelled, self._on_cancelled)

    @staticmethod
    def _on_created(event: EscrowCreated) -> tuple[str, dict[str, Any]]:
        return event.escrow_id, {
            "sender": event.sender,
            "recipient": event.recipient,
            "key_id": event.key_id,
            "item_id": event.item_id,
        }

    @staticmethod
    def _on_swapped(event: EscrowSwapped) -> tuple[str, dict[str, Any]]:
        return event.escrow_id, {"swapped": True}

    @staticmethod
    def _on_cancelled(event: EscrowCancelled) -> tuple[str, dict[str, Any]]:
        return event.escrow_id, {"cancelled": True}
