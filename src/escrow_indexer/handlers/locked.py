"""Projection of ``lock`` module events into LockedRecord rows."""

from __future__ import annotations

from typing import TYPE_CHECKING, Any

from ..events import LOCK_EVENTS, LockCreated, LockDestroyed
from ..projection import LOCKED
from .base import BatchProjectionHandler

if TYPE_CHECKING:
    from ..ports import IProjectionStore


class LockedHandler(BatchProjectionHandler):
    kind = LOCKED
    variants = LOCK_EVENTS

    def __init__(self, store: IProjectionStore) -> None:
        super().__init__(store)
        self.add_reducer(LockCreated, self._on_created)
        self.add_reducer(LockDestroyed, self._on_destroyed)

    @staticmethod
    def _on_created(event: LockCreated) -> tuple[str, dict[str, Any]]:
        return event.lock_id, {
            "key_id": event.key_id,
            "creator": event.creator,
            "item_id": event.item_id,
        }

    @staticmethod
    def _on_destroyed(event: LockDestroyed) -> tuple[str, dict[str, Any]]:
        return event.lock_id, {"deleted": True}
