"""Event handlers: one per tracked Move module."""

from __future__ import annotations

from .base import BatchProjectionHandler
from .escrow import EscrowHandler
from .locked import LockedHandler

__all__ = [
    "BatchProjectionHandler",
    "EscrowHandler",
    "LockedHandler",
]
