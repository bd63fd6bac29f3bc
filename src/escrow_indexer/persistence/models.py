"""
SQLAlchemy models for cursors and the two projection kinds.
"""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import BigInteger, Boolean, DateTime, Integer, String, func
from sqlalchemy.orm import DeclarativeBase, Mapped, mapped_column

from ..projection import ESCROWS, LOCKED


class Base(DeclarativeBase):
    """Declarative base for all indexer tables."""


class CursorModel(Base):
    """
    Last processed position per stream. One row per tracker.
    """

    __tablename__ = "cursors"

    id: Mapped[str] = mapped_column(String, primary_key=True)
    tx_digest: Mapped[str] = mapped_column(String)
    event_seq: Mapped[str] = mapped_column(String)
    updated_at: Mapped[datetime] = mapped_column(
        DateTime, server_default=func.current_timestamp()
    )


class LockedModel(Base):
    """
    Projection of ``lock`` module objects.
    """

    __tablename__ = LOCKED

    id: Mapped[int] = mapped_column(
        Integer().with_variant(BigInteger, "postgresql"),
        primary_key=True,
        autoincrement=True,
    )
    object_id: Mapped[str] = mapped_column(String, unique=True)
    key_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    creator: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    item_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    deleted: Mapped[bool] = mapped_column(Boolean, default=False, index=True)


class EscrowModel(Base):
    """
    Projection of ``shared`` module escrow objects.
    """

    __tablename__ = ESCROWS

    id: Mapped[int] = mapped_column(
        Integer().with_variant(BigInteger, "postgresql"),
        primary_key=True,
        autoincrement=True,
    )
    object_id: Mapped[str] = mapped_column(String, unique=True)
    sender: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    recipient: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    key_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    item_id: Mapped[str | None] = mapped_column(String, nullable=True, index=True)
    swapped: Mapped[bool] = mapped_column(Boolean, default=False, index=True)
    cancelled: Mapped[bool] = mapped_column(Boolean, default=False, index=True)


PROJECTION_MODELS: dict[str, type[LockedModel] | type[EscrowModel]] = {
    LOCKED: LockedModel,
    ESCROWS: EscrowModel,
}
