"""Persisted booking reservations and spin records."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, Index, String, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column

from spinwheel.db.utils import dt_iso

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from spinwheel.prize_draw.ledger import DrawRecord


class BookingReservation(Base):
    """Claim on a booking id, written before the prize is selected.

    The unique constraint on ``booking_id`` is what makes a reservation
    atomic across processes sharing the database.
    """

    __tablename__ = "booking_reservations"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    booking_id: Mapped[str] = mapped_column(String(255), nullable=False)
    reserved_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_booking_reservations_booking_id"),
    )

    @classmethod
    def exists(cls, session: Session, booking_id: str) -> bool:
        stmt = select(cls.id).where(cls.booking_id == booking_id)
        return session.scalar(stmt) is not None


class SpinRecord(Base):
    """Immutable record of one successful spin."""

    __tablename__ = "spin_records"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Opaque record key."""

    booking_id: Mapped[str] = mapped_column(String(255), nullable=False)
    """Normalized booking id that was consumed. Unique per table."""

    prize_id: Mapped[int] = mapped_column(ID_TYPE, nullable=False, index=True)
    """Id of the prize won. Not a foreign key so deleting a prize keeps history."""

    prize_label: Mapped[str] = mapped_column(String(255), nullable=False)
    """Label of the prize at the time of the spin."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """When the spin happened."""

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_spin_records_booking_id"),
        Index("ix_spin_records_created_at", "created_at"),
    )

    def __init__(
        self,
        *,
        booking_id: str,
        prize_id: int,
        prize_label: str,
        created_at: Optional[datetime] = None,
    ) -> None:
        self.booking_id = booking_id
        self.prize_id = prize_id
        self.prize_label = prize_label
        if created_at is not None:
            self.created_at = created_at

    @classmethod
    def get_by_booking_id(
        cls, session: Session, booking_id: str
    ) -> Optional["SpinRecord"]:
        return session.scalar(select(cls).where(cls.booking_id == booking_id))

    def to_draw_record(self) -> "DrawRecord":
        from spinwheel.prize_draw.ledger import DrawRecord

        created_at = self.created_at
        if created_at is not None and created_at.tzinfo is None:
            created_at = created_at.replace(tzinfo=timezone.utc)
        return DrawRecord(
            booking_id=self.booking_id,
            prize_id=self.prize_id,
            prize_label=self.prize_label,
            timestamp=created_at,
            record_id=self.id,
        )

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "booking_id": self.booking_id,
            "prize_id": self.prize_id,
            "prize_label": self.prize_label,
            "created_at": dt_iso(self.created_at),
        }

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<SpinRecord(id={id}, booking_id={booking!r}, prize_id={prize})>".format(
            id=self.id, booking=self.booking_id, prize=self.prize_id
        )


__all__ = ["BookingReservation", "SpinRecord"]
