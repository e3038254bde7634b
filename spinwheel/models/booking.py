from datetime import datetime, timezone
from typing import Optional

from sqlalchemy import DateTime, String, Text, UniqueConstraint, select
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from .base import Base
from .id_type import ID_TYPE


class RegisteredBooking(Base):
    """Booking id that is allowed to spin when open entry is disabled."""

    __tablename__ = "bookings"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    booking_id: Mapped[str] = mapped_column(String(255), nullable=False)
    note: Mapped[Optional[str]] = mapped_column(Text, nullable=True)
    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )

    __table_args__ = (
        UniqueConstraint("booking_id", name="uq_bookings_booking_id"),
    )

    @validates("booking_id")
    def _normalize_booking_id(self, _key: str, value: str) -> str:
        from spinwheel.prize_draw.booking_id import normalize_booking_id

        return normalize_booking_id(value)

    @classmethod
    def is_registered(cls, session: Session, booking_id: str) -> bool:
        """Return ``True`` if ``booking_id`` (already normalized) is registered."""
        return session.scalar(select(cls.id).where(cls.booking_id == booking_id)) is not None
