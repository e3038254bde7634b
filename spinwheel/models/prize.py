"""Prize table model."""

from __future__ import annotations

import math
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Any, Optional

from sqlalchemy import DateTime, Float, String, select
from sqlalchemy.orm import Mapped, Session, mapped_column, validates

from spinwheel.db.utils import dt_iso

from .base import Base
from .id_type import ID_TYPE

if TYPE_CHECKING:
    from spinwheel.prize_draw.weights import PrizeEntry


class Prize(Base):
    """A prize on the wheel with its relative draw weight."""

    __tablename__ = "prizes"

    id: Mapped[int] = mapped_column(ID_TYPE, primary_key=True, autoincrement=True)
    """Primary key, also the prize id recorded on spin records."""

    label: Mapped[str] = mapped_column(String(255), nullable=False)
    """Text shown to the winner."""

    weight: Mapped[Optional[float]] = mapped_column(Float, nullable=True)
    """Relative likelihood. ``None`` and ``0`` are allowed."""

    created_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
    )
    """Insertion time; defines the table order together with ``id``."""

    updated_at: Mapped[datetime] = mapped_column(
        DateTime(timezone=True),
        nullable=False,
        default=lambda: datetime.now(timezone.utc),
        onupdate=lambda: datetime.now(timezone.utc),
    )

    @validates("label")
    def _normalize_label(self, _key: str, value: str) -> str:
        if value is None:
            raise ValueError("label must not be None")
        normalized = value.strip()
        if not normalized:
            raise ValueError("label must not be empty")
        return normalized

    @validates("weight")
    def _check_weight(self, _key: str, value: Optional[float]) -> Optional[float]:
        if value is None:
            return None
        value = float(value)
        if not math.isfinite(value) or value < 0:
            raise ValueError("weight must be a finite, non-negative number")
        return value

    def snapshot(self) -> "PrizeEntry":
        """Return an immutable copy for use in a draw."""
        from spinwheel.prize_draw.weights import PrizeEntry

        if self.id is None:
            raise ValueError("Prize must be persisted before it can be drawn")
        return PrizeEntry(id=self.id, label=self.label, weight=self.weight)

    def to_json(self) -> dict[str, Any]:
        return {
            "id": self.id,
            "label": self.label,
            "weight": self.weight,
            "created_at": dt_iso(self.created_at),
            "updated_at": dt_iso(self.updated_at),
        }

    @classmethod
    def ordered(cls, session: Session) -> list["Prize"]:
        """Return every prize in insertion order."""

        stmt = select(cls).order_by(cls.created_at.asc(), cls.id.asc())
        return list(session.scalars(stmt).all())

    def __repr__(self) -> str:  # pragma: no cover - repr is trivial
        return "<Prize(id={id}, label={label!r}, weight={weight})>".format(
            id=self.id, label=self.label, weight=self.weight
        )


__all__ = ["Prize"]
