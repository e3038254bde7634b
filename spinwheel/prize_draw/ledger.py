"""Booking ledgers: which booking ids have already been used for a spin."""

from __future__ import annotations

import logging
import threading
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import datetime
from typing import Hashable, Optional

from sqlalchemy import select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from ..models import BookingReservation, SpinRecord
from .booking_id import normalize_booking_id
from .errors import AlreadyConsumed, PersistenceFailure

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DrawRecord:
    """Outcome of one successful draw.

    Attributes
    ----------
    booking_id : str
        Normalized booking id that was consumed.
    prize_id : Hashable
        Id of the prize won.
    prize_label : str
        Label of the prize at draw time.
    timestamp : datetime
        When the draw happened.
    record_id : Optional[Hashable]
        Storage key of the record, when the ledger assigns one.
    """

    booking_id: str
    prize_id: Hashable
    prize_label: str
    timestamp: datetime
    record_id: Optional[Hashable] = None


class BookingLedger(ABC):
    """One-draw-per-booking bookkeeping.

    :meth:`reserve` is the atomic reserve-if-absent primitive: for a given
    booking id at most one caller ever succeeds. :meth:`record` stores the
    outcome for an id that has been reserved.
    """

    @abstractmethod
    def is_consumed(self, booking_id: str) -> bool:
        """Return ``True`` if ``booking_id`` has been reserved or recorded."""

    @abstractmethod
    def reserve(self, booking_id: str) -> str:
        """Reserve ``booking_id`` and return its normalized form.

        Raises
        ------
        EmptyBookingId
            If the id is blank after trimming.
        AlreadyConsumed
            If the id was reserved before.
        PersistenceFailure
            If the reservation could not be made in time.
        """

    @abstractmethod
    def record(
        self,
        booking_id: str,
        prize_id: Hashable,
        prize_label: str,
        timestamp: datetime,
    ) -> DrawRecord:
        """Persist the draw outcome for a reserved ``booking_id``.

        Recording the same booking id twice returns the first record, so a
        retry after an ambiguous failure cannot award a second prize.
        """

    def consume(
        self,
        booking_id: str,
        prize_id: Hashable,
        prize_label: str,
        timestamp: datetime,
    ) -> DrawRecord:
        """Reserve ``booking_id`` and record the outcome in one call."""

        reserved = self.reserve(booking_id)
        return self.record(reserved, prize_id, prize_label, timestamp)


class InMemoryBookingLedger(BookingLedger):
    """Ledger held in process memory.

    Each booking id gets its own lock, so reservations of different ids
    never wait on each other. A lock is dropped once its id is reserved;
    later callers see the id in ``_reserved`` whichever lock they hold.
    Only suitable when a single process serves every spin.
    """

    def __init__(self, *, lock_timeout: Optional[float] = None) -> None:
        self._lock_timeout = lock_timeout
        self._guard = threading.Lock()
        self._locks: dict[str, threading.Lock] = {}
        self._reserved: set[str] = set()
        self._records: dict[str, DrawRecord] = {}

    def _lock_for(self, booking_id: str) -> threading.Lock:
        with self._guard:
            lock = self._locks.get(booking_id)
            if lock is None:
                lock = self._locks[booking_id] = threading.Lock()
            return lock

    def _acquire(self, booking_id: str) -> threading.Lock:
        lock = self._lock_for(booking_id)
        timeout = -1 if self._lock_timeout is None else self._lock_timeout
        if not lock.acquire(timeout=timeout):
            raise PersistenceFailure(
                f"Timed out waiting to reserve booking id {booking_id!r}"
            )
        return lock

    def is_consumed(self, booking_id: str) -> bool:
        return normalize_booking_id(booking_id) in self._reserved

    def reserve(self, booking_id: str) -> str:
        normalized = normalize_booking_id(booking_id)
        lock = self._acquire(normalized)
        try:
            if normalized in self._reserved:
                logger.warning(f"Booking id {normalized!r} already used")
                raise AlreadyConsumed(normalized)
            self._reserved.add(normalized)
        finally:
            lock.release()
            # The id is reserved by now, so its lock is no longer needed.
            with self._guard:
                if self._locks.get(normalized) is lock:
                    del self._locks[normalized]
        logger.debug(f"Reserved booking id {normalized!r}")
        return normalized

    def record(
        self,
        booking_id: str,
        prize_id: Hashable,
        prize_label: str,
        timestamp: datetime,
    ) -> DrawRecord:
        normalized = normalize_booking_id(booking_id)
        with self._guard:
            if normalized not in self._reserved:
                raise ValueError(
                    f"Booking id {normalized!r} must be reserved before recording a draw"
                )
            existing = self._records.get(normalized)
            if existing is not None:
                return existing
            record = DrawRecord(
                booking_id=normalized,
                prize_id=prize_id,
                prize_label=prize_label,
                timestamp=timestamp,
                record_id=normalized,
            )
            self._records[normalized] = record
        return record

    def records(self) -> list[DrawRecord]:
        """Return every record, newest first."""

        with self._guard:
            snapshot = list(self._records.values())
        return sorted(snapshot, key=lambda rec: rec.timestamp, reverse=True)


class SqlBookingLedger(BookingLedger):
    """Ledger backed by the ``booking_reservations`` and ``spin_records`` tables.

    Reservations and records are committed in separate transactions opened
    from ``session_factory``; the unique constraint on
    ``booking_reservations.booking_id`` arbitrates concurrent reservations
    across threads and processes.
    """

    def __init__(self, session_factory: sessionmaker) -> None:
        self._session_factory = session_factory

    def is_consumed(self, booking_id: str) -> bool:
        normalized = normalize_booking_id(booking_id)
        try:
            with self._session_factory() as session:
                return BookingReservation.exists(
                    session, normalized
                ) or _has_spin_record(session, normalized)
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not look up booking id {normalized!r}"
            ) from exc

    def reserve(self, booking_id: str) -> str:
        normalized = normalize_booking_id(booking_id)
        try:
            with self._session_factory.begin() as session:
                # Spin records imported without a reservation still count.
                if _has_spin_record(session, normalized):
                    raise AlreadyConsumed(normalized)
                session.add(BookingReservation(booking_id=normalized))
                session.flush()
        except AlreadyConsumed:
            logger.warning(f"Booking id {normalized!r} already used")
            raise
        except IntegrityError as exc:
            logger.warning(f"Booking id {normalized!r} already used")
            raise AlreadyConsumed(normalized) from exc
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not reserve booking id {normalized!r}"
            ) from exc
        logger.debug(f"Reserved booking id {normalized!r}")
        return normalized

    def record(
        self,
        booking_id: str,
        prize_id: Hashable,
        prize_label: str,
        timestamp: datetime,
    ) -> DrawRecord:
        normalized = normalize_booking_id(booking_id)
        try:
            with self._session_factory.begin() as session:
                existing = SpinRecord.get_by_booking_id(session, normalized)
                if existing is not None:
                    return existing.to_draw_record()
                if not BookingReservation.exists(session, normalized):
                    raise ValueError(
                        f"Booking id {normalized!r} must be reserved before recording a draw"
                    )
                row = SpinRecord(
                    booking_id=normalized,
                    prize_id=prize_id,
                    prize_label=prize_label,
                    created_at=timestamp,
                )
                session.add(row)
                session.flush()
                record_id = row.id
        except SQLAlchemyError as exc:
            raise PersistenceFailure(
                f"Could not record the spin for booking id {normalized!r}",
                booking_id=normalized,
            ) from exc
        return DrawRecord(
            booking_id=normalized,
            prize_id=prize_id,
            prize_label=prize_label,
            timestamp=timestamp,
            record_id=record_id,
        )


def _has_spin_record(session, booking_id: str) -> bool:
    stmt = select(SpinRecord.id).where(SpinRecord.booking_id == booking_id)
    return session.scalar(stmt) is not None


__all__ = [
    "BookingLedger",
    "DrawRecord",
    "InMemoryBookingLedger",
    "SqlBookingLedger",
]
