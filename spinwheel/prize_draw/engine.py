"""Coordinator that turns a booking id into exactly one recorded prize."""

from __future__ import annotations

import logging
import random
from datetime import datetime, timezone
from typing import Any, Callable, Iterable, Optional

from .booking_id import normalize_booking_id
from .errors import BookingNotFound, PersistenceFailure
from .ledger import BookingLedger, DrawRecord
from .selector import draw_prize
from .weights import normalize_weights

logger = logging.getLogger(__name__)


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class PrizeDrawEngine:
    """Engine that validates a booking, reserves it, draws a prize and records it."""

    def __init__(
        self,
        ledger: BookingLedger,
        *,
        rng: Optional[random.Random] = None,
        clock: Optional[Callable[[], datetime]] = None,
        booking_registry: Optional[Callable[[str], bool]] = None,
    ) -> None:
        """Create a prize draw engine bound to a booking ledger.

        Parameters
        ----------
        ledger : BookingLedger
            Ledger that owns the one-draw-per-booking guarantee.
        rng : Optional[random.Random], default: None
            Default randomness source. When omitted, draws use
            ``secrets.SystemRandom``.
        clock : Optional[Callable[[], datetime]], default: None
            Returns the timestamp stored on each record. Defaults to the
            current UTC time.
        booking_registry : Optional[Callable[[str], bool]], default: None
            Predicate consulted with the normalized booking id. When given,
            ids it rejects fail with :class:`BookingNotFound`.
        """

        self._ledger = ledger
        self._rng = rng
        self._clock = clock or _utcnow
        self._booking_registry = booking_registry

    def attempt_draw(
        self,
        booking_id: str,
        prize_table: Iterable[Any],
        rng: Optional[random.Random] = None,
    ) -> DrawRecord:
        """Attempt the single draw allowed for ``booking_id``.

        Parameters
        ----------
        booking_id : str
            Visitor-supplied booking id; surrounding whitespace is ignored.
        prize_table : Iterable
            Snapshot of the prize table (``PrizeEntry`` or ``Prize`` rows) in
            table order.
        rng : Optional[random.Random], default: None
            Randomness source for this draw, overriding the engine default.

        Returns
        -------
        DrawRecord
            The persisted outcome.

        Notes
        -----
        The prize table is validated before the booking id is reserved, so
        a misconfigured table never uses up a booking. The prize is chosen
        only after the reservation succeeded. If the record cannot be
        written afterwards, the booking stays consumed.

        Raises
        ------
        EmptyBookingId
            If the booking id is blank.
        InvalidPrizeTable
            If the prize table is empty or malformed.
        BookingNotFound
            If a booking registry is configured and rejects the id.
        AlreadyConsumed
            If the booking id was already used.
        PersistenceFailure
            If the ledger could not reserve or record the draw.
        """

        normalized = normalize_booking_id(booking_id)
        table = normalize_weights(prize_table)

        if self._booking_registry is not None and not self._booking_registry(normalized):
            logger.warning(f"Booking id {normalized!r} is not registered")
            raise BookingNotFound(normalized)

        reserved = self._ledger.reserve(normalized)

        prize = draw_prize(table, rng if rng is not None else self._rng)
        logger.debug(f"Booking id {reserved!r} drew prize {prize.id!r}")

        timestamp = self._clock()
        try:
            record = self._ledger.record(reserved, prize.id, prize.label, timestamp)
        except PersistenceFailure:
            logger.error(
                f"Spin for booking id {reserved!r} was not recorded; the booking stays consumed"
            )
            raise
        logger.info(f"Recorded spin for booking id {reserved!r}: {prize.label!r}")
        return record


__all__ = ["PrizeDrawEngine"]
