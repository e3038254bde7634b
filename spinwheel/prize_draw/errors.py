"""Exceptions raised by the prize draw subsystem."""

from __future__ import annotations

from typing import Optional


class PrizeDrawError(Exception):
    """Base class for every draw failure."""


class EmptyBookingId(PrizeDrawError, ValueError):
    """The booking id is blank once surrounding whitespace is removed."""

    def __init__(self, message: str = "booking id must not be empty") -> None:
        super().__init__(message)


class AlreadyConsumed(PrizeDrawError):
    """The booking id has already been used for its one draw."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking id {booking_id!r} has already been used for a spin")
        self.booking_id = booking_id


class BookingNotFound(PrizeDrawError):
    """The booking id is not registered while open entry is disabled."""

    def __init__(self, booking_id: str) -> None:
        super().__init__(f"Booking id {booking_id!r} is not registered")
        self.booking_id = booking_id


class InvalidPrizeTable(PrizeDrawError, ValueError):
    """The prize table cannot be drawn from (empty, duplicate ids, bad weights)."""


class PersistenceFailure(PrizeDrawError, RuntimeError):
    """The ledger could not reserve or record a draw.

    When raised after a successful reservation the booking id stays
    consumed; ``booking_id`` is set in that case.
    """

    def __init__(self, message: str, booking_id: Optional[str] = None) -> None:
        super().__init__(message)
        self.booking_id = booking_id


__all__ = [
    "AlreadyConsumed",
    "BookingNotFound",
    "EmptyBookingId",
    "InvalidPrizeTable",
    "PersistenceFailure",
    "PrizeDrawError",
]
