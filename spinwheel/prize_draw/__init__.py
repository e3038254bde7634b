"""Utilities for the prize draw subsystem."""

from .booking_id import normalize_booking_id
from .engine import PrizeDrawEngine
from .errors import (
    AlreadyConsumed,
    BookingNotFound,
    EmptyBookingId,
    InvalidPrizeTable,
    PersistenceFailure,
    PrizeDrawError,
)
from .ledger import (
    BookingLedger,
    DrawRecord,
    InMemoryBookingLedger,
    SqlBookingLedger,
)
from .selector import draw_prize, select_prize
from .weights import NormalizedTable, PrizeEntry, normalize_weights

__all__ = [
    "AlreadyConsumed",
    "BookingLedger",
    "BookingNotFound",
    "DrawRecord",
    "EmptyBookingId",
    "InMemoryBookingLedger",
    "InvalidPrizeTable",
    "NormalizedTable",
    "PersistenceFailure",
    "PrizeDrawEngine",
    "PrizeDrawError",
    "PrizeEntry",
    "SqlBookingLedger",
    "draw_prize",
    "normalize_booking_id",
    "normalize_weights",
    "select_prize",
]
