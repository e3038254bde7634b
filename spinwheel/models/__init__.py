from .base import Base

# import models so Alembic/autoloaders can discover mappers
from .prize import Prize  # noqa: F401
from .spin import BookingReservation, SpinRecord  # noqa: F401
from .booking import RegisteredBooking  # noqa: F401

__all__ = [
    "Base",
    "Prize",
    "BookingReservation",
    "SpinRecord",
    "RegisteredBooking",
]
