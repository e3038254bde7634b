"""Helpers for normalizing visitor-supplied booking ids."""

from __future__ import annotations

from .errors import EmptyBookingId


def normalize_booking_id(booking_id: str) -> str:
    """Trim surrounding whitespace from a raw booking id.

    Case is preserved; ``"abc123"`` and ``"ABC123"`` are different bookings.

    Parameters
    ----------
    booking_id : str
        Raw value typed by the visitor.

    Returns
    -------
    str
        The trimmed booking id used for every lookup and write.

    Raises
    ------
    EmptyBookingId
        If ``booking_id`` is ``None`` or blank after trimming.
    TypeError
        If ``booking_id`` is not a string.
    """

    if booking_id is None:
        raise EmptyBookingId()
    if not isinstance(booking_id, str):
        raise TypeError("booking id must be a string")
    normalized = booking_id.strip()
    if not normalized:
        raise EmptyBookingId()
    return normalized


__all__ = ["normalize_booking_id"]
