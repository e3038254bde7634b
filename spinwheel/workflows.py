import logging
import math
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Callable, Iterable, Optional, Union

from sqlalchemy import func, select
from sqlalchemy.orm import Session, sessionmaker

from .access import AccessGate, AccessLevel
from .config import Settings
from .models import Prize, RegisteredBooking, SpinRecord
from .prize_draw.booking_id import normalize_booking_id
from .prize_draw.engine import PrizeDrawEngine
from .prize_draw.errors import InvalidPrizeTable
from .prize_draw.ledger import DrawRecord, SqlBookingLedger
from .prize_draw.weights import PrizeEntry

logger = logging.getLogger(__name__)


class InvalidPrizeData(ValueError):
    """Admin input for a prize was rejected before touching the database."""


class PrizeNotFound(LookupError):
    """No prize exists with the requested id."""

    def __init__(self, prize_id: int) -> None:
        super().__init__(f"Prize {prize_id!r} does not exist")
        self.prize_id = prize_id


@dataclass(frozen=True)
class SpinLogPage:
    """One page of the spin log, newest first."""

    items: list[SpinRecord]
    page: int
    per_page: int
    total: int

    @property
    def pages(self) -> int:
        return max(1, math.ceil(self.total / self.per_page))

    @property
    def has_next(self) -> bool:
        return self.page < self.pages

    @property
    def has_prev(self) -> bool:
        return self.page > 1


def _clean_label(label: Optional[str]) -> str:
    if label is None or not isinstance(label, str) or not label.strip():
        raise InvalidPrizeData("Prize label is required")
    label = label.strip()
    if len(label) > 255:
        raise InvalidPrizeData("Prize label must be at most 255 characters")
    return label


def _clean_weight(weight: Union[float, int, str, None], *, allow_zero: bool) -> float:
    """Parse ``weight`` as typed into the admin form."""

    if weight is None or isinstance(weight, bool):
        raise InvalidPrizeData("Prize weight is required")
    try:
        value = float(weight.strip() if isinstance(weight, str) else weight)
    except (TypeError, ValueError) as exc:
        raise InvalidPrizeData(f"Invalid prize weight: {weight!r}") from exc
    if not math.isfinite(value):
        raise InvalidPrizeData(f"Invalid prize weight: {weight!r}")
    if value < 0 or (value == 0 and not allow_zero):
        raise InvalidPrizeData(
            "Prize weight must be "
            + ("zero or positive" if allow_zero else "positive")
        )
    return value


def _get_prize(session: Session, prize_id: int) -> Prize:
    prize = session.get(Prize, prize_id)
    if prize is None:
        raise PrizeNotFound(prize_id)
    return prize


def list_prizes(session: Session) -> list[Prize]:
    """Return the prize table in insertion order."""
    return Prize.ordered(session)


def load_prize_table(session: Session) -> tuple[PrizeEntry, ...]:
    """Snapshot the prize table for a draw.

    The returned entries are detached from the session, so edits made by
    an administrator after this call do not affect a draw in progress.
    """
    return tuple(prize.snapshot() for prize in Prize.ordered(session))


def add_prize(
    session: Session,
    label: str,
    weight: Union[float, int, str],
    *,
    access: AccessLevel,
) -> Prize:
    """Create a prize. ``weight`` must be positive.

    Raises
    ------
    AccessDenied
        If ``access`` is below editor.
    InvalidPrizeData
        If the label is blank or the weight is not a positive number.
    """

    AccessGate.require(access, AccessLevel.EDITOR)
    prize = Prize(
        label=_clean_label(label),
        weight=_clean_weight(weight, allow_zero=False),
    )
    session.add(prize)
    session.flush()
    logger.info(f"Added prize {prize.id} ({prize.label!r}, weight {prize.weight})")
    return prize


def edit_prize(
    session: Session,
    prize_id: int,
    label: str,
    weight: Union[float, int, str],
    *,
    access: AccessLevel,
) -> Prize:
    """Replace the label and weight of an existing prize.

    A weight of zero is accepted here; it keeps the prize on the wheel but
    out of the draw while other prizes carry weight.
    """

    AccessGate.require(access, AccessLevel.EDITOR)
    clean_label = _clean_label(label)
    clean_weight = _clean_weight(weight, allow_zero=True)

    prize = _get_prize(session, prize_id)
    prize.label = clean_label
    prize.weight = clean_weight
    session.flush()
    logger.info(f"Edited prize {prize.id} ({prize.label!r}, weight {prize.weight})")
    return prize


def delete_prize(session: Session, prize_id: int, *, access: AccessLevel) -> None:
    """Delete a prize. Spin records that reference it are kept."""

    AccessGate.require(access, AccessLevel.EDITOR)
    prize = _get_prize(session, prize_id)
    session.delete(prize)
    session.flush()
    logger.info(f"Deleted prize {prize_id}")


def rescale_prizes_to_percentages(
    session: Session, *, access: AccessLevel
) -> list[Prize]:
    """Rescale every weight so that the table sums to 100.

    Each weight becomes ``weight / total * 100``. Draw probabilities do not
    change; the weights just read as percentages afterwards.

    Raises
    ------
    InvalidPrizeTable
        If there are no prizes or the weights sum to zero.
    """

    AccessGate.require(access, AccessLevel.EDITOR)
    prizes = Prize.ordered(session)
    if not prizes:
        raise InvalidPrizeTable("prize table is empty")
    largest = max(prize.weight or 0.0 for prize in prizes)
    if largest <= 0:
        raise InvalidPrizeTable("Total prize weight is zero")
    # Relative to the largest weight so the total cannot overflow.
    total = sum((prize.weight or 0.0) / largest for prize in prizes)

    for prize in prizes:
        prize.weight = (prize.weight or 0.0) / largest / total * 100
    session.flush()
    logger.info(f"Rescaled {len(prizes)} prize weights to percentages")
    return prizes


def register_bookings(
    session: Session,
    booking_ids: Iterable[str],
    *,
    access: AccessLevel,
    note: Optional[str] = None,
) -> list[RegisteredBooking]:
    """Pre-register booking ids for deployments that disallow open entry.

    Ids are normalized; ids already registered (or repeated in the input)
    are skipped. Returns the newly created rows.
    """

    AccessGate.require(access, AccessLevel.EDITOR)
    created: list[RegisteredBooking] = []
    seen: set[str] = set()
    for raw in booking_ids:
        booking_id = normalize_booking_id(raw)
        if booking_id in seen or RegisteredBooking.is_registered(session, booking_id):
            continue
        seen.add(booking_id)
        row = RegisteredBooking(booking_id=booking_id, note=note)
        session.add(row)
        created.append(row)
    session.flush()
    logger.info(f"Registered {len(created)} booking ids")
    return created


def is_registered_booking(session: Session, booking_id: str) -> bool:
    return RegisteredBooking.is_registered(session, normalize_booking_id(booking_id))


def _registry_lookup(session_factory: sessionmaker) -> Callable[[str], bool]:
    def lookup(booking_id: str) -> bool:
        with session_factory() as session:
            return RegisteredBooking.is_registered(session, booking_id)

    return lookup


def spin(
    session_factory: sessionmaker,
    booking_id: str,
    *,
    settings: Optional[Settings] = None,
    rng: Optional[random.Random] = None,
    clock: Optional[Callable[[], datetime]] = None,
) -> DrawRecord:
    """Run the visitor-facing spin against the database.

    This function essentially wraps :class:`PrizeDrawEngine` with a
    :class:`SqlBookingLedger`: it snapshots the prize table, optionally
    checks the booking registry, then reserves, draws and records.

    Parameters
    ----------
    session_factory : sessionmaker
        Factory used for the snapshot read and for the ledger's own
        transactions.
    booking_id : str
        Visitor-supplied booking id.
    settings : Optional[Settings], default: None
        Application settings; only ``allow_any_booking`` is consulted.
        Defaults to ``Settings()`` (open entry).
    rng : Optional[random.Random], default: None
        Randomness source override, mainly for tests.
    clock : Optional[Callable[[], datetime]], default: None
        Timestamp source override.

    Returns
    -------
    DrawRecord
        The recorded outcome.
    """

    settings = settings or Settings()
    normalized = normalize_booking_id(booking_id)

    with session_factory() as session:
        prize_table = load_prize_table(session)

    registry = None
    if not settings.allow_any_booking:
        registry = _registry_lookup(session_factory)

    engine = PrizeDrawEngine(
        SqlBookingLedger(session_factory),
        rng=rng,
        clock=clock,
        booking_registry=registry,
    )
    return engine.attempt_draw(normalized, prize_table)


def list_spin_records(
    session: Session,
    *,
    access: AccessLevel,
    page: int = 1,
    per_page: Optional[int] = None,
    settings: Optional[Settings] = None,
) -> SpinLogPage:
    """Return one page of spin records ordered newest first.

    ``per_page`` defaults to ``settings.log_page_size``.

    Raises
    ------
    AccessDenied
        If ``access`` is below viewer.
    ValueError
        If ``page`` or ``per_page`` is not positive.
    """

    AccessGate.require(access, AccessLevel.VIEWER)
    if per_page is None:
        per_page = (settings or Settings()).log_page_size
    if page <= 0:
        raise ValueError("page must be a positive integer")
    if per_page <= 0:
        raise ValueError("per_page must be a positive integer")

    total = session.scalar(select(func.count()).select_from(SpinRecord)) or 0
    stmt = (
        select(SpinRecord)
        .order_by(SpinRecord.created_at.desc(), SpinRecord.id.desc())
        .offset((page - 1) * per_page)
        .limit(per_page)
    )
    items = list(session.scalars(stmt).all())
    return SpinLogPage(items=items, page=page, per_page=per_page, total=total)
