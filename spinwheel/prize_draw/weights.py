"""Turn declared prize weights into a cumulative distribution."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Hashable, Iterable, Optional

from .errors import InvalidPrizeTable


@dataclass(frozen=True)
class PrizeEntry:
    """Immutable snapshot of a prize taken before a draw.

    Attributes
    ----------
    id : Hashable
        Opaque prize identifier, unique within a table.
    label : str
        Text shown to the winner.
    weight : Optional[float]
        Declared weight; ``None`` or non-positive values carry no weight.
    """

    id: Hashable
    label: str
    weight: Optional[float] = None


@dataclass(frozen=True)
class NormalizedTable:
    """Prize entries paired with their cumulative upper bounds.

    Entry ``i`` owns the half-open range ``[bounds[i - 1], bounds[i])``
    (``bounds[-1]`` read as ``0``). ``bounds[-1] == total``.
    """

    entries: tuple[PrizeEntry, ...]
    bounds: tuple[float, ...]
    total: float
    uniform: bool

    @property
    def cumulative(self) -> list[tuple[Hashable, float]]:
        """``(id, upper_bound)`` pairs in table order."""
        return [(entry.id, bound) for entry, bound in zip(self.entries, self.bounds)]

    def __len__(self) -> int:
        return len(self.entries)


def _declared_weight(entry: Any) -> float:
    weight = getattr(entry, "weight", None)
    if weight is None:
        return 0.0
    if isinstance(weight, bool):
        raise InvalidPrizeTable(f"weight of prize {entry.id!r} must be a number")
    try:
        value = float(weight)
    except (TypeError, ValueError) as exc:
        raise InvalidPrizeTable(
            f"weight of prize {entry.id!r} must be a number"
        ) from exc
    if not math.isfinite(value):
        raise InvalidPrizeTable(f"weight of prize {entry.id!r} must be finite")
    return value


def normalize_weights(entries: Iterable[Any]) -> NormalizedTable:
    """Build the cumulative table used by the selector.

    Each entry must expose ``id``, ``label`` and ``weight`` (a
    :class:`PrizeEntry` or a persisted ``Prize``). A positive declared
    weight is used as is; missing or non-positive weights count as zero.
    If the whole table sums to zero, every entry weighs ``1`` instead. If
    the sum overflows, weights are divided by the largest one first.

    Raises
    ------
    InvalidPrizeTable
        If ``entries`` is empty, repeats an id, or holds a non-numeric weight.
    """

    snapshot: list[PrizeEntry] = []
    seen: set = set()
    for entry in entries:
        if isinstance(entry, PrizeEntry):
            prize = entry
        else:
            prize = PrizeEntry(
                id=entry.id, label=entry.label, weight=getattr(entry, "weight", None)
            )
        if prize.id in seen:
            raise InvalidPrizeTable(f"duplicate prize id {prize.id!r}")
        seen.add(prize.id)
        snapshot.append(prize)

    if not snapshot:
        raise InvalidPrizeTable("prize table is empty")

    effective = [max(_declared_weight(prize), 0.0) for prize in snapshot]
    uniform = sum(effective) <= 0
    if uniform:
        effective = [1.0] * len(snapshot)
    elif not math.isfinite(sum(effective)):
        # Finite weights can still overflow when added; scaling keeps the odds.
        largest = max(effective)
        effective = [weight / largest for weight in effective]

    bounds: list[float] = []
    acc = 0.0
    for weight in effective:
        acc += weight
        bounds.append(acc)

    return NormalizedTable(
        entries=tuple(snapshot),
        bounds=tuple(bounds),
        total=acc,
        uniform=uniform,
    )


__all__ = ["NormalizedTable", "PrizeEntry", "normalize_weights"]
