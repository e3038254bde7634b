"""Weighted prize selection over a normalized table."""

from __future__ import annotations

import random
import secrets
from bisect import bisect_right
from typing import Any, Iterable, Optional, Union

from .errors import InvalidPrizeTable
from .weights import NormalizedTable, PrizeEntry, normalize_weights

_SYSTEM_RANDOM = secrets.SystemRandom()


def select_prize(table: NormalizedTable, r: float) -> PrizeEntry:
    """Return the entry whose range ``[lower, upper)`` contains ``r``.

    The winner is the first entry whose upper bound is strictly greater
    than ``r``, so a value sitting exactly on a bound belongs to the next
    entry. If rounding leaves ``r`` at or beyond the final bound, the last
    entry is returned.
    """

    if not table.entries:
        raise InvalidPrizeTable("prize table is empty")
    index = bisect_right(table.bounds, r)
    if index >= len(table.entries):
        return table.entries[-1]
    return table.entries[index]


def draw_prize(
    prizes: Union[NormalizedTable, Iterable[Any]],
    rng: Optional[random.Random] = None,
) -> PrizeEntry:
    """Draw one prize using ``rng`` (``secrets.SystemRandom`` by default).

    Parameters
    ----------
    prizes : NormalizedTable or iterable of prizes
        Already normalized table, or raw entries to normalize first.
    rng : Optional[random.Random], default: None
        Randomness source; only ``rng.random()`` is called, once per draw.
    """

    table = prizes if isinstance(prizes, NormalizedTable) else normalize_weights(prizes)
    source = rng if rng is not None else _SYSTEM_RANDOM
    r = source.random() * table.total
    return select_prize(table, r)


__all__ = ["draw_prize", "select_prize"]
