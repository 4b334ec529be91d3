"""
Inflation indexation of cost basis.

A disposal's cost is inflated by sell_index / buy_index when the price index
rose by at least the threshold (10%) between the two reference months. The
reference month of a date is the calendar month BEFORE the date's month:
a buy on 2024-03-15 looks up "2024-02".

Missing, non-numeric or non-positive index values never raise. The cost stays unindexed
and the result carries a MissingIndexData warning, so no division by zero can
happen either.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass
from decimal import Decimal, InvalidOperation
from typing import Mapping, Optional

from .errors import MissingIndexData

logger = logging.getLogger(__name__)

INDEXATION_THRESHOLD = Decimal("0.10")

PriceIndexTable = Mapping[str, Decimal]


@dataclass(frozen=True)
class IndexationResult:
    buy_month: str
    sell_month: str
    buy_ref_index: Optional[Decimal]
    sell_ref_index: Optional[Decimal]
    inflation_rate: Decimal
    is_indexed: bool
    adjusted_cost: Decimal
    warning: Optional[MissingIndexData] = None


def _as_date(d: datetime.date | datetime.datetime | str) -> datetime.date:
    if isinstance(d, datetime.datetime):
        return d.date()
    if isinstance(d, datetime.date):
        return d
    return datetime.date.fromisoformat(str(d)[:10])


def month_key(d: datetime.date) -> str:
    return f"{d.year:04d}-{d.month:02d}"


def reference_month(d: datetime.date | datetime.datetime | str) -> str:
    """'YYYY-MM' of the month preceding d's month. Day-of-month is ignored."""
    first = _as_date(d).replace(day=1)
    return month_key(first - datetime.timedelta(days=1))


def lookup_index(index_table: PriceIndexTable, month: str) -> Optional[Decimal]:
    """Index value for `month`, or None when absent, non-numeric or not positive."""
    raw = index_table.get(month)
    if raw is None:
        return None
    try:
        value = raw if isinstance(raw, Decimal) else Decimal(str(raw).strip())
    except InvalidOperation:
        logger.warning("Ignoring non-numeric index value %r for %s", raw, month)
        return None
    if not value.is_finite() or value <= 0:
        return None
    return value


def latest_index_month(index_table: PriceIndexTable, upto: Optional[str] = None) -> Optional[str]:
    """Latest month with a usable value, optionally no later than `upto`."""
    usable = [
        m
        for m in index_table
        if (upto is None or m <= upto) and lookup_index(index_table, m) is not None
    ]
    return max(usable) if usable else None


def inflation_rate(buy_index: Decimal, sell_index: Decimal) -> Decimal:
    return (sell_index - buy_index) / buy_index


def is_indexable(rate: Decimal, threshold: Decimal = INDEXATION_THRESHOLD) -> bool:
    # inclusive: exactly 10% qualifies
    return rate >= threshold


def indexed_cost(
    buy_date: datetime.date | datetime.datetime | str,
    sell_date: datetime.date | datetime.datetime | str,
    raw_cost_local: Decimal,
    index_table: PriceIndexTable,
    threshold: Decimal = INDEXATION_THRESHOLD,
) -> IndexationResult:
    """
    Decide whether `raw_cost_local` gets inflated for a buy/sell date pair.

    Returns the looked-up reference indices, the inflation rate, the decision
    and the cost to use (adjusted when indexed, raw otherwise).
    """
    buy_month = reference_month(buy_date)
    sell_month = reference_month(sell_date)
    buy_index = lookup_index(index_table, buy_month)
    sell_index = lookup_index(index_table, sell_month)

    if buy_index is None or sell_index is None:
        missing = tuple(
            m for m, v in ((buy_month, buy_index), (sell_month, sell_index)) if v is None
        )
        warning = MissingIndexData(buy_month=buy_month, sell_month=sell_month, missing_months=missing)
        logger.warning("Indexation skipped for %s -> %s: %s", buy_month, sell_month, warning.message)
        return IndexationResult(
            buy_month=buy_month,
            sell_month=sell_month,
            buy_ref_index=buy_index,
            sell_ref_index=sell_index,
            inflation_rate=Decimal("0"),
            is_indexed=False,
            adjusted_cost=raw_cost_local,
            warning=warning,
        )

    rate = inflation_rate(buy_index, sell_index)
    indexed = is_indexable(rate, threshold)
    adjusted = raw_cost_local * (sell_index / buy_index) if indexed else raw_cost_local
    return IndexationResult(
        buy_month=buy_month,
        sell_month=sell_month,
        buy_ref_index=buy_index,
        sell_ref_index=sell_index,
        inflation_rate=rate,
        is_indexed=indexed,
        adjusted_cost=adjusted,
    )
