"""
Error taxonomy for the calculation core.

- InvalidInputError and InsufficientInventoryError abort a whole run; callers
  never receive a partially matched result.
- MissingIndexData is NOT an exception. It is a warning record attached to the
  affected CapitalGainEvent so a run can "succeed with caveats".
"""

from __future__ import annotations

import datetime
from dataclasses import dataclass
from decimal import Decimal
from typing import Tuple


class TaxCalcError(Exception):
    """Base class for every error raised by stocktaxcalc."""


class InvalidInputError(TaxCalcError, ValueError):
    """Non-positive quantity/price/rate, negative income, malformed bracket table, ..."""


class InsufficientInventoryError(TaxCalcError):
    """
    A SELL asks for more units than the open lots of its ticker hold.

    The matcher refuses to truncate the sell or invent a zero-cost lot.
    """

    def __init__(
        self,
        ticker: str,
        date: datetime.date,
        requested: Decimal,
        available: Decimal,
        sell_id: str | None = None,
    ) -> None:
        self.ticker = ticker
        self.date = date
        self.requested = requested
        self.available = available
        self.shortfall = requested - available
        self.sell_id = sell_id
        super().__init__(
            f"Selling {requested} {ticker} on {date.isoformat()} but only {available} "
            f"available in open lots (shortfall {self.shortfall})."
        )


@dataclass(frozen=True)
class MissingIndexData:
    """One or both reference months are absent from the price-index table."""

    buy_month: str
    sell_month: str
    missing_months: Tuple[str, ...]

    @property
    def message(self) -> str:
        months = ", ".join(self.missing_months)
        return f"price index missing for {months}; cost basis left unindexed"
