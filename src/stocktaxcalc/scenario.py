"""
What-if evaluation on top of a finished run.

Everything here re-uses indexation.indexed_cost and brackets.evaluate, so the
10% threshold and the bracket schedule are applied exactly as in the real
calculation. Nothing in this module changes a TaxSummary; it only compares a
hypothetical taxable base against it.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import Dict, List, Mapping, Optional, Sequence

from .brackets import evaluate
from .config import settings
from .errors import InvalidInputError
from .fifo_engine import OpenLot
from .indexation import (
    INDEXATION_THRESHOLD,
    IndexationResult,
    PriceIndexTable,
    indexed_cost,
    latest_index_month,
    lookup_index,
    reference_month,
)
from .schemas import TaxBracket
from .summary import TaxSummary

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class BracketHeadroom:
    taxable_income: Decimal
    current_rate: Decimal
    next_rate: Decimal
    upper_limit: Optional[Decimal]
    # None in the open-ended top bracket
    distance_to_next: Optional[Decimal]
    share_used: Optional[Decimal]


@dataclass(frozen=True)
class DisposalScenario:
    ticker: str
    quantity: Decimal
    market_value_local: Decimal
    cost_local: Decimal
    indexation: IndexationResult
    potential_profit: Decimal
    estimated_tax: Decimal
    projected_from: Optional[str] = None


@dataclass(frozen=True)
class UnrealizedTaxEstimate:
    market_value_local: Decimal
    unrealized_profit: Decimal
    potential_taxable_income: Decimal
    estimated_tax: Decimal
    disposals: List[DisposalScenario] = field(default_factory=list)
    unpriced_tickers: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class IndexingOpportunity:
    ticker: str
    acquisition_date: datetime.date
    inflation_rate: Decimal
    cost_local: Decimal
    is_indexed: bool
    is_close: bool
    potential_saving: Decimal


def bracket_headroom(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> BracketHeadroom:
    """How much more income fits in the current bracket, and what the next one costs."""
    current = evaluate(taxable_income, brackets)
    n = current.bracket_index
    next_rate = brackets[n + 1].marginal_rate if n + 1 < len(brackets) else current.marginal_rate
    if current.upper_limit is None:
        distance = share = None
    else:
        distance = current.upper_limit - taxable_income
        share = min(Decimal("1"), taxable_income / current.upper_limit)
    return BracketHeadroom(
        taxable_income=taxable_income,
        current_rate=current.marginal_rate,
        next_rate=next_rate,
        upper_limit=current.upper_limit,
        distance_to_next=distance,
        share_used=share,
    )


def _month_after(month: str) -> datetime.date:
    """A date whose reference month is `month`."""
    year, mon = (int(p) for p in month.split("-"))
    return datetime.date(year + mon // 12, mon % 12 + 1, 1)


def _project_table(index_table: PriceIndexTable, sell_date: datetime.date) -> tuple[PriceIndexTable, Optional[str]]:
    """
    Fill a missing sell reference month with the latest index published at or
    before it.

    Hypothetical sales happen "now", usually before the statistics office has
    published the previous month.
    """
    sell_month = reference_month(sell_date)
    if lookup_index(index_table, sell_month) is not None:
        return index_table, None
    latest = latest_index_month(index_table, upto=sell_month)
    if latest is None:
        return index_table, None
    logger.warning("No index for %s; projecting with %s", sell_month, latest)
    projected = dict(index_table)
    projected[sell_month] = lookup_index(index_table, latest)
    return projected, latest


def taxable_income_with(extra_profit: Decimal, baseline: TaxSummary) -> Decimal:
    """
    Taxable income of `baseline` had `extra_profit` also been realized.

    The extra profit joins the realized capital gain before the zero floor, so
    it first absorbs any net realized loss. Dividend treatment is unchanged.
    """
    gain = max(ZERO, baseline.total_capital_gain + extra_profit)
    return gain + baseline.taxable_dividend_income


def marginal_tax(extra_profit: Decimal, baseline: TaxSummary, brackets: Sequence[TaxBracket]) -> Decimal:
    """Tax added on top of `baseline` by realizing `extra_profit`."""
    new_income = taxable_income_with(extra_profit, baseline)
    return max(ZERO, evaluate(new_income, brackets).tax - baseline.computed_tax)


def simulate_disposal(
    lot: OpenLot,
    price_foreign: Decimal,
    conversion_rate: Decimal,
    sell_date: datetime.date,
    index_table: PriceIndexTable,
    baseline: TaxSummary,
    brackets: Sequence[TaxBracket],
    threshold: Decimal = INDEXATION_THRESHOLD,
    project_missing: bool = True,
) -> DisposalScenario:
    """Sell all of `lot` at `price_foreign` on `sell_date` and price the marginal tax."""
    if price_foreign <= 0 or conversion_rate <= 0:
        raise InvalidInputError("scenario price and conversion rate must be positive")

    table, projected_from = (
        _project_table(index_table, sell_date) if project_missing else (index_table, None)
    )
    market_value = lot.remaining_quantity * price_foreign * conversion_rate
    idx = indexed_cost(lot.acquisition_date, sell_date, lot.total_cost_local, table, threshold)
    profit = market_value - idx.adjusted_cost
    return DisposalScenario(
        ticker=lot.ticker,
        quantity=lot.remaining_quantity,
        market_value_local=market_value,
        cost_local=lot.total_cost_local,
        indexation=idx,
        potential_profit=profit,
        estimated_tax=marginal_tax(profit, baseline, brackets),
        projected_from=projected_from,
    )


def unrealized_tax(
    open_lots: Sequence[OpenLot],
    prices: Mapping[str, Decimal],
    conversion_rate: Decimal,
    sell_date: datetime.date,
    index_table: PriceIndexTable,
    baseline: TaxSummary,
    brackets: Sequence[TaxBracket],
    threshold: Decimal = INDEXATION_THRESHOLD,
) -> UnrealizedTaxEstimate:
    """
    "What if everything priced were sold on sell_date?"

    Profits and losses across lots net against each other before the bracket
    engine sees them, as they would in a real run. Lots without a price are
    left out and reported in unpriced_tickers.
    """
    prices = price_map(prices)
    disposals: List[DisposalScenario] = []
    unpriced: List[str] = []
    for lot in open_lots:
        price = prices.get(lot.ticker)
        if price is None or price <= 0:
            if lot.ticker not in unpriced:
                unpriced.append(lot.ticker)
            continue
        disposals.append(
            simulate_disposal(
                lot, price, conversion_rate, sell_date, index_table, baseline, brackets, threshold
            )
        )

    market_value = sum((d.market_value_local for d in disposals), ZERO)
    profit = sum((d.potential_profit for d in disposals), ZERO)
    return UnrealizedTaxEstimate(
        market_value_local=market_value,
        unrealized_profit=profit,
        potential_taxable_income=taxable_income_with(profit, baseline),
        estimated_tax=marginal_tax(profit, baseline, brackets),
        disposals=disposals,
        unpriced_tickers=unpriced,
    )


def indexing_opportunities(
    open_lots: Sequence[OpenLot],
    index_table: PriceIndexTable,
    marginal_rate: Decimal,
    threshold: Decimal = INDEXATION_THRESHOLD,
    near_threshold: Optional[Decimal] = None,
) -> List[IndexingOpportunity]:
    """
    Compare every open lot against the latest published index.

    is_close flags lots whose inflation is above near_threshold but still
    below the indexation threshold: holding them a little longer may unlock
    indexation. potential_saving = cost × inflation × marginal_rate.
    Lots whose buy reference month has no index are skipped.
    """
    near = settings.near_indexation_threshold if near_threshold is None else near_threshold
    latest = latest_index_month(index_table)
    if latest is None:
        return []
    as_of = _month_after(latest)

    out: List[IndexingOpportunity] = []
    for lot in open_lots:
        cost = lot.total_cost_local
        idx = indexed_cost(lot.acquisition_date, as_of, cost, index_table, threshold)
        if idx.warning is not None:
            continue
        rate = idx.inflation_rate
        out.append(
            IndexingOpportunity(
                ticker=lot.ticker,
                acquisition_date=lot.acquisition_date,
                inflation_rate=rate,
                cost_local=cost,
                is_indexed=idx.is_indexed,
                is_close=near < rate < threshold,
                potential_saving=cost * rate * marginal_rate,
            )
        )
    return out


def price_map(prices: Mapping[str, Decimal]) -> Dict[str, Decimal]:
    """Upper-case tickers so lookups match OpenLot.ticker."""
    return {k.strip().upper(): v for k, v in prices.items()}
