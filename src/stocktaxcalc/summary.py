"""
Tax summary aggregation.

Combines realized capital-gain events and dividend receipts into one
TaxSummary:

1. Net all realized profits. A net loss contributes zero and never reduces
   dividend income; losses are not carried forward.
2. Total dividends in local currency. The exemption is a cliff: at or below
   the limit nothing is taxable, one cent above it the WHOLE amount is.
3. Run the bracket engine on the taxable base.
4. Offset foreign withholding (only when dividends are taxable), capped at
   the computed tax.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, Sequence

from .brackets import evaluate
from .errors import InvalidInputError
from .fifo_engine import CapitalGainEvent
from .schemas import Dividend, TaxBracket

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


@dataclass(frozen=True)
class TaxSummary:
    total_capital_gain: Decimal
    total_dividend_income: Decimal
    total_taxable_income: Decimal
    marginal_rate_percent: Decimal
    computed_tax: Decimal
    foreign_tax_credit: Decimal
    final_payable: Decimal
    taxable_capital_gain: Decimal = ZERO
    taxable_dividend_income: Decimal = ZERO
    total_withholding_local: Decimal = ZERO
    dividends_exempt: bool = True

    @property
    def marginal_rate(self) -> Decimal:
        return self.marginal_rate_percent / 100


def validate_dividends(dividends: Iterable[Dividend]) -> None:
    for d in dividends:
        for name in ("gross_amount_foreign", "conversion_rate"):
            value = getattr(d, name)
            if value is None or value <= 0:
                raise InvalidInputError(f"Dividend {d.id}: {name} must be positive, got {value}")
        if d.withholding_foreign is None or d.withholding_foreign < 0:
            raise InvalidInputError(f"Dividend {d.id}: withholding must not be negative")


def summarize(
    events: Sequence[CapitalGainEvent],
    dividends: Sequence[Dividend],
    exemption_limit: Decimal,
    brackets: Sequence[TaxBracket],
) -> TaxSummary:
    validate_dividends(dividends)
    if exemption_limit < 0:
        raise InvalidInputError("dividend exemption limit must not be negative")

    total_gain = sum((e.realized_profit_local for e in events), ZERO)
    taxable_gain = max(ZERO, total_gain)

    total_dividends = sum((d.gross_amount_foreign * d.conversion_rate for d in dividends), ZERO)
    total_withholding = sum((d.withholding_foreign * d.conversion_rate for d in dividends), ZERO)
    dividends_exempt = total_dividends <= exemption_limit
    taxable_dividends = ZERO if dividends_exempt else total_dividends

    taxable_income = taxable_gain + taxable_dividends
    bracket = evaluate(taxable_income, brackets)

    credit = ZERO if dividends_exempt else min(total_withholding, bracket.tax)
    final = max(ZERO, bracket.tax - credit)

    logger.info(
        "Summary: taxable=%s (gains %s, dividends %s%s) tax=%s credit=%s payable=%s",
        taxable_income,
        taxable_gain,
        taxable_dividends,
        " exempt" if dividends_exempt and total_dividends > 0 else "",
        bracket.tax,
        credit,
        final,
    )
    return TaxSummary(
        total_capital_gain=total_gain,
        total_dividend_income=total_dividends,
        total_taxable_income=taxable_income,
        marginal_rate_percent=bracket.marginal_rate * 100,
        computed_tax=bracket.tax,
        foreign_tax_credit=credit,
        final_payable=final,
        taxable_capital_gain=taxable_gain,
        taxable_dividend_income=taxable_dividends,
        total_withholding_local=total_withholding,
        dividends_exempt=dividends_exempt,
    )
