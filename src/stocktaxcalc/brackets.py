"""
Progressive tax-bracket evaluation.

A schedule is a list of TaxBracket rows ordered by upper_limit; the last row
is open-ended (upper_limit=None). Income inside row n pays
tax_at_lower_bound(n) + (income - upper_limit(n-1)) × marginal_rate(n).
"""

from __future__ import annotations

from dataclasses import dataclass
from decimal import Decimal
from typing import Iterable, List, Optional, Sequence, Tuple

from .errors import InvalidInputError
from .schemas import TaxBracket


@dataclass(frozen=True)
class BracketResult:
    tax: Decimal
    marginal_rate: Decimal
    bracket_index: int
    lower_bound: Decimal
    upper_limit: Optional[Decimal]


def validate_brackets(brackets: Sequence[TaxBracket]) -> None:
    """
    Enforce the schedule invariants:
      - at least one row, only the last one open-ended;
      - strictly increasing upper limits, non-decreasing rates;
      - continuity: each row's tax_at_lower_bound equals the tax accrued at the
        previous row's upper limit (first row starts at 0).
    """
    if not brackets:
        raise InvalidInputError("bracket table is empty")
    if not brackets[-1].is_open_ended:
        raise InvalidInputError("last bracket must be open-ended (upper_limit=None)")
    if brackets[0].tax_at_lower_bound != 0:
        raise InvalidInputError("first bracket must start at zero tax")

    lower = Decimal("0")
    for n, b in enumerate(brackets):
        if n < len(brackets) - 1:
            if b.is_open_ended:
                raise InvalidInputError(f"bracket {n} is open-ended but not last")
            if b.upper_limit <= lower:
                raise InvalidInputError(f"bracket {n}: upper limits must be strictly increasing")
        if n > 0:
            prev = brackets[n - 1]
            if b.marginal_rate < prev.marginal_rate:
                raise InvalidInputError(f"bracket {n}: marginal rate decreases")
            prev_lower = brackets[n - 2].upper_limit if n >= 2 else Decimal("0")
            expected = prev.tax_at_lower_bound + (prev.upper_limit - prev_lower) * prev.marginal_rate
            if b.tax_at_lower_bound != expected:
                raise InvalidInputError(
                    f"bracket {n}: tax_at_lower_bound {b.tax_at_lower_bound} breaks continuity "
                    f"(expected {expected})"
                )
        if b.upper_limit is not None:
            lower = b.upper_limit


def build_brackets(rows: Iterable[Tuple[Optional[Decimal], Decimal]]) -> List[TaxBracket]:
    """Build a continuous schedule from (upper_limit, marginal_rate) pairs."""
    out: List[TaxBracket] = []
    lower = Decimal("0")
    accrued = Decimal("0")
    for limit, rate in rows:
        limit = None if limit is None else Decimal(str(limit))
        rate = Decimal(str(rate))
        out.append(TaxBracket(upper_limit=limit, marginal_rate=rate, tax_at_lower_bound=accrued))
        if limit is not None:
            accrued += (limit - lower) * rate
            lower = limit
    validate_brackets(out)
    return out


def evaluate(taxable_income: Decimal, brackets: Sequence[TaxBracket]) -> BracketResult:
    """Tax and marginal rate for `taxable_income` under `brackets`."""
    if taxable_income < 0:
        raise InvalidInputError(f"taxable income must not be negative, got {taxable_income}")
    validate_brackets(brackets)

    lower = Decimal("0")
    for n, b in enumerate(brackets):
        if b.is_open_ended or taxable_income <= b.upper_limit:
            tax = b.tax_at_lower_bound + (taxable_income - lower) * b.marginal_rate
            return BracketResult(
                tax=tax,
                marginal_rate=b.marginal_rate,
                bracket_index=n,
                lower_bound=lower,
                upper_limit=b.upper_limit,
            )
        lower = b.upper_limit
    # unreachable: validate_brackets guarantees an open-ended last row
    raise InvalidInputError("no bracket matched")
