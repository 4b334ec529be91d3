from __future__ import annotations
from dataclasses import dataclass
from decimal import Decimal
from typing import Dict, List, Protocol

from stocktaxcalc.schemas import CalcConfig, TaxBracket


@dataclass
class RunContext:
    cfg: CalcConfig
    tax_year: int


class TaxRule(Protocol):
    code: str
    tax_year: int

    def brackets(self) -> List[TaxBracket]: ...
    def dividend_exemption_limit(self, ctx: RunContext) -> Decimal: ...
    def price_index(self) -> Dict[str, Decimal]: ...
