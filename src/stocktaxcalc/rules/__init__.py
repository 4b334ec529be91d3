from __future__ import annotations

from stocktaxcalc.errors import InvalidInputError
from stocktaxcalc.schemas import CalcConfig
from .base import RunContext, TaxRule
from .tr import TrRule

_RULES = {"TR": TrRule}


def rule_for(cfg: CalcConfig) -> TaxRule:
    try:
        return _RULES[cfg.jurisdiction]()
    except KeyError:
        raise InvalidInputError(f"no tax rule for jurisdiction {cfg.jurisdiction!r}") from None


__all__ = ["RunContext", "TaxRule", "TrRule", "rule_for"]
