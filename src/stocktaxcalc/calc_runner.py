from __future__ import annotations

import logging
from dataclasses import dataclass, field
from decimal import Decimal
from typing import List, Mapping, Optional, Sequence

from .fifo_engine import CapitalGainEvent, OpenLot, match_lots
from .rules import RunContext, TaxRule, rule_for
from .schemas import CalcConfig, Dividend, Transaction
from .summary import TaxSummary, summarize, validate_dividends

logger = logging.getLogger(__name__)


@dataclass
class CalcResult:
    events: List[CapitalGainEvent]
    open_lots: List[OpenLot]
    summary: TaxSummary
    config: CalcConfig
    warnings: List[str] = field(default_factory=list)

    @property
    def has_caveats(self) -> bool:
        """True when the run succeeded but some events could not be index-verified."""
        return bool(self.warnings)


def run_calculation(
    transactions: Sequence[Transaction],
    dividends: Sequence[Dividend] = (),
    index_table: Optional[Mapping[str, Decimal]] = None,
    cfg: Optional[CalcConfig] = None,
    rule: Optional[TaxRule] = None,
) -> CalcResult:
    """
    Validate, match, index and summarize in one pure call.

    index_table defaults to the rule's reference table. InvalidInputError and
    InsufficientInventoryError propagate: there is no partial result.
    """
    cfg = cfg or CalcConfig.from_settings()
    rule = rule or rule_for(cfg)
    ctx = RunContext(cfg=cfg, tax_year=rule.tax_year)
    table = rule.price_index() if index_table is None else index_table

    # 1) Reject bad dividends before doing any matching work
    validate_dividends(dividends)

    # 2) FIFO match + per-event indexation
    matched = match_lots(
        list(transactions),
        table,
        dust_threshold=cfg.dust_threshold,
        indexation_threshold=cfg.indexation_threshold,
    )

    # 3) Aggregate
    summary = summarize(
        matched.events,
        list(dividends),
        rule.dividend_exemption_limit(ctx),
        rule.brackets(),
    )

    logger.info(
        "Run %s/%s: %d events, %d open lots, %d warnings, payable %s",
        cfg.jurisdiction,
        cfg.rule_version,
        len(matched.events),
        len(matched.open_lots),
        len(matched.warnings),
        summary.final_payable,
    )
    return CalcResult(
        events=matched.events,
        open_lots=matched.open_lots,
        summary=summary,
        config=cfg,
        warnings=list(matched.warnings),
    )
