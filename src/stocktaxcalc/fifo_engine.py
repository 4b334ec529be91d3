# fifo_engine.py
"""
Deterministic FIFO lot matcher.

Goal:
- Track open lots per ticker using FIFO (first-in, first-out).
- Produce one CapitalGainEvent per (sell chunk, buy lot) pair. A single SELL
  spanning three buy lots yields three events, each indexed on its own dates.
- Return the residual open lots for what-if evaluation.

Rules:
- Transactions are sorted by date; same-day trades keep their input order.
- Lots below the dust threshold (1e-6 units) are dropped from the queue.
- Selling more than the open lots hold raises InsufficientInventoryError.
  Nothing is truncated and no zero-cost lot is invented.

Design:
- Pure logic. Give it a list[Transaction] (plus an optional price-index table);
  get back MatchResult(events, open_lots, warnings).
- Each ticker owns a list of private OpenLot copies and a cursor to its head
  lot. Caller transactions are never aliased or mutated.
"""

from __future__ import annotations

import datetime
import logging
from dataclasses import dataclass, field, replace
from decimal import Decimal, getcontext
from typing import Dict, Iterable, List, Optional

from .errors import InsufficientInventoryError, InvalidInputError, MissingIndexData
from .indexation import INDEXATION_THRESHOLD, IndexationResult, PriceIndexTable, indexed_cost, reference_month
from .schemas import Transaction, TxKind

# Use sufficient precision for money math.
getcontext().prec = 28

logger = logging.getLogger(__name__)

DUST_THRESHOLD = Decimal("0.000001")


@dataclass
class OpenLot:
    """
    Units still held from one BUY.
    - remaining_quantity is decremented as sells consume the lot.
    - unit_price_foreign / conversion_rate are the BUY's, so the historical
      local cost of whatever is left is remaining × price × rate.
    """

    ticker: str
    acquisition_date: datetime.date
    remaining_quantity: Decimal
    unit_price_foreign: Decimal
    conversion_rate: Decimal
    source_id: Optional[str] = None

    @property
    def total_cost_local(self) -> Decimal:
        return self.remaining_quantity * self.unit_price_foreign * self.conversion_rate


@dataclass(frozen=True)
class CapitalGainEvent:
    """
    A realized gain/loss for one sell chunk matched against one buy lot.
    All *_local amounts are in local currency.
    """

    ticker: str
    buy_date: datetime.date
    sell_date: datetime.date
    quantity: Decimal
    raw_cost_local: Decimal
    proceeds_local: Decimal
    buy_reference_index: Optional[Decimal]
    sell_reference_index: Optional[Decimal]
    inflation_rate: Decimal
    is_indexed: bool
    adjusted_cost_local: Decimal
    realized_profit_local: Decimal
    buy_price_foreign: Decimal = Decimal("0")
    sell_price_foreign: Decimal = Decimal("0")
    buy_id: Optional[str] = None
    sell_id: Optional[str] = None
    index_warning: Optional[MissingIndexData] = None

    @property
    def profit_foreign(self) -> Decimal:
        return self.quantity * (self.sell_price_foreign - self.buy_price_foreign)

    @property
    def is_verified(self) -> bool:
        """False when the index table could not confirm the indexation decision."""
        return self.index_warning is None


@dataclass
class MatchResult:
    events: List[CapitalGainEvent] = field(default_factory=list)
    open_lots: List[OpenLot] = field(default_factory=list)
    warnings: List[str] = field(default_factory=list)


def validate_transactions(transactions: Iterable[Transaction]) -> None:
    """
    Reject the batch on the first unusable transaction.

    Pydantic already enforces this on construction; this catches records built
    with model_construct() or other duck-typed objects.
    """
    for tx in transactions:
        try:
            TxKind(tx.kind)
        except ValueError:
            raise InvalidInputError(f"Transaction {tx.id}: unknown kind {tx.kind!r}") from None
        if not tx.ticker or not str(tx.ticker).strip():
            raise InvalidInputError(f"Transaction {tx.id}: ticker is required")
        for name in ("quantity", "unit_price_foreign", "conversion_rate"):
            value = getattr(tx, name)
            if value is None or value <= 0:
                raise InvalidInputError(f"Transaction {tx.id}: {name} must be positive, got {value}")


def _unindexed(buy_date: datetime.date, sell_date: datetime.date, raw_cost: Decimal) -> IndexationResult:
    return IndexationResult(
        buy_month=reference_month(buy_date),
        sell_month=reference_month(sell_date),
        buy_ref_index=None,
        sell_ref_index=None,
        inflation_rate=Decimal("0"),
        is_indexed=False,
        adjusted_cost=raw_cost,
    )


def match_lots(
    transactions: List[Transaction],
    index_table: Optional[PriceIndexTable] = None,
    *,
    dust_threshold: Decimal = DUST_THRESHOLD,
    indexation_threshold: Decimal = INDEXATION_THRESHOLD,
) -> MatchResult:
    """
    Core FIFO matcher:
      - BUY: append a private lot copy to the ticker's queue.
      - SELL: check inventory, then consume lots from the head, one event per chunk.

    index_table=None skips indexation entirely (events carry raw cost and no
    warning). Pass a table, even an empty one, to have every event indexed or
    flagged with MissingIndexData.
    """
    validate_transactions(transactions)

    txs = sorted(transactions, key=lambda t: t.date)  # sorted() is stable: ties keep input order
    queues: Dict[str, List[OpenLot]] = {}
    cursors: Dict[str, int] = {}
    result = MatchResult()

    def realize(sell: Transaction, lot: OpenLot, qty: Decimal) -> CapitalGainEvent:
        raw_cost = qty * lot.unit_price_foreign * lot.conversion_rate
        proceeds = qty * sell.unit_price_foreign * sell.conversion_rate
        if index_table is None:
            idx = _unindexed(lot.acquisition_date, sell.date, raw_cost)
        else:
            idx = indexed_cost(lot.acquisition_date, sell.date, raw_cost, index_table, indexation_threshold)
        if idx.warning is not None:
            result.warnings.append(
                f"{lot.ticker} sold {sell.date.isoformat()} (lot {lot.acquisition_date.isoformat()}): "
                f"{idx.warning.message}"
            )
        return CapitalGainEvent(
            ticker=lot.ticker,
            buy_date=lot.acquisition_date,
            sell_date=sell.date,
            quantity=qty,
            raw_cost_local=raw_cost,
            proceeds_local=proceeds,
            buy_reference_index=idx.buy_ref_index,
            sell_reference_index=idx.sell_ref_index,
            inflation_rate=idx.inflation_rate,
            is_indexed=idx.is_indexed,
            adjusted_cost_local=idx.adjusted_cost,
            realized_profit_local=proceeds - idx.adjusted_cost,
            buy_price_foreign=lot.unit_price_foreign,
            sell_price_foreign=sell.unit_price_foreign,
            buy_id=lot.source_id,
            sell_id=sell.id,
            index_warning=idx.warning,
        )

    for t in txs:
        ticker = t.ticker.strip().upper()
        queue = queues.setdefault(ticker, [])
        head = cursors.setdefault(ticker, 0)

        if TxKind(t.kind) is TxKind.BUY:
            queue.append(
                OpenLot(
                    ticker=ticker,
                    acquisition_date=t.date,
                    remaining_quantity=t.quantity,
                    unit_price_foreign=t.unit_price_foreign,
                    conversion_rate=t.conversion_rate,
                    source_id=t.id,
                )
            )
            continue

        available = sum((lot.remaining_quantity for lot in queue[head:]), Decimal("0"))
        if t.quantity - available > dust_threshold:
            raise InsufficientInventoryError(ticker, t.date, t.quantity, available, sell_id=t.id)

        remaining = t.quantity
        i = head
        while remaining > 0 and i < len(queue):
            lot = queue[i]
            take = min(lot.remaining_quantity, remaining)
            result.events.append(realize(t, lot, take))
            logger.debug("%s %s: matched %s units against lot %s", ticker, t.date, take, lot.acquisition_date)
            lot.remaining_quantity -= take
            remaining -= take
            if lot.remaining_quantity < dust_threshold:
                i += 1
        cursors[ticker] = i

    for ticker, queue in queues.items():
        for lot in queue[cursors[ticker]:]:
            if lot.remaining_quantity >= dust_threshold:
                result.open_lots.append(replace(lot))

    logger.debug(
        "FIFO matched %d transactions into %d events, %d open lots",
        len(txs),
        len(result.events),
        len(result.open_lots),
    )
    return result
