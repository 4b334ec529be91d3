"""
Pytest configuration and shared fixtures.
"""

import datetime
from decimal import Decimal

import pytest

from stocktaxcalc.fifo_engine import CapitalGainEvent
from stocktaxcalc.rules.tr import TAX_BRACKETS_2025, YI_UFE
from stocktaxcalc.schemas import Dividend, Transaction


def make_tx(kind, qty, price, date, ticker="AAPL", rate="1", tx_id=None):
    """Compact Transaction builder for tests; amounts given as strings."""
    if isinstance(date, str):
        date = datetime.date.fromisoformat(date)
    return Transaction(
        id=tx_id or f"{kind}-{ticker}-{date.isoformat()}-{qty}",
        ticker=ticker,
        kind=kind,
        date=date,
        quantity=Decimal(qty),
        unit_price_foreign=Decimal(price),
        conversion_rate=Decimal(rate),
    )


@pytest.fixture
def brackets():
    return list(TAX_BRACKETS_2025)


@pytest.fixture
def index_table():
    return dict(YI_UFE)


@pytest.fixture
def documented_transactions():
    """BUY 100 @150 (rate 31.50) then SELL 100 @180 (rate 34.80)."""
    return [
        make_tx("BUY", "100", "150", "2024-03-15", rate="31.50", tx_id="1"),
        make_tx("SELL", "100", "180", "2024-11-20", rate="34.80", tx_id="2"),
    ]


@pytest.fixture
def documented_dividend():
    return Dividend(
        id="d1",
        ticker="AAPL",
        date=datetime.date(2024, 8, 15),
        gross_amount_foreign=Decimal("600"),
        withholding_foreign=Decimal("90"),
        conversion_rate=Decimal("32.00"),
    )


def make_event(profit, cost="1000"):
    """CapitalGainEvent with the given realized profit, no indexation."""
    profit, cost = Decimal(profit), Decimal(cost)
    return CapitalGainEvent(
        ticker="AAPL",
        buy_date=datetime.date(2024, 1, 10),
        sell_date=datetime.date(2024, 6, 10),
        quantity=Decimal("1"),
        raw_cost_local=cost,
        proceeds_local=cost + profit,
        buy_reference_index=None,
        sell_reference_index=None,
        inflation_rate=Decimal("0"),
        is_indexed=False,
        adjusted_cost_local=cost,
        realized_profit_local=profit,
    )
