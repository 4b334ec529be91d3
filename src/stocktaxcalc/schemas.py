from __future__ import annotations

"""
Pydantic schemas for the records the calculator accepts.

- Transactions, dividends and bracket rows are validated once, at the edge,
  and are frozen afterwards: the engine never mutates caller data.
- Amounts are Decimal. Money + floating point is how rounding bugs start.
- Derived records (events, open lots, summaries) are plain dataclasses that
  live next to the code that produces them.
"""

import datetime
from decimal import Decimal
from enum import Enum
from typing import Literal, Optional

from pydantic import BaseModel, ConfigDict, Field, field_serializer, field_validator

from .config import Settings, settings as default_settings


class TxKind(str, Enum):
    BUY = "BUY"
    SELL = "SELL"


def dec_to_str(v: Decimal | None) -> str | None:
    """Plain (non-exponent) string without trailing zeros."""
    if v is None:
        return None
    s = format(v, "f")
    return s.rstrip("0").rstrip(".") if "." in s else s


class Transaction(BaseModel):
    """
    One stock trade, priced in a foreign currency.

    Fields:
      id: caller's identifier, echoed on events and open lots.
      ticker: instrument symbol, stored upper case.
      kind: BUY or SELL.
      date: trade date (day precision is all the tax rules need).
      quantity: units traded, > 0.
      unit_price_foreign: price per unit in the foreign currency, > 0.
      conversion_rate: local currency per unit of foreign currency on `date`, > 0.
      commission_foreign: recorded for reference; not part of the gain.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    ticker: str = Field(..., min_length=1, examples=["AAPL"])
    kind: TxKind
    date: datetime.date
    quantity: Decimal
    unit_price_foreign: Decimal
    conversion_rate: Decimal
    commission_foreign: Decimal = Decimal("0")

    @field_validator("ticker", mode="before")
    @classmethod
    def _upper_ticker(cls, v):
        return None if v is None else str(v).strip().upper()

    @field_validator("kind", mode="before")
    @classmethod
    def _normalize_kind(cls, v):
        if isinstance(v, str):
            s = v.strip().upper()
            # CSV exports say "purchase"/"sale" as often as "buy"/"sell"
            return {"PURCHASE": "BUY", "SALE": "SELL"}.get(s, s)
        return v

    @field_validator("quantity", "unit_price_foreign", "conversion_rate")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("commission_foreign")
    @classmethod
    def _non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_serializer("quantity", "unit_price_foreign", "conversion_rate", "commission_foreign")
    def _dec_to_str(self, v: Decimal | None) -> str | None:
        return dec_to_str(v)

    @property
    def gross_local(self) -> Decimal:
        return self.quantity * self.unit_price_foreign * self.conversion_rate


class Dividend(BaseModel):
    """A dividend receipt: gross amount and foreign withholding, both in foreign currency."""

    model_config = ConfigDict(frozen=True)

    id: str
    ticker: str = Field(..., min_length=1)
    date: datetime.date
    gross_amount_foreign: Decimal
    withholding_foreign: Decimal = Decimal("0")
    conversion_rate: Decimal

    @field_validator("ticker", mode="before")
    @classmethod
    def _upper_ticker(cls, v):
        return None if v is None else str(v).strip().upper()

    @field_validator("gross_amount_foreign", "conversion_rate")
    @classmethod
    def _positive(cls, v: Decimal) -> Decimal:
        if v <= 0:
            raise ValueError("must be greater than zero")
        return v

    @field_validator("withholding_foreign")
    @classmethod
    def _non_negative(cls, v: Decimal) -> Decimal:
        if v < 0:
            raise ValueError("must not be negative")
        return v

    @field_serializer("gross_amount_foreign", "withholding_foreign", "conversion_rate")
    def _dec_to_str(self, v: Decimal | None) -> str | None:
        return dec_to_str(v)

    @property
    def gross_local(self) -> Decimal:
        return self.gross_amount_foreign * self.conversion_rate

    @property
    def withholding_local(self) -> Decimal:
        return self.withholding_foreign * self.conversion_rate


class TaxBracket(BaseModel):
    """
    One row of a progressive schedule.

    upper_limit=None marks the open-ended top bracket (+infinity).
    tax_at_lower_bound is the tax already accrued at the previous row's limit.
    """

    model_config = ConfigDict(frozen=True)

    upper_limit: Optional[Decimal] = None
    marginal_rate: Decimal = Field(..., ge=0, le=1)
    tax_at_lower_bound: Decimal = Decimal("0")

    @property
    def is_open_ended(self) -> bool:
        return self.upper_limit is None


class CalcConfig(BaseModel):
    jurisdiction: Literal["TR"] = "TR"
    rule_version: str = "2025.1"
    lot_method: Literal["FIFO"] = "FIFO"
    dust_threshold: Decimal = Decimal("0.000001")
    indexation_threshold: Decimal = Decimal("0.10")
    # None = use the jurisdiction rule's limit
    dividend_exemption_limit: Decimal | None = None

    @classmethod
    def from_settings(cls, s: Settings | None = None, **overrides) -> "CalcConfig":
        s = s or default_settings
        values = {
            "jurisdiction": s.jurisdiction,
            "dust_threshold": s.dust_threshold,
            "indexation_threshold": s.indexation_threshold,
        }
        values.update(overrides)
        return cls(**values)
