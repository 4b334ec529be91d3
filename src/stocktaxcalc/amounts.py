"""
Amount normalization for user-typed or scraped numeric text.

Inputs arrive as "1.500,50" (comma decimal, dot thousands) as often as
"1,500.50" (dot decimal, comma thousands). This module turns such text into
an exact Decimal. It is an input-edge helper: the calculation core only ever
sees Decimals.

Detection rules (locale="auto"):
  1. Drop everything except digits, ",", "." and "-" (currency symbols,
     spaces, quotes, "USD", ...).
  2. If the LAST comma comes after the LAST dot, the comma is the decimal
     separator: remove every dot, then turn the first comma into a dot.
     "1.500,50" -> 1500.50, "277,32" -> 277.32, "1,500" -> 1.500.
  3. Otherwise the dot is the decimal separator: remove every comma.
     "1,500.50" -> 1500.50, "1500" -> 1500.

Note rule 2 for "1,500": a lone comma is read as a decimal comma. Callers
who know their source uses comma thousands must pass locale="dot".

locale="comma" / locale="dot" skip the detection and force the convention.
"""

from __future__ import annotations

import re
from decimal import Decimal, InvalidOperation
from typing import Any, Literal

from .errors import InvalidInputError

Locale = Literal["auto", "comma", "dot"]

_NOISE_RE = re.compile(r"[^\d.,-]")


def detect_decimal_separator(text: str) -> str:
    """Return "," or "." per rule 2/3 above."""
    return "," if text.rfind(",") > text.rfind(".") else "."


def _normalize(text: str, separator: str) -> str:
    if separator == ",":
        return text.replace(".", "").replace(",", ".", 1)
    return text.replace(",", "")


def parse_amount(value: Any, locale: Locale = "auto", positive_only: bool = True) -> Decimal | None:
    """
    Parse `value` into a Decimal.

    Returns None for blank or unparseable input, and (with positive_only) for
    zero or negative amounts, so callers can treat "no usable number" uniformly.
    Decimal/int/float inputs are accepted as-is (floats via their repr).
    """
    if value is None or isinstance(value, bool):
        return None
    if isinstance(value, Decimal):
        amount = value
    elif isinstance(value, int):
        amount = Decimal(value)
    elif isinstance(value, float):
        amount = Decimal(repr(value))
    else:
        if locale not in ("auto", "comma", "dot"):
            raise InvalidInputError(f"unknown locale {locale!r}")
        text = _NOISE_RE.sub("", str(value).strip())
        if not text or not re.search(r"\d", text):
            return None
        if locale == "auto":
            separator = detect_decimal_separator(text)
        else:
            separator = "," if locale == "comma" else "."
        try:
            amount = Decimal(_normalize(text, separator))
        except InvalidOperation:
            return None

    if not amount.is_finite():
        return None
    if positive_only and amount <= 0:
        return None
    return amount
