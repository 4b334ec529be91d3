# csv_normalizer.py
"""
CSV parsing and normalization to our Transaction / Dividend schemas.

Responsibilities:
- Read CSV bytes safely (UTF-8, BOM tolerated).
- Normalize header names (case-insensitive, a few common aliases).
- Validate required columns are present.
- Turn locale-formatted amounts ("1.234,56" / "1,234.56") into Decimals.
- Validate each row using Pydantic, returning (valid_rows, errors).

Design choices:
- This module is "pure" (no I/O beyond the bytes handed in).
- A bad row never aborts the import; it is reported with its row number.
"""

import csv
import logging
from decimal import Decimal
from io import BytesIO, TextIOWrapper
from typing import Any, Dict, List, Tuple, Type

from pydantic import BaseModel, ValidationError

from .amounts import Locale, parse_amount
from .errors import InvalidInputError
from .schemas import Dividend, Transaction

logger = logging.getLogger(__name__)

# Expected transaction columns (case-insensitive):
# id,ticker,kind,date,quantity,unit_price_foreign,conversion_rate,commission_foreign
TX_REQUIRED_COLUMNS = {"ticker", "kind", "date", "quantity", "unit_price_foreign", "conversion_rate"}
TX_AMOUNT_COLUMNS = {"quantity", "unit_price_foreign", "conversion_rate", "commission_foreign"}

DIV_REQUIRED_COLUMNS = {"ticker", "date", "gross_amount_foreign", "conversion_rate"}
DIV_AMOUNT_COLUMNS = {"gross_amount_foreign", "withholding_foreign", "conversion_rate"}

HEADER_ALIASES = {
    "symbol": "ticker",
    "type": "kind",
    "side": "kind",
    "qty": "quantity",
    "price": "unit_price_foreign",
    "price_usd": "unit_price_foreign",
    "rate": "conversion_rate",
    "exchange_rate": "conversion_rate",
    "commission": "commission_foreign",
    "commission_usd": "commission_foreign",
    "amount": "gross_amount_foreign",
    "amount_usd": "gross_amount_foreign",
    "withholding": "withholding_foreign",
    "withholding_tax_usd": "withholding_foreign",
}

# Header cells that label the columns of a price sheet rather than a ticker.
PRICE_SHEET_LABELS = {"TICKER", "SYMBOL", "SEMBOLLER"}


def _normalize_header(h: str) -> str:
    """Lowercase, strip, snake_case, then resolve aliases."""
    key = h.strip().lstrip("\ufeff").lower().replace(" ", "_").replace("-", "_")
    return HEADER_ALIASES.get(key, key)


def _parse_rows(
    file_bytes: bytes,
    model: Type[BaseModel],
    required: set,
    amount_columns: set,
    locale: Locale,
    encoding: str,
) -> Tuple[List[Any], List[Dict[str, Any]]]:
    valid: List[Any] = []
    errors: List[Dict[str, Any]] = []

    # Wrap bytes with a text stream so csv can read it as lines of text.
    text_stream = TextIOWrapper(BytesIO(file_bytes), encoding=encoding, newline="")
    reader = csv.DictReader(text_stream)

    if reader.fieldnames is None:
        errors.append({"row_number": 0, "error": "CSV has no header", "raw_row": None})
        return valid, errors

    header_map = {orig: _normalize_header(orig) for orig in reader.fieldnames}
    missing = required - set(header_map.values())
    if missing:
        errors.append({"row_number": 0, "error": f"Missing required columns: {sorted(missing)}", "raw_row": None})
        return valid, errors

    for i, row in enumerate(reader, start=2):  # start=2 because row 1 is the header
        normalized: Dict[str, Any] = {}
        for orig_key, value in row.items():
            if orig_key is None:
                continue  # surplus cells beyond the header
            value = value.strip() if isinstance(value, str) else value
            normalized[header_map.get(orig_key, orig_key)] = value

        if not any(normalized.values()):
            continue

        for k in amount_columns:
            raw = normalized.get(k)
            if raw in (None, ""):
                normalized.pop(k, None)  # let the schema default (or complain)
                continue
            parsed = parse_amount(raw, locale=locale, positive_only=False)
            if parsed is not None:
                normalized[k] = parsed

        if not normalized.get("id"):
            normalized["id"] = f"row-{i}"

        try:
            valid.append(model(**normalized))
        except ValidationError as ve:
            errors.append({"row_number": i, "error": ve.errors(), "raw_row": normalized})

    logger.info("Parsed %s CSV: %d valid rows, %d errors", model.__name__, len(valid), len(errors))
    return valid, errors


def parse_transactions_csv(
    file_bytes: bytes, locale: Locale = "auto", encoding: str = "utf-8-sig"
) -> Tuple[List[Transaction], List[Dict[str, Any]]]:
    """
    Parse CSV bytes into Transaction objects.
    Returns:
      valid_rows: list[Transaction]
      errors: list of {row_number, error, raw_row}
    """
    return _parse_rows(file_bytes, Transaction, TX_REQUIRED_COLUMNS, TX_AMOUNT_COLUMNS, locale, encoding)


def parse_dividends_csv(
    file_bytes: bytes, locale: Locale = "auto", encoding: str = "utf-8-sig"
) -> Tuple[List[Dividend], List[Dict[str, Any]]]:
    """Same contract as parse_transactions_csv, for dividend receipts."""
    return _parse_rows(file_bytes, Dividend, DIV_REQUIRED_COLUMNS, DIV_AMOUNT_COLUMNS, locale, encoding)


def parse_price_sheet(text: str) -> Dict[str, Decimal]:
    """
    Parse a two-column "ticker,price" sheet (as exported from a spreadsheet)
    into {TICKER: Decimal}.

    - Semicolon-separated lines are split on ";" (Excel in comma-decimal locales).
    - Otherwise the line is split on the FIRST comma only, so a quoted
      comma-decimal price like "277,32" survives.
    - Header labels and rows without a positive price are skipped.
    """
    prices: Dict[str, Decimal] = {}
    for line in text.splitlines():
        if not line.strip():
            continue
        if ";" in line and '","' not in line:
            parts = line.split(";")
            if len(parts) < 2:
                continue
            ticker, price_raw = parts[0], parts[1]
        else:
            ticker, sep, price_raw = line.partition(",")
            if not sep:
                continue

        ticker = ticker.replace('"', "").replace("'", "").strip().upper()
        price_raw = price_raw.strip()
        if len(price_raw) >= 2 and price_raw.startswith('"') and price_raw.endswith('"'):
            price_raw = price_raw[1:-1]

        if not ticker or ticker in PRICE_SHEET_LABELS:
            continue
        price = parse_amount(price_raw)
        if price is not None:
            prices[ticker] = price

    if not prices:
        raise InvalidInputError("price sheet contains no usable ticker/price rows")
    return prices
