# audit_digest.py
from __future__ import annotations

import dataclasses
import datetime
import hashlib
import json
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Mapping, Optional, Sequence

from pydantic import BaseModel

from .calc_runner import CalcResult
from .indexation import reference_month
from .schemas import Dividend, Transaction, dec_to_str


def _normalize(o: Any) -> Any:
    if isinstance(o, BaseModel):
        return _normalize(o.model_dump())
    if dataclasses.is_dataclass(o) and not isinstance(o, type):
        return _normalize(dataclasses.asdict(o))
    if isinstance(o, dict):
        return {str(k): _normalize(o[k]) for k in sorted(o.keys(), key=str)}
    if isinstance(o, (list, tuple)):
        return [_normalize(v) for v in o]
    if isinstance(o, Decimal):
        return dec_to_str(o)
    if isinstance(o, Enum):
        return o.value
    if isinstance(o, (datetime.date, datetime.datetime)):
        return o.isoformat()
    return o


def _json_c14n(obj: Any) -> str:
    """
    Canonical JSON dump:
      - sort keys
      - no spaces (compact separators)
      - decimals rendered as plain strings, dates as ISO strings
    """
    return json.dumps(_normalize(obj), sort_keys=True, separators=(",", ":"))


def _sha256_hex(s: str) -> str:
    return hashlib.sha256(s.encode("utf-8")).hexdigest()


def build_run_manifest(
    result: CalcResult,
    transactions: Sequence[Transaction],
    dividends: Sequence[Dividend] = (),
    index_table: Optional[Mapping[str, Decimal]] = None,
) -> Dict[str, Any]:
    """
    Build a canonical manifest that captures:
      - run config (jurisdiction, rule_version, lot method, thresholds)
      - INPUT SET: transactions and dividends in the order given, plus the
        index months actually referenced by the events (taken from the
        events themselves when index_table is None)
      - OUTPUT SET: events, open lots, summary and warnings
    """
    referenced: Dict[str, Any] = {}
    for e in result.events:
        pairs = (
            (reference_month(e.buy_date), e.buy_reference_index),
            (reference_month(e.sell_date), e.sell_reference_index),
        )
        for m, used in pairs:
            if index_table is not None and m in index_table:
                referenced[m] = index_table[m]
            elif used is not None:
                # table not handed in (rule default): the values the events used
                referenced[m] = used

    return {
        "run": result.config.model_dump(),
        "inputs": {
            "transactions": [t.model_dump() for t in transactions],
            "dividends": [d.model_dump() for d in dividends],
            "index_months": referenced,
        },
        "outputs": {
            "events": list(result.events),
            "open_lots": list(result.open_lots),
            "summary": result.summary,
            "warnings": list(result.warnings),
        },
    }


def compute_digests(manifest: Dict[str, Any]) -> Dict[str, str]:
    """
    Compute:
      - input_hash: hash over run config + inputs
      - output_hash: hash over outputs
      - manifest_hash: hash over the full manifest
    """
    inputs_part = {"run": manifest["run"], "inputs": manifest["inputs"]}
    return {
        "input_hash": _sha256_hex(_json_c14n(inputs_part)),
        "output_hash": _sha256_hex(_json_c14n(manifest["outputs"])),
        "manifest_hash": _sha256_hex(_json_c14n(manifest)),
    }
