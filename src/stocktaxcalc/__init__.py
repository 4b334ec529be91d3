"""
stocktaxcalc - capital-gains and dividend tax for foreign-listed shares.

Pure calculation core: FIFO lot matching, inflation indexation of cost
basis, a progressive bracket engine and a summary aggregator with a dividend
exemption cliff and foreign tax credit.
"""

import logging

from .__about__ import __title__, __version__
from .amounts import parse_amount
from .brackets import BracketResult, build_brackets, evaluate, validate_brackets
from .calc_runner import CalcResult, run_calculation
from .errors import InsufficientInventoryError, InvalidInputError, MissingIndexData, TaxCalcError
from .fifo_engine import CapitalGainEvent, MatchResult, OpenLot, match_lots
from .indexation import IndexationResult, indexed_cost, reference_month
from .schemas import CalcConfig, Dividend, TaxBracket, Transaction, TxKind
from .summary import TaxSummary, summarize

logging.getLogger(__name__).addHandler(logging.NullHandler())

__all__ = [
    "__title__",
    "__version__",
    # Records
    "Transaction",
    "TxKind",
    "Dividend",
    "TaxBracket",
    "CalcConfig",
    "OpenLot",
    "CapitalGainEvent",
    "MatchResult",
    "IndexationResult",
    "BracketResult",
    "TaxSummary",
    "CalcResult",
    # Core
    "match_lots",
    "indexed_cost",
    "reference_month",
    "evaluate",
    "build_brackets",
    "validate_brackets",
    "summarize",
    "run_calculation",
    "parse_amount",
    # Errors
    "TaxCalcError",
    "InvalidInputError",
    "InsufficientInventoryError",
    "MissingIndexData",
]
