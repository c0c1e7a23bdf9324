"""
China Merchants Bank credit card statement parser

Recovers transaction rows from the flat text-fragment stream a PDF text
extractor produces for CMB credit card statements, by anchoring on the card
number suffix of each row and reading the neighbouring fragments.
"""

__version__ = "1.0.0"
__author__ = "cmbparser Team"

from .core.runner import StatementParser, parse_fragments, parse_statement
from .core.detectors import detect_template, detect_headers, DEFAULT_HEADERS, HEADER_KEYWORDS
from .core.export import export_csv, export_json, render_csv
from .core.errors import StatementError, InvalidFileTypeError, NoTextFoundError, NoTransactionsFoundError
from .models.schema import ParsedResult, ReferencePeriod, Transaction

__all__ = [
    "StatementParser",
    "parse_fragments",
    "parse_statement",
    "detect_template",
    "detect_headers",
    "DEFAULT_HEADERS",
    "HEADER_KEYWORDS",
    "export_csv",
    "export_json",
    "render_csv",
    "StatementError",
    "InvalidFileTypeError",
    "NoTextFoundError",
    "NoTransactionsFoundError",
    "ParsedResult",
    "ReferencePeriod",
    "Transaction"
]
