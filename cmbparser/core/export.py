"""
CSV and JSON export of parsed statements.
"""
import csv
import io
from pathlib import Path
from typing import Dict, List
import logging

from ..models.schema import ParsedResult, Transaction

logger = logging.getLogger(__name__)

BOM = '\ufeff'

# Column order matching the statement layout
FIELD_ORDER = [
    'trans_date',
    'post_date',
    'description',
    'amount_rmb',
    'card_last_four',
    'original_amount',
]


def _cell(value) -> str:
    if value is None:
        return ''
    return str(value)


def transaction_row(transaction: Transaction, headers: List[str]) -> Dict[str, str]:
    """Map one transaction onto the header labels."""
    return {
        header: _cell(getattr(transaction, field))
        for header, field in zip(headers, FIELD_ORDER)
    }


def to_rows(result: ParsedResult) -> List[Dict[str, str]]:
    """
    Map every transaction to a dict keyed by the resolved header labels.

    Args:
        result: Parsed statement

    Returns:
        One dict per transaction, in statement order
    """
    return [transaction_row(t, result.headers) for t in result.transactions]


def _write_csv(result: ParsedResult, handle) -> None:
    writer = csv.DictWriter(handle, fieldnames=result.headers)
    writer.writeheader()
    writer.writerows(to_rows(result))


def render_csv(result: ParsedResult) -> str:
    """Render a statement as CSV text, prefixed with a UTF-8 BOM for Excel."""
    buffer = io.StringIO()
    _write_csv(result, buffer)
    return BOM + buffer.getvalue()


def export_csv(result: ParsedResult, csv_path: Path) -> Path:
    """
    Write a statement to a CSV file.

    Args:
        result: Parsed statement
        csv_path: Output file

    Returns:
        The path written
    """
    csv_path = Path(csv_path)
    with open(csv_path, 'w', newline='', encoding='utf-8-sig') as f:
        _write_csv(result, f)
    logger.info(f"Wrote {len(result.transactions)} transactions to {csv_path}")
    return csv_path


def export_json(result: ParsedResult, json_path: Path) -> Path:
    """Write a statement to a JSON file using the camelCase field names."""
    json_path = Path(json_path)
    json_path.write_text(result.model_dump_json(indent=2, by_alias=True), encoding='utf-8')
    logger.info(f"Wrote {len(result.transactions)} transactions to {json_path}")
    return json_path
