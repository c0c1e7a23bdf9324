"""
Filtering, sorting and terminal rendering of transaction tables.
"""
from decimal import Decimal
from typing import List, Optional, Sequence
import logging

from rich.markup import escape
from rich.table import Table
from rich.text import Text

from ..models.schema import ParsedResult, Transaction

logger = logging.getLogger(__name__)

SORT_FIELDS = ('original_index', 'trans_date', 'post_date', 'description', 'amount_rmb')


def filter_transactions(transactions: Sequence[Transaction], query: Optional[str]) -> List[Transaction]:
    """
    Keep transactions whose description, amount or card suffix contains query.

    Args:
        transactions: Transactions to filter
        query: Case-insensitive search text; empty keeps everything

    Returns:
        Matching transactions in their original order
    """
    if not query:
        return list(transactions)

    needle = query.lower()
    return [
        t for t in transactions
        if needle in t.description.lower()
        or needle in str(t.amount_rmb)
        or needle in t.card_last_four
    ]


def sort_transactions(transactions: Sequence[Transaction], field: str = 'original_index',
                      descending: bool = False) -> List[Transaction]:
    """
    Sort transactions by one column.

    Args:
        transactions: Transactions to sort
        field: One of SORT_FIELDS
        descending: Reverse the order

    Returns:
        New sorted list; ties keep statement order
    """
    if field not in SORT_FIELDS:
        raise ValueError(f"Cannot sort by {field!r}; choose from {', '.join(SORT_FIELDS)}")

    return sorted(transactions, key=lambda t: getattr(t, field), reverse=descending)


def format_amount(amount: Optional[Decimal]) -> str:
    if amount is None:
        return ''
    return f"{amount:,.2f}"


def render_table(result: ParsedResult, transactions: Optional[Sequence[Transaction]] = None,
                 title: Optional[str] = None) -> Table:
    """
    Build a rich table for a statement.

    Args:
        result: Parsed statement, for its headers
        transactions: Rows to show; defaults to every transaction
        title: Table title

    Returns:
        rich Table ready to print
    """
    rows = result.transactions if transactions is None else transactions
    headers = result.headers
    table = Table(title=title or f"Transactions ({len(rows)})")

    table.add_column("#", justify="center", style="dim")
    table.add_column(headers[0])
    table.add_column(headers[1])
    table.add_column(headers[2])
    table.add_column(headers[4])
    table.add_column(headers[3], justify="right")
    table.add_column(headers[5], justify="right")

    for t in rows:
        colour = "red" if t.amount_rmb < 0 else "green"
        table.add_row(
            str(t.original_index),
            t.trans_date,
            t.post_date,
            escape(t.description),
            t.card_last_four,
            Text(format_amount(t.amount_rmb), style=colour),
            format_amount(t.original_amount),
        )

    if not rows:
        table.add_row("", "", "", "No matching transactions", "", "", "")

    return table
