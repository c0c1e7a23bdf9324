"""
End-to-end parsing orchestration.
"""
from pathlib import Path
from typing import Iterator, NamedTuple, Optional, Sequence
import logging

from .anchors import match_anchor
from .detectors import detect_headers
from .errors import InvalidFileTypeError, NoTextFoundError, NoTransactionsFoundError
from .loader import load_fragments
from .normalize import detect_reference_period, format_date, parse_amount
from ..models.schema import ParsedResult, ReferencePeriod, Transaction

logger = logging.getLogger(__name__)


class TransactionBlock(NamedTuple):
    """A transaction and the fragment range [start, end] it was read from."""
    start: int
    anchor: int
    end: int
    transaction: Transaction


class StatementParser:
    """Recovers transactions from the flat fragment stream of a statement."""

    def __init__(self, default_period: Optional[ReferencePeriod] = None, verbose: bool = False):
        # Used only when the statement does not print its own period
        self.default_period = default_period or ReferencePeriod.current()
        self.verbose = verbose

        if verbose:
            logging.basicConfig(level=logging.DEBUG)

    def resolve_period(self, fragments: Sequence[str]) -> ReferencePeriod:
        period = detect_reference_period(fragments)
        if period is None:
            logger.info(f"No statement period found, using {self.default_period.year}/"
                        f"{self.default_period.month:02d}")
            return self.default_period
        logger.info(f"Statement period: {period.year}/{period.month:02d}")
        return period

    def scan(self, fragments: Sequence[str],
             period: Optional[ReferencePeriod] = None) -> Iterator[TransactionBlock]:
        """
        Walk the fragments once, yielding a block per recognized row.

        Args:
            fragments: Fragment sequence
            period: Reference period; resolved from the fragments if omitted

        Yields:
            TransactionBlock in emission order
        """
        if period is None:
            period = self.resolve_period(fragments)
        count = 0

        for index in range(len(fragments)):
            match = match_anchor(fragments, index)
            if match is None:
                continue

            count += 1
            transaction = Transaction(
                original_index=count,
                trans_date=format_date(match.trans_date, period),
                post_date=format_date(match.post_date, period),
                description=match.description,
                amount_rmb=parse_amount(match.amount),
                card_last_four=match.card_last_four,
                original_amount=(
                    parse_amount(match.original_amount)
                    if match.original_amount is not None else None
                ),
            )
            logger.debug(f"Transaction {count} ({match.layout}) at fragments "
                         f"{match.start}-{match.end}: {transaction.description}")
            yield TransactionBlock(match.start, match.index, match.end, transaction)

    def parse(self, fragments: Sequence[str]) -> ParsedResult:
        """
        Parse a fragment sequence.

        Args:
            fragments: Trimmed text runs in reading order

        Returns:
            ParsedResult with resolved headers and transactions
        """
        fragments = list(fragments)
        period = self.resolve_period(fragments)
        transactions = [block.transaction for block in self.scan(fragments, period)]
        headers = detect_headers(fragments)

        logger.info(f"Parsed {len(transactions)} transactions from {len(fragments)} fragments")
        return ParsedResult(
            headers=headers,
            transactions=transactions,
            reference_period=period
        )


def parse_fragments(fragments: Sequence[str],
                    default_period: Optional[ReferencePeriod] = None) -> ParsedResult:
    """
    Parse the text fragments of a CMB credit card statement.

    Args:
        fragments: Trimmed text runs in reading order
        default_period: Period to assume when the statement prints none

    Returns:
        ParsedResult; an empty transaction list when nothing is recognized
    """
    return StatementParser(default_period).parse(fragments)


def parse_statement(pdf_path: Path, default_period: Optional[ReferencePeriod] = None,
                    verbose: bool = False) -> ParsedResult:
    """
    Parse a CMB credit card statement PDF.

    Args:
        pdf_path: Path to PDF file
        default_period: Period to assume when the statement prints none
        verbose: Enable verbose logging

    Returns:
        ParsedResult with at least one transaction

    Raises:
        FileNotFoundError: if the file does not exist
        InvalidFileTypeError: if the file is not a PDF
        NoTextFoundError: if the PDF has no extractable text
        NoTransactionsFoundError: if no transaction row is recognized
    """
    pdf_path = Path(pdf_path)
    if pdf_path.suffix.lower() != '.pdf':
        raise InvalidFileTypeError(pdf_path.name)
    if not pdf_path.exists():
        raise FileNotFoundError(f"PDF file not found: {pdf_path}")

    fragments = load_fragments(pdf_path)
    if not fragments:
        raise NoTextFoundError(pdf_path.name)

    parser = StatementParser(default_period, verbose)
    result = parser.parse(fragments)
    if not result.transactions:
        raise NoTransactionsFoundError(pdf_path.name)
    return result
