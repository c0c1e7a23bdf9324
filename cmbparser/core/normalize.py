"""
Fragment patterns and value normalization.
"""
import re
from decimal import Decimal, InvalidOperation
from typing import Iterable, Optional
import logging

from ..models.schema import ReferencePeriod

logger = logging.getLogger(__name__)

DATE_RE = re.compile(r'^\d{2}/\d{2}$', re.ASCII)
AMOUNT_RE = re.compile(r'^-?[\d,]+\.\d{2}$', re.ASCII)
CARD_RE = re.compile(r'^\d{4}$', re.ASCII)

# "2024/01/05", "2024年01月"
PERIOD_RE = re.compile(r'(20\d{2})[/\u4e00-\u9fa5](\d{1,2})')
PERIOD_SCAN_LIMIT = 50


class AmountParseError(ValueError):
    """Raised when a fragment that passed the amount gate is not a number."""


def is_date(value: str) -> bool:
    return bool(DATE_RE.match(value))


def is_amount(value: str) -> bool:
    return bool(AMOUNT_RE.match(value))


def is_card_suffix(value: str) -> bool:
    return bool(CARD_RE.match(value))


def parse_amount(value: str) -> Decimal:
    """
    Parse a signed amount such as "-1,254.99".

    Args:
        value: Amount fragment

    Returns:
        Decimal value

    Raises:
        AmountParseError: if the text is not a decimal number
    """
    cleaned = value.replace(',', '')
    try:
        amount = Decimal(cleaned)
    except InvalidOperation:
        raise AmountParseError(f"Could not parse amount: {value!r}") from None
    if not amount.is_finite():
        raise AmountParseError(f"Could not parse amount: {value!r}")
    return amount


def detect_reference_period(fragments: Iterable[str],
                            limit: int = PERIOD_SCAN_LIMIT) -> Optional[ReferencePeriod]:
    """
    Find the statement year/month among the leading fragments.

    Unlike a plain first-match rule, a candidate whose month is outside
    1-12 (e.g. "2025/13") does not set the period; scanning moves on to
    the next candidate.

    Args:
        fragments: Fragment sequence
        limit: Number of leading fragments to scan

    Returns:
        ReferencePeriod of the first usable match, None if nothing matches
    """
    for index, fragment in enumerate(fragments):
        if index >= limit:
            break
        match = PERIOD_RE.search(fragment)
        if not match:
            continue
        year, month = int(match.group(1)), int(match.group(2))
        if not 1 <= month <= 12:
            logger.debug(f"Ignoring period candidate with month {month}: {fragment!r}")
            continue
        return ReferencePeriod(year=year, month=month)
    return None


def resolve_year(month: int, period: ReferencePeriod) -> int:
    """Pick the calendar year of a transaction month relative to the statement."""
    if month > period.month + 2:
        # e.g. January statement listing December purchases
        return period.year - 1
    if month < period.month - 2 and period.month > 10:
        return period.year + 1
    return period.year


def format_date(value: str, period: ReferencePeriod) -> str:
    """
    Turn "MM/DD" into "YYYY-MM-DD".

    Args:
        value: Raw date fragment, possibly empty
        period: Reference period of the statement

    Returns:
        Normalized date; empty input stays empty, anything that is not
        two slash-separated parts is returned unchanged
    """
    if not value:
        return ''

    parts = value.split('/')
    if len(parts) != 2:
        return value

    month_text, day_text = parts
    try:
        month = int(month_text)
    except ValueError:
        return value

    year = resolve_year(month, period)
    return f"{year}-{month_text}-{day_text}"


def normalize_text(value: str) -> str:
    """
    Normalize text by trimming and collapsing whitespace.

    Args:
        value: Raw text string

    Returns:
        Cleaned text string
    """
    if not value:
        return ""

    return re.sub(r'\s+', ' ', value.strip())
