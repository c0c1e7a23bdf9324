"""
Card-number anchors and the look-back/look-ahead rules around them.

A transaction row of the statement flattens into consecutive fragments:

    [trans date] [post date] description amount card [original amount]

The four-digit card suffix is the most reliable fragment, so every row is
recognized from it: the amount and description must precede it, dates may
or may not be present in front of the description, and the original
currency amount may follow it.
"""
from typing import List, NamedTuple, Optional, Sequence, Tuple
import logging

from .normalize import is_amount, is_card_suffix, is_date

logger = logging.getLogger(__name__)

REPAYMENT_MARKERS = ('自动还款', 'Automatic Repayment')


class DateLayout(NamedTuple):
    """One way the dates in front of a description can be laid out."""
    name: str
    dates_present: Tuple[bool, bool]   # (i-4, i-3) match the date pattern
    repayment: Optional[bool]          # None: description does not matter
    trans_offset: Optional[int]
    post_offset: Optional[int]


# Checked in order; first match wins.
DATE_LAYOUTS: List[DateLayout] = [
    DateLayout('trans_and_post', (True, True), None, -4, -3),
    DateLayout('repayment_post_only', (False, True), True, None, -3),
    DateLayout('trans_only', (False, True), False, -3, None),
    DateLayout('no_dates', (True, False), None, None, None),
    DateLayout('no_dates', (False, False), None, None, None),
]


class AnchorMatch:
    """Fragments found around one card-number anchor."""
    def __init__(self, index: int, card_last_four: str, amount: str, description: str,
                 trans_date: str, post_date: str, original_amount: Optional[str],
                 layout: str, start: int, end: int):
        self.index = index
        self.card_last_four = card_last_four
        self.amount = amount
        self.description = description
        self.trans_date = trans_date
        self.post_date = post_date
        self.original_amount = original_amount
        self.layout = layout
        self.start = start
        self.end = end

    def __repr__(self):
        return (f"AnchorMatch(index={self.index}, card='{self.card_last_four}', "
                f"amount='{self.amount}', layout='{self.layout}')")


def _fragment_at(fragments: Sequence[str], index: int) -> str:
    if 0 <= index < len(fragments):
        return fragments[index]
    return ''


def is_repayment(description: str) -> bool:
    """Scheduled repayments print only a post date."""
    return any(marker in description for marker in REPAYMENT_MARKERS)


def select_date_layout(fragments: Sequence[str], index: int, description: str) -> DateLayout:
    """
    Pick the date layout for the anchor at index.

    Args:
        fragments: Fragment sequence
        index: Position of the card-number anchor
        description: Description fragment of the row

    Returns:
        The first DateLayout whose pattern fits
    """
    present = (
        is_date(_fragment_at(fragments, index - 4)),
        is_date(_fragment_at(fragments, index - 3)),
    )
    repayment = is_repayment(description)

    for layout in DATE_LAYOUTS:
        if layout.dates_present != present:
            continue
        if layout.repayment is not None and layout.repayment != repayment:
            continue
        return layout

    # DATE_LAYOUTS covers every combination
    raise AssertionError(f"No date layout for {present}")


def match_anchor(fragments: Sequence[str], index: int) -> Optional[AnchorMatch]:
    """
    Try to read a transaction row around the fragment at index.

    Args:
        fragments: Fragment sequence
        index: Candidate anchor position

    Returns:
        AnchorMatch if the row preconditions hold, None otherwise
    """
    card = fragments[index]
    if not is_card_suffix(card):
        return None

    amount = _fragment_at(fragments, index - 1)
    if index < 1 or not is_amount(amount):
        logger.debug(f"Skipping anchor {card} at {index}: no amount before it")
        return None

    if index < 2:
        logger.debug(f"Skipping anchor {card} at {index}: no description before it")
        return None
    description = fragments[index - 2]
    if is_date(description):
        logger.debug(f"Skipping anchor {card} at {index}: date where description expected")
        return None

    layout = select_date_layout(fragments, index, description)
    trans_date = _fragment_at(fragments, index + layout.trans_offset) if layout.trans_offset is not None else ''
    post_date = _fragment_at(fragments, index + layout.post_offset) if layout.post_offset is not None else ''

    offsets = [-2] + [o for o in (layout.trans_offset, layout.post_offset) if o is not None]
    start = index + min(offsets)

    # Read-only look-ahead; the scan position never moves past it
    original_amount = None
    end = index
    following = _fragment_at(fragments, index + 1)
    if is_amount(following) and not is_date(following):
        original_amount = following
        end = index + 1

    return AnchorMatch(
        index=index,
        card_last_four=card,
        amount=amount,
        description=description,
        trans_date=trans_date,
        post_date=post_date,
        original_amount=original_amount,
        layout=layout.name,
        start=start,
        end=end,
    )
