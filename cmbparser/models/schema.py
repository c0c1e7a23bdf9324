"""
Pydantic models for CMB credit card statement data.
"""
from datetime import date
from typing import Annotated, List, Optional
from pydantic import BaseModel, ConfigDict, Field, PlainSerializer, field_validator
from decimal import Decimal

# Exact in Python, a plain number in JSON output
Amount = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ReferencePeriod(BaseModel):
    """Statement year/month used to place bare MM/DD dates in a calendar year."""
    model_config = ConfigDict(frozen=True)

    year: int = Field(ge=2000, le=2099)
    month: int = Field(ge=1, le=12)

    @classmethod
    def current(cls, today: Optional[date] = None) -> "ReferencePeriod":
        """Build a period from today's date (or the one given)."""
        today = today or date.today()
        return cls(year=today.year, month=today.month)


class Transaction(BaseModel):
    """Individual transaction record."""
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    original_index: int = Field(alias="originalIndex", ge=1)
    trans_date: str = Field("", alias="transDate")
    post_date: str = Field("", alias="postDate")
    description: str
    amount_rmb: Amount = Field(alias="amountRMB")
    card_last_four: str = Field(alias="cardLastFour")
    original_amount: Optional[Amount] = Field(None, alias="originalAmount")

    @field_validator('card_last_four')
    @classmethod
    def validate_card_last_four(cls, v):
        if len(v) != 4 or not (v.isascii() and v.isdigit()):
            raise ValueError(f"Card suffix must be exactly 4 digits: {v!r}")
        return v


class ParsedResult(BaseModel):
    """Headers plus transactions recovered from one fragment sequence."""
    model_config = ConfigDict(populate_by_name=True)

    headers: List[str]
    transactions: List[Transaction]
    reference_period: Optional[ReferencePeriod] = Field(None, alias="referencePeriod")

    @field_validator('headers')
    @classmethod
    def validate_headers(cls, v):
        if len(v) != 6:
            raise ValueError(f"Expected 6 column headers, got {len(v)}")
        return v

    @field_validator('transactions')
    @classmethod
    def validate_transaction_order(cls, v):
        """originalIndex must run 1..N without gaps."""
        for position, txn in enumerate(v, 1):
            if txn.original_index != position:
                raise ValueError(
                    f"Transaction index out of order: expected {position}, "
                    f"got {txn.original_index}"
                )
        return v
