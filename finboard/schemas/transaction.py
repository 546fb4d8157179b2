from datetime import date, datetime
from decimal import Decimal
from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from finboard.schemas.category import CategoryResponse
from finboard.schemas.common import Money, StrId

MAX_TRANSACTION_AMOUNT = Decimal("1000000")


def _check_amount(value: Optional[Decimal]) -> Optional[Decimal]:
    if value is None:
        return value
    if value == 0:
        raise ValueError("Amount cannot be zero")
    if abs(value) > MAX_TRANSACTION_AMOUNT:
        raise ValueError("Amount is too large")
    return value


class TransactionCreate(BaseModel):
    title: str = Field(..., min_length=2, max_length=100)
    amount: Decimal = Field(..., max_digits=12, decimal_places=2)
    category_id: str = Field(..., min_length=1)
    transaction_date: date
    notes: Optional[str] = Field(None, max_length=500)

    check_amount = field_validator("amount")(_check_amount)


class TransactionUpdate(BaseModel):
    title: Optional[str] = Field(None, min_length=2, max_length=100)
    amount: Optional[Decimal] = Field(None, max_digits=12, decimal_places=2)
    category_id: Optional[str] = Field(None, min_length=1)
    transaction_date: Optional[date] = None
    notes: Optional[str] = Field(None, max_length=500)

    check_amount = field_validator("amount")(_check_amount)


class TransactionResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: StrId
    user_id: StrId
    title: str
    amount: Money
    category_id: Optional[StrId] = None
    transaction_date: date
    notes: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    category: Optional[CategoryResponse] = None


class SortField(str, Enum):
    TRANSACTION_DATE = "transaction_date"
    AMOUNT = "amount"
    TITLE = "title"


class SortDirection(str, Enum):
    ASC = "asc"
    DESC = "desc"


class AmountRange(str, Enum):
    ALL = "all"
    UP_TO_50 = "0-50"
    UP_TO_100 = "50-100"
    UP_TO_500 = "100-500"
    OVER_500 = "500+"


class TransactionQuery(BaseModel):
    start_date: Optional[date] = None
    end_date: Optional[date] = None
    category_id: Optional[str] = None
    search: Optional[str] = None
    amount_range: AmountRange = AmountRange.ALL
    sort_field: SortField = SortField.TRANSACTION_DATE
    sort_direction: SortDirection = SortDirection.DESC
    page: int = Field(1, ge=1)
    page_size: int = Field(10, ge=1, le=100)

    @property
    def category_filter(self) -> Optional[str]:
        if not self.category_id or self.category_id == "all":
            return None
        return self.category_id

    @property
    def search_term(self) -> Optional[str]:
        term = (self.search or "").strip().lower()
        return term or None


class TransactionPage(BaseModel):
    items: List[TransactionResponse]
    page: int
    page_size: int
    has_next: bool
    # None when the backend cannot count without a full scan
    total: Optional[int] = None
