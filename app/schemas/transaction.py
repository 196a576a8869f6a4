# app/schemas/transaction.py
import datetime as dt
from decimal import Decimal
from typing import List, Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from app.models.transaction import TransactionType

class TransactionWrite(BaseModel):
    """Every field of a transaction; used for both create and full update."""

    type: TransactionType = Field(..., description="expense or revenue")
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    description: str = Field(..., min_length=1, max_length=1000, description="E.g. Groceries")
    category: str = Field(..., min_length=1, max_length=100)
    payment_method: Optional[str] = Field(None, max_length=50)
    date: dt.date = Field(..., description="Calendar date, YYYY-MM-DD")

    @field_validator("description", "category", mode="before")
    @classmethod
    def strip_text(cls, value):
        return value.strip() if isinstance(value, str) else value

    @field_validator("payment_method", mode="before")
    @classmethod
    def blank_payment_method_is_none(cls, value):
        if isinstance(value, str):
            value = value.strip()
            return value or None
        return value

class TransactionRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    type: TransactionType
    amount: float
    description: str
    category: str
    payment_method: Optional[str] = None
    date: dt.date
    created_at: dt.datetime
    updated_at: dt.datetime

class TransactionFilters(BaseModel):
    type: Optional[TransactionType] = None
    category: Optional[str] = None
    start_date: Optional[dt.date] = None
    end_date: Optional[dt.date] = None

    @field_validator("type", "category", "start_date", "end_date", mode="before")
    @classmethod
    def blank_is_unset(cls, value):
        if isinstance(value, str) and not value.strip():
            return None
        return value

class Page(BaseModel):
    page: int = Field(1, ge=1)
    limit: int = Field(10, ge=1)

    @property
    def offset(self) -> int:
        return (self.page - 1) * self.limit

class CategoryTotal(BaseModel):
    category: str
    type: TransactionType
    total: Decimal
    count: int

class TransactionStats(BaseModel):
    period: str
    total_revenue: Decimal
    total_expense: Decimal
    revenue_count: int
    expense_count: int
    net_income: Decimal
    # All-time, not limited to the period
    balance: Decimal
    category_breakdown: List[CategoryTotal] = []

# Response bodies

class TransactionEnvelope(BaseModel):
    message: Optional[str] = None
    transaction: TransactionRead

class PaginationRead(BaseModel):
    page: int
    limit: int
    total: int
    pages: int

class TransactionListResponse(BaseModel):
    transactions: List[TransactionRead]
    pagination: PaginationRead

class StatsRead(BaseModel):
    total_revenue: float
    total_expense: float
    revenue_count: int
    expense_count: int
    balance: float
    net_income: float

class CategoryTotalRead(BaseModel):
    category: str
    type: TransactionType
    total: float
    count: int

class TransactionStatsResponse(BaseModel):
    period: str
    stats: StatsRead
    categoryBreakdown: List[CategoryTotalRead]

class MessageResponse(BaseModel):
    message: str
