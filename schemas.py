from datetime import date, datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field

from models import TransactionType, WalletKind


class WalletIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    kind: WalletKind
    currency: str = Field(default="USD", min_length=3, max_length=3)
    balance_cents: int = 0


class WalletOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    kind: WalletKind
    currency: str
    balance_cents: int
    balance_display: str = ""


class CategoryIn(BaseModel):
    model_config = ConfigDict(str_strip_whitespace=True)

    name: str = Field(..., min_length=1, max_length=100)
    type: TransactionType
    icon: Optional[str] = Field(default=None, max_length=50)
    color: Optional[str] = Field(default=None, max_length=30)


class CategoryOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    name: str
    type: TransactionType
    icon: Optional[str]
    color: str


class TransactionIn(BaseModel):
    wallet_id: int
    category_id: int
    type: TransactionType
    amount_cents: int = Field(..., ge=0)
    description: str = Field(default="", max_length=200)
    date: date


class TransactionOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    wallet_id: int
    category_id: int
    type: TransactionType
    amount_cents: int
    description: str
    date: date
    created_at: datetime


class BudgetIn(BaseModel):
    category_id: int
    limit_cents: int = Field(..., ge=0)


class BudgetOut(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    category_id: int
    limit_cents: int


class SummaryOut(BaseModel):
    total_income: int
    total_expense: int
    balance: int
    by_category: dict[int, int]


class MonthlySummaryOut(BaseModel):
    month: str
    income: int
    expense: int
    balance: int


class SummaryResponse(BaseModel):
    current: SummaryOut
    monthly: list[MonthlySummaryOut]


class TransactionsResponse(BaseModel):
    transactions: list[TransactionOut]
    summary: SummaryOut


class InsightOut(BaseModel):
    type: str
    message: str
    metric: Optional[float] = None
    severity: Optional[str] = None
    icon: str
    style: str


class InsightsResponse(BaseModel):
    insights: list[InsightOut]
