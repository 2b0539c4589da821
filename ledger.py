from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from models import Category, Transaction, TransactionType


@dataclass(frozen=True)
class TransactionRecord:
    id: int
    wallet_id: int
    category_id: int
    type: TransactionType
    amount_cents: int
    date: str  # ISO calendar day, YYYY-MM-DD
    description: str = ""
    created_at: Optional[datetime] = None


@dataclass(frozen=True)
class CategoryRecord:
    id: int
    name: str
    type: TransactionType


@dataclass(frozen=True)
class Summary:
    total_income: int = 0
    total_expense: int = 0
    balance: int = 0
    by_category: dict[int, int] = field(default_factory=dict)


@dataclass(frozen=True)
class MonthlySummary:
    month: str
    income: int
    expense: int
    balance: int


def transaction_record(txn: Transaction) -> TransactionRecord:
    return TransactionRecord(
        id=txn.id,
        wallet_id=txn.wallet_id,
        category_id=txn.category_id,
        type=txn.type,
        amount_cents=txn.amount_cents,
        date=txn.date.isoformat(),
        description=txn.description or "",
        created_at=txn.created_at,
    )


def category_record(category: Category) -> CategoryRecord:
    return CategoryRecord(id=category.id, name=category.name, type=category.type)
