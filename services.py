from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import date, datetime, timedelta
from typing import Optional
from zoneinfo import ZoneInfo

from sqlalchemy import delete, func, select
from sqlalchemy.orm import Session

from aggregation import monthly_series, summarize
from config import get_settings
from csv_utils import EXPORT_MEDIA_TYPES, export_csv, export_filename, export_json
from formatting import default_category_color
from insights import Insight, generate_insights, sort_insights
from ledger import (
    CategoryRecord,
    MonthlySummary,
    Summary,
    TransactionRecord,
    category_record,
    transaction_record,
)
from models import Budget, Category, Transaction, TransactionType, Wallet, WalletKind
from schemas import BudgetIn, CategoryIn, TransactionIn, WalletIn

logger = logging.getLogger(__name__)


class RecordNotFound(ValueError):
    pass


def today_in_timezone() -> date:
    return datetime.now(ZoneInfo(get_settings().timezone)).date()


@dataclass
class TransactionFilters:
    type: Optional[TransactionType] = None
    category_id: Optional[int] = None
    wallet_id: Optional[int] = None
    start: Optional[date] = None
    end: Optional[date] = None


class WalletService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Wallet]:
        return self.session.scalars(select(Wallet).order_by(Wallet.id)).all()

    def get(self, wallet_id: int) -> Wallet:
        wallet = self.session.get(Wallet, wallet_id)
        if not wallet:
            raise RecordNotFound("Wallet not found")
        return wallet

    def create(self, data: WalletIn) -> Wallet:
        wallet = Wallet(
            name=data.name.strip(),
            kind=data.kind,
            currency=data.currency.upper(),
            balance_cents=data.balance_cents,
        )
        self.session.add(wallet)
        self.session.commit()
        self.session.refresh(wallet)
        logger.info(f"wallet_created: id={wallet.id} kind={wallet.kind.value}")
        return wallet

    def update(self, wallet_id: int, data: WalletIn) -> Wallet:
        wallet = self.get(wallet_id)
        wallet.name = data.name.strip()
        wallet.kind = data.kind
        wallet.currency = data.currency.upper()
        wallet.balance_cents = data.balance_cents
        self.session.commit()
        self.session.refresh(wallet)
        return wallet

    def delete(self, wallet_id: int) -> None:
        wallet = self.get(wallet_id)
        in_use = self.session.scalar(
            select(func.count(Transaction.id)).where(Transaction.wallet_id == wallet_id)
        )
        if in_use:
            raise ValueError("Wallet still has transactions")
        self.session.delete(wallet)
        self.session.commit()
        logger.info(f"wallet_deleted: id={wallet_id}")


class CategoryService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self, category_type: Optional[TransactionType] = None) -> list[Category]:
        stmt = select(Category).order_by(Category.type, Category.name)
        if category_type:
            stmt = stmt.where(Category.type == category_type)
        return self.session.scalars(stmt).all()

    def records(self) -> list[CategoryRecord]:
        return [category_record(c) for c in self.list_all()]

    def get(self, category_id: int) -> Category:
        category = self.session.get(Category, category_id)
        if not category:
            raise RecordNotFound("Category not found")
        return category

    def _ensure_unique(
        self, data: CategoryIn, exclude_id: Optional[int] = None
    ) -> None:
        stmt = select(Category).where(
            Category.type == data.type,
            func.lower(Category.name) == data.name.strip().lower(),
        )
        if exclude_id is not None:
            stmt = stmt.where(Category.id != exclude_id)
        if self.session.scalar(stmt):
            raise ValueError("Category with this name already exists")

    def create(self, data: CategoryIn) -> Category:
        self._ensure_unique(data)
        color = data.color
        if not color:
            used = self.session.scalars(
                select(Category.color).where(Category.type == data.type)
            ).all()
            color = default_category_color(data.type, used)
        category = Category(
            name=data.name.strip(),
            type=data.type,
            icon=data.icon,
            color=color,
        )
        self.session.add(category)
        self.session.commit()
        self.session.refresh(category)
        logger.info(f"category_created: id={category.id} type={category.type.value}")
        return category

    def update(self, category_id: int, data: CategoryIn) -> Category:
        category = self.get(category_id)
        self._ensure_unique(data, exclude_id=category_id)
        if data.type != TransactionType.expense and category.type == TransactionType.expense:
            # budgets exist only on expense categories
            if category.budget is not None:
                self.session.delete(category.budget)
                logger.info(f"budget_dropped: category_id={category_id}")
        category.name = data.name.strip()
        category.type = data.type
        category.icon = data.icon
        if data.color:
            category.color = data.color
        self.session.commit()
        self.session.refresh(category)
        return category

    def delete(self, category_id: int) -> None:
        category = self.get(category_id)
        in_use = self.session.scalar(
            select(func.count(Transaction.id)).where(
                Transaction.category_id == category_id
            )
        )
        if in_use:
            raise ValueError("Category still has transactions")
        self.session.execute(delete(Budget).where(Budget.category_id == category_id))
        self.session.delete(category)
        self.session.commit()
        logger.info(f"category_deleted: id={category_id}")


class TransactionService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def _check_references(self, data: TransactionIn) -> None:
        if not self.session.get(Wallet, data.wallet_id):
            raise RecordNotFound("Wallet not found")
        if not self.session.get(Category, data.category_id):
            raise RecordNotFound("Category not found")

    def list(self, filters: Optional[TransactionFilters] = None) -> list[Transaction]:
        filters = filters or TransactionFilters()
        stmt = select(Transaction).order_by(Transaction.date.desc(), Transaction.id.desc())
        if filters.type:
            stmt = stmt.where(Transaction.type == filters.type)
        if filters.category_id:
            stmt = stmt.where(Transaction.category_id == filters.category_id)
        if filters.wallet_id:
            stmt = stmt.where(Transaction.wallet_id == filters.wallet_id)
        if filters.start:
            stmt = stmt.where(Transaction.date >= filters.start)
        if filters.end:
            stmt = stmt.where(Transaction.date <= filters.end)
        return self.session.scalars(stmt).all()

    def records(
        self, filters: Optional[TransactionFilters] = None
    ) -> list[TransactionRecord]:
        return [transaction_record(txn) for txn in self.list(filters)]

    def get(self, transaction_id: int) -> Transaction:
        txn = self.session.get(Transaction, transaction_id)
        if not txn:
            raise RecordNotFound("Transaction not found")
        return txn

    def create(self, data: TransactionIn) -> Transaction:
        self._check_references(data)
        txn = Transaction(
            wallet_id=data.wallet_id,
            category_id=data.category_id,
            type=data.type,
            amount_cents=data.amount_cents,
            description=data.description.strip(),
            date=data.date,
        )
        self.session.add(txn)
        self.session.commit()
        self.session.refresh(txn)
        logger.info(
            f"transaction_created: id={txn.id} type={txn.type.value} date={txn.date}"
        )
        return txn

    def update(self, transaction_id: int, data: TransactionIn) -> Transaction:
        txn = self.get(transaction_id)
        self._check_references(data)
        txn.wallet_id = data.wallet_id
        txn.category_id = data.category_id
        txn.type = data.type
        txn.amount_cents = data.amount_cents
        txn.description = data.description.strip()
        txn.date = data.date
        self.session.commit()
        self.session.refresh(txn)
        return txn

    def delete(self, transaction_id: int) -> None:
        txn = self.get(transaction_id)
        self.session.delete(txn)
        self.session.commit()
        logger.info(f"transaction_deleted: id={transaction_id}")


class BudgetService:
    def __init__(self, session: Session) -> None:
        self.session = session

    def list_all(self) -> list[Budget]:
        return self.session.scalars(select(Budget).order_by(Budget.category_id)).all()

    def limits(self) -> dict[int, int]:
        return {b.category_id: b.limit_cents for b in self.list_all()}

    def upsert(self, data: BudgetIn) -> Budget:
        category = self.session.get(Category, data.category_id)
        if not category:
            raise RecordNotFound("Category not found")
        if category.type != TransactionType.expense:
            raise ValueError("Budgets can only be set for expense categories")

        existing = self.session.scalar(
            select(Budget).where(Budget.category_id == data.category_id)
        )
        if existing:
            existing.limit_cents = data.limit_cents
            self.session.commit()
            self.session.refresh(existing)
            return existing

        budget = Budget(category_id=data.category_id, limit_cents=data.limit_cents)
        self.session.add(budget)
        self.session.commit()
        self.session.refresh(budget)
        return budget

    def delete(self, category_id: int) -> None:
        budget = self.session.scalar(
            select(Budget).where(Budget.category_id == category_id)
        )
        if not budget:
            raise RecordNotFound("Budget not found")
        self.session.delete(budget)
        self.session.commit()


class SummaryService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.transactions = TransactionService(session)

    def summary(
        self, filters: Optional[TransactionFilters] = None
    ) -> tuple[Summary, list[MonthlySummary]]:
        records = self.transactions.records(filters)
        return summarize(records), monthly_series(records)


class InsightsService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.transactions = TransactionService(session)
        self.categories = CategoryService(session)
        self.budgets = BudgetService(session)

    def insights(self, *, today: Optional[date] = None) -> list[Insight]:
        today = today or today_in_timezone()
        limits = self.budgets.limits()
        insights = generate_insights(
            self.transactions.records(),
            self.categories.records(),
            limits or None,
            today=today,
        )
        return sort_insights(insights)


class ExportService:
    def __init__(self, session: Session) -> None:
        self.session = session
        self.transactions = TransactionService(session)

    def export(
        self,
        fmt: str,
        filters: Optional[TransactionFilters] = None,
        *,
        today: Optional[date] = None,
    ) -> tuple[str, str, str]:
        """Return ``(content, filename, media_type)`` for the filtered transactions."""
        if fmt not in EXPORT_MEDIA_TYPES:
            raise ValueError(f"Unsupported export format: {fmt}")
        records = self.transactions.records(filters)
        if not records:
            raise RecordNotFound("No transactions found for the selected date range")

        if fmt == "csv":
            category_names = {
                c.id: c.name for c in CategoryService(self.session).list_all()
            }
            wallet_names = {w.id: w.name for w in WalletService(self.session).list_all()}
            content = export_csv(records, category_names, wallet_names)
        else:
            content = export_json(records)
        filename = export_filename(fmt, today or today_in_timezone())
        logger.info(f"export: format={fmt} rows={len(records)}")
        return content, filename, EXPORT_MEDIA_TYPES[fmt]


DEMO_CATEGORIES = (
    ("Salary", TransactionType.income, "banknote", "#10b981"),
    ("Bonus", TransactionType.income, "gift", "#10b981"),
    ("Food & Dining", TransactionType.expense, "utensils", "#f97316"),
    ("Transport", TransactionType.expense, "car", "#3b82f6"),
    ("Shopping", TransactionType.expense, "shopping-bag", "#ec4899"),
    ("Utilities", TransactionType.expense, "zap", "#eab308"),
    ("Entertainment", TransactionType.expense, "popcorn", "#a855f7"),
)

DEMO_WALLETS = (
    ("Main Account", WalletKind.bank, 500_000),
    ("Cash", WalletKind.cash, 50_000),
)

# (category name, minimum cents, spread cents, description)
DEMO_EXPENSES = (
    ("Food & Dining", 4_500, 5_500, "Restaurant"),
    ("Transport", 1_000, 3_000, "Uber/Taxi"),
    ("Shopping", 5_000, 15_000, "Clothes shopping"),
    ("Utilities", 8_000, 6_000, "Utilities"),
    ("Entertainment", 2_000, 8_000, "Movie/Games"),
)


class DemoDataService:
    """Replaces every wallet, category, budget and transaction with sample data.

    The generator is seeded, so the same ``today`` and ``seed`` always produce
    the same ledger.
    """

    def __init__(self, session: Session) -> None:
        self.session = session

    def reset(
        self, *, today: Optional[date] = None, seed: int = 42, count: int = 30
    ) -> int:
        today = today or today_in_timezone()
        rng = random.Random(seed)

        self.session.execute(delete(Transaction))
        self.session.execute(delete(Budget))
        self.session.execute(delete(Category))
        self.session.execute(delete(Wallet))
        self.session.flush()

        categories: dict[str, Category] = {}
        for name, category_type, icon, color in DEMO_CATEGORIES:
            category = Category(name=name, type=category_type, icon=icon, color=color)
            self.session.add(category)
            categories[name] = category
        wallets = []
        for name, kind, balance_cents in DEMO_WALLETS:
            wallet = Wallet(
                name=name,
                kind=kind,
                currency=get_settings().default_currency,
                balance_cents=balance_cents,
            )
            self.session.add(wallet)
            wallets.append(wallet)
        self.session.flush()

        main_wallet = wallets[0]
        for _ in range(count):
            txn_date = today - timedelta(days=rng.randrange(90))
            if rng.random() > 0.7:
                txn = Transaction(
                    wallet_id=main_wallet.id,
                    category_id=categories["Salary"].id,
                    type=TransactionType.income,
                    amount_cents=500_000 + rng.randrange(200_000),
                    description="Monthly salary",
                    date=txn_date,
                )
            else:
                name, minimum, spread, description = rng.choice(DEMO_EXPENSES)
                txn = Transaction(
                    wallet_id=main_wallet.id,
                    category_id=categories[name].id,
                    type=TransactionType.expense,
                    amount_cents=minimum + rng.randrange(spread),
                    description=description,
                    date=txn_date,
                )
            self.session.add(txn)
        self.session.commit()
        logger.info(f"demo_reset: transactions={count} today={today}")
        return count
