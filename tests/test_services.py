import json
from datetime import date

import pytest
from sqlalchemy.orm import Session

from database import Base, build_engine
from insights import InsightType, Severity
from ledger import MonthlySummary
from models import TransactionType, WalletKind
from schemas import BudgetIn, CategoryIn, TransactionIn, WalletIn
from services import (
    BudgetService,
    CategoryService,
    DemoDataService,
    ExportService,
    InsightsService,
    RecordNotFound,
    SummaryService,
    TransactionFilters,
    TransactionService,
    WalletService,
)


def _session() -> Session:
    engine = build_engine("sqlite:///:memory:")
    Base.metadata.create_all(engine)
    return Session(engine)


def _setup(session: Session):
    wallet = WalletService(session).create(
        WalletIn(name="Main Account", kind=WalletKind.bank)
    )
    categories = CategoryService(session)
    food = categories.create(CategoryIn(name="Food", type=TransactionType.expense))
    salary = categories.create(CategoryIn(name="Salary", type=TransactionType.income))
    return wallet, food, salary


def _add(session, wallet, category, txn_type, amount_cents, day, description="x"):
    return TransactionService(session).create(
        TransactionIn(
            wallet_id=wallet.id,
            category_id=category.id,
            type=txn_type,
            amount_cents=amount_cents,
            description=description,
            date=day,
        )
    )


def test_category_names_are_unique_per_type_case_insensitive() -> None:
    with _session() as session:
        categories = CategoryService(session)
        categories.create(CategoryIn(name="Food", type=TransactionType.expense))

        with pytest.raises(ValueError):
            categories.create(CategoryIn(name=" food ", type=TransactionType.expense))

        income_food = categories.create(
            CategoryIn(name="Food", type=TransactionType.income)
        )
        assert income_food.id


def test_category_gets_default_color() -> None:
    with _session() as session:
        categories = CategoryService(session)
        first = categories.create(CategoryIn(name="Food", type=TransactionType.expense))
        second = categories.create(CategoryIn(name="Rent", type=TransactionType.expense))
        salary = categories.create(CategoryIn(name="Salary", type=TransactionType.income))

        assert first.color == "#FF6B6B"
        assert second.color == "#4ECDC4"
        assert salary.color == "#00C853"


def test_transaction_crud_and_missing_references() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        txns = TransactionService(session)

        txn = _add(session, wallet, food, TransactionType.expense, 1_299, date(2025, 1, 5))
        assert txns.get(txn.id).amount_cents == 1_299

        updated = txns.update(
            txn.id,
            TransactionIn(
                wallet_id=wallet.id,
                category_id=food.id,
                type=TransactionType.expense,
                amount_cents=1_500,
                description="Lunch",
                date=date(2025, 1, 6),
            ),
        )
        assert updated.amount_cents == 1_500
        assert updated.description == "Lunch"

        with pytest.raises(RecordNotFound):
            txns.create(
                TransactionIn(
                    wallet_id=999,
                    category_id=food.id,
                    type=TransactionType.expense,
                    amount_cents=1,
                    date=date(2025, 1, 6),
                )
            )

        txns.delete(txn.id)
        with pytest.raises(RecordNotFound):
            txns.get(txn.id)


def test_list_filters_by_date_category_and_type() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        _add(session, wallet, food, TransactionType.expense, 100, date(2025, 1, 5))
        _add(session, wallet, food, TransactionType.expense, 200, date(2025, 2, 5))
        _add(session, wallet, salary, TransactionType.income, 900, date(2025, 2, 1))

        txns = TransactionService(session)
        february = txns.list(
            TransactionFilters(start=date(2025, 2, 1), end=date(2025, 2, 28))
        )
        assert [t.amount_cents for t in february] == [200, 900]

        food_only = txns.list(TransactionFilters(category_id=food.id))
        assert {t.amount_cents for t in food_only} == {100, 200}

        income_only = txns.list(TransactionFilters(type=TransactionType.income))
        assert [t.amount_cents for t in income_only] == [900]


def test_in_use_wallet_and_category_cannot_be_deleted() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        _add(session, wallet, food, TransactionType.expense, 100, date(2025, 1, 5))

        with pytest.raises(ValueError):
            WalletService(session).delete(wallet.id)
        with pytest.raises(ValueError):
            CategoryService(session).delete(food.id)

        CategoryService(session).delete(salary.id)
        assert [c.name for c in CategoryService(session).list_all()] == ["Food"]


def test_budgets_only_for_expense_categories_and_upsert() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        budgets = BudgetService(session)

        with pytest.raises(ValueError):
            budgets.upsert(BudgetIn(category_id=salary.id, limit_cents=1_000))

        budgets.upsert(BudgetIn(category_id=food.id, limit_cents=10_000))
        budgets.upsert(BudgetIn(category_id=food.id, limit_cents=12_000))
        assert budgets.limits() == {food.id: 12_000}

        budgets.delete(food.id)
        assert budgets.limits() == {}
        with pytest.raises(RecordNotFound):
            budgets.delete(food.id)


def test_switching_category_to_income_drops_its_budget() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        budgets = BudgetService(session)
        budgets.upsert(BudgetIn(category_id=food.id, limit_cents=10_000))

        CategoryService(session).update(
            food.id, CategoryIn(name="Food", type=TransactionType.income)
        )

        assert budgets.list_all() == []
        assert budgets.limits() == {}

        CategoryService(session).update(
            food.id, CategoryIn(name="Food", type=TransactionType.expense)
        )
        budgets.upsert(BudgetIn(category_id=food.id, limit_cents=5_000))
        assert budgets.limits() == {food.id: 5_000}


def test_summary_service_aggregates_filtered_records() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        _add(session, wallet, food, TransactionType.expense, 5_000, date(2024, 1, 15))
        _add(session, wallet, salary, TransactionType.income, 10_000, date(2024, 3, 10))

        summary, monthly = SummaryService(session).summary()

        assert summary.total_income == 10_000
        assert summary.total_expense == 5_000
        assert summary.by_category == {food.id: -5_000, salary.id: 10_000}
        assert monthly == [
            MonthlySummary(month="Jan 2024", income=0, expense=5_000, balance=-5_000),
            MonthlySummary(month="Feb 2024", income=0, expense=0, balance=0),
            MonthlySummary(month="Mar 2024", income=10_000, expense=0, balance=10_000),
        ]

        march, _ = SummaryService(session).summary(
            TransactionFilters(start=date(2024, 3, 1))
        )
        assert march.total_expense == 0
        assert march.balance == 10_000


def test_insights_service_uses_budgets_and_sorts_by_severity() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        _add(session, wallet, salary, TransactionType.income, 100_000, date(2025, 3, 1))
        _add(session, wallet, food, TransactionType.expense, 9_500, date(2025, 3, 2))
        BudgetService(session).upsert(BudgetIn(category_id=food.id, limit_cents=10_000))

        insights = InsightsService(session).insights(today=date(2025, 3, 20))

        assert insights[0].type == InsightType.alert
        assert insights[0].severity == Severity.high
        assert "Food budget" in insights[0].message
        assert all(i.severity is None for i in insights[1:])


def test_export_csv_and_json() -> None:
    with _session() as session:
        wallet, food, salary = _setup(session)
        _add(session, wallet, food, TransactionType.expense, 1_250, date(2025, 1, 5), "=SUM(A1)")

        export = ExportService(session)
        content, filename, media_type = export.export("csv", today=date(2025, 2, 1))
        assert filename == "transactions_2025-02-01.csv"
        assert media_type == "text/csv"
        lines = content.splitlines()
        assert lines[0] == "Date,Description,Category,Wallet,Type,Amount"
        assert lines[1] == "2025-01-05,\t=SUM(A1),Food,Main Account,expense,12.50"

        content, filename, _ = export.export("json", today=date(2025, 2, 1))
        assert filename.endswith(".json")
        assert json.loads(content)[0]["amount_cents"] == 1_250


def test_export_rejects_empty_ranges_and_unknown_formats() -> None:
    with _session() as session:
        export = ExportService(session)
        with pytest.raises(RecordNotFound):
            export.export("csv", today=date(2025, 2, 1))
        with pytest.raises(ValueError):
            export.export("xlsx", today=date(2025, 2, 1))


def test_demo_reset_is_deterministic() -> None:
    with _session() as first, _session() as second:
        DemoDataService(first).reset(today=date(2025, 3, 15), seed=7)
        DemoDataService(second).reset(today=date(2025, 3, 15), seed=7)

        first_records = TransactionService(first).records()
        second_records = TransactionService(second).records()
        assert len(first_records) == 30
        assert [(r.type, r.amount_cents, r.date) for r in first_records] == [
            (r.type, r.amount_cents, r.date) for r in second_records
        ]
        assert len(CategoryService(first).list_all()) == 7
        assert len(WalletService(first).list_all()) == 2
        assert all("2024-12-15" <= r.date <= "2025-03-15" for r in first_records)
