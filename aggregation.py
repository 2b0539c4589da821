from typing import Iterable

from ledger import MonthlySummary, Summary, TransactionRecord
from models import TransactionType
from periods import month_key, month_label, month_range, parse_month_key


def summarize(transactions: Iterable[TransactionRecord]) -> Summary:
    """Totals by type plus a signed net per category.

    Income adds to its category's net and expense subtracts from it, so a
    category whose flows cancel out still shows up with 0.
    """
    total_income = 0
    total_expense = 0
    by_category: dict[int, int] = {}
    for txn in transactions:
        net = by_category.setdefault(txn.category_id, 0)
        if txn.type == TransactionType.income:
            total_income += txn.amount_cents
            by_category[txn.category_id] = net + txn.amount_cents
        else:
            total_expense += txn.amount_cents
            by_category[txn.category_id] = net - txn.amount_cents
    return Summary(
        total_income=total_income,
        total_expense=total_expense,
        balance=total_income - total_expense,
        by_category=by_category,
    )


def monthly_series(transactions: Iterable[TransactionRecord]) -> list[MonthlySummary]:
    """Income/expense per calendar month, earliest first, with empty months filled."""
    income_totals: dict[str, int] = {}
    expense_totals: dict[str, int] = {}
    for txn in transactions:
        key = month_key(txn.date)
        income_totals.setdefault(key, 0)
        expense_totals.setdefault(key, 0)
        if txn.type == TransactionType.income:
            income_totals[key] += txn.amount_cents
        else:
            expense_totals[key] += txn.amount_cents

    if not income_totals:
        return []

    earliest = min(income_totals, key=parse_month_key)
    latest = max(income_totals, key=parse_month_key)
    out: list[MonthlySummary] = []
    for key in month_range(earliest, latest):
        income = income_totals.get(key, 0)
        expense = expense_totals.get(key, 0)
        out.append(
            MonthlySummary(
                month=month_label(key),
                income=income,
                expense=expense,
                balance=income - expense,
            )
        )
    return out
