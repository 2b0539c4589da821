from __future__ import annotations

from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Iterable, Mapping, Optional, Sequence

from ledger import CategoryRecord, TransactionRecord
from models import TransactionType
from periods import month_key, previous_month_key

NOT_ENOUGH_DATA_MESSAGE = "Add more transactions to get personalized insights"


class InsightType(str, Enum):
    pattern = "pattern"
    alert = "alert"
    suggestion = "suggestion"


class Severity(str, Enum):
    low = "low"
    medium = "medium"
    high = "high"


class InsightIcon(str, Enum):
    alert_circle = "AlertCircle"
    trending_down = "TrendingDown"
    lightbulb = "Lightbulb"
    info = "Info"


class InsightStyle(str, Enum):
    destructive = "bg-destructive/10 border-destructive"
    warning = "bg-warning/10 border-warning"
    info = "bg-blue-50 border-blue-200"
    muted = "bg-muted"


@dataclass(frozen=True)
class Insight:
    type: InsightType
    message: str
    metric: Optional[float] = None
    severity: Optional[Severity] = None


@dataclass(frozen=True)
class InsightThresholds:
    # Percent thresholds; tunable policy values.
    spending_increase_pct: float = 30
    spending_decrease_pct: float = -20
    budget_high_pct: float = 90
    budget_medium_pct: float = 75
    top_category_share_pct: float = 40
    savings_low_pct: float = 20
    savings_high_pct: float = 30


DEFAULT_THRESHOLDS = InsightThresholds()

_SEVERITY_RANK: dict[Optional[Severity], int] = {
    Severity.high: 0,
    Severity.medium: 1,
    Severity.low: 2,
    None: 3,
}

_ICONS: dict[Optional[InsightType], InsightIcon] = {
    InsightType.alert: InsightIcon.alert_circle,
    InsightType.pattern: InsightIcon.trending_down,
    InsightType.suggestion: InsightIcon.lightbulb,
    None: InsightIcon.info,
}

_STYLES: dict[Optional[Severity], InsightStyle] = {
    Severity.high: InsightStyle.destructive,
    Severity.medium: InsightStyle.warning,
    Severity.low: InsightStyle.info,
    None: InsightStyle.muted,
}


def severity_rank(severity: Optional[Severity]) -> int:
    return _SEVERITY_RANK[severity]


def sort_insights(insights: Iterable[Insight]) -> list[Insight]:
    return sorted(insights, key=lambda insight: severity_rank(insight.severity))


def insight_icon(insight_type: Optional[InsightType]) -> InsightIcon:
    return _ICONS[insight_type]


def insight_style(severity: Optional[Severity]) -> InsightStyle:
    return _STYLES[severity]


def _category_names(categories: Iterable[CategoryRecord]) -> dict[int, str]:
    names: dict[int, str] = {}
    for category in categories:
        names.setdefault(category.id, category.name)
    return names


def _expenses_by_category(
    transactions: Iterable[TransactionRecord], month: Optional[str] = None
) -> dict[int, int]:
    totals: dict[int, int] = {}
    for txn in transactions:
        if txn.type != TransactionType.expense:
            continue
        if month is not None and month_key(txn.date) != month:
            continue
        totals[txn.category_id] = totals.get(txn.category_id, 0) + txn.amount_cents
    return totals


def generate_insights(
    transactions: Sequence[TransactionRecord],
    categories: Iterable[CategoryRecord],
    budget_limits: Optional[Mapping[int, int]] = None,
    *,
    today: Optional[date] = None,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> list[Insight]:
    """Rule-based insights: month-over-month changes, budget usage, savings.

    ``today`` anchors "this month"; ``budget_limits`` maps category id to a
    monthly limit in cents. Results are returned in analysis order; use
    :func:`sort_insights` for display order.
    """
    if len(transactions) < 2:
        return [Insight(type=InsightType.suggestion, message=NOT_ENOUGH_DATA_MESSAGE)]

    today = today or date.today()
    names = _category_names(categories)
    insights: list[Insight] = []
    insights.extend(
        analyze_spending_patterns(transactions, names, today=today, thresholds=thresholds)
    )
    insights.extend(
        check_budget_alerts(
            transactions, names, budget_limits, today=today, thresholds=thresholds
        )
    )
    insights.extend(generate_suggestions(transactions, names, thresholds=thresholds))
    return insights


def analyze_spending_patterns(
    transactions: Iterable[TransactionRecord],
    names: Mapping[int, str],
    *,
    today: date,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> list[Insight]:
    transactions = list(transactions)
    current = _expenses_by_category(transactions, month_key(today))
    previous = _expenses_by_category(transactions, previous_month_key(today))

    insights: list[Insight] = []
    for category_id in dict.fromkeys([*current, *previous]):
        cur = current.get(category_id, 0)
        prev = previous.get(category_id, 0)
        if prev <= 0 or cur <= 0:
            continue
        change = (cur - prev) / prev * 100
        name = names.get(category_id, "this category")
        if change > thresholds.spending_increase_pct:
            insights.append(
                Insight(
                    type=InsightType.alert,
                    severity=Severity.high,
                    message=f"You spent {change:.0f}% more on {name} this month",
                    metric=change,
                )
            )
        elif change < thresholds.spending_decrease_pct:
            insights.append(
                Insight(
                    type=InsightType.suggestion,
                    severity=Severity.low,
                    message=(
                        f"You spent {abs(change):.0f}% less on {name} "
                        "compared to last month"
                    ),
                    metric=change,
                )
            )
    return insights


def check_budget_alerts(
    transactions: Iterable[TransactionRecord],
    names: Mapping[int, str],
    budget_limits: Optional[Mapping[int, int]],
    *,
    today: date,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> list[Insight]:
    if not budget_limits:
        return []

    spent_by_category = _expenses_by_category(transactions, month_key(today))
    alerts: list[Insight] = []
    for category_id, limit in budget_limits.items():
        if limit <= 0:
            continue
        percentage = spent_by_category.get(category_id, 0) / limit * 100
        name = names.get(category_id, "category")
        if percentage >= thresholds.budget_high_pct:
            alerts.append(
                Insight(
                    type=InsightType.alert,
                    severity=Severity.high,
                    message=f"You've reached {percentage:.0f}% of your {name} budget",
                    metric=percentage,
                )
            )
        elif percentage >= thresholds.budget_medium_pct:
            alerts.append(
                Insight(
                    type=InsightType.alert,
                    severity=Severity.medium,
                    message=f"You've used {percentage:.0f}% of your {name} budget",
                    metric=percentage,
                )
            )
    return alerts


def generate_suggestions(
    transactions: Iterable[TransactionRecord],
    names: Mapping[int, str],
    *,
    thresholds: InsightThresholds = DEFAULT_THRESHOLDS,
) -> list[Insight]:
    transactions = list(transactions)
    total_income = sum(
        t.amount_cents for t in transactions if t.type == TransactionType.income
    )
    total_expense = sum(
        t.amount_cents for t in transactions if t.type == TransactionType.expense
    )
    spending = _expenses_by_category(transactions)

    suggestions: list[Insight] = []
    if spending and total_expense > 0:
        # max() keeps the first category seen on ties
        top_id = max(spending, key=lambda cid: spending[cid])
        share = spending[top_id] / total_expense * 100
        if share > thresholds.top_category_share_pct:
            name = names.get(top_id, "Your top category")
            suggestions.append(
                Insight(
                    type=InsightType.suggestion,
                    message=(
                        f"{name} accounts for {share:.0f}% of your spending. "
                        "Consider setting a budget limit."
                    ),
                    metric=share,
                )
            )

    if total_income > 0:
        savings_rate = (total_income - total_expense) / total_income * 100
        if savings_rate < thresholds.savings_low_pct:
            suggestions.append(
                Insight(
                    type=InsightType.suggestion,
                    message=(
                        f"Your savings rate is {abs(savings_rate):.0f}%. "
                        f"Try to save at least {thresholds.savings_low_pct:.0f}% "
                        "of your income."
                    ),
                    metric=savings_rate,
                )
            )
        elif savings_rate > thresholds.savings_high_pct:
            suggestions.append(
                Insight(
                    type=InsightType.suggestion,
                    message=f"Great! Your savings rate is {savings_rate:.0f}%. Keep it up!",
                    metric=savings_rate,
                )
            )
    return suggestions
