import logging
from collections import OrderedDict
from datetime import date, timedelta
from decimal import Decimal
from typing import Dict, Iterable, List, Optional, Tuple

from finboard.core.errors import ValidationFailed
from finboard.repositories.base import FinanceRepository
from finboard.schemas.category import DEFAULT_CATEGORY_COLOR
from finboard.schemas.dashboard import (
    CategoryBreakdown,
    CategorySlice,
    FinancialSummary,
    MonthlyData,
    TrendPoint,
)
from finboard.schemas.transaction import SortDirection, SortField, TransactionQuery, TransactionResponse
from finboard.services.periods import add_months, day_label, month_bounds, month_label, week_start, year_bounds

logger = logging.getLogger(__name__)

ZERO = Decimal("0")

SUMMARY_PERIODS = ("month", "year", "custom")
TREND_RANGES = ("7d", "30d", "90d", "12m")
BREAKDOWN_PERIODS = ("thisMonth", "lastMonth", "thisYear", "allTime")


def split_totals(transactions: Iterable[TransactionResponse]) -> Tuple[Decimal, Decimal]:
    """Return (income, expenses) with expenses as a positive number."""
    income = ZERO
    expenses = ZERO
    for txn in transactions:
        if txn.amount > 0:
            income += txn.amount
        else:
            expenses += abs(txn.amount)
    return income, expenses


def summary_range(
    period: str,
    today: date,
    start: Optional[date] = None,
    end: Optional[date] = None,
) -> Tuple[date, date]:
    if period == "month":
        return month_bounds(today)
    if period == "year":
        return year_bounds(today)
    if period == "custom":
        if start is None:
            raise ValidationFailed("A custom period needs a start date")
        return start, end or start + timedelta(days=1)
    raise ValidationFailed("Unknown summary period", details={"allowed": list(SUMMARY_PERIODS)})


def financial_summary(
    repo: FinanceRepository,
    period: str = "month",
    start: Optional[date] = None,
    end: Optional[date] = None,
    today: Optional[date] = None,
) -> FinancialSummary:
    range_start, range_end = summary_range(period, today or date.today(), start, end)
    income, expenses = split_totals(repo.list_transactions_between(range_start, range_end))
    return FinancialSummary(income=income, expenses=expenses, balance=income - expenses)


def empty_summary() -> FinancialSummary:
    return FinancialSummary(income=ZERO, expenses=ZERO, balance=ZERO)


def monthly_chart(repo: FinanceRepository, months: int = 6, today: Optional[date] = None) -> List[MonthlyData]:
    today = today or date.today()
    first_month = month_bounds(add_months(today, -(months - 1)))[0]
    buckets: Dict[Tuple[int, int], List[Decimal]] = OrderedDict()
    for offset in range(months):
        month = add_months(first_month, offset)
        buckets[(month.year, month.month)] = [ZERO, ZERO]

    for txn in repo.list_transactions_between(first_month, month_bounds(today)[1]):
        bucket = buckets.get((txn.transaction_date.year, txn.transaction_date.month))
        if bucket is None:
            continue
        if txn.amount > 0:
            bucket[0] += txn.amount
        else:
            bucket[1] += abs(txn.amount)

    return [
        MonthlyData(name=month_label(date(year, month, 1)), income=income, expenses=expenses)
        for (year, month), (income, expenses) in buckets.items()
    ]


def _trend_buckets(range_: str, today: date) -> List[Tuple[date, date, str]]:
    """Consecutive (start, end, label) buckets covering the range, oldest first."""
    if range_ in ("7d", "30d"):
        days = 7 if range_ == "7d" else 30
        start = today - timedelta(days=days - 1)
        return [
            (start + timedelta(days=i), start + timedelta(days=i), day_label(start + timedelta(days=i)))
            for i in range(days)
        ]
    if range_ == "90d":
        start = today - timedelta(days=89)
        buckets = []
        week = week_start(start)
        while week <= today:
            buckets.append((week, week + timedelta(days=6), f"Week of {day_label(week)}"))
            week += timedelta(days=7)
        return buckets
    if range_ == "12m":
        first = month_bounds(add_months(today, -11))[0]
        buckets = []
        for offset in range(12):
            month_start, month_end = month_bounds(add_months(first, offset))
            buckets.append((month_start, month_end, month_label(month_start)))
        return buckets
    raise ValidationFailed("Unknown trend range", details={"allowed": list(TREND_RANGES)})


def spending_trends(repo: FinanceRepository, range_: str = "30d", today: Optional[date] = None) -> List[TrendPoint]:
    today = today or date.today()
    buckets = _trend_buckets(range_, today)
    if range_ == "90d":
        fetch_start = today - timedelta(days=89)
    else:
        fetch_start = buckets[0][0]
    transactions = repo.list_transactions_between(fetch_start, today)

    points = []
    for start, end, label in buckets:
        income, expenses = split_totals(t for t in transactions if start <= t.transaction_date <= end)
        points.append(TrendPoint(name=label, income=income, expenses=expenses))
    return points


def breakdown_range(period: str, today: date) -> Tuple[Optional[date], Optional[date]]:
    if period == "thisMonth":
        return month_bounds(today)
    if period == "lastMonth":
        return month_bounds(add_months(today, -1))
    if period == "thisYear":
        return year_bounds(today)
    if period == "allTime":
        return None, None
    raise ValidationFailed("Unknown breakdown period", details={"allowed": list(BREAKDOWN_PERIODS)})


def category_breakdown(
    repo: FinanceRepository,
    period: str = "thisMonth",
    today: Optional[date] = None,
) -> CategoryBreakdown:
    start, end = breakdown_range(period, today or date.today())
    groups: Dict[Optional[str], CategorySlice] = {}
    total = ZERO
    for txn in repo.list_transactions_between(start, end):
        if txn.amount >= 0:
            continue
        value = abs(txn.amount)
        total += value
        key = txn.category.id if txn.category else None
        if key not in groups:
            groups[key] = CategorySlice(
                id=key,
                name=txn.category.name if txn.category else "Uncategorized",
                value=ZERO,
                color=(txn.category.color if txn.category else None) or DEFAULT_CATEGORY_COLOR,
                percentage=0.0,
            )
        groups[key].value += value

    slices = sorted(groups.values(), key=lambda item: item.value, reverse=True)
    for item in slices:
        item.percentage = round(float(item.value / total * 100), 2) if total else 0.0
    return CategoryBreakdown(period=period, total=total, categories=slices)


def recent_transactions(repo: FinanceRepository, limit: int = 5) -> List[TransactionResponse]:
    page = repo.list_transactions(TransactionQuery(
        sort_field=SortField.TRANSACTION_DATE,
        sort_direction=SortDirection.DESC,
        page=1,
        page_size=limit,
    ))
    return page.items
