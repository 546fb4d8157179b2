import logging
from datetime import date
from decimal import ROUND_HALF_UP, Decimal
from typing import Dict, List, Optional

from finboard.core.settings import settings
from finboard.models import BudgetPeriod, CategoryType
from finboard.repositories.base import FinanceRepository
from finboard.schemas.budget import (
    BudgetAlert,
    BudgetGoalResponse,
    BudgetProgress,
    BudgetSummary,
    DashboardBudgetItem,
)
from finboard.schemas.category import DEFAULT_CATEGORY_COLOR, CategoryResponse
from finboard.schemas.transaction import TransactionResponse
from finboard.services.periods import month_bounds, period_range

logger = logging.getLogger(__name__)

ZERO = Decimal("0")


def spent_in(transactions: List[TransactionResponse], category_id: str) -> Decimal:
    """Sum of expenses (negative amounts) booked against a category."""
    return sum(
        (abs(txn.amount) for txn in transactions if txn.category_id == category_id and txn.amount < 0),
        ZERO,
    )


def active_in_month(goal: BudgetGoalResponse, month_start: date, month_end: date) -> bool:
    if goal.start_date > month_end:
        return False
    return goal.end_date is None or goal.end_date > month_start


def _percentage(spent: Decimal, amount: Decimal) -> float:
    if amount <= 0:
        return 0.0
    return float(spent / amount * 100)


def _whole_percentage(spent: Decimal, amount: Decimal) -> int:
    """Percentage rounded to a whole number, halves rounding up."""
    if amount <= 0:
        return 0
    return int((spent / amount * 100).quantize(Decimal("1"), rounding=ROUND_HALF_UP))


def budget_progress(
    repo: FinanceRepository,
    period: Optional[BudgetPeriod] = None,
    category_id: Optional[str] = None,
    on: Optional[date] = None,
) -> List[BudgetProgress]:
    start, end = period_range(period or BudgetPeriod.MONTHLY, on or date.today())
    goals = repo.list_budget_goals(category_id=category_id, period=period)
    if not goals:
        return []
    categories = {cat.id: cat for cat in repo.list_categories()}
    transactions = repo.list_transactions_between(start, end, category_id)

    progress = []
    for goal in goals:
        spent = spent_in(transactions, goal.category_id)
        category = categories.get(goal.category_id)
        progress.append(BudgetProgress(
            goal_id=goal.id,
            category_id=goal.category_id,
            category_name=category.name if category else "Unknown",
            category_color=(category.color if category else None) or DEFAULT_CATEGORY_COLOR,
            period=goal.period,
            amount=goal.amount,
            spent=spent,
            remaining=goal.amount - spent,
            percentage=round(_percentage(spent, goal.amount), 2),
            start_date=start,
            end_date=end,
        ))
    return progress


def _monthly_goal_usage(repo: FinanceRepository, today: date):
    month_start, month_end = month_bounds(today)
    goals = [
        goal for goal in repo.list_budget_goals(period=BudgetPeriod.MONTHLY)
        if active_in_month(goal, month_start, month_end)
    ]
    if not goals:
        return [], {}
    categories: Dict[str, CategoryResponse] = {cat.id: cat for cat in repo.list_categories()}
    transactions = repo.list_transactions_between(month_start, month_end)
    usage = []
    for goal in goals:
        spent = spent_in(transactions, goal.category_id)
        usage.append((goal, spent, _whole_percentage(spent, goal.amount)))
    return usage, categories


def dashboard_budget_progress(repo: FinanceRepository, today: Optional[date] = None, limit: int = 3) -> List[DashboardBudgetItem]:
    usage, categories = _monthly_goal_usage(repo, today or date.today())
    items = []
    for goal, spent, percentage in usage:
        category = categories.get(goal.category_id)
        items.append(DashboardBudgetItem(
            goal_id=goal.id,
            category_id=goal.category_id,
            category_name=category.name if category else "Unknown",
            category_color=(category.color if category else None) or DEFAULT_CATEGORY_COLOR,
            amount=goal.amount,
            spent=spent,
            percentage=min(percentage, 100),
        ))
    items.sort(key=lambda item: item.percentage, reverse=True)
    return items[:limit]


def budget_alerts(
    repo: FinanceRepository,
    today: Optional[date] = None,
    threshold: Optional[int] = None,
    critical_threshold: Optional[int] = None,
) -> List[BudgetAlert]:
    threshold = settings.BUDGET_ALERT_THRESHOLD if threshold is None else threshold
    critical_threshold = settings.BUDGET_CRITICAL_THRESHOLD if critical_threshold is None else critical_threshold
    usage, categories = _monthly_goal_usage(repo, today or date.today())
    alerts = []
    for goal, spent, percentage in usage:
        if percentage < threshold:
            continue
        category = categories.get(goal.category_id)
        alerts.append(BudgetAlert(
            goal_id=goal.id,
            category_id=goal.category_id,
            category_name=category.name if category else "Unknown",
            amount=goal.amount,
            spent=spent,
            percentage=percentage,
            critical=percentage >= critical_threshold,
        ))
    alerts.sort(key=lambda alert: alert.percentage, reverse=True)
    if alerts:
        logger.info("User %s has %d budget alert(s)", repo.user_id, len(alerts))
    return alerts


def budget_summary(repo: FinanceRepository, today: Optional[date] = None) -> BudgetSummary:
    month_start, month_end = month_bounds(today or date.today())
    expense_ids = {cat.id for cat in repo.list_categories(type=CategoryType.EXPENSE)}
    total_spent = sum(
        (
            abs(txn.amount)
            for txn in repo.list_transactions_between(month_start, month_end)
            if txn.amount < 0 and txn.category_id in expense_ids
        ),
        ZERO,
    )
    total_budget = sum(
        (
            goal.amount
            for goal in repo.list_budget_goals(period=BudgetPeriod.MONTHLY)
            if active_in_month(goal, month_start, month_end)
        ),
        ZERO,
    )
    percentage = round(_percentage(total_spent, total_budget), 2) if total_budget > 0 else 0.0
    return BudgetSummary(
        total_budget=total_budget,
        total_spent=total_spent,
        percentage_spent=percentage,
        remaining=total_budget - total_spent,
    )
