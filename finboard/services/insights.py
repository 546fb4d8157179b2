"""Rule-based spending insights comparing this month with the previous one."""
import logging
import random
from datetime import date
from decimal import Decimal
from typing import Dict, List, Optional, Tuple

from finboard.core.settings import settings
from finboard.repositories.base import FinanceRepository
from finboard.schemas.insights import (
    BasicInsights,
    CategoryTrend,
    EnhancedInsights,
    EnhancedSummary,
    Tip,
    UnusualSpending,
)
from finboard.schemas.transaction import TransactionResponse
from finboard.services.periods import add_months, month_bounds
from finboard.services.summary import split_totals

logger = logging.getLogger(__name__)

ZERO = Decimal("0")
NO_CATEGORY = "None"

GENERAL_TIPS = [
    Tip(
        title="Automate Your Savings",
        description="Set up automatic transfers to your savings account on payday. What you don't see, you won't spend.",
        impact="medium",
    ),
    Tip(
        title="Audit Your Subscriptions",
        description="Review your recurring subscriptions and cancel those you don't use regularly. Small monthly fees add up quickly.",
        impact="medium",
    ),
    Tip(
        title="Build an Emergency Fund",
        description="Aim to save 3-6 months of essential expenses in an easily accessible account for unexpected situations.",
        impact="high",
    ),
]


def format_money(amount: Decimal) -> str:
    return f"{settings.CURRENCY_SYMBOL}{amount:,.2f}"


def percent_change(current: Decimal, previous: Decimal) -> float:
    if previous > 0:
        return float((current - previous) / previous * 100)
    return 0.0


def _month_transactions(repo: FinanceRepository, today: date) -> Tuple[List[TransactionResponse], List[TransactionResponse]]:
    current_start, current_end = month_bounds(today)
    previous_start = month_bounds(add_months(today, -1))[0]
    transactions = repo.list_transactions_between(previous_start, current_end)
    current = [txn for txn in transactions if txn.transaction_date >= current_start]
    previous = [txn for txn in transactions if txn.transaction_date < current_start]
    return current, previous


def _expenses_by_category(transactions: List[TransactionResponse]) -> Dict[str, Tuple[str, Decimal]]:
    totals: Dict[str, Tuple[str, Decimal]] = {}
    for txn in transactions:
        if txn.amount >= 0:
            continue
        key = txn.category.id if txn.category else "uncategorized"
        name = txn.category.name if txn.category else "Uncategorized"
        previous = totals.get(key, (name, ZERO))[1]
        totals[key] = (name, previous + abs(txn.amount))
    return totals


def _top_category(totals: Dict[str, Tuple[str, Decimal]]) -> Tuple[str, Decimal]:
    top_name, top_amount = NO_CATEGORY, ZERO
    for name, amount in totals.values():
        if amount > top_amount:
            top_name, top_amount = name, amount
    return top_name, top_amount


def basic_insights(
    repo: FinanceRepository,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> BasicInsights:
    today = today or date.today()
    rng = rng or random.Random()
    current, previous = _month_transactions(repo, today)

    current_total = split_totals(current)[1]
    previous_total = split_totals(previous)[1]
    top_name, top_amount = _top_category(_expenses_by_category(current))
    monthly_change = percent_change(current_total, previous_total)

    month_name = f"{today:%B}"
    spent = format_money(current_total)
    if not current:
        summary = f"You haven't recorded any transactions for {month_name} yet."
    elif monthly_change > 10:
        summary = (
            f"Your spending in {month_name} ({spent}) has increased by "
            f"{abs(monthly_change):.1f}% compared to last month."
        )
    elif monthly_change < -10:
        summary = (
            f"Great job! Your spending in {month_name} ({spent}) has decreased by "
            f"{abs(monthly_change):.1f}% compared to last month."
        )
    else:
        summary = f"Your spending in {month_name} ({spent}) is similar to last month."

    tips = [
        f"Consider setting a budget for {top_name}, your highest spending category this month.",
        "Try the 50/30/20 rule: 50% for needs, 30% for wants, and 20% for savings.",
        "Review your subscriptions regularly to identify services you no longer use.",
        "Set up automatic transfers to your savings account on payday.",
        "Track your daily expenses to identify areas where you can cut back.",
        "Build an emergency fund that covers 3-6 months of essential expenses.",
        "Pay off high-interest debt first to save money in the long run.",
        "Look for cashback or rewards programs for your regular purchases.",
    ]
    if top_amount > current_total * Decimal("0.4"):
        tip = tips[0]
    elif monthly_change > 20:
        tip = tips[4]
    else:
        tip = rng.choice(tips[2:])

    return BasicInsights(
        summary=summary,
        top_category=top_name,
        top_category_amount=top_amount,
        monthly_change=round(monthly_change, 2),
        tip=tip,
    )


def enhanced_insights(
    repo: FinanceRepository,
    today: Optional[date] = None,
    rng: Optional[random.Random] = None,
) -> EnhancedInsights:
    today = today or date.today()
    rng = rng or random.Random()
    current, previous = _month_transactions(repo, today)

    income, expenses = split_totals(current)
    previous_expenses = split_totals(previous)[1]
    current_totals = _expenses_by_category(current)
    previous_totals = _expenses_by_category(previous)
    top_name, top_amount = _top_category(current_totals)
    monthly_change = percent_change(expenses, previous_expenses)
    savings_rate = float((income - expenses) / income * 100) if income > 0 else 0.0

    trends: List[CategoryTrend] = []
    for key, (name, amount) in current_totals.items():
        previous_amount = previous_totals.get(key, (name, ZERO))[1]
        if previous_amount > 0:
            change = float((amount - previous_amount) / previous_amount * 100)
        else:
            change = 100.0 if amount > 0 else 0.0
        if abs(change) > 10 or amount > expenses * Decimal("0.15"):
            trends.append(CategoryTrend(category=name, amount=amount, previous_amount=previous_amount, change=round(change, 2)))
    trends.sort(key=lambda trend: abs(trend.change), reverse=True)

    unusual = None
    for trend in trends:
        if trend.change > 30 and trend.amount > 50:
            unusual = UnusualSpending(category=trend.category, amount=trend.amount, change=trend.change)
            break

    tips: List[Tip] = []
    if top_name != NO_CATEGORY:
        tips.append(Tip(
            title=f"Optimize Your {top_name} Spending",
            description=(
                f"You spent {format_money(top_amount)} on {top_name} this month, which is your largest "
                "expense category. Consider setting a budget goal specifically for this category."
            ),
            impact="high",
        ))
    if savings_rate < 20:
        tips.append(Tip(
            title="Increase Your Savings Rate",
            description=(
                f"Your current savings rate is {savings_rate:.1f}%. Financial experts recommend saving at least "
                "20% of your income. Try the 50/30/20 rule: 50% for needs, 30% for wants, and 20% for savings."
            ),
            impact="high",
        ))
    else:
        tips.append(Tip(
            title="Great Savings Habit",
            description=(
                f"Your savings rate of {savings_rate:.1f}% is excellent! "
                "Consider investing some of your savings for long-term growth."
            ),
            impact="medium",
        ))
    if unusual:
        tips.append(Tip(
            title=f"Unusual {unusual.category} Spending",
            description=(
                f"Your spending on {unusual.category} increased by {unusual.change:.1f}% compared to last month. "
                "Check if this was a one-time expense or if it's becoming a pattern."
            ),
            impact="medium",
        ))
    tips.extend(rng.sample(GENERAL_TIPS, 2))

    return EnhancedInsights(
        summary=EnhancedSummary(
            total_spent=expenses,
            monthly_change=round(monthly_change, 2),
            top_category=top_name,
            top_category_amount=top_amount,
            savings_rate=round(savings_rate, 2),
            unusual_spending=unusual,
        ),
        trends=trends[:5],
        tips=tips,
    )
