import calendar
from datetime import date, timedelta
from typing import Tuple

from finboard.models import BudgetPeriod


def month_bounds(day: date) -> Tuple[date, date]:
    last = calendar.monthrange(day.year, day.month)[1]
    return day.replace(day=1), day.replace(day=last)


def year_bounds(day: date) -> Tuple[date, date]:
    return date(day.year, 1, 1), date(day.year, 12, 31)


def add_months(day: date, months: int) -> date:
    """Shift by whole months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    last = calendar.monthrange(year, month + 1)[1]
    return date(year, month + 1, min(day.day, last))


def week_start(day: date) -> date:
    # Weeks start on Sunday
    return day - timedelta(days=(day.weekday() + 1) % 7)


def period_range(period: BudgetPeriod, on: date) -> Tuple[date, date]:
    if period == BudgetPeriod.DAILY:
        return on, on
    if period == BudgetPeriod.WEEKLY:
        start = week_start(on)
        return start, start + timedelta(days=6)
    if period == BudgetPeriod.YEARLY:
        return year_bounds(on)
    return month_bounds(on)


def day_label(day: date) -> str:
    return f"{day:%b} {day.day}"


def month_label(day: date) -> str:
    return f"{day:%b %Y}"
