from datetime import date
from decimal import Decimal

from finboard.models import BudgetPeriod, CategoryType
from finboard.schemas.budget import BudgetGoalCreate
from finboard.schemas.category import CategoryCreate
from finboard.schemas.transaction import TransactionCreate


def make_categories(repo):
    return {
        "snacks": repo.create_category(CategoryCreate(name="Snacks", type=CategoryType.EXPENSE, icon="food", color="#EF4444")),
        "housing": repo.create_category(CategoryCreate(name="Housing", type=CategoryType.EXPENSE, icon="home")),
        "wages": repo.create_category(CategoryCreate(name="Wages", type=CategoryType.INCOME, icon="income")),
    }


def add_txn(repo, category, amount, on: date, title="Purchase", notes=None):
    return repo.create_transaction(TransactionCreate(
        title=title,
        amount=Decimal(str(amount)),
        category_id=category.id,
        transaction_date=on,
        notes=notes,
    ))


def add_goal(repo, category, amount, start: date, end=None, period=BudgetPeriod.MONTHLY):
    return repo.create_budget_goal(BudgetGoalCreate(
        category_id=category.id,
        amount=Decimal(str(amount)),
        period=period,
        start_date=start,
        end_date=end,
    ))
