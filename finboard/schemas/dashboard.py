from typing import List, Optional

from pydantic import BaseModel

from finboard.schemas.budget import DashboardBudgetItem
from finboard.schemas.common import Money
from finboard.schemas.transaction import TransactionResponse


class FinancialSummary(BaseModel):
    income: Money
    expenses: Money
    balance: Money


class MonthlyData(BaseModel):
    name: str
    income: Money
    expenses: Money


class TrendPoint(BaseModel):
    name: str
    income: Money
    expenses: Money


class CategorySlice(BaseModel):
    id: Optional[str] = None
    name: str
    value: Money
    color: str
    percentage: float


class CategoryBreakdown(BaseModel):
    period: str
    total: Money
    categories: List[CategorySlice]


class DashboardData(BaseModel):
    summary: FinancialSummary
    monthly: List[MonthlyData]
    trends: List[TrendPoint]
    categories: CategoryBreakdown
    recent: List[TransactionResponse]
    budget_progress: List[DashboardBudgetItem]
