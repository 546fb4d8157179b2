from typing import List, Literal, Optional

from pydantic import BaseModel

from finboard.schemas.common import Money

Impact = Literal["high", "medium", "low"]


class BasicInsights(BaseModel):
    summary: str
    top_category: Optional[str] = None
    top_category_amount: Money
    monthly_change: float
    tip: str


class CategoryTrend(BaseModel):
    category: str
    amount: Money
    previous_amount: Money
    change: float


class UnusualSpending(BaseModel):
    category: str
    amount: Money
    change: float


class Tip(BaseModel):
    title: str
    description: str
    impact: Impact


class EnhancedSummary(BaseModel):
    total_spent: Money
    monthly_change: float
    top_category: Optional[str] = None
    top_category_amount: Money
    savings_rate: float
    unusual_spending: Optional[UnusualSpending] = None


class EnhancedInsights(BaseModel):
    summary: EnhancedSummary
    trends: List[CategoryTrend]
    tips: List[Tip]
