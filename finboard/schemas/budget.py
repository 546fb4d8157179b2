from datetime import date, datetime
from decimal import Decimal
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from finboard.models import BudgetPeriod
from finboard.schemas.common import Money, StrId


class BudgetGoalCreate(BaseModel):
    category_id: str = Field(..., min_length=1)
    amount: Decimal = Field(..., gt=0, max_digits=12, decimal_places=2)
    period: BudgetPeriod = BudgetPeriod.MONTHLY
    # Both default to the current calendar month when omitted
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class BudgetGoalUpdate(BaseModel):
    category_id: Optional[str] = Field(None, min_length=1)
    amount: Optional[Decimal] = Field(None, gt=0, max_digits=12, decimal_places=2)
    period: Optional[BudgetPeriod] = None
    start_date: Optional[date] = None
    end_date: Optional[date] = None

    @model_validator(mode="after")
    def _check_dates(self):
        if self.start_date and self.end_date and self.end_date < self.start_date:
            raise ValueError("end_date must be on or after start_date")
        return self


class BudgetGoalResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: StrId
    user_id: StrId
    category_id: StrId
    amount: Money
    period: BudgetPeriod
    start_date: date
    end_date: Optional[date] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class BudgetProgress(BaseModel):
    goal_id: str
    category_id: str
    category_name: str
    category_color: str
    period: BudgetPeriod
    amount: Money
    spent: Money
    remaining: Money
    percentage: float
    start_date: date
    end_date: date


class DashboardBudgetItem(BaseModel):
    goal_id: str
    category_id: str
    category_name: str
    category_color: str
    amount: Money
    spent: Money
    percentage: int


class BudgetSummary(BaseModel):
    total_budget: Money
    total_spent: Money
    percentage_spent: float
    remaining: Money


class BudgetAlert(BaseModel):
    goal_id: str
    category_id: str
    category_name: str
    amount: Money
    spent: Money
    percentage: int
    critical: bool
