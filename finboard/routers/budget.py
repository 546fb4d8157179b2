from datetime import date
from typing import Optional

from fastapi import APIRouter, Query, status

from finboard.deps import Repository
from finboard.models import BudgetPeriod
from finboard.schemas.budget import BudgetGoalCreate, BudgetGoalUpdate
from finboard.schemas.common import make_success_response, updated_fields
from finboard.services.budget import budget_alerts, budget_progress, budget_summary

router = APIRouter(
    prefix="/api/v1",
    tags=["Budget"],
)


# --- Goals CRUD ---

@router.get("/budget-goals")
async def list_budget_goals(
    repo: Repository,
    category_id: Optional[str] = None,
    period: Optional[BudgetPeriod] = None,
):
    goals = repo.list_budget_goals(category_id=category_id, period=period)
    return make_success_response([goal.model_dump(mode="json") for goal in goals])


@router.get("/budget-goals/{goal_id}")
async def read_budget_goal(goal_id: str, repo: Repository):
    return make_success_response(repo.get_budget_goal(goal_id).model_dump(mode="json"))


@router.post("/budget-goals", status_code=status.HTTP_201_CREATED)
async def create_budget_goal(goal_in: BudgetGoalCreate, repo: Repository):
    return make_success_response(repo.create_budget_goal(goal_in).model_dump(mode="json"))


@router.patch("/budget-goals/{goal_id}")
async def update_budget_goal(goal_id: str, goal_in: BudgetGoalUpdate, repo: Repository):
    update_data = updated_fields(goal_in, nullable=("end_date",))
    if update_data:
        goal = repo.update_budget_goal(goal_id, update_data)
    else:
        goal = repo.get_budget_goal(goal_id)
    return make_success_response(goal.model_dump(mode="json"))


@router.delete("/budget-goals/{goal_id}")
async def delete_budget_goal(goal_id: str, repo: Repository):
    repo.delete_budget_goal(goal_id)
    return make_success_response({"id": goal_id, "deleted": True})


# --- Progress ---

@router.get("/budget/progress")
async def read_budget_progress(
    repo: Repository,
    period: Optional[BudgetPeriod] = None,
    category_id: Optional[str] = None,
    on: Optional[date] = Query(None, alias="date"),
):
    progress = budget_progress(repo, period=period, category_id=category_id, on=on)
    return make_success_response([item.model_dump(mode="json") for item in progress])


@router.get("/budget/summary")
async def read_budget_summary(repo: Repository):
    return make_success_response(budget_summary(repo).model_dump(mode="json"))


@router.get("/budget/alerts")
async def read_budget_alerts(repo: Repository):
    alerts = budget_alerts(repo)
    return make_success_response([alert.model_dump(mode="json") for alert in alerts])
