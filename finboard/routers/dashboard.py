from datetime import date
from typing import Optional

from fastapi import APIRouter, Query

from finboard.core.errors import with_error_handling
from finboard.deps import Repository
from finboard.schemas.common import make_success_response
from finboard.schemas.dashboard import CategoryBreakdown, DashboardData
from finboard.services.budget import dashboard_budget_progress
from finboard.services.summary import (
    ZERO,
    category_breakdown,
    empty_summary,
    financial_summary,
    monthly_chart,
    recent_transactions,
    spending_trends,
    summary_range,
)

router = APIRouter(
    prefix="/api/v1/dashboard",
    tags=["Dashboard"],
)


@router.get("")
async def get_full_dashboard(repo: Repository):
    today = date.today()
    data = DashboardData(
        summary=with_error_handling(
            lambda: financial_summary(repo, "month", today=today), empty_summary(), "Error fetching financial summary"
        ),
        monthly=with_error_handling(lambda: monthly_chart(repo, today=today), [], "Error fetching monthly data"),
        trends=with_error_handling(lambda: spending_trends(repo, "30d", today=today), [], "Error fetching spending trends"),
        categories=with_error_handling(
            lambda: category_breakdown(repo, "thisMonth", today=today),
            CategoryBreakdown(period="thisMonth", total=ZERO, categories=[]),
            "Error fetching category breakdown",
        ),
        recent=with_error_handling(lambda: recent_transactions(repo), [], "Error fetching recent transactions"),
        budget_progress=with_error_handling(
            lambda: dashboard_budget_progress(repo, today=today), [], "Error fetching budget progress"
        ),
    )
    return make_success_response(data.model_dump(mode="json"))


@router.get("/summary")
async def get_summary(
    repo: Repository,
    period: str = Query("month", pattern="^(month|year|custom)$"),
    start: Optional[date] = None,
    end: Optional[date] = None,
):
    # Bad ranges are reported; storage failures fall back to zeros
    range_start, range_end = summary_range(period, date.today(), start, end)
    summary = with_error_handling(
        lambda: financial_summary(repo, "custom", range_start, range_end),
        empty_summary(),
        "Error fetching financial summary",
    )
    return make_success_response(summary.model_dump(mode="json"))


@router.get("/monthly")
async def get_monthly(repo: Repository, months: int = Query(6, ge=1, le=24)):
    rows = monthly_chart(repo, months=months)
    return make_success_response([row.model_dump(mode="json") for row in rows])


@router.get("/trends")
async def get_trends(repo: Repository, range: str = Query("30d", pattern="^(7d|30d|90d|12m)$")):
    points = spending_trends(repo, range)
    return make_success_response([point.model_dump(mode="json") for point in points])


@router.get("/categories")
async def get_categories(
    repo: Repository,
    period: str = Query("thisMonth", pattern="^(thisMonth|lastMonth|thisYear|allTime)$"),
):
    return make_success_response(category_breakdown(repo, period).model_dump(mode="json"))


@router.get("/recent")
async def get_recent(repo: Repository, limit: int = Query(5, ge=1, le=50)):
    items = recent_transactions(repo, limit=limit)
    return make_success_response([item.model_dump(mode="json") for item in items])


@router.get("/budget-progress")
async def get_budget_progress(repo: Repository):
    items = dashboard_budget_progress(repo)
    return make_success_response([item.model_dump(mode="json") for item in items])
