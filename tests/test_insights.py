import random
from datetime import date
from decimal import Decimal

from finboard.models import CategoryType
from finboard.schemas.category import CategoryCreate
from finboard.services import insights
from helpers import add_txn, make_categories

TODAY = date(2024, 3, 15)


def test_percent_change():
    assert insights.percent_change(Decimal("150"), Decimal("100")) == 50.0
    assert insights.percent_change(Decimal("150"), Decimal("0")) == 0.0


def test_format_money():
    assert insights.format_money(Decimal("1234.5")) == "$1,234.50"


def test_no_transactions(repo):
    result = insights.basic_insights(repo, today=TODAY, rng=random.Random(0))
    assert result.summary == "You haven't recorded any transactions for March yet."
    assert result.top_category == "None"
    assert result.top_category_amount == 0
    assert result.monthly_change == 0.0
    assert not result.tip.startswith("Consider setting a budget")


def test_spending_increase_points_at_top_category(repo):
    cats = make_categories(repo)
    add_txn(repo, cats["snacks"], 100, date(2024, 2, 10))
    add_txn(repo, cats["snacks"], 120, date(2024, 3, 2))
    add_txn(repo, cats["housing"], 80, date(2024, 3, 3))

    result = insights.basic_insights(repo, today=TODAY, rng=random.Random(0))
    assert result.summary == "Your spending in March ($200.00) has increased by 100.0% compared to last month."
    assert result.top_category == "Snacks"
    assert result.top_category_amount == Decimal("120")
    assert result.monthly_change == 100.0
    assert result.tip == "Consider setting a budget for Snacks, your highest spending category this month."


def test_spread_out_increase_suggests_tracking(repo):
    cats = make_categories(repo)
    fun = repo.create_category(CategoryCreate(name="Fun", type=CategoryType.EXPENSE))
    add_txn(repo, cats["snacks"], 50, date(2024, 2, 10))
    add_txn(repo, cats["snacks"], 30, date(2024, 3, 2))
    add_txn(repo, cats["housing"], 30, date(2024, 3, 3))
    add_txn(repo, fun, 40, date(2024, 3, 4))

    result = insights.basic_insights(repo, today=TODAY, rng=random.Random(0))
    assert result.tip == "Track your daily expenses to identify areas where you can cut back."


def test_spending_decrease(repo):
    cats = make_categories(repo)
    add_txn(repo, cats["housing"], 1000, date(2024, 2, 1))
    add_txn(repo, cats["snacks"], 100, date(2024, 3, 2))

    result = insights.basic_insights(repo, today=TODAY, rng=random.Random(0))
    assert result.summary == (
        "Great job! Your spending in March ($100.00) has decreased by 90.0% compared to last month."
    )
    assert result.monthly_change == -90.0


def test_similar_spending(repo):
    cats = make_categories(repo)
    add_txn(repo, cats["snacks"], 100, date(2024, 2, 1))
    add_txn(repo, cats["snacks"], 105, date(2024, 3, 2))

    result = insights.basic_insights(repo, today=TODAY, rng=random.Random(0))
    assert result.summary == "Your spending in March ($105.00) is similar to last month."


def test_enhanced_insights_flag_unusual_spending(repo):
    cats = make_categories(repo)
    add_txn(repo, cats["snacks"], 100, date(2024, 2, 5))
    add_txn(repo, cats["snacks"], 300, date(2024, 3, 5))
    add_txn(repo, cats["wages"], 1000, date(2024, 3, 1))

    result = insights.enhanced_insights(repo, today=TODAY, rng=random.Random(1))
    assert result.summary.total_spent == Decimal("300")
    assert result.summary.monthly_change == 200.0
    assert result.summary.savings_rate == 70.0
    assert result.summary.unusual_spending.category == "Snacks"
    assert [trend.category for trend in result.trends] == ["Snacks"]
    assert result.trends[0].previous_amount == Decimal("100")

    titles = [tip.title for tip in result.tips]
    assert titles[:3] == ["Optimize Your Snacks Spending", "Great Savings Habit", "Unusual Snacks Spending"]
    assert len(titles) == 5
    assert all(tip in insights.GENERAL_TIPS for tip in result.tips[3:])
    assert result.tips[3] != result.tips[4]


def test_enhanced_insights_low_savings(repo):
    cats = make_categories(repo)
    add_txn(repo, cats["wages"], 100, date(2024, 3, 1))
    add_txn(repo, cats["snacks"], 90, date(2024, 3, 2))

    result = insights.enhanced_insights(repo, today=TODAY, rng=random.Random(2))
    assert result.summary.savings_rate == 10.0
    assert result.summary.monthly_change == 0.0
    assert result.trends[0].change == 100.0
    assert "Increase Your Savings Rate" in [tip.title for tip in result.tips]


def test_enhanced_insights_without_data(repo):
    result = insights.enhanced_insights(repo, today=TODAY, rng=random.Random(3))
    assert result.summary.top_category == "None"
    assert result.summary.unusual_spending is None
    assert result.trends == []
    assert [tip.title for tip in result.tips][0] == "Increase Your Savings Rate"
    assert len(result.tips) == 3
