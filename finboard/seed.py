import logging

from sqlalchemy import select
from sqlalchemy.orm import Session

from finboard.models import Category, CategoryType

logger = logging.getLogger(__name__)

# (name, type, icon, color)
DEFAULT_CATEGORIES = [
    ("Salary", CategoryType.INCOME, "income", "#22C55E"),
    ("Freelance", CategoryType.INCOME, "work", "#10B981"),
    ("Groceries", CategoryType.EXPENSE, "shopping", "#F97316"),
    ("Dining Out", CategoryType.EXPENSE, "food", "#EF4444"),
    ("Rent", CategoryType.EXPENSE, "home", "#8B5CF6"),
    ("Transport", CategoryType.EXPENSE, "car", "#3B82F6"),
    ("Travel", CategoryType.EXPENSE, "travel", "#06B6D4"),
    ("Education", CategoryType.EXPENSE, "education", "#6366F1"),
    ("Health", CategoryType.EXPENSE, "health", "#EC4899"),
    ("Gifts", CategoryType.EXPENSE, "gift", "#F59E0B"),
    ("Coffee", CategoryType.EXPENSE, "coffee", "#A16207"),
    ("Bills", CategoryType.EXPENSE, "credit-card", "#64748B"),
]


def seed_default_categories(db: Session) -> int:
    """Insert the shared default categories that are missing. Returns how many were added."""
    existing = set(
        db.execute(select(Category.name).where(Category.user_id.is_(None))).scalars().all()
    )
    added = 0
    for name, category_type, icon, color in DEFAULT_CATEGORIES:
        if name in existing:
            continue
        db.add(Category(name=name, type=category_type, icon=icon, color=color, user_id=None, is_default=True))
        added += 1
    if added:
        db.commit()
        logger.info("Seeded %d default categories", added)
    return added


def main():
    from finboard.core.logging_config import configure_logging
    from finboard.core.settings import settings
    from finboard.db import init_db

    configure_logging(settings.LOG_LEVEL)
    init_db()


if __name__ == "__main__":
    main()
