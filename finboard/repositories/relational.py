import logging
import uuid
from datetime import date
from typing import Any, Dict, List, Optional

from sqlalchemy import select, func, or_, and_, update, delete
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import Session, contains_eager, joinedload

from finboard.core.errors import ConflictError, NotFoundError, PermissionDenied
from finboard.models import BudgetGoal, BudgetPeriod, Category, CategoryType, DatabaseBackend, Profile, Transaction
from finboard.repositories.base import FinanceRepository, backend_errors
from finboard.schemas.budget import BudgetGoalCreate, BudgetGoalResponse
from finboard.schemas.category import CategoryCreate, CategoryResponse
from finboard.schemas.profile import ProfileResponse
from finboard.schemas.transaction import (
    AmountRange,
    SortDirection,
    SortField,
    TransactionCreate,
    TransactionPage,
    TransactionQuery,
    TransactionResponse,
)

logger = logging.getLogger(__name__)

guarded = backend_errors(SQLAlchemyError)

_SORT_COLUMNS = {
    SortField.TRANSACTION_DATE: Transaction.transaction_date,
    SortField.AMOUNT: Transaction.amount,
    SortField.TITLE: Transaction.title,
}


def _parse_id(value: str, label: str) -> uuid.UUID:
    try:
        return uuid.UUID(str(value))
    except ValueError:
        raise NotFoundError(f"{label} not found.")


class RelationalRepository(FinanceRepository):
    backend = DatabaseBackend.RELATIONAL

    def __init__(self, db: Session, user_id: str):
        super().__init__(user_id)
        self.db = db
        self.owner_id = uuid.UUID(self.user_id)

    def on_backend_error(self) -> None:
        self.db.rollback()

    # --- Profile ---
    def _profile_row(self) -> Profile:
        profile = self.db.get(Profile, self.owner_id)
        if profile is None:
            raise NotFoundError("Profile not found.")
        return profile

    @guarded
    def get_profile(self) -> ProfileResponse:
        return ProfileResponse.model_validate(self._profile_row())

    @guarded
    def create_profile(self, email: str, full_name: Optional[str] = None, avatar_url: Optional[str] = None) -> ProfileResponse:
        profile = self.db.get(Profile, self.owner_id)
        if profile is None:
            profile = Profile(id=self.owner_id, email=email, full_name=full_name, avatar_url=avatar_url)
            self.db.add(profile)
            self.db.commit()
            self.db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    @guarded
    def update_profile(self, values: Dict[str, Any]) -> ProfileResponse:
        profile = self._profile_row()
        for key, value in values.items():
            setattr(profile, key, value)
        self.db.commit()
        self.db.refresh(profile)
        return ProfileResponse.model_validate(profile)

    # --- Categories ---
    def _visible_categories(self):
        return or_(Category.user_id == self.owner_id, Category.user_id.is_(None))

    def _category_row(self, category_id: str) -> Category:
        row = self.db.execute(
            select(Category).where(Category.id == _parse_id(category_id, "Category"), self._visible_categories())
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Category not found.")
        return row

    def _owned_category_row(self, category_id: str) -> Category:
        row = self._category_row(category_id)
        if row.user_id is None:
            raise PermissionDenied("Default categories cannot be changed.")
        return row

    def _check_category_name(self, name: str, exclude_id: Optional[uuid.UUID] = None) -> None:
        conditions = [self._visible_categories(), func.lower(Category.name) == name.strip().lower()]
        if exclude_id is not None:
            conditions.append(Category.id != exclude_id)
        existing = self.db.execute(select(Category.id).where(and_(*conditions))).first()
        if existing:
            raise ConflictError("Category with this name already exists.")

    @guarded
    def list_categories(self, type: Optional[CategoryType] = None) -> List[CategoryResponse]:
        conditions = [self._visible_categories()]
        if type:
            conditions.append(Category.type == type)
        query = select(Category).where(and_(*conditions)).order_by(Category.name.asc())
        return [CategoryResponse.model_validate(cat) for cat in self.db.execute(query).scalars().all()]

    @guarded
    def get_category(self, category_id: str) -> CategoryResponse:
        return CategoryResponse.model_validate(self._category_row(category_id))

    @guarded
    def create_category(self, data: CategoryCreate) -> CategoryResponse:
        self._check_category_name(data.name)
        db_category = Category(**data.model_dump(), user_id=self.owner_id, is_default=False)
        self.db.add(db_category)
        self.db.commit()
        self.db.refresh(db_category)
        return CategoryResponse.model_validate(db_category)

    @guarded
    def update_category(self, category_id: str, values: Dict[str, Any]) -> CategoryResponse:
        db_category = self._owned_category_row(category_id)
        if "name" in values and values["name"].strip().lower() != db_category.name.lower():
            self._check_category_name(values["name"], exclude_id=db_category.id)
        for key, value in values.items():
            setattr(db_category, key, value)
        self.db.commit()
        self.db.refresh(db_category)
        return CategoryResponse.model_validate(db_category)

    @guarded
    def delete_category(self, category_id: str) -> None:
        db_category = self._owned_category_row(category_id)
        # Mirror the FK rules explicitly; SQLite does not enforce them by default
        self.db.execute(
            update(Transaction).where(Transaction.category_id == db_category.id).values(category_id=None)
        )
        self.db.execute(delete(BudgetGoal).where(BudgetGoal.category_id == db_category.id))
        self.db.delete(db_category)
        self.db.commit()

    # --- Transactions ---
    def _transactions_select(self):
        return (
            select(Transaction)
            .outerjoin(Category, Transaction.category_id == Category.id)
            .options(contains_eager(Transaction.category))
            .where(Transaction.user_id == self.owner_id)
        )

    @guarded
    def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        stmt = self._transactions_select()
        if query.start_date:
            stmt = stmt.where(Transaction.transaction_date >= query.start_date)
        if query.end_date:
            stmt = stmt.where(Transaction.transaction_date <= query.end_date)
        if query.category_filter:
            stmt = stmt.where(Transaction.category_id == _parse_id(query.category_filter, "Category"))
        if query.search_term:
            pattern = f"%{query.search_term}%"
            stmt = stmt.where(or_(
                Transaction.title.ilike(pattern),
                Transaction.notes.ilike(pattern),
                Category.name.ilike(pattern),
            ))
        magnitude = func.abs(Transaction.amount)
        if query.amount_range == AmountRange.UP_TO_50:
            stmt = stmt.where(magnitude <= 50)
        elif query.amount_range == AmountRange.UP_TO_100:
            stmt = stmt.where(magnitude > 50, magnitude <= 100)
        elif query.amount_range == AmountRange.UP_TO_500:
            stmt = stmt.where(magnitude > 100, magnitude <= 500)
        elif query.amount_range == AmountRange.OVER_500:
            stmt = stmt.where(magnitude > 500)

        total = self.db.execute(select(func.count()).select_from(stmt.order_by(None).subquery())).scalar_one()

        column = _SORT_COLUMNS[query.sort_field]
        ordering = column.asc() if query.sort_direction == SortDirection.ASC else column.desc()
        stmt = stmt.order_by(ordering, Transaction.created_at.desc(), Transaction.id)
        offset = (query.page - 1) * query.page_size
        rows = self.db.execute(stmt.offset(offset).limit(query.page_size)).unique().scalars().all()
        return TransactionPage(
            items=[TransactionResponse.model_validate(row) for row in rows],
            page=query.page,
            page_size=query.page_size,
            has_next=offset + len(rows) < total,
            total=total,
        )

    @guarded
    def list_transactions_between(
        self,
        start: Optional[date],
        end: Optional[date],
        category_id: Optional[str] = None,
    ) -> List[TransactionResponse]:
        stmt = self._transactions_select()
        if start:
            stmt = stmt.where(Transaction.transaction_date >= start)
        if end:
            stmt = stmt.where(Transaction.transaction_date <= end)
        if category_id:
            stmt = stmt.where(Transaction.category_id == _parse_id(category_id, "Category"))
        stmt = stmt.order_by(Transaction.transaction_date.asc(), Transaction.created_at.asc())
        rows = self.db.execute(stmt).unique().scalars().all()
        return [TransactionResponse.model_validate(row) for row in rows]

    def _transaction_row(self, transaction_id: str) -> Transaction:
        row = self.db.execute(
            select(Transaction)
            .options(joinedload(Transaction.category))
            .where(
                Transaction.id == _parse_id(transaction_id, "Transaction"),
                Transaction.user_id == self.owner_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Transaction not found.")
        return row

    @guarded
    def get_transaction(self, transaction_id: str) -> TransactionResponse:
        return TransactionResponse.model_validate(self._transaction_row(transaction_id))

    @guarded
    def create_transaction(self, data: TransactionCreate) -> TransactionResponse:
        values = self.prepare_transaction(data.model_dump())
        values["category_id"] = _parse_id(values["category_id"], "Category")
        db_transaction = Transaction(**values, user_id=self.owner_id)
        self.db.add(db_transaction)
        self.db.commit()
        return self.get_transaction(str(db_transaction.id))

    @guarded
    def update_transaction(self, transaction_id: str, values: Dict[str, Any]) -> TransactionResponse:
        db_transaction = self._transaction_row(transaction_id)
        values = self.prepare_transaction(dict(values), TransactionResponse.model_validate(db_transaction))
        if values.get("category_id"):
            values["category_id"] = _parse_id(values["category_id"], "Category")
        for key, value in values.items():
            setattr(db_transaction, key, value)
        self.db.commit()
        self.db.expire(db_transaction)
        return self.get_transaction(transaction_id)

    @guarded
    def delete_transaction(self, transaction_id: str) -> None:
        self.db.delete(self._transaction_row(transaction_id))
        self.db.commit()

    # --- Budget goals ---
    def _goal_row(self, goal_id: str) -> BudgetGoal:
        row = self.db.execute(
            select(BudgetGoal).where(
                BudgetGoal.id == _parse_id(goal_id, "Budget goal"),
                BudgetGoal.user_id == self.owner_id,
            )
        ).scalar_one_or_none()
        if row is None:
            raise NotFoundError("Budget goal not found.")
        return row

    @guarded
    def list_budget_goals(
        self,
        category_id: Optional[str] = None,
        period: Optional[BudgetPeriod] = None,
    ) -> List[BudgetGoalResponse]:
        conditions = [BudgetGoal.user_id == self.owner_id]
        if category_id:
            conditions.append(BudgetGoal.category_id == _parse_id(category_id, "Category"))
        if period:
            conditions.append(BudgetGoal.period == period)
        query = select(BudgetGoal).where(and_(*conditions)).order_by(BudgetGoal.created_at.desc())
        return [BudgetGoalResponse.model_validate(goal) for goal in self.db.execute(query).scalars().all()]

    @guarded
    def get_budget_goal(self, goal_id: str) -> BudgetGoalResponse:
        return BudgetGoalResponse.model_validate(self._goal_row(goal_id))

    @guarded
    def create_budget_goal(self, data: BudgetGoalCreate) -> BudgetGoalResponse:
        values = self.prepare_budget_goal(data.model_dump())
        values["category_id"] = _parse_id(values["category_id"], "Category")
        db_goal = BudgetGoal(**values, user_id=self.owner_id)
        self.db.add(db_goal)
        self.db.commit()
        self.db.refresh(db_goal)
        return BudgetGoalResponse.model_validate(db_goal)

    @guarded
    def update_budget_goal(self, goal_id: str, values: Dict[str, Any]) -> BudgetGoalResponse:
        db_goal = self._goal_row(goal_id)
        values = self.prepare_budget_goal(dict(values), BudgetGoalResponse.model_validate(db_goal))
        if values.get("category_id"):
            values["category_id"] = _parse_id(values["category_id"], "Category")
        for key, value in values.items():
            setattr(db_goal, key, value)
        self.db.commit()
        self.db.refresh(db_goal)
        return BudgetGoalResponse.model_validate(db_goal)

    @guarded
    def delete_budget_goal(self, goal_id: str) -> None:
        self.db.delete(self._goal_row(goal_id))
        self.db.commit()
