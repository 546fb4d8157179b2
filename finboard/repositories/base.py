"""Storage-agnostic data access for one signed-in user.

Both backends expose the same operations and return the same pydantic
records, so services and routers never branch on the storage engine.
"""
import abc
import functools
import logging
from datetime import date
from decimal import Decimal
from typing import Any, Callable, Dict, List, Optional

from finboard.core.errors import BackendUnavailable, NotFoundError, ValidationFailed
from finboard.models import BudgetPeriod, CategoryType, DatabaseBackend
from finboard.schemas.budget import BudgetGoalCreate, BudgetGoalResponse
from finboard.schemas.category import CategoryCreate, CategoryResponse
from finboard.schemas.profile import ProfileResponse
from finboard.schemas.transaction import (
    AmountRange,
    TransactionCreate,
    TransactionPage,
    TransactionQuery,
    TransactionResponse,
)
from finboard.services.periods import month_bounds

logger = logging.getLogger(__name__)


def backend_errors(*exc_types: type) -> Callable:
    """Log SDK/driver failures and re-raise them as ``BackendUnavailable``."""

    def decorator(fn):
        @functools.wraps(fn)
        def wrapper(self, *args, **kwargs):
            try:
                return fn(self, *args, **kwargs)
            except exc_types as exc:
                logger.error("%s backend call %s failed: %s", self.backend.value, fn.__name__, exc)
                self.on_backend_error()
                raise BackendUnavailable(
                    "The data store is temporarily unavailable",
                    details={"backend": self.backend.value, "operation": fn.__name__},
                ) from exc

        return wrapper

    return decorator


def apply_sign(amount: Decimal, category_type: Optional[CategoryType]) -> Decimal:
    if category_type == CategoryType.EXPENSE:
        return -abs(amount)
    if category_type == CategoryType.INCOME:
        return abs(amount)
    return amount


def in_amount_range(amount: Decimal, amount_range: AmountRange) -> bool:
    value = abs(amount)
    if amount_range == AmountRange.UP_TO_50:
        return 0 <= value <= 50
    if amount_range == AmountRange.UP_TO_100:
        return 50 < value <= 100
    if amount_range == AmountRange.UP_TO_500:
        return 100 < value <= 500
    if amount_range == AmountRange.OVER_500:
        return value > 500
    return True


def matches_search(transaction: TransactionResponse, term: str) -> bool:
    haystack = [transaction.title, transaction.notes or ""]
    if transaction.category is not None:
        haystack.append(transaction.category.name)
    return any(term in value.lower() for value in haystack)


class FinanceRepository(abc.ABC):
    backend: DatabaseBackend

    def __init__(self, user_id: str):
        self.user_id = str(user_id)

    def on_backend_error(self) -> None:
        pass

    # --- Profile ---
    @abc.abstractmethod
    def get_profile(self) -> ProfileResponse: ...

    @abc.abstractmethod
    def create_profile(self, email: str, full_name: Optional[str] = None, avatar_url: Optional[str] = None) -> ProfileResponse: ...

    @abc.abstractmethod
    def update_profile(self, values: Dict[str, Any]) -> ProfileResponse: ...

    # --- Categories ---
    @abc.abstractmethod
    def list_categories(self, type: Optional[CategoryType] = None) -> List[CategoryResponse]: ...

    @abc.abstractmethod
    def get_category(self, category_id: str) -> CategoryResponse: ...

    @abc.abstractmethod
    def create_category(self, data: CategoryCreate) -> CategoryResponse: ...

    @abc.abstractmethod
    def update_category(self, category_id: str, values: Dict[str, Any]) -> CategoryResponse: ...

    @abc.abstractmethod
    def delete_category(self, category_id: str) -> None: ...

    # --- Transactions ---
    @abc.abstractmethod
    def list_transactions(self, query: TransactionQuery) -> TransactionPage: ...

    @abc.abstractmethod
    def list_transactions_between(
        self,
        start: Optional[date],
        end: Optional[date],
        category_id: Optional[str] = None,
    ) -> List[TransactionResponse]:
        """Every transaction dated within [start, end]; either bound may be open."""

    @abc.abstractmethod
    def get_transaction(self, transaction_id: str) -> TransactionResponse: ...

    @abc.abstractmethod
    def create_transaction(self, data: TransactionCreate) -> TransactionResponse: ...

    @abc.abstractmethod
    def update_transaction(self, transaction_id: str, values: Dict[str, Any]) -> TransactionResponse: ...

    @abc.abstractmethod
    def delete_transaction(self, transaction_id: str) -> None: ...

    # --- Budget goals ---
    @abc.abstractmethod
    def list_budget_goals(
        self,
        category_id: Optional[str] = None,
        period: Optional[BudgetPeriod] = None,
    ) -> List[BudgetGoalResponse]: ...

    @abc.abstractmethod
    def get_budget_goal(self, goal_id: str) -> BudgetGoalResponse: ...

    @abc.abstractmethod
    def create_budget_goal(self, data: BudgetGoalCreate) -> BudgetGoalResponse: ...

    @abc.abstractmethod
    def update_budget_goal(self, goal_id: str, values: Dict[str, Any]) -> BudgetGoalResponse: ...

    @abc.abstractmethod
    def delete_budget_goal(self, goal_id: str) -> None: ...

    # --- Shared write rules ---
    def _known_category(self, category_id: str) -> CategoryResponse:
        try:
            return self.get_category(category_id)
        except NotFoundError:
            raise ValidationFailed("Unknown category", details={"category_id": category_id})

    def prepare_transaction(
        self,
        values: Dict[str, Any],
        current: Optional[TransactionResponse] = None,
    ) -> Dict[str, Any]:
        """Force the amount sign to match the category type."""
        if "amount" not in values and "category_id" not in values:
            return values
        category_id = values.get("category_id", current.category_id if current else None)
        amount = values.get("amount", current.amount if current else None)
        if category_id and amount is not None:
            category = self._known_category(category_id)
            values["amount"] = apply_sign(Decimal(amount), category.type)
        return values

    def prepare_budget_goal(
        self,
        values: Dict[str, Any],
        current: Optional[BudgetGoalResponse] = None,
        today: Optional[date] = None,
    ) -> Dict[str, Any]:
        if values.get("category_id"):
            category = self._known_category(values["category_id"])
            if category.type != CategoryType.EXPENSE:
                raise ValidationFailed("Budget goals can only track expense categories")
        if current is None:
            if values.get("start_date") is None:
                values["start_date"] = month_bounds(today or date.today())[0]
            if values.get("end_date") is None:
                # Last day of the month the goal starts in
                values["end_date"] = month_bounds(values["start_date"])[1]
            if values.get("period") is None:
                values["period"] = BudgetPeriod.MONTHLY
        start = values.get("start_date", current.start_date if current else None)
        end = values.get("end_date", current.end_date if current else None)
        if start and end and end < start:
            raise ValidationFailed("end_date must be on or after start_date")
        return values
