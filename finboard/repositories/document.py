"""Firestore implementation of the finance repository.

Collections mirror the relational tables with camelCase field names:
``users`` (profiles keyed by user id), ``categories``, ``transactions`` and
``budgetGoals``. Firestore cannot seek to an offset, so paged listings
replay the query page by page with ``start_after`` cursors.
"""
import logging
from datetime import date, datetime, timezone
from decimal import Decimal
from enum import Enum
from typing import Any, Dict, Iterable, List, Optional

from google.api_core.exceptions import GoogleAPICallError
from google.cloud import firestore
from google.cloud.firestore_v1.base_query import FieldFilter

from finboard.core.errors import ConflictError, NotFoundError, PermissionDenied
from finboard.models import BudgetPeriod, CategoryType, DatabaseBackend
from finboard.repositories.base import FinanceRepository, backend_errors, in_amount_range, matches_search
from finboard.schemas.budget import BudgetGoalCreate, BudgetGoalResponse
from finboard.schemas.category import CategoryCreate, CategoryResponse
from finboard.schemas.profile import ProfileResponse
from finboard.schemas.transaction import (
    SortDirection,
    SortField,
    TransactionCreate,
    TransactionPage,
    TransactionQuery,
    TransactionResponse,
)

logger = logging.getLogger(__name__)

guarded = backend_errors(GoogleAPICallError)

USERS = "users"
CATEGORIES = "categories"
TRANSACTIONS = "transactions"
BUDGET_GOALS = "budgetGoals"

_FIELD_NAMES = {
    "user_id": "userId",
    "full_name": "fullName",
    "avatar_url": "avatarUrl",
    "is_default": "isDefault",
    "category_id": "categoryId",
    "transaction_date": "transactionDate",
    "start_date": "startDate",
    "end_date": "endDate",
    "created_at": "createdAt",
    "updated_at": "updatedAt",
}
_ATTR_NAMES = {doc_name: attr for attr, doc_name in _FIELD_NAMES.items()}
_DATE_FIELDS = {"transactionDate", "startDate", "endDate"}


def _to_timestamp(day: date) -> datetime:
    return datetime(day.year, day.month, day.day, tzinfo=timezone.utc)


def _encode_value(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, Decimal):
        return float(value)
    if isinstance(value, datetime):
        # Firestore stores UTC; naive values come from SQLite/Postgres rows
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return _to_timestamp(value)
    return value


def to_document(values: Dict[str, Any]) -> Dict[str, Any]:
    return {_FIELD_NAMES.get(key, key): _encode_value(value) for key, value in values.items()}


def from_document(snapshot) -> Dict[str, Any]:
    record: Dict[str, Any] = {"id": snapshot.id}
    for key, value in (snapshot.to_dict() or {}).items():
        if key in _DATE_FIELDS and isinstance(value, datetime):
            value = value.date()
        elif key == "amount" and value is not None:
            value = Decimal(str(value))
        record[_ATTR_NAMES.get(key, key)] = value
    return record


class DocumentRepository(FinanceRepository):
    backend = DatabaseBackend.DOCUMENT

    def __init__(self, client, user_id: str):
        super().__init__(user_id)
        self.client = client

    def _collection(self, name: str):
        return self.client.collection(name)

    def _owned(self, name: str):
        return self._collection(name).where(filter=FieldFilter("userId", "==", self.user_id))

    def _read(self, name: str, doc_id: str, label: str, allow_shared: bool = False) -> Dict[str, Any]:
        snapshot = self._collection(name).document(doc_id).get()
        if not snapshot.exists:
            raise NotFoundError(f"{label} not found.")
        record = from_document(snapshot)
        owner = record.get("user_id")
        if owner != self.user_id and not (allow_shared and owner is None):
            raise NotFoundError(f"{label} not found.")
        return record

    def _insert(self, name: str, values: Dict[str, Any]) -> str:
        ref = self._collection(name).document()
        payload = to_document(values)
        payload["createdAt"] = firestore.SERVER_TIMESTAMP
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        ref.set(payload)
        return ref.id

    def _patch(self, name: str, doc_id: str, values: Dict[str, Any]) -> None:
        payload = to_document(values)
        payload["updatedAt"] = firestore.SERVER_TIMESTAMP
        self._collection(name).document(doc_id).update(payload)

    def _put(self, name: str, doc_id: str, values: Dict[str, Any]) -> None:
        """Write a full record under a fixed id, keeping its timestamps."""
        payload = to_document(values)
        payload.pop("id", None)
        for stamp in ("createdAt", "updatedAt"):
            if payload.get(stamp) is None:
                payload[stamp] = firestore.SERVER_TIMESTAMP
        self._collection(name).document(doc_id).set(payload)

    # --- Profile ---
    @guarded
    def get_profile(self) -> ProfileResponse:
        snapshot = self._collection(USERS).document(self.user_id).get()
        if not snapshot.exists:
            raise NotFoundError("Profile not found.")
        return ProfileResponse.model_validate(from_document(snapshot))

    @guarded
    def create_profile(self, email: str, full_name: Optional[str] = None, avatar_url: Optional[str] = None) -> ProfileResponse:
        ref = self._collection(USERS).document(self.user_id)
        if not ref.get().exists:
            ref.set({
                "email": email,
                "fullName": full_name,
                "avatarUrl": avatar_url,
                "createdAt": firestore.SERVER_TIMESTAMP,
                "updatedAt": firestore.SERVER_TIMESTAMP,
            })
        return self.get_profile()

    @guarded
    def update_profile(self, values: Dict[str, Any]) -> ProfileResponse:
        self.get_profile()
        self._patch(USERS, self.user_id, values)
        return self.get_profile()

    @guarded
    def put_profile(self, profile: ProfileResponse) -> None:
        self._put(USERS, self.user_id, profile.model_dump(exclude={"id"}))

    # --- Categories ---
    def _category_records(self) -> List[Dict[str, Any]]:
        shared = self._collection(CATEGORIES).where(filter=FieldFilter("userId", "==", None))
        records = {}
        for query in (self._owned(CATEGORIES), shared):
            for snapshot in query.stream():
                records[snapshot.id] = from_document(snapshot)
        return list(records.values())

    def _category_map(self) -> Dict[str, CategoryResponse]:
        return {record["id"]: CategoryResponse.model_validate(record) for record in self._category_records()}

    def _check_category_name(self, name: str, exclude_id: Optional[str] = None) -> None:
        wanted = name.strip().lower()
        for record in self._category_records():
            if record["id"] != exclude_id and record.get("name", "").lower() == wanted:
                raise ConflictError("Category with this name already exists.")

    def _owned_category(self, category_id: str) -> Dict[str, Any]:
        record = self._read(CATEGORIES, category_id, "Category", allow_shared=True)
        if record.get("user_id") is None:
            raise PermissionDenied("Default categories cannot be changed.")
        return record

    @guarded
    def list_categories(self, type: Optional[CategoryType] = None) -> List[CategoryResponse]:
        categories = [CategoryResponse.model_validate(record) for record in self._category_records()]
        if type:
            categories = [cat for cat in categories if cat.type == type]
        return sorted(categories, key=lambda cat: cat.name)

    @guarded
    def get_category(self, category_id: str) -> CategoryResponse:
        return CategoryResponse.model_validate(self._read(CATEGORIES, category_id, "Category", allow_shared=True))

    @guarded
    def create_category(self, data: CategoryCreate) -> CategoryResponse:
        self._check_category_name(data.name)
        doc_id = self._insert(CATEGORIES, {**data.model_dump(), "user_id": self.user_id, "is_default": False})
        return self.get_category(doc_id)

    @guarded
    def update_category(self, category_id: str, values: Dict[str, Any]) -> CategoryResponse:
        record = self._owned_category(category_id)
        if "name" in values and values["name"].strip().lower() != record["name"].lower():
            self._check_category_name(values["name"], exclude_id=category_id)
        self._patch(CATEGORIES, category_id, values)
        return self.get_category(category_id)

    @guarded
    def delete_category(self, category_id: str) -> None:
        self._owned_category(category_id)
        linked = self._owned(TRANSACTIONS).where(filter=FieldFilter("categoryId", "==", category_id))
        for snapshot in linked.stream():
            snapshot.reference.update({"categoryId": None, "updatedAt": firestore.SERVER_TIMESTAMP})
        goals = self._owned(BUDGET_GOALS).where(filter=FieldFilter("categoryId", "==", category_id))
        for snapshot in goals.stream():
            snapshot.reference.delete()
        self._collection(CATEGORIES).document(category_id).delete()

    @guarded
    def put_category(self, category: CategoryResponse) -> None:
        self._put(CATEGORIES, category.id, category.model_dump())

    # --- Transactions ---
    def _transaction_query(
        self,
        start: Optional[date],
        end: Optional[date],
        category_id: Optional[str],
    ):
        query = self._owned(TRANSACTIONS)
        if category_id:
            query = query.where(filter=FieldFilter("categoryId", "==", category_id))
        if start:
            query = query.where(filter=FieldFilter("transactionDate", ">=", _to_timestamp(start)))
        if end:
            query = query.where(filter=FieldFilter("transactionDate", "<=", _to_timestamp(end)))
        return query

    def _with_categories(
        self,
        snapshots: Iterable,
        categories: Optional[Dict[str, CategoryResponse]] = None,
    ) -> List[TransactionResponse]:
        if categories is None:
            categories = self._category_map()
        items = []
        for snapshot in snapshots:
            record = from_document(snapshot)
            record["category"] = categories.get(record.get("category_id") or "")
            items.append(TransactionResponse.model_validate(record))
        return items

    @guarded
    def list_transactions(self, query: TransactionQuery) -> TransactionPage:
        direction = firestore.Query.DESCENDING
        if query.sort_field == SortField.TRANSACTION_DATE and query.sort_direction == SortDirection.ASC:
            direction = firestore.Query.ASCENDING
        base = self._transaction_query(query.start_date, query.end_date, query.category_filter)
        base = base.order_by("transactionDate", direction=direction)

        # Walk forward to the requested page; each skipped page costs one read
        cursor = None
        for _ in range(query.page - 1):
            skipped = base.limit(query.page_size)
            if cursor is not None:
                skipped = skipped.start_after(cursor)
            snapshots = list(skipped.stream())
            if len(snapshots) < query.page_size:
                return TransactionPage(items=[], page=query.page, page_size=query.page_size, has_next=False)
            cursor = snapshots[-1]

        page_query = base.limit(query.page_size + 1)
        if cursor is not None:
            page_query = page_query.start_after(cursor)
        snapshots = list(page_query.stream())
        has_next = len(snapshots) > query.page_size

        items = self._with_categories(snapshots[:query.page_size])
        # Search, amount range and non-date sorting only see the fetched page
        if query.search_term:
            items = [item for item in items if matches_search(item, query.search_term)]
        items = [item for item in items if in_amount_range(item.amount, query.amount_range)]
        if query.sort_field == SortField.AMOUNT:
            items.sort(key=lambda item: item.amount, reverse=query.sort_direction == SortDirection.DESC)
        elif query.sort_field == SortField.TITLE:
            items.sort(key=lambda item: item.title.lower(), reverse=query.sort_direction == SortDirection.DESC)

        return TransactionPage(
            items=items,
            page=query.page,
            page_size=query.page_size,
            has_next=has_next,
            total=None,
        )

    @guarded
    def list_transactions_between(
        self,
        start: Optional[date],
        end: Optional[date],
        category_id: Optional[str] = None,
    ) -> List[TransactionResponse]:
        snapshots = self._transaction_query(start, end, category_id).stream()
        items = self._with_categories(snapshots)
        items.sort(key=lambda item: item.transaction_date)
        return items

    @guarded
    def get_transaction(self, transaction_id: str) -> TransactionResponse:
        record = self._read(TRANSACTIONS, transaction_id, "Transaction")
        if record.get("category_id"):
            try:
                record["category"] = self.get_category(record["category_id"])
            except NotFoundError:
                record["category"] = None
        return TransactionResponse.model_validate(record)

    @guarded
    def create_transaction(self, data: TransactionCreate) -> TransactionResponse:
        values = self.prepare_transaction(data.model_dump())
        doc_id = self._insert(TRANSACTIONS, {**values, "user_id": self.user_id})
        return self.get_transaction(doc_id)

    @guarded
    def update_transaction(self, transaction_id: str, values: Dict[str, Any]) -> TransactionResponse:
        current = self.get_transaction(transaction_id)
        values = self.prepare_transaction(dict(values), current)
        self._patch(TRANSACTIONS, transaction_id, values)
        return self.get_transaction(transaction_id)

    @guarded
    def delete_transaction(self, transaction_id: str) -> None:
        self._read(TRANSACTIONS, transaction_id, "Transaction")
        self._collection(TRANSACTIONS).document(transaction_id).delete()

    @guarded
    def put_transaction(self, transaction: TransactionResponse) -> None:
        self._put(TRANSACTIONS, transaction.id, transaction.model_dump(exclude={"category"}))

    # --- Budget goals ---
    @guarded
    def list_budget_goals(
        self,
        category_id: Optional[str] = None,
        period: Optional[BudgetPeriod] = None,
    ) -> List[BudgetGoalResponse]:
        query = self._owned(BUDGET_GOALS)
        if category_id:
            query = query.where(filter=FieldFilter("categoryId", "==", category_id))
        if period:
            query = query.where(filter=FieldFilter("period", "==", period.value))
        goals = [BudgetGoalResponse.model_validate(from_document(snapshot)) for snapshot in query.stream()]
        epoch = datetime.min.replace(tzinfo=timezone.utc)
        goals.sort(key=lambda goal: goal.created_at or epoch, reverse=True)
        return goals

    @guarded
    def get_budget_goal(self, goal_id: str) -> BudgetGoalResponse:
        return BudgetGoalResponse.model_validate(self._read(BUDGET_GOALS, goal_id, "Budget goal"))

    @guarded
    def create_budget_goal(self, data: BudgetGoalCreate) -> BudgetGoalResponse:
        values = self.prepare_budget_goal(data.model_dump())
        doc_id = self._insert(BUDGET_GOALS, {**values, "user_id": self.user_id})
        return self.get_budget_goal(doc_id)

    @guarded
    def update_budget_goal(self, goal_id: str, values: Dict[str, Any]) -> BudgetGoalResponse:
        current = self.get_budget_goal(goal_id)
        values = self.prepare_budget_goal(dict(values), current)
        self._patch(BUDGET_GOALS, goal_id, values)
        return self.get_budget_goal(goal_id)

    @guarded
    def delete_budget_goal(self, goal_id: str) -> None:
        self._read(BUDGET_GOALS, goal_id, "Budget goal")
        self._collection(BUDGET_GOALS).document(goal_id).delete()

    @guarded
    def put_budget_goal(self, goal: BudgetGoalResponse) -> None:
        self._put(BUDGET_GOALS, goal.id, goal.model_dump())
