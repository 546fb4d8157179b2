from datetime import date
from typing import Optional

from fastapi import APIRouter, File, Query, UploadFile, status

from finboard.core.settings import settings
from finboard.deps import Repository
from finboard.schemas.common import make_success_response, updated_fields
from finboard.schemas.transaction import (
    AmountRange,
    SortDirection,
    SortField,
    TransactionCreate,
    TransactionQuery,
    TransactionUpdate,
)
from finboard.services.csv_import import import_transactions

router = APIRouter(
    prefix="/api/v1/transactions",
    tags=["Transactions"],
)


@router.get("")
async def list_transactions(
    repo: Repository,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
    category_id: Optional[str] = None,
    search: Optional[str] = None,
    amount_range: AmountRange = AmountRange.ALL,
    sort_field: SortField = SortField.TRANSACTION_DATE,
    sort_direction: SortDirection = SortDirection.DESC,
    page: int = Query(1, ge=1),
    page_size: Optional[int] = Query(None, ge=1, le=100),
):
    query = TransactionQuery(
        start_date=start_date,
        end_date=end_date,
        category_id=category_id,
        search=search,
        amount_range=amount_range,
        sort_field=sort_field,
        sort_direction=sort_direction,
        page=page,
        page_size=page_size or settings.DEFAULT_PAGE_SIZE,
    )
    return make_success_response(repo.list_transactions(query).model_dump(mode="json"))


@router.post("/import")
async def import_csv(repo: Repository, file: UploadFile = File(...)):
    content = await file.read()
    result = import_transactions(repo, content)
    return make_success_response(result.model_dump())


@router.get("/{transaction_id}")
async def read_transaction(transaction_id: str, repo: Repository):
    return make_success_response(repo.get_transaction(transaction_id).model_dump(mode="json"))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_transaction(transaction_in: TransactionCreate, repo: Repository):
    return make_success_response(repo.create_transaction(transaction_in).model_dump(mode="json"))


@router.patch("/{transaction_id}")
async def update_transaction(transaction_id: str, transaction_in: TransactionUpdate, repo: Repository):
    update_data = updated_fields(transaction_in, nullable=("notes",))
    if update_data:
        transaction = repo.update_transaction(transaction_id, update_data)
    else:
        transaction = repo.get_transaction(transaction_id)
    return make_success_response(transaction.model_dump(mode="json"))


@router.delete("/{transaction_id}")
async def delete_transaction(transaction_id: str, repo: Repository):
    repo.delete_transaction(transaction_id)
    return make_success_response({"id": transaction_id, "deleted": True})
