from typing import Optional

from fastapi import APIRouter, status

from finboard.deps import Repository
from finboard.models import CategoryType
from finboard.schemas.category import CategoryCreate, CategoryUpdate
from finboard.schemas.common import make_success_response, updated_fields

router = APIRouter(
    prefix="/api/v1/categories",
    tags=["Categories"]
)


@router.get("")
async def read_categories(repo: Repository, type: Optional[CategoryType] = None):
    categories = repo.list_categories(type=type)
    return make_success_response([cat.model_dump(mode="json") for cat in categories])


@router.get("/{category_id}")
async def read_category(category_id: str, repo: Repository):
    return make_success_response(repo.get_category(category_id).model_dump(mode="json"))


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_category(category_in: CategoryCreate, repo: Repository):
    return make_success_response(repo.create_category(category_in).model_dump(mode="json"))


@router.patch("/{category_id}")
async def update_category(category_id: str, category_in: CategoryUpdate, repo: Repository):
    update_data = updated_fields(category_in, nullable=("icon", "color"))
    if update_data:
        category = repo.update_category(category_id, update_data)
    else:
        category = repo.get_category(category_id)
    return make_success_response(category.model_dump(mode="json"))


@router.delete("/{category_id}")
async def delete_category(category_id: str, repo: Repository):
    repo.delete_category(category_id)
    return make_success_response({"id": category_id, "deleted": True})
