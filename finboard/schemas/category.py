from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, Field, ConfigDict, field_validator

from finboard.models import CategoryType
from finboard.schemas.common import StrId

DEFAULT_CATEGORY_COLOR = "#CBD5E1"


class CategoryIcon(str, Enum):
    SHOPPING = "shopping"
    HOME = "home"
    CAR = "car"
    WORK = "work"
    COFFEE = "coffee"
    GIFT = "gift"
    CREDIT_CARD = "credit-card"
    FOOD = "food"
    TRAVEL = "travel"
    EDUCATION = "education"
    HEALTH = "health"
    INCOME = "income"


_COLOR_PATTERN = r"^#[0-9A-Fa-f]{6}$"


def _clean_name(value: Optional[str]) -> Optional[str]:
    if value is None:
        return value
    value = value.strip()
    if not value:
        raise ValueError("Name cannot be blank")
    return value


class CategoryBase(BaseModel):
    name: str = Field(..., min_length=1, max_length=50)
    icon: Optional[CategoryIcon] = None
    color: Optional[str] = Field(None, pattern=_COLOR_PATTERN)

    clean_name = field_validator("name")(_clean_name)


class CategoryCreate(CategoryBase):
    type: CategoryType


class CategoryUpdate(BaseModel):
    name: Optional[str] = Field(None, min_length=1, max_length=50)
    icon: Optional[CategoryIcon] = None
    color: Optional[str] = Field(None, pattern=_COLOR_PATTERN)
    type: Optional[CategoryType] = None

    clean_name = field_validator("name")(_clean_name)


class CategoryResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: StrId
    user_id: Optional[StrId] = None
    name: str
    icon: Optional[str] = None
    color: Optional[str] = None
    type: CategoryType
    is_default: bool = False
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
