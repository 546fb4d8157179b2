from decimal import Decimal
from typing import Annotated, Any, Optional
from uuid import UUID

from pydantic import BaseModel, BeforeValidator, PlainSerializer


def _stringify_id(value: Any) -> Any:
    if isinstance(value, UUID):
        return str(value)
    return value


# Record ids are opaque strings at the API and repository boundary
StrId = Annotated[str, BeforeValidator(_stringify_id)]

# Decimal internally, plain JSON numbers on the wire
Money = Annotated[Decimal, PlainSerializer(float, return_type=float, when_used="json")]


class ErrorObject(BaseModel):
    code: str
    message: str
    details: Optional[dict[str, Any]] = None


class ResponseEnvelope(BaseModel):
    success: bool
    data: Any | None
    error: Optional[ErrorObject] = None


def make_success_response(data: Any) -> dict[str, Any]:
    return {"success": True, "data": data, "error": None}


def make_error_response(code: str, message: str, details: Optional[dict[str, Any]] = None) -> dict[str, Any]:
    return {
        "success": False,
        "data": None,
        "error": {
            "code": code,
            "message": message,
            "details": details or {},
        },
    }


def updated_fields(model: BaseModel, nullable: tuple[str, ...] = ()) -> dict[str, Any]:
    """Fields the client sent, dropping explicit nulls for required columns."""
    return {
        key: value
        for key, value in model.model_dump(exclude_unset=True).items()
        if value is not None or key in nullable
    }
