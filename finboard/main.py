import logging

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.encoders import jsonable_encoder
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from finboard.core.errors import FinboardError
from finboard.core.logging_config import configure_logging
from finboard.core.settings import settings
from finboard.routers.auth import router as auth_router
from finboard.routers.budget import router as budget_router
from finboard.routers.categories import router as categories_router
from finboard.routers.dashboard import router as dashboard_router
from finboard.routers.insights import router as insights_router
from finboard.routers.profile import router as profile_router
from finboard.routers.settings import router as settings_router
from finboard.routers.transactions import router as transactions_router
from finboard.schemas.common import make_error_response

logger = logging.getLogger(__name__)

_HTTP_ERROR_CODES = {
    status.HTTP_400_BAD_REQUEST: "VALIDATION_ERROR",
    status.HTTP_401_UNAUTHORIZED: "UNAUTHORIZED",
    status.HTTP_403_FORBIDDEN: "FORBIDDEN",
    status.HTTP_404_NOT_FOUND: "NOT_FOUND",
    status.HTTP_405_METHOD_NOT_ALLOWED: "METHOD_NOT_ALLOWED",
    status.HTTP_409_CONFLICT: "CONFLICT",
}


async def finboard_error_handler(request: Request, exc: FinboardError):
    if exc.status_code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc.message)
    return JSONResponse(
        status_code=exc.status_code,
        content=make_error_response(code=exc.code, message=exc.message, details=exc.details),
    )


async def http_error_handler(request: Request, exc: StarletteHTTPException):
    detail = exc.detail if isinstance(exc.detail, str) else "Request failed"
    details = exc.detail if isinstance(exc.detail, dict) else None
    return JSONResponse(
        status_code=exc.status_code,
        content=make_error_response(
            code=_HTTP_ERROR_CODES.get(exc.status_code, "INTERNAL_ERROR"),
            message=detail,
            details=details,
        ),
        headers=getattr(exc, "headers", None),
    )


async def validation_error_handler(request: Request, exc: RequestValidationError):
    return JSONResponse(
        status_code=422,
        content=make_error_response(
            code="VALIDATION_ERROR",
            message="Request validation failed",
            details={"errors": jsonable_encoder(exc.errors())},
        ),
    )


def create_app() -> FastAPI:
    configure_logging(settings.LOG_LEVEL)

    app = FastAPI(
        title="Finboard API",
        description="Personal finance dashboard: transactions, categories, budgets and insights",
        version="0.1.0",
    )

    app.add_middleware(
        CORSMiddleware,
        allow_origins=settings.CORS_ALLOW_ORIGINS,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.add_exception_handler(FinboardError, finboard_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(RequestValidationError, validation_error_handler)

    app.include_router(auth_router)
    app.include_router(profile_router)
    app.include_router(categories_router)
    app.include_router(transactions_router)
    app.include_router(budget_router)
    app.include_router(dashboard_router)
    app.include_router(insights_router)
    app.include_router(settings_router)

    @app.get("/healthz", tags=["Health Check"])
    async def health_check():
        return {"status": "ok"}

    return app


app = create_app()
