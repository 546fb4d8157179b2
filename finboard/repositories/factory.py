import logging
from functools import lru_cache
from typing import Callable

from google.cloud import firestore
from sqlalchemy.orm import Session

from finboard.core.settings import settings
from finboard.models import DatabaseBackend
from finboard.repositories.base import FinanceRepository
from finboard.repositories.document import DocumentRepository
from finboard.repositories.relational import RelationalRepository

logger = logging.getLogger(__name__)


@lru_cache
def _get_firestore_client():
    # Authenticates using GOOGLE_APPLICATION_CREDENTIALS env var or metadata server
    logger.info("Creating Firestore client for database %s", settings.FIRESTORE_DATABASE)
    return firestore.Client(
        project=settings.FIRESTORE_PROJECT or None,
        database=settings.FIRESTORE_DATABASE,
    )


def get_firestore_factory() -> Callable:
    """Dependency returning a zero-arg callable so relational users never build a client."""
    return _get_firestore_client


def resolve_backend(value) -> DatabaseBackend:
    if isinstance(value, DatabaseBackend):
        return value
    if value:
        return DatabaseBackend(value)
    return DatabaseBackend(settings.DEFAULT_DATABASE_BACKEND)


def build_repository(
    backend: DatabaseBackend,
    user_id: str,
    db: Session,
    firestore_factory: Callable,
) -> FinanceRepository:
    if backend == DatabaseBackend.DOCUMENT:
        return DocumentRepository(firestore_factory(), user_id)
    return RelationalRepository(db, user_id)
