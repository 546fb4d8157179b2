import logging
import uuid
from typing import Annotated, Callable

from fastapi import APIRouter, Depends
from sqlalchemy import select
from sqlalchemy.orm import Session

from finboard.core.errors import NotFoundError
from finboard.db import get_db
from finboard.deps import CurrentUser
from finboard.models import DatabaseBackend, User
from finboard.repositories.document import DocumentRepository
from finboard.repositories.factory import build_repository, get_firestore_factory
from finboard.repositories.relational import RelationalRepository
from finboard.schemas.common import make_success_response
from finboard.schemas.database import DatabaseSelection, DatabaseSettings
from finboard.services.migration import migrate_to_document

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/settings",
    tags=["Settings"],
)


def _settings_payload(backend: DatabaseBackend) -> dict:
    data = DatabaseSettings(backend=backend, available=list(DatabaseBackend))
    return make_success_response(data.model_dump(mode="json"))


@router.get("/database")
async def read_database_settings(current_user: CurrentUser):
    return _settings_payload(current_user.preferred_backend)


@router.put("/database")
async def update_database_settings(
    selection: DatabaseSelection,
    current_user: CurrentUser,
    firestore_factory: Annotated[Callable, Depends(get_firestore_factory)],
    db: Session = Depends(get_db),
):
    db_user = db.execute(select(User).filter(User.id == uuid.UUID(current_user.id))).scalar_one()

    # Make sure the profile exists in the target store before switching to it
    repo = build_repository(selection.backend, current_user.id, db, firestore_factory)
    try:
        repo.get_profile()
    except NotFoundError:
        repo.create_profile(email=current_user.email, full_name=(current_user.name or "")[:30] or None)

    db_user.preferred_backend = selection.backend
    db.commit()
    logger.info("User %s switched to the %s backend", current_user.id, selection.backend.value)
    return _settings_payload(selection.backend)


@router.post("/database/migrate")
async def migrate_database(
    current_user: CurrentUser,
    firestore_factory: Annotated[Callable, Depends(get_firestore_factory)],
    db: Session = Depends(get_db),
):
    source = RelationalRepository(db, current_user.id)
    target = DocumentRepository(firestore_factory(), current_user.id)
    result = migrate_to_document(source, target)
    return make_success_response(result.model_dump(mode="json"))
