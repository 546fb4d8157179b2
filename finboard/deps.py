import logging
import uuid
from typing import Annotated, Callable, Optional

import jwt
from fastapi import Depends, Header, HTTPException, Request, status
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.orm import Session
from sqlalchemy import select

from finboard.core.errors import ValidationFailed
from finboard.core.security import decode_access_token
from finboard.core.settings import settings
from finboard.db import get_db
from finboard.models import DatabaseBackend, User
from finboard.repositories.base import FinanceRepository
from finboard.repositories.factory import build_repository, get_firestore_factory, resolve_backend

logger = logging.getLogger(__name__)

# OAuth2 Scheme; cookie sessions are accepted as a fallback
oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login", auto_error=False)


class UserInDB:
    def __init__(self, id: str, email: str, name: Optional[str], preferred_backend: DatabaseBackend):
        self.id = id
        self.email = email
        self.name = name
        self.preferred_backend = preferred_backend


async def get_current_user(
    request: Request,
    token: Annotated[Optional[str], Depends(oauth2_scheme)],
    db: Session = Depends(get_db),
) -> UserInDB:
    credentials_exception = HTTPException(
        status_code=status.HTTP_401_UNAUTHORIZED,
        detail="Could not validate credentials",
        headers={"WWW-Authenticate": "Bearer"},
    )

    token = token or request.cookies.get(settings.SESSION_COOKIE_NAME)
    if not token:
        raise credentials_exception

    # 1. Decode JWT Token
    try:
        payload = decode_access_token(token)
        user_id = uuid.UUID(str(payload["sub"]))
    except (jwt.PyJWTError, KeyError, ValueError) as exc:
        logger.info("Rejected access token: %s", exc)
        raise credentials_exception

    # 2. Fetch User from DB
    user = db.execute(select(User).filter(User.id == user_id)).scalar_one_or_none()
    if user is None or not user.is_active:
        raise credentials_exception

    return UserInDB(
        id=str(user.id),
        email=user.email,
        name=user.name,
        preferred_backend=resolve_backend(user.preferred_backend),
    )


def get_database_backend(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    x_database_backend: Annotated[Optional[str], Header()] = None,
) -> DatabaseBackend:
    if x_database_backend:
        try:
            return DatabaseBackend(x_database_backend.lower())
        except ValueError:
            raise ValidationFailed(
                "Unknown database backend",
                details={"allowed": [backend.value for backend in DatabaseBackend]},
            )
    return current_user.preferred_backend


def get_repository(
    current_user: Annotated[UserInDB, Depends(get_current_user)],
    backend: Annotated[DatabaseBackend, Depends(get_database_backend)],
    firestore_factory: Annotated[Callable, Depends(get_firestore_factory)],
    db: Session = Depends(get_db),
) -> FinanceRepository:
    return build_repository(backend, current_user.id, db, firestore_factory)


CurrentUser = Annotated[UserInDB, Depends(get_current_user)]
Repository = Annotated[FinanceRepository, Depends(get_repository)]
