import logging

from fastapi import APIRouter, Depends, Response, status
from fastapi.responses import JSONResponse
from google.auth.exceptions import GoogleAuthError
from google.oauth2 import id_token
from google.auth.transport import requests as google_requests
from sqlalchemy import func, select
from sqlalchemy.orm import Session

from finboard.core.errors import ConflictError
from finboard.core.security import create_access_token, hash_password, verify_password
from finboard.core.settings import settings
from finboard.db import get_db
from finboard.deps import CurrentUser
from finboard.models import Profile, User
from finboard.repositories.factory import resolve_backend
from finboard.schemas.auth import AuthData, AuthUser, GoogleAuthRequest, LoginRequest, RegisterRequest
from finboard.schemas.common import make_error_response, make_success_response

logger = logging.getLogger(__name__)

router = APIRouter(
    prefix="/api/v1/auth",
    tags=["Auth"],
)


def _start_session(response: Response, user: User) -> dict:
    access_token = create_access_token(sub=str(user.id), email=user.email, name=user.name)
    response.set_cookie(
        key=settings.SESSION_COOKIE_NAME,
        value=access_token,
        max_age=settings.ACCESS_TOKEN_EXPIRE_MINUTES * 60,
        httponly=True,
        samesite="lax",
        secure=settings.SESSION_COOKIE_SECURE,
    )
    data = AuthData(
        access_token=access_token,
        user=AuthUser(
            user_id=str(user.id),
            email=user.email,
            name=user.name,
            backend=resolve_backend(user.preferred_backend),
        ),
    )
    return make_success_response(data.model_dump(mode="json"))


def _invalid_credentials(message: str, details: dict | None = None) -> JSONResponse:
    return JSONResponse(
        status_code=status.HTTP_401_UNAUTHORIZED,
        content=make_error_response(code="UNAUTHORIZED", message=message, details=details),
    )


@router.post("/register", status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, response: Response, db: Session = Depends(get_db)):
    email = payload.email.lower()
    existing = db.execute(select(User).filter(func.lower(User.email) == email)).scalar_one_or_none()
    if existing:
        raise ConflictError("An account with this email already exists.")

    db_user = User(email=email, name=payload.full_name, hashed_password=hash_password(payload.password))
    db.add(db_user)
    db.flush()
    db.add(Profile(id=db_user.id, email=email, full_name=payload.full_name))
    db.commit()
    db.refresh(db_user)
    logger.info("Registered user %s", db_user.id)
    return _start_session(response, db_user)


@router.post("/login")
async def login(payload: LoginRequest, response: Response, db: Session = Depends(get_db)):
    db_user = db.execute(
        select(User).filter(func.lower(User.email) == payload.email.lower())
    ).scalar_one_or_none()
    if db_user is None or not db_user.is_active or not verify_password(payload.password, db_user.hashed_password):
        return _invalid_credentials("Invalid email or password")
    return _start_session(response, db_user)


@router.post("/google")
async def auth_google(payload: GoogleAuthRequest, response: Response, db: Session = Depends(get_db)):
    try:
        id_info = id_token.verify_oauth2_token(
            payload.id_token,
            google_requests.Request(),
            settings.GOOGLE_CLIENT_ID,
        )
        if id_info.get("aud") != settings.GOOGLE_CLIENT_ID:
            raise ValueError("Invalid audience")
    except (ValueError, GoogleAuthError) as exc:
        return _invalid_credentials("Invalid Google ID token", details={"reason": str(exc)})

    google_sub = id_info.get("sub")
    email = (id_info.get("email") or "").lower()
    name = id_info.get("name") or email

    # Upsert user: match on the Google subject first, then link by email
    db_user = db.execute(select(User).filter(User.google_sub == google_sub)).scalar_one_or_none()
    if db_user is None and email:
        db_user = db.execute(select(User).filter(func.lower(User.email) == email)).scalar_one_or_none()
    if db_user is None:
        db_user = User(google_sub=google_sub, email=email, name=name)
        db.add(db_user)
        db.flush()
        db.add(Profile(id=db_user.id, email=email, full_name=name[:30] if name else None))
    else:
        db_user.google_sub = google_sub
        db_user.name = db_user.name or name
    db.commit()
    db.refresh(db_user)
    return _start_session(response, db_user)


@router.post("/logout")
async def logout(response: Response):
    response.delete_cookie(settings.SESSION_COOKIE_NAME)
    return make_success_response({"signed_out": True})


@router.get("/me")
async def me(current_user: CurrentUser):
    data = AuthUser(
        user_id=current_user.id,
        email=current_user.email,
        name=current_user.name,
        backend=current_user.preferred_backend,
    )
    return make_success_response(data.model_dump(mode="json"))
