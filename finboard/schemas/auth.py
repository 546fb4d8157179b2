from typing import Optional

from pydantic import BaseModel, EmailStr, Field

from finboard.models import DatabaseBackend


class RegisterRequest(BaseModel):
    email: EmailStr
    # bcrypt only hashes the first 72 bytes
    password: str = Field(..., min_length=6, max_length=72)
    full_name: str = Field(..., min_length=2, max_length=30)


class LoginRequest(BaseModel):
    email: EmailStr
    password: str = Field(..., min_length=1, max_length=72)


class GoogleAuthRequest(BaseModel):
    id_token: str


class AuthUser(BaseModel):
    user_id: str
    email: str
    name: Optional[str] = None
    backend: DatabaseBackend


class AuthData(BaseModel):
    access_token: str
    token_type: str = "bearer"
    user: AuthUser
