from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, EmailStr, Field

from finboard.schemas.common import StrId


class ProfileUpdate(BaseModel):
    full_name: Optional[str] = Field(None, min_length=2, max_length=30)
    email: Optional[EmailStr] = None
    avatar_url: Optional[str] = Field(None, max_length=2048)


class ProfileResponse(BaseModel):
    model_config = ConfigDict(from_attributes=True)
    id: StrId
    email: str
    full_name: Optional[str] = None
    avatar_url: Optional[str] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None


class AvatarUploadRequest(BaseModel):
    filename: str = Field(..., min_length=1, max_length=255)
    content_type: str = Field(..., pattern=r"^image/(png|jpeg|gif|webp)$")


class AvatarUploadResponse(BaseModel):
    upload_url: str
    object_name: str
    avatar_url: str
