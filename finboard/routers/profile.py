from fastapi import APIRouter

from finboard.deps import CurrentUser, Repository
from finboard.schemas.common import make_success_response, updated_fields
from finboard.schemas.profile import AvatarUploadRequest, AvatarUploadResponse, ProfileUpdate
from finboard.services.gcs import generate_avatar_upload_url

router = APIRouter(
    prefix="/api/v1/profile",
    tags=["Profile"],
)


@router.get("")
async def read_profile(repo: Repository):
    return make_success_response(repo.get_profile().model_dump(mode="json"))


@router.patch("")
async def update_profile(profile_in: ProfileUpdate, repo: Repository):
    update_data = updated_fields(profile_in, nullable=("full_name", "avatar_url"))
    profile = repo.update_profile(update_data) if update_data else repo.get_profile()
    return make_success_response(profile.model_dump(mode="json"))


@router.post("/avatar-upload-url")
async def create_avatar_upload_url(payload: AvatarUploadRequest, current_user: CurrentUser):
    upload_url, object_name, avatar_url = generate_avatar_upload_url(
        current_user.id, payload.filename, payload.content_type
    )
    data = AvatarUploadResponse(upload_url=upload_url, object_name=object_name, avatar_url=avatar_url)
    return make_success_response(data.model_dump())
