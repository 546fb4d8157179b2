import logging
import uuid
from datetime import timedelta
from pathlib import PurePosixPath
from typing import Tuple

from google.cloud import storage

from finboard.core.errors import BackendUnavailable
from finboard.core.settings import settings

logger = logging.getLogger(__name__)


def _get_storage_client():
    # Authenticates using GOOGLE_APPLICATION_CREDENTIALS env var or metadata server
    if settings.GOOGLE_APPLICATION_CREDENTIALS:
        return storage.Client.from_service_account_json(
            json_credentials_path=settings.GOOGLE_APPLICATION_CREDENTIALS,
            project=settings.GOOGLE_CLOUD_PROJECT or None,
        )
    return storage.Client(project=settings.GOOGLE_CLOUD_PROJECT or None)


def avatar_object_name(user_id: str, filename: str) -> str:
    suffix = PurePosixPath(filename).suffix.lower()
    return f"{settings.GCS_BASE_PATH}/avatars/{user_id}/{uuid.uuid4().hex}{suffix}"


def public_url(object_name: str) -> str:
    return f"https://storage.googleapis.com/{settings.GCS_BUCKET_NAME}/{object_name}"


def generate_signed_upload_url(object_name: str, content_type: str) -> str:
    client = _get_storage_client()
    bucket = client.bucket(settings.GCS_BUCKET_NAME)
    blob = bucket.blob(object_name)

    # Generate a v4 signed URL for uploading a blob as a PUT request.
    # A content type header is required to upload through the signed URL.
    url = blob.generate_signed_url(
        version="v4",
        method="PUT",
        expiration=timedelta(seconds=settings.SIGNED_URL_EXPIRATION_SECONDS),
        content_type=content_type,
    )
    return url


def generate_avatar_upload_url(user_id: str, filename: str, content_type: str) -> Tuple[str, str, str]:
    """Return (upload_url, object_name, avatar_url) for a new avatar image."""
    if not settings.GCS_BUCKET_NAME:
        raise BackendUnavailable("Avatar storage is not configured")
    object_name = avatar_object_name(user_id, filename)
    upload_url = generate_signed_upload_url(object_name, content_type)
    logger.info("Issued avatar upload URL for user %s: %s", user_id, object_name)
    return upload_url, object_name, public_url(object_name)
