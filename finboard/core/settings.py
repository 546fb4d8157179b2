from pathlib import Path
from typing import List

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve repo root: .../finboard/core/settings.py -> parents[2] == repo root
_REPO_ROOT = Path(__file__).resolve().parents[2]
_ENV_FILE = _REPO_ROOT / ".env"

_DEV_SECRET_KEY = "finboard-development-secret-key-change-me"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=str(_ENV_FILE),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Environment
    ENV: str = "development"
    LOG_LEVEL: str = "INFO"

    # Relational backend
    DATABASE_URL: str = "sqlite:///./finboard.db"

    # JWT (do not hardcode secrets; set via .env)
    SECRET_KEY: str = ""
    ALGORITHM: str = "HS256"
    ACCESS_TOKEN_EXPIRE_MINUTES: int = 60

    # Session cookie (browser clients)
    SESSION_COOKIE_NAME: str = "finboard_session"
    SESSION_COOKIE_SECURE: bool = False

    # CORS (local frontend dev)
    CORS_ALLOW_ORIGINS: List[str] = [
        "http://localhost",
        "http://localhost:3000",
        "http://localhost:5173",
        "http://127.0.0.1",
        "http://127.0.0.1:3000",
        "http://127.0.0.1:5173",
    ]

    # Google SSO
    GOOGLE_CLIENT_ID: str = ""

    # Storage backend selection: "relational" or "document"
    DEFAULT_DATABASE_BACKEND: str = "relational"

    # Firestore (document backend)
    FIRESTORE_PROJECT: str = ""
    FIRESTORE_DATABASE: str = "(default)"

    # GCS / avatar uploads
    GOOGLE_CLOUD_PROJECT: str = ""
    GCS_BUCKET_NAME: str = ""
    GCS_BASE_PATH: str = "finboard"
    SIGNED_URL_EXPIRATION_SECONDS: int = 900
    GOOGLE_APPLICATION_CREDENTIALS: str = ""

    # Display / budgets
    CURRENCY_SYMBOL: str = "$"
    BUDGET_ALERT_THRESHOLD: int = 80
    BUDGET_CRITICAL_THRESHOLD: int = 90
    DEFAULT_PAGE_SIZE: int = 10

    @model_validator(mode="after")
    def _check_secret_key(self) -> "Settings":
        if not self.SECRET_KEY:
            if self.ENV != "development":
                raise ValueError("SECRET_KEY must be set outside development")
            self.SECRET_KEY = _DEV_SECRET_KEY
        return self


settings = Settings()
