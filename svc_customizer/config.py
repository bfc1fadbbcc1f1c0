from __future__ import annotations

from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # ----------------------------
    # Service
    # ----------------------------
    LOG_LEVEL: str = "INFO"
    SERVICE_VERSION: str = "1.0.0"

    # ----------------------------
    # Database
    # ----------------------------
    DATABASE_URL: str = ""
    DB_POOL_MIN_SIZE: int = 1
    DB_POOL_MAX_SIZE: int = 10
    DB_COMMAND_TIMEOUT: float = 30.0

    # Serializable cart commits are retried this many times on conflict
    COMMIT_MAX_ATTEMPTS: int = 3

    # ----------------------------
    # Collaborators
    # ----------------------------
    PRICING_SERVICE_URL: Optional[str] = None
    PRICING_TIMEOUT_SECONDS: float = 15.0

    RENDER_SERVICE_URL: Optional[str] = None
    RENDER_TIMEOUT_SECONDS: float = 60.0

    # ----------------------------
    # Azure Storage (previews + shopper uploads)
    # ----------------------------
    AZURE_STORAGE_CONNECTION_STRING: str = ""
    CUSTOMIZER_CONTAINER: str = "customizer"
    CUSTOMIZER_SAS_HOURS: int = 24 * 7

    UPLOAD_MAX_BYTES: int = 10 * 1024 * 1024

    # ----------------------------
    # Feature gate
    # ----------------------------
    CUSTOMIZER_FEATURE_KEY: str = "customizer.enabled"
    CUSTOMIZER_FEATURE_DEFAULT: bool = False

    # Owner of designs created without an authenticated shopper
    SYSTEM_ACTOR_EMAIL: str = "public-customizer@system.local"

    # ----------------------------
    # Auth (optional shopper identity)
    # ----------------------------
    JWT_SECRET: str = Field(default="", validation_alias="JWT_SECRET")
    JWT_ALG: str = "HS256"
    # X-User-Id is only honored behind a trusted gateway; storefront traffic must use a JWT
    TRUST_X_USER_ID_HEADER: bool = False


settings = Settings()
