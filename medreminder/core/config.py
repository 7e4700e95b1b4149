from typing import Annotated, List, Optional, Literal
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict
from pydantic import AliasChoices, Field, field_validator, model_validator
from functools import lru_cache
from pathlib import Path
from enum import Enum
import json
import os


class Environment(str, Enum):
    DEVELOPMENT = "development"
    STAGING = "staging"
    PRODUCTION = "production"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", extra="ignore")

    # Environment Configuration
    ENVIRONMENT: Environment = Environment.DEVELOPMENT

    # Project Information
    PROJECT_NAME: str = "MedReminder"
    VERSION: str = "0.1.0"
    API_PREFIX: str = "/api"

    # Server settings
    SERVER_HOST: str = "0.0.0.0"
    SERVER_PORT: int = Field(default=3000, validation_alias=AliasChoices("SERVER_PORT", "PORT"))

    # Storage
    STORAGE_BACKEND: Literal["sqlite", "json"] = "sqlite"
    SQLALCHEMY_DATABASE_URI: Optional[str] = None
    JSON_DB_PATH: Optional[str] = None

    # File Uploads
    UPLOADS_LOCAL_DIR: Optional[str] = None  # derived if not set

    # Timezone used to interpret wall-clock times such as "09:00"
    DEFAULT_TIMEZONE: str = "UTC"

    # Reminder defaults
    DEFAULT_TONE: str = "tone1"
    DEFAULT_REMINDER_TYPE: str = "alarm"
    PRESCRIPTION_SCHEDULE_DAYS: int = Field(default=7, ge=1)

    # Web Push (VAPID)
    VAPID_PUBLIC_KEY: str = ""
    VAPID_PRIVATE_KEY: str = ""
    VAPID_EMAIL: str = "mailto:admin@example.com"

    # Report analysis
    REPORT_MAX_FILE_SIZE: int = 10 * 1024 * 1024
    REPORT_ALLOWED_CONTENT_TYPES: Annotated[List[str], NoDecode] = [
        "application/pdf",
        "image/png",
        "image/jpeg",
        "text/plain",
    ]

    # CORS
    CORS_ORIGINS: Annotated[List[str], NoDecode] = ["*"]

    # API Security
    VALID_API_KEYS: Annotated[List[str], NoDecode] = []

    # Metrics
    METRICS_ENABLED: bool = False

    # Logging
    LOG_LEVEL: str = "INFO"

    # --- Validators & Derived Settings ---
    @field_validator("VALID_API_KEYS", "CORS_ORIGINS", "REPORT_ALLOWED_CONTENT_TYPES", mode="before")
    @classmethod
    def split_comma_separated(cls, v):
        # Accept JSON arrays as well as plain comma-separated strings
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
                if isinstance(parsed, list):
                    return parsed
            except (json.JSONDecodeError, TypeError):
                pass
            return [item.strip() for item in v.split(",") if item.strip()]
        return v

    @model_validator(mode="after")
    def _finalize_paths(self) -> "Settings":
        try:
            project_root = Path(__file__).resolve().parents[2]
        except Exception:
            project_root = Path(os.getcwd())
        data_dir = project_root / "data"

        if not self.SQLALCHEMY_DATABASE_URI:
            self.SQLALCHEMY_DATABASE_URI = f"sqlite:///{data_dir / 'data.db'}"

        if not self.JSON_DB_PATH:
            self.JSON_DB_PATH = str(data_dir / "db.json")

        if not self.UPLOADS_LOCAL_DIR:
            self.UPLOADS_LOCAL_DIR = str(data_dir / "uploads")

        return self

    @property
    def push_enabled(self) -> bool:
        return bool(self.VAPID_PUBLIC_KEY and self.VAPID_PRIVATE_KEY)

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT == Environment.PRODUCTION


@lru_cache
def get_settings() -> Settings:
    return Settings()
