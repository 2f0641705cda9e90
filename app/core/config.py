from pydantic_settings import BaseSettings
from pydantic import field_validator


class Settings(BaseSettings):
    APP_NAME: str = "Field Service Appointments API"

    # REQUIRED in .env
    JWT_SECRET: str
    JWT_ALG: str = "HS256"
    JWT_EXPIRE_MINUTES: int = 60 * 12  # one shift

    DATABASE_URL: str = "sqlite:///./appointments.db"

    # Evidence uploads
    UPLOAD_DIR: str = "uploads"
    MAX_UPLOAD_MB: int = 8
    MAX_STAGED_PHOTOS: int = 10  # per worker submission

    # Customer-facing link, e.g. https://app.example.com
    PUBLIC_BASE_URL: str = "http://localhost:8000"

    RATING_COMMENT_MAX: int = 500

    SEED_DEMO_USERS: bool = True
    LOG_LEVEL: str = "INFO"

    class Config:
        env_file = ".env"

    @field_validator("JWT_SECRET")
    @classmethod
    def validate_secret(cls, v: str) -> str:
        if not v or len(v.strip()) < 32:
            raise ValueError("JWT_SECRET must be set and at least 32 characters.")
        if "CHANGE_ME" in v.upper():
            raise ValueError("JWT_SECRET looks like a placeholder. Set a real secret.")
        return v.strip()

    @field_validator("PUBLIC_BASE_URL")
    @classmethod
    def strip_trailing_slash(cls, v: str) -> str:
        return v.rstrip("/")


settings = Settings()
