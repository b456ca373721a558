from functools import lru_cache
from typing import Annotated, List

from pydantic import Field, field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    app_name: str = Field(default="Salon Booking API")
    cors_origins: Annotated[List[str], NoDecode] = Field(
        default_factory=lambda: [
            "http://localhost:8080",
            "http://127.0.0.1:8080",
        ]
    )
    admin_token: str | None = Field(
        default=None
    )
    admin_email: str | None = Field(
        default=None
    )
    daily_capacity: int = Field(
        default=15, ge=1
    )
    seed_catalog: bool = Field(
        default=True
    )
    uploads_dir: str = Field(
        default="uploads"
    )
    max_images_per_service: int = Field(
        default=8, ge=1
    )
    notification_workers: int = Field(
        default=2, ge=1
    )
    smtp_host: str | None = Field(
        default=None
    )
    smtp_port: int = Field(
        default=587
    )
    smtp_user: str | None = Field(
        default=None
    )
    smtp_password: str | None = Field(
        default=None
    )
    sender_email: str | None = Field(
        default=None
    )

    model_config = SettingsConfigDict(env_prefix="SALON_", case_sensitive=False)

    @field_validator("cors_origins", mode="before")
    def _split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def smtp_configured(self) -> bool:
        return bool(
            self.smtp_host and self.smtp_user and self.smtp_password and self.sender_email
        )


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Return cached application settings."""

    return Settings()
