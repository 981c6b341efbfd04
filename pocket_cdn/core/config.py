from functools import lru_cache
from typing import Literal

from pydantic import Field, HttpUrl, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
    )

    env: Literal["local", "prod", "test"] = Field(default="local", alias="ENV")
    debug: bool = Field(default=False, alias="DEBUG")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    api_key: str | None = Field(default=None, alias="API_KEY")
    view_list_with_pass: bool = Field(default=False, alias="VIEW_LIST_WITH_PASS")
    upload_link_ttl_hours: int = Field(default=12, gt=0, alias="UPLOAD_LINK_TTL_HOURS")

    db_url: str = Field(
        default="sqlite+aiosqlite:///./pocket_cdn.db",
        alias="DATABASE_URL",
    )
    db_auto_create: bool = Field(default=True, alias="DB_AUTO_CREATE")

    storage_backend: Literal["local", "s3"] = Field(default="local", alias="STORAGE_BACKEND")
    local_storage_dir: str = Field(default="./storage", alias="LOCAL_STORAGE_DIR")

    s3_endpoint: HttpUrl | None = Field(default=None, alias="S3_ENDPOINT_URL")
    s3_access_key: str | None = Field(default=None, alias="S3_ACCESS_KEY")
    s3_secret_key: str | None = Field(default=None, alias="S3_SECRET_KEY")
    s3_region: str | None = Field(default=None, alias="S3_REGION")
    s3_bucket: str = Field(default="pocket-cdn", alias="S3_BUCKET")

    @field_validator("api_key", mode="before")
    @classmethod
    def _blank_api_key(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return None
        return value

    @field_validator("view_list_with_pass", mode="before")
    @classmethod
    def _blank_flag(cls, value: object) -> object:
        if isinstance(value, str) and not value.strip():
            return False
        return value

    @property
    def auth_enabled(self) -> bool:
        return self.api_key is not None

    @property
    def listing_misconfigured(self) -> bool:
        """Listing is restricted but there is no key to check against."""
        return self.view_list_with_pass and not self.auth_enabled


@lru_cache
def get_settings() -> Settings:
    return Settings()
