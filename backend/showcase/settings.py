from functools import lru_cache

from pydantic import AliasChoices, Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_prefix="",
        extra="ignore",
    )

    app_name: str = "showcase"
    environment: str = Field(default="local", validation_alias=AliasChoices("ENVIRONMENT", "SHOWCASE_ENVIRONMENT"))
    database_url: str = Field(
        default="postgresql+asyncpg://postgres:postgres@db:5432/showcase",
        validation_alias=AliasChoices("DATABASE_URL", "SHOWCASE_DATABASE_URL"),
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("LOG_LEVEL", "SHOWCASE_LOG_LEVEL"))
    session_ttl_hours: int = Field(default=24, validation_alias=AliasChoices("SESSION_TTL_HOURS", "SHOWCASE_SESSION_TTL_HOURS"))
    session_cookie_name: str = Field(default="session", validation_alias=AliasChoices("SESSION_COOKIE_NAME", "SHOWCASE_SESSION_COOKIE_NAME"))
    default_page_size: int = Field(default=6, validation_alias=AliasChoices("DEFAULT_PAGE_SIZE", "SHOWCASE_DEFAULT_PAGE_SIZE"))
    comments_page_size: int = Field(default=10, validation_alias=AliasChoices("COMMENTS_PAGE_SIZE", "SHOWCASE_COMMENTS_PAGE_SIZE"))
    trending_limit: int = Field(default=4, validation_alias=AliasChoices("TRENDING_LIMIT", "SHOWCASE_TRENDING_LIMIT"))
    max_page_size: int = Field(default=100, validation_alias=AliasChoices("MAX_PAGE_SIZE", "SHOWCASE_MAX_PAGE_SIZE"))
    url_metadata_enabled: bool = Field(default=True, validation_alias=AliasChoices("URL_METADATA_ENABLED", "SHOWCASE_URL_METADATA_ENABLED"))
    url_metadata_timeout_sec: float = Field(default=10.0, validation_alias=AliasChoices("URL_METADATA_TIMEOUT_SEC", "SHOWCASE_URL_METADATA_TIMEOUT_SEC"))
    default_project_image: str = Field(
        default="/images/default-project.jpg",
        validation_alias=AliasChoices("DEFAULT_PROJECT_IMAGE", "SHOWCASE_DEFAULT_PROJECT_IMAGE"),
    )

    @property
    def async_database_url(self) -> str:
        if self.database_url.startswith("postgresql+"):
            return self.database_url
        if self.database_url.startswith("postgresql://"):
            return self.database_url.replace("postgresql://", "postgresql+asyncpg://", 1)
        return self.database_url


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
