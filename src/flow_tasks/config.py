from __future__ import annotations

from pathlib import Path
from typing import ClassVar, final

from pydantic import AliasChoices, Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


_API_TOKEN_VALIDATION_ALIAS = AliasChoices("API_TOKEN", "TODOIST_API_TOKEN")

DEFAULT_SYNC_URL = "https://api.todoist.com/sync/v9"


@final
class Settings(BaseSettings):
    model_config: ClassVar[SettingsConfigDict] = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        populate_by_name=True,
        extra="ignore",
    )
    app_name: str = "Flow Tasks"

    # Environment (ENVIRONMENT): development | production
    environment: str = "development"

    # Primary env: API_TOKEN; also accept TODOIST_API_TOKEN as alias.
    api_token: str = Field(default="", validation_alias=_API_TOKEN_VALIDATION_ALIAS)
    sync_url: str = DEFAULT_SYNC_URL
    request_timeout_seconds: float = 15.0

    # Local replica snapshot lives in <data_dir>/sync.json
    data_dir: str = ".data/flow_tasks"

    log_level: str = "INFO"

    @model_validator(mode="after")
    def _validate_production_settings(self) -> "Settings":  # pyright: ignore[reportUnusedFunction]
        if self.environment.strip().lower() != "production":
            return self

        errors: list[str] = []
        if not self.api_token.strip():
            errors.append("API_TOKEN must be set in production")
        if not self.sync_url.strip().lower().startswith("https://"):
            errors.append("SYNC_URL must use https in production")

        if errors:
            raise ValueError("Invalid production settings: " + "; ".join(errors))
        return self

    def sync_base_url(self) -> str:
        return self.sync_url.strip().rstrip("/")

    def data_path(self) -> Path:
        return Path(self.data_dir).expanduser()

    def security_warnings(self) -> list[str]:
        warnings: list[str] = []
        if not self.api_token.strip():
            warnings.append("API_TOKEN is empty; sync requests will be rejected")
        if self.sync_url.strip().lower().startswith("http://"):
            warnings.append("SYNC_URL is plain http; the API token is sent unencrypted")
        return warnings


settings = Settings()
