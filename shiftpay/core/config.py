import os
from functools import lru_cache
from pathlib import Path

from pydantic import Field, field_validator, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    env: str = Field(default="dev", description="Deployment environment")
    database_url: str = Field(
        default="sqlite:///shiftpay.db",
        description="SQLAlchemy database URL for the shift store",
    )
    log_level: str = "WARNING"
    log_json: bool = Field(default=True, description="JSON log lines; plain key=value text when false")

    # Defaults handed to the engines by the entry point
    warning_hours: float = Field(default=35.0, gt=0)
    critical_hours: float = Field(default=40.0, gt=0)
    target_hours: int = Field(default=80, gt=0)
    max_shift_hours: int = Field(default=24, gt=0, le=48)
    max_rate_multiplier: float = Field(default=2.0, ge=1.0)
    default_break_minutes: int = Field(default=30, ge=0)

    model_config = SettingsConfigDict(env_prefix="SHIFTPAY_", extra="ignore")

    @field_validator("log_level", mode="before")
    @classmethod
    def normalize_level(cls, value: str) -> str:
        return str(value).strip().upper()

    @model_validator(mode="after")
    def check_overtime_ladder(self) -> "Settings":
        if self.critical_hours < self.warning_hours:
            raise ValueError("critical_hours must not be below warning_hours")
        return self


def find_env_file(directory: Path | None = None) -> Path | None:
    """Pick the env file for SHIFTPAY_ENV.

    An explicit SHIFTPAY_ENV_FILE wins; otherwise ``.env.<env>`` and then
    ``.env`` are looked up in the working directory the CLI runs from.
    """
    explicit = os.getenv("SHIFTPAY_ENV_FILE")
    if explicit:
        return Path(explicit)
    directory = directory or Path.cwd()
    env = os.getenv("SHIFTPAY_ENV", "dev")
    for candidate in (directory / f".env.{env}", directory / ".env"):
        if candidate.exists():
            return candidate
    return None


@lru_cache
def get_settings() -> Settings:
    return Settings(_env_file=find_env_file())
