"""Runtime configuration, read from ``RMS_*`` environment variables or ``.env``."""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="RMS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Storage
    data_dir: Path = Field(default=Path("data"))

    # Scheduling
    min_lead_time_minutes: int = Field(default=60, ge=0)
    slot_granularity_minutes: int = Field(default=30, gt=0)
    default_visit_minutes: int = Field(default=120, gt=0)
    advisor_gap_cap_minutes: int = Field(default=30, gt=0)

    # Transactions
    max_transaction_retries: int = Field(default=3, ge=1)

    # Background checks
    reconciliation_interval_seconds: float = Field(default=60.0, gt=0)
    acceptance_window_days: int = Field(default=7, ge=0)  # 0 disables auto-acceptance

    # Logging
    log_level: str = Field(default="INFO")
    log_json: bool = Field(default=False)

    @property
    def store_path(self) -> Path:
        return self.data_dir / "rms.json"

    @property
    def roster_path(self) -> Path:
        return self.data_dir / "shifts.json"


@lru_cache
def get_settings() -> Settings:
    return Settings()
