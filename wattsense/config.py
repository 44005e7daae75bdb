"""WattSense Engine configuration — loads from environment and .env file."""

from __future__ import annotations

from datetime import timedelta
from pathlib import Path
from typing import Optional

from pydantic import Field
from pydantic_settings import BaseSettings


def _find_repo_root() -> Path:
    """Walk up from this file to find the repo root (where pyproject.toml lives)."""
    p = Path(__file__).resolve().parent
    while p != p.parent:
        if (p / "pyproject.toml").exists():
            return p
        p = p.parent
    return Path(__file__).resolve().parent.parent


class Settings(BaseSettings):
    """Application settings — populated from env vars or .env file."""

    # App
    app_name: str = "WattSense"
    app_version: str = "0.1.0"
    environment: str = "development"
    debug: bool = False

    # Database
    database_url: str = ""

    # Server
    host: str = "0.0.0.0"
    port: int = 8000

    # Auth — set WATTSENSE_API_KEY to enable API key auth
    api_key: Optional[str] = None

    # Tariff — Rupiah per kWh
    kwh_rate: float = Field(1444, gt=0)

    # Alert policy
    alert_threshold_percent: float = Field(90.0, gt=0)
    alert_throttle_hours: float = Field(24.0, ge=0)

    # Email (SMTP) — alerts are disabled while smtp_host is empty
    smtp_host: str = ""
    smtp_port: int = 587
    smtp_username: str = ""
    smtp_password: str = ""
    smtp_use_tls: bool = True
    email_from: str = "Energy Monitor <no-reply@wattsense.local>"
    smtp_max_attempts: int = Field(2, ge=1)
    smtp_retry_delay: float = Field(1.0, ge=0)

    # Gemini tips
    gemini_api_key: Optional[str] = None
    gemini_model: str = "gemini-1.5-flash"

    # Scheduler (seconds)
    scheduler_enabled: bool = True
    alert_sweep_interval: int = 6 * 60 * 60
    summary_check_interval: int = 60 * 60

    # Paths
    repo_root: Path = _find_repo_root()

    model_config = {"env_prefix": "WATTSENSE_", "env_file": ".env"}

    @property
    def local_dir(self) -> Path:
        return self.repo_root / "local"

    @property
    def data_dir(self) -> Path:
        d = self.local_dir / "data"
        d.mkdir(parents=True, exist_ok=True)
        return d

    @property
    def effective_database_url(self) -> str:
        if self.database_url:
            return self.database_url
        return f"sqlite:///{self.data_dir / 'wattsense.db'}"

    @property
    def alert_throttle(self) -> timedelta:
        return timedelta(hours=self.alert_throttle_hours)


settings = Settings()
