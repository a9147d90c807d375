"""Configuration management using Pydantic Settings"""

from typing import Dict

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_fee_rates() -> Dict[str, float]:
    return {
        "mobile_money": 1.5,
        "bank_transfer": 0.5,
        "cash": 0.0,
        "check": 0.0,
    }


class Settings(BaseSettings):
    """Application configuration loaded from environment variables"""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    # Database
    database_url: str = "sqlite:///./coop_ledger.db"
    db_pool_size: int = 10
    db_max_overflow: int = 10
    db_pool_recycle_seconds: int = 3600

    # Service
    service_name: str = "coop-ledger"
    log_level: str = "INFO"

    # Payout provider
    payout_api_base: str = "http://localhost:8010"
    payout_timeout_seconds: float = 5.0
    payout_max_retries: int = 3
    payout_backoff_base: float = 0.5  # Exponential backoff base in seconds
    payout_max_workers: int = 8

    # Redistribution fee percentage per payout method
    fee_rates: Dict[str, float] = Field(default_factory=_default_fee_rates)


settings = Settings()
