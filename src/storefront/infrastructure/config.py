"""Runtime settings, read from ``STOREFRONT_*`` environment variables or ``.env``."""

from __future__ import annotations

from decimal import Decimal
from functools import lru_cache
from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

# Resolve data directory relative to the project root.
# When installed in editable mode the project root is the repo root.
_DEFAULT_DATA_DIR = Path(__file__).resolve().parents[3] / "data"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=".env", env_prefix="STOREFRONT_", extra="ignore")

    data_dir: Path = _DEFAULT_DATA_DIR

    default_split_percentage: Decimal = Field(default=Decimal("0.05"), ge=0, le=1)
    payment_expiry_minutes: int = Field(default=30, gt=0)
    crypto_rate: Decimal = Field(
        default=Decimal("0.001"),
        gt=0,
        description="Crypto units required per minor currency unit of an order total",
    )
    mint_max_workers: int = Field(default=4, ge=1)
    transient_retry_after_seconds: float = 5.0

    instant_payment_api_url: str = "http://localhost:8081"
    instant_payment_api_key: str | None = None
    platform_payout_key: str = ""
    chain_api_url: str = "http://localhost:8082"
    nft_api_url: str = "http://localhost:8083"
    wallet_api_url: str = "http://localhost:8084"
    http_timeout_seconds: float = 15.0

    log_level: str = "INFO"
    log_json: bool = True


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()
