from pathlib import Path

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_API_BASE_URL = "https://api.ironlicensing.com"
DEFAULT_DATA_DIR = Path.home() / ".ironlicensing"


class ClientConfig(BaseSettings):
    # Product identity
    public_key: str = ""
    product_slug: str = ""

    # License Server Configuration
    api_base_url: str = DEFAULT_API_BASE_URL
    http_timeout: float = Field(default=30.0, gt=0)  # seconds

    # Diagnostics
    debug: bool = False

    # Offline cache policy
    enable_offline_cache: bool = True
    cache_validation_minutes: int = Field(default=60, ge=0)
    offline_grace_days: int = Field(default=7, ge=0)

    # Local storage (machine id + cache database)
    data_dir: Path = DEFAULT_DATA_DIR

    model_config = SettingsConfigDict(
        env_prefix="IRONLICENSING_",
        env_file=".env",
        extra="ignore",
        frozen=True,
    )

    @property
    def machine_id_path(self) -> Path:
        return self.data_dir / "machine_id"

    @property
    def cache_db_path(self) -> Path:
        return self.data_dir / "license_cache.db"
