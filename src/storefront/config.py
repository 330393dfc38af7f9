"""Runtime settings for the storefront service.

Values are read from ``STOREFRONT_*`` environment variables (or a local
``.env`` file) and cached for the life of the process.
"""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="STOREFRONT_",
        env_file=".env",
        extra="ignore",
    )

    app_name: str = "Storefront"
    environment: str = "development"
    default_currency: str = "INR"

    # Delivery queue
    delivery_max_attempts: int = Field(default=3, ge=1)
    delivery_backoff_base_seconds: float = Field(default=1.0, ge=0)
    delivery_backoff_cap_seconds: float = Field(default=300.0, ge=0)
    delivery_backoff_jitter: float = Field(default=0.0, ge=0, lt=1)
    delivery_workers_per_channel: int = Field(default=2, ge=1)
    # Terminal jobs leave the live queue once older than the retention window;
    # a purge interval of 0 disables the periodic sweep
    delivery_retention_seconds: float = Field(default=86400.0, ge=0)
    delivery_purge_interval_seconds: float = Field(default=300.0, ge=0)

    # Channel credentials; an empty value leaves the channel unconfigured
    email_api_key: str = "dev-email-key"
    sms_api_key: str = "dev-sms-key"
    push_server_key: str = ""

    # In-app notification centre
    notification_auto_hide_seconds: float = 5.0
    notification_error_auto_hide_seconds: float = 10.0
    notification_max_items: int = 50

    # Demo workflow
    workflow_simulation_enabled: bool = True
    workflow_step_delays: list[float] = [1.0, 3.0, 5.0, 8.0]

    inventory_check_enabled: bool = True


@lru_cache
def get_settings() -> Settings:
    return Settings()
