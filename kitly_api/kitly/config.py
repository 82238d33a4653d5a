from decimal import Decimal
from typing import Literal

from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field
import os


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=os.path.join(os.path.dirname(os.path.dirname(__file__)), ".env"), env_file_encoding="utf-8", extra="ignore")

    database_url: str = Field(default="sqlite:///./kitly.db", alias="DATABASE_URL")
    app_env: str = Field(default="development", alias="APP_ENV")
    app_debug: bool = Field(default=True, alias="APP_DEBUG")
    app_url: str = Field(default="http://localhost:8081", alias="APP_URL")
    cors_origins: str = Field(default="*", alias="CORS_ORIGINS")

    # Logging
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    log_format: str = Field(default="text", alias="LOG_FORMAT")  # "json" or "text"

    # DB tuning
    db_connect_timeout: int = Field(default=10, alias="DB_CONNECT_TIMEOUT")

    # Shopify app credentials
    shopify_api_key: str | None = Field(default=None, alias="SHOPIFY_API_KEY")
    shopify_api_secret: str | None = Field(default=None, alias="SHOPIFY_API_SECRET")
    shopify_api_version: str = Field(default="2024-10", alias="SHOPIFY_API_VERSION")
    platform_timeout: float = Field(default=10.0, alias="PLATFORM_TIMEOUT")

    # Billing
    billing_required: bool = Field(default=True, alias="BILLING_REQUIRED")
    billing_auto_request: bool = Field(default=True, alias="BILLING_AUTO_REQUEST")
    billing_plan_name: str = Field(default="Starter Bundle Plan", alias="BILLING_PLAN_NAME")
    billing_plan_price: Decimal = Field(default=Decimal("5.00"), alias="BILLING_PLAN_PRICE")
    billing_currency: str = Field(default="USD", alias="BILLING_CURRENCY")
    billing_trial_days: int = Field(default=0, alias="BILLING_TRIAL_DAYS")
    billing_test_mode: bool = Field(default=True, alias="BILLING_TEST_MODE")

    # When inventory is checked against the catalog
    inventory_check: Literal["add_to_cart", "publish", "both", "off"] = Field(default="both", alias="INVENTORY_CHECK")

    def checks_inventory_on(self, stage: str) -> bool:
        return self.inventory_check == "both" or self.inventory_check == stage


settings = Settings()
