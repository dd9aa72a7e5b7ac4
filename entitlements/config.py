"""
Application Configuration - Pydantic Settings for type-safe config.

NO DICTIONARIES - All configuration is strongly typed.
FAIL FAST - Nonsensical config is rejected at startup.
"""

import sys

from pydantic import model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


class ConfigurationError(Exception):
    """Raised when critical configuration is missing or invalid."""

    pass


class Settings(BaseSettings):
    """Settings loaded from environment variables."""

    # RevenueCat - required for real migrations, optional for dry runs
    revenuecat_api_key: str = ""
    revenuecat_receipts_url: str = "https://api.revenuecat.com/v1/receipts"
    revenuecat_platform: str = "android"

    # Product catalog
    legacy_lifetime_product_id: str = "premium_unlock"
    supported_product_ids: str = "monthly_showseek_sub,showseek_yearly_sub"

    # Migration behaviour
    migration_max_attempts: int = 3
    migration_backoff_seconds: float = 1.0  # Multiplied by attempt number
    migration_pacing_seconds: float = 0.3  # Only after a successful import
    default_checkpoint_file: str = "/tmp/revenuecat-migration-checkpoint.json"
    default_report_file: str = "/tmp/revenuecat-migration-report.json"
    http_timeout_seconds: float = 30.0

    # Firebase - subscriber store and callable functions (validatePurchase)
    firebase_credentials_file: str = ""  # Empty = application default credentials
    firebase_functions_url: str = ""

    # Logging
    log_level: str = "INFO"
    log_format: str = "json"  # json or console

    service_name: str = "entitlement-migration"
    service_version: str = "0.1.0"

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    @property
    def supported_products(self) -> frozenset[str]:
        """Subscription product IDs eligible for migration."""
        return frozenset(
            pid.strip() for pid in self.supported_product_ids.split(",") if pid.strip()
        )

    @model_validator(mode="after")
    def validate_critical_config(self) -> "Settings":
        """
        FAIL FAST: Validate configuration at startup.

        The credential check lives in require_api_key() because a dry run
        is allowed to proceed without it.
        """
        errors: list[str] = []

        if self.migration_max_attempts < 1:
            errors.append(
                f"MIGRATION_MAX_ATTEMPTS must be at least 1, got: {self.migration_max_attempts}"
            )
        if self.migration_backoff_seconds < 0:
            errors.append("MIGRATION_BACKOFF_SECONDS cannot be negative")
        if self.migration_pacing_seconds < 0:
            errors.append("MIGRATION_PACING_SECONDS cannot be negative")
        if not self.supported_products:
            errors.append("SUPPORTED_PRODUCT_IDS must list at least one product")
        if not self.legacy_lifetime_product_id:
            errors.append("LEGACY_LIFETIME_PRODUCT_ID is required but empty")

        if errors:
            raise ConfigurationError(_format_errors(errors))

        return self

    def require_api_key(self, dry_run: bool) -> str:
        """
        Return the RevenueCat API key, failing fast when it is required.

        Raises:
            ConfigurationError: If the key is missing outside a dry run
        """
        if not dry_run and not self.revenuecat_api_key:
            raise ConfigurationError(
                _format_errors(["REVENUECAT_API_KEY is required unless --dry-run is set"])
            )
        return self.revenuecat_api_key


def _format_errors(errors: list[str]) -> str:
    error_msg = "\n".join(
        [
            "",
            "=" * 60,
            "CRITICAL CONFIGURATION ERROR - CANNOT START",
            "=" * 60,
            *[f"  ✗ {e}" for e in errors],
            "=" * 60,
            "",
        ]
    )
    print(error_msg, file=sys.stderr)
    return error_msg


# Global settings instance - validates at import time
settings = Settings()


def get_settings() -> Settings:
    """Get settings instance."""
    return settings
