"""
Tests for application settings.
"""

import pytest

from entitlements.config import ConfigurationError, Settings


def make_settings(**overrides) -> Settings:
    return Settings(_env_file=None, **overrides)


class TestSettingsDefaults:
    """Tests for default values."""

    def test_migration_defaults(self):
        config = make_settings()

        assert config.migration_max_attempts == 3
        assert config.migration_backoff_seconds == 1.0
        assert config.migration_pacing_seconds == 0.3
        assert config.revenuecat_receipts_url == "https://api.revenuecat.com/v1/receipts"
        assert config.revenuecat_platform == "android"
        assert config.legacy_lifetime_product_id == "premium_unlock"

    def test_supported_products(self):
        assert make_settings().supported_products == frozenset(
            {"monthly_showseek_sub", "showseek_yearly_sub"}
        )

    def test_supported_products_trims_and_skips_blanks(self):
        config = make_settings(supported_product_ids=" a , ,b,")
        assert config.supported_products == frozenset({"a", "b"})

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("MIGRATION_PACING_SECONDS", "0")
        monkeypatch.setenv("REVENUECAT_API_KEY", "sk_env")

        config = make_settings()

        assert config.migration_pacing_seconds == 0.0
        assert config.revenuecat_api_key == "sk_env"


class TestSettingsValidation:
    """Tests for fail-fast validation."""

    @pytest.mark.parametrize(
        ("overrides", "fragment"),
        [
            ({"migration_max_attempts": 0}, "MIGRATION_MAX_ATTEMPTS"),
            ({"migration_backoff_seconds": -1.0}, "MIGRATION_BACKOFF_SECONDS"),
            ({"migration_pacing_seconds": -0.1}, "MIGRATION_PACING_SECONDS"),
            ({"supported_product_ids": " , "}, "SUPPORTED_PRODUCT_IDS"),
            ({"legacy_lifetime_product_id": ""}, "LEGACY_LIFETIME_PRODUCT_ID"),
        ],
    )
    def test_rejects_invalid_config(self, overrides, fragment):
        with pytest.raises(ConfigurationError, match=fragment):
            make_settings(**overrides)


class TestRequireApiKey:
    """Tests for the credential requirement."""

    def test_missing_key_fails_outside_dry_run(self):
        with pytest.raises(ConfigurationError, match="REVENUECAT_API_KEY"):
            make_settings(revenuecat_api_key="").require_api_key(dry_run=False)

    def test_missing_key_allowed_in_dry_run(self):
        assert make_settings(revenuecat_api_key="").require_api_key(dry_run=True) == ""

    def test_returns_key(self):
        assert make_settings(revenuecat_api_key="sk_live").require_api_key(dry_run=False) == (
            "sk_live"
        )
