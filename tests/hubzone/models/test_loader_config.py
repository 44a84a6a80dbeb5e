"""
Tests for LoaderConfig and state selection.
"""
from datetime import date
from unittest.mock import MagicMock

import pytest
from pydantic import ValidationError

from src.hubzone.models.config import LoaderConfig
from src.hubzone.models.states import STATE_FIPS_CODES, select_states


def mock_settings():
    settings = MagicMock()
    settings.hubzone_cache_directory = "/tmp/hubzone-cache"
    settings.hubzone_cache_duration_days = 30
    settings.sba_api_endpoint = "https://sba.example.com"
    settings.hubzone_sba_page_size = 500
    settings.tiger_line_base_url = "https://tiger.example.com"
    settings.census_acs_base_url = "https://acs.example.com"
    settings.census_api_key = "secret"
    settings.hubzone_public_dataset_urls = ["https://data.example.com/a.csv"]
    settings.ogr2ogr_path = "/usr/bin/ogr2ogr"
    settings.hubzone_batch_size = 250
    settings.hubzone_max_retries = 5
    settings.hubzone_retry_delay_seconds = 0.5
    settings.hubzone_timeout_seconds = 30.0
    settings.hubzone_enable_notifications = True
    settings.hubzone_dry_run = False
    settings.hubzone_grace_period_days = 1095
    settings.hubzone_poverty_rate_minimum = 25.0
    settings.hubzone_income_ratio_maximum = 0.8
    return settings


class TestLoaderConfig:
    """Tests for LoaderConfig construction."""

    def test_defaults(self):
        config = LoaderConfig()

        assert config.states == []
        assert config.tiger_year == date.today().year - 1
        assert config.acs_year == date.today().year - 1
        assert config.cache_duration_days == 90
        assert config.batch_size == 1000
        assert config.max_retries == 3
        assert config.grace_period_days == 1095

    def test_states_from_comma_string(self):
        config = LoaderConfig(states="6, 36")

        assert config.states == ["06", "36"]

    def test_unknown_state_rejected(self):
        with pytest.raises(ValidationError):
            LoaderConfig(states=["99"])

    def test_from_settings(self):
        config = LoaderConfig.from_settings(mock_settings())

        assert config.cache_directory == "/tmp/hubzone-cache"
        assert config.sba_page_size == 500
        assert config.batch_size == 250
        assert config.census_api_key == "secret"

    def test_from_settings_overrides(self):
        """Test that explicit overrides win and None overrides are ignored."""
        config = LoaderConfig.from_settings(
            mock_settings(),
            dry_run=True,
            cache_directory=None,
            states="06",
            triggered_by="cli",
        )

        assert config.dry_run is True
        assert config.cache_directory == "/tmp/hubzone-cache"
        assert config.states == ["06"]
        assert config.triggered_by == "cli"


class TestSelectStates:
    """Tests for fixed-order state selection."""

    def test_empty_selects_all(self):
        assert select_states([]) == STATE_FIPS_CODES
        assert len(STATE_FIPS_CODES) == 56

    def test_fixed_order_kept(self):
        assert [s.fips for s in select_states(["60", "06", "72"])] == ["06", "72", "60"]

    def test_unknown_code(self):
        with pytest.raises(ValueError):
            select_states(["00"])
