"""Tests for pipeline configuration.

Covers:
- Default values
- Loading from environment variables
- Type coercion (string env vars → numeric fields)
- Fail-fast range validation
"""

from __future__ import annotations

import os
from unittest.mock import patch

import pytest

from coverage_grid.core.config import ConfigValidationError, CoverageConfig, validate_config


class TestCoverageConfigDefaults:
    """Verify default configuration values."""

    def test_default_batch_size(self) -> None:
        cfg = CoverageConfig()
        assert cfg.batch_size == 200

    def test_default_packing(self) -> None:
        cfg = CoverageConfig()
        assert cfg.packing == "square"

    def test_default_progress_interval(self) -> None:
        cfg = CoverageConfig()
        assert cfg.progress_interval == 500

    def test_default_min_radius(self) -> None:
        cfg = CoverageConfig()
        assert cfg.min_radius_km == 0.5

    def test_default_nominatim(self) -> None:
        cfg = CoverageConfig()
        assert cfg.nominatim_url == "https://nominatim.openstreetmap.org"
        assert cfg.nominatim_user_agent == "coverage-grid/0.1"
        assert cfg.http_timeout_s == 30.0


class TestCoverageConfigFromEnv:
    """Verify loading from environment variables."""

    def test_loads_from_environment(self) -> None:
        """All env vars are read and coerced to correct types."""
        env = {
            "COVERAGE_BATCH_SIZE": "50",
            "COVERAGE_PACKING": " HEX ",
            "COVERAGE_PROGRESS_INTERVAL": "10",
            "COVERAGE_MIN_RADIUS_KM": "0.25",
            "NOMINATIM_URL": "http://localhost:8080",
            "NOMINATIM_USER_AGENT": "tests/1.0",
            "HTTP_TIMEOUT_S": "5",
        }
        with patch.dict(os.environ, env, clear=False):
            cfg = CoverageConfig.from_env()

        assert cfg.batch_size == 50
        assert cfg.packing == "hex"
        assert cfg.progress_interval == 10
        assert cfg.min_radius_km == 0.25
        assert cfg.nominatim_url == "http://localhost:8080"
        assert cfg.nominatim_user_agent == "tests/1.0"
        assert cfg.http_timeout_s == 5.0

    def test_defaults_when_env_missing(self) -> None:
        """Missing environment variables fall back to defaults."""
        with patch.dict(os.environ, {}, clear=True):
            cfg = CoverageConfig.from_env()

        assert cfg == CoverageConfig()

    def test_frozen_immutability(self) -> None:
        """CoverageConfig is frozen (immutable)."""
        cfg = CoverageConfig()
        with pytest.raises(AttributeError):
            cfg.batch_size = 10  # type: ignore[misc]


class TestCoverageConfigValidation:
    """Fail-fast range validation in from_env."""

    def test_batch_size_zero_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"COVERAGE_BATCH_SIZE": "0"}, clear=True),
            pytest.raises(ConfigValidationError, match="COVERAGE_BATCH_SIZE"),
        ):
            CoverageConfig.from_env()

    def test_batch_size_one_accepted(self) -> None:
        with patch.dict(os.environ, {"COVERAGE_BATCH_SIZE": "1"}, clear=True):
            cfg = CoverageConfig.from_env()
        assert cfg.batch_size == 1

    def test_unknown_packing_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"COVERAGE_PACKING": "triangle"}, clear=True),
            pytest.raises(ConfigValidationError, match="COVERAGE_PACKING"),
        ):
            CoverageConfig.from_env()

    def test_progress_interval_zero_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"COVERAGE_PROGRESS_INTERVAL": "0"}, clear=True),
            pytest.raises(ConfigValidationError, match="COVERAGE_PROGRESS_INTERVAL"),
        ):
            CoverageConfig.from_env()

    def test_min_radius_zero_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"COVERAGE_MIN_RADIUS_KM": "0"}, clear=True),
            pytest.raises(ConfigValidationError, match="must be > 0"),
        ):
            CoverageConfig.from_env()

    def test_empty_nominatim_url_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"NOMINATIM_URL": ""}, clear=True),
            pytest.raises(ConfigValidationError, match="NOMINATIM_URL"),
        ):
            CoverageConfig.from_env()

    def test_empty_user_agent_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"NOMINATIM_USER_AGENT": ""}, clear=True),
            pytest.raises(ConfigValidationError, match="NOMINATIM_USER_AGENT"),
        ):
            CoverageConfig.from_env()

    def test_timeout_negative_rejected(self) -> None:
        with (
            patch.dict(os.environ, {"HTTP_TIMEOUT_S": "-1"}, clear=True),
            pytest.raises(ConfigValidationError, match="HTTP_TIMEOUT_S"),
        ):
            CoverageConfig.from_env()

    def test_non_numeric_env_raises_value_error(self) -> None:
        """Non-numeric string for an int field → ValueError."""
        with (
            patch.dict(os.environ, {"COVERAGE_BATCH_SIZE": "abc"}, clear=True),
            pytest.raises(ValueError),
        ):
            CoverageConfig.from_env()

    def test_error_contains_key_and_value(self) -> None:
        """ConfigValidationError includes key and value attributes."""
        with pytest.raises(ConfigValidationError) as exc_info:
            validate_config(CoverageConfig(batch_size=-3))
        assert exc_info.value.key == "COVERAGE_BATCH_SIZE"
        assert exc_info.value.value == -3
