"""Pipeline configuration loaded from environment variables.

All configuration values have sensible defaults. The environment is the
source of truth for hosts (CLI, workers); library callers may construct
``CoverageConfig`` directly.

Fail-fast validation:
    ``from_env()`` raises ``ConfigValidationError`` if any value is out of
    its valid range.  This catches bad configuration at startup instead of
    halfway through a long grid run.
"""

from __future__ import annotations

import os
from dataclasses import dataclass

from coverage_grid.core.constants import DEFAULT_BATCH_SIZE, PACKING_SQUARE, PACKINGS
from coverage_grid.core.exceptions import PipelineError


class ConfigValidationError(PipelineError):
    """Raised when configuration values are out of valid range.

    Attributes:
        key: The configuration key that failed validation.
        value: The invalid value.
        message: Human-readable description of the valid range.
    """

    default_stage = "config"
    default_code = "CONFIG_VALIDATION_FAILED"
    context_fields = ("key", "value")

    def __init__(self, key: str, value: object, message: str) -> None:
        self.key = key
        self.value = value
        self.message = message
        super().__init__(f"Invalid configuration {key}={value!r}: {message}")


@dataclass(frozen=True, slots=True)
class CoverageConfig:
    """Immutable pipeline configuration.

    Attributes:
        batch_size: Maximum number of lines per output batch.
        packing: Lattice packing, ``"square"`` or ``"hex"``.
        progress_interval: Emit a progress event every N evaluated candidates.
        min_radius_km: Smallest radius a host accepts from user input.
        nominatim_url: Base URL of the place-name lookup service.
        nominatim_user_agent: User-Agent header sent to the lookup service.
        http_timeout_s: Timeout for place lookup requests in seconds.
    """

    batch_size: int = DEFAULT_BATCH_SIZE
    packing: str = PACKING_SQUARE
    progress_interval: int = 500
    min_radius_km: float = 0.5
    nominatim_url: str = "https://nominatim.openstreetmap.org"
    nominatim_user_agent: str = "coverage-grid/0.1"
    http_timeout_s: float = 30.0

    @classmethod
    def from_env(cls) -> CoverageConfig:
        """Load and validate configuration from environment variables.

        Raises:
            ConfigValidationError: If a value is out of range or a
                required string value is empty.
            ValueError: If a numeric environment variable cannot be
                parsed (e.g. ``COVERAGE_BATCH_SIZE=abc``).
        """
        config = cls(
            batch_size=int(os.getenv("COVERAGE_BATCH_SIZE", str(DEFAULT_BATCH_SIZE))),
            packing=os.getenv("COVERAGE_PACKING", PACKING_SQUARE).strip().lower(),
            progress_interval=int(os.getenv("COVERAGE_PROGRESS_INTERVAL", "500")),
            min_radius_km=float(os.getenv("COVERAGE_MIN_RADIUS_KM", "0.5")),
            nominatim_url=os.getenv("NOMINATIM_URL", "https://nominatim.openstreetmap.org"),
            nominatim_user_agent=os.getenv("NOMINATIM_USER_AGENT", "coverage-grid/0.1"),
            http_timeout_s=float(os.getenv("HTTP_TIMEOUT_S", "30")),
        )
        validate_config(config)
        return config


def validate_config(config: CoverageConfig) -> None:
    """Validate configuration ranges.  Raises ``ConfigValidationError``."""
    if config.batch_size < 1:
        raise ConfigValidationError(
            "COVERAGE_BATCH_SIZE",
            config.batch_size,
            "must be >= 1 (lines per batch)",
        )

    if config.packing not in PACKINGS:
        raise ConfigValidationError(
            "COVERAGE_PACKING",
            config.packing,
            f"must be one of {sorted(PACKINGS)}",
        )

    if config.progress_interval < 1:
        raise ConfigValidationError(
            "COVERAGE_PROGRESS_INTERVAL",
            config.progress_interval,
            "must be >= 1 (candidates)",
        )

    if config.min_radius_km <= 0:
        raise ConfigValidationError(
            "COVERAGE_MIN_RADIUS_KM",
            config.min_radius_km,
            "must be > 0 (kilometres)",
        )

    if not config.nominatim_url:
        raise ConfigValidationError(
            "NOMINATIM_URL",
            config.nominatim_url,
            "must not be empty",
        )

    if not config.nominatim_user_agent:
        raise ConfigValidationError(
            "NOMINATIM_USER_AGENT",
            config.nominatim_user_agent,
            "must not be empty",
        )

    if config.http_timeout_s <= 0:
        raise ConfigValidationError(
            "HTTP_TIMEOUT_S",
            config.http_timeout_s,
            "must be > 0 (seconds)",
        )
