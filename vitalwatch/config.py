"""
Configuration management with environment variable support and validation.

Design principles:
- Environment-specific configs (dev, staging, prod)
- Validation at startup (fail fast)
- Type safety with Pydantic
"""

import os
from functools import lru_cache
from typing import Literal, cast

from dotenv import load_dotenv
from pydantic import BaseModel, Field, model_validator

# Load environment variables from .env file
load_dotenv()


class MonitoringConfig(BaseModel):
    """Evaluation pipeline configuration."""

    tick_interval_seconds: float = Field(
        default=5.0, gt=0.0, description="Interval between evaluation ticks"
    )
    source_timeout_seconds: float = Field(
        default=3.0, gt=0.0, description="Timeout for a single reading source"
    )

    # Window sizes
    window_capacity: int = Field(default=100, gt=0, description="Readings kept per subject")
    outlier_window: int = Field(default=10, ge=5, description="Points used for z-score stats")
    min_outlier_samples: int = Field(default=5, gt=1, description="Minimum points for outliers")
    pattern_window: int = Field(default=20, ge=10, description="Points used by pattern checks")

    # Alert settings
    alert_capacity: int = Field(default=20, gt=0, description="Alerts retained per subject")
    max_candidates_per_pass: int = Field(
        default=5, gt=0, description="Most recent candidates kept from one detection pass"
    )
    enable_threshold_rules: bool = Field(
        default=False, description="Also raise alerts from absolute vital thresholds"
    )

    @model_validator(mode="after")
    def windows_fit_capacity(self) -> "MonitoringConfig":
        if max(self.outlier_window, self.pattern_window) > self.window_capacity:
            raise ValueError("analysis windows cannot exceed window_capacity")
        if self.min_outlier_samples > self.outlier_window:
            raise ValueError("min_outlier_samples cannot exceed outlier_window")
        return self


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )


class AppConfig(BaseModel):
    """Main application configuration combining all subsystems."""

    environment: Literal["development", "staging", "production"] = Field(
        default="development", description="Environment"
    )
    debug: bool = Field(default=False, description="Enable debug mode")

    monitoring: MonitoringConfig = Field(default_factory=MonitoringConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    @model_validator(mode="after")
    def debug_only_in_dev(self) -> "AppConfig":
        """Ensure debug mode is only allowed in development environment."""
        if self.debug and self.environment != "development":
            raise ValueError("debug mode is only allowed in development environment")
        return self


def load_config_from_env() -> AppConfig:
    """Load configuration from environment variables with validation."""

    def _env_to_literal(val: str) -> Literal["development", "staging", "production"]:
        v = val.strip().lower()
        if v in {"dev", "development"}:
            return "development"
        if v in {"stage", "staging"}:
            return "staging"
        return "production"

    def _level_to_literal(val: str) -> Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"]:
        v = val.strip().upper()
        return cast(
            Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
            v if v in {"DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"} else "INFO",
        )

    def _parse_bool(val: str | None, default: bool) -> bool:
        if val is None:
            return default
        return val.strip().lower() in {"1", "true", "yes", "on"}

    environment = _env_to_literal(os.getenv("ENVIRONMENT", "development"))
    debug = environment == "development"

    monitoring_config = MonitoringConfig(
        tick_interval_seconds=float(os.getenv("TICK_INTERVAL_SECONDS", "5.0")),
        source_timeout_seconds=float(os.getenv("SOURCE_TIMEOUT_SECONDS", "3.0")),
        window_capacity=int(os.getenv("WINDOW_CAPACITY", "100")),
        alert_capacity=int(os.getenv("ALERT_CAPACITY", "20")),
        enable_threshold_rules=_parse_bool(os.getenv("ENABLE_THRESHOLD_RULES"), False),
    )

    logging_config = LoggingConfig(level=_level_to_literal(os.getenv("LOG_LEVEL", "INFO")))

    return AppConfig(
        environment=environment,
        debug=debug,
        monitoring=monitoring_config,
        logging=logging_config,
    )


@lru_cache
def get_config() -> AppConfig:
    """Get cached application configuration."""
    return load_config_from_env()


def validate_config() -> None:
    """Validate configuration at startup."""
    try:
        config = get_config()
        print(f"Configuration loaded for {config.environment} environment")
    except Exception as e:
        print(f"Configuration validation failed: {e}")
        raise


def print_config_summary() -> None:
    """Print configuration summary for debugging."""
    config = get_config()

    print("\nCONFIGURATION SUMMARY")
    print(f"Environment: {config.environment}")
    print(f"Debug Mode: {config.debug}")
    print(f"Log Level: {config.logging.level}")

    print("\nMONITORING CONFIGURATION")
    print(f"Tick Interval: {config.monitoring.tick_interval_seconds}s")
    print(f"Window Capacity: {config.monitoring.window_capacity} readings")
    print(f"Alert Capacity: {config.monitoring.alert_capacity} alerts")
    print(f"Threshold Rules: {'on' if config.monitoring.enable_threshold_rules else 'off'}")


if __name__ == "__main__":
    validate_config()
    print_config_summary()
