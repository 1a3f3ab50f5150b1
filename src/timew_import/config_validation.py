"""Configuration validation for timew-import.

Validates the loaded TOML configuration and warns about potential issues.
"""

import logging
from datetime import date
from typing import Any

from .boundaries import parse_calendar_date
from .errors import FormatError
from .timebasis import parse_offset

logger = logging.getLogger(__name__)


class ConfigValidator:
    """Validates configuration dictionaries."""

    # Known top-level keys
    KNOWN_TOP_LEVEL = {
        "utc_offset",
        "earliest_date",
        "max_future_days",
        "database",
        "timew",
    }

    KNOWN_DATABASE_KEYS = {"url"}

    # Known timew parameters with their types and optional ranges
    TIMEW_PARAMS = {
        "command": {"type": list},
        "timeout": {"type": (int, float), "min": 1},
    }

    def __init__(self):
        self.errors: list[str] = []
        self.warnings: list[str] = []

    def validate(self, config: dict[str, Any]) -> tuple[list[str], list[str]]:
        """Validate the configuration.

        Args:
            config: The configuration dictionary to validate

        Returns:
            Tuple of (errors, warnings) lists
        """
        self.errors = []
        self.warnings = []

        self._validate_top_level(config)
        self._validate_database(config.get("database", {}))
        self._validate_timew(config.get("timew", {}))

        return self.errors, self.warnings

    def _validate_top_level(self, config: dict) -> None:
        """Validate top-level configuration keys."""
        for key in config:
            if key not in self.KNOWN_TOP_LEVEL:
                self.warnings.append(f"Unknown top-level config key: '{key}'")

        if "utc_offset" in config:
            try:
                offset = parse_offset(config["utc_offset"])
            except FormatError as e:
                self.errors.append(f"'utc_offset' is invalid: {e}")
            else:
                if offset % 15:
                    self.warnings.append(
                        f"'utc_offset' of {offset} minutes is not a multiple of 15 minutes"
                    )

        if "earliest_date" in config:
            value = config["earliest_date"]
            # TOML has a native date type, so both forms are accepted
            if not isinstance(value, date):
                try:
                    parse_calendar_date(value)
                except FormatError:
                    self.errors.append(f"'earliest_date' must be a YYYY-MM-DD date, got {value!r}")

        if "max_future_days" in config:
            value = config["max_future_days"]
            if isinstance(value, bool) or not isinstance(value, int):
                self.errors.append(
                    f"'max_future_days' must be int, got {type(value).__name__}"
                )
            elif value < 0:
                self.errors.append(f"'max_future_days' must be >= 0, got {value}")

    def _validate_database(self, database: dict) -> None:
        """Validate the database section."""
        if not isinstance(database, dict):
            self.errors.append("'database' section must be a dictionary")
            return

        for key in database:
            if key not in self.KNOWN_DATABASE_KEYS:
                self.warnings.append(f"Unknown key in database section: '{key}'")

        if "url" in database:
            url = database["url"]
            if not isinstance(url, str) or not url:
                self.errors.append("database.url must be a non-empty string")
            elif "://" not in url:
                self.errors.append(f"database.url does not look like a database URL: '{url}'")

    def _validate_timew(self, timew: dict) -> None:
        """Validate timew parameters."""
        if not isinstance(timew, dict):
            self.errors.append("'timew' section must be a dictionary")
            return

        for key, value in timew.items():
            if key not in self.TIMEW_PARAMS:
                self.warnings.append(f"Unknown timew parameter: '{key}'")
                continue

            spec = self.TIMEW_PARAMS[key]

            # Type check
            if isinstance(value, bool) or not isinstance(value, spec["type"]):
                expected = (
                    " or ".join(t.__name__ for t in spec["type"])
                    if isinstance(spec["type"], tuple)
                    else spec["type"].__name__
                )
                self.errors.append(f"timew.{key} must be {expected}, got {type(value).__name__}")
                continue

            # Range check
            if "min" in spec and value < spec["min"]:
                self.errors.append(f"timew.{key} must be >= {spec['min']}, got {value}")

        command = timew.get("command")
        if isinstance(command, list):
            if len(command) == 0:
                self.errors.append("timew.command must not be empty")
            elif not all(isinstance(part, str) for part in command):
                self.errors.append("timew.command must be a list of strings")


def validate_config(config: dict[str, Any]) -> tuple[list[str], list[str]]:
    """Validate configuration and return errors and warnings.

    Args:
        config: The configuration dictionary to validate

    Returns:
        Tuple of (errors, warnings) lists
    """
    validator = ConfigValidator()
    return validator.validate(config)


def log_validation_results(errors: list[str], warnings: list[str]) -> None:
    """Log validation results.

    Args:
        errors: List of error messages
        warnings: List of warning messages
    """
    for warning in warnings:
        logger.warning(f"Config warning: {warning}")
    for error in errors:
        logger.error(f"Config error: {error}")


def validate_and_warn(config: dict[str, Any]) -> bool:
    """Validate configuration and log warnings/errors.

    Args:
        config: The configuration dictionary to validate

    Returns:
        True if configuration is valid (no errors), False otherwise
    """
    errors, warnings = validate_config(config)
    log_validation_results(errors, warnings)
    return len(errors) == 0
