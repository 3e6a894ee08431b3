"""Configuration management for the wheel ledger.

This module provides configuration loading, validation, and management
for the ledger engine and its CLI: where broker exports live, how they
are ingested, and how quotes are used for valuation.
"""

import logging
import os
from pathlib import Path
from typing import Any, Optional

import yaml

logger = logging.getLogger(__name__)

TRUE_VALUES = ("1", "true", "yes", "on")


class ConfigurationError(Exception):
    """Exception raised for configuration errors."""

    pass


class WheelLedgerConfig:
    """Configuration for the wheel ledger.

    Manages configuration from files, environment variables, and defaults.

    Attributes:
        reports_dir: Directory holding broker export documents
        file_suffix: Suffix of export documents to ingest
        max_workers: Thread pool size for reading export documents
        quote_timeout: Seconds to wait for each quote lookup
        max_quote_age: Seconds after which a quote is flagged stale
        verbose: Enable verbose logging
        json_output: Output in JSON format
    """

    def __init__(
        self,
        reports_dir: str = "reports",
        file_suffix: str = ".xml",
        max_workers: int = 4,
        quote_timeout: float = 5.0,
        max_quote_age: int = 900,
        verbose: bool = False,
        json_output: bool = False,
    ):
        """Initialize configuration.

        Example:
            >>> config = WheelLedgerConfig(reports_dir="~/ib-exports", max_workers=8)
        """
        self.reports_dir = reports_dir
        self.file_suffix = file_suffix
        self.max_workers = max_workers
        self.quote_timeout = quote_timeout
        self.max_quote_age = max_quote_age
        self.verbose = verbose
        self.json_output = json_output

        self._validate()

    def _validate(self):
        """Validate configuration values.

        Raises:
            ConfigurationError: If configuration is invalid
        """
        if not self.reports_dir:
            raise ConfigurationError("reports_dir cannot be empty")

        if not self.file_suffix.startswith("."):
            raise ConfigurationError("file_suffix must start with '.'")

        if self.max_workers < 1 or self.max_workers > 64:
            raise ConfigurationError("max_workers must be between 1 and 64")

        if self.quote_timeout <= 0:
            raise ConfigurationError("quote_timeout must be positive")

        if self.max_quote_age <= 0:
            raise ConfigurationError("max_quote_age must be positive")

    @property
    def reports_path(self) -> Path:
        """reports_dir with ~ expanded."""
        return Path(self.reports_dir).expanduser()

    @classmethod
    def get_default_config_path(cls) -> Path:
        """Get default configuration file path (~/.wheel_ledger/config.yaml)."""
        return Path.home() / ".wheel_ledger" / "config.yaml"

    @classmethod
    def load_from_file(cls, path: Optional[Path] = None) -> "WheelLedgerConfig":
        """Load configuration from YAML file.

        If the file doesn't exist, defaults are used. File values are merged
        with environment variable overrides.

        Args:
            path: Optional path to config file (default: ~/.wheel_ledger/config.yaml)

        Returns:
            Configuration instance

        Raises:
            ConfigurationError: If configuration file is invalid
        """
        config_path = path or cls.get_default_config_path()

        config_dict: dict[str, Any] = {}

        if config_path.exists():
            try:
                with open(config_path) as f:
                    file_config = yaml.safe_load(f)
            except yaml.YAMLError as e:
                raise ConfigurationError(f"Invalid YAML in configuration file: {e}") from e
            except OSError as e:
                raise ConfigurationError(f"Failed to load configuration file: {e}") from e

            if file_config:
                if not isinstance(file_config, dict):
                    raise ConfigurationError(
                        f"Configuration file must contain a mapping, got {type(file_config).__name__}"
                    )
                config_dict = file_config
            logger.debug(f"Loaded configuration from {config_path}")
        else:
            logger.debug(f"Configuration file not found at {config_path}, using defaults")

        return cls.merge_with_defaults(config_dict)

    @classmethod
    def merge_with_defaults(cls, config_dict: dict[str, Any]) -> "WheelLedgerConfig":
        """Merge configuration dictionary with defaults and environment variables.

        Precedence order (highest to lowest):
        1. Environment variables
        2. Config file values
        3. Default values

        Args:
            config_dict: Configuration dictionary from file

        Returns:
            Configuration instance

        Raises:
            ConfigurationError: If configuration is invalid

        Example:
            >>> config = WheelLedgerConfig.merge_with_defaults({
            ...     "ingest": {"reports_dir": "/data/ib"}
            ... })
        """
        ingest_config = config_dict.get("ingest") or {}
        quotes_config = config_dict.get("quotes") or {}
        cli_config = config_dict.get("cli") or {}

        try:
            reports_dir = os.getenv(
                "WHEEL_REPORTS_DIR",
                ingest_config.get("reports_dir", "reports"),
            )
            file_suffix = ingest_config.get("file_suffix", ".xml")
            max_workers = int(
                os.getenv("WHEEL_MAX_WORKERS", ingest_config.get("max_workers", 4))
            )
            quote_timeout = float(
                os.getenv("WHEEL_QUOTE_TIMEOUT", quotes_config.get("timeout", 5.0))
            )
            max_quote_age = int(
                os.getenv("WHEEL_MAX_QUOTE_AGE", quotes_config.get("max_age", 900))
            )
        except (TypeError, ValueError) as e:
            raise ConfigurationError(f"Invalid configuration value: {e}") from e

        verbose = _env_flag("WHEEL_VERBOSE", cli_config.get("verbose", False))
        json_output = _env_flag("WHEEL_JSON_OUTPUT", cli_config.get("json_output", False))

        return cls(
            reports_dir=str(reports_dir),
            file_suffix=str(file_suffix),
            max_workers=max_workers,
            quote_timeout=quote_timeout,
            max_quote_age=max_quote_age,
            verbose=bool(verbose),
            json_output=bool(json_output),
        )

    def save_to_file(self, path: Optional[Path] = None):
        """Save configuration to YAML file.

        Args:
            path: Optional path to save to (default: ~/.wheel_ledger/config.yaml)

        Raises:
            ConfigurationError: If save fails
        """
        config_path = path or self.get_default_config_path()

        try:
            config_path.parent.mkdir(parents=True, exist_ok=True)
            with open(config_path, "w") as f:
                yaml.dump(self.to_dict(), f, default_flow_style=False)
            logger.info(f"Configuration saved to {config_path}")
        except OSError as e:
            raise ConfigurationError(f"Failed to save configuration: {e}") from e

    def to_dict(self) -> dict[str, Any]:
        """Convert configuration to the nested file layout."""
        return {
            "ingest": {
                "reports_dir": self.reports_dir,
                "file_suffix": self.file_suffix,
                "max_workers": self.max_workers,
            },
            "quotes": {
                "timeout": self.quote_timeout,
                "max_age": self.max_quote_age,
            },
            "cli": {
                "verbose": self.verbose,
                "json_output": self.json_output,
            },
        }

    def __repr__(self) -> str:
        return (
            f"WheelLedgerConfig("
            f"reports_dir={self.reports_dir!r}, "
            f"file_suffix={self.file_suffix!r}, "
            f"max_workers={self.max_workers}, "
            f"quote_timeout={self.quote_timeout}, "
            f"max_quote_age={self.max_quote_age}, "
            f"verbose={self.verbose}, "
            f"json_output={self.json_output}"
            ")"
        )


def _env_flag(name: str, default: Any) -> bool:
    value = os.getenv(name)
    if value is None:
        return bool(default)
    return value.strip().lower() in TRUE_VALUES


def load_config(config_path: Optional[Path] = None) -> WheelLedgerConfig:
    """Load configuration from file or defaults.

    Example:
        >>> from src.wheel.config import load_config
        >>> config = load_config()
        >>> print(config.reports_dir)
    """
    return WheelLedgerConfig.load_from_file(config_path)
