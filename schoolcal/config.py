"""
Client configuration module.

Manages the Events API connection settings and runtime options of the
calendar core. Configuration can be loaded from a YAML file or from
environment variables.
"""

import os
import re
from pathlib import Path
from typing import Optional
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

import yaml
from platformdirs import user_config_dir

from schoolcal.models import DEFAULT_TIMEZONE


# ============================================================================
# Constants
# ============================================================================

APP_NAME = "schoolcal"
APP_AUTHOR = "SchoolCal"
CONFIG_FILENAME = "calendar-config.yaml"

# Environment variable names
ENV_SERVER_URL = "SCHOOLCAL_SERVER_URL"
ENV_API_TOKEN = "SCHOOLCAL_API_TOKEN"
ENV_LOG_LEVEL = "SCHOOLCAL_LOG_LEVEL"
ENV_CONFIG_PATH = "SCHOOLCAL_CONFIG_PATH"

# Default values
DEFAULT_REQUEST_TIMEOUT = 30.0  # seconds
DEFAULT_LOG_LEVEL = "INFO"

FAN_OUT_BATCHED = "batched"
FAN_OUT_PER_CLASS = "per_class"
FAN_OUT_MODES = (FAN_OUT_BATCHED, FAN_OUT_PER_CLASS)
DEFAULT_FAN_OUT = FAN_OUT_BATCHED

# URL validation regex
URL_PATTERN = re.compile(
    r"^https?://"  # http:// or https://
    r"(?:(?:[A-Z0-9](?:[A-Z0-9-]{0,61}[A-Z0-9])?\.)+[A-Z]{2,6}\.?|"  # domain
    r"localhost|"  # localhost
    r"\d{1,3}\.\d{1,3}\.\d{1,3}\.\d{1,3})"  # ...or ip
    r"(?::\d+)?"  # optional port
    r"(?:/?|[/?]\S+)$",
    re.IGNORECASE,
)


# ============================================================================
# Exceptions
# ============================================================================


class ConfigError(Exception):
    """Base exception for configuration errors."""

    pass


class ConfigValidationError(ConfigError):
    """Raised when configuration validation fails."""

    pass


# ============================================================================
# Helper Functions
# ============================================================================


def get_default_config_dir() -> Path:
    """
    Get the default configuration directory for the current platform.

    Returns:
        Path to the platform-appropriate config directory
    """
    return Path(user_config_dir(APP_NAME, APP_AUTHOR))


def get_default_config_path() -> Path:
    return get_default_config_dir() / CONFIG_FILENAME


# ============================================================================
# ClientConfig Class
# ============================================================================


class ClientConfig:
    """
    Calendar client configuration manager.

    Configuration sources (in priority order):
    1. Environment variables
    2. Configuration file
    3. Default values

    Attributes:
        server_url: Events API base URL
        api_token: Bearer token of the signed-in user
        timezone: Deployment timezone dates are expressed in
        request_timeout: HTTP timeout in seconds
        fan_out: "batched" (one multi-class request) or "per_class"
        log_level: Logging level (DEBUG, INFO, WARNING, ERROR)
    """

    def __init__(
        self,
        config_path: Optional[Path] = None,
        config_dir: Optional[Path] = None,
    ):
        """
        Initialize client configuration.

        Args:
            config_path: Explicit path to config file (takes precedence)
            config_dir: Directory containing config file
        """
        if config_path:
            self._config_path = Path(config_path)
            self._config_dir = self._config_path.parent
        elif config_dir:
            self._config_dir = Path(config_dir)
            self._config_path = self._config_dir / CONFIG_FILENAME
        else:
            env_path = os.environ.get(ENV_CONFIG_PATH)
            if env_path:
                self._config_path = Path(env_path)
                self._config_dir = self._config_path.parent
            else:
                self._config_dir = get_default_config_dir()
                self._config_path = self._config_dir / CONFIG_FILENAME

        self._server_url: str = ""
        self._api_token: str = ""
        self._timezone: str = DEFAULT_TIMEZONE
        self._request_timeout: float = DEFAULT_REQUEST_TIMEOUT
        self._fan_out: str = DEFAULT_FAN_OUT
        self._log_level: str = DEFAULT_LOG_LEVEL

        self._load()

    @property
    def config_path(self) -> Path:
        return self._config_path

    # -------------------------------------------------------------------------
    # Configuration Properties
    # -------------------------------------------------------------------------

    @property
    def server_url(self) -> str:
        """Get the server URL."""
        return os.environ.get(ENV_SERVER_URL, self._server_url)

    @server_url.setter
    def server_url(self, value: str) -> None:
        self._server_url = value

    @property
    def api_token(self) -> str:
        """Get the API token."""
        return os.environ.get(ENV_API_TOKEN, self._api_token)

    @api_token.setter
    def api_token(self, value: str) -> None:
        self._api_token = value

    @property
    def timezone(self) -> str:
        return self._timezone

    @timezone.setter
    def timezone(self, value: str) -> None:
        self._timezone = value

    @property
    def request_timeout(self) -> float:
        return self._request_timeout

    @request_timeout.setter
    def request_timeout(self, value: float) -> None:
        self._request_timeout = value

    @property
    def fan_out(self) -> str:
        return self._fan_out

    @fan_out.setter
    def fan_out(self, value: str) -> None:
        self._fan_out = value

    @property
    def log_level(self) -> str:
        """Get the log level."""
        return os.environ.get(ENV_LOG_LEVEL, self._log_level)

    @log_level.setter
    def log_level(self, value: str) -> None:
        self._log_level = value

    @property
    def is_configured(self) -> bool:
        """Check if a server URL is set."""
        return bool(self.server_url)

    # -------------------------------------------------------------------------
    # Configuration Management
    # -------------------------------------------------------------------------

    def _load(self) -> None:
        """Load configuration from file."""
        if not self._config_path.exists():
            return

        try:
            with open(self._config_path) as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse config file: {e}")

        self._server_url = data.get("server_url", "")
        self._api_token = data.get("api_token", "")
        self._timezone = data.get("timezone", DEFAULT_TIMEZONE)
        self._request_timeout = data.get("request_timeout", DEFAULT_REQUEST_TIMEOUT)
        self._fan_out = data.get("fan_out", DEFAULT_FAN_OUT)
        self._log_level = data.get("log_level", DEFAULT_LOG_LEVEL)

    def save(self) -> None:
        """Save configuration to file."""
        self._config_dir.mkdir(parents=True, exist_ok=True)

        data = {
            "server_url": self._server_url,
            "api_token": self._api_token,
            "timezone": self._timezone,
            "request_timeout": self._request_timeout,
            "fan_out": self._fan_out,
            "log_level": self._log_level,
        }

        with open(self._config_path, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    def validate(self) -> None:
        """
        Validate the current configuration.

        Raises:
            ConfigValidationError: If configuration is invalid
        """
        if self.server_url and not URL_PATTERN.match(self.server_url):
            raise ConfigValidationError(
                f"Invalid server_url format: {self.server_url}"
            )

        try:
            ZoneInfo(self.timezone)
        except (ZoneInfoNotFoundError, ValueError):
            raise ConfigValidationError(f"Unknown timezone: {self.timezone}")

        if self.request_timeout <= 0:
            raise ConfigValidationError(
                f"request_timeout must be positive, got: {self.request_timeout}"
            )

        if self.fan_out not in FAN_OUT_MODES:
            raise ConfigValidationError(
                f"fan_out must be one of {', '.join(FAN_OUT_MODES)}, got: {self.fan_out}"
            )
