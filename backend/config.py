"""Configuration module for the MOPS backend.

Loads and validates the environment variables the service reads at startup.
Command-line flags of ``run_server.py`` take precedence over these values.
"""

import os
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

DEFAULT_PORT = 8888
DEFAULT_METAL_SERVER = "http://localhost:8443"
DEFAULT_TEMPLATE_DIR = Path(__file__).parent / "reports" / "templates"


class ConfigError(Exception):
    """Raised when a configuration value is present but invalid."""
    pass


class Config:
    """Application configuration loaded from environment variables."""

    def __init__(self) -> None:
        # Listener
        self.host = os.getenv("MOPS_HOST", "0.0.0.0")
        self.port = self._get_int("MOPS_PORT", DEFAULT_PORT)
        self.keep_alive_timeout = self._get_int("MOPS_KEEP_ALIVE_TIMEOUT", 5)

        # Metal backend
        self.metal_server = os.getenv("METAL_SERVER", DEFAULT_METAL_SERVER)
        self.metal_user = os.getenv("METAL_USER", "admin")
        self.metal_pass = os.getenv("METAL_PASS", "admin")
        self.metal_verify_tls = os.getenv("METAL_VERIFY_TLS", "false").lower() == "true"
        self.metal_timeout = self._get_float("METAL_TIMEOUT", 30.0)

        # Templates (0 disables the include depth guard)
        self.template_dir = Path(os.getenv("MOPS_TEMPLATE_DIR", str(DEFAULT_TEMPLATE_DIR)))
        self.max_include_depth = self._get_int("MOPS_MAX_INCLUDE_DEPTH", 0)

        # Application settings
        self.environment = os.getenv("ENVIRONMENT", "development")
        self.log_level = os.getenv("LOG_LEVEL", "INFO")

    @property
    def json_logs(self) -> bool:
        return self.environment == "production"

    def _get_int(self, key: str, default: int) -> int:
        """Get an integer environment variable.

        Raises:
            ConfigError: If the variable is set but is not an integer.
        """
        value = self._get_optional(key)
        if value is None or value == "":
            return default
        try:
            return int(value)
        except ValueError:
            raise ConfigError(f"Environment variable '{key}' must be an integer, got {value!r}") from None

    def _get_float(self, key: str, default: float) -> float:
        value = self._get_optional(key)
        if value is None or value == "":
            return default
        try:
            return float(value)
        except ValueError:
            raise ConfigError(f"Environment variable '{key}' must be a number, got {value!r}") from None

    def _get_optional(self, key: str, default: Optional[str] = None) -> Optional[str]:
        """Get an optional environment variable.

        Args:
            key: The environment variable name.
            default: The default value if not set.

        Returns:
            The environment variable value or default.
        """
        return os.getenv(key, default)


# Global config instance
config = Config()
