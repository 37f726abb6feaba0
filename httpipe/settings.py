import os
from typing import List, Optional
from urllib.parse import urlparse

from dotenv import load_dotenv

# Load .env file variables into environment
load_dotenv(verbose=True)

_TRUTHY = ("1", "true", "yes", "on")


class Settings:
    """Application configuration settings loaded from environment variables."""

    # --- Core Settings ---
    UPSTREAM_URL: Optional[str] = None
    UPSTREAM_TIMEOUT: float = 30.0

    # --- Server Settings ---
    HTTPIPE_HOST: str = "0.0.0.0"  # nosec B104
    HTTPIPE_PORT: int = 8000

    # --- Upstream Settings ---
    def get_upstream_url(self) -> Optional[str]:
        """Returns the upstream URL as a string, if set."""
        url = os.getenv("UPSTREAM_URL")
        if url:
            parsed = urlparse(url)
            if not all([parsed.scheme, parsed.netloc]):
                raise ValueError(f"Invalid UPSTREAM_URL format: {url}")
        return url

    def get_upstream_timeout(self) -> float:
        """Returns the upstream timeout in seconds."""
        try:
            return float(os.getenv("UPSTREAM_TIMEOUT", str(self.UPSTREAM_TIMEOUT)))
        except ValueError:
            raise ValueError("UPSTREAM_TIMEOUT environment variable must be a number.")

    def get_upstream_trust_env(self) -> bool:
        """Whether the upstream client honours HTTP(S)_PROXY and friends."""
        return os.getenv("UPSTREAM_TRUST_ENV", "true").lower() in _TRUTHY

    # --- Logging Settings ---
    def get_log_level(self, default: str = "INFO") -> str:
        """Gets the configured log level, defaulting if not set."""
        return os.getenv("LOG_LEVEL", default).upper()

    # --- App Server Settings ---
    def get_app_host(self) -> str:
        return os.getenv("HTTPIPE_HOST", self.HTTPIPE_HOST)

    def get_app_port(self) -> int:
        """Returns the listening port as an integer."""
        port_str = os.getenv("HTTPIPE_PORT", str(self.HTTPIPE_PORT))
        try:
            return int(port_str)
        except ValueError:
            raise ValueError("HTTPIPE_PORT environment variable must be an integer.")

    def get_app_reload(self) -> bool:
        return os.getenv("HTTPIPE_RELOAD", "false").lower() in _TRUTHY

    # --- Bundled Handler Settings ---
    def get_blocked_path_prefixes(self) -> List[str]:
        """Returns the comma-separated BLOCKED_PATH_PREFIXES as a list."""
        raw = os.getenv("BLOCKED_PATH_PREFIXES", "")
        return [prefix.strip() for prefix in raw.split(",") if prefix.strip()]

    def get_error_page_enabled(self) -> bool:
        return os.getenv("ERROR_PAGE_ENABLED", "false").lower() in _TRUTHY
