"""
Configuration management for the future-supporting HTTP client.
"""

import json
import logging
import os
from dataclasses import asdict, dataclass, fields
from pathlib import Path
from typing import Any, Dict, Optional

from httpfuture.exceptions import InvalidConfigError

logger = logging.getLogger(__name__)

ENV_PREFIX = "HTTPFUTURE_"


@dataclass
class ClientConfig:
    """
    Client configuration parameters.

    Timeouts and idle durations are in seconds. With the idle monitor
    disabled, pooled connections are checked for staleness each time they
    are borrowed instead.
    """

    socket_timeout: float = 3.0
    connect_timeout: float = 3.0
    max_connections: int = 100
    max_connections_per_route: int = 10
    follow_redirects: bool = True
    compression: bool = True
    idle_monitor_enabled: bool = False
    idle_connection_timeout: float = 60.0
    idle_check_interval: Optional[float] = None
    worker_threads: Optional[int] = None
    verify_ssl: bool = True

    @property
    def effective_idle_check_interval(self) -> float:
        """Sweep cadence of the idle monitor, the idle timeout unless configured."""
        if self.idle_check_interval is not None:
            return self.idle_check_interval
        return self.idle_connection_timeout

    @property
    def effective_worker_threads(self) -> int:
        """Worker pool size, aligned with the connection limit unless configured."""
        if self.worker_threads is not None:
            return self.worker_threads
        return self.max_connections

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ClientConfig":
        known = {f.name for f in fields(cls)}
        unknown = set(data) - known
        if unknown:
            logger.warning(f"Ignoring unknown client configuration keys: {sorted(unknown)}")
        return cls(**{k: v for k, v in data.items() if k in known})

    @classmethod
    def from_file(cls, path: str = "config/http_client.json") -> "ClientConfig":
        """
        Load configuration from the ``http_client`` section of a JSON file.
        Falls back to defaults if the file is missing or invalid. Environment
        variables override values from either source.

        Args:
            path: Path to configuration file

        Returns:
            ClientConfig instance with loaded or default values
        """
        config_path = Path(path)
        config = None

        if config_path.exists():
            try:
                with open(config_path, "r") as f:
                    data = json.load(f)
                config = cls.from_dict(data.get("http_client", {}))
                logger.info(f"Loaded client configuration from {path}")
            except (json.JSONDecodeError, AttributeError, TypeError) as e:
                logger.error(
                    f"Failed to load configuration from {path}: {e}. Using defaults.",
                    exc_info=True
                )
        else:
            logger.info(f"Configuration file {path} not found. Using defaults.")

        if config is None:
            config = cls()
        config._apply_env_overrides()
        return config

    @classmethod
    def from_env(cls) -> "ClientConfig":
        config = cls()
        config._apply_env_overrides()
        return config

    def _apply_env_overrides(self) -> None:
        """Apply environment variable overrides to configuration."""
        self._override_number("SOCKET_TIMEOUT", "socket_timeout", float)
        self._override_number("CONNECT_TIMEOUT", "connect_timeout", float)
        self._override_number("MAX_CONNECTIONS", "max_connections", int)
        self._override_number("MAX_CONNECTIONS_PER_ROUTE", "max_connections_per_route", int)
        self._override_number("IDLE_TIMEOUT", "idle_connection_timeout", float)
        self._override_number("IDLE_CHECK_INTERVAL", "idle_check_interval", float)
        self._override_number("WORKER_THREADS", "worker_threads", int)
        self._override_flag("FOLLOW_REDIRECTS", "follow_redirects")
        self._override_flag("COMPRESSION", "compression")
        self._override_flag("IDLE_MONITOR", "idle_monitor_enabled")
        self._override_flag("VERIFY_SSL", "verify_ssl")

    def _override_number(self, suffix: str, attr: str, cast) -> None:
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw:
            try:
                setattr(self, attr, cast(raw))
            except ValueError:
                logger.warning(f"Invalid {ENV_PREFIX}{suffix} environment variable")

    def _override_flag(self, suffix: str, attr: str) -> None:
        raw = os.getenv(ENV_PREFIX + suffix)
        if raw:
            setattr(self, attr, raw.lower() in ("true", "1", "yes"))

    def validate(self) -> None:
        """
        Validate configuration parameters.

        Raises:
            InvalidConfigError: If parameters are invalid
        """
        errors = []

        if self.socket_timeout <= 0:
            errors.append("socket_timeout must be positive")

        if self.connect_timeout <= 0:
            errors.append("connect_timeout must be positive")

        if self.max_connections <= 0:
            errors.append("max_connections must be positive")

        if self.max_connections_per_route <= 0:
            errors.append("max_connections_per_route must be positive")

        if self.max_connections_per_route > self.max_connections:
            errors.append("max_connections_per_route cannot exceed max_connections")

        if self.idle_connection_timeout <= 0:
            errors.append("idle_connection_timeout must be positive")

        if self.idle_check_interval is not None and self.idle_check_interval <= 0:
            errors.append("idle_check_interval must be positive")

        if self.worker_threads is not None and self.worker_threads <= 0:
            errors.append("worker_threads must be positive")

        if errors:
            error_msg = "; ".join(errors)
            logger.error(f"Invalid client configuration: {error_msg}")
            raise InvalidConfigError(f"Invalid client configuration: {error_msg}")

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
