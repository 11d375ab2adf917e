"""
Configuration management for VBus Recording Sync.

A device is configured either from a JSON file:

    {"url_prefix": "http://192.168.1.20", "username": "admin", "password": "admin"}

or from environment variables (VBUS_SYNC_URL, VBUS_SYNC_USERNAME,
VBUS_SYNC_PASSWORD).
"""

import json
import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .core.errors import ConfigurationError


@dataclass
class DeviceConfig:
    """Connection settings for one DLx datalogger."""
    url_prefix: str
    username: str = "admin"
    password: str = "admin"
    timeout: int = 60
    chunk_size: int = 32768

    def __post_init__(self):
        self.url_prefix = (self.url_prefix or "").rstrip("/")
        self.validate()

    def validate(self):
        """Raise ConfigurationError if the device cannot be addressed."""
        if not self.url_prefix:
            raise ConfigurationError("Device URL prefix is required")
        if not self.url_prefix.startswith(("http://", "https://")):
            raise ConfigurationError(f"Device URL must be http:// or https://: {self.url_prefix}")
        if not self.username or self.password is None:
            raise ConfigurationError("Device credentials are required")
        if self.timeout <= 0:
            raise ConfigurationError(f"Timeout must be positive: {self.timeout}")

    @property
    def auth(self) -> tuple:
        return (self.username, self.password)

    def to_dict(self) -> dict:
        return {
            "url_prefix": self.url_prefix,
            "username": self.username,
            "password": self.password,
            "timeout": self.timeout,
            "chunk_size": self.chunk_size,
        }

    @classmethod
    def from_dict(cls, data: dict) -> "DeviceConfig":
        return cls(
            url_prefix=data.get("url_prefix", ""),
            username=data.get("username", "admin"),
            password=data.get("password", "admin"),
            timeout=int(data.get("timeout", 60)),
            chunk_size=int(data.get("chunk_size", 32768)),
        )

    @classmethod
    def from_env(cls, environ: Optional[dict] = None) -> "DeviceConfig":
        """Build config from VBUS_SYNC_* environment variables."""
        environ = os.environ if environ is None else environ
        return cls(
            url_prefix=environ.get("VBUS_SYNC_URL", ""),
            username=environ.get("VBUS_SYNC_USERNAME", "admin"),
            password=environ.get("VBUS_SYNC_PASSWORD", "admin"),
            timeout=int(environ.get("VBUS_SYNC_TIMEOUT", 60)),
        )

    @classmethod
    def load(cls, path: Path) -> "DeviceConfig":
        """Load device configuration from a JSON file."""
        try:
            with open(path) as f:
                data = json.load(f)
        except FileNotFoundError as e:
            raise ConfigurationError(f"Config file not found: {path}", e) from e
        except (json.JSONDecodeError, IOError) as e:
            raise ConfigurationError(f"Could not load config {path}: {e}", e) from e

        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must contain a JSON object")
        return cls.from_dict(data)

    def save(self, path: Path):
        """Save device configuration to a JSON file."""
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
