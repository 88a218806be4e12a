"""Configuration management for the Schema Manager CLI."""

from dataclasses import dataclass
from pathlib import Path
from typing import Any
import os

import yaml


CONFIG_DIR = Path.home() / ".schema-manager"
CONFIG_FILE = CONFIG_DIR / "config.yaml"


@dataclass
class CLIConfig:
    """CLI configuration."""

    url: str = ""
    token: str = ""

    @classmethod
    def load(cls) -> "CLIConfig":
        """Load configuration from file and environment.

        Priority (highest to lowest):
        1. Environment variables (SCHEMA_MANAGER_URL, SCHEMA_MANAGER_TOKEN)
        2. Config file (~/.schema-manager/config.yaml)
        3. Defaults
        """
        config = cls()

        if CONFIG_FILE.exists():
            try:
                with open(CONFIG_FILE) as f:
                    data = yaml.safe_load(f) or {}
                config.url = data.get("url", "")
                config.token = data.get("token", "")
            except (OSError, yaml.YAMLError, AttributeError):
                pass  # Unreadable file, use defaults

        if env_url := os.environ.get("SCHEMA_MANAGER_URL"):
            config.url = env_url
        if env_token := os.environ.get("SCHEMA_MANAGER_TOKEN"):
            config.token = env_token

        return config

    def save(self) -> None:
        """Save configuration to file."""
        CONFIG_DIR.mkdir(parents=True, exist_ok=True)

        data = {
            "url": self.url,
            "token": self.token,
        }

        with open(CONFIG_FILE, "w") as f:
            yaml.dump(data, f, default_flow_style=False)

    @staticmethod
    def _normalize_key(key: str) -> str:
        key_normalized = key.lower().replace("-", "_")
        if key_normalized == "url":
            return "url"
        if key_normalized in ("token", "access_token"):
            return "token"
        raise ValueError(f"Unknown config key: {key}")

    def set_value(self, key: str, value: str) -> None:
        """Set a configuration value and save."""
        setattr(self, self._normalize_key(key), value)
        self.save()

    def get_value(self, key: str) -> str:
        """Get a configuration value."""
        return getattr(self, self._normalize_key(key))

    def to_dict(self) -> dict[str, Any]:
        """Convert to dictionary for display, token masked."""
        return {
            "url": self.url,
            "token": self.mask_token(self.token) if self.token else "",
        }

    @staticmethod
    def mask_token(token: str) -> str:
        """Mask an access token for display."""
        if len(token) <= 8:
            return "*" * len(token)
        return token[:4] + "*" * (len(token) - 8) + token[-4:]

    def validate(self) -> list[str]:
        """Validate configuration and return list of errors."""
        errors = []
        if not self.url:
            errors.append("URL not configured. Use: schema-manager config set url <url>")
        if not self.token:
            errors.append("Access token not configured. Use: schema-manager config set token <token>")
        return errors


def get_config() -> CLIConfig:
    """Get the current configuration."""
    return CLIConfig.load()
