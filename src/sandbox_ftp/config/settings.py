"""Client settings management for sandbox-ftp.

Provides the ClientSettings dataclass and SettingsManager for JSON
persistence. Passwords are never stored here; see CredentialManager.
"""

import json
import logging
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Optional

from sandbox_ftp.config.paths import get_settings_path

logger = logging.getLogger("sandbox_ftp.settings")


@dataclass
class ClientSettings:
    """Connection settings that persist between runs."""

    host: str = ""
    port: int = 21
    username: str = "anonymous"
    timeout: float = 60.0

    def to_dict(self) -> dict:
        """Convert settings to dictionary."""
        return asdict(self)

    @classmethod
    def from_dict(cls, data: dict) -> "ClientSettings":
        """Create settings from dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        filtered = {k: v for k, v in data.items() if k in valid_fields}
        return cls(**filtered)

    def to_connection_config(self, password: str = ""):
        """
        Build a validated ConnectionConfig from these settings.

        Raises:
            ValueError: If host, port or timeout are invalid
        """
        # Imported here to keep config importable without the ftp package
        from sandbox_ftp.ftp.client import ConnectionConfig

        return ConnectionConfig(
            host=self.host,
            port=self.port,
            username=self.username,
            password=password,
            timeout=self.timeout,
        )


class SettingsManager:
    """Manages client settings persistence."""

    def __init__(self, config_path: Optional[Path] = None):
        """
        Initialize settings manager.

        Args:
            config_path: Optional custom path, defaults to platform standard
        """
        self._config_path = config_path or get_settings_path()
        self._settings: Optional[ClientSettings] = None

    @property
    def config_path(self) -> Path:
        """Path to settings file."""
        return self._config_path

    def load(self) -> ClientSettings:
        """
        Load settings from disk.

        Returns:
            ClientSettings instance (defaults if file not found)
        """
        if self._config_path.exists():
            try:
                with open(self._config_path, "r", encoding="utf-8") as f:
                    data = json.load(f)
                if not isinstance(data, dict):
                    raise TypeError(f"expected a JSON object, got {type(data).__name__}")
                self._settings = ClientSettings.from_dict(data)
            except (json.JSONDecodeError, IOError, TypeError) as e:
                logger.warning("Ignoring unreadable settings file %s: %s", self._config_path, e)
                self._settings = ClientSettings()
        else:
            self._settings = ClientSettings()

        return self._settings

    def save(self, settings: ClientSettings) -> None:
        """
        Persist settings to disk.

        Args:
            settings: Settings to save
        """
        self._settings = settings

        self._config_path.parent.mkdir(parents=True, exist_ok=True)

        with open(self._config_path, "w", encoding="utf-8") as f:
            json.dump(settings.to_dict(), f, indent=2)

    def reset(self) -> ClientSettings:
        """
        Reset to default settings.

        Returns:
            Default ClientSettings instance
        """
        self._settings = ClientSettings()

        if self._config_path.exists():
            self._config_path.unlink()

        return self._settings

    def update(self, **kwargs) -> ClientSettings:
        """
        Update specific settings fields.

        Args:
            **kwargs: Field names and new values

        Returns:
            Updated ClientSettings instance
        """
        if self._settings is None:
            self.load()

        for key, value in kwargs.items():
            if hasattr(self._settings, key):
                setattr(self._settings, key, value)

        self.save(self._settings)
        return self._settings
