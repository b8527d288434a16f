"""Path discovery for sandbox-ftp.

Defines where persisted client settings live on each platform.
"""

import os
import sys
from pathlib import Path


# Application name for config directories
APP_NAME = "sandbox-ftp"


def get_app_data_dir() -> Path:
    """
    Get the application data directory.

    Returns:
        Path to app data directory (created if not exists)

    Platform-specific locations:
        - Windows: %APPDATA%/sandbox-ftp
        - Linux: ~/.config/sandbox-ftp
        - macOS: ~/Library/Application Support/sandbox-ftp
    """
    if sys.platform == "win32":
        base = Path(os.environ.get("APPDATA", Path.home() / "AppData" / "Roaming"))
    elif sys.platform == "darwin":
        base = Path.home() / "Library" / "Application Support"
    else:
        base = Path(os.environ.get("XDG_CONFIG_HOME", Path.home() / ".config"))

    app_dir = base / APP_NAME
    app_dir.mkdir(parents=True, exist_ok=True)
    return app_dir


def get_settings_path() -> Path:
    """Path to settings.json."""
    return get_app_data_dir() / "settings.json"
