"""Configuration module for sandbox-ftp.

This module handles persisted connection settings and credentials:
- SettingsManager: JSON-based settings persistence
- CredentialManager: Secure credential storage via keyring
- Paths: Platform config directory discovery
- ClientSettings: Settings dataclass
"""
