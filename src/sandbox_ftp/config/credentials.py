"""Secure credential storage for sandbox-ftp.

Uses the system keyring (Windows Credential Manager, macOS Keychain,
Linux Secret Service) to store FTP passwords outside the settings file.
"""

import logging
from typing import Optional

import keyring
from keyring.errors import KeyringError

logger = logging.getLogger("sandbox_ftp.credentials")


class CredentialManager:
    """Secure credential storage using system keyring."""

    SERVICE_NAME = "sandbox-ftp"

    def _make_key(self, host: str, username: str) -> str:
        return f"{host}:{username}"

    def save_password(self, host: str, username: str, password: str) -> bool:
        """
        Save FTP password securely.

        Returns:
            True if saved successfully, False otherwise
        """
        try:
            keyring.set_password(self.SERVICE_NAME, self._make_key(host, username), password)
            return True
        except KeyringError as e:
            logger.warning("Could not save password for %s@%s: %s", username, host, e)
            return False

    def get_password(self, host: str, username: str) -> Optional[str]:
        """
        Retrieve saved password.

        Returns:
            Password string or None if not found
        """
        try:
            return keyring.get_password(self.SERVICE_NAME, self._make_key(host, username))
        except KeyringError as e:
            logger.warning("Could not read password for %s@%s: %s", username, host, e)
            return None

    def delete_password(self, host: str, username: str) -> bool:
        """
        Remove saved password.

        Returns:
            True if deleted successfully, False otherwise
        """
        try:
            keyring.delete_password(self.SERVICE_NAME, self._make_key(host, username))
            return True
        except KeyringError:
            return False

    def has_password(self, host: str, username: str) -> bool:
        """True if a password is saved for this host and user."""
        return self.get_password(host, username) is not None
