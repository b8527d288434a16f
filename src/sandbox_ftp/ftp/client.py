"""FTP client for sandbox-ftp.

Provides ConnectionConfig and FTPClient, which prepares an authenticated,
passive, binary-mode connection within the sandbox deadline and runs
caller operations against an FTPSession that is always released.
"""

import logging
import socket
import time
from dataclasses import dataclass, field
from ftplib import Error as FTPLibError
from typing import Callable, Optional, TypeVar

from sandbox_ftp.config.credentials import CredentialManager
from sandbox_ftp.config.settings import ClientSettings
from sandbox_ftp.ftp.exceptions import (
    FTPAuthenticationError,
    FTPBinaryModeError,
    FTPConnectionError,
    FTPError,
    FTPPassiveModeError,
    FTPTimeoutError,
    FTPTransportError,
)
from sandbox_ftp.ftp.progress import ProgressListener
from sandbox_ftp.ftp.session import FTPSession
from sandbox_ftp.ftp.transport import FTPTransport, TransferMode, is_positive_completion
from sandbox_ftp.sandbox.environment import DeadlineOverride, Environment, resolve_attributes
from sandbox_ftp.utils.validators import validate_host, validate_port, validate_timeout

logger = logging.getLogger("sandbox_ftp.client")

T = TypeVar("T")

PORT_FTP = 21
PORT_SFTP = 22


@dataclass(frozen=True)
class ConnectionConfig:
    """FTP connection parameters; immutable once built."""
    host: str
    port: int = PORT_FTP
    username: str = "anonymous"
    password: str = field(default="", repr=False)
    timeout: float = 60.0

    def __post_init__(self):
        """Validate configuration after initialization."""
        for is_valid, error in (
            validate_host(self.host),
            validate_port(self.port),
            validate_timeout(self.timeout),
        ):
            if not is_valid:
                raise ValueError(error)

    @classmethod
    def from_dict(cls, data: dict) -> "ConnectionConfig":
        """Create a config from a dictionary, ignoring unknown keys."""
        valid_fields = {f.name for f in cls.__dataclass_fields__.values()}
        return cls(**{k: v for k, v in data.items() if k in valid_fields})


class FTPClient:
    """
    Runs FTP operations within the sandbox.

    Usage:
        client = FTPClient(ConnectionConfig("ftp.example.com", username="u", password="p"))
        names = client.run(lambda session: [e.name for e in session.list_files()])
    """

    BUFFER_SIZE = 4 * 1024
    transfer_mode = TransferMode.BLOCK

    def __init__(
        self,
        config: ConnectionConfig,
        environment: Optional[Environment] = None,
        progress_listener: Optional[ProgressListener] = None
    ):
        """
        Initialize the client.

        Args:
            config: Connection parameters
            environment: Sandbox environment whose deadline is overridden
                (defaults to the current one at call time)
            progress_listener: Optional transfer progress callback
        """
        self._config = config
        self._environment = environment
        self._progress_listener = progress_listener

    @classmethod
    def from_settings(
        cls,
        settings: ClientSettings,
        credentials: Optional[CredentialManager] = None,
        **kwargs
    ) -> "FTPClient":
        """
        Build a client from persisted settings, reading the password from the keyring.

        Meant for callers outside the sandbox: the default settings location
        is created on disk and the system keyring must be reachable.

        Args:
            settings: Saved connection settings
            credentials: Credential store (default keyring-backed)
            **kwargs: Passed through to FTPClient()
        """
        credentials = credentials or CredentialManager()
        password = credentials.get_password(settings.host, settings.username) or ""
        return cls(settings.to_connection_config(password), **kwargs)

    @property
    def config(self) -> ConnectionConfig:
        return self._config

    def run(self, operation: Callable[[FTPSession], T]) -> T:
        """
        Prepare a session, run `operation` on it and release it.

        The operation's result or exception propagates unchanged.
        """
        with self.prepare() as session:
            return operation(session)

    def prepare(self) -> FTPSession:
        """
        Connect, log in, enter passive mode and switch to binary.

        Returns:
            A session over the prepared connection

        Raises:
            FTPConnectionError: If the server greeting is not positive
            FTPAuthenticationError: If the credentials are refused
            FTPPassiveModeError: If passive mode is refused
            FTPBinaryModeError: If binary type is refused
            FTPTransportError: On socket or protocol failure
        """
        config = self._config
        with DeadlineOverride(resolve_attributes(self._environment), config.timeout):
            start = time.monotonic()
            transport = self._create_transport()
            try:
                self._handshake(transport)
            except FTPError:
                elapsed = int((time.monotonic() - start) * 1000)
                logger.warning(
                    "Took %sms to fail to establish an ftp connection to %s:%s",
                    elapsed, config.host, config.port
                )
                self._abandon(transport)
                raise

            elapsed = int((time.monotonic() - start) * 1000)
            logger.info(
                "Took %sms to establish an ftp connection to %s:%s",
                elapsed, config.host, config.port
            )
            return FTPSession(transport, environment=self._environment)

    def provide_progress_listener(self) -> Optional[ProgressListener]:
        """
        Listener for transfer progress, or None for no tracking.

        Subclasses may override instead of passing one to the constructor.
        """
        return self._progress_listener

    def _create_transport(self) -> FTPTransport:
        return FTPTransport(
            timeout=self._config.timeout,
            buffer_size=self.BUFFER_SIZE,
            progress_listener=self.provide_progress_listener(),
        )

    def _connect(self, transport: FTPTransport) -> None:
        transport.connect(self._config.host, self._config.port)

    def _configure(self, transport: FTPTransport) -> None:
        transport.set_so_timeout(self._config.timeout)
        transport.set_buffer_size(self.BUFFER_SIZE)
        # Data connections are only ever decoded as stream mode
        if transport.set_file_transfer_mode(self.transfer_mode):
            if self.transfer_mode is not TransferMode.STREAM:
                logger.debug(
                    "Server accepted MODE %s but data is read as a plain stream",
                    self.transfer_mode.value
                )
        else:
            logger.debug(
                "Server refused MODE %s, staying in stream mode: %s",
                self.transfer_mode.value, transport.reply_string
            )

    def _handshake(self, transport: FTPTransport) -> None:
        config = self._config
        try:
            self._connect(transport)
            if not is_positive_completion(transport.reply_code):
                raise FTPConnectionError(config.host, config.port, transport.reply_string)

            self._configure(transport)

            if not transport.login(config.username, config.password):
                raise FTPAuthenticationError(config.username)

            transport.enter_local_passive_mode()
            if not is_positive_completion(transport.reply_code):
                raise FTPPassiveModeError(transport.reply_string)

            if not transport.set_file_type_binary():
                raise FTPBinaryModeError(transport.reply_string)
        except socket.timeout as e:
            raise FTPTimeoutError("FTP connection", config.timeout, e) from e
        except (OSError, EOFError, UnicodeDecodeError, FTPLibError) as e:
            raise FTPTransportError(e) from e

    def _abandon(self, transport: FTPTransport) -> None:
        """Best-effort logout and disconnect after a failed handshake."""
        if not transport.is_connected():
            return
        try:
            transport.logout()
        except Exception as e:
            logger.warning("Failed to logout after connection failed - ignoring: %s", e)
        try:
            transport.disconnect()
        except Exception as e:
            logger.warning("Failed to disconnect after connection failed - ignoring: %s", e)
