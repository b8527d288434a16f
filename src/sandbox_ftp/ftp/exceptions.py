"""FTP-specific exceptions for sandbox-ftp.

Every failure raised by the client or a session derives from FTPError,
which carries a readable message and the optional underlying error.
"""

from typing import Optional


class FTPError(Exception):
    """Base exception for all FTP-related errors."""

    def __init__(self, message: str, original_error: Exception = None):
        super().__init__(message)
        self.message = message
        self.original_error = original_error

    def __str__(self) -> str:
        if self.original_error:
            return f"{self.message}: {self.original_error}"
        return self.message


def _with_reply(message: str, reply: Optional[str]) -> str:
    if reply:
        return f"{message} (server replied: {reply.strip()})"
    return message


class FTPConnectionError(FTPError):
    """Server did not greet the connection with a positive reply."""

    def __init__(
        self,
        host: str,
        port: int,
        reply: Optional[str] = None,
        original_error: Exception = None
    ):
        self.host = host
        self.port = port
        self.reply = reply
        message = _with_reply(f"Failed to connect to {host}:{port}", reply)
        super().__init__(message, original_error)


class FTPAuthenticationError(FTPError):
    """FTP authentication (login) failed."""

    def __init__(self, username: str, original_error: Exception = None):
        self.username = username
        message = f"Authentication failed for user '{username}', credentials refused"
        super().__init__(message, original_error)


class FTPPassiveModeError(FTPError):
    """Server refused the switch to passive mode."""

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        super().__init__(_with_reply("Could not switch to passive mode", reply))


class FTPBinaryModeError(FTPError):
    """Server refused the switch to binary (image) transfer type."""

    def __init__(self, reply: Optional[str] = None):
        self.reply = reply
        super().__init__(_with_reply("Could not switch to binary transfer mode", reply))


class FTPTransportError(FTPError):
    """Lower-level I/O failure while preparing a connection."""

    def __init__(self, original_error: Exception = None, message: str = None):
        super().__init__(
            message or "Could not establish a prepared FTP connection",
            original_error
        )


class FTPTimeoutError(FTPTransportError):
    """FTP operation timed out."""

    def __init__(
        self,
        operation: str = "Operation",
        timeout: float = 60,
        original_error: Exception = None
    ):
        self.timeout = timeout
        message = f"{operation} timed out after {timeout:g} seconds"
        super().__init__(original_error, message)


class FTPOperationError(FTPError):
    """A session operation raised; wraps the label and the cause."""

    def __init__(self, operation: str, original_error: Exception = None):
        self.operation = operation
        super().__init__(f"FTP {operation} failed", original_error)


class FTPStreamOpenError(FTPError):
    """A streamed download could not be opened."""

    def __init__(self, filename: str, reply: Optional[str] = None):
        self.filename = filename
        self.reply = reply
        super().__init__(_with_reply(f"Failed to open input stream for '{filename}'", reply))


class FTPNotConnectedError(FTPError):
    """Operation attempted on a released session."""

    def __init__(self, operation: str = "Operation"):
        message = f"{operation} requires an active FTP connection"
        super().__init__(message)
