"""FTP operations module for sandbox-ftp.

This module handles all FTP-related functionality:
- FTPClient: Connection preparation within the sandbox deadline
- FTPSession: Timed, logged remote filesystem operations
- FTPTransport: Reply-tracking adapter over ftplib
- RemoteEntry: Parsed directory listing entries
- Exceptions: FTP-specific error types
"""

from sandbox_ftp.ftp.client import PORT_FTP, PORT_SFTP, ConnectionConfig, FTPClient
from sandbox_ftp.ftp.entries import EntryType, RemoteEntry
from sandbox_ftp.ftp.exceptions import (
    FTPAuthenticationError,
    FTPBinaryModeError,
    FTPConnectionError,
    FTPError,
    FTPNotConnectedError,
    FTPOperationError,
    FTPPassiveModeError,
    FTPStreamOpenError,
    FTPTimeoutError,
    FTPTransportError,
)
from sandbox_ftp.ftp.progress import UNKNOWN_STREAM_SIZE, ProgressListener, ProgressTracker
from sandbox_ftp.ftp.session import BatchListing, FTPSession, RemoteFileStream
from sandbox_ftp.ftp.transport import FTPTransport, ListingCursor, TransferMode

__all__ = [
    "PORT_FTP",
    "PORT_SFTP",
    "UNKNOWN_STREAM_SIZE",
    "BatchListing",
    "ConnectionConfig",
    "EntryType",
    "FTPAuthenticationError",
    "FTPBinaryModeError",
    "FTPClient",
    "FTPConnectionError",
    "FTPError",
    "FTPNotConnectedError",
    "FTPOperationError",
    "FTPPassiveModeError",
    "FTPSession",
    "FTPStreamOpenError",
    "FTPTimeoutError",
    "FTPTransport",
    "FTPTransportError",
    "ListingCursor",
    "ProgressListener",
    "ProgressTracker",
    "RemoteEntry",
    "RemoteFileStream",
    "TransferMode",
]
