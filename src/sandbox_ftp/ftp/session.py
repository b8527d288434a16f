"""FTP session for sandbox-ftp.

An FTPSession wraps one prepared, logged-in transport. Each operation is
a single remote call, timed, logged and run under a fixed ambient
deadline; any exception is surfaced as FTPOperationError.
"""

import io
import logging
import socket
import time
from typing import Callable, Iterator, List, Optional, TypeVar, Union

from sandbox_ftp.ftp.entries import RemoteEntry
from sandbox_ftp.ftp.exceptions import (
    FTPNotConnectedError,
    FTPOperationError,
    FTPStreamOpenError,
)
from sandbox_ftp.ftp.transport import (
    FTPTransport,
    ListingCursor,
    is_positive_completion,
    is_positive_preliminary,
)
from sandbox_ftp.sandbox.environment import DeadlineOverride, Environment, resolve_attributes

logger = logging.getLogger("sandbox_ftp.session")

T = TypeVar("T")

# Ambient deadline applied around every session operation
OPERATION_DEADLINE_SECONDS = 60.0


class RemoteFileStream(io.RawIOBase):
    """
    Readable stream over a download data connection.

    Closing it closes the data socket and then reads the server's
    transfer-complete reply, so the control connection can take the next
    command. This happens once, whether or not the data was read to the end.
    """

    def __init__(self, transport: FTPTransport, connection: socket.socket, name: str = ""):
        super().__init__()
        self._transport = transport
        self._connection = connection
        self.name = name
        self.completed: Optional[bool] = None

    def readable(self) -> bool:
        return True

    def readinto(self, buffer) -> int:
        return self._connection.recv_into(buffer)

    def close(self) -> None:
        if self.closed:
            return
        try:
            try:
                self._connection.close()
            finally:
                self.completed = self._complete()
            if not self.completed:
                logger.warning(
                    "FTP transfer of %s did not complete cleanly: %s",
                    self.name, self._transport.reply_string
                )
        finally:
            super().close()

    def _complete(self) -> bool:
        # The session may already be released; there is no reply left to read
        if not self._transport.is_connected():
            logger.warning(
                "FTP control connection closed before transfer of %s completed", self.name
            )
            return False
        return self._transport.complete_pending_command()


class BatchListing:
    """
    Single-pass iterator yielding a directory listing in batches.

    Usage:
        for batch in session.list_batch("/incoming", 100):
            handle(batch)
    """

    def __init__(self, cursor: ListingCursor, batch_size: int):
        self._cursor = cursor
        self.batch_size = batch_size

    @property
    def exhausted(self) -> bool:
        """True once the server has no more entries."""
        return self._cursor.exhausted and not self._cursor.has_next()

    def __iter__(self) -> Iterator[List[RemoteEntry]]:
        return self

    def __next__(self) -> List[RemoteEntry]:
        if not self._cursor.has_next():
            raise StopIteration
        return self._cursor.get_next(self.batch_size)

    def close(self) -> None:
        """Stop early and release the data connection."""
        self._cursor.close()

    def __enter__(self) -> "BatchListing":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()


class FTPSession:
    """Remote filesystem operations over one prepared FTP connection."""

    def __init__(self, transport: FTPTransport, environment: Optional[Environment] = None):
        """
        Initialize the session.

        Args:
            transport: Connected, logged-in transport
            environment: Sandbox environment for deadline overrides
                (defaults to the current one)
        """
        self._transport = transport
        self._environment = environment
        self._released = False

    @property
    def transport(self) -> FTPTransport:
        """The prepared transport, for raw access."""
        return self._transport

    @property
    def is_released(self) -> bool:
        return self._released

    def __enter__(self) -> "FTPSession":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.release()

    def release(self) -> None:
        """Disconnect if still connected. Never raises."""
        if self._released:
            return
        self._released = True
        try:
            if self._transport.is_connected():
                self._transport.disconnect()
        except Exception as e:
            logger.warning("Failed to disconnect ftp session - ignoring: %s", e)

    def time_log_and_catch(self, label: str, func: Callable[[], T]) -> T:
        """
        Run one remote call under the session deadline, timed and logged.

        Raises:
            FTPNotConnectedError: If the session was released
            FTPOperationError: If the call raised
        """
        if self._released:
            raise FTPNotConnectedError(f"FTP {label}")

        start = time.monotonic()
        with DeadlineOverride(resolve_attributes(self._environment), OPERATION_DEADLINE_SECONDS):
            logger.info("FTP %s", label)
            try:
                result = func()
            except Exception as e:
                elapsed = _millis_since(start)
                logger.warning("FTP %s failed in %sms: %s", label, elapsed, e)
                raise FTPOperationError(label, e) from e
            logger.info("FTP %s succeeded in %sms", label, _millis_since(start))
            return result

    def create_directory(self, path: str) -> bool:
        return self.time_log_and_catch(
            "Create directory", lambda: self._transport.make_directory(path)
        )

    def delete_directory(self, path: str) -> bool:
        return self.time_log_and_catch(
            "Delete directory", lambda: self._transport.remove_directory(path)
        )

    def change_working_directory(self, path: str) -> bool:
        """Change directory; False (not an error) if the server refuses."""
        return self.time_log_and_catch(
            "Change working directory", lambda: self._transport.change_working_directory(path)
        )

    def put_file(self, name: str, stream) -> bool:
        """Upload a readable binary stream as `name`."""
        return self.time_log_and_catch(
            "Put file", lambda: self._transport.store_file(name, stream)
        )

    def get_file(self, file: Union[str, RemoteEntry, None], stream) -> bool:
        """
        Download a file into a writable binary stream.

        Args:
            file: Remote name, or an entry from one of the list calls
            stream: Destination with a write() method

        Returns:
            True if the server confirmed the transfer
        """
        if file is None or isinstance(file, RemoteEntry):
            return self.get_entry(file, stream)
        return self.time_log_and_catch(
            f"Get file {file}", lambda: self._transport.retrieve_file(file, stream)
        )

    def get_entry(self, entry: Optional[RemoteEntry], stream) -> bool:
        """Download a listed entry; False without a transfer unless it is a file."""
        if entry is None or not entry.is_file():
            return False
        return self.get_file(entry.name, stream)

    def rename_file(self, from_name: str, to_name: str) -> bool:
        return self.time_log_and_catch(
            "Rename file", lambda: self._transport.rename(from_name, to_name)
        )

    def delete_file(self, path: str) -> bool:
        return self.time_log_and_catch(
            "Delete file", lambda: self._transport.delete_file(path)
        )

    def list_directories(self, directory: Optional[str] = None) -> List[RemoteEntry]:
        return self.time_log_and_catch(
            "List directories", lambda: self._transport.list_directories(directory)
        )

    def list_files(self, directory: Optional[str] = None) -> List[RemoteEntry]:
        """List every entry (files and directories) the server reports."""
        return self.time_log_and_catch(
            "List files", lambda: self._transport.list_files(directory)
        )

    def list_batch(self, directory: Optional[str], batch_size: int) -> BatchListing:
        """
        List remote contents in batches, files and directories alike.

        Entries are pulled from the data connection as batches are
        requested, so the full listing is never held in memory.
        """
        if batch_size < 1:
            raise ValueError(f"batch_size must be at least 1, got {batch_size}")

        return self.time_log_and_catch(
            "List files in batch",
            lambda: BatchListing(self._transport.initiate_list_parsing(directory), batch_size)
        )

    def open_file(self, name: str) -> RemoteFileStream:
        """
        Open a streamed download of `name`.

        The returned stream must be closed before the next command is
        issued on this session.
        """
        return self.time_log_and_catch(f"Get file stream {name}", lambda: self._open_stream(name))

    def _open_stream(self, name: str) -> RemoteFileStream:
        connection = self._transport.retrieve_file_stream(name)
        reply = self._transport.reply_code
        if connection is None or not (
            is_positive_preliminary(reply) or is_positive_completion(reply)
        ):
            if connection is not None:
                connection.close()
            raise FTPStreamOpenError(name, self._transport.reply_string)
        return RemoteFileStream(self._transport, connection, name)


def _millis_since(start: float) -> int:
    return int((time.monotonic() - start) * 1000)
