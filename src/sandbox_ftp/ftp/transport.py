"""FTP transport adapter for sandbox-ftp.

Wraps ftplib.FTP with reply-code tracking and boolean results: a negative
server reply (4xx/5xx) comes back as False, an empty listing or None,
while socket and protocol errors propagate to the caller.
"""

import logging
import os
import socket
from enum import Enum
from ftplib import FTP, Error, error_perm, error_reply, error_temp
from typing import Any, Callable, List, Optional, Tuple

from sandbox_ftp.ftp.entries import RemoteEntry
from sandbox_ftp.ftp.progress import UNKNOWN_STREAM_SIZE, ProgressListener

logger = logging.getLogger("sandbox_ftp.transport")

# Replies ftplib raises for 4xx/5xx/unexpected codes
NEGATIVE_REPLIES = (error_reply, error_temp, error_perm)

# MLSD answered with one of these means the server lacks the command
_NOT_IMPLEMENTED = (500, 502)

# Same cap ftplib applies to a single line
MAXLINE = 8192

# Entries pulled per chunk when a full listing is collected
LIST_CHUNK_SIZE = 256


def is_positive_preliminary(code: int) -> bool:
    """True for 1xx replies (action started, another reply follows)."""
    return 100 <= code < 200


def is_positive_completion(code: int) -> bool:
    """True for 2xx replies (action completed)."""
    return 200 <= code < 300


class TransferMode(Enum):
    """FTP MODE command argument."""
    STREAM = "S"
    BLOCK = "B"
    COMPRESSED = "C"


class ListingCursor:
    """
    Pull-based cursor over one server-side directory listing.

    Reads the data connection a line at a time and keeps a single parsed
    entry of look-ahead. Once the server closes the data connection the
    cursor is exhausted, the socket is closed and the transfer-complete
    reply is read so the control connection stays usable.
    """

    def __init__(
        self,
        transport: Optional["FTPTransport"] = None,
        connection: Optional[socket.socket] = None,
        parser: Optional[Callable[[str], RemoteEntry]] = None
    ):
        self._transport = transport
        self._connection = connection
        self._parser = parser
        self._reader = None
        if connection is not None:
            self._reader = connection.makefile("r", encoding=transport.encoding)
        self._pending: Optional[RemoteEntry] = None
        self.exhausted = connection is None

    @classmethod
    def empty(cls) -> "ListingCursor":
        """A cursor with nothing to read."""
        return cls()

    def has_next(self) -> bool:
        """True if at least one more entry is available."""
        if self._pending is None and not self.exhausted:
            self._pending = self._read_entry()
        return self._pending is not None

    def get_next(self, count: int) -> List[RemoteEntry]:
        """
        Pull up to `count` entries.

        Returns:
            List of entries, empty once the listing is exhausted
        """
        batch: List[RemoteEntry] = []
        while len(batch) < count and self.has_next():
            batch.append(self._pending)
            self._pending = None
        return batch

    def close(self) -> None:
        """Abandon the listing early; no-op once exhausted."""
        self._pending = None
        if not self.exhausted:
            self._finish()

    def __enter__(self) -> "ListingCursor":
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> None:
        self.close()

    def _read_entry(self) -> Optional[RemoteEntry]:
        while True:
            try:
                line = self._reader.readline(MAXLINE + 1)
            except OSError:
                self._close_data_connection()
                raise
            if len(line) > MAXLINE:
                self._close_data_connection()
                raise Error(f"got more than {MAXLINE} bytes")
            if not line:
                self._finish()
                return None

            line = line.rstrip("\r\n")
            if not line:
                continue
            try:
                entry = self._parser(line)
            except ValueError:
                # e.g. the "total 12" header of ls output
                logger.debug("Skipping unparsable listing line: %r", line)
                continue
            if entry.is_navigation:
                continue
            return entry

    def _close_data_connection(self) -> None:
        self.exhausted = True
        self._reader.close()
        self._connection.close()

    def _finish(self) -> None:
        self._close_data_connection()
        self._transport.complete_pending_command()


class FTPTransport:
    """Reply-tracking adapter around a single ftplib.FTP control connection."""

    def __init__(
        self,
        timeout: float = 60.0,
        buffer_size: int = 8192,
        progress_listener: Optional[ProgressListener] = None
    ):
        """
        Initialize the transport.

        Args:
            timeout: Socket timeout in seconds
            buffer_size: Block size for store/retrieve transfers
            progress_listener: Optional per-block progress callback
        """
        self._ftp = FTP(timeout=timeout)
        self._timeout = timeout
        self._buffer_size = buffer_size
        self._progress_listener = progress_listener
        self._mlsd_supported = True
        self._reply_code = 0
        self._reply_string = ""

    @property
    def ftp(self) -> FTP:
        """The underlying ftplib.FTP object."""
        return self._ftp

    @property
    def encoding(self) -> str:
        """Encoding used on the control and listing channels."""
        return self._ftp.encoding

    @property
    def reply_code(self) -> int:
        """Numeric code of the last server reply (0 when none)."""
        return self._reply_code

    @property
    def reply_string(self) -> str:
        """Text of the last server reply."""
        return self._reply_string

    @property
    def buffer_size(self) -> int:
        return self._buffer_size

    @property
    def progress_listener(self) -> Optional[ProgressListener]:
        return self._progress_listener

    def is_connected(self) -> bool:
        """True while the control socket is open."""
        return self._ftp.sock is not None

    # Connection lifecycle

    def connect(self, host: str, port: int) -> None:
        """
        Open the control connection and read the greeting.

        A negative greeting is recorded in reply_code rather than raised.
        """
        try:
            welcome = self._ftp.connect(host, port, self._timeout)
        except NEGATIVE_REPLIES as e:
            self._remember(str(e))
            return
        self._remember(welcome)

    def login(self, username: str, password: str) -> bool:
        ok, _ = self._call(self._ftp.login, username, password)
        return ok

    def logout(self) -> bool:
        """Send QUIT without closing the socket."""
        ok, _ = self._call(self._ftp.voidcmd, "QUIT")
        return ok

    def disconnect(self) -> None:
        """Close the control connection."""
        self._ftp.close()

    # Configuration

    def enter_local_passive_mode(self) -> None:
        """Use PASV for future data connections; nothing is sent now."""
        self._ftp.set_pasv(True)

    def set_file_type_binary(self) -> bool:
        ok, _ = self._call(self._ftp.voidcmd, "TYPE I")
        return ok

    def set_so_timeout(self, seconds: float) -> None:
        """Apply a timeout to the control socket and future data sockets."""
        self._timeout = seconds
        self._ftp.timeout = seconds
        if self._ftp.sock is not None:
            self._ftp.sock.settimeout(seconds)

    def set_buffer_size(self, size: int) -> None:
        self._buffer_size = size

    def set_file_transfer_mode(self, mode: TransferMode) -> bool:
        ok, _ = self._call(self._ftp.voidcmd, f"MODE {mode.value}")
        return ok

    # Remote filesystem

    def make_directory(self, path: str) -> bool:
        ok, _ = self._call(self._ftp.mkd, path)
        return ok

    def remove_directory(self, path: str) -> bool:
        ok, _ = self._call(self._ftp.rmd, path)
        return ok

    def change_working_directory(self, path: str) -> bool:
        ok, _ = self._call(self._ftp.cwd, path)
        return ok

    def rename(self, from_name: str, to_name: str) -> bool:
        ok, _ = self._call(self._ftp.rename, from_name, to_name)
        return ok

    def delete_file(self, path: str) -> bool:
        ok, _ = self._call(self._ftp.delete, path)
        return ok

    def store_file(self, name: str, stream) -> bool:
        """Upload a binary stream to `name`."""
        callback = self._tracked(None, _stream_size(stream))
        ok, _ = self._call(
            self._ftp.storbinary, f"STOR {name}", stream, self._buffer_size, callback
        )
        return ok

    def retrieve_file(self, name: str, stream) -> bool:
        """Download `name` into a writable binary stream."""
        callback = self._tracked(stream.write, UNKNOWN_STREAM_SIZE)
        ok, _ = self._call(
            self._ftp.retrbinary, f"RETR {name}", callback, self._buffer_size
        )
        return ok

    def list_files(self, directory: Optional[str] = None) -> List[RemoteEntry]:
        """List every entry of `directory` (or the working directory)."""
        entries: List[RemoteEntry] = []
        with self.initiate_list_parsing(directory) as cursor:
            while cursor.has_next():
                entries.extend(cursor.get_next(LIST_CHUNK_SIZE))
        return entries

    def list_directories(self, directory: Optional[str] = None) -> List[RemoteEntry]:
        return [e for e in self.list_files(directory) if e.is_directory()]

    def initiate_list_parsing(self, directory: Optional[str] = None) -> ListingCursor:
        """
        Start a listing and return a cursor over its data connection.

        MLSD is tried first; servers that reject it get LIST instead.
        A negative reply gives an empty cursor.
        """
        for command, parser in self._listing_commands():
            cmd = f"{command} {directory}" if directory else command
            try:
                conn = self._ftp.transfercmd(cmd)
            except error_perm as e:
                self._remember(str(e))
                if command == "MLSD" and self._reply_code in _NOT_IMPLEMENTED:
                    logger.debug("MLSD not supported, falling back to LIST")
                    self._mlsd_supported = False
                    continue
                return ListingCursor.empty()
            except (error_temp, error_reply) as e:
                self._remember(str(e))
                return ListingCursor.empty()
            self._remember(self._ftp.lastresp)
            return ListingCursor(self, conn, parser)
        return ListingCursor.empty()

    def retrieve_file_stream(self, name: str) -> Optional[socket.socket]:
        """
        Open a download data connection for `name`.

        Returns:
            The data socket, or None on a negative reply. The caller must
            close it and then call complete_pending_command().
        """
        try:
            conn = self._ftp.transfercmd(f"RETR {name}")
        except NEGATIVE_REPLIES as e:
            self._remember(str(e))
            return None
        self._remember(self._ftp.lastresp)
        return conn

    def complete_pending_command(self) -> bool:
        """Read the reply that ends a streamed transfer."""
        ok, _ = self._call(self._ftp.voidresp)
        return ok

    # Internals

    def _listing_commands(self) -> List[Tuple[str, Callable[[str], RemoteEntry]]]:
        commands = [("LIST", RemoteEntry.from_list_line)]
        if self._mlsd_supported:
            commands.insert(0, ("MLSD", RemoteEntry.from_mlsd_line))
        return commands

    def _call(self, func: Callable[..., Any], *args) -> Tuple[bool, Any]:
        try:
            result = func(*args)
        except NEGATIVE_REPLIES as e:
            self._remember(str(e))
            return False, None
        if isinstance(result, str) and result[:3].isdigit():
            self._remember(result)
        else:
            self._remember(self._ftp.lastresp)
        return True, result

    def _remember(self, text: Any) -> None:
        if not isinstance(text, str):
            text = ""
        self._reply_string = text
        code = text[:3]
        self._reply_code = int(code) if code.isdigit() else 0

    def _tracked(self, sink: Optional[Callable[[bytes], Any]], stream_size: int) -> Callable[[bytes], None]:
        """Block callback feeding `sink` and the progress listener."""
        listener = self._progress_listener
        total = 0

        def on_block(block: bytes) -> None:
            nonlocal total
            if sink is not None:
                sink(block)
            total += len(block)
            if listener is not None:
                listener(total, len(block), stream_size)

        return on_block


def _stream_size(stream) -> int:
    try:
        return os.fstat(stream.fileno()).st_size
    except (AttributeError, OSError):
        return UNKNOWN_STREAM_SIZE
