"""Pytest configuration and shared fixtures for sandbox-ftp tests."""

import io
from typing import List, Optional

import pytest

from sandbox_ftp.sandbox.environment import Environment


class FakeDataSocket:
    """Stand-in for an FTP data connection socket."""

    def __init__(self, data: bytes = b"", events: Optional[List[str]] = None):
        self._data = io.BytesIO(data)
        self._raw = data
        self.events = events if events is not None else []
        self.closed = False

    def recv_into(self, buffer) -> int:
        return self._data.readinto(buffer)

    def makefile(self, mode: str = "r", encoding: str = "utf-8"):
        return io.StringIO(self._raw.decode(encoding), newline="")

    def close(self) -> None:
        self.closed = True
        self.events.append("socket closed")


@pytest.fixture
def environment() -> Environment:
    """Sandbox environment with no deadline set."""
    return Environment({})


@pytest.fixture
def data_socket():
    """Factory for fake data connection sockets."""
    return FakeDataSocket


@pytest.fixture
def mlsd_listing() -> bytes:
    """MLSD output for a small directory."""
    return (
        b"type=cdir;modify=20240101120000; .\r\n"
        b"type=pdir;modify=20240101120000; ..\r\n"
        b"type=file;size=12;modify=20240102030405; a.txt\r\n"
        b"type=dir;modify=20240103000000; archive\r\n"
        b"type=file;size=0;modify=20240104000000; empty.bin\r\n"
    )


@pytest.fixture
def unix_listing() -> bytes:
    """Unix `ls -l` style LIST output for the same directory."""
    return (
        b"total 8\r\n"
        b"-rw-r--r--   1 owner group       12 Jan  2  2024 a.txt\r\n"
        b"drwxr-xr-x   2 owner group     4096 Jan  3  2024 archive\r\n"
        b"-rw-r--r--   1 owner group        0 Jan  4  2024 empty.bin\r\n"
    )
