"""Fixtures for integration tests against a local FTP server."""

import pytest

from sandbox_ftp.ftp.client import ConnectionConfig, FTPClient

from .mock_ftp_server import MockFTPServer


@pytest.fixture
def ftp_server():
    """Provide a running mock FTP server."""
    with MockFTPServer() as server:
        yield server


@pytest.fixture
def server_config(ftp_server):
    return ConnectionConfig(
        host=ftp_server.host,
        port=ftp_server.port,
        username=ftp_server.username,
        password=ftp_server.password,
        timeout=10.0,
    )


@pytest.fixture
def client(server_config, environment):
    return FTPClient(server_config, environment=environment)
