"""sandbox-ftp: managed FTP sessions for sandboxed request handlers."""

__version__ = "1.0.0"
