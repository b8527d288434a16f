"""Utility module for sandbox-ftp.

This module provides cross-cutting utilities:
- Logging: Configured logging with secret redaction
- Validators: Input validation for host, port and timeout
"""
