"""Sandbox module for sandbox-ftp.

This module models the hosting sandbox's ambient request state:
- Environment: per-request attribute map
- DeadlineOverride: scoped save/override/restore of the call deadline
"""

from sandbox_ftp.sandbox.environment import (
    API_DEADLINE_KEY,
    DeadlineOverride,
    Environment,
    bind_environment,
    current_environment,
    resolve_attributes,
)

__all__ = [
    "API_DEADLINE_KEY",
    "DeadlineOverride",
    "Environment",
    "bind_environment",
    "current_environment",
    "resolve_attributes",
]
