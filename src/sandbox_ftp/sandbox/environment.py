"""Ambient request environment for sandbox-ftp.

The hosting sandbox keeps a mutable attribute map per request. One of its
attributes is the deadline, in seconds, applied to every outbound call.
The map for the running request is bound to a ContextVar so threads and
asyncio tasks each see their own, and DeadlineOverride temporarily
replaces the deadline for a single remote call.
"""

import contextvars
from contextlib import contextmanager
from typing import Any, Dict, Iterator, MutableMapping, Optional

API_DEADLINE_KEY = "com.google.apphosting.api.ApiProxy.api_deadline_key"


class Environment:
    """Attribute storage for one request."""

    def __init__(self, attributes: Optional[Dict[str, Any]] = None):
        self.attributes: Dict[str, Any] = attributes if attributes is not None else {}

    @property
    def deadline(self) -> Optional[float]:
        """Current deadline in seconds, or None when unset."""
        return self.attributes.get(API_DEADLINE_KEY)

    def __repr__(self) -> str:
        return f"Environment(deadline={self.deadline!r})"


_current: contextvars.ContextVar[Optional[Environment]] = contextvars.ContextVar(
    "sandbox_ftp_environment", default=None
)


def current_environment() -> Optional[Environment]:
    """Return the environment bound to the running request, if any."""
    return _current.get()


@contextmanager
def bind_environment(environment: Environment) -> Iterator[Environment]:
    """
    Bind an environment as current for the duration of the block.

    Usage:
        with bind_environment(Environment()) as env:
            client.run(operation)
    """
    token = _current.set(environment)
    try:
        yield environment
    finally:
        _current.reset(token)


def resolve_attributes(environment: Optional[Environment] = None) -> MutableMapping[str, Any]:
    """
    Pick the attribute map a remote call should use.

    An explicit environment wins, then the current one. Outside a request a
    throwaway map is returned so overrides are harmless.
    """
    if environment is None:
        environment = current_environment()
    if environment is None:
        return {}
    return environment.attributes


class DeadlineOverride:
    """
    Save, override and restore the ambient deadline.

    The value found on entry is kept as the deadline token in `previous`.
    On exit it is put back, or the key is removed when there was none.
    """

    def __init__(self, attributes: MutableMapping[str, Any], seconds: float):
        self._attributes = attributes
        self.seconds = float(seconds)
        self.previous: Optional[float] = None
        self._active = False

    def __enter__(self) -> "DeadlineOverride":
        self.previous = self._attributes.get(API_DEADLINE_KEY)
        self._attributes[API_DEADLINE_KEY] = self.seconds
        self._active = True
        return self

    def __exit__(self, exc_type, exc_val, exc_tb) -> bool:
        self.restore()
        return False

    def restore(self) -> None:
        """Put the deadline token back; safe to call more than once."""
        if not self._active:
            return
        self._active = False
        if self.previous is None:
            self._attributes.pop(API_DEADLINE_KEY, None)
        else:
            self._attributes[API_DEADLINE_KEY] = self.previous
