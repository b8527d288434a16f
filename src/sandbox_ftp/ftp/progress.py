"""Transfer progress reporting for sandbox-ftp.

A progress listener is any callable taking
(total_bytes_transferred, bytes_transferred, stream_size). It is called
once per block during store and retrieve transfers.
"""

import sys
from typing import Callable, Optional, TextIO

# stream_size value when the transfer length is not known up front
UNKNOWN_STREAM_SIZE = -1

ProgressListener = Callable[[int, int, int], None]


class ProgressTracker:
    """Listener that writes one '#' per megabyte transferred."""

    BYTES_PER_MARK = 1_000_000

    def __init__(self, output: Optional[TextIO] = None):
        """
        Initialize the tracker.

        Args:
            output: Text stream to write marks to (default stdout)
        """
        self._output = output
        self._marks = 0

    @property
    def marks(self) -> int:
        """Number of marks written so far."""
        return self._marks

    def __call__(self, total_bytes_transferred: int, bytes_transferred: int, stream_size: int) -> None:
        megs = total_bytes_transferred // self.BYTES_PER_MARK
        if megs <= self._marks:
            return
        output = self._output or sys.stdout
        output.write("#" * (megs - self._marks))
        output.flush()
        self._marks = megs
