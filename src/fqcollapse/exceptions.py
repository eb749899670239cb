"""
Errors raised while reading input streams.

Both kinds are fatal to the current pass; soft rejects are reported as
RejectReason values instead.
"""

from typing import Optional


class InputStreamError(Exception):
    pass


class FastqIOError(InputStreamError):
    """The underlying read failed."""

    def __init__(self, message: str, path: Optional[str] = None):
        self.path = path
        super().__init__(f"An I/O error occurred: {message}")


class FastqParseError(InputStreamError):
    """A record in the file at `path` is malformed."""

    def __init__(self, path: str, message: str):
        self.path = path
        super().__init__(f"Could not parse FASTQ file '{path}': {message}")
