"""Exception hierarchy for kwait.

Errors are split by how the run reacts to them:

- PatternParseError: the pattern document is unusable, nothing is watched.
- RecoverableSourceError: the snapshot stream broke, retried with backoff.
- FatalSourceError: the target cannot be watched, the run stops.
- ConfigError: invalid command line or configuration values.

A pattern that simply does not fit an observed document is not an error.
"""

from typing import Optional


class KwaitError(Exception):
    """Base class for all kwait errors."""
    pass


class PatternParseError(KwaitError):
    """Error parsing a pattern document."""
    pass


class ConfigError(KwaitError):
    """Invalid configuration value."""
    pass


class SourceError(KwaitError):
    """Error raised by a snapshot source."""

    def __init__(self, message: str, status: Optional[int] = None):
        super().__init__(message)
        self.status = status
        """HTTP status reported by the API server, if any."""


class RecoverableSourceError(SourceError):
    """Transient failure of a snapshot stream (disconnect, 5xx, 410 Gone)."""
    pass


class FatalSourceError(SourceError):
    """Target can never be watched (not found, forbidden, bad selector)."""
    pass
