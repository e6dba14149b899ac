"""Run configuration and duration parsing."""

import math
import re
from dataclasses import dataclass
from typing import Optional

from .errors import ConfigError
from .watch.backoff import BackoffPolicy

DEFAULT_TIMEOUT = 300.0

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|h|m|s)')
_UNIT_SECONDS = {'ms': 0.001, 's': 1.0, 'm': 60.0, 'h': 3600.0}


def parse_duration(text: str) -> float:
    """Parse a duration into seconds.

    Accepts plain seconds ('90', '1.5') or unit suffixed parts in the
    style of Go durations ('90s', '5m', '1h30m', '250ms').

    Raises:
        ConfigError: If the text is not a valid duration
    """
    value = text.strip()
    if not value:
        raise ConfigError("Empty duration")

    try:
        seconds = float(value)
    except ValueError:
        pos = 0
        seconds = 0.0
        for match in _DURATION_PART.finditer(value):
            if match.start() != pos:
                break
            seconds += float(match.group(1)) * _UNIT_SECONDS[match.group(2)]
            pos = match.end()
        if pos != len(value):
            raise ConfigError(f"Invalid duration: {text!r}")

    if not math.isfinite(seconds):
        raise ConfigError(f"Invalid duration: {text!r}")
    if seconds < 0:
        raise ConfigError(f"Duration must not be negative: {text!r}")
    return seconds


@dataclass
class WaitConfig:
    """Settings for one run of kwait."""

    timeout: Optional[float] = DEFAULT_TIMEOUT
    """Deadline in seconds; None waits forever."""

    backoff_initial: float = 0.8
    backoff_multiplier: float = 2.0
    backoff_max: float = 30.0

    max_retries: Optional[int] = 10
    """Consecutive stream failures tolerated; None retries until the deadline."""

    def backoff_policy(self) -> BackoffPolicy:
        try:
            return BackoffPolicy(
                initial=self.backoff_initial,
                multiplier=self.backoff_multiplier,
                maximum=self.backoff_max,
                max_retries=self.max_retries,
            )
        except ValueError as e:
            raise ConfigError(str(e))


def config_from_args(args) -> WaitConfig:
    """Build a WaitConfig from parsed command line arguments.

    A timeout of 0 means no deadline; a negative --max-retries means
    retry until the deadline.
    """
    config = WaitConfig()

    if args.timeout is not None:
        timeout = parse_duration(args.timeout)
        config.timeout = timeout if timeout > 0 else None

    if args.backoff_max is not None:
        config.backoff_max = parse_duration(args.backoff_max)

    if args.max_retries is not None:
        config.max_retries = args.max_retries if args.max_retries >= 0 else None

    return config
