from __future__ import annotations

import logging
import time
from typing import Callable

from .errors import ReadinessTimeout

logger = logging.getLogger(__name__)

DEFAULT_INTERVAL = 1.0
DEFAULT_MAX_INTERVAL = 8.0
DEFAULT_BACKOFF = 2.0


def wait_until(
        check: Callable[[], bool],
        *,
        what: str,
        timeout: float,
        interval: float = DEFAULT_INTERVAL,
        max_interval: float = DEFAULT_MAX_INTERVAL,
        backoff: float = DEFAULT_BACKOFF,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
) -> int:
    """Poll ``check`` until it returns True; return the number of attempts.

    Sleeps grow by ``backoff`` up to ``max_interval`` and never overshoot the
    deadline. Raises ReadinessTimeout once ``timeout`` seconds have passed.
    """
    deadline = clock() + timeout
    delay = interval
    attempts = 0
    while True:
        attempts += 1
        if check():
            logger.debug("%s ready after %d attempt(s)", what, attempts)
            return attempts
        remaining = deadline - clock()
        if remaining <= 0:
            raise ReadinessTimeout(what, timeout)
        logger.debug("%s not ready (attempt %d); retrying in %.1fs", what, attempts, min(delay, remaining))
        sleep(min(delay, remaining))
        delay = min(delay * backoff, max_interval)
