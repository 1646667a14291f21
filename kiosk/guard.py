# Program: Printing State Guard
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Advisory print lock that suspends device polling while a job is running."""

from __future__ import annotations

import logging
import time
from collections import deque
from dataclasses import dataclass
from typing import Callable, Deque, Optional

from .events import StatusEvent

logger = logging.getLogger(__name__)

Clock = Callable[[], float]

DEFAULT_TIMEOUT_MS = 30_000


@dataclass(frozen=True)
class PrintingLock:
    active: bool
    expires_at: float


class PrintingStateGuard:
    """Single-owner, non-blocking print flag with self-healing expiry.

    ``acquire`` while already active overwrites the window (last writer wins).
    A lock whose window has elapsed reads as inactive and is cleared on read;
    each such expiry is logged and kept as a diagnostic event because it means
    a print flow never reached its release path.
    """

    def __init__(self, clock: Clock = time.monotonic, default_timeout_ms: int = DEFAULT_TIMEOUT_MS) -> None:
        self._clock = clock
        self.default_timeout_ms = default_timeout_ms
        self._lock = PrintingLock(active=False, expires_at=0.0)
        self.stale_expirations = 0
        self.diagnostics: Deque[StatusEvent] = deque(maxlen=20)

    @property
    def lock(self) -> PrintingLock:
        return self._lock

    def acquire(self, timeout_ms: Optional[int] = None) -> None:
        window = self.default_timeout_ms if timeout_ms is None else timeout_ms
        expires_at = self._clock() + max(window, 0) / 1000.0
        if self._lock.active:
            logger.debug("Print lock re-acquired; window overwritten")
        self._lock = PrintingLock(active=True, expires_at=expires_at)
        logger.info("Print lock acquired for %d ms", window)

    def release(self) -> None:
        if self._lock.active:
            logger.info("Print lock released")
        self._lock = PrintingLock(active=False, expires_at=0.0)

    def is_active(self) -> bool:
        lock = self._lock
        if not lock.active:
            return False
        if self._clock() <= lock.expires_at:
            return True
        self._expire()
        return False

    def _expire(self) -> None:
        self.stale_expirations += 1
        self._lock = PrintingLock(active=False, expires_at=0.0)
        message = "Print lock expired without release; device polling resumed"
        logger.warning(message)
        self.diagnostics.append(StatusEvent(source="guard", level="warn", message=message))


# Created by Dr. Z. Bakhtiyorov
