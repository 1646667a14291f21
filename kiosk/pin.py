# Program: PIN Confirmation Gate
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Numeric PIN state machine guarding kiosk shutdown."""

from __future__ import annotations

import asyncio
import hmac
import inspect
import logging
from dataclasses import dataclass
from enum import Enum
from typing import Awaitable, Callable, List, Optional, Tuple, Union

from .clients import Backend
from .errors import ErrorKind, KioskError

logger = logging.getLogger(__name__)

DELETE_KEYS = {"backspace", "delete", "del", "back"}
CANCEL_KEYS = {"escape", "esc", "cancel"}


class PinPhase(str, Enum):
    IDLE = "idle"
    ENTERING = "entering"
    CONFIRMED = "confirmed"
    REJECTED = "rejected"


@dataclass(frozen=True)
class PinState:
    phase: PinPhase
    digits_entered: Tuple[str, ...]
    error: bool
    length: int

    @property
    def masked(self) -> str:
        return "•" * len(self.digits_entered) + "_" * (self.length - len(self.digits_entered))


class PinGate:
    """``Idle -> Entering -> Confirmed | Rejected -> Idle``.

    Keyboard keys and on-screen keypad labels go through the same
    :meth:`press`. A full-length entry is compared in one constant-time
    comparison. A rejected entry keeps the error flag up for
    ``error_hold_ms`` and then returns to an empty entry. Digits are ignored
    during the hold; a delete key ends it early, dropping the last digit
    and the error flag.
    """

    def __init__(
        self,
        pin_code: str,
        on_confirmed: Callable[[], Union[None, Awaitable[object]]],
        error_hold_ms: int = 800,
    ) -> None:
        if not pin_code or not pin_code.isdigit():
            raise ValueError("PIN must be a non-empty string of digits")
        self._pin = pin_code
        self._on_confirmed = on_confirmed
        self.error_hold_ms = error_hold_ms
        self.phase = PinPhase.IDLE
        self._digits: List[str] = []
        self.error = False
        self._hold: Optional[asyncio.TimerHandle] = None
        self.confirmations = 0
        self.rejections = 0

    @property
    def length(self) -> int:
        return len(self._pin)

    @property
    def state(self) -> PinState:
        return PinState(self.phase, tuple(self._digits), self.error, self.length)

    def open(self) -> PinState:
        """Entering the confirmation view resets to an empty entry."""
        self._cancel_hold()
        self._digits.clear()
        self.error = False
        self.phase = PinPhase.ENTERING
        return self.state

    def cancel(self) -> PinState:
        self._cancel_hold()
        self._digits.clear()
        self.error = False
        self.phase = PinPhase.IDLE
        return self.state

    def backspace(self) -> PinState:
        if self.phase is PinPhase.REJECTED:
            self._cancel_hold()
            self.phase = PinPhase.ENTERING
        if self.phase is PinPhase.ENTERING:
            if self._digits:
                self._digits.pop()
            self.error = False
        return self.state

    async def press(self, key: str) -> PinState:
        token = key.strip()
        lowered = token.lower()
        if lowered in CANCEL_KEYS:
            return self.cancel()
        if lowered in DELETE_KEYS:
            return self.backspace()
        if self.phase is not PinPhase.ENTERING:
            return self.state
        if len(token) != 1 or not token.isdigit():
            return self.state

        self._digits.append(token)
        self.error = False
        if len(self._digits) < self.length:
            return self.state

        entered = "".join(self._digits)
        if hmac.compare_digest(entered.encode("ascii"), self._pin.encode("ascii")):
            await self._confirm()
        else:
            self._reject()
        return self.state

    async def _confirm(self) -> None:
        self.phase = PinPhase.CONFIRMED
        self.confirmations += 1
        logger.info("PIN confirmed; running guarded action")
        try:
            result = self._on_confirmed()
            if inspect.isawaitable(result):
                await result
        finally:
            self._digits.clear()
            self.error = False
            self.phase = PinPhase.IDLE

    def _reject(self) -> None:
        self.phase = PinPhase.REJECTED
        self.rejections += 1
        self.error = True
        logger.info("PIN rejected")
        loop = asyncio.get_running_loop()
        self._hold = loop.call_later(self.error_hold_ms / 1000.0, self._clear_rejection)

    def _clear_rejection(self) -> None:
        self._hold = None
        if self.phase is not PinPhase.REJECTED:
            return
        self._digits.clear()
        self.error = False
        self.phase = PinPhase.ENTERING

    def _cancel_hold(self) -> None:
        if self._hold is not None:
            self._hold.cancel()
            self._hold = None


class ShutdownAction:
    """Ask the backend to shut the machine down, then close the kiosk itself.

    The local close runs on both paths: after the backend acknowledges, and
    as a forced close when the request fails.
    """

    def __init__(self, backend: Backend, close_local: Callable[[], None]) -> None:
        self.backend = backend
        self.close_local = close_local
        self.requests = 0

    async def __call__(self) -> bool:
        self.requests += 1
        try:
            await self.backend.request_shutdown()
        except Exception as exc:  # noqa: BLE001 - the kiosk must still close
            error = KioskError(f"shutdown request failed: {exc}", ErrorKind.SHUTDOWN_FAILURE)
            logger.error("%s; forcing local close", error)
            self.close_local()
            return False
        logger.info("Shutdown acknowledged; closing kiosk")
        self.close_local()
        return True


# Created by Dr. Z. Bakhtiyorov
