# Program: Kiosk Error Kinds
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Typed error kinds shared by the readiness, print, and shutdown flows."""

from __future__ import annotations

from enum import Enum


class ErrorKind(str, Enum):
    CONFIGURATION_MISSING = "configuration-missing"
    DEVICE_UNREACHABLE = "device-unreachable"
    PRINT_FAILURE = "print-failure"
    SIDE_EFFECT_FAILURE = "side-effect-failure"
    SHUTDOWN_FAILURE = "shutdown-failure"


class KioskError(RuntimeError):
    """Base error carrying the kind used by the presentation layer."""

    kind: ErrorKind = ErrorKind.DEVICE_UNREACHABLE

    def __init__(self, message: str, kind: ErrorKind | None = None) -> None:
        super().__init__(message)
        if kind is not None:
            self.kind = kind

    @property
    def message(self) -> str:
        return str(self)


class BackendError(KioskError):
    """Raised by the backend client for any failed command."""

    def __init__(self, command: str, detail: str) -> None:
        super().__init__(f"{command}: {detail}", ErrorKind.DEVICE_UNREACHABLE)
        self.command = command
        self.detail = detail


class PrintError(KioskError):
    """User-facing print problem; message is already truncated for display."""

    kind = ErrorKind.PRINT_FAILURE


def truncate_message(message: str, limit: int) -> str:
    if limit <= 0 or len(message) <= limit:
        return message
    return message[:limit]


# Created by Dr. Z. Bakhtiyorov
