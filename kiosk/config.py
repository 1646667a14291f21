# Program: Kiosk Config Utilities
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Shared configuration loading and logging setup."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

import yaml
from rich.logging import RichHandler


@dataclass
class AppConfig:
    state_path: Path
    poll_interval_s: float = 3.0
    machine_status_interval_s: float = 3.0
    lock_timeout_ms: int = 30_000
    print_lock_timeout_ms: int = 45_000
    pin_code: str = "1234"
    pin_error_hold_ms: int = 800
    max_copies: int = 5
    cut_frame_width: int = 1200
    cut_frame_height: int = 3600
    error_message_limit: int = 60
    camera_url: str = "http://127.0.0.1:8101"
    printer_url: str = "http://127.0.0.1:8102"
    machine_url: str = "http://127.0.0.1:8103"
    request_timeout_s: float = 10.0
    log_level: str = "INFO"

    def __post_init__(self) -> None:
        if not self.pin_code or not self.pin_code.isdigit():
            raise ValueError("pin_code must be a non-empty string of digits")

    @property
    def pin_length(self) -> int:
        return len(self.pin_code)


def load_config(path: Optional[Path] = None) -> AppConfig:
    """Load YAML config with sane defaults."""
    data = {}
    if path is not None:
        data = yaml.safe_load(path.read_text(encoding="utf-8")) or {}
    return AppConfig(
        state_path=Path(data.get("state_path", "./kiosk_state.json")).resolve(),
        poll_interval_s=float(data.get("poll_interval_s", 3.0)),
        machine_status_interval_s=float(data.get("machine_status_interval_s", 3.0)),
        lock_timeout_ms=int(data.get("lock_timeout_ms", 30_000)),
        print_lock_timeout_ms=int(data.get("print_lock_timeout_ms", 45_000)),
        pin_code=str(data.get("pin_code", "1234")),
        pin_error_hold_ms=int(data.get("pin_error_hold_ms", 800)),
        max_copies=int(data.get("max_copies", 5)),
        cut_frame_width=int(data.get("cut_frame_width", 1200)),
        cut_frame_height=int(data.get("cut_frame_height", 3600)),
        error_message_limit=int(data.get("error_message_limit", 60)),
        camera_url=str(data.get("camera_url", "http://127.0.0.1:8101")),
        printer_url=str(data.get("printer_url", "http://127.0.0.1:8102")),
        machine_url=str(data.get("machine_url", "http://127.0.0.1:8103")),
        request_timeout_s=float(data.get("request_timeout_s", 10.0)),
        log_level=str(data.get("log_level", "INFO")).upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install a single rich handler on the root logger."""
    root = logging.getLogger()
    root.setLevel(level)
    if any(isinstance(handler, RichHandler) for handler in root.handlers):
        return
    handler = RichHandler(rich_tracebacks=True, show_path=False)
    handler.setFormatter(logging.Formatter("%(name)s: %(message)s"))
    root.addHandler(handler)


# Created by Dr. Z. Bakhtiyorov
