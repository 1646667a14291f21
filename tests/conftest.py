# Program: Kiosk Test Fixtures
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

from __future__ import annotations

import base64
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

import pytest

# Ensure the project root is importable when running tests without installation
sys.path.insert(0, str(Path(__file__).resolve().parents[1]))

from kiosk.errors import BackendError
from kiosk.events import (
    CalibrationPrintRequest,
    DeviceAlert,
    DeviceDescriptor,
    MachineStatus,
    PhotoPrintRequest,
    PrinterInfo,
    VendorCamera,
)
from kiosk.guard import PrintingStateGuard
from kiosk.storage import KeyValueStore, KioskSettings


class FakeClock:
    """Monotonic clock advanced by hand."""

    def __init__(self, start: float = 1000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now

    def advance_ms(self, ms: float) -> None:
        self.now += ms / 1000.0


class FakeBackend:
    """In-memory backend recording every command in order."""

    def __init__(self) -> None:
        self.camera_devices: List[DeviceDescriptor] = []
        self.vendor_cameras: List[VendorCamera] = []
        self.printers: List[PrinterInfo] = []
        self.machine_status = MachineStatus()
        self.failures: Dict[str, Exception] = {}
        self.calls: List[Tuple[str, object]] = []
        self.temp_images: Dict[str, bytes] = {}
        self.alerts: List[DeviceAlert] = []
        self.guard: Optional[PrintingStateGuard] = None
        self.guard_seen: List[bool] = []

    def _record(self, name: str, payload: object = None) -> None:
        self.calls.append((name, payload))
        if self.guard is not None:
            self.guard_seen.append(self.guard.is_active())
        if name in self.failures:
            raise self.failures[name]

    def names(self) -> List[str]:
        return [name for name, _ in self.calls]

    def count(self, name: str) -> int:
        return self.names().count(name)

    async def list_camera_devices(self) -> List[DeviceDescriptor]:
        self._record("list_camera_devices")
        return list(self.camera_devices)

    async def list_vendor_cameras(self) -> List[VendorCamera]:
        self._record("list_vendor_cameras")
        return list(self.vendor_cameras)

    async def list_printers(self) -> List[PrinterInfo]:
        self._record("list_printers")
        return list(self.printers)

    async def print_test_photo(self, request: CalibrationPrintRequest) -> None:
        self._record("print_test_photo", request)

    async def print_photo(self, request: PhotoPrintRequest) -> None:
        self._record("print_photo", request)

    async def decrement_paper_level(self, copies: int) -> None:
        self._record("decrement_paper_level", copies)

    async def save_temp_image(self, image_data_base64: str, filename: str) -> str:
        self._record("save_temp_image", filename)
        path = f"/tmp/kiosk/{filename}"
        self.temp_images[path] = base64.b64decode(image_data_base64)
        return path

    async def request_shutdown(self) -> None:
        self._record("request_shutdown")

    async def query_machine_status(self) -> MachineStatus:
        self._record("query_machine_status")
        return self.machine_status

    async def send_device_alert(self, alert: DeviceAlert) -> None:
        self._record("send_device_alert", alert)
        self.alerts.append(alert)


def fail(command: str, detail: str = "device offline") -> BackendError:
    return BackendError(command, detail)


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def backend() -> FakeBackend:
    return FakeBackend()


@pytest.fixture()
def settings() -> KioskSettings:
    return KioskSettings(KeyValueStore())


@pytest.fixture()
def guard(clock: FakeClock) -> PrintingStateGuard:
    return PrintingStateGuard(clock=clock)


@pytest.fixture()
def configured(backend: FakeBackend, settings: KioskSettings) -> KioskSettings:
    """Settings with a webcam and printer selected and both present."""
    settings.select_webcam("cam-1", "Logitech C920")
    settings.select_printer("DNP-QW410")
    backend.camera_devices = [DeviceDescriptor(device_id="cam-1", label="Logitech C920")]
    backend.printers = [PrinterInfo(name="DNP-QW410", status="idle", is_online=True)]
    return settings


# Created by Dr. Z. Bakhtiyorov
