# Program: Device Readiness Monitor
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Background reconciliation of camera and printer availability.

Every tick resolves both devices against the backend and publishes one
immutable :class:`ReadinessState`. Transitions into Ready fire the recovery
callback once; transitions out of Ready fire the maintenance callback once.
Ticks are skipped entirely while the print lock is held so a printer that
is busy with a job is never reported as missing.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Awaitable, Callable, Dict, Optional, Tuple, Union

from .clients import Backend
from .events import DeviceAlert, MachineStatus
from .guard import PrintingStateGuard
from .scheduling import PeriodicTask
from .storage import CameraType, KioskSettings

logger = logging.getLogger(__name__)

Callback = Callable[[], Union[None, Awaitable[None]]]


class ProbeStatus(str, Enum):
    OK = "ok"
    NOT_FOUND = "not-found"
    OFFLINE = "offline"
    UNCONFIGURED = "unconfigured"
    ERROR = "error"


class DeviceAxis(str, Enum):
    UNKNOWN = "unknown"
    CHECKING = "checking"
    OK = "ok"
    MISSING = "missing"


@dataclass(frozen=True)
class DeviceProbe:
    status: ProbeStatus
    label: str
    available: Tuple[str, ...] = ()

    @property
    def ok(self) -> bool:
        return self.status is ProbeStatus.OK

    @property
    def configured(self) -> bool:
        return self.status is not ProbeStatus.UNCONFIGURED


@dataclass(frozen=True)
class ReadinessState:
    camera_ok: bool = False
    printer_ok: bool = False
    camera_label: str = ""
    printer_label: str = ""
    camera_status: Optional[ProbeStatus] = None
    printer_status: Optional[ProbeStatus] = None

    @property
    def ready(self) -> bool:
        return self.camera_ok and self.printer_ok

    @classmethod
    def from_probes(cls, camera: DeviceProbe, printer: DeviceProbe) -> "ReadinessState":
        return cls(
            camera_ok=camera.ok,
            printer_ok=printer.ok,
            camera_label=camera.label,
            printer_label=printer.label,
            camera_status=camera.status,
            printer_status=printer.status,
        )


async def _invoke(callback: Optional[Callback]) -> None:
    if callback is None:
        return
    result = callback()
    if inspect.isawaitable(result):
        await result


def _annotate(name: str, status: ProbeStatus) -> str:
    suffix = {
        ProbeStatus.NOT_FOUND: "(not found)",
        ProbeStatus.OFFLINE: "(offline)",
        ProbeStatus.UNCONFIGURED: "(unconfigured)",
        ProbeStatus.ERROR: "(error)",
    }.get(status)
    return f"{name} {suffix}" if suffix else name


@dataclass
class DeviceReadinessMonitor:
    """Poll camera and printer presence and drive recovery navigation."""

    backend: Backend
    settings: KioskSettings
    guard: PrintingStateGuard
    on_ready: Optional[Callback] = None
    on_lost: Optional[Callback] = None
    interval_s: float = 3.0
    send_alerts: bool = True
    state: ReadinessState = field(default_factory=ReadinessState)
    axes: Dict[str, DeviceAxis] = field(
        default_factory=lambda: {"camera": DeviceAxis.UNKNOWN, "printer": DeviceAxis.UNKNOWN}
    )
    ticks: int = 0
    skipped_ticks: int = 0
    _handle: Optional[PeriodicTask] = field(default=None, init=False, repr=False)
    _was_ready: bool = field(default=False, init=False, repr=False)
    _first_poll: bool = field(default=True, init=False, repr=False)
    _last_probes: Dict[str, DeviceProbe] = field(default_factory=dict, init=False, repr=False)
    _alerted: Dict[str, bool] = field(
        default_factory=lambda: {"camera": False, "printer": False}, init=False, repr=False
    )

    def start(self) -> PeriodicTask:
        if self._handle is None or not self._handle.running:
            self._handle = PeriodicTask.start(self.poll_once, self.interval_s, name="device-readiness")
        return self._handle

    async def stop(self) -> None:
        if self._handle is not None:
            await self._handle.stop()
            self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    async def poll_once(self) -> bool:
        """Run one reconciliation tick; returns False when skipped for printing."""
        if self.guard.is_active():
            self.skipped_ticks += 1
            logger.debug("Print in progress; readiness tick skipped")
            return False

        self.ticks += 1
        self.axes = {"camera": DeviceAxis.CHECKING, "printer": DeviceAxis.CHECKING}
        camera = await self.probe_camera()
        printer = await self.probe_printer()

        previous = self.state
        self.state = ReadinessState.from_probes(camera, printer)
        self.axes = {
            "camera": DeviceAxis.OK if camera.ok else DeviceAxis.MISSING,
            "printer": DeviceAxis.OK if printer.ok else DeviceAxis.MISSING,
        }
        if self.state != previous:
            logger.info(
                "Readiness: camera=%s printer=%s",
                self.state.camera_label,
                self.state.printer_label,
            )

        await self._handle_device_transitions({"camera": camera, "printer": printer})
        await self._handle_readiness_transition(camera, printer)
        self._first_poll = False
        return True

    async def probe_camera(self) -> DeviceProbe:
        if self.settings.camera_type is CameraType.DSLR:
            return await self._probe_vendor_camera()
        return await self._probe_webcam()

    async def _probe_webcam(self) -> DeviceProbe:
        device_id = self.settings.webcam_id
        name = self.settings.camera_label or "Webcam"
        if not device_id:
            return DeviceProbe(ProbeStatus.UNCONFIGURED, _annotate("Webcam", ProbeStatus.UNCONFIGURED))
        try:
            devices = await self.backend.list_camera_devices()
        except Exception as exc:  # noqa: BLE001 - degrade this device only
            logger.warning("Camera enumeration failed: %s", exc)
            return DeviceProbe(ProbeStatus.ERROR, _annotate(name, ProbeStatus.ERROR))
        video = [device for device in devices if device.kind == "videoinput"]
        available = tuple(device.label or device.device_id for device in video)
        match = next((device for device in video if device.device_id == device_id), None)
        if match is None:
            return DeviceProbe(ProbeStatus.NOT_FOUND, _annotate(name, ProbeStatus.NOT_FOUND), available)
        return DeviceProbe(ProbeStatus.OK, match.label or name, available)

    async def _probe_vendor_camera(self) -> DeviceProbe:
        name = self.settings.camera_name
        if not name:
            return DeviceProbe(ProbeStatus.UNCONFIGURED, _annotate("DSLR", ProbeStatus.UNCONFIGURED))
        try:
            cameras = await self.backend.list_vendor_cameras()
        except Exception as exc:  # noqa: BLE001 - degrade this device only
            logger.warning("Vendor camera query failed: %s", exc)
            return DeviceProbe(ProbeStatus.ERROR, _annotate(name, ProbeStatus.ERROR))
        available = tuple(camera.name for camera in cameras)
        if name not in available:
            return DeviceProbe(ProbeStatus.NOT_FOUND, _annotate(name, ProbeStatus.NOT_FOUND), available)
        return DeviceProbe(ProbeStatus.OK, name, available)

    async def probe_printer(self) -> DeviceProbe:
        name = self.settings.printer_name
        if not name:
            return DeviceProbe(ProbeStatus.UNCONFIGURED, _annotate("Printer", ProbeStatus.UNCONFIGURED))
        try:
            printers = await self.backend.list_printers()
        except Exception as exc:  # noqa: BLE001 - degrade this device only
            logger.warning("Printer query failed: %s", exc)
            return DeviceProbe(ProbeStatus.ERROR, _annotate(name, ProbeStatus.ERROR))
        available = tuple(printer.name for printer in printers)
        match = next((printer for printer in printers if printer.name == name), None)
        if match is None:
            return DeviceProbe(ProbeStatus.NOT_FOUND, _annotate(name, ProbeStatus.NOT_FOUND), available)
        if not match.is_online:
            logger.info("Printer %s listed but offline (status=%r)", name, match.status)
            return DeviceProbe(ProbeStatus.OFFLINE, _annotate(name, ProbeStatus.OFFLINE), available)
        return DeviceProbe(ProbeStatus.OK, name, available)

    async def _handle_readiness_transition(self, camera: DeviceProbe, printer: DeviceProbe) -> None:
        ready = self.state.ready
        was_ready = self._was_ready
        self._was_ready = ready
        if ready and not was_ready:
            logger.info("Devices ready; running recovery")
            await _invoke(self.on_ready)
        elif not ready and was_ready:
            logger.warning("Devices no longer ready; entering maintenance")
            await _invoke(self.on_lost)
        elif not ready and self._first_poll:
            configured_missing = any(probe.configured and not probe.ok for probe in (camera, printer))
            if configured_missing:
                logger.warning("Configured device missing at startup; entering maintenance")
                await _invoke(self.on_lost)

    async def _handle_device_transitions(self, probes: Dict[str, DeviceProbe]) -> None:
        if not self.send_alerts:
            self._last_probes = dict(probes)
            return
        for device_type, probe in probes.items():
            previous = self._last_probes.get(device_type)
            if previous is None or not probe.configured:
                continue
            if previous.ok and not probe.ok and not self._alerted[device_type]:
                self._alerted[device_type] = True
                await self._send_alert(device_type, probe, reconnected=False)
            elif not previous.ok and probe.ok:
                self._alerted[device_type] = False
                await self._send_alert(device_type, probe, reconnected=True)
        self._last_probes = dict(probes)

    async def _send_alert(self, device_type: str, probe: DeviceProbe, reconnected: bool) -> None:
        alert = DeviceAlert(
            device_type=device_type,  # type: ignore[arg-type]
            device_name=probe.label,
            available_devices=list(probe.available),
            reconnected=reconnected,
        )
        try:
            await self.backend.send_device_alert(alert)
        except Exception as exc:  # noqa: BLE001 - notifications are best-effort
            logger.warning("Device alert for %s not delivered: %s", device_type, exc)


class EntryReason(str, Enum):
    AUTO_REDIRECT = "auto-redirect"
    MANUAL = "manual"


@dataclass
class MachineStatusWatcher:
    """Poll machine status while an auto-redirected paper/maintenance screen is shown."""

    backend: Backend
    on_maintenance: Optional[Callback] = None
    on_paper_restored: Optional[Callback] = None
    interval_s: float = 3.0
    last_status: Optional[MachineStatus] = None
    _handle: Optional[PeriodicTask] = field(default=None, init=False, repr=False)

    def start(self, reason: EntryReason) -> Optional[PeriodicTask]:
        if reason is not EntryReason.AUTO_REDIRECT:
            logger.debug("Manual entry; machine status polling not started")
            return None
        if self._handle is None or not self._handle.running:
            self._handle = PeriodicTask.start(self.poll_once, self.interval_s, name="machine-status")
        return self._handle

    async def stop(self) -> None:
        if self._handle is not None:
            await self._handle.stop()
            self._handle = None

    @property
    def running(self) -> bool:
        return self._handle is not None and self._handle.running

    async def poll_once(self) -> Optional[MachineStatus]:
        try:
            status = await self.backend.query_machine_status()
        except Exception as exc:  # noqa: BLE001 - keep polling
            logger.warning("Machine status poll failed: %s", exc)
            return None
        self.last_status = status
        if status.maintenance_active:
            logger.info("Maintenance flag set; redirecting to maintenance")
            await self._redirect(self.on_maintenance)
        elif status.paper_level != 0:
            logger.info("Paper level %d; redirecting home", status.paper_level)
            await self._redirect(self.on_paper_restored)
        return status

    async def _redirect(self, callback: Optional[Callback]) -> None:
        await _invoke(callback)
        # The screen that owns this watcher is left on redirect.
        if self._handle is not None:
            await self._handle.stop()
            self._handle = None


# Created by Dr. Z. Bakhtiyorov
