# Program: Kiosk Package Init
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Device readiness and calibrated print orchestration for a photo kiosk."""

from .api import Orchestrator, create_app, create_default_orchestrator
from .clients import Backend, HttpBackend
from .config import AppConfig, configure_logging, load_config
from .errors import BackendError, ErrorKind, KioskError, PrintError
from .guard import PrintingStateGuard
from .imaging import tile_horizontally, tile_vertically
from .pin import PinGate, PinPhase, ShutdownAction
from .printing import CalibratedPrintPipeline, PrintOutcome
from .readiness import DeviceReadinessMonitor, EntryReason, MachineStatusWatcher, ReadinessState
from .scheduling import PeriodicTask
from .storage import FrameSelection, KeyValueStore, KioskSettings, PaperConfig

__all__ = [
    "AppConfig",
    "Backend",
    "BackendError",
    "CalibratedPrintPipeline",
    "DeviceReadinessMonitor",
    "EntryReason",
    "ErrorKind",
    "FrameSelection",
    "HttpBackend",
    "KeyValueStore",
    "KioskError",
    "KioskSettings",
    "MachineStatusWatcher",
    "Orchestrator",
    "PaperConfig",
    "PeriodicTask",
    "PinGate",
    "PinPhase",
    "PrintError",
    "PrintOutcome",
    "PrintingStateGuard",
    "ReadinessState",
    "ShutdownAction",
    "configure_logging",
    "create_app",
    "create_default_orchestrator",
    "load_config",
    "tile_horizontally",
    "tile_vertically",
]

# Created by Dr. Z. Bakhtiyorov
