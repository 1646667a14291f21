# Program: Kiosk Local Settings
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Persistent string key-value store and typed accessors for device settings."""

from __future__ import annotations

import json
import logging
import os
from dataclasses import asdict, dataclass, replace
from enum import Enum
from pathlib import Path
from typing import Callable, Dict, List, Literal, Optional

logger = logging.getLogger(__name__)

CAMERA_TYPE = "cameraType"
SELECTED_WEBCAM_ID = "selectedWebcamId"
SELECTED_CAMERA_LABEL = "selectedCameraLabel"
SELECTED_CAMERA_NAME = "selectedCameraName"
SELECTED_PRINTER = "selectedPrinter"
PAPER_CONFIG_PORTRAIT = "paperConfigPortrait"
PAPER_CONFIG_LANDSCAPE = "paperConfigLandscape"
PAPER_SIZE_PORTRAIT = "paperSizePortrait"
PAPER_SIZE_LANDSCAPE = "paperSizeLandscape"

SETTINGS_KEYS = (
    CAMERA_TYPE,
    SELECTED_WEBCAM_ID,
    SELECTED_CAMERA_LABEL,
    SELECTED_CAMERA_NAME,
    SELECTED_PRINTER,
    PAPER_CONFIG_PORTRAIT,
    PAPER_CONFIG_LANDSCAPE,
    PAPER_SIZE_PORTRAIT,
    PAPER_SIZE_LANDSCAPE,
)

Orientation = Literal["portrait", "landscape"]
PaperField = Literal["scale", "vertical", "horizontal"]

SCALE_RANGE = (50.0, 150.0)
OFFSET_RANGE = (-100, 100)
SCALE_STEP = 0.5
OFFSET_STEP = 1
PAPER_FIELDS = ("scale", "vertical", "horizontal")


class CameraType(str, Enum):
    WEBCAM = "webcam"  # enumerable device, matched by id
    DSLR = "dslr"  # vendor camera, matched by name


class FrameSelection(str, Enum):
    PORTRAIT_FULL = "4x6"
    PORTRAIT_CUT = "2x6"
    LANDSCAPE_FULL = "6x4"
    LANDSCAPE_CUT = "6x2"

    @property
    def is_cut(self) -> bool:
        return self in (FrameSelection.PORTRAIT_CUT, FrameSelection.LANDSCAPE_CUT)

    @property
    def is_landscape(self) -> bool:
        return self in (FrameSelection.LANDSCAPE_FULL, FrameSelection.LANDSCAPE_CUT)

    @property
    def orientation(self) -> Orientation:
        return "landscape" if self.is_landscape else "portrait"

    @property
    def full_sheet(self) -> "FrameSelection":
        """Frame type of the sheet a cut composite is printed on."""
        if self is FrameSelection.PORTRAIT_CUT:
            return FrameSelection.PORTRAIT_FULL
        if self is FrameSelection.LANDSCAPE_CUT:
            return FrameSelection.LANDSCAPE_FULL
        return self

    @classmethod
    def for_orientation(cls, orientation: Orientation) -> tuple["FrameSelection", "FrameSelection"]:
        if orientation == "landscape":
            return (cls.LANDSCAPE_FULL, cls.LANDSCAPE_CUT)
        return (cls.PORTRAIT_FULL, cls.PORTRAIT_CUT)


def _clamp(value: float, bounds: tuple[float, float]) -> float:
    low, high = bounds
    return max(low, min(high, value))


@dataclass(frozen=True)
class PaperConfig:
    """Print calibration for one orientation.

    Attributes:
        scale: Content zoom in percent, 50..150.
        vertical: Vertical offset in pixels, -100..100.
        horizontal: Horizontal offset in pixels, -100..100.
    """

    scale: float = 100.0
    vertical: int = 0
    horizontal: int = 0

    def __post_init__(self) -> None:
        object.__setattr__(self, "scale", round(_clamp(float(self.scale), SCALE_RANGE), 1))
        object.__setattr__(self, "vertical", int(_clamp(int(round(self.vertical)), OFFSET_RANGE)))
        object.__setattr__(self, "horizontal", int(_clamp(int(round(self.horizontal)), OFFSET_RANGE)))

    def with_value(self, field: PaperField, value: float) -> "PaperConfig":
        if field not in PAPER_FIELDS:
            raise ValueError(f"Unknown paper config field: {field}")
        return replace(self, **{field: value})

    def nudge(self, field: PaperField, steps: int = 1) -> "PaperConfig":
        if field not in PAPER_FIELDS:
            raise ValueError(f"Unknown paper config field: {field}")
        step = SCALE_STEP if field == "scale" else OFFSET_STEP
        return self.with_value(field, getattr(self, field) + step * steps)

    def reset(self) -> "PaperConfig":
        return PaperConfig()

    def to_json(self) -> str:
        return json.dumps(asdict(self))

    @classmethod
    def from_json(cls, raw: Optional[str]) -> "PaperConfig":
        if not raw:
            return cls()
        try:
            data = json.loads(raw)
            return cls(
                scale=float(data.get("scale", 100.0)),
                vertical=int(data.get("vertical", 0)),
                horizontal=int(data.get("horizontal", 0)),
            )
        except (ValueError, TypeError, AttributeError, OverflowError):
            logger.warning("Discarding malformed paper config: %r", raw)
            return cls()


class KeyValueStore:
    """String key-value store persisted as a JSON object.

    ``path=None`` keeps everything in memory. Writes go through a temporary
    file and ``os.replace`` so a crash never leaves a truncated store behind.
    """

    def __init__(self, path: Optional[Path] = None) -> None:
        self.path = path
        self._data: Dict[str, str] = {}
        if path is not None and path.exists():
            self._data = self._read(path)

    @staticmethod
    def _read(path: Path) -> Dict[str, str]:
        try:
            payload = json.loads(path.read_text(encoding="utf-8") or "{}")
        except ValueError:
            logger.warning("Settings file %s is corrupt; starting empty", path)
            return {}
        if not isinstance(payload, dict):
            return {}
        return {str(key): str(value) for key, value in payload.items()}

    def get(self, key: str, default: Optional[str] = None) -> Optional[str]:
        return self._data.get(key, default)

    def set(self, key: str, value: str) -> None:
        self._data[key] = str(value)
        self._flush()

    def remove(self, key: str) -> None:
        if self._data.pop(key, None) is not None:
            self._flush()

    def keys(self) -> List[str]:
        return list(self._data)

    def __contains__(self, key: object) -> bool:
        return key in self._data

    def _flush(self) -> None:
        if self.path is None:
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        tmp_path = self.path.with_suffix(self.path.suffix + ".tmp")
        tmp_path.write_text(json.dumps(self._data, indent=2, sort_keys=True), encoding="utf-8")
        os.replace(tmp_path, self.path)


SettingsListener = Callable[[str], None]


class KioskSettings:
    """Typed view over the device and print keys of a :class:`KeyValueStore`."""

    def __init__(self, store: KeyValueStore) -> None:
        self.store = store
        self._listeners: List[SettingsListener] = []

    def subscribe(self, listener: SettingsListener) -> Callable[[], None]:
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    @property
    def camera_type(self) -> CameraType:
        raw = self.store.get(CAMERA_TYPE) or CameraType.WEBCAM.value
        try:
            return CameraType(raw)
        except ValueError:
            return CameraType.WEBCAM

    @property
    def webcam_id(self) -> str:
        return self.store.get(SELECTED_WEBCAM_ID) or ""

    @property
    def camera_label(self) -> str:
        return self.store.get(SELECTED_CAMERA_LABEL) or ""

    @property
    def camera_name(self) -> str:
        return self.store.get(SELECTED_CAMERA_NAME) or ""

    @property
    def printer_name(self) -> str:
        return self.store.get(SELECTED_PRINTER) or ""

    def select_webcam(self, device_id: str, label: str = "") -> None:
        self.store.set(CAMERA_TYPE, CameraType.WEBCAM.value)
        self.store.set(SELECTED_WEBCAM_ID, device_id)
        self.store.set(SELECTED_CAMERA_LABEL, label)

    def select_vendor_camera(self, name: str) -> None:
        self.store.set(CAMERA_TYPE, CameraType.DSLR.value)
        self.store.set(SELECTED_CAMERA_NAME, name)

    def select_printer(self, name: str) -> None:
        self.store.set(SELECTED_PRINTER, name)

    def paper_config(self, orientation: Orientation) -> PaperConfig:
        return PaperConfig.from_json(self.store.get(_paper_config_key(orientation)))

    def save_paper_config(self, orientation: Orientation, config: PaperConfig) -> None:
        # PaperConfig clamps on construction, so only in-range values reach the store.
        self.store.set(_paper_config_key(orientation), config.to_json())

    def frame_selection(self, orientation: Orientation) -> FrameSelection:
        full, cut = FrameSelection.for_orientation(orientation)
        raw = self.store.get(_paper_size_key(orientation))
        if raw in (full.value, cut.value):
            return FrameSelection(raw)
        return full

    def save_frame_selection(self, orientation: Orientation, frame: FrameSelection) -> None:
        if frame not in FrameSelection.for_orientation(orientation):
            raise ValueError(f"{frame.value} is not a {orientation} frame")
        self.store.set(_paper_size_key(orientation), frame.value)

    def format_reset(self) -> None:
        """Remove every settings key, then tell dependents to re-render."""
        for key in SETTINGS_KEYS:
            self.store.remove(key)
        logger.info("Format reset cleared %d settings keys", len(SETTINGS_KEYS))
        for listener in list(self._listeners):
            listener("format-reset")


def _paper_config_key(orientation: Orientation) -> str:
    return PAPER_CONFIG_LANDSCAPE if orientation == "landscape" else PAPER_CONFIG_PORTRAIT


def _paper_size_key(orientation: Orientation) -> str:
    return PAPER_SIZE_LANDSCAPE if orientation == "landscape" else PAPER_SIZE_PORTRAIT


# Created by Dr. Z. Bakhtiyorov
