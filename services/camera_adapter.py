# Program: Camera Adapter Service (FastAPI)
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Expose attached camera enumeration as HTTP endpoints for the kiosk."""

from __future__ import annotations

import logging
import subprocess
from pathlib import Path
from typing import Callable, List, Sequence

from fastapi import FastAPI, HTTPException

from kiosk.events import DeviceDescriptor, VendorCamera

logger = logging.getLogger(__name__)

app = FastAPI(title="Camera Adapter")
VIDEO_CLASS_DIR = Path("/sys/class/video4linux")


def _run(args: Sequence[str]) -> str:
    completed = subprocess.run(list(args), capture_output=True, text=True, timeout=10, check=True)
    return completed.stdout


RUNNER: Callable[[Sequence[str]], str] = _run


def enumerate_video_devices(class_dir: Path) -> List[DeviceDescriptor]:
    devices: List[DeviceDescriptor] = []
    if not class_dir.is_dir():
        return devices
    for entry in sorted(class_dir.iterdir()):
        name_file = entry / "name"
        label = name_file.read_text(encoding="utf-8").strip() if name_file.exists() else entry.name
        devices.append(DeviceDescriptor(device_id=f"/dev/{entry.name}", kind="videoinput", label=label))
    return devices


def parse_gphoto_detect(output: str) -> List[VendorCamera]:
    """Parse ``gphoto2 --auto-detect``: two header lines, then ``<model>  <port>`` rows."""
    cameras: List[VendorCamera] = []
    for line in output.splitlines()[2:]:
        parts = line.rsplit(None, 1)
        if len(parts) == 2 and parts[1].startswith(("usb:", "ptpip:", "serial:")):
            cameras.append(VendorCamera(name=parts[0].strip()))
    return cameras


@app.get("/camera/devices")
async def camera_devices() -> List[DeviceDescriptor]:
    return enumerate_video_devices(VIDEO_CLASS_DIR)


@app.get("/camera/vendor")
async def vendor_cameras() -> List[VendorCamera]:
    try:
        output = RUNNER(["gphoto2", "--auto-detect"])
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("gphoto2 detection failed: %s", exc)
        raise HTTPException(503, detail="camera detection unavailable") from exc
    return parse_gphoto_detect(output)


# Created by Dr. Z. Bakhtiyorov
