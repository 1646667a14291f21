# Program: Kiosk Event Models
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Pydantic models for backend commands, replies, and status events."""

from __future__ import annotations

from datetime import datetime, timezone
from typing import List, Literal, Optional

from pydantic import BaseModel, Field


class DeviceDescriptor(BaseModel):
    device_id: str
    kind: str = "videoinput"
    label: str = ""


class VendorCamera(BaseModel):
    name: str


class PrinterInfo(BaseModel):
    name: str
    status: str = ""
    is_online: bool = True


class MachineStatus(BaseModel):
    maintenance_active: bool = False
    paper_level: int = 0


class CalibrationPrintRequest(BaseModel):
    printer_name: str
    scale: float = 100.0
    vertical_offset: float = 0.0
    horizontal_offset: float = 0.0
    frame_type: str = "4x6"


class PhotoPrintRequest(BaseModel):
    image_path: str
    printer_name: str
    frame_type: str = "4x6"
    scale: float = 100.0
    vertical_offset: float = 0.0
    horizontal_offset: float = 0.0
    is_landscape: bool = False


class PaperReduceRequest(BaseModel):
    copies: int = Field(default=1, ge=1)


class TempImageRequest(BaseModel):
    image_data_base64: str
    filename: str


class TempImageResponse(BaseModel):
    ok: bool = True
    path: str


class DeviceAlert(BaseModel):
    device_type: Literal["camera", "printer"]
    device_name: str
    available_devices: List[str] = Field(default_factory=list)
    reconnected: bool = False


class CommandResponse(BaseModel):
    ok: bool
    error: Optional[str] = None


class StatusEvent(BaseModel):
    ts: datetime = Field(default_factory=lambda: datetime.now(timezone.utc))
    source: Literal["printer", "camera", "guard", "monitor", "pin", "machine"]
    level: Literal["info", "warn", "error"]
    message: str


# Created by Dr. Z. Bakhtiyorov
