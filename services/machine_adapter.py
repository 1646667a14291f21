# Program: Machine Adapter Service (FastAPI)
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Machine status, paper level, temp images, alerts, and shutdown for the kiosk."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
from pathlib import Path
from typing import Callable, List, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel

from kiosk.events import (
    CommandResponse,
    DeviceAlert,
    MachineStatus,
    PaperReduceRequest,
    TempImageRequest,
    TempImageResponse,
)
from kiosk.imaging import from_base64

logger = logging.getLogger(__name__)

app = FastAPI(title="Machine Adapter")
TEMP_DIR = Path("./captures/tmp").resolve()
STATUS = MachineStatus(maintenance_active=False, paper_level=100)
ALERTS: List[DeviceAlert] = []


def _terminate() -> None:
    os.kill(os.getpid(), signal.SIGTERM)


SHUTDOWN_HANDLER: Callable[[], None] = _terminate


class MachineUpdate(BaseModel):
    maintenance_active: Optional[bool] = None
    paper_level: Optional[int] = None


@app.get("/machine/status")
async def machine_status() -> MachineStatus:
    return STATUS


@app.post("/machine/status")
async def update_status(payload: MachineUpdate) -> MachineStatus:
    global STATUS
    changes = payload.model_dump(exclude_none=True)
    STATUS = STATUS.model_copy(update=changes)
    return STATUS


@app.post("/machine/paper/reduce")
async def reduce_paper(payload: PaperReduceRequest) -> CommandResponse:
    global STATUS
    STATUS = STATUS.model_copy(update={"paper_level": max(STATUS.paper_level - payload.copies, 0)})
    return CommandResponse(ok=True)


@app.post("/machine/temp_image")
async def save_temp_image(payload: TempImageRequest) -> TempImageResponse:
    name = Path(payload.filename).name
    if not name:
        raise HTTPException(422, detail="filename is empty")
    try:
        data = from_base64(payload.image_data_base64)
    except ValueError as exc:
        raise HTTPException(422, detail="invalid base64 image") from exc
    TEMP_DIR.mkdir(parents=True, exist_ok=True)
    target = TEMP_DIR / name
    target.write_bytes(data)
    return TempImageResponse(path=str(target))


@app.post("/machine/device_alert")
async def device_alert(payload: DeviceAlert) -> CommandResponse:
    ALERTS.append(payload)
    verb = "reconnected" if payload.reconnected else "disconnected"
    logger.warning("%s %s %s", payload.device_type, payload.device_name, verb)
    return CommandResponse(ok=True)


@app.post("/machine/shutdown")
async def shutdown() -> CommandResponse:
    # Reply first; the process ends right after.
    asyncio.get_running_loop().call_later(0.2, SHUTDOWN_HANDLER)
    return CommandResponse(ok=True)


# Created by Dr. Z. Bakhtiyorov
