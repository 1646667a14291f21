# Program: Printer Adapter Service (FastAPI)
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Wrap CUPS printer listing and calibrated print submission as HTTP endpoints."""

from __future__ import annotations

import logging
import subprocess
import time
from pathlib import Path
from typing import Callable, List, Sequence

from fastapi import FastAPI
from PIL import Image, UnidentifiedImageError

from kiosk.events import CalibrationPrintRequest, CommandResponse, PhotoPrintRequest, PrinterInfo
from kiosk.imaging import apply_paper_calibration, render_test_card

logger = logging.getLogger(__name__)

app = FastAPI(title="Printer Adapter")
SPOOL_DIR = Path("./spool").resolve()

SHEET_SIZES = {
    "4x6": (1200, 1800),
    "2x6": (1200, 1800),
    "6x4": (1800, 1200),
    "6x2": (1800, 1200),
}


def _run(args: Sequence[str]) -> str:
    completed = subprocess.run(list(args), capture_output=True, text=True, timeout=60, check=True)
    return completed.stdout


RUNNER: Callable[[Sequence[str]], str] = _run


def parse_lpstat(output: str) -> List[PrinterInfo]:
    """Parse ``lpstat -p`` lines such as ``printer DNP is idle.  enabled since ...``."""
    printers: List[PrinterInfo] = []
    for line in output.splitlines():
        if not line.startswith("printer "):
            continue
        parts = line.split(None, 2)
        if len(parts) < 2:
            continue
        detail = parts[2] if len(parts) > 2 else ""
        status = detail.split(".", 1)[0].strip()
        printers.append(PrinterInfo(name=parts[1], status=status, is_online="disabled" not in detail))
    return printers


def _submit(image: Image.Image, printer_name: str, label: str) -> CommandResponse:
    SPOOL_DIR.mkdir(parents=True, exist_ok=True)
    target = SPOOL_DIR / f"{label}-{time.time_ns()}.png"
    image.save(target)
    try:
        RUNNER(["lpr", "-P", printer_name, str(target)])
    except subprocess.CalledProcessError as exc:
        detail = (exc.stderr or "").strip() or f"lpr exited with {exc.returncode}"
        return CommandResponse(ok=False, error=f"Print error: {detail}")
    except (OSError, subprocess.SubprocessError) as exc:
        return CommandResponse(ok=False, error=f"Print failed: {exc}")
    logger.info("Submitted %s to %s", target.name, printer_name)
    return CommandResponse(ok=True)


@app.get("/printer/list")
async def list_printers() -> List[PrinterInfo]:
    try:
        output = RUNNER(["lpstat", "-p"])
    except (OSError, subprocess.SubprocessError) as exc:
        logger.warning("lpstat failed: %s", exc)
        return []
    return parse_lpstat(output)


@app.post("/printer/print_test")
async def print_test(payload: CalibrationPrintRequest) -> CommandResponse:
    size = SHEET_SIZES.get(payload.frame_type, SHEET_SIZES["4x6"])
    card = render_test_card(*size)
    calibrated = apply_paper_calibration(
        card, payload.scale, payload.vertical_offset, payload.horizontal_offset
    )
    return _submit(calibrated, payload.printer_name, f"test-{payload.frame_type}")


@app.post("/printer/print_photo")
async def print_photo(payload: PhotoPrintRequest) -> CommandResponse:
    try:
        with Image.open(payload.image_path) as source:
            source.load()
            calibrated = apply_paper_calibration(
                source, payload.scale, payload.vertical_offset, payload.horizontal_offset
            )
    except (OSError, UnidentifiedImageError) as exc:
        return CommandResponse(ok=False, error=f"Failed to open image file: {exc}")
    return _submit(calibrated, payload.printer_name, f"photo-{payload.frame_type}")


# Created by Dr. Z. Bakhtiyorov
