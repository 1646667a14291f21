# Program: Kiosk Orchestrator API (FastAPI)
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Composition root for the kiosk core and the FastAPI surface the UI calls."""

from __future__ import annotations

import asyncio
import logging
import os
import signal
import time
from contextlib import asynccontextmanager
from enum import Enum
from pathlib import Path
from typing import AsyncIterator, Callable, List, Literal, Optional

from fastapi import FastAPI, HTTPException
from pydantic import BaseModel, Field

from .clients import Backend, HttpBackend
from .config import AppConfig, load_config
from .guard import Clock, PrintingStateGuard
from .imaging import from_base64
from .pin import PinGate, PinState, ShutdownAction
from .printing import CalibratedPrintPipeline, PrintOutcome
from .readiness import DeviceReadinessMonitor, EntryReason, MachineStatusWatcher, ReadinessState
from .storage import FrameSelection, KeyValueStore, KioskSettings, PaperConfig

logger = logging.getLogger(__name__)


class View(str, Enum):
    HOME = "home"
    MAINTENANCE = "maintenance"
    OUT_OF_PAPER = "out-of-paper"


class OrientationName(str, Enum):
    PORTRAIT = "portrait"
    LANDSCAPE = "landscape"


def _terminate_process() -> None:
    # Let the current reply go out first.
    asyncio.get_running_loop().call_later(0.2, os.kill, os.getpid(), signal.SIGTERM)


class Orchestrator:
    """Wires guard, readiness monitor, print pipeline, and PIN gate together."""

    def __init__(
        self,
        cfg: AppConfig,
        backend: Optional[Backend] = None,
        store: Optional[KeyValueStore] = None,
        clock: Clock = time.monotonic,
        close_local: Callable[[], None] = _terminate_process,
    ) -> None:
        self.cfg = cfg
        self.backend: Backend = backend or HttpBackend(
            cfg.camera_url, cfg.printer_url, cfg.machine_url, timeout_s=cfg.request_timeout_s
        )
        self.settings = KioskSettings(store if store is not None else KeyValueStore(cfg.state_path))
        self.guard = PrintingStateGuard(clock=clock, default_timeout_ms=cfg.lock_timeout_ms)
        self.view = View.HOME
        self.history: List[View] = [View.HOME]
        self.revision = 0

        self.monitor = DeviceReadinessMonitor(
            backend=self.backend,
            settings=self.settings,
            guard=self.guard,
            on_ready=self._recover,
            on_lost=self._enter_maintenance,
            interval_s=cfg.poll_interval_s,
        )
        self.machine_watcher = MachineStatusWatcher(
            backend=self.backend,
            on_maintenance=self._enter_maintenance,
            on_paper_restored=self._go_home,
            interval_s=cfg.machine_status_interval_s,
        )
        self.printer = CalibratedPrintPipeline(
            self.backend,
            self.guard,
            self.settings,
            print_lock_timeout_ms=cfg.print_lock_timeout_ms,
            cut_frame_size=(cfg.cut_frame_width, cfg.cut_frame_height),
            max_copies=cfg.max_copies,
            error_message_limit=cfg.error_message_limit,
        )
        self.shutdown = ShutdownAction(self.backend, close_local)
        self.pin_gate = PinGate(cfg.pin_code, self.shutdown, error_hold_ms=cfg.pin_error_hold_ms)
        self.settings.subscribe(self._on_settings_changed)

    def navigate(self, view: View) -> None:
        if view is self.view:
            return
        logger.info("Navigate %s -> %s", self.view.value, view.value)
        self.view = view
        self.history.append(view)

    def _recover(self) -> None:
        if self.view is View.MAINTENANCE:
            self.navigate(View.HOME)

    def _enter_maintenance(self) -> None:
        self.navigate(View.MAINTENANCE)

    def _go_home(self) -> None:
        self.navigate(View.HOME)

    def _on_settings_changed(self, reason: str) -> None:
        self.revision += 1
        logger.info("Settings changed (%s); views re-render at revision %d", reason, self.revision)

    async def start(self) -> None:
        self.monitor.start()

    async def stop(self) -> None:
        await self.monitor.stop()
        await self.machine_watcher.stop()
        close = getattr(self.backend, "aclose", None)
        if close is not None:
            await close()

    async def show_out_of_paper(self, reason: EntryReason) -> bool:
        self.navigate(View.OUT_OF_PAPER)
        return self.machine_watcher.start(reason) is not None

    async def leave_out_of_paper(self) -> None:
        await self.machine_watcher.stop()
        self.navigate(View.HOME)

    async def test_print(self, orientation: OrientationName) -> PrintOutcome:
        config = self.settings.paper_config(orientation.value)
        frame = self.settings.frame_selection(orientation.value)
        return await self.printer.test_print(config, frame)

    def format_reset(self) -> None:
        self.settings.format_reset()


def create_default_orchestrator(config_path: Optional[Path] = None) -> Orchestrator:
    return Orchestrator(load_config(config_path))


class PaperConfigBody(BaseModel):
    scale: float = 100.0
    vertical: int = 0
    horizontal: int = 0


class NudgeBody(BaseModel):
    field: Literal["scale", "vertical", "horizontal"]
    steps: int = 1


class FrameBody(BaseModel):
    frame: FrameSelection


class ImagePrintBody(BaseModel):
    image_data_base64: str
    frame: FrameSelection = FrameSelection.PORTRAIT_FULL
    copies: int = Field(default=1)


class KeyBody(BaseModel):
    key: str


class OutOfPaperBody(BaseModel):
    reason: EntryReason = EntryReason.MANUAL


def _readiness_dict(state: ReadinessState) -> dict[str, object]:
    return {
        "ready": state.ready,
        "camera_ok": state.camera_ok,
        "printer_ok": state.printer_ok,
        "camera_label": state.camera_label,
        "printer_label": state.printer_label,
        "camera_status": state.camera_status.value if state.camera_status else None,
        "printer_status": state.printer_status.value if state.printer_status else None,
    }


def _outcome_dict(outcome: PrintOutcome) -> dict[str, object]:
    return {
        "ok": outcome.ok,
        "frame": outcome.frame.value,
        "copies_requested": outcome.copies_requested,
        "copies_printed": outcome.copies_printed,
        "error_kind": outcome.error.kind.value if outcome.error else None,
        "error": outcome.message or None,
        "warnings": outcome.warnings,
    }


def _pin_dict(state: PinState) -> dict[str, object]:
    return {
        "phase": state.phase.value,
        "entered": len(state.digits_entered),
        "length": state.length,
        "error": state.error,
        "masked": state.masked,
    }


def _paper_dict(config: PaperConfig, frame: FrameSelection) -> dict[str, object]:
    return {
        "scale": config.scale,
        "vertical": config.vertical,
        "horizontal": config.horizontal,
        "frame": frame.value,
    }


def create_app(orchestrator: Orchestrator, run_monitor: bool = True) -> FastAPI:
    @asynccontextmanager
    async def lifespan(_: FastAPI) -> AsyncIterator[None]:
        if run_monitor:
            await orchestrator.start()
        try:
            yield
        finally:
            await orchestrator.stop()

    app = FastAPI(title="Kiosk Orchestrator", lifespan=lifespan)

    @app.get("/status")
    async def status() -> dict[str, object]:
        return {
            "view": orchestrator.view.value,
            "revision": orchestrator.revision,
            "printing": orchestrator.guard.is_active(),
            "readiness": _readiness_dict(orchestrator.monitor.state),
            "diagnostics": [event.model_dump(mode="json") for event in orchestrator.guard.diagnostics],
        }

    @app.post("/readiness/check")
    async def readiness_check() -> dict[str, object]:
        polled = await orchestrator.monitor.poll_once()
        return {"polled": polled, "view": orchestrator.view.value, **_readiness_dict(orchestrator.monitor.state)}

    @app.get("/settings/paper/{orientation}")
    async def get_paper(orientation: OrientationName) -> dict[str, object]:
        settings = orchestrator.settings
        return _paper_dict(settings.paper_config(orientation.value), settings.frame_selection(orientation.value))

    @app.put("/settings/paper/{orientation}")
    async def put_paper(orientation: OrientationName, body: PaperConfigBody) -> dict[str, object]:
        settings = orchestrator.settings
        config = PaperConfig(scale=body.scale, vertical=body.vertical, horizontal=body.horizontal)
        settings.save_paper_config(orientation.value, config)
        return _paper_dict(config, settings.frame_selection(orientation.value))

    @app.post("/settings/paper/{orientation}/nudge")
    async def nudge_paper(orientation: OrientationName, body: NudgeBody) -> dict[str, object]:
        settings = orchestrator.settings
        config = settings.paper_config(orientation.value).nudge(body.field, body.steps)
        settings.save_paper_config(orientation.value, config)
        return _paper_dict(config, settings.frame_selection(orientation.value))

    @app.put("/settings/frame/{orientation}")
    async def put_frame(orientation: OrientationName, body: FrameBody) -> dict[str, object]:
        settings = orchestrator.settings
        try:
            settings.save_frame_selection(orientation.value, body.frame)
        except ValueError as exc:
            raise HTTPException(422, detail=str(exc)) from exc
        return _paper_dict(settings.paper_config(orientation.value), body.frame)

    @app.post("/settings/reset")
    async def reset_settings() -> dict[str, object]:
        orchestrator.format_reset()
        return {"ok": True, "revision": orchestrator.revision}

    @app.post("/print/test/{orientation}")
    async def print_test(orientation: OrientationName) -> dict[str, object]:
        return _outcome_dict(await orchestrator.test_print(orientation))

    @app.post("/print/image")
    async def print_image(body: ImagePrintBody) -> dict[str, object]:
        try:
            data = from_base64(body.image_data_base64)
        except ValueError as exc:
            raise HTTPException(422, detail="image_data_base64 is not valid base64") from exc
        outcome = await orchestrator.printer.print_image(data, body.frame, copies=body.copies)
        return _outcome_dict(outcome)

    @app.get("/pin")
    async def pin_state() -> dict[str, object]:
        return _pin_dict(orchestrator.pin_gate.state)

    @app.post("/pin/open")
    async def pin_open() -> dict[str, object]:
        return _pin_dict(orchestrator.pin_gate.open())

    @app.post("/pin/key")
    async def pin_key(body: KeyBody) -> dict[str, object]:
        return _pin_dict(await orchestrator.pin_gate.press(body.key))

    @app.post("/pin/cancel")
    async def pin_cancel() -> dict[str, object]:
        return _pin_dict(orchestrator.pin_gate.cancel())

    @app.post("/views/out-of-paper")
    async def out_of_paper(body: OutOfPaperBody) -> dict[str, object]:
        polling = await orchestrator.show_out_of_paper(body.reason)
        return {"view": orchestrator.view.value, "polling": polling}

    @app.post("/views/home")
    async def home() -> dict[str, object]:
        await orchestrator.leave_out_of_paper()
        return {"view": orchestrator.view.value}

    return app


# Created by Dr. Z. Bakhtiyorov
