# Program: Calibrated Print Pipeline Tests
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Print lock discipline, error mapping, copies, and cut-frame compositing."""

from __future__ import annotations

import io

import pytest
from PIL import Image

from conftest import FakeBackend, fail
from kiosk.errors import ErrorKind
from kiosk.guard import PrintingStateGuard
from kiosk.printing import CalibratedPrintPipeline, clamp_copies, prepare_print_image
from kiosk.storage import FrameSelection, KioskSettings, PaperConfig


def _png(width: int = 100, height: int = 300) -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (width, height), (20, 120, 60)).save(buffer, format="PNG")
    return buffer.getvalue()


@pytest.fixture()
def pipeline(backend: FakeBackend, guard: PrintingStateGuard, settings: KioskSettings) -> CalibratedPrintPipeline:
    backend.guard = guard
    return CalibratedPrintPipeline(backend, guard, settings, cut_frame_size=(100, 300))


@pytest.mark.asyncio
async def test_test_print_without_printer_makes_no_backend_call(pipeline, backend, guard) -> None:
    outcome = await pipeline.test_print(PaperConfig(), FrameSelection.PORTRAIT_FULL)
    assert not outcome.ok
    assert outcome.error is not None
    assert outcome.error.kind is ErrorKind.CONFIGURATION_MISSING
    assert outcome.message == "Select a printer first"
    assert backend.calls == []
    assert not guard.is_active()


@pytest.mark.asyncio
async def test_test_print_holds_lock_and_reduces_paper(pipeline, backend, guard, configured) -> None:
    config = PaperConfig(scale=110.5, vertical=-4, horizontal=7)
    outcome = await pipeline.test_print(config, FrameSelection.LANDSCAPE_CUT)

    assert outcome.ok
    assert backend.names() == ["print_test_photo", "decrement_paper_level"]
    request = backend.calls[0][1]
    assert request.printer_name == "DNP-QW410"
    assert request.scale == 110.5
    assert request.vertical_offset == -4
    assert request.horizontal_offset == 7
    assert request.frame_type == "6x2"
    assert backend.calls[1][1] == 1
    assert backend.guard_seen == [True, True]
    assert not guard.is_active()


@pytest.mark.asyncio
async def test_test_print_failure_releases_lock(pipeline, backend, guard, configured) -> None:
    backend.failures["print_test_photo"] = fail("printTestPhoto", "printer jammed " + "x" * 200)
    outcome = await pipeline.test_print(PaperConfig(), FrameSelection.PORTRAIT_FULL)

    assert not outcome.ok
    assert outcome.error.kind is ErrorKind.PRINT_FAILURE
    assert outcome.message.startswith("Print Error: ")
    detail = outcome.message[len("Print Error: "):]
    assert len(detail) == 60
    assert detail.startswith("printTestPhoto: printer jammed")
    assert backend.count("decrement_paper_level") == 0
    assert not guard.is_active()
    assert guard.stale_expirations == 0


@pytest.mark.asyncio
async def test_paper_reduce_failure_does_not_fail_print(pipeline, backend, configured) -> None:
    backend.failures["decrement_paper_level"] = fail("decrementPaperLevel")
    outcome = await pipeline.test_print(PaperConfig(), FrameSelection.PORTRAIT_FULL)
    assert outcome.ok
    assert outcome.error is None
    assert len(outcome.warnings) == 1


@pytest.mark.asyncio
async def test_copies_clamped_and_printed_in_order(pipeline, backend, configured) -> None:
    outcome = await pipeline.print_image(_png(), FrameSelection.PORTRAIT_FULL, copies=9)
    assert outcome.ok
    assert outcome.copies_requested == 5
    assert outcome.copies_printed == 5
    assert backend.names() == ["save_temp_image"] + ["print_photo"] * 5 + ["decrement_paper_level"]
    assert backend.calls[-1][1] == 5

    backend.calls.clear()
    outcome = await pipeline.print_image(_png(), FrameSelection.PORTRAIT_FULL, copies=0)
    assert outcome.copies_printed == 1


@pytest.mark.asyncio
async def test_full_frame_bytes_pass_through(pipeline, backend, configured) -> None:
    data = _png()
    await pipeline.print_image(data, FrameSelection.PORTRAIT_FULL)
    filename = backend.calls[0][1]
    assert filename == "print-frame.png"
    assert backend.temp_images["/tmp/kiosk/print-frame.png"] == data


@pytest.mark.asyncio
async def test_cut_frame_sends_composite_on_full_sheet(pipeline, backend, configured) -> None:
    configured.save_paper_config("portrait", PaperConfig(scale=97.5))
    outcome = await pipeline.print_image(_png(), FrameSelection.PORTRAIT_CUT, copies=2)
    assert outcome.ok

    saved = backend.temp_images["/tmp/kiosk/print-frame.jpg"]
    with Image.open(io.BytesIO(saved)) as composite:
        assert composite.format == "JPEG"
        assert composite.size == (200, 300)

    requests = [payload for name, payload in backend.calls if name == "print_photo"]
    assert len(requests) == 2
    assert all(request.frame_type == "4x6" for request in requests)
    assert all(request.scale == 97.5 for request in requests)
    assert all(not request.is_landscape for request in requests)


@pytest.mark.asyncio
async def test_failure_midway_reports_printed_count(pipeline, backend, guard, configured) -> None:
    calls = {"n": 0}
    original = backend.print_photo

    async def flaky(request):
        calls["n"] += 1
        if calls["n"] == 2:
            raise fail("printPhoto", "out of ribbon")
        await original(request)

    backend.print_photo = flaky  # type: ignore[method-assign]
    outcome = await pipeline.print_image(_png(), FrameSelection.PORTRAIT_FULL, copies=3)
    assert not outcome.ok
    assert outcome.copies_printed == 1
    assert backend.count("decrement_paper_level") == 0
    assert not guard.is_active()


@pytest.mark.asyncio
async def test_unreadable_image_fails_before_backend(pipeline, backend, configured) -> None:
    outcome = await pipeline.print_image(b"garbage", FrameSelection.PORTRAIT_CUT)
    assert not outcome.ok
    assert outcome.error.kind is ErrorKind.PRINT_FAILURE
    assert backend.calls == []


def test_prepare_landscape_strip_tiles_vertically() -> None:
    payload = prepare_print_image(_png(300, 100), FrameSelection.LANDSCAPE_CUT, 100, 300)
    with Image.open(io.BytesIO(payload)) as composite:
        assert composite.size == (300, 200)


def test_clamp_copies_bounds() -> None:
    assert clamp_copies(-3) == 1
    assert clamp_copies(3) == 3
    assert clamp_copies(6) == 5


# Created by Dr. Z. Bakhtiyorov
