# Program: Calibrated Print Pipeline
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Turn calibration and frame choices into ordered backend print calls."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import List, Optional

from PIL import Image

from .clients import Backend
from .errors import ErrorKind, PrintError, truncate_message
from .events import CalibrationPrintRequest, PhotoPrintRequest
from .guard import PrintingStateGuard
from .imaging import encode_jpeg, image_extension, load_image, tile_horizontally, tile_vertically, to_base64
from .storage import FrameSelection, KioskSettings, PaperConfig

logger = logging.getLogger(__name__)

MIN_COPIES = 1
MAX_COPIES = 5


@dataclass
class PrintOutcome:
    """Result of one print request; ``error`` is set exactly when ``ok`` is False."""

    ok: bool
    frame: FrameSelection
    copies_requested: int = 0
    copies_printed: int = 0
    error: Optional[PrintError] = None
    warnings: List[str] = field(default_factory=list)

    @property
    def message(self) -> str:
        return self.error.message if self.error is not None else ""


def clamp_copies(copies: int, upper: int = MAX_COPIES) -> int:
    return max(MIN_COPIES, min(upper, int(copies)))


def prepare_print_image(
    data: bytes,
    frame: FrameSelection,
    target_width: int,
    target_height: int,
) -> bytes:
    """Return the bytes handed to the backend for ``frame``.

    Cut frames get the duplicate-and-tile composite encoded as full quality
    JPEG. Full frames pass the source bytes through untouched.
    """

    if not frame.is_cut:
        return data
    source = load_image(data)
    if frame is FrameSelection.PORTRAIT_CUT:
        composite = tile_horizontally(source, target_width, target_height)
    else:
        # A 6x2 strip is the portrait strip turned on its side.
        composite = tile_vertically(source, target_height, target_width)
    return encode_jpeg(composite, quality=100)


class CalibratedPrintPipeline:
    """Test prints and customer prints, both serialised behind the print lock."""

    def __init__(
        self,
        backend: Backend,
        guard: PrintingStateGuard,
        settings: KioskSettings,
        *,
        print_lock_timeout_ms: int = 45_000,
        cut_frame_size: tuple[int, int] = (1200, 3600),
        max_copies: int = MAX_COPIES,
        error_message_limit: int = 60,
    ) -> None:
        self.backend = backend
        self.guard = guard
        self.settings = settings
        self.print_lock_timeout_ms = print_lock_timeout_ms
        self.cut_frame_size = cut_frame_size
        self.max_copies = max_copies
        self.error_message_limit = error_message_limit

    def _missing_printer(self, frame: FrameSelection) -> Optional[PrintOutcome]:
        if self.settings.printer_name:
            return None
        logger.warning("Print requested with no printer selected")
        error = PrintError("Select a printer first", ErrorKind.CONFIGURATION_MISSING)
        return PrintOutcome(ok=False, frame=frame, error=error)

    def _failure(self, frame: FrameSelection, exc: Exception, copies: int, printed: int) -> PrintOutcome:
        message = f"Print Error: {truncate_message(str(exc), self.error_message_limit)}"
        return PrintOutcome(
            ok=False,
            frame=frame,
            copies_requested=copies,
            copies_printed=printed,
            error=PrintError(message, ErrorKind.PRINT_FAILURE),
        )

    async def _reduce_paper(self, copies: int, outcome: PrintOutcome) -> None:
        try:
            await self.backend.decrement_paper_level(copies)
        except Exception as exc:  # noqa: BLE001 - never fails a finished print
            logger.warning("Paper level decrement failed (ignored): %s", exc)
            outcome.warnings.append(f"paper level not updated: {exc}")

    async def test_print(self, config: PaperConfig, frame: FrameSelection) -> PrintOutcome:
        missing = self._missing_printer(frame)
        if missing is not None:
            return missing
        printer_name = self.settings.printer_name

        # Held before the first await so the readiness monitor's next tick sees it.
        self.guard.acquire(self.print_lock_timeout_ms)
        try:
            request = CalibrationPrintRequest(
                printer_name=printer_name,
                scale=config.scale,
                vertical_offset=config.vertical,
                horizontal_offset=config.horizontal,
                frame_type=frame.value,
            )
            logger.info("Test print %s on %s (scale=%s)", frame.value, printer_name, config.scale)
            try:
                await self.backend.print_test_photo(request)
            except Exception as exc:  # noqa: BLE001 - surfaced as a print failure
                logger.error("Test print failed: %s", exc)
                return self._failure(frame, exc, copies=1, printed=0)

            outcome = PrintOutcome(ok=True, frame=frame, copies_requested=1, copies_printed=1)
            await self._reduce_paper(1, outcome)
            return outcome
        finally:
            self.guard.release()

    async def print_image(
        self,
        data: bytes,
        frame: FrameSelection,
        copies: int = 1,
        config: Optional[PaperConfig] = None,
    ) -> PrintOutcome:
        """Print a customer image ``copies`` times, one backend call per copy, in order."""
        copies = clamp_copies(copies, self.max_copies)
        missing = self._missing_printer(frame)
        if missing is not None:
            missing.copies_requested = copies
            return missing
        printer_name = self.settings.printer_name
        config = config or self.settings.paper_config(frame.orientation)

        # Tiling happens before the temp file exists and before any print call.
        try:
            width, height = self.cut_frame_size
            payload = prepare_print_image(data, frame, width, height)
        except (OSError, ValueError, Image.DecompressionBombError) as exc:
            logger.error("Print image could not be prepared: %s", exc)
            return self._failure(frame, exc, copies=copies, printed=0)

        self.guard.acquire(self.print_lock_timeout_ms * copies)
        printed = 0
        try:
            extension = "jpg" if frame.is_cut else image_extension(payload)
            try:
                path = await self.backend.save_temp_image(to_base64(payload), f"print-frame.{extension}")
                for index in range(copies):
                    logger.info("Printing copy %d/%d (%s) on %s", index + 1, copies, frame.value, printer_name)
                    await self.backend.print_photo(
                        PhotoPrintRequest(
                            image_path=path,
                            printer_name=printer_name,
                            frame_type=frame.full_sheet.value,
                            scale=config.scale,
                            vertical_offset=config.vertical,
                            horizontal_offset=config.horizontal,
                            is_landscape=frame.is_landscape,
                        )
                    )
                    printed += 1
            except Exception as exc:  # noqa: BLE001 - surfaced as a print failure
                logger.error("Print failed after %d/%d copies: %s", printed, copies, exc)
                return self._failure(frame, exc, copies=copies, printed=printed)

            outcome = PrintOutcome(ok=True, frame=frame, copies_requested=copies, copies_printed=printed)
            await self._reduce_paper(copies, outcome)
            return outcome
        finally:
            self.guard.release()


# Created by Dr. Z. Bakhtiyorov
