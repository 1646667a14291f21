# Program: Backend Command Clients
# Version: 0.2.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Request/response boundary to the camera, printer, and machine adapters.

The kiosk core only ever talks to hardware through :class:`Backend`. The
HTTP implementation converts every transport or protocol problem into a
:class:`~kiosk.errors.BackendError` so callers never see ``httpx`` types.
"""

from __future__ import annotations

import logging
from typing import Any, List, Optional, Protocol

import httpx
from pydantic import BaseModel, ValidationError

from .errors import BackendError
from .events import (
    CalibrationPrintRequest,
    DeviceAlert,
    DeviceDescriptor,
    MachineStatus,
    PaperReduceRequest,
    PhotoPrintRequest,
    PrinterInfo,
    TempImageRequest,
    TempImageResponse,
    VendorCamera,
)

logger = logging.getLogger(__name__)


class Backend(Protocol):
    """Named commands consumed by the kiosk core."""

    async def list_camera_devices(self) -> List[DeviceDescriptor]: ...

    async def list_vendor_cameras(self) -> List[VendorCamera]: ...

    async def list_printers(self) -> List[PrinterInfo]: ...

    async def print_test_photo(self, request: CalibrationPrintRequest) -> None: ...

    async def print_photo(self, request: PhotoPrintRequest) -> None: ...

    async def decrement_paper_level(self, copies: int) -> None: ...

    async def save_temp_image(self, image_data_base64: str, filename: str) -> str: ...

    async def request_shutdown(self) -> None: ...

    async def query_machine_status(self) -> MachineStatus: ...

    async def send_device_alert(self, alert: DeviceAlert) -> None: ...


class HttpBackend:
    """Backend implementation over the three FastAPI adapter services."""

    def __init__(
        self,
        camera_url: str,
        printer_url: str,
        machine_url: str,
        timeout_s: float = 10.0,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ) -> None:
        self.camera_url = camera_url.rstrip("/")
        self.printer_url = printer_url.rstrip("/")
        self.machine_url = machine_url.rstrip("/")
        self._client = httpx.AsyncClient(timeout=timeout_s, transport=transport)

    async def aclose(self) -> None:
        await self._client.aclose()

    async def list_camera_devices(self) -> List[DeviceDescriptor]:
        data = await self._request("listCameraDevices", "GET", f"{self.camera_url}/camera/devices")
        return self._parse_list("listCameraDevices", DeviceDescriptor, data)

    async def list_vendor_cameras(self) -> List[VendorCamera]:
        data = await self._request("listVendorCameras", "GET", f"{self.camera_url}/camera/vendor")
        return self._parse_list("listVendorCameras", VendorCamera, data)

    async def list_printers(self) -> List[PrinterInfo]:
        data = await self._request("listPrinters", "GET", f"{self.printer_url}/printer/list")
        return self._parse_list("listPrinters", PrinterInfo, data)

    async def print_test_photo(self, request: CalibrationPrintRequest) -> None:
        await self._request(
            "printTestPhoto", "POST", f"{self.printer_url}/printer/print_test", request.model_dump()
        )

    async def print_photo(self, request: PhotoPrintRequest) -> None:
        await self._request(
            "printPhoto", "POST", f"{self.printer_url}/printer/print_photo", request.model_dump()
        )

    async def decrement_paper_level(self, copies: int) -> None:
        payload = PaperReduceRequest(copies=copies).model_dump()
        await self._request("decrementPaperLevel", "POST", f"{self.machine_url}/machine/paper/reduce", payload)

    async def save_temp_image(self, image_data_base64: str, filename: str) -> str:
        payload = TempImageRequest(image_data_base64=image_data_base64, filename=filename).model_dump()
        data = await self._request("saveTempImage", "POST", f"{self.machine_url}/machine/temp_image", payload)
        return self._parse_one("saveTempImage", TempImageResponse, data).path

    async def request_shutdown(self) -> None:
        await self._request("requestShutdown", "POST", f"{self.machine_url}/machine/shutdown")

    async def query_machine_status(self) -> MachineStatus:
        data = await self._request("queryMachineStatus", "GET", f"{self.machine_url}/machine/status")
        return self._parse_one("queryMachineStatus", MachineStatus, data)

    async def send_device_alert(self, alert: DeviceAlert) -> None:
        await self._request(
            "sendDeviceAlert", "POST", f"{self.machine_url}/machine/device_alert", alert.model_dump()
        )

    async def _request(
        self,
        command: str,
        method: str,
        url: str,
        payload: Optional[dict[str, Any]] = None,
    ) -> Any:
        logger.debug("%s -> %s %s", command, method, url)
        try:
            response = await self._client.request(method, url, json=payload)
        except httpx.HTTPError as exc:
            raise BackendError(command, str(exc) or type(exc).__name__) from exc

        if response.status_code >= 400:
            raise BackendError(command, _error_detail(response))
        try:
            data = response.json()
        except ValueError as exc:
            raise BackendError(command, "invalid JSON reply") from exc
        if isinstance(data, dict) and data.get("ok") is False:
            raise BackendError(command, str(data.get("error") or "command rejected"))
        return data

    @staticmethod
    def _parse_list(command: str, model: type[BaseModel], data: Any) -> List[Any]:
        if not isinstance(data, list):
            raise BackendError(command, "expected a list reply")
        try:
            return [model.model_validate(item) for item in data]
        except ValidationError as exc:
            raise BackendError(command, f"malformed reply: {exc.error_count()} errors") from exc

    @staticmethod
    def _parse_one(command: str, model: type[BaseModel], data: Any) -> Any:
        try:
            return model.model_validate(data)
        except ValidationError as exc:
            raise BackendError(command, f"malformed reply: {exc.error_count()} errors") from exc


def _error_detail(response: httpx.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return f"HTTP {response.status_code}"
    if isinstance(body, dict):
        detail = body.get("detail") or body.get("error")
        if detail:
            return str(detail)
    return f"HTTP {response.status_code}"


# Created by Dr. Z. Bakhtiyorov
