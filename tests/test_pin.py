# Program: PIN Gate Tests
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""PIN entry state machine and the shutdown action it guards."""

from __future__ import annotations

import asyncio
from typing import List

import httpx
import pytest

from conftest import FakeBackend, fail
from kiosk.clients import HttpBackend
from kiosk.pin import PinGate, PinPhase, ShutdownAction
from services import machine_adapter


@pytest.fixture()
def closes() -> List[str]:
    return []


@pytest.fixture()
def shutdown(backend: FakeBackend, closes: List[str]) -> ShutdownAction:
    return ShutdownAction(backend, close_local=lambda: closes.append("closed"))


@pytest.fixture()
def gate(shutdown: ShutdownAction) -> PinGate:
    return PinGate("1234", shutdown, error_hold_ms=20)


async def _type(gate: PinGate, keys: str) -> None:
    for key in keys:
        await gate.press(key)


@pytest.mark.asyncio
async def test_correct_pin_requests_shutdown_once(gate, backend) -> None:
    gate.open()
    await _type(gate, "1234")
    assert backend.count("request_shutdown") == 1
    assert gate.phase is PinPhase.IDLE
    assert gate.state.digits_entered == ()
    assert gate.confirmations == 1


@pytest.mark.asyncio
async def test_wrong_pin_clears_after_hold(gate, backend) -> None:
    gate.open()
    await _type(gate, "1243")
    assert gate.phase is PinPhase.REJECTED
    assert gate.error

    # Keys are ignored while the error is shown.
    await gate.press("1")
    assert len(gate.state.digits_entered) == 4

    await asyncio.sleep(0.05)
    assert gate.phase is PinPhase.ENTERING
    assert not gate.error
    assert gate.state.digits_entered == ()
    assert backend.count("request_shutdown") == 0
    assert gate.rejections == 1


@pytest.mark.asyncio
async def test_delete_during_rejection_hold_clears_error() -> None:
    gate = PinGate("1234", lambda: None, error_hold_ms=10_000)
    gate.open()
    await _type(gate, "9999")
    assert gate.phase is PinPhase.REJECTED

    state = await gate.press("Backspace")
    assert state.phase is PinPhase.ENTERING
    assert state.digits_entered == ("9", "9", "9")
    assert not state.error

    # Entry resumes at once instead of waiting out the hold.
    state = await gate.press("1")
    assert state.phase is PinPhase.REJECTED
    assert gate.rejections == 2
    gate.cancel()


@pytest.mark.asyncio
async def test_keys_ignored_until_opened(gate, backend) -> None:
    await _type(gate, "1234")
    assert gate.phase is PinPhase.IDLE
    assert backend.calls == []


@pytest.mark.asyncio
async def test_backspace_and_keyboard_aliases(gate, backend) -> None:
    gate.open()
    await _type(gate, "129")
    await gate.press("Backspace")
    assert gate.state.digits_entered == ("1", "2")
    await gate.press("del")
    await gate.press("x")
    await gate.press("12")
    assert gate.state.digits_entered == ("1",)
    assert gate.state.masked == "•___"
    await _type(gate, "234")
    assert backend.count("request_shutdown") == 1


@pytest.mark.asyncio
async def test_cancel_returns_to_idle(gate) -> None:
    gate.open()
    await _type(gate, "12")
    state = await gate.press("Escape")
    assert state.phase is PinPhase.IDLE
    assert state.digits_entered == ()


@pytest.mark.asyncio
async def test_cancel_during_rejection_drops_hold(gate) -> None:
    gate.open()
    await _type(gate, "0000")
    gate.cancel()
    await asyncio.sleep(0.05)
    assert gate.phase is PinPhase.IDLE


@pytest.mark.asyncio
async def test_shutdown_failure_forces_close(gate, backend, closes) -> None:
    backend.failures["request_shutdown"] = fail("requestShutdown")
    gate.open()
    await _type(gate, "1234")
    assert closes == ["closed"]
    assert gate.phase is PinPhase.IDLE


@pytest.mark.asyncio
async def test_acknowledged_shutdown_closes_kiosk(backend) -> None:
    seen_at_close: List[List[str]] = []
    action = ShutdownAction(backend, close_local=lambda: seen_at_close.append(backend.names()))
    assert await action() is True
    assert seen_at_close == [["request_shutdown"]]
    assert action.requests == 1


@pytest.mark.asyncio
async def test_confirmed_pin_closes_kiosk_through_machine_adapter(monkeypatch: pytest.MonkeyPatch) -> None:
    scheduled: List[str] = []
    closed: List[str] = []
    monkeypatch.setattr(machine_adapter, "SHUTDOWN_HANDLER", lambda: scheduled.append("machine"))
    backend = HttpBackend(
        "http://camera",
        "http://printer",
        "http://machine",
        transport=httpx.ASGITransport(app=machine_adapter.app),
    )
    gate = PinGate("1234", ShutdownAction(backend, close_local=lambda: closed.append("kiosk")))
    gate.open()
    await _type(gate, "1234")
    await backend.aclose()
    assert closed == ["kiosk"]
    assert gate.phase is PinPhase.IDLE
    await asyncio.sleep(0.3)
    assert scheduled == ["machine"]


def test_pin_must_be_digits(shutdown) -> None:
    with pytest.raises(ValueError):
        PinGate("12a4", shutdown)


# Created by Dr. Z. Bakhtiyorov
