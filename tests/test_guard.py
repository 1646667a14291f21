# Program: Printing State Guard Tests
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

"""Lock windows, last-writer-wins, and stale expiry on read."""

from __future__ import annotations

from kiosk.guard import PrintingStateGuard


def test_active_until_window_elapses(guard: PrintingStateGuard, clock) -> None:
    guard.acquire(45_000)
    assert guard.is_active()
    clock.advance_ms(45_000)
    assert guard.is_active()
    clock.advance_ms(1)
    assert not guard.is_active()


def test_default_window_is_thirty_seconds(clock) -> None:
    guard = PrintingStateGuard(clock=clock)
    guard.acquire()
    clock.advance_ms(29_999)
    assert guard.is_active()
    clock.advance_ms(2)
    assert not guard.is_active()


def test_release_clears_immediately(guard: PrintingStateGuard) -> None:
    guard.acquire(10_000)
    guard.release()
    assert not guard.is_active()
    assert not guard.lock.active
    assert guard.stale_expirations == 0


def test_reacquire_overwrites_window(guard: PrintingStateGuard, clock) -> None:
    guard.acquire(60_000)
    guard.acquire(1_000)
    clock.advance_ms(2_000)
    assert not guard.is_active()


def test_stale_lock_is_cleared_and_reported(guard: PrintingStateGuard, clock) -> None:
    guard.acquire(500)
    clock.advance_ms(501)

    assert not guard.is_active()
    assert not guard.lock.active
    assert guard.stale_expirations == 1
    assert len(guard.diagnostics) == 1
    event = guard.diagnostics[0]
    assert event.source == "guard"
    assert event.level == "warn"

    # Already cleared: a second read does not report it again.
    assert not guard.is_active()
    assert guard.stale_expirations == 1


def test_zero_timeout_expires_on_next_tick(guard: PrintingStateGuard, clock) -> None:
    guard.acquire(0)
    assert guard.is_active()
    clock.advance_ms(1)
    assert not guard.is_active()


# Created by Dr. Z. Bakhtiyorov
