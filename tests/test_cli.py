# Program: Kiosk CLI Tests
# Version: 0.1.0
# Author: Dr. Zulfiyor Bakhtiyorov
# Affiliations: University of Cambridge; Xinjiang Institute of Ecology and Geography; National Academy of Sciences of Tajikistan
# Year: 2025
# License: MIT License

from __future__ import annotations

from pathlib import Path

from typer.testing import CliRunner

from kiosk.cli import app, readiness_table
from kiosk.readiness import ReadinessState
from kiosk.storage import SETTINGS_KEYS, KeyValueStore, KioskSettings

runner = CliRunner()


def _config(tmp_path: Path) -> Path:
    path = tmp_path / "kiosk.yaml"
    path.write_text(f"state_path: {tmp_path / 'state.json'}\n", encoding="utf-8")
    return path


def test_reset_command_clears_state(tmp_path: Path) -> None:
    config = _config(tmp_path)
    settings = KioskSettings(KeyValueStore(tmp_path / "state.json"))
    settings.select_printer("DNP-QW410")

    result = runner.invoke(app, ["reset", "--config", str(config), "--yes"])
    assert result.exit_code == 0, result.output
    reopened = KeyValueStore(tmp_path / "state.json")
    assert not any(key in reopened for key in SETTINGS_KEYS)


def test_reset_command_aborts_without_confirmation(tmp_path: Path) -> None:
    config = _config(tmp_path)
    KioskSettings(KeyValueStore(tmp_path / "state.json")).select_printer("DNP-QW410")
    result = runner.invoke(app, ["reset", "--config", str(config)], input="n\n")
    assert result.exit_code != 0
    assert KioskSettings(KeyValueStore(tmp_path / "state.json")).printer_name == "DNP-QW410"


def test_readiness_table_rows() -> None:
    table = readiness_table(ReadinessState(camera_ok=True, camera_label="C920", printer_label="DNP (not found)"))
    assert table.row_count == 2


# Created by Dr. Z. Bakhtiyorov
