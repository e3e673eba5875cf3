"""Tests for the shift-core command-line interface."""

import json
from pathlib import Path

import pytest

from shift_core.cli import build_parser, main


def _run(capsys, *argv: str):
    main(list(argv))
    return json.loads(capsys.readouterr().out)


def test_parser_requires_command() -> None:
    """A command is required."""
    with pytest.raises(SystemExit):
        build_parser().parse_args([])


def test_cli_reconciliation_flow(tmp_path: Path, capsys) -> None:
    """Finalize, reconcile and lock a month from the command line."""
    root = str(tmp_path / "data")
    records = tmp_path / "ds.json"
    records.write_text(
        json.dumps(
            [
                {"activity": "Hauling", "sub": "Production", "values": {"Trucks": 4, "Weight": 50, "Tonnes Hauled": 200}},
                {"activity": "Firing", "sub": "Development", "values": {"Cut Length": 3.5}},
            ]
        ),
        encoding="utf-8",
    )

    shift = _run(
        capsys,
        "--data-root", root, "finalize",
        "--site", "North", "--date", "2025-01-05", "--shift", "DS", "--records", str(records), "--validated",
    )
    assert shift["shift_id"] == "2025-01-05-DS"
    assert shift["totals"]["Hauling"]["Production"]["Ore Tonnes Hauled"] == 200

    month = ["--site", "North", "--month", "2025-01", "--metric", "hauling|ore_tonnes_hauled"]
    summary = _run(capsys, "--data-root", root, "summary", *month)
    assert summary["actual_total"] == 200
    assert summary["state"] == "open"

    upserted = _run(capsys, "--data-root", root, "upsert", *month, "--total", "260", "--method", "month_end")
    assert upserted["delta"] == 60
    assert upserted["allocations"] == [{"date": "2025-01-05", "allocated_value": 60.0}]

    locked = _run(capsys, "--data-root", root, "lock", *month)
    assert locked["is_locked"] is True

    status = _run(capsys, "--data-root", root, "status", "--site", "North", "--month", "2025-01")
    assert status["status"] == "closed"

    with pytest.raises(SystemExit, match="ERROR: reconciliation is locked"):
        main(["--data-root", root, "upsert", *month, "--total", "300"])


def test_cli_validation_error_exits(tmp_path: Path) -> None:
    """Validation errors exit with an ERROR message."""
    with pytest.raises(SystemExit, match="ERROR: invalid month_ym"):
        main(["--data-root", str(tmp_path), "summary", "--site", "North", "--month", "2025-13", "--metric", "x|y|z"])


def test_cli_lists_metrics(tmp_path: Path, capsys) -> None:
    """The metrics command lists registered keys."""
    metrics = _run(capsys, "--data-root", str(tmp_path), "metrics")
    assert {"key": "hauling|ore_tonnes_hauled", "label": "Hauling - Ore Tonnes Hauled (Dev + Prod)", "unit": "t"} in metrics


def test_cli_missing_records_file(tmp_path: Path) -> None:
    """A missing records file is reported."""
    with pytest.raises(SystemExit, match="File not found"):
        main([
            "--data-root", str(tmp_path), "finalize",
            "--site", "North", "--date", "2025-01-05", "--shift", "DS", "--records", str(tmp_path / "nope.json"),
        ])
