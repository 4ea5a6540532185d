from __future__ import annotations

from pathlib import Path

import pytest

from celestial_sim.__main__ import main

EXAMPLE = Path(__file__).resolve().parents[1] / "examples" / "systems" / "binary_sun.json"


def test_cli_runs_example(capsys: pytest.CaptureFixture[str]) -> None:
    code = main([str(EXAMPLE), "--ticks", "3", "--log-level", "WARNING"])
    out = capsys.readouterr().out
    assert code == 0
    assert "ticks: 3" in out
    assert "root star: sol" in out
    assert "active bodies: 7" in out


def test_cli_frame_dt_batches_ticks(capsys: pytest.CaptureFixture[str]) -> None:
    code = main([str(EXAMPLE), "--ticks", "2", "--frame-dt", "0.05", "--log-level", "ERROR"])
    assert code == 0
    assert "ticks: 10" in capsys.readouterr().out
