"""
Tests for structured run output in run_context.py.

Run: uv run pytest tests/test_run_context.py -v
"""

import json
import sys
from pathlib import Path

import pytest

from incarceration_analysis.run_context import RunContext, _normalize_dataset

# ── Dataset names ────────────────────────────────────────────────────────────


class TestNormalizeDataset:
    def test_csv_path(self) -> None:
        assert (
            _normalize_dataset("data/crime_and_incarceration_by_state.csv")
            == "crime_and_incarceration_by_state"
        )

    def test_spaces_and_case(self) -> None:
        assert _normalize_dataset("State Totals 2016") == "state_totals_2016"

    def test_nothing_usable(self) -> None:
        assert _normalize_dataset("---") == "dataset"


# ── RunContext ───────────────────────────────────────────────────────────────


class TestRunContext:
    def test_creates_directories(self, tmp_path: Path) -> None:
        with RunContext("states.csv", "network", results_root=tmp_path) as ctx:
            assert ctx.plots_dir.is_dir()
            assert ctx.data_dir.is_dir()
        assert ctx.run_dir.parent == tmp_path / "states" / "network"

    def test_captures_stdout(self, tmp_path: Path) -> None:
        with RunContext("states.csv", "network", results_root=tmp_path) as ctx:
            print("hello from the run")
        log = (ctx.run_dir / "run_log.txt").read_text()
        assert "hello from the run" in log

    def test_restores_stdout(self, tmp_path: Path) -> None:
        before = sys.stdout
        with RunContext("states.csv", "network", results_root=tmp_path):
            assert sys.stdout is not before
        assert sys.stdout is before

    def test_run_info(self, tmp_path: Path) -> None:
        with RunContext("states.csv", "network", params={"k": 3}, results_root=tmp_path) as ctx:
            pass
        info = json.loads((ctx.run_dir / "run_info.json").read_text())
        assert info["analysis"] == "network"
        assert info["dataset"] == "states"
        assert info["params"] == {"k": 3}
        assert info["status"] == "completed"

    def test_failed_run_recorded(self, tmp_path: Path) -> None:
        with pytest.raises(RuntimeError):
            with RunContext("states.csv", "network", results_root=tmp_path) as ctx:
                raise RuntimeError("boom")
        info = json.loads((ctx.run_dir / "run_info.json").read_text())
        assert info["status"] == "failed"

    def test_latest_symlink(self, tmp_path: Path) -> None:
        with RunContext("states.csv", "network", results_root=tmp_path) as ctx:
            pass
        latest = tmp_path / "states" / "network" / "latest"
        assert latest.is_symlink()
        assert latest.resolve() == ctx.run_dir.resolve()

    def test_rerun_same_day_replaces_symlink(self, tmp_path: Path) -> None:
        for _ in range(2):
            with RunContext("states.csv", "network", results_root=tmp_path):
                pass
        assert (tmp_path / "states" / "network" / "latest").is_symlink()

    def test_primer_written(self, tmp_path: Path) -> None:
        with RunContext("states.csv", "network", results_root=tmp_path, primer="# Primer\n"):
            pass
        assert (tmp_path / "states" / "network" / "README.md").read_text() == "# Primer\n"
