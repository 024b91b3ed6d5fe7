"""
Command Line Tests
==================
Tests for the cruise-monitor command line: outputs and exit codes.

Run with: python -m pytest tests/test_cli.py -v
"""

import hashlib
import json
import sys
from pathlib import Path

import numpy as np
import pandas as pd
import pytest

sys.path.insert(0, str(Path(__file__).parent.parent))

from cruise_monitor import cli
from cruise_monitor.errors import AnalysisInvariantViolation
from cruise_monitor.export import FAULT_STATUS_COLUMN


HEADER = "Time [s], Setpoint [m/s], Measurement [m/s], Position [m], Elevation [m], Output [N]"


def write_log(path, setpoint, measurement):
    lines = [HEADER]
    for i, (sp, pv) in enumerate(zip(setpoint, measurement)):
        lines.append(f"{i * 0.1:.1f}, {sp}, {pv}, {i}, 100, 250")
    path.write_text("\n".join(lines) + "\n")
    return path


def create_log(tmp_path, n=100, name="run.csv"):
    measurement = np.full(n, 10.0)
    measurement[10:15] = 5.0
    return write_log(tmp_path / name, np.full(n, 10.0), measurement)


class TestCliSuccess:
    """Successful runs."""

    def test_default_output(self, tmp_path, capsys):
        log = create_log(tmp_path)

        assert cli.main([str(log)]) == cli.EXIT_OK

        out = tmp_path / "run_annotated.csv"
        df = pd.read_csv(out)
        assert df[FAULT_STATUS_COLUMN].sum() == 5
        assert "Total faults: 5" in capsys.readouterr().out

    def test_explicit_output_json_html(self, tmp_path):
        log = create_log(tmp_path)
        out = tmp_path / "annotated.csv"
        summary = tmp_path / "summary.json"
        report = tmp_path / "report.html"

        code = cli.main([
            str(log), '--output', str(out), '--json', str(summary), '--html', str(report),
        ])

        assert code == cli.EXIT_OK
        assert out.exists()
        data = json.loads(summary.read_text())
        assert data['summary']['total_faults'] == 5
        assert data['traceability']['source_filename'] == "run.csv"
        assert "Traceability Record" in report.read_text(encoding='utf-8')

    def test_in_place(self, tmp_path):
        log = create_log(tmp_path)
        source_bytes = log.read_bytes()
        summary = tmp_path / "summary.json"

        assert cli.main([str(log), '--in-place', '--json', str(summary)]) == cli.EXIT_OK

        df = pd.read_csv(log)
        assert FAULT_STATUS_COLUMN in df.columns
        assert not (tmp_path / "run_annotated.csv").exists()

        # Hash refers to the log as it was before being overwritten
        expected = "sha256:" + hashlib.sha256(source_bytes).hexdigest()
        assert json.loads(summary.read_text())['traceability']['source_hash'] == expected

    def test_summary_only(self, tmp_path, capsys):
        log = create_log(tmp_path)
        assert cli.main([str(log), '--summary-only']) == cli.EXIT_OK

        text = capsys.readouterr().out
        assert "Transient Periods:" not in text
        assert "Total faults:" in text

    def test_config_file(self, tmp_path, capsys):
        log = create_log(tmp_path)
        config = tmp_path / "monitor.yaml"
        config.write_text("raw_error_fraction: 0.6\n")

        assert cli.main([str(log), '--config', str(config)]) == cli.EXIT_OK
        assert "Total faults: 0" in capsys.readouterr().out

    def test_default_output_path(self):
        assert cli.default_output_path(Path("logs/run.csv")) == Path("logs/run_annotated.csv")


class TestCliFailures:
    """Failures map to exit codes with one reason on stderr."""

    def test_missing_log(self, tmp_path, capsys):
        code = cli.main([str(tmp_path / "missing.csv")])

        assert code == cli.EXIT_INPUT_ERROR
        assert "not found" in capsys.readouterr().err

    def test_bad_config(self, tmp_path, capsys):
        log = create_log(tmp_path)
        config = tmp_path / "monitor.yaml"
        config.write_text("infinite_sentinel: 5\n")

        assert cli.main([str(log), '--config', str(config)]) == cli.EXIT_INPUT_ERROR
        assert "error:" in capsys.readouterr().err

    def test_sample_count_mismatch(self, tmp_path):
        log = create_log(tmp_path)
        config = tmp_path / "monitor.json"
        config.write_text(json.dumps({'sample_count': 6000}))

        assert cli.main([str(log), '--config', str(config)]) == cli.EXIT_INPUT_ERROR
        assert not (tmp_path / "run_annotated.csv").exists()

    def test_zero_setpoint(self, tmp_path, capsys):
        setpoint = np.full(50, 10.0)
        setpoint[20] = 0.0
        log = write_log(tmp_path / "zero.csv", setpoint, np.full(50, 10.0))

        assert cli.main([str(log)]) == cli.EXIT_INPUT_ERROR
        assert "zero" in capsys.readouterr().err
        assert not (tmp_path / "zero_annotated.csv").exists()

    def test_too_short(self, tmp_path):
        log = write_log(tmp_path / "short.csv", [10.0] * 3, [10.0] * 3)
        assert cli.main([str(log)]) == cli.EXIT_INPUT_ERROR

    def test_invariant_violation(self, tmp_path, capsys, monkeypatch):
        log = create_log(tmp_path)

        def broken_run(self, series):
            raise AnalysisInvariantViolation("Periods end at 10, expected 100")

        monkeypatch.setattr(cli.ControllerMonitor, "run", broken_run)

        assert cli.main([str(log)]) == cli.EXIT_INVARIANT_VIOLATION
        assert "invariant" in capsys.readouterr().err

    def test_output_and_in_place_exclusive(self, tmp_path):
        log = create_log(tmp_path)
        with pytest.raises(SystemExit):
            cli.main([str(log), '--in-place', '--output', str(tmp_path / "x.csv")])
