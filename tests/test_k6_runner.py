"""Tests for the k6 runner."""

import json
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from k6_perf_report.config import RunConfig
from k6_perf_report.core.load.k6_runner import K6Runner


@pytest.fixture
def run_config(tmp_path):
    return RunConfig(
        script="homepage.js",
        test_type="BROWSER",
        scenario="smoke",
        environment="staging",
        aut="SHOP",
        scripts_dir=str(tmp_path / "scripts"),
        output_dir=str(tmp_path / "results"),
    )


@pytest.fixture
def script(run_config):
    path = Path(run_config.scripts_dir) / "browser" / "homepage.js"
    path.parent.mkdir(parents=True)
    path.write_text("export default function () {}\n")
    return path


class TestPaths:
    """Tests for script, results and options paths."""

    def test_script_path(self, run_config, tmp_path):
        assert K6Runner(run_config).script_path() == tmp_path / "scripts" / "browser" / "homepage.js"

    def test_results_file(self, run_config, tmp_path):
        assert K6Runner(run_config).results_file() == tmp_path / "results" / "BROWSER_SHOP_smoke.json"

    def test_results_file_without_aut(self, run_config):
        run_config.aut = None
        assert K6Runner(run_config).results_file().name == "BROWSER_unknown_smoke.json"

    def test_results_state(self, run_config):
        runner = K6Runner(run_config)
        assert runner.results_state() is None

        results = runner.results_file()
        results.parent.mkdir(parents=True)
        results.write_text("{}\n")
        mtime_ns, size = runner.results_state()
        assert size == 3
        assert mtime_ns == results.stat().st_mtime_ns

    def test_options_file(self, run_config):
        assert K6Runner(run_config).options_file().name == "BROWSER_SHOP_smoke_options.json"


class TestPrepareEnvironment:
    """Tests for prepare_environment."""

    def test_required_values(self, run_config):
        env = K6Runner(run_config).prepare_environment()
        assert env == {
            'ENVIRONMENT': 'staging',
            'SCENARIO_TYPE': 'smoke',
            'TEST_TYPE': 'BROWSER',
            'HEADLESS_BROWSER': 'false',
            'K6_BROWSER_HEADLESS': 'false',
            'TIME_UNIT': '1s',
            'SELECTION_MODE': 'sequential',
            'CAPTURE_MANTLE_METRICS': 'true',
            'AUT': 'SHOP',
        }

    def test_optional_values(self, run_config):
        run_config.headless = True
        run_config.base_url = "https://qa.example.com"
        run_config.scenario = "custom-tps"
        run_config.ramping_stages = "10s:1,2m:35"
        run_config.csv_filename = "users.csv"
        run_config.capture_mantle_metrics = False

        env = K6Runner(run_config).prepare_environment()
        assert env['HEADLESS_BROWSER'] == 'true'
        assert env['K6_BROWSER_HEADLESS'] == 'true'
        assert env['BASE_URL'] == "https://qa.example.com"
        assert env['RAMPING_STAGES'] == "10s:1,2m:35"
        assert env['CSV_FILENAME'] == "users.csv"
        assert env['CAPTURE_MANTLE_METRICS'] == 'false'


class TestCommand:
    """Tests for options and command generation."""

    def test_write_options(self, run_config):
        path = K6Runner(run_config).write_options()
        assert path.exists()
        with open(path) as f:
            options = json.load(f)
        scenario = options["scenarios"]["custom_scenario"]
        assert scenario["executor"] == "constant-vus"
        assert scenario["options"]["browser"]["type"] == "chromium"
        assert options["thresholds"]["http_req_duration"][0]["threshold"] == "p(95) < 2000"

    def test_get_k6_command(self, run_config, tmp_path):
        runner = K6Runner(run_config)
        cmd = runner.get_k6_command(tmp_path / "opts.json")
        assert cmd == [
            "k6", "run",
            "--insecure-skip-tls-verify",
            "--config", str(tmp_path / "opts.json"),
            "--out", f"json={tmp_path / 'results' / 'BROWSER_SHOP_smoke.json'}",
            str(tmp_path / "scripts" / "browser" / "homepage.js"),
        ]

    def test_default_options_path(self, run_config):
        runner = K6Runner(run_config)
        cmd = runner.get_k6_command()
        assert cmd[cmd.index("--config") + 1] == str(runner.options_file())


class TestExecute:
    """Tests for execute."""

    def test_execute(self, run_config, script, monkeypatch):
        monkeypatch.setenv("K6_PERF_EXTRA", "kept")
        completed = subprocess.CompletedProcess(args=[], returncode=0, stdout="done\n", stderr="")

        with patch("k6_perf_report.core.load.k6_runner.shutil.which", return_value="/usr/bin/k6"), \
                patch("k6_perf_report.core.load.k6_runner.subprocess.run", return_value=completed) as mock_run:
            runner = K6Runner(run_config)
            assert runner.execute() == 0

        cmd = mock_run.call_args[0][0]
        env = mock_run.call_args[1]["env"]
        assert cmd[-1] == str(script)
        assert env["TEST_TYPE"] == "BROWSER"
        assert env["K6_PERF_EXTRA"] == "kept"
        assert runner.options_file().exists()

    def test_execute_returns_k6_exit_code(self, run_config, script, capsys):
        completed = subprocess.CompletedProcess(args=[], returncode=99, stdout="", stderr="thresholds crossed")

        with patch("k6_perf_report.core.load.k6_runner.shutil.which", return_value="/usr/bin/k6"), \
                patch("k6_perf_report.core.load.k6_runner.subprocess.run", return_value=completed):
            assert K6Runner(run_config).execute() == 99

        assert "thresholds crossed" in capsys.readouterr().err

    def test_missing_k6_binary(self, run_config, script):
        with patch("k6_perf_report.core.load.k6_runner.shutil.which", return_value=None):
            with pytest.raises(FileNotFoundError, match="k6 not found in PATH"):
                K6Runner(run_config).execute()

    def test_missing_script(self, run_config):
        with patch("k6_perf_report.core.load.k6_runner.shutil.which", return_value="/usr/bin/k6"):
            with pytest.raises(FileNotFoundError, match="Test script not found"):
                K6Runner(run_config).execute()
