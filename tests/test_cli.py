"""Tests for the command-line interface."""

import json
from pathlib import Path
from unittest.mock import patch

import pytest
import yaml
from click.testing import CliRunner

from k6_perf_report import __version__
from k6_perf_report.cli import cli

pytestmark = pytest.mark.usefixtures("restore_root_logger")


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("AUT", "BASE_URL", "K6_REPORT_TEST_TYPE", "CAPTURE_MANTLE_METRICS",
                 "K6PERF_RUN_SCRIPT", "K6PERF_RUN_TEST_TYPE", "K6PERF_REPORT_MIN_POINTS"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def runner():
    return CliRunner()


class TestCli:
    """Tests for the command group."""

    def test_version(self, runner):
        result = runner.invoke(cli, ["--version"])
        assert result.exit_code == 0
        assert __version__ in result.output

    def test_help_lists_commands(self, runner):
        result = runner.invoke(cli, ["--help"])
        assert result.exit_code == 0
        for command in ("run", "report", "scenarios"):
            assert command in result.output


class TestReportCommand:
    """Tests for the report command."""

    def test_report(self, runner, write_results, browser_points):
        path = write_results(browser_points)
        result = runner.invoke(cli, ["report", str(path)])

        assert result.exit_code == 0, result.output
        assert "✓ HTML report generated:" in result.output
        assert "Test Type:     BROWSER" in result.output
        assert "Transactions:  home" in result.output
        assert "Debug Data:" in result.output
        assert (path.parent / "BROWSER_SHOP_smoke_report.html").exists()

    def test_report_options(self, runner, write_results, browser_points):
        path = write_results(browser_points, "results.json")
        result = runner.invoke(cli, [
            "report", str(path), "--test-type", "protocol", "--min-points", "1", "--no-debug",
        ])

        assert result.exit_code == 0, result.output
        assert "Test Type:     PROTOCOL" in result.output
        assert "Debug Data:" not in result.output
        assert not (path.parent / "results_debug_data.json").exists()

    def test_report_config_file(self, runner, write_results, browser_points, tmp_path):
        path = write_results(browser_points)
        config_file = tmp_path / "k6-perf.yaml"
        config_file.write_text(yaml.dump({"report": {"min_points": 1}}))

        result = runner.invoke(cli, ["--config", str(config_file), "report", str(path)])
        assert result.exit_code == 0, result.output
        assert "Transactions:  article, home" in result.output

    def test_missing_input(self, runner, tmp_path):
        result = runner.invoke(cli, ["report", str(tmp_path / "missing.json")])
        assert result.exit_code == 1
        assert "Error:" in result.output

    def test_invalid_min_points(self, runner, write_results, browser_points):
        path = write_results(browser_points)
        result = runner.invoke(cli, ["report", str(path), "--min-points", "0"])
        assert result.exit_code == 1
        assert "min_points must be at least 1" in result.output


class TestScenariosCommand:
    """Tests for the scenarios command."""

    def test_default(self, runner):
        result = runner.invoke(cli, ["scenarios"])
        assert result.exit_code == 0
        options = json.loads(result.output)
        assert options["scenarios"]["custom_scenario"]["executor"] == "constant-vus"

    def test_custom(self, runner):
        result = runner.invoke(cli, [
            "scenarios", "--test-type", "api", "--scenario", "custom-tps",
            "--ramping-stages", "10s:1,2m:35", "--time-unit", "1m",
        ])
        assert result.exit_code == 0
        scenario = json.loads(result.output)["scenarios"]["custom_scenario"]
        assert scenario["timeUnit"] == "1m"
        assert scenario["stages"][1] == {"duration": "2m", "target": 35}

    def test_invalid_combination(self, runner):
        result = runner.invoke(cli, ["scenarios", "--test-type", "BROWSER", "--scenario", "spiketest"])
        assert result.exit_code == 1
        assert "is not defined for BROWSER tests" in result.output


class TestRunCommand:
    """Tests for the run command."""

    def test_run_success(self, runner, tmp_path):
        output_dir = tmp_path / "results"
        with patch("k6_perf_report.cli.K6Runner.execute", return_value=0) as mock_execute:
            result = runner.invoke(cli, [
                "run", "--script", "homepage.js", "--aut", "SHOP", "--output-dir", str(output_dir),
            ])

        assert result.exit_code == 0, result.output
        mock_execute.assert_called_once()
        assert "Test Type:    BROWSER" in result.output
        assert "Starting k6 test..." in result.output
        assert "✓ Test completed successfully!" in result.output
        # No results file, so no report
        assert "HTML report generated" not in result.output

    def test_run_generates_report(self, runner, tmp_path, browser_points):
        output_dir = tmp_path / "results"
        results = output_dir / "BROWSER_SHOP_smoke.json"

        def write_results():
            output_dir.mkdir(parents=True, exist_ok=True)
            lines = [json.dumps(record) for record in browser_points]
            results.write_text("\n".join(lines) + "\n", encoding="utf-8")
            return 0

        with patch("k6_perf_report.cli.K6Runner.execute", side_effect=write_results):
            result = runner.invoke(cli, [
                "run", "--script", "homepage.js", "--aut", "SHOP", "--output-dir", str(output_dir),
            ])

        assert result.exit_code == 0, result.output
        assert "✓ HTML report generated:" in result.output
        assert Path(output_dir / "BROWSER_SHOP_smoke_report.html").exists()

    def test_run_skips_report_for_stale_results(self, runner, tmp_path, browser_points):
        output_dir = tmp_path / "results"
        output_dir.mkdir()
        lines = [json.dumps(record) for record in browser_points]
        (output_dir / "BROWSER_SHOP_smoke.json").write_text("\n".join(lines) + "\n", encoding="utf-8")

        with patch("k6_perf_report.cli.K6Runner.execute", return_value=107):
            result = runner.invoke(cli, [
                "run", "--script", "homepage.js", "--aut", "SHOP", "--output-dir", str(output_dir),
            ])

        assert result.exit_code == 107
        assert "k6 wrote no new results" in result.output
        assert "HTML report generated" not in result.output
        assert not (output_dir / "BROWSER_SHOP_smoke_report.html").exists()

    def test_run_propagates_exit_code(self, runner, tmp_path):
        with patch("k6_perf_report.cli.K6Runner.execute", return_value=99):
            result = runner.invoke(cli, [
                "run", "--script", "homepage.js", "--output-dir", str(tmp_path / "results"),
            ])

        assert result.exit_code == 99
        assert "k6 exited with code: 99" in result.output
        assert "Test completed successfully" not in result.output

    def test_run_requires_script(self, runner):
        with patch("k6_perf_report.cli.K6Runner.execute") as mock_execute:
            result = runner.invoke(cli, ["run"])

        assert result.exit_code == 1
        assert "Error: Script is required" in result.output
        mock_execute.assert_not_called()

    def test_run_custom_scenario_requires_stages(self, runner):
        result = runner.invoke(cli, ["run", "--script", "a.js", "--scenario", "custom-vus"])
        assert result.exit_code == 1
        assert "Ramping stages are required" in result.output

    def test_run_rejects_scenario_for_test_type(self, runner):
        with patch("k6_perf_report.cli.K6Runner.execute") as mock_execute:
            result = runner.invoke(cli, ["run", "--script", "a.js", "--test-type", "BROWSER",
                                         "--scenario", "spiketest"])

        assert result.exit_code == 1
        assert "is not defined for BROWSER tests" in result.output
        mock_execute.assert_not_called()

    def test_missing_k6_binary(self, runner, tmp_path):
        with patch("k6_perf_report.core.load.k6_runner.shutil.which", return_value=None):
            result = runner.invoke(cli, [
                "run", "--script", "homepage.js", "--output-dir", str(tmp_path / "results"),
            ])

        assert result.exit_code == 1
        assert "not found in PATH" in result.output
