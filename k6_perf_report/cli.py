"""Command-line interface for k6-perf-report."""

import json
import sys
import traceback

import click

from . import __version__
from .config import Config
from .core.load.k6_runner import K6Runner
from .core.load.scenarios import build_options
from .core.reporting.processor import process_k6_output
from .utils.logging import setup_logging
from .utils.validation import (
    VALID_SCENARIOS,
    VALID_SELECTION_MODES,
    VALID_TEST_TYPES,
    ValidationError,
)


def _load_config(ctx) -> Config:
    """Config from ``--config`` (if given) with environment overrides applied."""
    path = ctx.obj.get("config")
    config = Config.from_file(path) if path else Config()
    config.apply_env_overrides()
    return config


def _fail(ctx, error: Exception) -> None:
    click.echo(f"Error: {error}", err=True)
    if ctx.obj.get("verbose"):
        traceback.print_exc()
    sys.exit(1)


@click.group()
@click.version_option(version=__version__)
@click.option("--config", type=click.Path(exists=True), help="Path to config file (YAML or JSON)")
@click.option("--verbose", is_flag=True, help="Enable verbose output")
@click.option("--log-file", type=click.Path(), help="Path to log file")
@click.pass_context
def cli(ctx, config, verbose, log_file):
    """k6 Perf Report - run k6 tests and turn their JSON output into HTML reports."""
    ctx.ensure_object(dict)
    ctx.obj["config"] = config
    ctx.obj["verbose"] = verbose
    ctx.obj["log_file"] = log_file
    setup_logging(level="WARNING", log_file=log_file, verbose=verbose)


@cli.command()
@click.option("--script", help="Test script file name under <scripts-dir>/<test type>/")
@click.option("--test-type", type=click.Choice(VALID_TEST_TYPES, case_sensitive=False), help="Test type")
@click.option("--scenario", type=click.Choice(VALID_SCENARIOS), help="Scenario (default: smoke)")
@click.option("--environment", help="Target environment (default: dev)")
@click.option("--headless/--no-headless", default=None, help="Run the browser headless")
@click.option("--base-url", help="Base URL of the application under test")
@click.option("--aut", help="Application under test")
@click.option("--time-unit", help="Arrival rate time unit for custom-tps (e.g. 1s, 1m)")
@click.option("--ramping-stages", help="Custom stages, e.g. 10s:1,2m:35")
@click.option("--selection-mode", type=click.Choice(VALID_SELECTION_MODES), help="CSV row selection mode")
@click.option("--capture-mantle-metrics/--no-capture-mantle-metrics", default=None,
              help="Capture Mantle custom metrics")
@click.option("--csv-filename", help="Test data CSV file read by the script")
@click.option("--scripts-dir", type=click.Path(), help="Directory holding the k6 scripts (default: scripts)")
@click.option("--output-dir", type=click.Path(), help="Results output directory (default: results)")
@click.option("--k6-binary", help="k6 executable (default: k6)")
@click.option("--report/--no-report", "generate_report", default=True,
              help="Generate the HTML report after the run")
@click.pass_context
def run(ctx, script, test_type, scenario, environment, headless, base_url, aut, time_unit, ramping_stages,
        selection_mode, capture_mantle_metrics, csv_filename, scripts_dir, output_dir, k6_binary,
        generate_report):
    """Run a k6 test script and generate its report."""
    try:
        config = _load_config(ctx)
        run_config = config.run

        # CLI flags override file and environment values
        overrides = {
            "script": script,
            "test_type": test_type.upper() if test_type else None,
            "scenario": scenario,
            "environment": environment,
            "headless": headless,
            "base_url": base_url,
            "aut": aut,
            "time_unit": time_unit,
            "ramping_stages": ramping_stages,
            "selection_mode": selection_mode,
            "capture_mantle_metrics": capture_mantle_metrics,
            "csv_filename": csv_filename,
            "scripts_dir": scripts_dir,
            "output_dir": output_dir,
            "k6_binary": k6_binary,
        }
        for key, value in overrides.items():
            if value is not None:
                setattr(run_config, key, value)

        run_config.validate()
        runner = K6Runner(run_config)

        click.echo("Test Configuration:")
        click.echo(f"  Script:       {runner.script_path()}")
        click.echo(f"  Test Type:    {run_config.test_type}")
        click.echo(f"  Scenario:     {run_config.scenario}")
        click.echo(f"  Environment:  {run_config.environment}")
        if run_config.base_url:
            click.echo(f"  Base URL:     {run_config.base_url}")
        if run_config.aut:
            click.echo(f"  AUT:          {run_config.aut}")
        if run_config.ramping_stages:
            click.echo(f"  Stages:       {run_config.ramping_stages}")
        click.echo(f"  Results:      {runner.results_file()}")
        click.echo()

        click.echo("Starting k6 test...")
        click.echo("=" * 60)
        previous_results = runner.results_state()
        exit_code = runner.execute()
        click.echo("=" * 60)

        if exit_code != 0:
            click.echo(f"\n✗ k6 exited with code: {exit_code}", err=True)

        # Thresholds failing still leave a results file worth reporting on;
        # a file k6 did not rewrite belongs to an earlier run
        results = runner.results_file()
        current_results = runner.results_state()
        if generate_report and current_results is not None and current_results == previous_results:
            click.echo(f"✗ k6 wrote no new results, skipping report for stale {results}", err=True)
        elif generate_report and current_results is not None:
            result = process_k6_output(
                results,
                test_type=config.report.test_type or run_config.test_type,
                aut=run_config.aut,
                base_url=run_config.base_url,
                capture_mantle=run_config.capture_mantle_metrics,
                min_points=config.report.min_points,
                write_debug=config.report.write_debug_data,
            )
            click.echo(f"✓ HTML report generated: {result.report_path}")

        if exit_code != 0:
            sys.exit(exit_code)
        click.echo("\n✓ Test completed successfully!")

    except (ValueError, ValidationError, FileNotFoundError, OSError) as e:
        _fail(ctx, e)


@cli.command()
@click.argument("input_file", type=click.Path())
@click.option("--test-type", type=click.Choice(VALID_TEST_TYPES, case_sensitive=False),
              help="Report type (default: detected from the file name)")
@click.option("--aut", help="Application under test shown in the report header")
@click.option("--base-url", help="Base URL shown in the report header")
@click.option("--capture-mantle-metrics/--no-capture-mantle-metrics", default=None,
              help="Include Mantle custom metrics")
@click.option("--min-points", type=int, help="Minimum points for a transaction to be reported")
@click.option("--no-debug", is_flag=True, help="Do not write the debug data JSON")
@click.pass_context
def report(ctx, input_file, test_type, aut, base_url, capture_mantle_metrics, min_points, no_debug):
    """Generate an HTML report from a k6 JSON results file."""
    try:
        config = _load_config(ctx)
        report_config = config.report
        if test_type:
            report_config.test_type = test_type.upper()
        if min_points is not None:
            report_config.min_points = min_points
        if no_debug:
            report_config.write_debug_data = False
        if capture_mantle_metrics is not None:
            report_config.capture_mantle_metrics = capture_mantle_metrics
        report_config.validate()

        result = process_k6_output(
            input_file,
            test_type=report_config.test_type,
            aut=aut,
            base_url=base_url,
            capture_mantle=report_config.capture_mantle_metrics,
            min_points=report_config.min_points,
            write_debug=report_config.write_debug_data,
        )

        click.echo(f"✓ HTML report generated: {result.report_path}")
        click.echo(f"  Test Type:     {result.test_type}")
        click.echo(f"  Points:        {result.point_count}")
        click.echo(f"  Transactions:  {', '.join(result.transactions) or 'none'}")
        if result.debug_path:
            click.echo(f"  Debug Data:    {result.debug_path}")

    except (ValueError, ValidationError, FileNotFoundError, OSError) as e:
        _fail(ctx, e)


@cli.command()
@click.option("--test-type", type=click.Choice(VALID_TEST_TYPES, case_sensitive=False), default="BROWSER",
              help="Test type")
@click.option("--scenario", type=click.Choice(VALID_SCENARIOS), default="smoke", help="Scenario")
@click.option("--ramping-stages", help="Custom stages, e.g. 10s:1,2m:35")
@click.option("--time-unit", default="1s", help="Arrival rate time unit for custom-tps")
@click.pass_context
def scenarios(ctx, test_type, scenario, ramping_stages, time_unit):
    """Print the k6 options (scenario and thresholds) for a test type."""
    try:
        options = build_options(test_type, scenario, ramping_stages, time_unit)
        click.echo(json.dumps(options, indent=2))
    except ValidationError as e:
        _fail(ctx, e)


if __name__ == "__main__":
    cli()
