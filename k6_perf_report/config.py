"""
Configuration management for k6 Perf Report.

This module provides the Config class for loading, validating, and managing
runner and report configuration from YAML/JSON files with environment
variable overrides.
"""

import json
import os
from dataclasses import dataclass, asdict
from pathlib import Path
from typing import Any, Dict, Optional, Union

import yaml

from .core.load.scenarios import build_scenario
from .utils.validation import (
    ValidationError,
    parse_bool,
    parse_duration,
    validate_environment,
    validate_scenario,
    validate_selection_mode,
    validate_test_type,
    validate_url,
)


@dataclass
class RunConfig:
    """k6 run configuration (mirrors the runner CLI flags)."""

    script: Optional[str] = None
    test_type: str = "BROWSER"
    scenario: str = "smoke"
    environment: str = "dev"
    headless: bool = False
    base_url: Optional[str] = None
    aut: Optional[str] = None
    time_unit: str = "1s"
    ramping_stages: Optional[str] = None
    selection_mode: str = "sequential"
    capture_mantle_metrics: bool = True
    csv_filename: Optional[str] = None
    scripts_dir: str = "scripts"
    output_dir: str = "results"
    k6_binary: str = "k6"

    def __post_init__(self):
        if self.test_type:
            self.test_type = self.test_type.upper()

    def validate(self) -> None:
        """Validate run configuration."""
        if not self.script:
            raise ValueError("Script is required")
        try:
            validate_environment(self.environment)
            validate_test_type(self.test_type)
            validate_scenario(self.scenario)
            validate_selection_mode(self.selection_mode)
            parse_duration(self.time_unit)
            # Scenario must exist for the test type profile; custom stages must parse
            build_scenario(self.test_type, self.scenario, self.ramping_stages, self.time_unit)
            if self.base_url:
                validate_url(self.base_url, "base_url")
        except ValidationError as e:
            raise ValueError(str(e)) from e
        if not self.output_dir:
            raise ValueError("output_dir is required")


@dataclass
class ReportConfig:
    """Report generation configuration."""

    test_type: Optional[str] = None
    min_points: int = 5
    write_debug_data: bool = True
    capture_mantle_metrics: Optional[bool] = None

    def validate(self) -> None:
        """Validate report configuration."""
        if self.min_points < 1:
            raise ValueError("min_points must be at least 1")
        if self.test_type:
            try:
                self.test_type = validate_test_type(self.test_type)
            except ValidationError as e:
                raise ValueError(str(e)) from e


class Config:
    """Main configuration class for k6 Perf Report."""

    def __init__(
        self,
        run: Optional[RunConfig] = None,
        report: Optional[ReportConfig] = None,
    ):
        """
        Initialize configuration.

        Args:
            run: k6 run configuration (optional)
            report: Report generation configuration (optional)
        """
        self.run = run or RunConfig()
        self.report = report or ReportConfig()

    def validate(self) -> None:
        """Validate all configuration sections."""
        self.run.validate()
        self.report.validate()

    def to_dict(self) -> Dict[str, Any]:
        """Convert configuration to dictionary."""
        return {
            "run": asdict(self.run),
            "report": asdict(self.report),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Config":
        """
        Create Config from dictionary.

        Args:
            data: Configuration dictionary with optional ``run`` and ``report`` sections

        Returns:
            Config instance

        Raises:
            ValueError: If a section contains unknown keys
        """
        try:
            run = RunConfig(**data.get("run", {}))
            report = ReportConfig(**data.get("report", {}))
        except TypeError as e:
            raise ValueError(f"Invalid configuration: {e}") from e

        return cls(run=run, report=report)

    @classmethod
    def from_yaml(cls, path: Union[str, Path]) -> "Config":
        """
        Load configuration from YAML file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If YAML is empty or invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            data = yaml.safe_load(f)

        if not data:
            raise ValueError(f"Empty configuration file: {path}")

        return cls.from_dict(data)

    @classmethod
    def from_json(cls, path: Union[str, Path]) -> "Config":
        """
        Load configuration from JSON file.

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If JSON is empty or invalid
        """
        path = Path(path)
        if not path.exists():
            raise FileNotFoundError(f"Configuration file not found: {path}")

        with open(path, 'r') as f:
            data = json.load(f)

        if not data:
            raise ValueError(f"Empty configuration file: {path}")

        return cls.from_dict(data)

    @classmethod
    def from_file(cls, path: Union[str, Path]) -> "Config":
        """
        Load configuration from file (auto-detect YAML/JSON).

        Raises:
            FileNotFoundError: If file doesn't exist
            ValueError: If file format is unsupported or invalid
        """
        path = Path(path)
        suffix = path.suffix.lower()

        if suffix in ['.yaml', '.yml']:
            return cls.from_yaml(path)
        elif suffix == '.json':
            return cls.from_json(path)
        else:
            raise ValueError(f"Unsupported configuration file format: {suffix}")

    def apply_env_overrides(self) -> None:
        """
        Apply environment variable overrides to configuration.

        Environment variables follow the pattern:
        K6PERF_<SECTION>_<KEY>=value

        Examples:
            K6PERF_RUN_TEST_TYPE=API
            K6PERF_RUN_BASE_URL=https://qa.example.com
            K6PERF_REPORT_MIN_POINTS=1
        """
        # Run overrides
        if script := os.getenv("K6PERF_RUN_SCRIPT"):
            self.run.script = script
        if test_type := os.getenv("K6PERF_RUN_TEST_TYPE"):
            self.run.test_type = test_type.upper()
        if scenario := os.getenv("K6PERF_RUN_SCENARIO"):
            self.run.scenario = scenario
        if environment := os.getenv("K6PERF_RUN_ENVIRONMENT"):
            self.run.environment = environment
        if headless := os.getenv("K6PERF_RUN_HEADLESS"):
            self.run.headless = parse_bool(headless)
        if base_url := os.getenv("K6PERF_RUN_BASE_URL"):
            self.run.base_url = base_url
        if aut := os.getenv("K6PERF_RUN_AUT"):
            self.run.aut = aut
        if time_unit := os.getenv("K6PERF_RUN_TIME_UNIT"):
            self.run.time_unit = time_unit
        if stages := os.getenv("K6PERF_RUN_RAMPING_STAGES"):
            self.run.ramping_stages = stages
        if selection_mode := os.getenv("K6PERF_RUN_SELECTION_MODE"):
            self.run.selection_mode = selection_mode
        if mantle := os.getenv("K6PERF_RUN_CAPTURE_MANTLE_METRICS"):
            self.run.capture_mantle_metrics = parse_bool(mantle)
        if csv_filename := os.getenv("K6PERF_RUN_CSV_FILENAME"):
            self.run.csv_filename = csv_filename
        if scripts_dir := os.getenv("K6PERF_RUN_SCRIPTS_DIR"):
            self.run.scripts_dir = scripts_dir
        if output_dir := os.getenv("K6PERF_RUN_OUTPUT_DIR"):
            self.run.output_dir = output_dir
        if k6_binary := os.getenv("K6PERF_RUN_K6_BINARY"):
            self.run.k6_binary = k6_binary

        # Report overrides
        if report_type := os.getenv("K6PERF_REPORT_TEST_TYPE"):
            self.report.test_type = report_type.upper()
        if min_points := os.getenv("K6PERF_REPORT_MIN_POINTS"):
            self.report.min_points = int(min_points)
        if debug := os.getenv("K6PERF_REPORT_WRITE_DEBUG_DATA"):
            self.report.write_debug_data = parse_bool(debug)
        if report_mantle := os.getenv("K6PERF_REPORT_CAPTURE_MANTLE_METRICS"):
            self.report.capture_mantle_metrics = parse_bool(report_mantle)

    def save_yaml(self, path: Union[str, Path]) -> None:
        """Save configuration to YAML file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            yaml.dump(self.to_dict(), f, default_flow_style=False, sort_keys=False)

    def save_json(self, path: Union[str, Path]) -> None:
        """Save configuration to JSON file."""
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)

        with open(path, 'w') as f:
            json.dump(self.to_dict(), f, indent=2)
