"""k6 run wrapper.

This module provides the K6Runner class which turns a RunConfig into a k6
invocation: the scenario options file, the environment the k6 scripts read
through ``__ENV`` and the ``k6 run`` command line writing JSON Lines results.
"""

import json
import os
import shutil
import subprocess
import sys
from pathlib import Path
from typing import Dict, List, Optional, Tuple

from ...config import RunConfig
from ...utils.logging import get_logger
from .scenarios import build_options

logger = get_logger(__name__)


class K6Runner:
    """Runs one k6 test script for a run configuration.

    This class handles:
    - Locating the script under ``<scripts_dir>/<test type>/``
    - Writing the k6 options (scenario, thresholds) to a JSON config file
    - Preparing environment variables for the k6 scripts
    - Executing k6 and returning its exit code
    """

    def __init__(self, run_config: RunConfig):
        """Initialize K6Runner.

        Args:
            run_config: Validated run configuration
        """
        self.config = run_config

    def script_path(self) -> Path:
        return Path(self.config.scripts_dir) / self.config.test_type.lower() / self.config.script

    def results_file(self) -> Path:
        """JSON Lines results path, named so the report can read its metadata back."""
        aut = self.config.aut or 'unknown'
        name = f"{self.config.test_type.upper()}_{aut}_{self.config.scenario}.json"
        return Path(self.config.output_dir) / name

    def results_state(self) -> Optional[Tuple[int, int]]:
        """``(mtime_ns, size)`` of the results file, or None when it does not exist."""
        results = self.results_file()
        if not results.exists():
            return None
        stat = results.stat()
        return stat.st_mtime_ns, stat.st_size

    def options_file(self) -> Path:
        results = self.results_file()
        return results.with_name(f"{results.stem}_options.json")

    def prepare_environment(self) -> Dict[str, str]:
        """Prepare environment variables for k6 execution.

        Returns:
            Dictionary of environment variables for k6
        """
        headless = 'true' if self.config.headless else 'false'
        env_vars = {
            'ENVIRONMENT': self.config.environment,
            'SCENARIO_TYPE': self.config.scenario,
            'TEST_TYPE': self.config.test_type.upper(),
            'HEADLESS_BROWSER': headless,
            'K6_BROWSER_HEADLESS': headless,
            'TIME_UNIT': self.config.time_unit,
            'SELECTION_MODE': self.config.selection_mode,
            'CAPTURE_MANTLE_METRICS': 'true' if self.config.capture_mantle_metrics else 'false',
        }

        # Optional values are only passed when set
        if self.config.base_url:
            env_vars['BASE_URL'] = self.config.base_url
        if self.config.aut:
            env_vars['AUT'] = self.config.aut
        if self.config.ramping_stages:
            env_vars['RAMPING_STAGES'] = self.config.ramping_stages
        if self.config.csv_filename:
            env_vars['CSV_FILENAME'] = self.config.csv_filename

        return env_vars

    def build_options(self) -> Dict:
        return build_options(
            self.config.test_type,
            self.config.scenario,
            self.config.ramping_stages,
            self.config.time_unit,
        )

    def write_options(self, path: Optional[Path] = None) -> Path:
        """Write the k6 options JSON passed with ``--config``.

        Raises:
            ValidationError: If the scenario cannot be built for the test type
        """
        path = Path(path) if path else self.options_file()
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, 'w', encoding='utf-8') as f:
            json.dump(self.build_options(), f, indent=2)
        return path

    def get_k6_command(self, options_path: Optional[Path] = None) -> List[str]:
        """Generate the k6 command line.

        Args:
            options_path: k6 options file (defaults to :meth:`options_file`)

        Returns:
            k6 command as an argument list
        """
        options_path = options_path or self.options_file()
        return [
            self.config.k6_binary, 'run',
            '--insecure-skip-tls-verify',
            '--config', str(options_path),
            '--out', f'json={self.results_file()}',
            str(self.script_path()),
        ]

    def execute(self) -> int:
        """Execute the k6 test.

        Returns:
            Exit code from k6 execution

        Raises:
            FileNotFoundError: If the k6 binary or the test script is missing
        """
        if not shutil.which(self.config.k6_binary):
            raise FileNotFoundError(
                f"{self.config.k6_binary} not found in PATH. "
                "See https://grafana.com/docs/k6/latest/set-up/install-k6/"
            )

        script = self.script_path()
        if not script.exists():
            raise FileNotFoundError(f"Test script not found: {script}")

        Path(self.config.output_dir).mkdir(parents=True, exist_ok=True)
        options_path = self.write_options()

        env = os.environ.copy()
        env.update(self.prepare_environment())

        cmd = self.get_k6_command(options_path)
        logger.info(f"Running: {' '.join(cmd)}")

        result = subprocess.run(cmd, env=env, capture_output=True, text=True, encoding='utf-8', errors='replace')

        # Print output for visibility
        print(result.stdout)
        if result.stderr:
            print(result.stderr, file=sys.stderr)

        logger.info(f"k6 exited with code {result.returncode}")
        return result.returncode
