"""Validation utilities for k6 Perf Report.

This module provides validation functions for:
- Runner flags (test type, scenario, selection mode, environment)
- k6 duration strings and ramping stages
- Base URLs and flag values
"""

import re
from typing import Dict, List, Optional, Union
from urllib.parse import urlparse


VALID_TEST_TYPES = ["BROWSER", "API", "PROTOCOL", "MULTI"]

VALID_SCENARIOS = [
    "smoke",
    "spiketest",
    "loadtest",
    "stresstest",
    "endurancetest",
    "custom-tps",
    "custom-vus",
]

CUSTOM_SCENARIOS = ["custom-tps", "custom-vus"]

VALID_SELECTION_MODES = ["sequential", "random", "global_sequential"]

_DURATION_PART = re.compile(r'(\d+(?:\.\d+)?)(ms|s|m|h|d)')


class ValidationError(Exception):
    """Raised when validation fails."""
    pass


def validate_test_type(test_type: str) -> str:
    """Validate a test type and return it upper-cased.

    Args:
        test_type: Test type (BROWSER, API, PROTOCOL or MULTI, any case).

    Returns:
        The upper-cased test type.

    Raises:
        ValidationError: If the test type is unknown.
    """
    if not test_type or not isinstance(test_type, str):
        raise ValidationError(
            f"Invalid test type: {test_type}. Valid options are: {','.join(VALID_TEST_TYPES)}"
        )

    normalized = test_type.strip().upper()
    if normalized not in VALID_TEST_TYPES:
        raise ValidationError(
            f"Invalid test type: {test_type}. Valid options are: {','.join(VALID_TEST_TYPES)}"
        )
    return normalized


def validate_scenario(scenario: str) -> str:
    """Validate a scenario type.

    Args:
        scenario: Scenario name (e.g. smoke, loadtest, custom-tps).

    Returns:
        The validated scenario name.

    Raises:
        ValidationError: If the scenario is unknown.
    """
    if not scenario or scenario.strip() not in VALID_SCENARIOS:
        raise ValidationError(
            f"Invalid scenario type: {scenario}. Valid options are: {','.join(VALID_SCENARIOS)}"
        )
    return scenario.strip()


def validate_environment(environment: str) -> str:
    """Validate the target environment name (any non-empty string)."""
    if not environment or not str(environment).strip():
        raise ValidationError(
            f"Invalid environment value: {environment}. Expected a non-empty string."
        )
    return str(environment).strip()


def validate_selection_mode(mode: str) -> str:
    """Validate a CSV row selection mode."""
    if mode not in VALID_SELECTION_MODES:
        raise ValidationError(
            f"Invalid selection mode: {mode}. Valid options are: {', '.join(VALID_SELECTION_MODES)}"
        )
    return mode


def parse_duration(duration: str) -> float:
    """Parse a k6 duration string to seconds.

    Supports single and compound k6 durations like: 500ms, 30s, 5m, 1h30m, 1d

    Args:
        duration: Duration string.

    Returns:
        Duration in seconds.

    Raises:
        ValidationError: If duration format is invalid.
    """
    if not isinstance(duration, str):
        raise ValidationError(f"Invalid duration format: {duration}")

    text = duration.strip().lower()
    parts = _DURATION_PART.findall(text)
    if not text or not parts or ''.join(v + u for v, u in parts) != text:
        raise ValidationError(
            f"Invalid duration format: {duration}. "
            "Expected format: <number><unit> where unit is ms/s/m/h/d (e.g., 5m, 30s, 1h30m)"
        )

    multipliers = {
        'ms': 0.001,
        's': 1,
        'm': 60,
        'h': 3600,
        'd': 86400,
    }

    return sum(float(value) * multipliers[unit] for value, unit in parts)


def parse_ramping_stages(stages: str) -> List[Dict[str, Union[str, int]]]:
    """Parse a ramping stage list such as ``10s:1,2m:35,10s:1``.

    Args:
        stages: Comma-separated ``<duration>:<target>`` pairs.

    Returns:
        List of k6 stage objects (``{"duration": ..., "target": ...}``).

    Raises:
        ValidationError: If any stage is malformed.
    """
    if not stages or not stages.strip():
        raise ValidationError("Ramping stages cannot be empty")

    result = []
    for raw_stage in stages.split(','):
        raw_stage = raw_stage.strip()
        if ':' not in raw_stage:
            raise ValidationError(
                f"Invalid ramping stage: {raw_stage}. Expected <duration>:<target> (e.g., 2m:35)"
            )
        duration, target = raw_stage.split(':', 1)
        duration = duration.strip()
        parse_duration(duration)
        try:
            target_value = int(target.strip())
        except ValueError:
            raise ValidationError(f"Invalid ramping stage target: {target}")
        if target_value < 0:
            raise ValidationError(f"Ramping stage target must be >= 0, got {target_value}")
        result.append({"duration": duration, "target": target_value})

    return result


def validate_url(url: str, name: str, schemes: Optional[List[str]] = None) -> str:
    """Validate a URL.

    Args:
        url: URL to validate.
        name: Name of the parameter (for error messages).
        schemes: Allowed URL schemes (default: ['http', 'https']).

    Returns:
        The validated URL.

    Raises:
        ValidationError: If URL is invalid.
    """
    if not url:
        raise ValidationError(f"{name} cannot be empty")

    if schemes is None:
        schemes = ['http', 'https']

    parsed = urlparse(url)

    if not parsed.scheme:
        raise ValidationError(f"{name} must include a scheme (e.g., http://): {url}")

    if parsed.scheme not in schemes:
        raise ValidationError(
            f"{name} scheme must be one of {schemes}, got {parsed.scheme}"
        )

    if not parsed.netloc:
        raise ValidationError(f"{name} must include a network location: {url}")

    return url


def parse_bool(value: Union[str, bool, None], default: bool = False) -> bool:
    """Interpret a flag value such as ``true``/``false``/``1``/``yes``."""
    if value is None:
        return default
    if isinstance(value, bool):
        return value
    return str(value).strip().lower() in ["true", "1", "yes"]
