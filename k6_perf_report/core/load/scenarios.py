"""k6 scenario and threshold catalogue.

Builds the k6 options object (``scenarios``, ``thresholds``,
``summaryTrendStats``) for a test type and scenario name. The runner writes it
to a JSON file and hands it to ``k6 run --config``.
"""

import copy
from typing import Any, Dict, List, Optional

from ...utils.validation import (
    CUSTOM_SCENARIOS,
    ValidationError,
    parse_duration,
    parse_ramping_stages,
    validate_scenario,
    validate_test_type,
)

SCENARIO_NAME = 'custom_scenario'

SUMMARY_TREND_STATS = ['avg', 'min', 'med', 'max', 'p(50)', 'p(90)', 'p(95)', 'p(99)']

BROWSER_LAUNCH_ARGS = [
    '--disable-dev-shm-usage',
    '--no-sandbox',
    '--disable-setuid-sandbox',
    '--disable-cache',
    '--disk-cache-size=0',
    '--disable-gpu',
    '--disable-web-security',
    '--allow-running-insecure-content',
]

# Test types that share a scenario/threshold profile
PROFILE_BY_TEST_TYPE = {
    'API': 'API',
    'PROTOCOL': 'API',
    'BROWSER': 'BROWSER',
    'MULTI': 'BROWSER',
}


def _arrival_rate(stages, max_vus):
    return {
        'executor': 'ramping-arrival-rate',
        'stages': [{'duration': duration, 'target': target} for duration, target in stages],
        'preAllocatedVUs': 1,
        'maxVUs': max_vus,
    }


def _constant_vus(vus, duration):
    return {
        'executor': 'constant-vus',
        'vus': vus,
        'duration': duration,
        'options': {'browser': {'type': 'chromium'}},
    }


SCENARIOS = {
    'API': {
        'smoke': _arrival_rate([('1m', 1), ('1m', 1), ('30s', 0)], max_vus=10),
        'spiketest': _arrival_rate([('1m', 10), ('30s', 100), ('2m', 100), ('30s', 0)], max_vus=1000),
        'loadtest': _arrival_rate([('1m', 5), ('5m', 5), ('30s', 0)], max_vus=100),
        'stresstest': _arrival_rate([('2m', 2)] * 10, max_vus=100),
        'endurancetest': _arrival_rate([('1m', 2), ('1h', 2), ('30s', 0)], max_vus=100),
    },
    'BROWSER': {
        'smoke': _constant_vus(1, '1m'),
        'loadtest': _constant_vus(5, '2m'),
    },
}


def _duration_thresholds(p95_ms: int, p90_ms: int) -> Dict[str, List[Any]]:
    return {
        'checks': ['rate == 1.00'],
        'http_req_failed': [{'threshold': 'rate <= 0.02', 'abortOnFail': False}],
        'http_req_duration': [
            {'threshold': f'p(95) < {p95_ms}', 'abortOnFail': False},
            {'threshold': f'p(90) < {p90_ms}', 'abortOnFail': False},
        ],
    }


THRESHOLDS = {
    'API': _duration_thresholds(1000, 500),
    'BROWSER': _duration_thresholds(2000, 1000),
}


def scenario_profile(test_type: str) -> str:
    """Return the scenario profile (API or BROWSER) used by a test type."""
    return PROFILE_BY_TEST_TYPE[validate_test_type(test_type)]


def available_scenarios(test_type: str) -> List[str]:
    """Predefined scenario names for a test type, followed by the custom ones."""
    return list(SCENARIOS[scenario_profile(test_type)]) + list(CUSTOM_SCENARIOS)


def get_thresholds(test_type: str) -> Dict[str, List[Any]]:
    return copy.deepcopy(THRESHOLDS[scenario_profile(test_type)])


def build_custom_scenario(kind: str, stages: str, time_unit: str = '1s') -> Dict[str, Any]:
    """Build a ramping scenario from a ``10s:1,2m:35`` stage list.

    Args:
        kind: ``custom-tps`` (arrival rate, targets are iterations per time unit)
            or ``custom-vus`` (targets are virtual users)
        stages: Ramping stage list
        time_unit: Arrival rate time unit (custom-tps only)

    Raises:
        ValidationError: If the kind, stages or time unit are invalid
    """
    parsed_stages = parse_ramping_stages(stages)

    if kind == 'custom-tps':
        parse_duration(time_unit)
        return {
            'executor': 'ramping-arrival-rate',
            'stages': parsed_stages,
            'timeUnit': time_unit,
            'preAllocatedVUs': 1,
            'maxVUs': 100,
        }
    if kind == 'custom-vus':
        return {
            'executor': 'ramping-vus',
            'stages': parsed_stages,
        }
    raise ValidationError(f"Unknown custom scenario type: {kind}. Valid options are: {', '.join(CUSTOM_SCENARIOS)}")


def apply_browser_options(scenario: Dict[str, Any]) -> Dict[str, Any]:
    """Ensure a browser scenario launches chromium (with stability flags when unset)."""
    scenario = dict(scenario)
    if 'options' not in scenario:
        scenario['options'] = {'browser': {'type': 'chromium', 'args': list(BROWSER_LAUNCH_ARGS)}}
    return scenario


def build_scenario(test_type: str, scenario: str, ramping_stages: Optional[str] = None,
                   time_unit: str = '1s') -> Dict[str, Any]:
    """Resolve one k6 scenario definition.

    Raises:
        ValidationError: If the scenario is unknown for the test type or
            custom stages are missing
    """
    profile = scenario_profile(test_type)
    scenario = validate_scenario(scenario)

    if scenario in CUSTOM_SCENARIOS:
        if not ramping_stages:
            raise ValidationError(f"Ramping stages are required for scenario '{scenario}'")
        definition = build_custom_scenario(scenario, ramping_stages, time_unit)
    else:
        if scenario not in SCENARIOS[profile]:
            raise ValidationError(
                f"Scenario '{scenario}' is not defined for {test_type.upper()} tests. "
                f"Valid options are: {', '.join(available_scenarios(test_type))}"
            )
        definition = copy.deepcopy(SCENARIOS[profile][scenario])

    if profile == 'BROWSER':
        definition = apply_browser_options(definition)
    return definition


def build_options(test_type: str, scenario: str, ramping_stages: Optional[str] = None,
                  time_unit: str = '1s') -> Dict[str, Any]:
    """Build the k6 options object for a run."""
    return {
        'scenarios': {SCENARIO_NAME: build_scenario(test_type, scenario, ramping_stages, time_unit)},
        'thresholds': get_thresholds(test_type),
        'summaryTrendStats': list(SUMMARY_TREND_STATS),
    }
