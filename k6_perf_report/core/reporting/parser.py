"""k6 JSON Lines parsing and single-pass metric aggregation.

k6 ``--out json=<file>`` writes one JSON object per line. Only ``Point``
records are of interest::

    {"type": "Point", "metric": "browser_lcp",
     "data": {"time": "2024-05-01T10:00:00.123456789Z", "value": 812.4,
              "tags": {"transaction": "homeTemplate", "url": "https://..."}}}
"""

import json
import os
import re
from collections import defaultdict
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, Iterable, Iterator, List, Optional, Tuple, Union

from ...utils.logging import get_logger
from .models import RESOURCE_TYPES, CollectedMetrics, ResourceRecord, TestMeta
from .stats import classify_resource, get_transaction_name

logger = get_logger(__name__)

BROWSER_TREND_METRICS = [
    'browser_lcp',
    'browser_fcp',
    'browser_cls',
    'browser_ttfb',
    'browser_page_load_time',
    'browser_server_processing_time',
    'browser_network_time',
    'browser_dom_processing_time',
    'browser_resource_load_time',
    'browser_script_execution_time',
    'browser_script_parsing_time',
    'browser_critical_rendering_time',
    'browser_total_download_time',
    'browser_critical_path_time',
    'browser_parallel_download_efficiency',
    'browser_js_load_time',
    'browser_css_load_time',
    'browser_img_load_time',
    'browser_font_load_time',
    'browser_other_resource_load_time',
]

MANTLE_METRIC_KEYS = [
    'browser_mantle_first_ad_load',
    'browser_mantle_first_ad_render',
    'browser_mantle_first_ad_request',
    'browser_mantle_first_ad_response',
    'browser_mantle_gtm_loaded',
    'browser_mantle_gpt_loaded',
    'browser_mantle_scroll_depth',
    'browser_mantle_content_depth_px',
    'browser_mantle_third_party_fired',
    'browser_mantle_deferred_fired',
    'browser_mantle_video_player_loaded',
    'browser_mantle_ad_refresh_rate',
    'browser_mantle_ad_bidder_amount',
    'browser_mantle_first_scroll',
    'browser_mantle_adsrendered',
    'browser_mantle_adsviewable',
]

BROWSER_RESOURCE_METRICS = {
    'browser_resource_js': 'js',
    'browser_resource_css': 'css',
    'browser_resource_img': 'img',
    'browser_resource_font': 'font',
    'browser_resource_other': 'other',
}

PROTOCOL_REQUEST_METRICS = [
    'http_req_duration',
    'http_req_waiting',
    'nonhtml_ttlb',
    'nonhtml_ttfb',
    'nonhtml_resource_stats',
]

PROTOCOL_TEST_TYPES = ['PROTOCOL', 'API']

FILENAME_PATTERN = re.compile(r'([^_]+)_([^_]+)_([^._]+)')
_TIMESTAMP_PATTERN = re.compile(r'^(.*T\d{2}:\d{2}:\d{2})(?:\.(\d+))?(.*)$')


def iter_points(path: Union[str, Path]) -> Iterator[dict]:
    """Yield the ``Point`` records of a k6 JSON Lines file.

    Blank lines are ignored. Lines that are not valid JSON objects are skipped
    and reported once, as a count, at warning level.

    Raises:
        FileNotFoundError: If the file does not exist
    """
    path = Path(path)
    if not path.exists():
        raise FileNotFoundError(f"k6 results file not found: {path}")

    skipped = 0
    with open(path, 'r', encoding='utf-8', errors='replace') as f:
        for line in f:
            line = line.strip()
            if not line:
                continue
            try:
                record = json.loads(line)
            except json.JSONDecodeError:
                skipped += 1
                continue
            if not isinstance(record, dict):
                skipped += 1
                continue
            if record.get('type') == 'Point':
                yield record

    if skipped:
        logger.warning(f"Skipped {skipped} malformed line(s) in {path}")


def parse_timestamp(value) -> Optional[datetime]:
    """Parse a k6 timestamp (RFC 3339, nanosecond fractions allowed) into an aware datetime."""
    if not value or not isinstance(value, str):
        return None

    match = _TIMESTAMP_PATTERN.match(value.strip())
    if not match:
        return None

    base, fraction, zone = match.groups()
    text = base
    if fraction:
        # fromisoformat accepts at most microseconds
        text += '.' + fraction[:6].ljust(6, '0')
    if zone in ('Z', 'z'):
        zone = '+00:00'
    text += zone

    try:
        parsed = datetime.fromisoformat(text)
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def extract_run_window(points: Iterable[dict]) -> Tuple[datetime, datetime]:
    """Return the earliest and latest point timestamps.

    Defaults to now and now + 1 hour when no point carries a usable time.
    """
    earliest = None
    latest = None
    for point in points:
        timestamp = parse_timestamp((point.get('data') or {}).get('time'))
        if timestamp is None:
            continue
        if earliest is None or timestamp < earliest:
            earliest = timestamp
        if latest is None or timestamp > latest:
            latest = timestamp

    now = datetime.now(timezone.utc)
    return earliest or now, latest or (now + timedelta(hours=1))


def extract_test_meta(path: Union[str, Path], aut: Optional[str] = None,
                      base_url: Optional[str] = None) -> TestMeta:
    """Read ``<TEST_TYPE>_<AUT>_<SCENARIO>`` from the results file name.

    ``aut`` and ``base_url`` (or the ``AUT`` / ``BASE_URL`` environment
    variables) override what the file name says.
    """
    meta = TestMeta()
    match = FILENAME_PATTERN.search(Path(path).name)
    if match:
        meta.test_type = match.group(1).upper()
        meta.aut = match.group(2)
        meta.scenario = match.group(3)

    aut = aut or os.getenv('AUT')
    if aut:
        meta.aut = aut
    meta.base_url = base_url or os.getenv('BASE_URL') or ''
    return meta


def resolve_test_type(path: Union[str, Path], meta: TestMeta,
                      env_test_type: Optional[str] = None,
                      cli_test_type: Optional[str] = None) -> str:
    """Decide which report flavour to render for a results file."""
    name = Path(path).name.upper()
    if 'PROTOCOL' in name:
        test_type = 'PROTOCOL'
    elif 'API' in name:
        test_type = 'API'
    elif env_test_type:
        test_type = env_test_type.upper()
    elif meta.test_type:
        test_type = meta.test_type.upper()
    else:
        test_type = 'BROWSER'

    if cli_test_type:
        test_type = cli_test_type.upper()

    if meta.aut == 'BROWSER' and test_type != 'BROWSER':
        test_type = 'BROWSER'

    return test_type


def _as_number(value) -> Optional[float]:
    if isinstance(value, bool) or not isinstance(value, (int, float)):
        return None
    return value


def _parse_int(value, default: int = 0) -> int:
    if value is None or value == '':
        return default
    try:
        return int(float(value))
    except (TypeError, ValueError):
        return default


def _parse_status(value) -> int:
    # A status of 0 is a network failure, not a success
    return _parse_int(value, default=200)


def _resource_record(tags: dict, value: float, transaction: str, resource_type: str,
                     initiator_type: Optional[str] = None) -> ResourceRecord:
    return ResourceRecord(
        url=tags.get('url') or 'N/A',
        duration=value or 0,
        size=_parse_int(tags.get('size')),
        status=_parse_status(tags.get('status')),
        transaction=transaction,
        type=resource_type,
        initiator_type=initiator_type,
        content_type=tags.get('content_type') or '',
    )


def collect_metrics(points: Iterable[dict], test_type: str = 'BROWSER',
                    capture_mantle: bool = True) -> CollectedMetrics:
    """Aggregate k6 points into a :class:`CollectedMetrics` in a single pass.

    Args:
        points: ``Point`` records (see :func:`iter_points`)
        test_type: Effective report type (BROWSER, PROTOCOL or API)
        capture_mantle: Collect the ``browser_mantle_*`` metrics

    Returns:
        The aggregated metrics
    """
    metrics = CollectedMetrics(test_type=test_type, capture_mantle=capture_mantle)
    counts = defaultdict(int)
    is_protocol = test_type in PROTOCOL_TEST_TYPES
    request_points = []

    for point in points:
        data = point.get('data') or {}
        tags = data.get('tags')
        if not isinstance(tags, dict):
            continue

        metrics.point_count += 1
        transaction = get_transaction_name(tags)
        if transaction != 'unknown':
            counts[transaction] += 1

        name = point.get('metric') or ''
        value = _as_number(data.get('value'))
        if value is None:
            continue

        if is_protocol and name in PROTOCOL_REQUEST_METRICS:
            request_points.append((name, value, tags))

        if name in BROWSER_TREND_METRICS:
            metrics.browser[name][transaction].append(value)
        elif name == 'browser_page_load_success':
            metrics.page_load_success[transaction].record(value == 1)
        elif capture_mantle and name in MANTLE_METRIC_KEYS:
            metrics.mantle[name][transaction].append(value)
        elif is_protocol and name == 'http_req_waiting':
            metrics.protocol_ttfb[transaction].append(value)
        elif is_protocol and name == 'http_req_duration':
            metrics.protocol_ttlb[transaction].append(value)
        elif is_protocol and name == 'http_req_failed':
            metrics.protocol_success[transaction].record(value == 0)
        elif test_type == 'BROWSER' and name in BROWSER_RESOURCE_METRICS:
            metrics.add_resource(_resource_record(
                tags, value, transaction, BROWSER_RESOURCE_METRICS[name],
                initiator_type=tags.get('initiatorType') or 'unknown',
            ))
        elif name.startswith('protocol_resource_'):
            resource_type = re.match(r'[a-z]*', name[len('protocol_resource_'):]).group(0)
            if resource_type in RESOURCE_TYPES:
                metrics.add_resource(_resource_record(tags, value, transaction, resource_type))

    metrics.transaction_counts = dict(counts)

    if is_protocol:
        for record in merge_protocol_requests(request_points):
            metrics.add_resource(record)

    logger.debug(
        f"Collected {metrics.point_count} points across {len(counts)} transactions "
        f"({len(metrics.all_resources())} resource records)"
    )
    return metrics


def merge_protocol_requests(request_points: Iterable[Tuple[str, float, dict]]) -> List[ResourceRecord]:
    """Merge per-request protocol metrics into one record per request.

    k6 emits each of ``http_req_duration``, ``http_req_waiting`` (and the
    script's ``nonhtml_*`` trends) once per request, so the n-th value of each
    metric for a given URL and transaction belongs to the n-th request.
    """
    requests: Dict[Tuple[str, str], List[dict]] = defaultdict(list)
    seen: Dict[Tuple[str, str], Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    order: List[Tuple[str, str]] = []

    for name, value, tags in request_points:
        url = tags.get('url') or tags.get('resource_url')
        if not url:
            continue
        transaction = get_transaction_name(tags)
        if transaction == 'unknown':
            continue

        key = (url, transaction)
        if key not in requests:
            order.append(key)
        index = seen[key][name]
        seen[key][name] += 1
        while len(requests[key]) <= index:
            requests[key].append({'tags': tags, 'values': {}})
        requests[key][index]['values'][name] = value

    records = []
    for url, transaction in order:
        for request in requests[(url, transaction)]:
            tags = request['tags']
            values = request['values']
            content_type = tags.get('content_type') or ''
            size = values.get('nonhtml_resource_stats')
            records.append(ResourceRecord(
                url=url,
                duration=values.get('nonhtml_ttlb') or values.get('http_req_duration') or 0,
                ttfb=values.get('nonhtml_ttfb') or values.get('http_req_waiting') or 0,
                size=size if size is not None else 0,
                status=_parse_status(tags.get('status')),
                transaction=transaction,
                type=classify_resource(url, content_type),
                content_type=content_type,
            ))
    return records


def select_transactions(counts: Dict[str, int], min_points: int = 5) -> List[str]:
    """Transactions with at least ``min_points`` points, sorted by name."""
    return sorted(
        name for name, count in counts.items()
        if name != 'unknown' and count >= min_points
    )


def split_transactions(names: Iterable[str]) -> Tuple[List[str], List[str]]:
    """Split transaction names into HTML and ``_nonhtml`` (any case) lists."""
    html, non_html = [], []
    for name in names:
        if name.lower().endswith('_nonhtml'):
            non_html.append(name)
        else:
            html.append(name)
    return html, non_html
