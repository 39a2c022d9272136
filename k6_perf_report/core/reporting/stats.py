"""Statistics and formatting helpers shared by the report builders."""

import math
from typing import Dict, Iterable, List, Mapping, Optional
from urllib.parse import urlparse

IMAGE_EXTENSIONS = ['jpg', 'jpeg', 'png', 'gif', 'svg', 'webp', 'ico']
SCRIPT_EXTENSIONS = ['js', 'jsx', 'mjs']
STYLE_EXTENSIONS = ['css']
FONT_EXTENSIONS = ['woff', 'woff2', 'ttf', 'otf', 'eot']

EMPTY_STATS = {
    'min': 0,
    'max': 0,
    'avg': 0,
    'median': 0,
    'p90': 0,
    'p95': 0,
    'p99': 0,
    'count': 0,
}


def _percentile(sorted_values: List[float], percentile: float, lower: bool) -> float:
    count = len(sorted_values)
    if lower:
        index = int((count - 1) * percentile)
    else:
        index = int(percentile * count)
    if index >= count:
        index = count - 1
    return sorted_values[index]


def calculate_stats(values: Optional[Iterable[float]], lower: bool = False) -> Dict[str, float]:
    """Calculate min/max/avg/median/p90/p95/p99/count for a list of values.

    Args:
        values: Raw metric values (any order). ``None`` or empty yields all zeros.
        lower: Use lower-rank percentiles (index ``floor((n - 1) * p)``), as the
            protocol and API tables do. The default ranks at ``floor(p * n)``
            and averages the two middle values for the median of an even count.

    Returns:
        Dictionary of statistics.
    """
    sorted_values = sorted(values or [])
    count = len(sorted_values)
    if count == 0:
        return dict(EMPTY_STATS)

    if lower:
        median = sorted_values[(count - 1) // 2]
    elif count % 2 == 1:
        median = sorted_values[count // 2]
    else:
        median = (sorted_values[count // 2 - 1] + sorted_values[count // 2]) / 2

    return {
        'min': sorted_values[0],
        'max': sorted_values[-1],
        'avg': sum(sorted_values) / count,
        'median': median,
        'p90': _percentile(sorted_values, 0.90, lower),
        'p95': _percentile(sorted_values, 0.95, lower),
        'p99': _percentile(sorted_values, 0.99, lower),
        'count': count,
    }


def calculate_aggregate_stats(metric_by_transaction: Optional[Mapping[str, List[float]]],
                              lower: bool = False) -> Dict[str, float]:
    """Statistics over the values of every transaction combined."""
    all_values = []
    for values in (metric_by_transaction or {}).values():
        if isinstance(values, list):
            all_values.extend(values)
    return calculate_stats(all_values, lower=lower)


def get_transaction_name(tags: Optional[Mapping]) -> str:
    """Return the ``transaction`` tag, looking inside nested ``tags`` when present."""
    if not tags:
        return 'unknown'
    tag_obj = tags.get('tags') if isinstance(tags.get('tags'), Mapping) else tags
    transaction = tag_obj.get('transaction')
    if transaction:
        return str(transaction)
    return 'unknown'


def to_fixed(value, digits: int = 2) -> str:
    """Format a number with fixed decimals; ``None``/NaN/garbage formats as zero."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        number = 0.0
    if math.isnan(number):
        number = 0.0
    return f"{number:.{digits}f}"


def _truncate(name: str) -> str:
    if len(name) > 15:
        return name[:12] + '...'
    return name


def short_url(url: Optional[str]) -> str:
    """Compact display name for a resource URL (file name, parent dir for short names)."""
    if not url or url == 'N/A':
        return 'N/A'

    parsed = urlparse(url)
    if not (parsed.scheme and parsed.netloc):
        parts = url.split('/')
        return _truncate(parts[-1] or url)

    path_parts = parsed.path.split('/')
    filename = path_parts[-1]
    if not filename:
        return parsed.hostname or parsed.netloc

    if len(filename) < 8 and len(path_parts) > 1:
        parent_dir = path_parts[-2]
        if parent_dir:
            filename = f"{parent_dir}/{filename}"

    return _truncate(filename)


def shorten_url(url: Optional[str], max_length: int = 40) -> str:
    """Keep the host and the tail of the path within ``max_length`` characters."""
    if not url:
        return 'unknown'
    if len(url) <= max_length:
        return url

    parsed = urlparse(url)
    domain = parsed.hostname
    if not (parsed.scheme and domain):
        return url[:max_length - 3] + '...'

    if len(domain) > max_length - 5:
        return domain[:max_length - 5] + '...'

    # 5 covers '://' and '...'
    max_path_length = max_length - len(domain) - 5
    if max_path_length <= 3:
        return domain + '...'

    path = parsed.path
    if len(path) > max_path_length:
        path = '...' + path[len(path) - max_path_length:]
    return domain + path


def classify_resource(url: Optional[str] = '', content_type: Optional[str] = '') -> str:
    """Classify a resource as img, js, css, font or other."""
    path = urlparse(url or '').path
    last_segment = path.rsplit('/', 1)[-1]
    ext = last_segment.rsplit('.', 1)[-1].lower() if '.' in last_segment else ''
    content_type = (content_type or '').lower()

    if ext in IMAGE_EXTENSIONS or 'image/' in content_type:
        return 'img'
    if ext in SCRIPT_EXTENSIONS or 'javascript' in content_type:
        return 'js'
    if ext in STYLE_EXTENSIONS or 'css' in content_type:
        return 'css'
    if ext in FONT_EXTENSIONS or 'font' in content_type:
        return 'font'
    return 'other'


def success_rate(records) -> float:
    """Percentage of records with a 2xx/3xx status; 100 for no records."""
    records = list(records)
    if not records:
        return 100.0
    successes = sum(1 for record in records if 200 <= record.status < 400)
    return successes / len(records) * 100


def time_color(ms: float) -> str:
    if ms > 1000:
        return 'red'
    if ms > 500:
        return 'orange'
    return 'green'
