"""HTML table builders shared by the browser and protocol reports."""

from collections import defaultdict
from datetime import datetime, timezone
from typing import Dict, List, Mapping, Optional, Sequence

from .models import RESOURCE_TYPES, CollectedMetrics, PassFailCounter, TestMeta
from .stats import calculate_stats, success_rate
from .templates import BREAKDOWN_COLUMNS, render

RESOURCE_TYPE_LABELS = {
    'js': 'JavaScript',
    'css': 'CSS',
    'img': 'Images',
    'font': 'Fonts',
    'other': 'Other',
    'html': 'HTML',
}

LEGEND_RESOURCE_TYPES = [
    ('js', 'J', 'JS'),
    ('css', 'C', 'CSS'),
    ('image', 'I', 'Image'),
    ('font', 'F', 'Font'),
    ('other', 'O', 'Other'),
]

LEGEND_EXPLANATIONS = [
    ('TTFB (Time To First Byte)',
     'The time from the start of the request until the first byte of the response is received.'),
    ('TTLB (Time To Last Byte)',
     'The total time from the start of the request until the complete response is received.'),
    ('p90 Time',
     'The 90th percentile response time - 90% of requests complete faster than this value.'),
    ('Success Rate',
     'Percentage of requests that returned a successful HTTP status code (200-399).'),
]

TOP_N = 5


def format_timestamp(value: datetime) -> str:
    return value.astimezone(timezone.utc).strftime('%Y-%m-%d %H:%M:%S UTC')


def report_styles() -> str:
    return render('styles.html')


def build_header(meta: TestMeta, test_type: str, start: datetime, end: datetime) -> str:
    """Report title plus run window and run metadata."""
    return render(
        'header.html',
        meta=meta,
        test_type=test_type,
        start=format_timestamp(start),
        end=format_timestamp(end),
    )


def build_section(title: str, *parts: str) -> str:
    return render('section.html', title=title, parts=parts)


def metrics_table_class(display_name: str) -> str:
    """Pick the header colour class of a metrics table from its display name."""
    if any(key in display_name for key in ('LCP', 'FCP', 'CLS', 'TTFB Browser')):
        return 'core-web-vitals-table'
    if 'Mantle' in display_name:
        return 'mantle-metrics-table'
    if 'Page Load Time' in display_name:
        return 'pageload-table'
    if 'TTFB' in display_name:
        return 'protocol-ttfb-table'
    if 'TTLB' in display_name:
        return 'protocol-ttlb-table'
    return ''


def build_metrics_table(display_name: str, metric_data: Optional[Mapping[str, List[float]]],
                        transactions: Sequence[str], lower: bool = False) -> str:
    """One statistics row per transaction that has data for the metric."""
    rows = []
    if metric_data and transactions:
        for name in sorted(transactions):
            values = metric_data.get(name) or []
            if values:
                rows.append({'name': name, 'stats': calculate_stats(values, lower=lower)})

    is_cls = 'CLS' in display_name
    return render(
        'metrics_table.html',
        rows=rows,
        table_class=metrics_table_class(display_name),
        precision=4 if is_cls else 2,
        unit='' if is_cls else ' (ms)',
    )


def _pass_fail_counts(entry) -> PassFailCounter:
    if isinstance(entry, PassFailCounter):
        return entry
    if isinstance(entry, (list, tuple)):
        return PassFailCounter(
            requests=len(entry),
            passes=sum(1 for value in entry if value == 1),
            fails=sum(1 for value in entry if value == 0),
        )
    return PassFailCounter(
        requests=entry.get('requests', 0),
        passes=entry.get('passes', 0),
        fails=entry.get('fails', 0),
    )


def build_pass_fail_table(counters: Optional[Mapping], transactions: Sequence[str],
                          css_class: str = 'pageload-table') -> str:
    """Requests, passes, fails and pass rate per transaction.

    ``counters`` values may be :class:`PassFailCounter` objects, plain dicts
    with the same keys, or raw arrays of 1 (pass) / 0 (fail).
    """
    rows = []
    if counters and transactions:
        for name in sorted(transactions):
            entry = counters.get(name)
            if entry is None:
                continue
            counts = _pass_fail_counts(entry)
            if counts.requests > 0:
                rows.append({
                    'name': name,
                    'requests': counts.requests,
                    'passes': counts.passes,
                    'fails': counts.fails,
                    'pass_rate': counts.passes / counts.requests * 100,
                })
    return render('pass_fail_table.html', rows=rows, table_class=css_class or 'pageload-table')


def _timing(metrics: CollectedMetrics, metric: str, transaction: str) -> Dict[str, float]:
    values = metrics.values(metric, transaction)
    if not values:
        return {'avg': 0, 'p90': 0}
    stats = calculate_stats(values)
    return {'avg': stats['avg'], 'p90': stats['p90']}


def page_load_breakdown(metrics: CollectedMetrics, transaction: str) -> Dict[str, Dict[str, float]]:
    """Split the page load time of one transaction into its components (avg and p90)."""
    network = _timing(metrics, 'browser_network_time', transaction)
    server = _timing(metrics, 'browser_server_processing_time', transaction)
    dom = _timing(metrics, 'browser_dom_processing_time', transaction)
    parse = _timing(metrics, 'browser_script_parsing_time', transaction)
    execute = _timing(metrics, 'browser_script_execution_time', transaction)
    total = _timing(metrics, 'browser_page_load_time', transaction)

    row = {'server': server, 'dom': dom, 'parse': parse, 'execute': execute, 'total': total,
           'transfer': {}, 'other': {}}
    for stat in ('avg', 'p90'):
        transfer = max(0, network[stat] - server[stat])
        client = total[stat] - server[stat]
        measured = transfer + dom[stat] + parse[stat] + execute[stat]
        row['transfer'][stat] = transfer
        row['other'][stat] = max(0, client - measured)
    return row


def build_page_load_breakdown_table(metrics: CollectedMetrics, transactions: Sequence[str],
                                    stat: Optional[str] = None,
                                    css_class: str = 'timing-breakdown') -> str:
    """Client-side timing breakdown; ``stat`` is ``avg``, ``p90`` or None for both."""
    if stat not in (None, 'avg', 'p90'):
        raise ValueError(f"Unsupported breakdown statistic: {stat}")

    rows = []
    for name in transactions:
        row = page_load_breakdown(metrics, name)
        row['name'] = name
        rows.append(row)

    return render(
        'breakdown_table.html',
        rows=rows,
        stat=stat,
        columns=BREAKDOWN_COLUMNS,
        table_class=css_class,
    )


def _client_share(metrics: CollectedMetrics, transaction: str) -> Optional[float]:
    page_load = metrics.values('browser_page_load_time', transaction)
    server = metrics.values('browser_server_processing_time', transaction)
    if not page_load or not server:
        return None
    avg_page_load = sum(page_load) / len(page_load)
    avg_server = sum(server) / len(server)
    if avg_page_load <= 0:
        return 0.0
    return (avg_page_load - avg_server) / avg_page_load * 100


def build_resource_types_by_transaction(metrics: CollectedMetrics, transactions: Sequence[str]) -> str:
    """Per-transaction table of browser resource statistics by resource type."""
    if not transactions:
        return '<p>No resource data available.</p>'

    sections = []
    for name in transactions:
        rows = []
        for resource_type in ('js', 'css', 'img', 'font', 'other'):
            records = metrics.resources_for(name, [resource_type])
            if not records:
                continue
            time_stats = calculate_stats([record.duration for record in records])
            total_kb = sum(record.size or 0 for record in records) / 1024
            rows.append({
                'label': RESOURCE_TYPE_LABELS[resource_type],
                'requests': len(records),
                'total_kb': total_kb,
                'avg_kb': total_kb / len(records),
                'avg': time_stats['avg'],
                'median': time_stats['median'],
                'p90': time_stats['p90'],
                'success_rate': success_rate(records),
            })
        rows.sort(key=lambda row: row['requests'], reverse=True)
        sections.append({'name': name, 'rows': rows, 'client_pct': _client_share(metrics, name)})

    return render('resource_types_by_transaction.html', transactions=sections)


def _matches_transaction(record_transaction: str, transaction: str) -> bool:
    return (record_transaction == transaction
            or record_transaction.lower() == f"{transaction}_nonhtml".lower())


def build_top_network_resources_table(metrics: CollectedMetrics, transactions: Sequence[str] = (),
                                      resource_types: Sequence[str] = RESOURCE_TYPES) -> str:
    """Per-transaction totals of non-HTML resources with the top 5 URLs by size and by time."""
    global_counts: Dict[str, Dict[str, int]] = defaultdict(lambda: defaultdict(int))
    for resource_type in resource_types:
        for record in metrics.resources.get(resource_type, []):
            global_counts[record.url][record.transaction or 'unknown'] += 1

    transactions = list(transactions)
    if not transactions:
        for resource_type in resource_types:
            for record in metrics.resources.get(resource_type, []):
                name = record.transaction
                if name and name not in ('unknown', 'N/A') and name not in transactions:
                    transactions.append(name)

    if not transactions:
        if not global_counts:
            return '<p>No network resource data available.</p>'
        return '<p>No transaction data found in resources.</p>'

    rows = []
    for name in transactions:
        records = [
            record
            for resource_type in resource_types
            if resource_type != 'html'
            for record in metrics.resources.get(resource_type, [])
            if _matches_transaction(record.transaction, name)
        ]
        time_stats = calculate_stats([record.duration or 0 for record in records])
        total_kb = sum(record.size or 0 for record in records) / 1024

        by_url: Dict[str, dict] = {}
        for record in records:
            if not record.url:
                continue
            entry = by_url.setdefault(record.url, {
                'url': record.url,
                'type': record.type or 'other',
                'requests': 0,
                'total_duration': 0.0,
                'total_size': 0.0,
                'successes': 0,
            })
            entry['requests'] += 1
            entry['total_duration'] += record.duration or 0
            entry['total_size'] += record.size or 0
            if record.is_success:
                entry['successes'] += 1

        cards = []
        for url, entry in by_url.items():
            per_transaction = global_counts[url]
            cards.append({
                'url': url,
                'type': entry['type'],
                'avg_time': entry['total_duration'] / entry['requests'],
                'avg_kb': entry['total_size'] / entry['requests'] / 1024,
                'success_rate': entry['successes'] / entry['requests'] * 100,
                'requests': entry['requests'],
                'transaction_count': per_transaction.get(name) or entry['requests'],
                'total_count': sum(per_transaction.values()) or 1,
            })

        # Most requested first, slower first among equals
        cards.sort(key=lambda card: (-card['requests'], -card['avg_time']))
        rows.append({
            'name': name,
            'requests': len(records),
            'avg_kb': total_kb / len(records) if records else 0,
            'avg_time': time_stats['avg'],
            'p90_time': time_stats['p90'],
            'success_rate': success_rate(records),
            'by_size': sorted(cards, key=lambda card: card['avg_kb'], reverse=True)[:TOP_N],
            'by_time': sorted(cards, key=lambda card: card['avg_time'], reverse=True)[:TOP_N],
        })

    return render('top_resources.html', rows=rows)


def build_report_legend() -> str:
    """Resource type legend and metric explanations shown at the bottom of reports."""
    return render('legend.html', resource_types=LEGEND_RESOURCE_TYPES, explanations=LEGEND_EXPLANATIONS)
