"""Protocol (HTTP) and API report sections.

Both reports are built from the per-request resource records merged by the
parser. Transactions named ``<name>_nonhtml`` carry the non-HTML (static
asset) requests of a page; the rest are HTML documents or API calls.
Statistics here use lower-rank percentiles.
"""

from typing import Dict, List, Optional, Sequence

from ...utils.logging import get_logger
from .models import CollectedMetrics, ResourceRecord
from .stats import calculate_stats, success_rate
from .tables import build_metrics_table, build_pass_fail_table, build_report_legend, build_section
from .templates import render

logger = get_logger(__name__)

NON_HTML_SUFFIX = '_nonhtml'

PROTOCOL_RESOURCE_TYPES = [('js', 'JS'), ('css', 'CSS'), ('image', 'Image')]

NETWORK_ANALYSIS_TYPES = ['js', 'css', 'image', 'img', 'html']

API_METRIC_DEFINITIONS = [
    ('Requests', 'Total number of API calls made to this endpoint during the test.'),
    ('Success Rate', 'Percentage of API calls that returned a successful HTTP status code (2xx or 3xx).'),
    ('TTFB (Time To First Byte)',
     'Time elapsed between sending the request and receiving the first byte of the response. '
     'This measures server processing time and network latency.'),
    ('TTLB (Time To Last Byte)',
     'Total time elapsed between sending the request and receiving the complete response. '
     'This includes TTFB plus the time to download the entire response.'),
    ('Avg (Average)', 'The mean value of all measurements for this metric.'),
    ('Median', 'The middle value of all measurements for this metric when sorted. '
               'Less affected by outliers than the average.'),
    ('p90 (90th Percentile)', '90% of measurements were at or below this value. Useful for understanding '
                              'the experience of most users while excluding extreme outliers.'),
]


def is_non_html(transaction: Optional[str]) -> bool:
    return bool(transaction) and transaction.lower().endswith(NON_HTML_SUFFIX)


def strip_non_html_suffix(transaction: str) -> str:
    if is_non_html(transaction):
        return transaction[:-len(NON_HTML_SUFFIX)]
    return transaction


def _transactions_of(resources: Sequence[ResourceRecord]) -> List[str]:
    return sorted({r.transaction for r in resources if r.transaction and r.transaction != 'unknown'})


def _timing_stats(resources: Sequence[ResourceRecord]) -> dict:
    return {
        'ttfb': calculate_stats([r.ttfb or 0 for r in resources], lower=True),
        'ttlb': calculate_stats([r.duration or 0 for r in resources], lower=True),
    }


def _summary_row(label: str, css_class: str, resources: Sequence[ResourceRecord]) -> dict:
    row = {
        'label': label,
        'css_class': css_class,
        'count': len(resources),
        'success_rate': success_rate(resources),
    }
    row.update(_timing_stats(resources))
    return row


def _performance_rows(transactions: Sequence[str], resources: Sequence[ResourceRecord],
                      strip_suffix: bool = False) -> List[dict]:
    rows = []
    for name in transactions:
        records = [r for r in resources if r.transaction == name]
        if not records:
            continue
        row = {
            'name': strip_non_html_suffix(name) if strip_suffix else name,
            'requests': len(records),
            'success_rate': success_rate(records),
        }
        row.update(_timing_stats(records))
        rows.append(row)
    return rows


def build_overall_summary(html_resources: Sequence[ResourceRecord],
                          non_html_resources: Sequence[ResourceRecord]) -> str:
    """HTML, non-HTML and combined request statistics."""
    all_resources = list(html_resources) + list(non_html_resources)
    return render(
        'protocol_summary.html',
        title='Overall Performance Summary',
        header_class='overall-summary-header',
        transactions_label='Total Transactions',
        requests_label='Total Resource Requests',
        first_column='Resource Type',
        total_transactions=len(_transactions_of(all_resources)),
        total_requests=len(all_resources),
        rows=[
            _summary_row('HTML Resources', 'html-resources-row', html_resources),
            _summary_row('Non-HTML Resources', 'nonhtml-resources-row', non_html_resources),
            _summary_row('All Resources', 'total-row', all_resources),
        ],
    )


def build_performance_by_transaction(title: str, transactions: Sequence[str],
                                     resources: Sequence[ResourceRecord], non_html: bool = False) -> str:
    return render(
        'transaction_performance.html',
        title=title,
        header_class='nonhtml-header' if non_html else 'html-header',
        table_class='nonhtml-performance-table' if non_html else 'html-performance-table',
        first_column='Transaction',
        rows=_performance_rows(transactions, resources, strip_suffix=non_html),
    )


def build_resource_type_table(transactions: Sequence[str], resources: Sequence[ResourceRecord]) -> str:
    """JS, CSS and image request statistics per transaction."""
    rows = []
    for name in transactions:
        records = [r for r in resources if r.transaction == name]
        if not records:
            continue
        cells = []
        for resource_type, _ in PROTOCOL_RESOURCE_TYPES:
            if resource_type == 'image':
                typed = [r for r in records if r.type in ('image', 'img')]
            else:
                typed = [r for r in records if r.type == resource_type]
            ttfb = calculate_stats([r.ttfb or 0 for r in typed], lower=True)
            ttlb = calculate_stats([r.duration or 0 for r in typed], lower=True)
            cells.append({
                'count': len(typed),
                'ttfb_avg': ttfb['avg'],
                'ttlb_avg': ttlb['avg'],
                'ttlb_p90': ttlb['p90'],
                'success_rate': success_rate(typed),
            })
        rows.append({'name': name, 'cells': cells})

    return render(
        'protocol_resource_types.html',
        type_labels=[label for _, label in PROTOCOL_RESOURCE_TYPES],
        rows=rows,
    )


def _resource_cards(records: Sequence[ResourceRecord]) -> List[dict]:
    """Average size, time and TTFB per URL over the requests of one transaction."""
    by_url: Dict[str, dict] = {}
    for record in records:
        if not record.url:
            continue
        entry = by_url.setdefault(record.url, {
            'url': record.url,
            'type': record.type or 'other',
            'requests': 0,
            'total_size': 0.0,
            'total_duration': 0.0,
            'total_ttfb': 0.0,
            'successes': 0,
        })
        entry['requests'] += 1
        entry['total_size'] += record.size or 0
        entry['total_duration'] += record.duration or 0
        entry['total_ttfb'] += record.ttfb or 0
        if record.is_success:
            entry['successes'] += 1

    return [
        {
            'url': entry['url'],
            'type': entry['type'],
            'requests': entry['requests'],
            'size': entry['total_size'] / entry['requests'],
            'duration': entry['total_duration'] / entry['requests'],
            'ttfb': entry['total_ttfb'] / entry['requests'],
            'success_rate': entry['successes'] / entry['requests'] * 100,
        }
        for entry in by_url.values()
    ]


def build_network_analysis_table(transactions: Sequence[str], resources: Sequence[ResourceRecord]) -> str:
    """Per-transaction request totals with the 5 largest and 5 slowest resources by URL."""
    rows = []
    for name in transactions:
        records = [r for r in resources if r.transaction == name]
        if not records:
            continue
        durations = sorted(r.duration or 0 for r in records)
        p90_index = int(len(durations) * 0.9)
        cards = _resource_cards([r for r in records if r.type in NETWORK_ANALYSIS_TYPES])
        rows.append({
            'name': name,
            'requests': len(records),
            'avg_kb': sum(r.size or 0 for r in records) / len(records) / 1024,
            'avg_time': sum(durations) / len(durations),
            'p90_time': durations[min(p90_index, len(durations) - 1)],
            'success_rate': success_rate(records),
            'by_size': sorted(cards, key=lambda card: card['size'], reverse=True)[:5],
            'by_time': sorted(cards, key=lambda card: card['duration'], reverse=True)[:5],
        })
    return render('network_analysis.html', rows=rows)


def _distribution_sections(metrics: CollectedMetrics, transactions: Sequence[str]) -> List[str]:
    return [
        build_section(
            'Request Success by Transaction',
            build_pass_fail_table(metrics.protocol_success, transactions, 'html-performance-table'),
        ),
        build_section(
            'Response Time Distribution',
            '<h3>Protocol TTFB</h3>',
            build_metrics_table('Protocol TTFB', metrics.protocol_ttfb, transactions, lower=True),
            '<h3>Protocol TTLB</h3>',
            build_metrics_table('Protocol TTLB', metrics.protocol_ttlb, transactions, lower=True),
        ),
    ]


def generate_protocol_report(metrics: CollectedMetrics,
                             transactions: Optional[Sequence[str]] = None) -> List[str]:
    """Build the HTML sections of a protocol report, in display order.

    Args:
        metrics: Collected metrics of a PROTOCOL run
        transactions: Transactions for the success and distribution tables;
            defaults to every tagged transaction with ``http_req_duration`` data
    """
    all_resources = metrics.all_resources()
    html_resources = [r for r in all_resources if not is_non_html(r.transaction)]
    non_html_resources = [r for r in all_resources if is_non_html(r.transaction)]
    html_transactions = _transactions_of(html_resources)
    non_html_transactions = _transactions_of(non_html_resources)

    if transactions is None:
        transactions = sorted(t for t in metrics.protocol_ttlb if t != 'unknown')

    logger.info(
        f"Processing {len(html_resources)} HTML resources across {len(html_transactions)} transactions "
        f"and {len(non_html_resources)} non-HTML resources across {len(non_html_transactions)} transactions"
    )

    sections = [
        build_overall_summary(html_resources, non_html_resources),
        build_performance_by_transaction('HTML Resources by Transaction', html_transactions, html_resources),
        build_performance_by_transaction('Non-HTML Resources by Transaction', non_html_transactions,
                                         non_html_resources, non_html=True),
    ]
    sections.extend(_distribution_sections(metrics, transactions))
    sections.extend([
        build_resource_type_table(non_html_transactions, non_html_resources),
        build_network_analysis_table(non_html_transactions, non_html_resources),
        build_report_legend(),
    ])
    return sections


def generate_api_report(metrics: CollectedMetrics,
                        transactions: Optional[Sequence[str]] = None) -> List[str]:
    """Build the HTML sections of an API report, in display order.

    Only direct API calls are reported; ``_nonhtml`` transactions are ignored.
    """
    api_resources = [r for r in metrics.all_resources() if not is_non_html(r.transaction)]
    api_transactions = _transactions_of(api_resources)

    if transactions is None:
        transactions = sorted(t for t in metrics.protocol_ttlb if t != 'unknown' and not is_non_html(t))

    logger.info(f"API Report: Processing {len(api_resources)} API requests across {len(api_transactions)} transactions")

    summary = render(
        'protocol_summary.html',
        title='API Performance Summary',
        header_class='summary-header',
        transactions_label='Total API Endpoints',
        requests_label='Total API Requests',
        first_column='API Requests',
        total_transactions=len(api_transactions),
        total_requests=len(api_resources),
        rows=[_summary_row('All API Endpoints', 'total-row', api_resources)],
    )
    by_endpoint = render(
        'transaction_performance.html',
        title='API Performance by Endpoint',
        header_class='html-header',
        table_class='html-performance-table',
        first_column='Endpoint',
        rows=_performance_rows(api_transactions, api_resources),
    )

    sections = [summary, by_endpoint]
    sections.extend(_distribution_sections(metrics, transactions))
    sections.append(render('api_legend.html', definitions=API_METRIC_DEFINITIONS))
    return sections
