"""Browser (k6 browser module) report sections."""

from typing import List, Optional, Sequence

from ...utils.logging import get_logger
from .models import CollectedMetrics
from .parser import MANTLE_METRIC_KEYS
from .stats import calculate_aggregate_stats, calculate_stats
from .tables import (
    build_page_load_breakdown_table,
    build_pass_fail_table,
    build_report_legend,
    build_resource_types_by_transaction,
    build_section,
    build_top_network_resources_table,
)
from .templates import render

logger = get_logger(__name__)

MANTLE_DISPLAY_NAMES = {
    'browser_mantle_first_ad_load': 'Mantle First Ad Load (ms)',
    'browser_mantle_first_ad_render': 'Mantle First Ad Render (ms)',
    'browser_mantle_first_ad_request': 'Mantle First Ad Request (ms)',
    'browser_mantle_first_ad_response': 'Mantle First Ad Response (ms)',
    'browser_mantle_gtm_loaded': 'Mantle GTM Loaded (ms)',
    'browser_mantle_gpt_loaded': 'Mantle GPT Loaded (ms)',
    'browser_mantle_scroll_depth': 'Mantle Scroll Depth (%)',
    'browser_mantle_content_depth_px': 'Mantle Content Depth (px)',
    'browser_mantle_third_party_fired': 'Mantle Third Party Fired (ms)',
    'browser_mantle_deferred_fired': 'Mantle Deferred Fired (ms)',
    'browser_mantle_video_player_loaded': 'Mantle Video Player Loaded (ms)',
    'browser_mantle_ad_refresh_rate': 'Mantle Ad Refresh Rate (count)',
    'browser_mantle_ad_bidder_amount': 'Mantle Ad Bidder Amount (count)',
    'browser_mantle_first_scroll': 'Mantle First Scroll (ms)',
    'browser_mantle_adsrendered': 'Mantle Ads Rendered (count)',
    'browser_mantle_adsviewable': 'Mantle Ads Viewable (count)',
}

# Shown as min/max instead of avg/p90
COUNT_BASED_MANTLE_METRICS = [
    'browser_mantle_scroll_depth',
    'browser_mantle_adsrendered',
    'browser_mantle_adsviewable',
]

CORE_WEB_VITALS = {
    'fcp': 'browser_fcp',
    'lcp': 'browser_lcp',
    'cls': 'browser_cls',
    'ttfb': 'browser_ttfb',
}

DETAILED_METRICS = [
    ('browser_server_processing_time', 'Server Processing Time', 'server-cell'),
    ('browser_network_time', 'Network Transfer Time', ''),
    ('browser_dom_processing_time', 'DOM Processing Time', ''),
    ('browser_script_execution_time', 'Script Execution Time', ''),
    ('browser_script_parsing_time', 'Script Parsing Time', ''),
    ('browser_js_load_time', 'JavaScript Load Time', ''),
    ('browser_css_load_time', 'CSS Load Time', ''),
    ('browser_img_load_time', 'Image Load Time', ''),
    ('browser_font_load_time', 'Font Load Time', ''),
    ('browser_other_resource_load_time', 'Other Resources Load Time', ''),
    ('browser_page_load_time', 'Total Page Load Time', 'client-total-cell'),
]


def _page_requests(metrics: CollectedMetrics, transaction: str) -> int:
    counter = metrics.page_load_success.get(transaction)
    return counter.requests if counter else 0


def _selected(metrics: CollectedMetrics, metric: str, transactions: Sequence[str]):
    return {name: metrics.values(metric, name) for name in transactions}


def build_browser_summary(metrics: CollectedMetrics, transactions: Sequence[str]) -> str:
    """Transaction/resource counts and the total, server and client page load split."""
    if not transactions:
        return '<p>No data available for browser summary.</p>'

    server = calculate_aggregate_stats(_selected(metrics, 'browser_server_processing_time', transactions))
    total = calculate_aggregate_stats(_selected(metrics, 'browser_page_load_time', transactions))
    client = {key: total[key] - server[key] for key in ('avg', 'median', 'p90')}

    def share(value):
        return value / total['avg'] * 100 if total['avg'] > 0 else 0.0

    rows = [
        dict(css_class='total-row', label='Total Page Load Time',
             avg=total['avg'], median=total['median'], p90=total['p90'], pct=100.0),
        dict(css_class='server-row', label='Server Processing (TTFB)',
             avg=server['avg'], median=server['median'], p90=server['p90'], pct=share(server['avg'])),
        dict(css_class='client-row', label='Client-Side Processing',
             avg=client['avg'], median=client['median'], p90=client['p90'], pct=share(client['avg'])),
    ]
    return render(
        'browser_summary.html',
        total_transactions=sum(_page_requests(metrics, name) for name in transactions),
        total_resource_requests=metrics.non_html_resource_count(),
        rows=rows,
    )


def build_core_web_vitals_table(metrics: CollectedMetrics, transactions: Sequence[str]) -> str:
    """Median and p90 of FCP, LCP, CLS and TTFB per transaction."""
    if not any(metrics.browser.get(metric) for metric in CORE_WEB_VITALS.values()):
        return '<p>No Core Web Vitals metrics available for this test run.</p>'

    rows = []
    for name in transactions:
        row = {'name': name, 'requests': _page_requests(metrics, name)}
        for key, metric in CORE_WEB_VITALS.items():
            row[key] = calculate_stats(metrics.values(metric, name))
        rows.append(row)
    return render('core_web_vitals.html', rows=rows)


def build_mantle_table(metrics: CollectedMetrics, transactions: Sequence[str]) -> str:
    """Consolidated table of the Mantle custom metrics that carry data."""
    keys = [
        key for key in MANTLE_METRIC_KEYS
        if any(metrics.mantle.get(key, {}).values())
    ]
    if not keys:
        return '<p>No Mantle metrics available for this test run.</p>'

    columns = [
        {'label': MANTLE_DISPLAY_NAMES[key], 'count_based': key in COUNT_BASED_MANTLE_METRICS}
        for key in keys
    ]

    rows = []
    for name in transactions:
        requests = _page_requests(metrics, name)
        if requests == 0:
            requests = next((len(metrics.values(key, name)) for key in keys if metrics.values(key, name)), 0)
        if requests == 0:
            continue

        cells = []
        for key in keys:
            values = metrics.values(key, name)
            if not values:
                cells.append(None)
                continue
            stats = calculate_stats(values)
            if key in COUNT_BASED_MANTLE_METRICS:
                cells.append((stats['min'], stats['max']))
            else:
                cells.append((stats['avg'], stats['p90']))
        rows.append({'name': name, 'requests': requests, 'cells': cells})

    return render('mantle_table.html', columns=columns, rows=rows)


def build_detailed_stats_table(metrics: CollectedMetrics, transactions: Sequence[str]) -> str:
    """Avg and p90 of the detailed timing metrics per transaction."""
    if not transactions:
        return '<p>No data available for transaction breakdown.</p>'

    rows = []
    for name in transactions:
        requests = _page_requests(metrics, name) or len(metrics.values('browser_page_load_time', name))
        cells = []
        for metric, _, css_class in DETAILED_METRICS:
            values = metrics.values(metric, name)
            cells.append({'stats': calculate_stats(values) if values else None, 'css_class': css_class})
        rows.append({'name': name, 'requests': requests, 'cells': cells})

    columns = [{'label': label} for _, label, _ in DETAILED_METRICS]
    return render('detailed_stats.html', columns=columns, rows=rows)


def generate_browser_report(metrics: CollectedMetrics, transactions: Sequence[str],
                            capture_mantle: Optional[bool] = None) -> List[str]:
    """Build the HTML sections of a browser report, in display order."""
    if capture_mantle is None:
        capture_mantle = metrics.capture_mantle

    logger.info(f"Building browser report for {len(transactions)} transactions")

    sections = [
        build_section('Overall Performance Summary', build_browser_summary(metrics, transactions)),
        build_section('Page Load Success',
                      build_pass_fail_table(metrics.page_load_success, transactions, 'pageload-table')),
        build_section('Core Web Vitals', build_core_web_vitals_table(metrics, transactions)),
    ]

    if capture_mantle:
        sections.append(build_section('Mantle Custom Metrics', build_mantle_table(metrics, transactions)))

    sections.extend([
        build_section('Detailed Performance Analysis', build_detailed_stats_table(metrics, transactions)),
        build_section(
            'Client-Side Timing Breakdown',
            '<h3>Client-Side Timing Breakdown (Average)</h3>',
            build_page_load_breakdown_table(metrics, transactions, 'avg', 'core-web-vitals-table'),
            '<h3>Client-Side Timing Breakdown (90th Percentile)</h3>',
            build_page_load_breakdown_table(metrics, transactions, 'p90', 'core-web-vitals-table'),
        ),
        build_section('Network Resources Statistics By Transaction',
                      build_resource_types_by_transaction(metrics, transactions)),
        build_section('Network Resource Analysis', build_top_network_resources_table(metrics, transactions)),
        build_report_legend(),
    ])
    return sections
