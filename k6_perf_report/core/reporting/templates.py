"""Embedded Jinja2 templates for the HTML performance reports.

All report markup lives here; the builders in ``tables``, ``browser_report``
and ``protocol_report`` compute row data and render one of these templates.
"""

from functools import lru_cache

from jinja2 import DictLoader, Environment, TemplateError, select_autoescape

from .stats import short_url, shorten_url, time_color, to_fixed

REPORT_STYLES = """<style>
  @import url('https://fonts.googleapis.com/css2?family=Inter:wght@400;500;600;700&display=swap');
  body {
    font-family: 'Inter', -apple-system, BlinkMacSystemFont, sans-serif;
    line-height: 1.6;
    color: #374151;
    max-width: 1200px;
    margin: 0 auto;
    padding: 24px;
    background-color: #f9fafb;
  }
  h1, h2, h3, h4 { color: #111827; margin-top: 1.5em; margin-bottom: 0.75em; }
  h1 { font-size: 1.75rem; border-bottom: 3px solid #4f46e5; padding-bottom: 0.5rem; display: inline-block; }
  h3.section-header { font-size: 1.25rem; margin-top: 2rem; margin-bottom: 1rem; padding-bottom: 0.5rem; border-bottom: 2px solid; }
  .section-title {
    color: #111827;
    font-size: 22px;
    font-weight: 700;
    margin: 48px 0 16px 0;
    display: inline-block;
    padding-bottom: 8px;
    border-bottom: 4px solid #6366f1;
  }
  table {
    width: 100%;
    border-collapse: separate;
    border-spacing: 0;
    margin-bottom: 32px;
    font-size: 14px;
    box-shadow: 0 4px 6px -1px rgba(0, 0, 0, 0.1), 0 2px 4px -1px rgba(0, 0, 0, 0.06);
    border-radius: 8px;
    overflow: hidden;
  }
  th { color: #fff; padding: 14px 16px; text-align: left; font-weight: 600; background: #4338ca; }
  td { padding: 14px 16px; border-bottom: 1px solid #e5e7eb; background-color: #fff; }
  tr:nth-child(even) td { background-color: #f9fafb; }
  tr:hover td { background-color: #eef2ff; }
  .overall-summary-table th { background: linear-gradient(to right, #3730a3, #4338ca); }
  .html-performance-table th, .pageload-table th, .timing-breakdown th { background: linear-gradient(to right, #065f46, #047857); }
  .nonhtml-performance-table th, .protocol-ttfb-table th { background: linear-gradient(to right, #4338ca, #4f46e5); }
  .resource-type-table th, .core-web-vitals-table th { background: linear-gradient(to right, #991b1b, #b91c1c); }
  .network-analysis-table th, .top-resources-table th, .protocol-ttlb-table th { background: linear-gradient(to right, #6b21a8, #7e22ce); }
  .mantle-metrics-table th, .transaction-stats-table th { background: linear-gradient(to right, #b45309, #d97706); }
  .metrics-section { margin-bottom: 32px; overflow-x: auto; }
  .request-counts-summary, .summary-stats {
    display: flex;
    justify-content: space-around;
    margin: 20px 0;
    padding: 15px;
    background-color: #f0f4f8;
    border-radius: 8px;
  }
  .count-box, .summary-stat-item { text-align: center; padding: 10px 20px; }
  .count-value, .summary-stat-value { font-size: 28px; font-weight: bold; color: #1976d2; }
  .count-label, .summary-stat-label { font-size: 14px; color: #546e7a; margin-top: 5px; }
  .template-summary { margin: -16px 0 24px 0; font-size: 13px; color: #4b5563; }
  .resource-icon, .resource-type {
    display: inline-flex;
    align-items: center;
    justify-content: center;
    width: 24px;
    height: 24px;
    margin-right: 8px;
    border-radius: 6px;
    color: white;
    font-size: 13px;
    font-weight: 600;
  }
  .js { background: #f59e0b; }
  .css { background: #3b82f6; }
  .img, .image { background: #10b981; }
  .font { background: #8b5cf6; }
  .html { background: #e34c26; }
  .other { background: #6b7280; }
  .resource-details, .resource-card { padding: 8px; margin-bottom: 8px; border-radius: 8px; border: 1px solid #e5e7eb; }
  .resource-details small, .resource-stats { display: block; margin-top: 4px; color: #64748b; font-size: 0.8rem; }
  .resource-url { font-size: 0.85rem; white-space: nowrap; overflow: hidden; text-overflow: ellipsis; color: #4b5563; }
  .resource-type-legend { display: flex; flex-wrap: wrap; margin-bottom: 1rem; }
  .resource-type-legend-item { display: flex; align-items: center; margin-right: 1.5rem; }
  .metrics-explanation { margin-top: 1.5rem; padding: 1.5rem; border-radius: 0.5rem; background-color: #f5f7ff; border-left: 4px solid #4338ca; }
  .metrics-explanation-grid { display: grid; grid-template-columns: repeat(auto-fit, minmax(250px, 1fr)); gap: 1.5rem; }
  .metrics-explanation-item h5 { margin-top: 0; margin-bottom: 0.5rem; color: #4338ca; font-weight: 600; }
  .metrics-explanation-item p { margin: 0; color: #4b5563; font-size: 0.9rem; }
  .api-metrics-legend { margin-top: 40px; padding: 20px; background-color: #f8fafc; border-radius: 8px; border-left: 4px solid #6366f1; font-size: 13px; }
  .metrics-definition-table th { background-color: #e2e8f0; color: #334155; }
  .metric-name { font-weight: 600; color: #334155; white-space: nowrap; }
</style>"""

DOCUMENT_TEMPLATE = """<!DOCTYPE html>
<html lang="en">
<head>
<meta charset="utf-8">
<title>K6 Performance Test Report{% if meta.aut %} - {{ meta.aut }}{% endif %}</title>
{{ styles | safe }}
</head>
<body>
{{ header | safe }}
{% for section in sections %}
{{ section | safe }}
{% endfor %}
</body>
</html>
"""

HEADER_TEMPLATE = """<h1>K6 Performance Test Report</h1>
<p><strong>Run Start Time:</strong> {{ start }}</p>
<p><strong>Run End Time:</strong> {{ end }}</p>
{% if meta.base_url %}
<p><strong>Base URL:</strong> {{ meta.base_url }}</p>
{% endif %}
{% if test_type %}
<p><strong>Test Type:</strong> {{ test_type }}</p>
{% endif %}
{% if meta.aut %}
<p><strong>AUT:</strong> {{ meta.aut }}</p>
{% endif %}
{% if meta.scenario %}
<p><strong>Scenario:</strong> {{ meta.scenario }}</p>
{% endif %}
"""

SECTION_TEMPLATE = """<h2 class="section-title">{{ title }}</h2>
{% for part in parts %}
{{ part | safe }}
{% endfor %}
"""

METRICS_TABLE_TEMPLATE = """{% if rows %}
<table class="{{ table_class }}">
<thead><tr><th>Template</th><th>Requests</th><th>Min{{ unit }}</th><th>Max{{ unit }}</th><th>Avg{{ unit }}</th><th>Median{{ unit }}</th><th>p90{{ unit }}</th><th>p95{{ unit }}</th><th>p99{{ unit }}</th></tr></thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.stats.count }}</td>
{% for key in ['min', 'max', 'avg', 'median', 'p90', 'p95', 'p99'] %}
<td>{{ row.stats[key] | fixed(precision) }}</td>
{% endfor %}
</tr>
{% endfor %}
</tbody>
</table>
{% else %}
<p>No data available for this metric.</p>
{% endif %}
"""

PASS_FAIL_TABLE_TEMPLATE = """{% if rows %}
<table class="{{ table_class }}">
<thead><tr><th>Template</th><th>Requests</th><th>Passes</th><th>Fails</th><th>Pass Rate</th></tr></thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
<td>{{ row.passes }}</td>
<td>{{ row.fails }}</td>
<td>{{ row.pass_rate | fixed(2) }}%</td>
</tr>
{% endfor %}
</tbody>
</table>
{% else %}
<p>No data available for pass/fail metrics.</p>
{% endif %}
"""

BREAKDOWN_COLUMNS = [
    ('transfer', 'Network Transfer'),
    ('server', 'Server Processing'),
    ('dom', 'DOM Processing'),
    ('parse', 'Script Parsing'),
    ('execute', 'Script Execution'),
    ('other', 'Other Client'),
    ('total', 'Total Page Load'),
]

BREAKDOWN_TABLE_TEMPLATE = """<table class="{{ table_class }}">
{% if stat %}
<thead><tr><th>Template</th><th>Network Transfer Time (ms)</th><th>Server Processing (ms)</th><th>DOM Processing (ms)</th><th>Script Parsing (ms)</th><th>Script Execution (ms)</th><th>Other Client Processing (ms)</th><th>Total Page Load Time (ms)</th></tr></thead>
{% else %}
<thead>
<tr><th rowspan="2">Template</th>{% for key, label in columns %}<th colspan="2">{{ label }}</th>{% endfor %}</tr>
<tr>{% for key, label in columns %}<th>Avg</th><th>p90</th>{% endfor %}</tr>
</thead>
{% endif %}
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
{% for key, label in columns %}
{% if stat %}
<td>{{ row[key][stat] | fixed(2) }}</td>
{% else %}
<td>{{ row[key].avg | fixed(2) }}</td>
<td>{{ row[key].p90 | fixed(2) }}</td>
{% endif %}
{% endfor %}
</tr>
{% endfor %}
</tbody>
</table>
"""

RESOURCE_TYPES_BY_TRANSACTION_TEMPLATE = """{% for txn in transactions %}
<h4>Transaction: {{ txn.name }}</h4>
<table class="top-resource-table transaction-resources core-web-vitals-table">
<thead><tr><th>Resource Type</th><th>Request Count</th><th>Total Size (KB)</th><th>Avg Size (KB)</th><th>Time (Avg ms)</th><th>Time (Median ms)</th><th>Time (p90 ms)</th><th>Success Rate</th></tr></thead>
<tbody>
{% for row in txn.rows %}
<tr>
<td><strong>{{ row.label }}</strong></td>
<td>{{ row.requests }}</td>
<td>{{ row.total_kb | fixed(1) }} KB</td>
<td>{{ row.avg_kb | fixed(1) }} KB</td>
<td style="color:{{ row.avg | time_color }};">{{ row.avg | fixed(0) }}</td>
<td style="color:{{ row.median | time_color }};">{{ row.median | fixed(0) }}</td>
<td style="color:{{ row.p90 | time_color }};">{{ row.p90 | fixed(0) }}</td>
<td style="color:{{ 'red' if row.success_rate < 95 else 'green' }};">{{ row.success_rate | fixed(1) }}%</td>
</tr>
{% else %}
<tr><td colspan="8">No network resource data found for this transaction. Ensure your browser script emits browser_resource_* metrics with proper transaction tags.</td></tr>
{% endfor %}
</tbody>
</table>
{% if txn.client_pct is not none %}
<div class="template-summary">Client-side processing accounts for <strong>{{ txn.client_pct | fixed(1) }}%</strong> of the total page load time for this transaction.</div>
{% endif %}
{% endfor %}
<div class="legend">
<p>Times are color-coded: <span style="color:green;">green</span> = under 500ms, <span style="color:orange;">orange</span> = 500ms-1s, <span style="color:red;">red</span> = over 1s</p>
</div>
"""

RESOURCE_CARD_MACRO = """{% macro resource_card(card) %}
<div class="resource-details" title="{{ card.url }}">
<span class="resource-icon {{ card.type }}">{{ card.type[:1] | upper }}</span>
<strong>{{ card.url | short_url }}</strong><br>
<small>Reqs: {{ card.transaction_count }} ({{ card.total_count }} total) | Avg Time: {{ card.avg_time | fixed(1) }}ms | Avg Size: {{ card.avg_kb | fixed(1) }}KB | Success: {{ card.success_rate | fixed(0) }}%</small>
</div>
{% endmacro %}
"""

TOP_RESOURCES_TEMPLATE = """{% from 'resource_card.html' import resource_card %}
<table class="top-resources-table">
<thead class="network-head"><tr><th>Transaction</th><th>Total Requests</th><th>Avg Size</th><th>Avg Time</th><th>p90 Time</th><th>Success Rate</th><th>Top 5 Resources (By Avg Size)</th><th>Top 5 Resources (By Avg Time)</th></tr></thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
<td>{{ row.avg_kb | fixed(1) }} KB</td>
<td>{{ row.avg_time | fixed(2) }}</td>
<td>{{ row.p90_time | fixed(2) }}</td>
<td>{{ row.success_rate | fixed(1) }}%</td>
<td>
{% for card in row.by_size %}{{ resource_card(card) }}{% else %}<div class="no-resources">No resources found for this transaction</div>{% endfor %}
</td>
<td>
{% for card in row.by_time %}{{ resource_card(card) }}{% else %}<div class="no-resources">No resources found for this transaction</div>{% endfor %}
</td>
</tr>
{% endfor %}
</tbody>
</table>
"""

LEGEND_TEMPLATE = """<div class="metrics-section">
<div class="resource-type-legend">
{% for css_class, letter, label in resource_types %}
<div class="resource-type-legend-item"><span class="resource-type {{ css_class }}">{{ letter }}</span><span>{{ label }}</span></div>
{% endfor %}
<div class="resource-type-legend-item"><span>TTFB: Time to First Byte</span></div>
<div class="resource-type-legend-item"><span>TTLB: Time to Last Byte</span></div>
</div>
<div class="metrics-explanation">
<h4>Metrics Explanation</h4>
<div class="metrics-explanation-grid">
{% for title, text in explanations %}
<div class="metrics-explanation-item">
<h5>{{ title }}</h5>
<p>{{ text }}</p>
</div>
{% endfor %}
</div>
</div>
</div>
"""

BROWSER_SUMMARY_TEMPLATE = """<div class="metrics-section">
<div class="request-counts-summary">
<div class="count-box"><div class="count-value">{{ total_transactions }}</div><div class="count-label">Total Transactions</div></div>
<div class="count-box"><div class="count-value">{{ total_resource_requests }}</div><div class="count-label">Total Resource Requests</div></div>
</div>
<table class="overall-summary-table">
<thead><tr><th>Component</th><th>Avg (ms)</th><th>Median (ms)</th><th>p90 (ms)</th><th>% of Total</th></tr></thead>
<tbody>
{% for row in rows %}
<tr class="{{ row.css_class }}">
<td>{{ row.label }}</td>
<td>{{ row.avg | fixed(2) }}</td>
<td>{{ row.median | fixed(2) }}</td>
<td>{{ row.p90 | fixed(2) }}</td>
<td>{{ row.pct | fixed(1) }}%</td>
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

CORE_WEB_VITALS_TEMPLATE = """<div class="metrics-section">
<table class="core-web-vitals-table">
<thead>
<tr><th rowspan="2">Transaction</th><th rowspan="2">Requests</th><th colspan="2">FCP (ms)</th><th colspan="2">LCP (ms)</th><th colspan="2">CLS</th><th colspan="2">TTFB (ms)</th></tr>
<tr><th>Median</th><th>p90</th><th>Median</th><th>p90</th><th>Median</th><th>p90</th><th>Median</th><th>p90</th></tr>
</thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
<td>{{ row.fcp.median | fixed(2) }}</td>
<td>{{ row.fcp.p90 | fixed(2) }}</td>
<td>{{ row.lcp.median | fixed(2) }}</td>
<td>{{ row.lcp.p90 | fixed(2) }}</td>
<td>{{ row.cls.median | fixed(4) }}</td>
<td>{{ row.cls.p90 | fixed(4) }}</td>
<td>{{ row.ttfb.median | fixed(2) }}</td>
<td>{{ row.ttfb.p90 | fixed(2) }}</td>
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

MANTLE_TABLE_TEMPLATE = """<div class="metrics-section">
<table class="mantle-metrics-table">
<thead>
<tr><th rowspan="2">Transaction</th><th rowspan="2">Requests</th>{% for column in columns %}<th colspan="2">{{ column.label }}</th>{% endfor %}</tr>
<tr>{% for column in columns %}{% if column.count_based %}<th>Min</th><th>Max</th>{% else %}<th>Avg</th><th>p90</th>{% endif %}{% endfor %}</tr>
</thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
{% for cell in row.cells %}
{% if cell %}
<td>{{ cell[0] | fixed(2) }}</td>
<td>{{ cell[1] | fixed(2) }}</td>
{% else %}
<td>N/A</td>
<td>N/A</td>
{% endif %}
{% endfor %}
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

DETAILED_STATS_TEMPLATE = """<div class="metrics-section">
<table class="transaction-stats-table">
<thead>
<tr><th>Transaction</th><th>Requests</th>{% for column in columns %}<th colspan="2">{{ column.label }}</th>{% endfor %}</tr>
<tr><th></th><th>Count</th>{% for column in columns %}<th>Avg (ms)</th><th>p90 (ms)</th>{% endfor %}</tr>
</thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
{% for cell in row.cells %}
{% if cell.stats %}
<td class="{{ cell.css_class }}">{{ cell.stats.avg | fixed(2) }}</td>
<td class="{{ cell.css_class }}">{{ cell.stats.p90 | fixed(2) }}</td>
{% else %}
<td class="{{ cell.css_class }}">N/A</td>
<td class="{{ cell.css_class }}">N/A</td>
{% endif %}
{% endfor %}
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

PROTOCOL_SUMMARY_TEMPLATE = """<div class="metrics-section">
<h3 class="section-header {{ header_class }}">{{ title }}</h3>
<div class="summary-stats">
<div class="summary-stat-item"><div class="summary-stat-value">{{ total_transactions }}</div><div class="summary-stat-label">{{ transactions_label }}</div></div>
<div class="summary-stat-item"><div class="summary-stat-value">{{ total_requests }}</div><div class="summary-stat-label">{{ requests_label }}</div></div>
</div>
<table class="metrics-table overall-summary-table">
<thead>
<tr><th rowspan="2">{{ first_column }}</th><th rowspan="2">Count</th><th rowspan="2">Success Rate</th><th colspan="3">TTFB (ms)</th><th colspan="3">TTLB (ms)</th></tr>
<tr><th>Avg</th><th>Median</th><th>p90</th><th>Avg</th><th>Median</th><th>p90</th></tr>
</thead>
<tbody>
{% for row in rows %}
<tr class="{{ row.css_class }}">
<td>{{ row.label }}</td>
<td>{{ row.count }}</td>
<td>{{ row.success_rate | fixed(2) }}%</td>
<td>{{ row.ttfb.avg | fixed(2) }}</td>
<td>{{ row.ttfb.median | fixed(2) }}</td>
<td>{{ row.ttfb.p90 | fixed(2) }}</td>
<td>{{ row.ttlb.avg | fixed(2) }}</td>
<td>{{ row.ttlb.median | fixed(2) }}</td>
<td>{{ row.ttlb.p90 | fixed(2) }}</td>
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

TRANSACTION_PERFORMANCE_TEMPLATE = """<div class="metrics-section">
<h3 class="section-header {{ header_class }}">{{ title }}</h3>
<table class="metrics-table {{ table_class }}">
<thead>
<tr><th rowspan="2">{{ first_column }}</th><th rowspan="2">Requests</th><th rowspan="2">Success Rate</th><th colspan="3" class="ttfb-header">TTFB (ms)</th><th colspan="3" class="ttlb-header">TTLB (ms)</th></tr>
<tr><th>Avg</th><th>Median</th><th>p90</th><th>Avg</th><th>Median</th><th>p90</th></tr>
</thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
<td>{{ row.success_rate | fixed(2) }}%</td>
<td>{{ row.ttfb.avg | fixed(2) }}</td>
<td>{{ row.ttfb.median | fixed(2) }}</td>
<td>{{ row.ttfb.p90 | fixed(2) }}</td>
<td>{{ row.ttlb.avg | fixed(2) }}</td>
<td>{{ row.ttlb.median | fixed(2) }}</td>
<td>{{ row.ttlb.p90 | fixed(2) }}</td>
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

PROTOCOL_RESOURCE_TYPES_TEMPLATE = """<div class="metrics-section">
<h3 class="section-header resource-type-header">Resource Types by Transaction</h3>
<div class="resource-type-legend">
<div class="resource-type-legend-item"><span class="resource-type js">J</span><span>JS</span></div>
<div class="resource-type-legend-item"><span class="resource-type css">C</span><span>CSS</span></div>
<div class="resource-type-legend-item"><span class="resource-type image">I</span><span>Image</span></div>
</div>
<table class="metrics-table resource-type-table">
<thead>
<tr><th rowspan="2">Transaction</th>{% for label in type_labels %}<th colspan="5">{{ label }}</th>{% endfor %}</tr>
<tr>{% for label in type_labels %}<th>Reqs</th><th>Avg TTFB</th><th>Avg TTLB</th><th>p90</th><th>Success</th>{% endfor %}</tr>
</thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
{% for cell in row.cells %}
<td>{{ cell.count }}</td>
<td>{{ cell.ttfb_avg | fixed(2) }}</td>
<td>{{ cell.ttlb_avg | fixed(2) }}</td>
<td>{{ cell.ttlb_p90 | fixed(2) }}</td>
<td>{{ cell.success_rate | fixed(2) }}%</td>
{% endfor %}
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

NETWORK_ANALYSIS_TEMPLATE = """{% macro resource_cards(cards, metric) %}
{% for card in cards %}
<div class="resource-card" title="{{ card.url }}">
<div class="resource-type {{ card.type }}">{{ card.type[:1] | upper }}</div>
<div class="resource-info">
<div class="resource-url" data-tooltip="{{ card.url }}">{{ card.url | shorten_url(25) }}</div>
<div class="resource-stats">
<div>Reqs: {{ card.requests }} | {% if metric == 'size' %}Size: {{ (card.size / 1024) | fixed(2) }} KB{% else %}Time: {{ card.duration | fixed(2) }} ms{% endif %}</div>
<div>Success: {{ card.success_rate | fixed(0) }}% | TTFB: {{ card.ttfb | fixed(2) }} ms</div>
</div>
</div>
</div>
{% endfor %}
{% endmacro %}
<div class="metrics-section">
<h3 class="section-header network-analysis-header">Network Resource Analysis</h3>
<table class="metrics-table network-analysis-table">
<thead><tr><th>Transaction</th><th>Total Requests</th><th>Avg Size (KB)</th><th>Avg Time (ms)</th><th>p90 Time (ms)</th><th>Success Rate</th><th>Top 5 Resources (By Avg Size)</th><th>Top 5 Resources (By Avg Time)</th></tr></thead>
<tbody>
{% for row in rows %}
<tr>
<td>{{ row.name }}</td>
<td>{{ row.requests }}</td>
<td>{{ row.avg_kb | fixed(2) }}</td>
<td>{{ row.avg_time | fixed(2) }}</td>
<td>{{ row.p90_time | fixed(2) }}</td>
<td>{{ row.success_rate | fixed(2) }}%</td>
<td class="resource-cards-cell">{{ resource_cards(row.by_size, 'size') }}</td>
<td class="resource-cards-cell">{{ resource_cards(row.by_time, 'time') }}</td>
</tr>
{% endfor %}
</tbody>
</table>
</div>
"""

API_LEGEND_TEMPLATE = """<div class="api-metrics-legend">
<h3>API Metrics Legend</h3>
<table class="metrics-definition-table">
<thead><tr><th>Metric</th><th>Description</th></tr></thead>
<tbody>
{% for name, description in definitions %}
<tr><td class="metric-name">{{ name }}</td><td>{{ description }}</td></tr>
{% endfor %}
</tbody>
</table>
</div>
"""

TEMPLATES = {
    'styles.html': REPORT_STYLES,
    'document.html': DOCUMENT_TEMPLATE,
    'header.html': HEADER_TEMPLATE,
    'section.html': SECTION_TEMPLATE,
    'metrics_table.html': METRICS_TABLE_TEMPLATE,
    'pass_fail_table.html': PASS_FAIL_TABLE_TEMPLATE,
    'breakdown_table.html': BREAKDOWN_TABLE_TEMPLATE,
    'resource_types_by_transaction.html': RESOURCE_TYPES_BY_TRANSACTION_TEMPLATE,
    'resource_card.html': RESOURCE_CARD_MACRO,
    'top_resources.html': TOP_RESOURCES_TEMPLATE,
    'legend.html': LEGEND_TEMPLATE,
    'browser_summary.html': BROWSER_SUMMARY_TEMPLATE,
    'core_web_vitals.html': CORE_WEB_VITALS_TEMPLATE,
    'mantle_table.html': MANTLE_TABLE_TEMPLATE,
    'detailed_stats.html': DETAILED_STATS_TEMPLATE,
    'protocol_summary.html': PROTOCOL_SUMMARY_TEMPLATE,
    'transaction_performance.html': TRANSACTION_PERFORMANCE_TEMPLATE,
    'protocol_resource_types.html': PROTOCOL_RESOURCE_TYPES_TEMPLATE,
    'network_analysis.html': NETWORK_ANALYSIS_TEMPLATE,
    'api_legend.html': API_LEGEND_TEMPLATE,
}


@lru_cache(maxsize=1)
def get_environment() -> Environment:
    """Jinja2 environment over the embedded report templates."""
    env = Environment(
        loader=DictLoader(TEMPLATES),
        autoescape=select_autoescape(default=True, default_for_string=True),
        trim_blocks=True,
        lstrip_blocks=True,
    )
    env.filters['fixed'] = to_fixed
    env.filters['time_color'] = time_color
    env.filters['short_url'] = short_url
    env.filters['shorten_url'] = shorten_url
    return env


def render(name: str, **context) -> str:
    """Render one of the embedded templates.

    Raises:
        ValueError: If the template fails to render
    """
    try:
        return get_environment().get_template(name).render(**context)
    except TemplateError as e:
        raise ValueError(f"Failed to render report template '{name}': {e}") from e
