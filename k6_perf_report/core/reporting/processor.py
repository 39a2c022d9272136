"""End-to-end processing of a k6 results file into an HTML report."""

import json
import os
from pathlib import Path
from typing import Optional, Union

from ...utils.logging import get_logger
from ...utils.validation import VALID_TEST_TYPES, parse_bool
from .browser_report import generate_browser_report
from .models import ReportResult
from .parser import (
    collect_metrics,
    extract_run_window,
    extract_test_meta,
    iter_points,
    resolve_test_type,
    select_transactions,
    split_transactions,
)
from .protocol_report import generate_api_report, generate_protocol_report
from .tables import build_header, report_styles
from .templates import render


def report_paths(input_file: Union[str, Path]):
    """Return the ``(report, debug)`` output paths written beside the results file."""
    path = Path(input_file)
    return (
        path.with_name(f"{path.stem}_report.html"),
        path.with_name(f"{path.stem}_debug_data.json"),
    )


def process_k6_output(
    input_file: Union[str, Path],
    test_type: Optional[str] = None,
    aut: Optional[str] = None,
    base_url: Optional[str] = None,
    capture_mantle: Optional[bool] = None,
    min_points: int = 5,
    write_debug: bool = True,
) -> ReportResult:
    """Generate the HTML report for a k6 JSON Lines results file.

    Args:
        input_file: k6 ``--out json`` results file
        test_type: Explicit report type (BROWSER, API, PROTOCOL or MULTI)
        aut: Application under test shown in the header
        base_url: Base URL shown in the header
        capture_mantle: Include Mantle metrics; defaults to ``CAPTURE_MANTLE_METRICS`` (true)
        min_points: Minimum points for a transaction to be reported
        write_debug: Also write the aggregated data as ``<stem>_debug_data.json``

    Returns:
        ReportResult describing what was written

    Raises:
        FileNotFoundError: If the results file does not exist
    """
    path = Path(input_file)
    if not path.exists():
        raise FileNotFoundError(f"k6 results file not found: {path}")

    log = get_logger(__name__, {'file': path.name})
    points = list(iter_points(path))
    log.info(f"Read {len(points)} points")

    start, end = extract_run_window(points)
    meta = extract_test_meta(path, aut=aut, base_url=base_url)
    resolved = resolve_test_type(path, meta, os.getenv('K6_REPORT_TEST_TYPE'), test_type)
    if resolved not in VALID_TEST_TYPES:
        log.warning(f"Unknown test type '{resolved}', rendering a BROWSER report")
        resolved = 'BROWSER'

    if capture_mantle is None:
        capture_mantle = parse_bool(os.getenv('CAPTURE_MANTLE_METRICS'), default=True)

    # MULTI runs combine browser and protocol scenarios; the browser view is the primary one
    report_type = 'BROWSER' if resolved == 'MULTI' else resolved

    metrics = collect_metrics(points, report_type, capture_mantle)
    transactions = select_transactions(metrics.transaction_counts, min_points)
    html_transactions, non_html_transactions = split_transactions(transactions)
    log.info(
        f"Found {len(html_transactions)} HTML transactions and "
        f"{len(non_html_transactions)} non-HTML transactions"
    )

    if report_type == 'BROWSER':
        sections = generate_browser_report(metrics, transactions, capture_mantle)
    elif report_type == 'API':
        sections = generate_api_report(metrics, html_transactions)
    else:
        sections = generate_protocol_report(metrics, transactions)

    document = render(
        'document.html',
        meta=meta,
        styles=report_styles(),
        header=build_header(meta, resolved, start, end),
        sections=sections,
    )

    report_path, debug_path = report_paths(path)
    report_path.write_text(document, encoding='utf-8')
    log.info(f"Report written to {report_path}")

    written_debug = None
    if write_debug:
        with open(debug_path, 'w', encoding='utf-8') as f:
            json.dump(metrics.to_dict(), f, indent=2)
        written_debug = str(debug_path)
        log.debug(f"Debug data written to {debug_path}")

    return ReportResult(
        report_path=str(report_path),
        test_type=resolved,
        transactions=transactions,
        debug_path=written_debug,
        point_count=len(points),
    )
