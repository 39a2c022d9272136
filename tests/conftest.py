"""Test configuration for k6-perf-report."""

import json
import logging

import pytest


def make_point(metric, value, time="2024-05-01T10:00:00.000000000Z", **tags):
    """Build one k6 ``Point`` record."""
    return {
        "type": "Point",
        "metric": metric,
        "data": {"time": time, "value": value, "tags": tags},
    }


@pytest.fixture
def point():
    """Factory for k6 ``Point`` records."""
    return make_point


@pytest.fixture
def write_results(tmp_path):
    """Write records (dicts or raw strings) as a k6 JSON Lines file and return its path."""

    def _write(records, name="BROWSER_SHOP_smoke.json"):
        path = tmp_path / name
        lines = [record if isinstance(record, str) else json.dumps(record) for record in records]
        path.write_text("\n".join(lines) + "\n", encoding="utf-8")
        return path

    return _write


@pytest.fixture
def browser_points():
    """A small browser run: two transactions, page timings, vitals, resources."""
    points = [
        {"type": "Metric", "metric": "browser_lcp", "data": {"type": "trend"}},
    ]
    for i, (lcp, load, server) in enumerate([(800, 2000, 300), (900, 2200, 400), (1000, 2400, 500),
                                              (1100, 2600, 600), (1200, 2800, 700)]):
        time = f"2024-05-01T10:00:0{i}.123456789Z"
        points.extend([
            make_point("browser_lcp", lcp, time, transaction="home"),
            make_point("browser_fcp", lcp / 2, time, transaction="home"),
            make_point("browser_cls", 0.05, time, transaction="home"),
            make_point("browser_page_load_time", load, time, transaction="home"),
            make_point("browser_server_processing_time", server, time, transaction="home"),
            make_point("browser_network_time", server + 100, time, transaction="home"),
            make_point("browser_page_load_success", 1, time, transaction="home"),
        ])
    points.extend([
        make_point("browser_resource_js", 120, transaction="home",
                   url="https://cdn.example.com/static/app.bundle.js", size="20480", status="200",
                   initiatorType="script"),
        make_point("browser_resource_img", 300, transaction="home",
                   url="https://cdn.example.com/img/hero-banner.png", size="102400", status="200"),
        make_point("browser_resource_css", 80, transaction="home",
                   url="https://cdn.example.com/css/site.css", size="4096", status="404"),
        make_point("browser_page_load_success", 0, transaction="article"),
        make_point("browser_lcp", 1500, transaction="article"),
    ])
    return points


@pytest.fixture
def protocol_points():
    """A protocol run: one HTML page request and two non-HTML asset requests."""
    page = "https://www.example.com/"
    script = "https://www.example.com/static/main.js"
    image = "https://www.example.com/images/logo.png"
    return [
        make_point("http_req_duration", 250, transaction="home", url=page, status="200"),
        make_point("http_req_waiting", 200, transaction="home", url=page, status="200"),
        make_point("http_req_failed", 0, transaction="home", url=page, status="200"),
        make_point("http_req_duration", 90, transaction="home_nonhtml", url=script, status="200"),
        make_point("http_req_waiting", 40, transaction="home_nonhtml", url=script, status="200"),
        make_point("nonhtml_ttlb", 95, transaction="home_nonhtml", url=script, status="200"),
        make_point("nonhtml_ttfb", 45, transaction="home_nonhtml", url=script, status="200"),
        make_point("nonhtml_resource_stats", 2048, transaction="home_nonhtml", url=script, status="200"),
        make_point("http_req_failed", 0, transaction="home_nonhtml", url=script, status="200"),
        make_point("http_req_duration", 300, transaction="home_nonhtml", url=image, status="500"),
        make_point("http_req_waiting", 250, transaction="home_nonhtml", url=image, status="500"),
        make_point("http_req_failed", 1, transaction="home_nonhtml", url=image, status="500"),
    ]


@pytest.fixture
def restore_root_logger():
    """Undo handler and level changes made by ``setup_logging``."""
    root = logging.getLogger()
    handlers, level = list(root.handlers), root.level
    yield
    for handler in root.handlers:
        if handler not in handlers:
            handler.close()
    root.handlers[:] = handlers
    root.setLevel(level)
