"""Tests for k6 JSON Lines parsing and metric aggregation."""

import logging
from datetime import datetime, timedelta, timezone

import pytest

from k6_perf_report.core.reporting.models import TestMeta
from k6_perf_report.core.reporting.parser import (
    collect_metrics,
    extract_run_window,
    extract_test_meta,
    iter_points,
    merge_protocol_requests,
    parse_timestamp,
    resolve_test_type,
    select_transactions,
    split_transactions,
)


class TestIterPoints:
    """Tests for iter_points."""

    def test_yields_only_points(self, write_results, point):
        path = write_results([
            {"type": "Metric", "metric": "browser_lcp", "data": {"type": "trend"}},
            point("browser_lcp", 800, transaction="home"),
            point("browser_fcp", 400, transaction="home"),
        ])
        points = list(iter_points(path))
        assert [p["metric"] for p in points] == ["browser_lcp", "browser_fcp"]

    def test_skips_blank_and_malformed_lines(self, write_results, point, caplog):
        path = write_results([
            point("browser_lcp", 800, transaction="home"),
            "",
            "{not json",
            "[1, 2, 3]",
            point("browser_lcp", 900, transaction="home"),
        ])
        with caplog.at_level(logging.WARNING, logger="k6_perf_report.core.reporting.parser"):
            points = list(iter_points(path))

        assert len(points) == 2
        assert "Skipped 2 malformed line(s)" in caplog.text

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError, match="k6 results file not found"):
            list(iter_points(tmp_path / "missing.json"))


class TestTimestamps:
    """Tests for parse_timestamp and extract_run_window."""

    def test_nanosecond_fraction(self):
        parsed = parse_timestamp("2024-05-01T10:00:00.123456789Z")
        assert parsed == datetime(2024, 5, 1, 10, 0, 0, 123456, tzinfo=timezone.utc)

    def test_offset_and_naive(self):
        assert parse_timestamp("2024-05-01T12:00:00+02:00") == datetime(2024, 5, 1, 10, tzinfo=timezone.utc)
        assert parse_timestamp("2024-05-01T10:00:00").tzinfo is not None

    def test_invalid(self):
        assert parse_timestamp(None) is None
        assert parse_timestamp("yesterday") is None
        assert parse_timestamp(12345) is None

    def test_run_window(self, point):
        points = [
            point("browser_lcp", 1, time="2024-05-01T10:00:05Z", transaction="home"),
            point("browser_lcp", 1, time="2024-05-01T10:00:01Z", transaction="home"),
            point("browser_lcp", 1, time="not a time", transaction="home"),
            point("browser_lcp", 1, time="2024-05-01T10:00:09.5Z", transaction="home"),
        ]
        start, end = extract_run_window(points)
        assert start == datetime(2024, 5, 1, 10, 0, 1, tzinfo=timezone.utc)
        assert end == datetime(2024, 5, 1, 10, 0, 9, 500000, tzinfo=timezone.utc)

    def test_run_window_defaults(self):
        start, end = extract_run_window([])
        assert end - start == timedelta(hours=1)
        assert start.tzinfo is not None


class TestTestMeta:
    """Tests for extract_test_meta and resolve_test_type."""

    @pytest.fixture(autouse=True)
    def clean_env(self, monkeypatch):
        monkeypatch.delenv("AUT", raising=False)
        monkeypatch.delenv("BASE_URL", raising=False)

    def test_from_file_name(self):
        meta = extract_test_meta("results/browser_SHOP_loadtest.json")
        assert meta.test_type == "BROWSER"
        assert meta.aut == "SHOP"
        assert meta.scenario == "loadtest"
        assert meta.base_url == ""

    def test_unrecognised_file_name(self):
        meta = extract_test_meta("results.json")
        assert meta.test_type is None
        assert meta.aut is None

    def test_explicit_values_override(self, monkeypatch):
        monkeypatch.setenv("BASE_URL", "https://qa.example.com")
        meta = extract_test_meta("BROWSER_SHOP_smoke.json", aut="BLOG")
        assert meta.aut == "BLOG"
        assert meta.base_url == "https://qa.example.com"

    def test_aut_from_environment(self, monkeypatch):
        monkeypatch.setenv("AUT", "NEWS")
        assert extract_test_meta("BROWSER_SHOP_smoke.json").aut == "NEWS"

    def test_file_name_keywords_win(self):
        meta = TestMeta(test_type="BROWSER", aut="SHOP")
        assert resolve_test_type("PROTOCOL_SHOP_smoke.json", meta, env_test_type="BROWSER") == "PROTOCOL"
        assert resolve_test_type("api_SHOP_smoke.json", meta) == "API"

    def test_environment_then_meta(self):
        meta = TestMeta(test_type="MULTI", aut="SHOP")
        assert resolve_test_type("MULTI_SHOP_smoke.json", meta, env_test_type="protocol") == "PROTOCOL"
        assert resolve_test_type("MULTI_SHOP_smoke.json", meta) == "MULTI"
        assert resolve_test_type("results.json", TestMeta()) == "BROWSER"

    def test_cli_override(self):
        meta = TestMeta(test_type="BROWSER", aut="SHOP")
        assert resolve_test_type("BROWSER_SHOP_smoke.json", meta, cli_test_type="api") == "API"

    def test_browser_aut_forces_browser(self):
        meta = TestMeta(test_type="PROTOCOL", aut="BROWSER")
        assert resolve_test_type("PROTOCOL_BROWSER_smoke.json", meta) == "BROWSER"


class TestCollectBrowserMetrics:
    """Tests for collect_metrics on browser runs."""

    def test_trends_by_transaction(self, browser_points):
        metrics = collect_metrics(browser_points, "BROWSER", capture_mantle=True)
        assert metrics.browser["browser_lcp"]["home"] == [800, 900, 1000, 1100, 1200]
        assert metrics.browser["browser_lcp"]["article"] == [1500]
        assert metrics.values("browser_page_load_time", "home") == [2000, 2200, 2400, 2600, 2800]
        assert metrics.values("browser_page_load_time", "missing") == []

    def test_counts(self, browser_points):
        metrics = collect_metrics(browser_points, "BROWSER")
        assert metrics.point_count == 40
        assert metrics.transaction_counts == {"home": 38, "article": 2}

    def test_page_load_success(self, browser_points):
        metrics = collect_metrics(browser_points, "BROWSER")
        assert metrics.page_load_success["home"].passes == 5
        assert metrics.page_load_success["home"].fails == 0
        assert metrics.page_load_success["article"].fails == 1

    def test_resources(self, browser_points):
        metrics = collect_metrics(browser_points, "BROWSER")
        [js] = metrics.resources["js"]
        assert js.url == "https://cdn.example.com/static/app.bundle.js"
        assert js.duration == 120
        assert js.size == 20480
        assert js.initiator_type == "script"
        assert js.transaction == "home"
        [img] = metrics.resources["img"]
        assert img.initiator_type == "unknown"
        [css] = metrics.resources["css"]
        assert css.status == 404
        assert not css.is_success
        assert metrics.non_html_resource_count() == 3

    def test_mantle_capture(self, point):
        points = [point("browser_mantle_first_ad_load", 1200, transaction="home")]
        assert collect_metrics(points, "BROWSER", True).values("browser_mantle_first_ad_load", "home") == [1200]
        assert collect_metrics(points, "BROWSER", False).values("browser_mantle_first_ad_load", "home") == []

    def test_skips_non_numeric_values(self, point):
        points = [
            point("browser_lcp", True, transaction="home"),
            point("browser_lcp", "12", transaction="home"),
            point("browser_lcp", None, transaction="home"),
            {"type": "Point", "metric": "browser_lcp", "data": {"value": 5}},
        ]
        metrics = collect_metrics(points, "BROWSER")
        assert metrics.values("browser_lcp", "home") == []
        assert metrics.point_count == 3

    def test_protocol_metrics_ignored_for_browser(self, protocol_points):
        metrics = collect_metrics(protocol_points, "BROWSER")
        assert metrics.all_resources() == []
        assert dict(metrics.protocol_ttlb) == {}

    def test_protocol_resource_metrics(self, point):
        points = [
            point("protocol_resource_js", 55, transaction="home", url="https://x.com/a.js", status="0"),
            point("protocol_resource_video", 10, transaction="home", url="https://x.com/v.mp4"),
        ]
        metrics = collect_metrics(points, "BROWSER")
        [record] = metrics.all_resources()
        assert record.type == "js"
        assert record.status == 0
        assert not record.is_success


class TestCollectProtocolMetrics:
    """Tests for collect_metrics on protocol and API runs."""

    def test_timings_and_success(self, protocol_points):
        metrics = collect_metrics(protocol_points, "PROTOCOL")
        assert metrics.protocol_ttlb["home"] == [250]
        assert metrics.protocol_ttlb["home_nonhtml"] == [90, 300]
        assert metrics.protocol_ttfb["home_nonhtml"] == [40, 250]
        assert metrics.protocol_success["home_nonhtml"].passes == 1
        assert metrics.protocol_success["home_nonhtml"].fails == 1

    def test_requests_merged(self, protocol_points):
        metrics = collect_metrics(protocol_points, "PROTOCOL")
        records = {record.url: record for record in metrics.all_resources()}
        assert len(records) == 3

        page = records["https://www.example.com/"]
        assert (page.duration, page.ttfb, page.size, page.type) == (250, 200, 0, "other")

        script = records["https://www.example.com/static/main.js"]
        assert (script.duration, script.ttfb, script.size, script.type) == (95, 45, 2048, "js")

        image = records["https://www.example.com/images/logo.png"]
        assert (image.duration, image.ttfb, image.status, image.type) == (300, 250, 500, "img")

    def test_repeated_requests_merge_in_order(self, point):
        url = "https://api.example.com/items"
        points = [
            point("http_req_duration", 100, transaction="items", url=url),
            point("http_req_waiting", 50, transaction="items", url=url),
            point("http_req_duration", 200, transaction="items", url=url),
            point("http_req_waiting", 60, transaction="items", url=url),
        ]
        records = merge_protocol_requests(
            (p["metric"], p["data"]["value"], p["data"]["tags"]) for p in points
        )
        assert [(r.duration, r.ttfb) for r in records] == [(100, 50), (200, 60)]

    def test_requests_without_url_or_transaction_dropped(self):
        records = merge_protocol_requests([
            ("http_req_duration", 100, {"transaction": "items"}),
            ("http_req_duration", 100, {"url": "https://api.example.com/"}),
        ])
        assert records == []


class TestTransactionSelection:
    """Tests for select_transactions and split_transactions."""

    def test_min_points(self):
        counts = {"home": 38, "article": 2, "unknown": 100}
        assert select_transactions(counts) == ["home"]
        assert select_transactions(counts, min_points=1) == ["article", "home"]

    def test_split(self):
        html, non_html = split_transactions(["home", "home_nonhtml", "Article_NONHTML"])
        assert html == ["home"]
        assert non_html == ["home_nonhtml", "Article_NONHTML"]
