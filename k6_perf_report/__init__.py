"""k6 Perf Report: k6 runner and HTML performance report generator."""

__version__ = "0.1.0"
