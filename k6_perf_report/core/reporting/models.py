"""Data containers filled by the k6 results parser and read by the report builders."""

from collections import defaultdict
from dataclasses import dataclass, field, asdict
from typing import Any, Dict, List, Optional

RESOURCE_TYPES = ['js', 'css', 'img', 'font', 'other', 'html']


@dataclass
class ResourceRecord:
    """One network resource request (browser resource timing or protocol request)."""

    url: str
    duration: float = 0.0
    ttfb: float = 0.0
    size: float = 0.0
    status: int = 200
    transaction: str = 'unknown'
    type: str = 'other'
    initiator_type: Optional[str] = None
    content_type: str = ''

    @property
    def is_success(self) -> bool:
        return 200 <= self.status < 400


@dataclass
class PassFailCounter:
    """Pass/fail tally for a single transaction."""

    requests: int = 0
    passes: int = 0
    fails: int = 0

    def record(self, passed: bool) -> None:
        self.requests += 1
        if passed:
            self.passes += 1
        else:
            self.fails += 1

    @property
    def pass_rate(self) -> float:
        if not self.requests:
            return 0.0
        return self.passes / self.requests * 100


@dataclass
class TestMeta:
    """Run metadata shown in the report header."""

    __test__ = False

    test_type: Optional[str] = None
    aut: Optional[str] = None
    scenario: Optional[str] = None
    base_url: str = ''


@dataclass
class ReportResult:
    """Outcome of a report generation run."""

    report_path: str
    test_type: str
    transactions: List[str]
    debug_path: Optional[str] = None
    point_count: int = 0


def _metric_table():
    return defaultdict(list)


@dataclass
class CollectedMetrics:
    """Everything aggregated from one k6 results file.

    Trend-style metrics are stored as ``{metric_name: {transaction: [values]}}``
    using the k6 metric name as key (``browser_lcp``, ``browser_mantle_first_ad_load``).
    """

    test_type: str = 'BROWSER'
    capture_mantle: bool = True
    point_count: int = 0
    transaction_counts: Dict[str, int] = field(default_factory=dict)
    browser: Dict[str, Dict[str, List[float]]] = field(default_factory=lambda: defaultdict(_metric_table))
    page_load_success: Dict[str, PassFailCounter] = field(default_factory=lambda: defaultdict(PassFailCounter))
    mantle: Dict[str, Dict[str, List[float]]] = field(default_factory=lambda: defaultdict(_metric_table))
    protocol_ttfb: Dict[str, List[float]] = field(default_factory=_metric_table)
    protocol_ttlb: Dict[str, List[float]] = field(default_factory=_metric_table)
    protocol_success: Dict[str, PassFailCounter] = field(default_factory=lambda: defaultdict(PassFailCounter))
    resources: Dict[str, List[ResourceRecord]] = field(
        default_factory=lambda: {resource_type: [] for resource_type in RESOURCE_TYPES}
    )

    def values(self, metric: str, transaction: str) -> List[float]:
        """Values of a browser or mantle trend for one transaction (empty if absent)."""
        source = self.mantle if metric.startswith('browser_mantle_') else self.browser
        if metric not in source:
            return []
        return source[metric].get(transaction, [])

    def add_resource(self, record: ResourceRecord) -> None:
        self.resources.setdefault(record.type, []).append(record)

    def all_resources(self) -> List[ResourceRecord]:
        return [record for records in self.resources.values() for record in records]

    def resources_for(self, transaction: str, types=None) -> List[ResourceRecord]:
        """Resources of the given types recorded under ``transaction``."""
        types = types or list(self.resources)
        return [
            record
            for resource_type in types
            for record in self.resources.get(resource_type, [])
            if record.transaction == transaction
        ]

    def non_html_resource_count(self) -> int:
        return sum(len(records) for resource_type, records in self.resources.items() if resource_type != 'html')

    def to_dict(self) -> Dict[str, Any]:
        """Plain-data view written to the ``*_debug_data.json`` file."""
        return {
            'test_type': self.test_type,
            'capture_mantle': self.capture_mantle,
            'point_count': self.point_count,
            'transaction_counts': dict(self.transaction_counts),
            'browser': {name: dict(by_txn) for name, by_txn in self.browser.items()},
            'browser_page_load_success': {txn: asdict(c) for txn, c in self.page_load_success.items()},
            'mantle': {name: dict(by_txn) for name, by_txn in self.mantle.items()},
            'protocol_ttfb': dict(self.protocol_ttfb),
            'protocol_ttlb': dict(self.protocol_ttlb),
            'protocol_req_success_rate': {txn: asdict(c) for txn, c in self.protocol_success.items()},
            'resource_details': {
                resource_type: [asdict(record) for record in records]
                for resource_type, records in self.resources.items()
            },
        }
