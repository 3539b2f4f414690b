"""
Write statistics for writers, kept in a private Prometheus registry.
"""

import logging
import time
from typing import Any, Dict

from prometheus_client import CollectorRegistry, Counter, generate_latest

from .base import RequestOutcome, StatusCategory

LOG = logging.getLogger(__name__)


class WriteMetrics:
    """
    Tracks requests, delivered lines and failures for one writer.

    Each instance owns its registry so several writers in one process do not
    collide on metric names.
    """

    def __init__(self, writer_name: str = 'influxdb'):
        self.writer_name = writer_name
        self.registry = CollectorRegistry()
        self.requests = Counter(
            'influxline_write_requests',
            'Write requests issued, by outcome',
            ['writer', 'outcome'],
            registry=self.registry,
        )
        self.lines_written = Counter(
            'influxline_lines_written',
            'Lines accepted by the write endpoint',
            ['writer'],
            registry=self.registry,
        )
        self.lines_failed = Counter(
            'influxline_lines_failed',
            'Lines in requests the write endpoint did not accept',
            ['writer'],
            registry=self.registry,
        )
        self.last_error = None
        self.start = time.time_ns()

    def record(self, outcome: RequestOutcome) -> None:
        self.requests.labels(writer=self.writer_name, outcome=outcome.category.value).inc()
        if outcome.ok:
            self.lines_written.labels(writer=self.writer_name).inc(outcome.line_count)
        else:
            self.lines_failed.labels(writer=self.writer_name).inc(outcome.line_count)
            self.last_error = outcome.error_message

    def _sample(self, name: str, **labels) -> int:
        value = self.registry.get_sample_value(name, dict(writer=self.writer_name, **labels))
        return int(value or 0)

    def elapsed_ms(self) -> int:
        """Get elapsed time in milliseconds."""
        return (time.time_ns() - self.start) // 1_000_000

    def get_stats(self) -> Dict[str, Any]:
        """Get write statistics."""
        requests_by_outcome = {
            category.value: self._sample('influxline_write_requests_total', outcome=category.value)
            for category in StatusCategory
        }
        return {
            'requests': sum(requests_by_outcome.values()),
            'errors': sum(v for k, v in requests_by_outcome.items() if k != StatusCategory.SUCCESS.value),
            'requests_by_outcome': requests_by_outcome,
            'lines_written': self._sample('influxline_lines_written_total'),
            'lines_failed': self._sample('influxline_lines_failed_total'),
            'elapsed_ms': self.elapsed_ms(),
            'last_error': self.last_error,
        }

    def exposition(self) -> str:
        """Render the counters in the Prometheus text format."""
        return generate_latest(self.registry).decode('utf-8')
