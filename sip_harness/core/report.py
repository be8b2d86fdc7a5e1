"""
Run report for SIP Harness sessions.

Reports are structured JSON documents containing:
- Metadata (version, timestamp, server)
- Every request/response exchange with its latency
- Latency statistics overall and per transaction
- Failures with structured error codes
"""

import json
from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import TYPE_CHECKING, Dict, List, Optional, Sequence

import numpy as np

from .errors import SipError

if TYPE_CHECKING:
    from ..protocol.message import Message


class ReportStatus(Enum):
    """Overall run status."""
    OK = 'ok'
    ERROR = 'error'


@dataclass
class Exchange:
    """One request and its correlated response."""
    transaction: str
    request: Optional['Message'] = None
    response: Optional['Message'] = None
    latency: Optional[float] = None   # seconds
    error: Optional[SipError] = None

    @property
    def ok(self) -> bool:
        return self.error is None and self.response is not None

    def to_dict(self) -> dict:
        return {
            'transaction': self.transaction,
            'request': self.request.to_dict() if self.request else None,
            'response': self.response.to_dict() if self.response else None,
            'latency_ms': round(self.latency * 1000, 3) if self.latency is not None else None,
            'error': self.error.to_dict() if self.error else None,
        }


@dataclass
class LatencyStats:
    """Latency statistics in milliseconds."""
    count: int = 0
    mean_ms: float = 0.0
    stddev_ms: float = 0.0
    min_ms: float = 0.0
    max_ms: float = 0.0

    # Percentiles
    p50_ms: float = 0.0
    p90_ms: float = 0.0
    p95_ms: float = 0.0
    p99_ms: float = 0.0

    @classmethod
    def from_samples(cls, seconds: Sequence[float]) -> 'LatencyStats':
        """Compute statistics from latencies in seconds."""
        if not seconds:
            return cls()

        arr = np.asarray(seconds, dtype=float) * 1000.0
        return cls(
            count=int(arr.size),
            mean_ms=float(np.mean(arr)),
            stddev_ms=float(np.std(arr)),
            min_ms=float(np.min(arr)),
            max_ms=float(np.max(arr)),
            p50_ms=float(np.percentile(arr, 50)),
            p90_ms=float(np.percentile(arr, 90)),
            p95_ms=float(np.percentile(arr, 95)),
            p99_ms=float(np.percentile(arr, 99)),
        )

    def to_dict(self) -> dict:
        return {k: round(v, 3) if isinstance(v, float) else v for k, v in vars(self).items()}


@dataclass
class RunReport:
    """
    Complete session report.

    Example:
        report = RunReport(server='localhost:6001')
        report.add(exchange)
        print(report.summary())
    """
    # Metadata
    version: int = 1
    created_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    harness_version: str = '1.0.0'
    server: Optional[str] = None

    exchanges: List[Exchange] = field(default_factory=list)
    duration_seconds: float = 0.0

    def add(self, exchange: Exchange) -> Exchange:
        self.exchanges.append(exchange)
        return exchange

    @property
    def failures(self) -> List[Exchange]:
        return [e for e in self.exchanges if e.error is not None]

    @property
    def status(self) -> ReportStatus:
        return ReportStatus.ERROR if self.failures else ReportStatus.OK

    @property
    def latency(self) -> LatencyStats:
        return LatencyStats.from_samples(
            [e.latency for e in self.exchanges if e.latency is not None]
        )

    def per_transaction(self) -> Dict[str, LatencyStats]:
        """Latency statistics keyed by transaction name, in first-seen order."""
        samples: Dict[str, List[float]] = {}
        for exchange in self.exchanges:
            bucket = samples.setdefault(exchange.transaction, [])
            if exchange.latency is not None:
                bucket.append(exchange.latency)
        return {name: LatencyStats.from_samples(values) for name, values in samples.items()}

    def to_dict(self) -> dict:
        """Convert to dictionary."""
        return {
            'version': self.version,
            'created_at': self.created_at,
            'harness_version': self.harness_version,
            'server': self.server,
            'status': self.status.value,
            'duration_seconds': round(self.duration_seconds, 6),
            'latency': self.latency.to_dict(),
            'transactions': {
                name: stats.to_dict() for name, stats in self.per_transaction().items()
            },
            'exchanges': [e.to_dict() for e in self.exchanges],
            'errors': [e.error.to_dict() for e in self.failures],
        }

    def to_json(self, indent: int = 2) -> str:
        """Convert to JSON string."""
        return json.dumps(self.to_dict(), indent=indent)

    def summary(self) -> str:
        """Get human-readable summary."""
        lat = self.latency
        lines = [
            "SIP Harness Run Report",
            f"Status: {self.status.value.upper()}",
            "",
            f"Exchanges: {len(self.exchanges)}",
            f"Failures:  {len(self.failures)}",
            f"Duration:  {self.duration_seconds:.3f}s",
            "",
            "Latency:",
            f"  Mean:  {lat.mean_ms:.3f} ms",
            f"  P50:   {lat.p50_ms:.3f} ms",
            f"  P99:   {lat.p99_ms:.3f} ms",
            f"  Max:   {lat.max_ms:.3f} ms",
        ]

        for exchange in self.failures:
            lines.append(f"Error [{exchange.transaction}]: {exchange.error}")

        return '\n'.join(lines)
