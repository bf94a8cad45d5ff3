"""Data models for fpingmon measurements."""

from dataclasses import dataclass, field
from datetime import datetime


@dataclass(frozen=True)
class MeasurementRecord:
    """One loss/latency observation for one host at one poll instant.

    loss_percent is cumulative since fping started counting. min/avg/max are
    round-trip times in milliseconds and are all 0.0 when the line carried no
    timing data. Ordering of min/avg/max is taken from fping as-is.
    """

    host: str
    loss_percent: int = 0
    min_ms: float = 0.0
    avg_ms: float = 0.0
    max_ms: float = 0.0
    ts: datetime = field(default_factory=datetime.now, compare=False)

    def __post_init__(self):
        """Reject records without a host token."""
        if not self.host or not self.host.strip():
            raise ValueError("host cannot be empty")

    @property
    def has_timing(self) -> bool:
        """True when the source line carried a timing segment with data."""
        return bool(self.min_ms or self.avg_ms or self.max_ms)
