"""Sink abstraction for parsed measurement records."""

import logging
from collections import deque
from typing import Protocol

from fpingmon.models import MeasurementRecord

logger = logging.getLogger(__name__)


class SinkWriteError(Exception):
    """Raised by a sink that cannot accept a record."""


class Sink(Protocol):
    """Protocol defining the interface for record sinks.

    write() is called serially from a single reader thread, once per record
    and in line-arrival order. Raising signals a failed write.
    """

    def write(self, record: MeasurementRecord) -> None:
        """Accept one measurement record."""
        ...


class CollectingSink:
    """Sink that keeps records in memory, optionally bounded."""

    def __init__(self, max_records: int | None = None):
        """Initialize with an optional cap on retained records."""
        if max_records is not None and max_records <= 0:
            raise ValueError("max_records must be positive")
        self._records = deque(maxlen=max_records)

    @property
    def records(self) -> list[MeasurementRecord]:
        """Records received so far, oldest first."""
        return list(self._records)

    def write(self, record: MeasurementRecord) -> None:
        self._records.append(record)

    def clear(self):
        self._records.clear()


class LoggingSink:
    """Sink that reports every record through logging."""

    def __init__(self, level: int = logging.INFO):
        self.level = level

    def write(self, record: MeasurementRecord) -> None:
        if record.has_timing:
            logger.log(
                self.level,
                "%s: loss=%d%% min=%.2fms avg=%.2fms max=%.2fms",
                record.host,
                record.loss_percent,
                record.min_ms,
                record.avg_ms,
                record.max_ms,
            )
        else:
            logger.log(self.level, "%s: loss=%d%% (no reply)", record.host, record.loss_percent)
