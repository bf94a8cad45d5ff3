"""Worker classes for background monitoring sessions."""

import logging
import threading
from functools import partial
from typing import Callable, Iterable

from PySide6.QtCore import QObject, QRunnable, Signal

from fpingmon.driver import StreamStats, run_stream
from fpingmon.fake_source import FakeFpingSource
from fpingmon.fping import monitor
from fpingmon.models import MeasurementRecord
from fpingmon.sink import Sink

logger = logging.getLogger(__name__)

Session = Callable[[Sink, threading.Event], StreamStats]


class WorkerSignals(QObject):
    """Signals for communicating between worker threads and main thread."""

    record_ready = Signal(object)  # Emits MeasurementRecord
    error = Signal(str)  # Emits error message
    finished = Signal(object)  # Emits StreamStats, or None after an error


class SignalSink:
    """Sink that forwards each record as a Qt signal."""

    def __init__(self, signals: WorkerSignals):
        self.signals = signals

    def write(self, record: MeasurementRecord) -> None:
        self.signals.record_ready.emit(record)


def fping_session(hosts: Iterable[str], **process_kwargs) -> Session:
    """Session that runs a real fping process for hosts."""
    return partial(_run_fping, list(hosts), process_kwargs)


def _run_fping(hosts, process_kwargs, sink, cancel_event):
    return monitor(hosts, sink, cancel_event, **process_kwargs)


def fake_session(
    hosts: Iterable[str],
    seed: int | None = None,
    interval_s: float = 1.0,
    rounds: int | None = None,
) -> Session:
    """Session that feeds simulated fping output for hosts."""
    source = FakeFpingSource(hosts, seed=seed)

    def run(sink: Sink, cancel_event: threading.Event) -> StreamStats:
        lines = source.lines(rounds=rounds, interval_s=interval_s, cancel_event=cancel_event)
        return run_stream(lines, sink, cancel_event)

    return run


class StreamWorker(QRunnable):
    """Worker that runs one monitoring session in a background thread."""

    def __init__(self, session: Session):
        super().__init__()
        self.session = session
        self.cancel_event = threading.Event()
        self.signals = WorkerSignals()

    def stop(self):
        """Request the session to end; the worker emits finished when it does."""
        logger.debug("Worker stop requested")
        self.cancel_event.set()

    def run(self):
        """Execute the session in background thread."""
        stats = None
        try:
            logger.debug("Worker starting")
            stats = self.session(SignalSink(self.signals), self.cancel_event)
            logger.debug(
                "Worker completed: records=%d, cancelled=%s",
                stats.records_written,
                stats.cancelled,
            )

        except Exception as e:
            # Emit error message back to main thread
            logger.exception("Worker exception: error=%s", str(e))
            self.signals.error.emit(str(e))

        finally:
            # Always signal completion
            self.signals.finished.emit(stats)
