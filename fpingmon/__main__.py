"""Entry point for fpingmon."""

import logging
import os
import signal
import sys

from PySide6.QtCore import QCoreApplication, QThreadPool, QTimer

from fpingmon.fping import find_fping
from fpingmon.logging_config import configure_logging
from fpingmon.sink import LoggingSink
from fpingmon.workers import StreamWorker, fake_session, fping_session

# Configure logging early
configure_logging()
logger = logging.getLogger(__name__)

FPING_PATH_ENV = "FPINGMON_FPING"
PERIOD_ENV = "FPINGMON_PERIOD_MS"
SOURCE_ENV = "FPINGMON_SOURCE"

USAGE = "usage: python -m fpingmon HOST [HOST...]"


def _read_period_ms(default: int = 1000) -> int:
    value = os.environ.get(PERIOD_ENV, "").strip()
    if not value:
        return default
    try:
        parsed = int(value)
    except ValueError:
        logger.warning("Ignoring invalid %s=%r", PERIOD_ENV, value)
        return default
    return parsed if parsed > 0 else default


def build_session(hosts: list[str]):
    """Select the line source from the environment.

    Raises:
        FpingNotFoundError: If real fping is requested but unavailable
        ValueError: If the host list cannot be used
    """
    period_ms = _read_period_ms()

    if os.environ.get(SOURCE_ENV, "").lower() == "fake":
        logger.info("Using simulated fping output (%s=fake)", SOURCE_ENV)
        return fake_session(hosts, interval_s=period_ms / 1000.0)

    fping_path = os.environ.get(FPING_PATH_ENV) or None
    logger.info("Using fping at %s", find_fping(fping_path))
    return fping_session(hosts, fping_path=fping_path, period_ms=period_ms)


def main(argv: list[str] | None = None) -> int:
    """Main entry point; returns the process exit code."""
    argv = sys.argv if argv is None else argv
    hosts = [arg.strip() for arg in argv[1:] if arg.strip()]
    if not hosts:
        logger.error(USAGE)
        return 2

    try:
        session = build_session(hosts)
    except (OSError, ValueError) as e:
        logger.error("Cannot start monitoring: %s", e)
        return 1

    app = QCoreApplication.instance() or QCoreApplication(argv[:1])

    sink = LoggingSink()
    worker = StreamWorker(session)
    worker.setAutoDelete(False)
    exit_code = 0

    def on_error(message: str):
        nonlocal exit_code
        logger.error("Monitoring session failed: %s", message)
        exit_code = 1

    worker.signals.record_ready.connect(sink.write)
    worker.signals.error.connect(on_error)
    worker.signals.finished.connect(lambda stats: app.quit())

    # Ctrl+C stops fping; the worker then finishes and quits the event loop
    signal.signal(signal.SIGINT, lambda signum, frame: worker.stop())

    # Python signal handlers only run between bytecodes, so wake the loop periodically
    wakeup = QTimer()
    wakeup.timeout.connect(lambda: None)
    wakeup.start(200)

    logger.info("Monitoring %d hosts: %s", len(hosts), ", ".join(hosts))
    QThreadPool.globalInstance().start(worker)
    app.exec()
    QThreadPool.globalInstance().waitForDone()

    return exit_code


if __name__ == "__main__":
    sys.exit(main())
