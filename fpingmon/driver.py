"""Stream driver feeding fping output lines through the parser into a sink."""

import logging
import threading
from dataclasses import dataclass
from typing import Iterable

from fpingmon.parser import parse_fping_line
from fpingmon.sink import Sink

logger = logging.getLogger(__name__)


class StreamReadError(Exception):
    """The line source failed and no further lines can be read."""


@dataclass
class StreamStats:
    """Counters for one run of the stream driver."""

    lines_read: int = 0
    records_written: int = 0
    lines_rejected: int = 0
    write_failures: int = 0
    cancelled: bool = False


def run_stream(
    lines: Iterable[str],
    sink: Sink,
    cancel_event: threading.Event | None = None,
) -> StreamStats:
    """Read lines until the source is exhausted, forwarding records to sink.

    Lines are handled strictly in arrival order on the calling thread. Lines
    that are not data lines are skipped. A sink that raises is logged and the
    loop carries on with the next line.

    The usual way to stop a live session is to close the upstream stream,
    which ends iteration. cancel_event is also checked between lines for
    sources that never close on their own.

    Args:
        lines: Iterable of text lines, e.g. a process's stderr pipe
        sink: Receiver for parsed records
        cancel_event: Optional event that stops the loop once set

    Returns:
        StreamStats for the run

    Raises:
        StreamReadError: If reading from the source fails
    """
    stats = StreamStats()
    iterator = iter(lines)

    while True:
        if cancel_event is not None and cancel_event.is_set():
            stats.cancelled = True
            logger.debug("Stream cancelled after %d lines", stats.lines_read)
            break

        try:
            line = next(iterator)
        except StopIteration:
            # Stopping the process closes the stream, so EOF may follow a cancel
            stats.cancelled = cancel_event is not None and cancel_event.is_set()
            logger.debug(
                "Stream closed after %d lines (cancelled=%s)", stats.lines_read, stats.cancelled
            )
            break
        except (OSError, UnicodeDecodeError) as e:
            raise StreamReadError(f"failed to read line {stats.lines_read + 1}: {e}") from e

        stats.lines_read += 1
        record = parse_fping_line(line.rstrip("\r\n"))
        if record is None:
            stats.lines_rejected += 1
            continue

        try:
            sink.write(record)
        except Exception as e:
            stats.write_failures += 1
            logger.warning(
                "Error writing record: host=%s, error=%s", record.host, str(e), exc_info=True
            )
            continue

        stats.records_written += 1

    logger.info(
        "Stream finished: lines=%d, records=%d, rejected=%d, write_failures=%d",
        stats.lines_read,
        stats.records_written,
        stats.lines_rejected,
        stats.write_failures,
    )
    return stats
