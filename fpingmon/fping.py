"""Launching and supervising a continuous fping process."""

import logging
import shutil
import subprocess
import threading
from typing import Iterable, TextIO

from fpingmon.driver import StreamStats, run_stream
from fpingmon.sink import Sink

logger = logging.getLogger(__name__)

# -B 1: no backoff between retries, -D: timestamps, -r 0: no retries,
# -O 0: TOS 0, -Q: periodic quiet summaries on stderr, -p: period, -l: loop
FPING_ARGS = ["-B", "1", "-D", "-r", "0", "-O", "0", "-Q", "10", "-p", "1000", "-l"]


class FpingNotFoundError(FileNotFoundError):
    """The fping binary could not be located."""


def find_fping(path: str | None = None) -> str:
    """Resolve the fping executable.

    Args:
        path: Explicit binary name or path; defaults to "fping" on PATH

    Returns:
        Absolute path of the executable

    Raises:
        FpingNotFoundError: If nothing executable is found
    """
    candidate = path or "fping"
    resolved = shutil.which(candidate)
    if resolved is None:
        raise FpingNotFoundError(f"fping executable not found: {candidate}")
    return resolved


def build_fping_command(
    fping_path: str,
    hosts: Iterable[str],
    period_ms: int = 1000,
    summary_interval_s: int = 10,
) -> list[str]:
    """Build the argv for a continuous fping run.

    Args:
        fping_path: Path to the fping executable
        hosts: Target hostnames or addresses; blank entries are skipped
        period_ms: Interval between probes to one host in milliseconds
        summary_interval_s: Seconds between summary lines on stderr

    Returns:
        List of command arguments for subprocess
    """
    if period_ms <= 0:
        raise ValueError("period_ms must be positive")
    if summary_interval_s <= 0:
        raise ValueError("summary_interval_s must be positive")

    targets = [host.strip() for host in hosts if host and host.strip()]
    if not targets:
        raise ValueError("at least one host is required")

    args = list(FPING_ARGS)
    args[args.index("-Q") + 1] = str(summary_interval_s)
    args[args.index("-p") + 1] = str(period_ms)
    return [fping_path, *args, *targets]


class FpingProcess:
    """A running fping process whose stderr is the progress line stream.

    Only start/stop is handled here. Reading and parsing happen in
    run_stream(), and restart policy belongs to the caller.
    """

    def __init__(
        self,
        hosts: Iterable[str],
        fping_path: str | None = None,
        period_ms: int = 1000,
        summary_interval_s: int = 10,
    ):
        self.hosts = list(hosts)
        self.fping_path = fping_path
        self.period_ms = period_ms
        self.summary_interval_s = summary_interval_s
        self._process: subprocess.Popen | None = None

    @property
    def running(self) -> bool:
        return self._process is not None and self._process.poll() is None

    def start(self):
        """Launch fping.

        Raises:
            FpingNotFoundError: If the binary cannot be found
            ValueError: If the host list or intervals are invalid
            OSError: If the process cannot be spawned
        """
        if self._process is not None:
            raise RuntimeError("fping process already started")

        cmd = build_fping_command(
            find_fping(self.fping_path),
            self.hosts,
            period_ms=self.period_ms,
            summary_interval_s=self.summary_interval_s,
        )
        logger.debug("Starting fping: %s", " ".join(cmd))

        self._process = subprocess.Popen(
            cmd,
            stdin=subprocess.DEVNULL,
            stdout=subprocess.DEVNULL,
            stderr=subprocess.PIPE,
            text=True,
            bufsize=1,  # line buffered
            shell=False,
        )
        logger.info("fping started: pid=%d, hosts=%d", self._process.pid, len(self.hosts))

    def lines(self) -> TextIO:
        """Return the stderr stream carrying progress lines."""
        if self._process is None or self._process.stderr is None:
            raise RuntimeError("fping process not started")
        return self._process.stderr

    def stop(self, timeout: float = 2.0) -> int | None:
        """Terminate fping, killing it if it does not exit within timeout.

        Returns:
            Process exit code, or None if it was never started
        """
        if self._process is None:
            return None

        if self._process.poll() is None:
            logger.debug("Terminating fping: pid=%d", self._process.pid)
            self._process.terminate()
            try:
                self._process.wait(timeout=timeout)
            except subprocess.TimeoutExpired:
                logger.warning("fping did not exit after %.1fs, killing", timeout)
                self._process.kill()
                self._process.wait()

        return self._process.returncode

    def close(self) -> int | None:
        """Stop the process and release the stderr pipe."""
        returncode = self.stop()
        if self._process is not None and self._process.stderr is not None:
            self._process.stderr.close()
        return returncode

    def __enter__(self):
        self.start()
        return self

    def __exit__(self, exc_type, exc, tb):
        self.close()


def _stop_on_cancel(process: FpingProcess, cancel_event: threading.Event, done: threading.Event):
    """Stop process once cancel_event fires, or return when done is set."""
    while not done.is_set():
        if cancel_event.wait(0.1):
            logger.info("Cancellation requested, stopping fping")
            process.stop()
            return


def monitor(
    hosts: Iterable[str],
    sink: Sink,
    cancel_event: threading.Event | None = None,
    **process_kwargs,
) -> StreamStats:
    """Run one monitoring session: launch fping and drain it into sink.

    Blocks until fping exits, its output closes, or cancel_event is set.
    Stopping the process closes its stderr, which unblocks the pending read.

    Args:
        hosts: Targets to probe
        sink: Receiver for parsed records
        cancel_event: Optional event that ends the session when set
        **process_kwargs: Passed through to FpingProcess

    Returns:
        StreamStats from the stream driver

    Raises:
        FpingNotFoundError, OSError: If fping cannot be launched
        StreamReadError: If reading fping output fails
    """
    process = FpingProcess(hosts, **process_kwargs)
    process.start()

    done = threading.Event()
    if cancel_event is not None:
        watcher = threading.Thread(
            target=_stop_on_cancel,
            args=(process, cancel_event, done),
            name="fping-cancel-watcher",
            daemon=True,
        )
        watcher.start()

    try:
        return run_stream(process.lines(), sink, cancel_event)
    finally:
        done.set()
        returncode = process.close()
        logger.info("fping exited: returncode=%s", returncode)
