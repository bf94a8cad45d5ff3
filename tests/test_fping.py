"""Unit tests for the fping process collaborator.

shutil.which is stubbed, so no fping binary is needed. Most tests stub
subprocess.Popen too; the live cancellation test runs a Python child instead.
"""

import io
import subprocess
import sys
import threading
import time
from unittest import mock

import pytest

from fpingmon.fping import (
    FPING_ARGS,
    FpingNotFoundError,
    FpingProcess,
    build_fping_command,
    find_fping,
    monitor,
)
from fpingmon.sink import CollectingSink

FPING = "/usr/sbin/fping"


class FakePopen:
    """Minimal stand-in for subprocess.Popen with a canned stderr."""

    def __init__(self, stderr_text=""):
        self.stderr = io.StringIO(stderr_text)
        self.pid = 4242
        self.returncode = None
        self.terminated = False
        self.killed = False

    def poll(self):
        return self.returncode

    def terminate(self):
        self.terminated = True
        self.returncode = -15

    def kill(self):
        self.killed = True
        self.returncode = -9

    def wait(self, timeout=None):
        return self.returncode


@pytest.fixture
def which():
    with mock.patch("fpingmon.fping.shutil.which", return_value=FPING) as patched:
        yield patched


class TestFindFping:
    """Test locating the fping binary."""

    def test_found_on_path(self, which):
        assert find_fping() == FPING
        which.assert_called_once_with("fping")

    def test_explicit_path(self, which):
        find_fping("/opt/fping/bin/fping")
        which.assert_called_once_with("/opt/fping/bin/fping")

    def test_not_found(self):
        with mock.patch("fpingmon.fping.shutil.which", return_value=None):
            with pytest.raises(FpingNotFoundError, match="fping executable not found"):
                find_fping()

    def test_not_found_is_os_error(self):
        """Test callers catching OSError also see a missing binary."""
        assert issubclass(FpingNotFoundError, OSError)


class TestBuildFpingCommand:
    """Test fping command construction."""

    def test_default_arguments(self):
        cmd = build_fping_command(FPING, ["a.example", "10.0.0.1"])

        assert cmd == [FPING, *FPING_ARGS, "a.example", "10.0.0.1"]
        assert cmd[1:13] == [
            "-B", "1", "-D", "-r", "0", "-O", "0", "-Q", "10", "-p", "1000", "-l",
        ]

    def test_custom_intervals(self):
        cmd = build_fping_command(FPING, ["h"], period_ms=500, summary_interval_s=5)

        assert cmd[cmd.index("-p") + 1] == "500"
        assert cmd[cmd.index("-Q") + 1] == "5"

    def test_default_args_not_mutated(self):
        build_fping_command(FPING, ["h"], period_ms=250)
        assert FPING_ARGS[FPING_ARGS.index("-p") + 1] == "1000"

    def test_blank_hosts_skipped(self):
        cmd = build_fping_command(FPING, [" h1 ", "", "  "])
        assert cmd[-1] == "h1"

    def test_no_hosts(self):
        with pytest.raises(ValueError, match="at least one host is required"):
            build_fping_command(FPING, ["", " "])

    def test_invalid_period(self):
        with pytest.raises(ValueError, match="period_ms must be positive"):
            build_fping_command(FPING, ["h"], period_ms=0)

    def test_invalid_summary_interval(self):
        with pytest.raises(ValueError, match="summary_interval_s must be positive"):
            build_fping_command(FPING, ["h"], summary_interval_s=-1)


class TestFpingProcess:
    """Test process lifecycle with a stubbed Popen."""

    def test_start_launches_with_stderr_pipe(self, which):
        fake = FakePopen()
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake) as popen:
            process = FpingProcess(["h1"], period_ms=2000)
            process.start()

        args, kwargs = popen.call_args
        assert args[0] == build_fping_command(FPING, ["h1"], period_ms=2000)
        assert kwargs["stderr"] == subprocess.PIPE
        assert kwargs["text"] is True
        assert kwargs["shell"] is False
        assert process.running is True
        assert process.lines() is fake.stderr

    def test_start_twice_rejected(self, which):
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=FakePopen()):
            process = FpingProcess(["h1"])
            process.start()
            with pytest.raises(RuntimeError, match="already started"):
                process.start()

    def test_lines_before_start(self):
        with pytest.raises(RuntimeError, match="not started"):
            FpingProcess(["h1"]).lines()

    def test_stop_terminates(self, which):
        fake = FakePopen()
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake):
            process = FpingProcess(["h1"])
            process.start()

        assert process.stop() == -15
        assert fake.terminated is True
        assert fake.killed is False
        assert process.running is False

    def test_stop_kills_after_timeout(self, which):
        fake = FakePopen()
        fake.wait = mock.Mock(side_effect=[subprocess.TimeoutExpired("fping", 2.0), -9])
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake):
            process = FpingProcess(["h1"])
            process.start()

        process.stop()

        assert fake.killed is True

    def test_stop_before_start(self):
        assert FpingProcess(["h1"]).stop() is None

    def test_context_manager_closes_pipe(self, which):
        fake = FakePopen()
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake):
            with FpingProcess(["h1"]) as process:
                assert process.running

        assert fake.terminated is True
        assert fake.stderr.closed is True

    def test_missing_binary_raises_before_spawn(self):
        with mock.patch("fpingmon.fping.shutil.which", return_value=None):
            with mock.patch("fpingmon.fping.subprocess.Popen") as popen:
                with pytest.raises(FpingNotFoundError):
                    FpingProcess(["h1"]).start()

        popen.assert_not_called()


class TestMonitor:
    """Test a full session over canned fping output."""

    def test_records_from_stderr(self, which):
        fake = FakePopen(
            "[10:00:00]\n"
            "host1 : xmt/rcv/%loss = 1/1/0%, min/avg/max = 1.00/1.00/1.00\n"
            "\n"
            "host2 : xmt/rcv/%loss = 1/0/100%\n"
        )
        sink = CollectingSink()
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake):
            stats = monitor(["host1", "host2"], sink)

        assert [(r.host, r.loss_percent, r.avg_ms) for r in sink.records] == [
            ("host1", 0, 1.0),
            ("host2", 100, 0.0),
        ]
        assert stats.records_written == 2
        assert fake.stderr.closed is True

    def test_cancelled_session_stops_process(self, which):
        fake = FakePopen("host1 : xmt/rcv/%loss = 1/0/100%\n")
        cancel_event = threading.Event()
        cancel_event.set()
        with mock.patch("fpingmon.fping.subprocess.Popen", return_value=fake):
            stats = monitor(["host1"], CollectingSink(), cancel_event)

        assert stats.cancelled is True
        assert fake.terminated is True

    def test_launch_failure_propagates(self, which):
        with mock.patch("fpingmon.fping.subprocess.Popen", side_effect=PermissionError("denied")):
            with pytest.raises(PermissionError):
                monitor(["host1"], CollectingSink())

    def test_cancel_unblocks_pending_read(self, which):
        """Test cancelling mid-read stops a live child and ends the session."""
        script = (
            "import sys, time\n"
            "sys.stderr.write('h1 : xmt/rcv/%loss = 1/1/0%, min/avg/max = 1.0/1.0/1.0\\n')\n"
            "sys.stderr.flush()\n"
            "time.sleep(60)\n"
        )
        spawned = []
        real_popen = subprocess.Popen

        def spawn(*args, **kwargs):
            process = real_popen(*args, **kwargs)
            spawned.append(process)
            return process

        sink = CollectingSink()
        cancel_event = threading.Event()
        timer = threading.Timer(1.0, cancel_event.set)

        with mock.patch(
            "fpingmon.fping.build_fping_command", return_value=[sys.executable, "-c", script]
        ), mock.patch("fpingmon.fping.subprocess.Popen", side_effect=spawn):
            timer.start()
            started = time.monotonic()
            try:
                stats = monitor(["h1"], sink, cancel_event)
            finally:
                timer.cancel()
            elapsed = time.monotonic() - started

        assert elapsed < 10.0
        assert [r.host for r in sink.records] == ["h1"]
        assert stats.cancelled is True
        assert spawned[0].poll() is not None
