"""Fake fping output for fpingmon testing and simulation."""

import random
import threading
import time
from datetime import datetime
from typing import Iterable, Iterator


class _HostCounters:
    def __init__(self):
        self.xmt = 0
        self.rcv = 0


class FakeFpingSource:
    """Generates fping -Q style summary lines for a set of hosts."""

    def __init__(self, hosts: Iterable[str], seed: int | None = None):
        """Initialize with target hosts and optional random seed."""
        self.hosts = [host.strip() for host in hosts if host and host.strip()]
        if not self.hosts:
            raise ValueError("at least one host is required")

        # Isolated random instance for thread safety
        self._random = random.Random(seed)
        self._counters = {host: _HostCounters() for host in self.hosts}

        # Simulation parameters
        self.probes_per_round = 10
        self.base_latency = 25.0  # Base latency in ms
        self.latency_variance = 5.0  # Normal variance
        self.spike_probability = 0.05  # 5% chance of latency spike
        self.spike_multiplier = 3.0  # Spike makes latency 3x higher
        self.loss_probability = 0.02  # 2% chance per probe
        self.unreachable: set[str] = set()  # Hosts that never reply

    def _latency(self) -> float:
        if self._random.random() < self.spike_probability:
            latency = self.base_latency * self.spike_multiplier + self._random.gauss(
                0, self.latency_variance
            )
        else:
            latency = self.base_latency + self._random.gauss(0, self.latency_variance)
        return max(0.1, latency)

    def generate_line(self, host: str) -> str:
        """Generate the summary line for one host and advance its counters."""
        counters = self._counters[host]
        latencies = []
        for _ in range(self.probes_per_round):
            counters.xmt += 1
            if host in self.unreachable or self._random.random() < self.loss_probability:
                continue
            counters.rcv += 1
            latencies.append(self._latency())

        loss = round(100 * (counters.xmt - counters.rcv) / counters.xmt)
        line = f"{host:<15} : xmt/rcv/%loss = {counters.xmt}/{counters.rcv}/{loss}%"
        if not latencies:
            return line

        avg = sum(latencies) / len(latencies)
        return f"{line}, min/avg/max = {min(latencies):.2f}/{avg:.2f}/{max(latencies):.2f}"

    def generate_round(self) -> list[str]:
        """Generate a "[HH:MM:SS]" header followed by one line per host."""
        header = datetime.now().strftime("[%H:%M:%S]")
        return [header] + [self.generate_line(host) for host in self.hosts]

    def lines(
        self,
        rounds: int | None = None,
        interval_s: float = 0.0,
        cancel_event: threading.Event | None = None,
    ) -> Iterator[str]:
        """Yield newline-terminated lines; unbounded when rounds is None.

        interval_s paces rounds like fping -Q does. The generator ends early
        once cancel_event is set, which closes the stream for the reader.
        """
        completed = 0
        while rounds is None or completed < rounds:
            if completed and interval_s > 0:
                if cancel_event is not None:
                    if cancel_event.wait(interval_s):
                        return
                else:
                    time.sleep(interval_s)
            for line in self.generate_round():
                yield line + "\n"
            completed += 1
