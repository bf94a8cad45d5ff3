"""Parsing of fping progress lines into measurement records."""

import math
import re
from datetime import datetime

from fpingmon.models import MeasurementRecord

# Token positions in "host : xmt/rcv/%loss = 10/10/0%, min/avg/max = 1.0/1.2/1.5"
HOST_INDEX = 0
LOSS_INDEX = 4
TIMING_INDEX = 7
TIMING_MIN_TOKENS = 5

# fping -D prefixes per-probe lines with an epoch, e.g. "[1700000000.123456]".
# -Q summary lines normally have no prefix; a prefixed one is still accepted.
_TIMESTAMP_TOKEN = re.compile(r"^\[(\d+(?:\.\d+)?)\]$")

# Plain ASCII decimal numbers only: no "1_0", no non-ASCII digits
_INT_TEXT = re.compile(r"^[+-]?[0-9]+$")
_FLOAT_TEXT = re.compile(r"^[+-]?(?:[0-9]+(?:\.[0-9]*)?|\.[0-9]+)(?:[eE][+-]?[0-9]+)?$")


def parse_int_or_default(text: str | None, default: int = 0) -> int:
    """Parse an integer, returning default instead of raising."""
    if text is None or not _INT_TEXT.match(text):
        return default
    return int(text)


def parse_float_or_default(text: str | None, default: float = 0.0) -> float:
    """Parse a finite decimal float, returning default instead of raising.

    Only plain decimal or exponent notation is accepted, so "nan", "inf",
    and underscore-grouped digits count as parse failures.
    """
    if text is None or not _FLOAT_TEXT.match(text):
        return default
    value = float(text)
    if not math.isfinite(value):
        return default
    return value


def _split_descriptor(token: str) -> list[str]:
    """Split a slash-delimited descriptor, dropping empty pieces."""
    return [part for part in token.split("/") if part]


def _pop_timestamp(tokens: list[str]) -> datetime | None:
    """Remove a leading fping -D timestamp token and return its value."""
    if not tokens:
        return None
    match = _TIMESTAMP_TOKEN.match(tokens[0])
    if not match:
        return None
    tokens.pop(0)
    try:
        return datetime.fromtimestamp(float(match.group(1)))
    except (OverflowError, OSError, ValueError):
        return None


def parse_fping_line(line: str | None) -> MeasurementRecord | None:
    """Parse one fping progress line (pure function).

    Expected shapes (whitespace-separated, widths vary):
    - With timing: "host : xmt/rcv/%loss = 10/10/0%, min/avg/max = 1.01/1.23/1.45"
    - Without timing: "host : xmt/rcv/%loss = 10/0/100%"

    Lines with fewer than two tokens (banners, blank lines, "[12:34:56]"
    summary headers) are not data lines. A positional field that is missing
    or a descriptor with fewer than three slash-separated parts also rejects
    the line. Numeric fields that fail to parse fall back to zero without
    rejecting the line, and each timing value falls back independently.

    Args:
        line: One line of fping diagnostic output, with or without newline

    Returns:
        MeasurementRecord, or None if the line is not a data line

    Examples:
        >>> parse_fping_line("h1 : xmt/rcv/%loss = 1/1/0%, min/avg/max = 1.0/1.5/2.0").avg_ms
        1.5
        >>> parse_fping_line("") is None
        True
    """
    if not line:
        return None

    tokens = line.split()
    ts = _pop_timestamp(tokens)
    if len(tokens) < 2:
        return None

    host = tokens[HOST_INDEX]

    if len(tokens) <= LOSS_INDEX:
        return None
    loss_parts = _split_descriptor(tokens[LOSS_INDEX])
    if len(loss_parts) < 3:
        return None
    loss_percent = parse_int_or_default(loss_parts[2].rstrip("%,"))

    min_ms = avg_ms = max_ms = 0.0
    if len(tokens) > TIMING_MIN_TOKENS:
        if len(tokens) <= TIMING_INDEX:
            return None
        timing_parts = _split_descriptor(tokens[TIMING_INDEX])
        if len(timing_parts) < 3:
            return None
        min_ms = parse_float_or_default(timing_parts[0])
        avg_ms = parse_float_or_default(timing_parts[1])
        max_ms = parse_float_or_default(timing_parts[2])

    if ts is None:
        ts = datetime.now()

    return MeasurementRecord(
        host=host,
        loss_percent=loss_percent,
        min_ms=min_ms,
        avg_ms=avg_ms,
        max_ms=max_ms,
        ts=ts,
    )
