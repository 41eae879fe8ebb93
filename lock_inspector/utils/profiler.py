"""
Profiling utilities for the InnoDB Lock Inspector.

Measures how expensive one snapshot collection is, since it runs several
introspection queries against a live server:
- Wall-clock time (perf_counter)
- CPU usage (psutil)
- Resident memory (RSS via psutil, sampled at start and end)

Usage example:
    from lock_inspector.utils.profiler import profile_block

    with profile_block("collect") as stats:
        batches = collect_batches(conn)

    print(stats.duration_seconds, stats.peak_rss_bytes)
"""

from __future__ import annotations

import contextlib
import time
from dataclasses import dataclass, field
from typing import Any, Generator, Optional

import psutil


@dataclass
class ProfileStats:
    """
    Container for profiling measurements.
    """

    label: str
    start_ts: float = field(default=0.0)
    end_ts: float = field(default=0.0)
    duration_seconds: float = field(default=0.0)
    peak_rss_bytes: Optional[int] = field(default=None)
    cpu_percent: Optional[float] = field(default=None)
    extra: dict[str, Any] = field(default_factory=dict)

    def as_log_extra(self) -> dict[str, Any]:
        """Flatten the measurements into a dict suitable for `log.info(extra=...)`."""
        return {
            "profile_label": self.label,
            "duration_ms": round(self.duration_seconds * 1000, 2),
            "peak_rss_bytes": self.peak_rss_bytes,
            "cpu_percent": self.cpu_percent,
            **self.extra,
        }


@contextlib.contextmanager
def profile_block(label: str) -> Generator[ProfileStats, None, None]:
    """
    Context manager to profile a block of code.

    Parameters
    ----------
    label : str
        Human-friendly label for the profiled block.

    Notes
    -----
    Collections are short and I/O bound, so RSS is sampled at the block
    boundaries only instead of from a background thread.
    """
    stats = ProfileStats(label=label)
    process = psutil.Process()

    # CPU percent needs a priming call
    process.cpu_percent(interval=None)
    peak_rss = process.memory_info().rss

    stats.start_ts = time.perf_counter()
    try:
        yield stats
    finally:
        stats.end_ts = time.perf_counter()
        stats.duration_seconds = stats.end_ts - stats.start_ts
        try:
            peak_rss = max(peak_rss, process.memory_info().rss)
            stats.cpu_percent = process.cpu_percent(interval=None)
        except psutil.Error:
            pass
        stats.peak_rss_bytes = peak_rss if peak_rss > 0 else None


__all__ = ["ProfileStats", "profile_block"]
