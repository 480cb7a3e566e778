"""Process memory sampling."""

from __future__ import annotations

import os
import sys


def _rss_from_proc() -> int | None:
    try:
        with open("/proc/self/statm", "rb") as fh:
            resident_pages = int(fh.read().split()[1])
    except (OSError, ValueError, IndexError):
        return None
    return resident_pages * os.sysconf("SC_PAGE_SIZE")


def _rss_from_rusage() -> int | None:
    try:
        import resource
    except ImportError:
        return None
    peak = resource.getrusage(resource.RUSAGE_SELF).ru_maxrss
    # ru_maxrss is bytes on macOS, kilobytes elsewhere
    return peak if sys.platform == "darwin" else peak * 1024


def memory_usage() -> int:
    """Resident memory of the whole process in bytes (0 if unknown).

    Falls back to the peak resident size where the current one cannot be
    read.
    """
    for probe in (_rss_from_proc, _rss_from_rusage):
        value = probe()
        if value is not None:
            return value
    return 0
