"""
Locating and claiming the CSV files produced by Export-SPODataAccessGovernanceInsight.

The export cmdlet writes its CSV asynchronously into the PowerShell working
directory under a generic name that contains the report id. The file is
claimed right away by moving it to a name that also carries the entity and a
timestamp, so reports exported in the same run never collide.
"""
import logging
import os
import random
import shutil
import time
from datetime import datetime
from pathlib import Path
from typing import Callable, Optional

from governance.exceptions import ExportFileNotFound, ExportFileTimeout

logger = logging.getLogger("dag.governance.export_files")

TIMESTAMP_FORMAT = "%Y%m%d%H%M%S"
INITIAL_POLL_INTERVAL = 0.5
MAX_POLL_INTERVAL = 5.0


def find_export_file(workdir: str, report_id: str) -> Optional[Path]:
    """Returns the first ``*.csv`` in ``workdir`` whose name contains ``report_id``, by name order."""
    matches = sorted(
        p for p in Path(workdir).iterdir()
        if p.is_file() and report_id in p.name and p.name.lower().endswith(".csv")
    )
    return matches[0] if matches else None


def _size(path: Path) -> Optional[int]:
    try:
        return path.stat().st_size
    except FileNotFoundError:
        return None


def wait_for_export_file(
    workdir: str,
    report_id: str,
    timeout: float,
    initial_interval: float = INITIAL_POLL_INTERVAL,
    max_interval: float = MAX_POLL_INTERVAL,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> Path:
    """
    Polls ``workdir`` until the exported file for ``report_id`` exists and its
    size is unchanged across two consecutive checks.

    The interval doubles after every check, capped at ``max_interval``, and
    the last check happens at the deadline.

    Raises:
        ExportFileNotFound: no matching file appeared within ``timeout`` seconds
        ExportFileTimeout: a matching file appeared but was still growing
    """
    deadline = clock() + timeout
    interval = initial_interval
    seen: Optional[Path] = None
    last_size: Optional[int] = None

    while True:
        candidate = find_export_file(workdir, report_id)
        if candidate is not None:
            size = _size(candidate)
            if size is not None and candidate == seen and size == last_size:
                logger.debug(f"Export file {candidate.name} is stable at {size} bytes")
                return candidate
            seen, last_size = candidate, size

        remaining = deadline - clock()
        if remaining <= 0:
            break
        sleep(min(interval, remaining))
        interval = min(interval * 2, max_interval)

    if seen is None:
        raise ExportFileNotFound(f"No exported CSV containing '{report_id}' found in {workdir} after {timeout}s")
    raise ExportFileTimeout(f"Exported file {seen.name} was still being written after {timeout}s")


def export_file_name(entity: str, report_id: str, when: Optional[datetime] = None) -> str:
    stamp = (when or datetime.now()).strftime(TIMESTAMP_FORMAT)
    return f"{entity}_{report_id}_{stamp}.csv"


def claim_export_file(
    source: Path,
    entity: str,
    report_id: str,
    destination_dir: str,
    when: Optional[datetime] = None,
) -> Path:
    """
    Moves ``source`` to ``<destination_dir>/<entity>_<reportId>_<timestamp>.csv``.

    A random suffix is added when that name is already taken.
    """
    os.makedirs(destination_dir, exist_ok=True)
    target = Path(destination_dir) / export_file_name(entity, report_id, when)
    stem = target.stem
    while target.exists():
        target = target.with_name(f"{stem}_{random.randint(0, 9999):04d}.csv")

    shutil.move(str(source), str(target))
    logger.debug(f"Moved {source} -> {target}")
    return target
