"""Bulk mode: scan many projects concurrently against one IoC table."""

import json
import threading
import time
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait
from dataclasses import dataclass, field
from datetime import datetime
from pathlib import Path
from typing import Any, Callable, Dict, List, Optional

from .core.ioc_table import IoCTable
from .exceptions import BulkScanError
from .scanner import ProjectScanner, ScanResult
from .utils.logging import capture_logs, get_logger
from .utils.path_utils import sanitize_path_for_filename

logger = get_logger("bulk")

DEFAULT_WORKERS = 4
DEFAULT_RESULTS_DIR = "results"

STATUS_CLEAN = "clean"
STATUS_VULNERABLE = "vulnerable"
STATUS_ERROR = "error"


def read_paths_file(path: Path) -> List[str]:
    """Read project paths, one per line.

    Blank lines and lines starting with ``#`` are ignored.

    Args:
        path: Paths file

    Returns:
        Paths in file order

    Raises:
        BulkScanError: If the file cannot be read or lists no paths
    """
    try:
        text = path.read_text(encoding="utf-8")
    except (OSError, UnicodeDecodeError) as e:
        raise BulkScanError(f"Failed to read paths file {path}: {e}") from e

    paths = []
    for line in text.splitlines():
        line = line.strip()
        if line and not line.startswith("#"):
            paths.append(line)

    if not paths:
        raise BulkScanError(f"No paths found in {path}")

    return paths


@dataclass
class ProjectOutcome:
    """Result of one project in a bulk run."""

    path: str
    status: str
    result: Optional[ScanResult] = None
    error: Optional[str] = None
    log: str = ""

    @property
    def match_count(self) -> int:
        return len(self.result.findings) if self.result else 0

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {"path": self.path, "status": self.status}
        if self.error:
            data["error"] = self.error
        if self.result:
            data.update({
                "manifestsScanned": self.result.manifests_scanned,
                "lockfilesScanned": self.result.lockfiles_scanned,
                "packagesChecked": self.result.packages_checked,
                "matchesFound": self.match_count,
            })
        return data


@dataclass
class BulkSummary:
    """Aggregate outcome of a bulk run.

    A cancelled run holds only the projects that completed.
    """

    total_paths: int
    start_time: datetime = field(default_factory=datetime.now)
    end_time: Optional[datetime] = None
    outcomes: List[ProjectOutcome] = field(default_factory=list)
    cancelled: bool = False

    @property
    def successful_scans(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status != STATUS_ERROR)

    @property
    def failed_scans(self) -> int:
        return sum(1 for outcome in self.outcomes if outcome.status == STATUS_ERROR)

    @property
    def total_matches(self) -> int:
        return sum(outcome.match_count for outcome in self.outcomes)

    @property
    def duration_seconds(self) -> float:
        end = self.end_time or datetime.now()
        return (end - self.start_time).total_seconds()

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the ``summary.json`` shape."""
        return {
            "startTime": self.start_time.isoformat(),
            "endTime": self.end_time.isoformat() if self.end_time else None,
            "duration": f"{self.duration_seconds:.3f}s",
            "totalPaths": self.total_paths,
            "completedPaths": len(self.outcomes),
            "successfulScans": self.successful_scans,
            "failedScans": self.failed_scans,
            "totalMatches": self.total_matches,
            "cancelled": self.cancelled,
            "pathResults": {outcome.path: outcome.to_dict() for outcome in self.outcomes},
        }


class BulkScanner:
    """Runs project scans on a fixed-size thread pool.

    Every worker shares the same read-only IoC table. At most ``workers``
    projects are in flight. Setting ``cancel_event`` (or pressing Ctrl-C
    during ``run``) stops dispatching new projects; projects already running
    finish normally.
    """

    def __init__(
        self,
        table: IoCTable,
        workers: int = DEFAULT_WORKERS,
        lockfile_only: bool = False,
        cancel_event: Optional[threading.Event] = None,
        poll_interval: float = 0.1,
    ) -> None:
        """Initialize the bulk scanner.

        Args:
            table: Shared IoC table
            workers: Number of concurrent project scans
            lockfile_only: Skip package.json manifests
            cancel_event: Event that cancels the run when set
            poll_interval: Seconds between cancellation checks
        """
        if workers < 1:
            raise ValueError("workers must be at least 1")

        self.table = table
        self.workers = workers
        self.lockfile_only = lockfile_only
        self.cancel_event = cancel_event or threading.Event()
        self.poll_interval = poll_interval

    def run(
        self,
        paths: List[str],
        on_outcome: Optional[Callable[[ProjectOutcome, int, int], None]] = None,
    ) -> BulkSummary:
        """Scan every path.

        Args:
            paths: Project directories
            on_outcome: Called as ``on_outcome(outcome, completed, total)`` on
                the calling thread as each project finishes

        Returns:
            Summary in completion order
        """
        summary = BulkSummary(total_paths=len(paths))
        pending = list(reversed(paths))
        in_flight: Dict[Future, str] = {}

        logger.info(f"Starting bulk scan of {len(paths)} paths with {self.workers} workers")

        with ThreadPoolExecutor(max_workers=self.workers, thread_name_prefix="iocshield") as executor:
            while pending or in_flight:
                while pending and len(in_flight) < self.workers and not self.cancel_event.is_set():
                    path = pending.pop()
                    in_flight[executor.submit(self._scan_project, path)] = path

                if not in_flight:
                    break

                try:
                    done, _ = wait(list(in_flight), timeout=self.poll_interval, return_when=FIRST_COMPLETED)
                except KeyboardInterrupt:
                    logger.warning("Interrupted, waiting for running scans to finish")
                    self.cancel_event.set()
                    continue

                for future in done:
                    in_flight.pop(future)
                    outcome = future.result()
                    summary.outcomes.append(outcome)
                    if on_outcome:
                        on_outcome(outcome, len(summary.outcomes), summary.total_paths)

        summary.cancelled = self.cancel_event.is_set() and len(summary.outcomes) < len(paths)
        summary.end_time = datetime.now()

        if summary.cancelled:
            logger.warning(
                f"Bulk scan cancelled after {len(summary.outcomes)} of {len(paths)} paths"
            )
        else:
            logger.info(
                f"Bulk scan complete: {summary.successful_scans} succeeded, "
                f"{summary.failed_scans} failed, {summary.total_matches} matches"
            )

        return summary

    def _scan_project(self, path: str) -> ProjectOutcome:
        """Scan one project, turning any failure into an error outcome."""
        with capture_logs() as captured:
            started = time.perf_counter()
            try:
                result = ProjectScanner(self.table, lockfile_only=self.lockfile_only).scan(Path(path))
            except Exception as e:
                logger.error(f"Scan of {path} failed: {e}")
                return ProjectOutcome(path=path, status=STATUS_ERROR, error=str(e), log=captured.getvalue())

            logger.debug(f"Scan of {path} took {time.perf_counter() - started:.3f}s")

        status = STATUS_VULNERABLE if result.has_findings else STATUS_CLEAN
        return ProjectOutcome(path=path, status=status, result=result, log=captured.getvalue())


def write_bulk_results(summary: BulkSummary, output_dir: Path) -> Path:
    """Write per-project reports and ``summary.json``.

    Files go to a ``<output_dir>/<YYYYmmdd-HHMMSS>`` directory: ``<name>.json``
    and ``<name>.log`` for scanned projects, ``<name>.error.txt`` for failed
    ones, where ``<name>`` is the sanitized project path.

    Args:
        summary: Completed (or cancelled) bulk run
        output_dir: Parent results directory

    Returns:
        The timestamped directory
    """
    results_dir = output_dir / summary.start_time.strftime("%Y%m%d-%H%M%S")
    results_dir.mkdir(parents=True, exist_ok=True)

    summary_data = summary.to_dict()

    for outcome in summary.outcomes:
        stem = sanitize_path_for_filename(outcome.path)
        path_data = summary_data["pathResults"][outcome.path]

        if outcome.status == STATUS_ERROR:
            error_file = results_dir / f"{stem}.error.txt"
            error_file.write_text(outcome.error or "", encoding="utf-8")
            path_data["outputFile"] = str(error_file)
            continue

        result_file = results_dir / f"{stem}.json"
        result_file.write_text(json.dumps(outcome.result.to_dict(), indent=2), encoding="utf-8")
        path_data["resultFile"] = str(result_file)

        log_file = results_dir / f"{stem}.log"
        log_file.write_text(outcome.log, encoding="utf-8")
        path_data["outputFile"] = str(log_file)

    (results_dir / "summary.json").write_text(json.dumps(summary_data, indent=2), encoding="utf-8")
    logger.info(f"Bulk results written to {results_dir}")
    return results_dir
