"""Baseline-vs-comparison tree diff driver.

This module wires the stages together:

    walk baseline tree → resolve pair (fast path exits here)
        → dispatch to worker pool → join barrier → sort → report

The traversal thread does discovery, resolution and dispatch
sequentially; only decoding and scoring run on the pool. Every counter
lives on the returned :class:`DiffRun`, so several runs can happen in
the same process.
"""

import sys
import time
from dataclasses import dataclass, field
from pathlib import Path

from src.config import DiffConfig
from src.dispatch import Dispatcher
from src.pairing import PairStatus, resolve_pair
from src.records import DiffRecord, PairError, PairFailure
from src.report import sort_records, write_report
from src.walker import iter_candidates

# Exit codes; 0 means differences were found. EXIT_ERROR covers both pairs
# that could not be compared and runs that could not start or finish
# (invalid config, missing baseline root, unwritable report).
EXIT_DIFFS_FOUND = 0
EXIT_NO_DIFFS = 1
EXIT_ERROR = 2


@dataclass
class DiffRun:
    """Counters and results of one run.

    Attributes:
        total: Matching image files seen under the baseline root
        pairs: Files whose counterpart exists (identical or not)
        identical: Pairs short-circuited by the byte-identity check
        records: Scored records, sorted by descending score (their paths
            are released once the report has been written)
        ranking: ``(baseline, comparison, score)`` copies of the records
        missing: Comparison paths that did not exist
        failures: Pairs that could not be opened or decoded
        report_path: Report file, or None until the report is written
        elapsed: Wall-clock seconds for the run
    """

    total: int = 0
    pairs: int = 0
    identical: int = 0
    records: list[DiffRecord] = field(default_factory=list)
    ranking: list[tuple[str, str, float]] = field(default_factory=list)
    missing: list[Path] = field(default_factory=list)
    failures: list[PairFailure] = field(default_factory=list)
    report_path: Path | None = None
    elapsed: float = 0.0

    @property
    def diffs(self) -> int:
        return len(self.records)

    @property
    def exit_code(self) -> int:
        if self.failures:
            return EXIT_ERROR
        return EXIT_DIFFS_FOUND if self.records else EXIT_NO_DIFFS


def _format_duration(seconds: float) -> str:
    """Format seconds as ``1h 02m 03s`` / ``5m 03s`` / ``12s``."""
    if seconds < 0:
        return "—"
    h = int(seconds // 3600)
    m = int((seconds % 3600) // 60)
    s = int(seconds % 60)
    if h > 0:
        return f"{h}h {m:02d}m {s:02d}s"
    if m > 0:
        return f"{m}m {s:02d}s"
    return f"{s}s"


def run_diff(config: DiffConfig) -> DiffRun:
    """Compare the two trees described by *config* and write the report.

    Missing counterparts are warned about on stderr and skipped. Pairs
    that cannot be opened or decoded are recorded as failures (or raise
    :class:`~src.records.PairError` when ``config.strict`` is set, in
    which case no report is written).

    Args:
        config: Run configuration

    Returns:
        DiffRun with counters, sorted records and failures

    Raises:
        FileNotFoundError: If the baseline root is not a directory
        PairError: In strict mode, on the first pair that cannot be compared
    """
    if not config.baseline_root.is_dir():
        msg = f"Baseline directory not found: {config.baseline_root}"
        raise FileNotFoundError(msg)

    run = DiffRun()
    start_time = time.monotonic()

    with Dispatcher(
        config.max_workers, strict=config.strict, progress=config.progress
    ) as dispatcher:
        for candidate in iter_candidates(
            config.baseline_root, config.comparison_root, config.extension
        ):
            run.total += 1
            resolution = resolve_pair(candidate, config.baseline_root, config.comparison_root)

            if resolution.status is PairStatus.MISSING:
                run.missing.append(candidate.comparison)
                print(
                    f"No pair for {candidate.baseline} at {candidate.comparison}.",
                    file=sys.stderr,
                )
                continue

            run.pairs += 1
            if resolution.status is PairStatus.IDENTICAL:
                run.identical += 1
            elif resolution.status is PairStatus.FAILED:
                if config.strict:
                    raise PairError(resolution.failure)
                run.failures.append(resolution.failure)
            else:
                dispatcher.dispatch(
                    DiffRecord(baseline=resolution.baseline, comparison=resolution.comparison)
                )

        records, failures = dispatcher.join()

    run.failures.extend(failures)

    if config.skip_unchanged:
        unchanged = [r for r in records if r.score == 0.0]
        run.identical += len(unchanged)
        for record in unchanged:
            record.baseline.release()
            record.comparison.release()
        records = [r for r in records if r.score != 0.0]

    run.records = sort_records(records)
    run.ranking = [(str(r.baseline.path), str(r.comparison.path), r.score) for r in run.records]
    write_report(run.records, config.output, relative_links=config.relative_links)
    run.report_path = config.output

    run.elapsed = time.monotonic() - start_time
    return run


def print_summary(run: DiffRun, config: DiffConfig) -> None:
    """Print the plain-text run summary to stdout."""
    print(f"{run.total} {config.extension} files in {config.baseline_root}")
    print(f"{run.pairs} pairs in {config.comparison_root}")
    print(f"{run.identical} files are identical.")
    print(f"{run.diffs} diffs written to {run.report_path}")
    if run.failures:
        print(f"{len(run.failures)} pairs could not be compared")
    print(f"Completed in {_format_duration(run.elapsed)}")
