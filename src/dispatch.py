"""Dispatch of differing pairs onto a bounded worker pool.

Pairs that survive the fast path are scored on a
:class:`~concurrent.futures.ThreadPoolExecutor`. Decoding (Pillow) and
scoring (numpy) release the GIL for most of their work, so threads give
real parallelism without the pickling cost of a process pool; the open
memory maps also cannot cross a process boundary.

Architecture:
- The traversal thread is the only caller of :meth:`Dispatcher.dispatch`,
  so the list of jobs is appended from one thread only.
- Each job owns a disjoint pair of sides and writes only to its own
  :class:`~src.records.DiffRecord`.
- At most ``2 * max_workers`` jobs are in flight. Every in-flight job
  holds two open mappings, so this window bounds file descriptors and
  memory. When the window is full the caller blocks until a job finishes.
- If the pool refuses a job (``RuntimeError`` from ``submit``, e.g. the
  interpreter cannot start another thread) the job runs inline in the
  caller. ``max_workers=0`` runs every job inline.
- :meth:`Dispatcher.join` is the barrier: it returns only after every
  dispatched job has finished.
"""

import threading
from concurrent.futures import FIRST_COMPLETED, Future, ThreadPoolExecutor, wait

from tqdm import tqdm

from src.codec import DecodeError
from src.records import DiffRecord, PairError, PairFailure
from src.scoring import score_pair

# In-flight jobs allowed per worker before dispatch blocks
IN_FLIGHT_PER_WORKER = 2


class _ScoreJob:
    """One pair's unit of work.

    A job may be queued on the pool and also be run inline when
    ``submit`` fails after queueing it, so execution is claimed once
    under a lock and the second caller becomes a no-op.
    """

    def __init__(self, record: DiffRecord) -> None:
        self.record = record
        self.error: DecodeError | None = None
        self.done = False
        self._claimed = False
        self._lock = threading.Lock()

    def _claim(self) -> bool:
        with self._lock:
            if self._claimed:
                return False
            self._claimed = True
            return True

    def __call__(self) -> bool:
        """Run the job; return False if it was already claimed."""
        if not self._claim():
            return False
        try:
            score_pair(self.record)
        except DecodeError as e:
            self.error = e
        finally:
            self.done = True
        return True

    def failure(self) -> PairFailure:
        return PairFailure(
            baseline=str(self.record.baseline.path),
            comparison=str(self.record.comparison.path),
            stage="decode",
            message=str(self.error),
        )


class Dispatcher:
    """Runs diff workers concurrently and collects their records.

    Use as a context manager so the pool is always shut down::

        with Dispatcher(max_workers=8) as dispatcher:
            for record in records:
                dispatcher.dispatch(record)
            records, failures = dispatcher.join()
    """

    def __init__(
        self,
        max_workers: int,
        strict: bool = False,
        progress: bool = False,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            max_workers: Pool size; ``0`` scores every pair inline
            strict: Raise :class:`PairError` on the first decode failure
            progress: Show a tqdm progress bar of scored pairs
        """
        if max_workers < 0:
            msg = f"max_workers must be >= 0, got {max_workers}"
            raise ValueError(msg)
        self.max_workers = max_workers
        self.strict = strict
        self.inline_runs = 0
        self._jobs: list[_ScoreJob] = []
        self._in_flight: dict[Future, _ScoreJob] = {}
        self._executor: ThreadPoolExecutor | None = None
        if max_workers > 0:
            self._executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="image-diff"
            )
        self._pbar = tqdm(desc="Scoring", unit="pair", disable=not progress)
        self._pbar_lock = threading.Lock()

    def __enter__(self) -> "Dispatcher":
        return self

    def __exit__(self, *exc_info: object) -> None:
        self.close()

    @property
    def dispatched(self) -> int:
        return len(self._jobs)

    def dispatch(self, record: DiffRecord) -> None:
        """Start scoring *record*; ownership of its sides passes to the job."""
        job = _ScoreJob(record)
        self._jobs.append(job)

        if self._executor is None:
            self._run_inline(job)
            return

        while len(self._in_flight) >= IN_FLIGHT_PER_WORKER * self.max_workers:
            done, _ = wait(self._in_flight, return_when=FIRST_COMPLETED)
            self._collect(done)

        try:
            future = self._executor.submit(job)
        except RuntimeError:
            self._run_inline(job)
            return
        future.add_done_callback(self._advance)
        self._in_flight[future] = job

    def join(self) -> tuple[list[DiffRecord], list[PairFailure]]:
        """Wait for every dispatched job, then return records and failures.

        Records are returned in dispatch order; failed pairs are released
        entirely and reported as :class:`PairFailure` entries instead.
        """
        if self._in_flight:
            done, _ = wait(self._in_flight)
            self._collect(done)
        if self._executor is not None:
            # Jobs queued by a submit() that then raised have no future
            self._executor.shutdown(wait=True)

        records: list[DiffRecord] = []
        failures: list[PairFailure] = []
        for job in self._jobs:
            if job.error is not None:
                failures.append(job.failure())
                job.record.baseline.release()
                job.record.comparison.release()
            elif job.done:
                records.append(job.record)
        self._pbar.close()
        return records, failures

    def close(self) -> None:
        """Shut the pool down, releasing sides of jobs that never ran."""
        if self._executor is not None:
            self._executor.shutdown(wait=True, cancel_futures=True)
        for job in self._jobs:
            if not job.done:
                job.record.baseline.release_buffers()
                job.record.comparison.release_buffers()
        self._in_flight.clear()
        self._pbar.close()

    def _run_inline(self, job: _ScoreJob) -> None:
        self.inline_runs += 1
        if job():
            self._tick()
            self._finished(job)

    def _collect(self, done: set[Future]) -> None:
        for future in done:
            job = self._in_flight.pop(future)
            # Re-raises anything other than a decode failure
            if future.result():
                self._finished(job)

    def _advance(self, future: Future) -> None:
        # Runs on the worker thread as soon as the job ends
        if not future.cancelled() and future.exception() is None and future.result():
            self._tick()

    def _tick(self) -> None:
        with self._pbar_lock:
            self._pbar.update(1)

    def _finished(self, job: _ScoreJob) -> None:
        if job.error is not None and self.strict:
            raise PairError(job.failure())
