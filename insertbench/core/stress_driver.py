"""Fixed-size pool of insert workers.

Each worker owns one store session for the whole run:

    acquire -> begin -> (next_batch -> execute)* until signal -> commit -> close

Workers share nothing but the cancellation signal and the connection
factory's round-robin counter. `run_until()` is the join barrier: it returns
only after every worker has committed (or failed) and closed its session.
"""

from __future__ import annotations

import asyncio
import logging

from insertbench.connectors.connection_factory import ConnectionFactory, close_quietly
from insertbench.core.cancellation import CancellationSignal
from insertbench.core.errors import EndpointUnreachable, WorkerExecutionFailed
from insertbench.core.log_context import CURRENT_WORKER_ID
from insertbench.core.workloads import Workload
from insertbench.models import WorkerFailurePolicy, WorkerStats

logger = logging.getLogger(__name__)


class StressDriver:
    """Runs `worker_count` insert workers until a cancellation signal fires.

    Attributes:
        worker_count: Number of workers; fixed for the lifetime of the driver
        failure_policy: Whether a worker failure aborts the run
        stats: Per-worker outcome of the last run, keyed by worker id
    """

    def __init__(
        self,
        factory: ConnectionFactory,
        workload: Workload,
        *,
        worker_count: int,
        failure_policy: WorkerFailurePolicy = WorkerFailurePolicy.FAIL,
    ) -> None:
        if int(worker_count) <= 0:
            raise ValueError(f"worker_count must be positive, got {worker_count}")
        self._factory = factory
        self._workload = workload
        self.worker_count = int(worker_count)
        self.failure_policy = WorkerFailurePolicy(failure_policy)

        self._worker_tasks: dict[int, asyncio.Task[None]] = {}
        self._abort = asyncio.Event()
        self.stats: dict[int, WorkerStats] = {}
        self.open_connections = 0
        self.peak_open_connections = 0

    @property
    def live_worker_ids(self) -> list[int]:
        """IDs of workers whose task has not completed yet."""
        return [wid for wid, task in self._worker_tasks.items() if not task.done()]

    @property
    def failed_workers(self) -> list[WorkerStats]:
        return [s for s in self.stats.values() if s.error is not None]

    def _should_stop(self, signal: CancellationSignal) -> bool:
        return signal.is_set() or self._abort.is_set()

    def _connection_opened(self) -> None:
        self.open_connections += 1
        self.peak_open_connections = max(self.peak_open_connections, self.open_connections)

    def _connection_closed(self) -> None:
        self.open_connections -= 1

    async def run_until(self, signal: CancellationSignal) -> list[WorkerStats]:
        """
        Launch all workers and wait for every one of them to finish.

        Args:
            signal: Cancellation signal; workers check it between batches

        Returns:
            Per-worker stats, ordered by worker id

        Raises:
            WorkerExecutionFailed: Under the FAIL policy, the first worker
                failure; under TOLERATE, only if no worker succeeded
        """
        if self.live_worker_ids:
            raise RuntimeError("StressDriver is already running")

        self._worker_tasks.clear()
        self.stats = {wid: WorkerStats(worker_id=wid) for wid in range(self.worker_count)}
        self._abort.clear()

        logger.info("Launching %d insert workers", self.worker_count)
        for wid in range(self.worker_count):
            self._worker_tasks[wid] = asyncio.create_task(
                self._insert_worker(wid, signal), name=f"insert-worker-{wid}"
            )

        outcomes = await asyncio.gather(
            *self._worker_tasks.values(), return_exceptions=True
        )

        failures: list[WorkerExecutionFailed] = []
        for outcome in outcomes:
            if isinstance(outcome, WorkerExecutionFailed):
                failures.append(outcome)
            elif isinstance(outcome, BaseException):
                # Not a store failure: a bug in a workload or in this module.
                raise outcome

        stats = [self.stats[wid] for wid in sorted(self.stats)]
        if failures:
            failures.sort(key=lambda f: f.worker_id)
            if self.failure_policy == WorkerFailurePolicy.FAIL:
                raise failures[0]
            if len(failures) == self.worker_count:
                logger.error("All %d insert workers failed", self.worker_count)
                raise failures[0]
            logger.warning(
                "%d of %d insert workers failed; results reflect the %d survivors",
                len(failures),
                self.worker_count,
                self.worker_count - len(failures),
            )
        return stats

    async def _insert_worker(self, worker_id: int, signal: CancellationSignal) -> None:
        CURRENT_WORKER_ID.set(f"w{worker_id}")
        stats = self.stats[worker_id]

        try:
            conn = await self._factory.acquire()
        except EndpointUnreachable as e:
            stats.error = str(e)
            self._on_worker_failure()
            raise WorkerExecutionFailed(worker_id, str(e)) from e

        self._connection_opened()
        stats.endpoint = str(conn.endpoint)
        try:
            try:
                await conn.begin()
                logger.debug("Insert worker %d inserting into %s", worker_id, conn.endpoint)
                while not self._should_stop(signal):
                    await conn.execute(self._workload.next_batch())
                    stats.batches += 1
                await conn.commit()
                stats.committed = True
            except asyncio.CancelledError:
                raise
            except Exception as e:
                stats.error = f"{type(e).__name__}: {e}"
                self._on_worker_failure()
                logger.error(
                    "Insert worker %d failed on %s after %d batches: %s",
                    worker_id,
                    conn.endpoint,
                    stats.batches,
                    stats.error,
                )
                raise WorkerExecutionFailed(
                    worker_id,
                    stats.error,
                    endpoint=stats.endpoint,
                    batches_executed=stats.batches,
                ) from e
        finally:
            try:
                await close_quietly(conn)
            finally:
                self._connection_closed()

        logger.info(
            "Insert worker %d completed: %d batches committed on %s",
            worker_id,
            stats.batches,
            stats.endpoint,
        )

    def _on_worker_failure(self) -> None:
        if self.failure_policy == WorkerFailurePolicy.FAIL:
            # Stop the remaining workers at their next batch boundary.
            self._abort.set()

    async def release(self, *, timeout_seconds: float = 5.0) -> None:
        """
        Release worker resources.

        Cancels any worker task that is still pending (only possible when
        the caller of `run_until()` was itself cancelled) and waits for the
        cancellations to run their `finally` blocks, which close sessions.
        """
        pending = [t for t in self._worker_tasks.values() if not t.done()]
        for task in pending:
            task.cancel()
        if pending:
            try:
                await asyncio.wait_for(
                    asyncio.gather(*pending, return_exceptions=True),
                    timeout=timeout_seconds,
                )
            except asyncio.TimeoutError:
                logger.warning(
                    "Timed out waiting for %d insert workers to stop after %.1fs",
                    len(pending),
                    timeout_seconds,
                )
        self._worker_tasks.clear()

    def describe(self) -> str:
        return (
            f"StressDriver(workers={self.worker_count}, "
            f"policy={self.failure_policy.value}, workload={self._workload.describe()})"
        )
