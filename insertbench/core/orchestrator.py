"""
Run Orchestrator

Sequences one timed insert run:

    INIT -> [PREPARE_SCHEMA] -> BASELINE_COUNT -> RUNNING -> DRAINING
         -> FINAL_COUNT -> REPORT -> CLOSED

The sequence is linear. Any fatal error aborts the run; CLOSED is reached on
every path and releases the timer and the worker tasks.
"""

import asyncio
import logging
import time
from typing import Callable, List, Optional
from uuid import uuid4

from insertbench.connectors.connection_factory import ConnectionFactory
from insertbench.core.cancellation import CancellationTimer
from insertbench.core.errors import (
    BaselineOrFinalCountUnavailable,
    SchemaPreparationFailed,
)
from insertbench.core.log_context import CURRENT_RUN_ID
from insertbench.core.reporter import ResultReporter
from insertbench.core.stress_driver import StressDriver
from insertbench.core.workloads import Workload
from insertbench.models import RunConfig, RunPhase, RunReport, RunResult, WorkerStats

logger = logging.getLogger(__name__)


class RunOrchestrator:
    """
    Orchestrates one timed insert run.

    Manages:
    - Optional table reset (drop + create)
    - Baseline and final row counts on an admin session
    - The cancellation timer and the worker pool
    - Throughput computation and reporting
    """

    def __init__(
        self,
        config: RunConfig,
        workload: Workload,
        *,
        factory: Optional[ConnectionFactory] = None,
        timer: Optional[CancellationTimer] = None,
        reporter: Optional[ResultReporter] = None,
        clock: Callable[[], float] = time.monotonic,
    ):
        """
        Initialize the orchestrator.

        Args:
            config: Run configuration
            workload: Table contract and batch generator
            factory: Connection factory; built from `config` when omitted
            timer: Cancellation timer; a loop-scheduled one when omitted
            reporter: Result reporter; logs to this module's logger when omitted
            clock: Monotonic clock (seconds) used for elapsed time
        """
        self.config = config
        self.workload = workload
        self.factory = factory or ConnectionFactory.from_config(config)
        self.timer = timer or CancellationTimer(clock=clock)
        self.reporter = reporter or ResultReporter()
        self._clock = clock

        self.run_id = uuid4().hex[:12]
        self.phase = RunPhase.INIT
        self.phase_history: List[RunPhase] = [RunPhase.INIT]
        self.driver: Optional[StressDriver] = None
        self.result: Optional[RunResult] = None
        self.report: Optional[RunReport] = None
        self.worker_stats: List[WorkerStats] = []

    async def __aenter__(self) -> "RunOrchestrator":
        return self

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.close()

    def _enter(self, phase: RunPhase) -> None:
        self.phase = phase
        self.phase_history.append(phase)
        logger.debug("Run %s -> %s", self.run_id, phase.value)

    async def prepare_table(self) -> None:
        """Drop then recreate the target table on an admin session."""
        table = self.workload.table_name()
        async with self.factory.connection() as conn:
            try:
                logger.info("Dropping then Creating table: %s", table)
                await conn.execute(self.workload.drop_statement())
                await conn.execute(self.workload.create_statement())
            except Exception as e:
                raise SchemaPreparationFailed(table, f"{type(e).__name__}: {e}") from e

    async def count(self) -> int:
        """Refresh the target table and read `count(*)` on an admin session."""
        table = self.workload.table_name()
        async with self.factory.connection() as conn:
            try:
                refresh = self.workload.refresh_statement()
                if refresh:
                    await conn.execute(refresh)
                value = await conn.fetch_val(self.workload.count_statement())
            except Exception as e:
                raise BaselineOrFinalCountUnavailable(table, f"{type(e).__name__}: {e}") from e
        if value is None:
            raise BaselineOrFinalCountUnavailable(table)
        return int(value)

    async def run(self) -> RunReport:
        """
        Execute the full lifecycle and return the report.

        Raises:
            RuntimeError: If this orchestrator already ran
            InsertBenchError: On any fatal failure (nothing is reported then)
        """
        if self.phase != RunPhase.INIT:
            raise RuntimeError(f"Run {self.run_id} already started (phase={self.phase.value})")

        token = CURRENT_RUN_ID.set(self.run_id)
        try:
            logger.info(
                "Insert during %d millis into %s (%d workers x %d rows/batch)",
                self.config.run_duration_millis,
                self.factory.uri(),
                self.config.worker_count,
                self.workload.batch_size,
            )

            if self.config.clean_table_before_run:
                self._enter(RunPhase.PREPARE_SCHEMA)
                await self.prepare_table()

            self._enter(RunPhase.BASELINE_COUNT)
            pre_count = await self.count()
            logger.info("Pre run count: %d", pre_count)

            self._enter(RunPhase.RUNNING)
            start = self._clock()
            await self._run_workers()
            end = self._clock()

            self._enter(RunPhase.FINAL_COUNT)
            post_count = await self.count()

            self._enter(RunPhase.REPORT)
            self.result = RunResult(
                pre_count=pre_count,
                post_count=post_count,
                elapsed_millis=int((end - start) * 1000),
            )
            self.report = self.reporter.emit(
                self.reporter.build(
                    self.result,
                    workload=self.workload,
                    endpoint=self.factory.uri(),
                    worker_count=self.config.worker_count,
                    failed_workers=len(self.driver.failed_workers) if self.driver else 0,
                )
            )
            return self.report
        except Exception as e:
            logger.error("Run %s aborted in %s: %s", self.run_id, self.phase.value, e)
            raise
        finally:
            await self.close()
            CURRENT_RUN_ID.reset(token)

    async def _run_workers(self) -> None:
        """RUNNING until the signal fires, then DRAINING until the barrier returns."""
        self.driver = StressDriver(
            self.factory,
            self.workload,
            worker_count=self.config.worker_count,
            failure_policy=self.config.failure_policy,
        )
        logger.info("Starting %s", self.driver.describe())

        signal = self.timer.start(self.config.run_duration_seconds)
        run_task = asyncio.create_task(self.driver.run_until(signal))
        fired = asyncio.create_task(signal.wait())
        try:
            await asyncio.wait({run_task, fired}, return_when=asyncio.FIRST_COMPLETED)
            if signal.is_set():
                self._enter(RunPhase.DRAINING)
            self.worker_stats = await run_task
        finally:
            fired.cancel()
            await asyncio.gather(fired, return_exceptions=True)
            if not run_task.done():
                run_task.cancel()
                await asyncio.gather(run_task, return_exceptions=True)

    async def close(self) -> None:
        """Release the timer and any worker task; idempotent."""
        if self.phase == RunPhase.CLOSED:
            return
        try:
            self.timer.cancel()
            if self.driver is not None:
                await self.driver.release()
        finally:
            self._enter(RunPhase.CLOSED)
