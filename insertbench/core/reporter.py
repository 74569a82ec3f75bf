"""
Result reporting for insert runs.
"""

import logging
from typing import Optional

from insertbench.core.workloads import Workload
from insertbench.models import RunReport, RunResult

logger = logging.getLogger(__name__)


class ResultReporter:
    """Builds the structured `RunReport` and writes it to a logger."""

    def __init__(self, sink: Optional[logging.Logger] = None):
        self._sink = sink or logger

    @staticmethod
    def build(
        result: RunResult,
        *,
        workload: Workload,
        endpoint: str,
        worker_count: int,
        failed_workers: int = 0,
    ) -> RunReport:
        return RunReport(
            table=workload.table_name(),
            endpoint=endpoint,
            insert_prefix=workload.insert_prefix(),
            batch_size=workload.batch_size,
            worker_count=worker_count,
            approx_batch_bytes=len(workload.sample_batch().encode("utf-8")),
            pre_count=result.pre_count,
            post_count=result.post_count,
            elapsed_millis=result.elapsed_millis,
            inserted_rows=result.inserted_rows,
            inserts_per_second=result.inserts_per_second,
            failed_workers=failed_workers,
        )

    @staticmethod
    def format(report: RunReport) -> str:
        lines = [
            f"Results for table: {report.table}",
            f"   Host: {report.endpoint}",
            f"   Insert prefix: {report.insert_prefix}",
            f"   Values per insert: {report.batch_size}",
            f"   Aprox. insert size: {report.approx_batch_bytes}",
            f"   Num. workers: {report.worker_count}",
        ]
        if report.failed_workers:
            lines.append(f"   Failed workers: {report.failed_workers}")
        lines.extend(
            [
                f"   Pre run count: {report.pre_count}",
                f"   Post run count: {report.post_count}",
                f">> Inserts: {report.inserted_rows}, "
                f"Elapsed (ms): {report.elapsed_millis}, "
                f"IPS: {report.inserts_per_second}",
            ]
        )
        return "\n".join(lines)

    def emit(self, report: RunReport) -> RunReport:
        self._sink.info(self.format(report))
        return report
