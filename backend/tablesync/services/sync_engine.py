from __future__ import annotations

from typing import Callable, Iterable, Optional

from tablesync.models.sync_job import SyncJob
from tablesync.models.sync_run import SyncRunResult
from tablesync.services.sync_log import SyncLog
from tablesync.services.sync_runner import SyncJobRunner

ResultCallback = Callable[[SyncRunResult], None]


def run_all(
    jobs: Iterable[SyncJob],
    debug: bool = False,
    on_result: Optional[ResultCallback] = None,
    log: Optional[SyncLog] = None,
) -> list[SyncRunResult]:
    """
    Run jobs in order. The first failing job stops the run and its exception is re-raised;
    on_result still sees that job's failed result first.
    """
    log = log or SyncLog(debug=debug)
    results: list[SyncRunResult] = []

    for job in jobs:
        runner = SyncJobRunner(log)
        try:
            result = runner.run(job)
        except Exception:
            if on_result and runner.result is not None:
                on_result(runner.result)
            raise
        results.append(result)
        if on_result:
            on_result(result)

    return results
