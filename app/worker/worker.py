import time

from app.config.settings import Settings
from app.database.connection import get_connection
from app.database.models import BatchJobRecord
from app.database.repositories.batch_job_repository import BatchJobRepository
from app.logging.logger import Log
from app.worker.job_runner import JobRunner


class Worker:
    """Drains report_batch_jobs one batch at a time.

    Batches are never reconciled concurrently by one worker, so two batches
    touching the same document cannot interleave their slot writes here.
    """

    def __init__(
        self,
        job_repo: BatchJobRepository,
        job_runner: JobRunner,
        settings: Settings,
    ) -> None:
        self._job_repo = job_repo
        self._job_runner = job_runner
        self._settings = settings

    def run(self, max_jobs: int | None = None) -> None:
        """Claim and reconcile pending batches until interrupted.

        ``max_jobs`` bounds the number of batches handled before returning.
        """
        Log.info(
            "Reconciliation worker polling report_batch_jobs every "
            f"{self._settings.job_poll_interval_seconds}s"
        )
        handled = 0
        try:
            while max_jobs is None or handled < max_jobs:
                batch_job = self._try_claim_job()
                if batch_job is None:
                    Log.debug("Batch queue empty")
                    time.sleep(self._settings.job_poll_interval_seconds)
                    continue
                self._job_runner.run(batch_job)
                handled += 1
        except KeyboardInterrupt:
            Log.info(f"Reconciliation worker stopped after {handled} batches")

    def _try_claim_job(self) -> BatchJobRecord | None:
        # An unreachable database is treated as an empty queue; the next poll retries.
        try:
            with get_connection() as conn:
                return self._job_repo.claim_next_job(conn)
        except Exception as exc:
            Log.warning(f"Could not claim a report batch, retrying after poll interval: {exc}")
            return None
