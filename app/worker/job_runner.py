from app.config.settings import Settings
from app.database.models import BatchJobRecord
from app.database.repositories.batch_job_repository import BatchJobRepository
from app.logging.logger import Log
from app.reconciliation.exceptions import InputError
from app.reconciliation.service import ReconciliationService


class JobRunner:
    """Run one batch job, catch exceptions, and apply retry logic."""

    def __init__(
        self,
        service: ReconciliationService,
        job_repo: BatchJobRepository,
        settings: Settings,
    ) -> None:
        self._service = service
        self._job_repo = job_repo
        self._settings = settings

    def run(self, job: BatchJobRecord) -> None:
        """Execute a single job with error handling."""
        Log.info(f"Running batch job {job.id} (attempt {job.attempts + 1})")
        try:
            result = self._service.process_batch(job.uploaded_by, job.reports)
            self._job_repo.mark_done(job.id, result.as_json())
            Log.info(f"Batch job {job.id} completed successfully")
        except InputError as exc:
            # Rejected before any document was touched; retrying cannot help.
            Log.error(f"Batch job {job.id} rejected: {exc}")
            self._job_repo.mark_failed(job.id, str(exc))
        except Exception as exc:
            self._handle_failure(job, exc)

    def _handle_failure(self, job: BatchJobRecord, exc: Exception) -> None:
        """Increment attempts; mark failed if at max, otherwise back to pending."""
        Log.error(f"Batch job {job.id} failed: {exc}")
        if job.attempts + 1 >= self._settings.max_job_attempts:
            self._job_repo.mark_failed(job.id, str(exc))
            Log.error(f"Batch job {job.id} permanently failed after {job.attempts + 1} attempts")
        else:
            self._job_repo.increment_attempts(job.id)
            Log.warning(f"Batch job {job.id} will be retried (attempt {job.attempts + 1})")
