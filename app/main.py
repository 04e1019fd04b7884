from app.config.settings import Settings
from app.database.connection import close_pool, init_pool
from app.database.repositories.batch_job_repository import BatchJobRepository
from app.logging.logger import Log
from app.notifications.composite import CompositeNotifier
from app.notifications.factory import NotifierFactory
from app.reconciliation.service import build_service
from app.worker.job_runner import JobRunner
from app.worker.worker import Worker


def main() -> None:
    """Start the reconciliation worker.

    The pool and the notification channels live for the whole process and
    are released on the way out, including on Ctrl-C.
    """
    settings = Settings()
    Log.configure(settings.log_level)
    Log.info(f"Report reconciler starting (env={settings.app_env})")
    init_pool(settings)

    notifier: CompositeNotifier | None = None
    try:
        notifier = NotifierFactory.create(settings)
        job_repo = BatchJobRepository(settings.max_job_attempts)
        job_runner = JobRunner(build_service(notifier), job_repo, settings)
        Worker(job_repo, job_runner, settings).run()
    finally:
        if notifier is not None:
            notifier.close()
        close_pool()


if __name__ == "__main__":
    main()
