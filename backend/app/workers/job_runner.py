"""Background job runner using asyncio."""
import asyncio
import logging
import traceback
from typing import Awaitable, Callable, Dict, Optional

from app.models.project import ProjectStatus
from app.services.project_store import ProjectStore, project_store

logger = logging.getLogger(__name__)

JobHandler = Callable[..., Awaitable[None]]


def describe_error(error: BaseException) -> str:
    """Human-readable message for a failed run."""
    message = str(error).strip()
    return message or error.__class__.__name__


class JobRunner:
    """
    Async background job runner.

    Runs at most one job per project id. A job's failure is recorded once on
    the project record as the terminal ``error`` state.
    """

    def __init__(self, store: Optional[ProjectStore] = None):
        self.store = store or project_store
        self._running_jobs: Dict[str, asyncio.Task] = {}
        self._job_handlers: Dict[str, JobHandler] = {}

    def register_handler(self, job_type: str, handler: JobHandler):
        """Register a handler for a job type."""
        self._job_handlers[job_type] = handler

    def start_job(
        self,
        project_id: str,
        job_type: str,
        **kwargs
    ) -> bool:
        """
        Start a background job for a project.

        Args:
            project_id: Project the job works on
            job_type: Type of job to run
            **kwargs: Arguments to pass to the job handler

        Returns:
            True if job started, False if one is already running for the
            project or no handler is registered
        """
        if project_id in self._running_jobs:
            logger.warning(f"Project {project_id} already has a running job")
            return False

        handler = self._job_handlers.get(job_type)
        if not handler:
            logger.error(f"No handler registered for job type: {job_type}")
            return False

        task = asyncio.create_task(
            self._run_job(project_id, job_type, handler, **kwargs)
        )
        self._running_jobs[project_id] = task

        return True

    async def _run_job(
        self,
        project_id: str,
        job_type: str,
        handler: JobHandler,
        **kwargs
    ):
        """Run a job, converting any failure into the project's error state."""
        try:
            logger.info(f"Starting {job_type} job for project {project_id}")
            await handler(project_id=project_id, store=self.store, **kwargs)
            logger.info(f"{job_type} job for project {project_id} completed successfully")

        except asyncio.CancelledError:
            await self._mark_failed(project_id, "Run cancelled")
            logger.info(f"{job_type} job for project {project_id} was cancelled")
            raise

        except Exception as e:
            logger.error(f"{job_type} job for project {project_id} failed: {e}\n{traceback.format_exc()}")
            await self._mark_failed(project_id, describe_error(e))

        finally:
            self._running_jobs.pop(project_id, None)

    async def _mark_failed(self, project_id: str, message: str):
        project = await self.store.get(project_id)
        if not project or project.is_terminal:
            return
        project.status = ProjectStatus.ERROR
        project.error = message
        await self.store.upsert(project)

    def is_job_running(self, project_id: str) -> bool:
        """Check if a job is currently running for a project."""
        return project_id in self._running_jobs

    async def wait(self, project_id: str):
        """Wait for a project's running job, if any, to finish."""
        task = self._running_jobs.get(project_id)
        if task:
            await asyncio.gather(task, return_exceptions=True)

    async def shutdown(self):
        """Cancel all running jobs."""
        tasks = list(self._running_jobs.values())
        for task in tasks:
            task.cancel()

        if tasks:
            await asyncio.gather(*tasks, return_exceptions=True)

        self._running_jobs.clear()


# Global job runner instance
job_runner = JobRunner()
