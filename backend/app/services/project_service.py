"""Project service layer: submission, run control, polling and asset retrieval."""
import logging
import shutil
import uuid
from pathlib import Path
from typing import BinaryIO, List, Optional

from app.config import settings
from app.models.project import Project, ProjectStatus, SourceType, new_project_id
from app.pipeline.script_video import validate_script, validate_style
from app.pipeline.segments import segments_from_dicts
from app.services.errors import ConflictError, InputError, NotFoundError, NotReadyError
from app.services.project_store import ProjectStore, project_store
from app.utils.ffmpeg import ScriptStyle
from app.utils.ytdlp import is_remote_url
from app.workers.job_runner import JobRunner, job_runner

logger = logging.getLogger(__name__)

JOB_HIGHLIGHT_REEL = "highlight_reel"
JOB_SCRIPT_VIDEO = "script_video"


class ProjectService:
    """Service for project operations."""

    def __init__(self, store: Optional[ProjectStore] = None, runner: Optional[JobRunner] = None):
        self.store = store or project_store
        self.runner = runner or job_runner

    async def _create(self, project: Project) -> Project:
        project.id = project.id or new_project_id()
        project.status = ProjectStatus.IDLE
        project.progress = 0
        project.meta = project.meta or {}
        await self.store.upsert(project)
        logger.info(f"Created project {project.id} ({project.source_type.value})")
        return project

    async def submit_file(
        self,
        file_path: str,
        name: Optional[str] = None,
        transcript: Optional[List[dict]] = None,
    ) -> Project:
        """
        Create a project from a video file already on disk.

        Args:
            file_path: Path to local video file
            name: Optional project name (uses filename if not provided)
            transcript: Optional time-aligned transcript [{start, end, text}]

        Returns:
            Created project
        """
        source_path = Path(file_path)
        if not source_path.is_file():
            raise InputError(f"File not found: {file_path}")

        stored_transcript = None
        if transcript:
            stored_transcript = [s.to_dict() for s in segments_from_dicts(transcript)]
            if not stored_transcript:
                raise InputError("Transcript has no usable segments")

        project = Project(
            name=name or source_path.stem,
            source_type=SourceType.FILE,
            source_path=str(source_path.absolute()),
            source_transcript=stored_transcript,
        )
        return await self._create(project)

    async def submit_upload(
        self,
        fileobj: BinaryIO,
        filename: str,
        transcript: Optional[List[dict]] = None,
    ) -> Project:
        """Store an uploaded video and create a file project from it."""
        suffix = Path(filename or "").suffix or ".mp4"
        dest_path = settings.uploads_dir / f"{uuid.uuid4().hex}{suffix}"
        with open(dest_path, "wb") as f:
            shutil.copyfileobj(fileobj, f)

        try:
            return await self.submit_file(
                str(dest_path), name=Path(filename or dest_path.name).stem, transcript=transcript
            )
        except InputError:
            dest_path.unlink(missing_ok=True)
            raise

    async def submit_remote(self, url: str, name: Optional[str] = None) -> Project:
        """Create a project from a remote video URL."""
        url = (url or "").strip()
        if not is_remote_url(url):
            raise InputError("Invalid remote video URL")

        project = Project(
            name=name or url,
            source_type=SourceType.REMOTE,
            remote_ref=url,
        )
        return await self._create(project)

    async def submit_script(
        self,
        script: str,
        per_line_sec: Optional[float] = None,
        style: Optional[ScriptStyle] = None,
        background_audio: Optional[str] = None,
    ) -> Project:
        """
        Create a script video project.

        The script is validated here so that an empty script is rejected
        before any work is scheduled.

        Raises:
            InputError: If the script has no usable lines, or the timing
                or style is invalid
        """
        per_line_sec = settings.script_per_line_sec if per_line_sec is None else per_line_sec
        lines = validate_script(script, per_line_sec)
        style = validate_style(style or ScriptStyle(
            bg_color=settings.script_bg_color,
            text_color=settings.script_text_color,
            font_size=settings.script_font_size,
        ))

        project = Project(
            name="Script video",
            source_type=SourceType.SCRIPT,
            script=script,
            meta={
                "kind": "script",
                "per_line_sec": per_line_sec,
                "line_count": len(lines),
                "style": style.to_dict(),
                "background_audio": background_audio,
            },
        )
        return await self._create(project)

    async def get_project(self, project_id: str) -> Project:
        """Get a project by ID, raising NotFoundError if it does not exist."""
        project = await self.store.get(project_id)
        if not project:
            raise NotFoundError(f"Project {project_id} not found")
        return project

    async def start_run(self, project_id: str) -> Project:
        """
        Start the background run for an idle project.

        Returns:
            The project as it was when the run was accepted

        Raises:
            NotFoundError: Unknown project
            ConflictError: Project already started, finished or running
        """
        project = await self.get_project(project_id)

        if project.status != ProjectStatus.IDLE or self.runner.is_job_running(project_id):
            raise ConflictError(f"Cannot start project in state: {project.status.value}")

        job_type = JOB_SCRIPT_VIDEO if project.source_type == SourceType.SCRIPT else JOB_HIGHLIGHT_REEL
        if not self.runner.start_job(project_id, job_type):
            raise ConflictError(f"Project {project_id} already has a running job")

        return project

    async def poll_status(self, project_id: str) -> dict:
        """Progress, status and error of a project."""
        project = await self.get_project(project_id)
        return {
            "progress": project.progress or 0,
            "status": project.status.value,
            "done": project.status == ProjectStatus.DONE,
            "error": project.error,
        }

    async def fetch_asset(self, project_id: str) -> Path:
        """
        Path of a finished project's output video.

        Raises:
            NotFoundError: Unknown project
            NotReadyError: Project not done or its output is missing
        """
        project = await self.get_project(project_id)
        if project.status != ProjectStatus.DONE or not project.output_path:
            raise NotReadyError(f"Project {project_id} is {project.status.value}")

        output_path = Path(project.output_path)
        if not output_path.exists():
            raise NotReadyError(f"Output file missing for project {project_id}")
        return output_path
