"""API routes."""
import logging
import shutil
import uuid
from pathlib import Path
from typing import List, Optional

from fastapi import APIRouter, Depends, File, Form, HTTPException, UploadFile
from fastapi.responses import FileResponse
from pydantic import TypeAdapter, ValidationError

from app.config import settings
from app.models.project import Project
from app.services.errors import ConflictError, InputError, NotFoundError, NotReadyError
from app.services.project_service import ProjectService
from app.utils.ffmpeg import ScriptStyle, check_ffmpeg_available, check_ffprobe_available
from app.utils.ytdlp import check_ytdlp_available
from app.api.schemas import (
    HealthResponse,
    ProjectCreateLocal,
    ProjectCreateRemote,
    ProjectResponse,
    ProjectStatusResponse,
    ProjectSubmitResponse,
    RunAcceptedResponse,
    TranscriptSegment,
)

router = APIRouter()
logger = logging.getLogger(__name__)

_transcript_adapter = TypeAdapter(List[TranscriptSegment])


def get_project_service() -> ProjectService:
    """Dependency to get the project service."""
    return ProjectService()


# =============================================================================
# Health & System
# =============================================================================

@router.get("/health", response_model=HealthResponse)
async def health_check():
    """Check API health and dependencies."""
    ffmpeg_ok = check_ffmpeg_available()
    ffprobe_ok = check_ffprobe_available()
    ytdlp_ok = check_ytdlp_available()

    all_ok = ffmpeg_ok and ffprobe_ok and ytdlp_ok

    message = None
    if not all_ok:
        missing = []
        if not ffmpeg_ok:
            missing.append("ffmpeg")
        if not ffprobe_ok:
            missing.append("ffprobe")
        if not ytdlp_ok:
            missing.append("yt-dlp")
        message = f"Missing dependencies: {', '.join(missing)}"

    return HealthResponse(
        status="healthy" if all_ok else "degraded",
        ffmpeg_available=ffmpeg_ok,
        ffprobe_available=ffprobe_ok,
        ytdlp_available=ytdlp_ok,
        message=message
    )


# =============================================================================
# Projects
# =============================================================================

@router.post("/projects/upload", response_model=ProjectSubmitResponse)
async def create_project_upload(
    file: UploadFile = File(...),
    transcript: Optional[str] = Form(None),
    service: ProjectService = Depends(get_project_service)
):
    """Create a project by uploading a video file, with an optional JSON transcript."""
    segments = None
    if transcript:
        try:
            segments = [s.model_dump() for s in _transcript_adapter.validate_json(transcript)]
        except ValidationError as e:
            raise HTTPException(status_code=400, detail=f"Invalid transcript: {e.errors()[0]['msg']}")

    try:
        project = await service.submit_upload(file.file, file.filename, transcript=segments)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProjectSubmitResponse(project_id=project.id, status=project.status.value)


@router.post("/projects/local", response_model=ProjectSubmitResponse)
async def create_project_local(
    data: ProjectCreateLocal,
    service: ProjectService = Depends(get_project_service)
):
    """Create a project from a video file already on the server."""
    transcript = [s.model_dump() for s in data.transcript] if data.transcript else None
    try:
        project = await service.submit_file(data.file_path, data.name, transcript=transcript)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProjectSubmitResponse(project_id=project.id, status=project.status.value)


@router.post("/projects/remote", response_model=ProjectSubmitResponse)
async def create_project_remote(
    data: ProjectCreateRemote,
    service: ProjectService = Depends(get_project_service)
):
    """Create a project from a remote video URL."""
    try:
        project = await service.submit_remote(data.url, data.name)
    except InputError as e:
        raise HTTPException(status_code=400, detail=str(e))
    return ProjectSubmitResponse(project_id=project.id, status=project.status.value)


@router.get("/projects/{project_id}", response_model=ProjectResponse)
async def get_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Get a project by ID."""
    try:
        project = await service.get_project(project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    return _project_to_response(project)


@router.post("/projects/{project_id}/process", response_model=RunAcceptedResponse, status_code=202)
async def start_processing(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Start the background run for a project; poll /status for progress."""
    try:
        await service.start_run(project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except ConflictError as e:
        raise HTTPException(status_code=409, detail=str(e))
    return RunAcceptedResponse(project_id=project_id)


@router.get("/projects/{project_id}/status", response_model=ProjectStatusResponse)
async def get_status(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Poll a project's progress."""
    try:
        return ProjectStatusResponse(**await service.poll_status(project_id))
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")


@router.get("/projects/{project_id}/export")
async def export_project(project_id: str, service: ProjectService = Depends(get_project_service)):
    """Download a finished project's video."""
    try:
        output_path = await service.fetch_asset(project_id)
    except NotFoundError:
        raise HTTPException(status_code=404, detail="Project not found")
    except NotReadyError:
        raise HTTPException(status_code=404, detail="Asset not ready")

    return FileResponse(
        output_path,
        media_type="video/mp4",
        filename=f"reel_{project_id}.mp4"
    )


# =============================================================================
# Script Videos
# =============================================================================

@router.post("/script-videos", response_model=ProjectSubmitResponse)
async def create_script_video(
    script: str = Form(...),
    per_line_sec: float = Form(settings.script_per_line_sec),
    bg_color: str = Form(settings.script_bg_color),
    text_color: str = Form(settings.script_text_color),
    font_size: int = Form(settings.script_font_size),
    bgm: Optional[UploadFile] = File(None),
    service: ProjectService = Depends(get_project_service)
):
    """Create a script video project and start rendering it right away."""
    bgm_path = None
    if bgm is not None and bgm.filename:
        bgm_path = settings.uploads_dir / f"{uuid.uuid4().hex}{Path(bgm.filename).suffix}"
        with open(bgm_path, "wb") as f:
            shutil.copyfileobj(bgm.file, f)

    style = ScriptStyle(bg_color=bg_color, text_color=text_color, font_size=font_size)
    try:
        project = await service.submit_script(
            script,
            per_line_sec=per_line_sec,
            style=style,
            background_audio=str(bgm_path) if bgm_path else None,
        )
        await service.start_run(project.id)
    except InputError as e:
        if bgm_path:
            bgm_path.unlink(missing_ok=True)
        raise HTTPException(status_code=400, detail=str(e))

    return ProjectSubmitResponse(project_id=project.id, status=project.status.value)


# =============================================================================
# Helpers
# =============================================================================

def _project_to_response(project: Project) -> ProjectResponse:
    """Convert project model to response."""
    return ProjectResponse(
        id=project.id,
        name=project.name,
        created_at=project.created_at,
        updated_at=project.updated_at,
        source_type=project.source_type.value,
        source_path=project.source_path,
        remote_ref=project.remote_ref,
        status=project.status.value,
        progress=project.progress or 0,
        output_path=project.output_path,
        error=project.error,
        meta=dict(project.meta or {}),
    )
