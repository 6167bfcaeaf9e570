"""Job handlers: the highlight reel pipeline and script video synthesis."""
import logging
import shutil
import uuid
from pathlib import Path
from typing import List, Optional

from app.config import settings
from app.models.project import Project, ProjectStatus, SourceType
from app.pipeline import script_video
from app.pipeline.highlights import select_highlights
from app.pipeline.segments import Segment, derive_segments, segments_from_dicts
from app.services.project_store import ProjectStore
from app.utils.ffmpeg import (
    RenderError,
    ScriptStyle,
    concat_clips,
    get_duration,
    make_vertical_clip,
)
from app.utils.ytdlp import download_video, fetch_transcript

logger = logging.getLogger(__name__)

# Progress checkpoints of the highlight reel pipeline
PROGRESS_START = 1
PROGRESS_ACQUIRE = 5
PROGRESS_ANALYZE = 15
PROGRESS_SELECTED = 45
PROGRESS_RENDERED = 85
PROGRESS_CONCAT = 90
PROGRESS_DONE = 100

# Progress checkpoints of script synthesis
PROGRESS_SCRIPT_START = 3
PROGRESS_SCRIPT_RENDER = 10


async def update_project(
    store: ProjectStore,
    project_id: str,
    progress: Optional[int] = None,
    **changes
) -> Project:
    """
    Read the full record, apply changes and write it back.

    Progress only ever moves forward; ``meta`` changes are merged into the
    existing metadata.
    """
    project = await store.get(project_id)
    if not project:
        raise ValueError(f"Project {project_id} not found")

    if progress is not None:
        project.progress = max(project.progress or 0, min(100, int(progress)))
    if "meta" in changes:
        project.meta = {**(project.meta or {}), **changes.pop("meta")}
    for key, value in changes.items():
        setattr(project, key, value)

    await store.upsert(project)
    return project


def render_progress(completed: int, total: int) -> int:
    """Linear progress through the render stage, clamped to its bounds."""
    if total <= 0:
        return PROGRESS_RENDERED
    span = PROGRESS_RENDERED - PROGRESS_SELECTED
    value = PROGRESS_SELECTED + span * completed / total
    return int(min(PROGRESS_RENDERED, max(PROGRESS_SELECTED, value)))


async def handle_highlight_reel(
    project_id: str,
    store: ProjectStore,
    **kwargs
) -> None:
    """
    Turn a long video into a reel of its best moments.

    acquire -> duration -> transcript -> segments -> select -> render each -> concat

    Args:
        project_id: Project ID
        store: Project record store

    Raises:
        AcquisitionError: If the remote source cannot be downloaded
        RenderError: If no highlight can be selected or ffmpeg fails
    """
    project = await update_project(
        store, project_id, progress=PROGRESS_START, status=ProjectStatus.PROCESSING
    )
    logger.info(f"[{project_id}] processing ({project.source_type.value} source)")

    work_dir = project.work_dir
    work_dir.mkdir(parents=True, exist_ok=True)

    # Acquire
    input_path = Path(project.source_path) if project.source_path else None
    if project.source_type == SourceType.REMOTE:
        await update_project(store, project_id, progress=PROGRESS_ACQUIRE)
        logger.info(f"[{project_id}] downloading {project.remote_ref}")
        input_path = await download_video(project.remote_ref, work_dir)

    if input_path is None or not input_path.exists():
        raise RenderError(f"Source video not found: {input_path}")

    await update_project(store, project_id, progress=PROGRESS_ANALYZE)

    # Duration
    duration = await get_duration(input_path)
    logger.info(f"[{project_id}] source duration {duration:.1f}s")

    # Transcript
    transcript: List[Segment] = []
    transcript_source = "fallback"
    if project.source_type == SourceType.REMOTE:
        transcript = await fetch_transcript(project.remote_ref)
        if transcript:
            transcript_source = "remote"
    elif project.source_transcript:
        transcript = segments_from_dicts(project.source_transcript)
        if transcript:
            transcript_source = "supplied"

    segments = derive_segments(transcript, duration)
    logger.info(f"[{project_id}] {len(segments)} segments ({transcript_source})")

    # Select
    highlights = select_highlights(segments, settings.highlight_count, duration=duration)
    if not highlights:
        raise RenderError(
            "No highlights could be selected "
            "(no transcript and unknown duration, or none within the source)"
        )

    await update_project(
        store,
        project_id,
        progress=PROGRESS_SELECTED,
        meta={
            "duration_sec": duration,
            "transcript_source": transcript_source,
            "highlights": [h.to_dict() for h in highlights],
        },
    )

    # Render, one clip at a time
    clip_paths: List[Path] = []
    for i, highlight in enumerate(highlights):
        logger.info(
            f"[{project_id}] rendering clip {i + 1}/{len(highlights)} "
            f"({highlight.start:.1f}s - {highlight.end:.1f}s)"
        )
        clip_path = await make_vertical_clip(
            input_path,
            work_dir / f"clip_{i:02d}.mp4",
            highlight.start,
            highlight.end,
        )
        clip_paths.append(clip_path)
        await update_project(store, project_id, progress=render_progress(i + 1, len(highlights)))

    # Concatenate
    await update_project(store, project_id, progress=PROGRESS_CONCAT)
    output_path = await concat_clips(clip_paths, settings.outputs_dir / f"{uuid.uuid4().hex}.mp4")

    # Scratch files: the remote download and the rendered clips
    shutil.rmtree(work_dir, ignore_errors=True)

    await update_project(
        store,
        project_id,
        progress=PROGRESS_DONE,
        output_path=str(output_path),
        status=ProjectStatus.DONE,
    )
    logger.info(f"[{project_id}] reel done: {output_path}")


async def handle_script_video(
    project_id: str,
    store: ProjectStore,
    **kwargs
) -> None:
    """
    Render a script project's text slides into a video.

    Script options are read from the project's metadata.

    Raises:
        InputError: If the script has no usable lines
        RenderError: If rendering or mixing fails
    """
    project = await update_project(
        store, project_id, progress=PROGRESS_SCRIPT_START, status=ProjectStatus.PROCESSING
    )
    meta = project.meta or {}
    style = ScriptStyle(**meta.get("style", {}))
    per_line_sec = float(meta.get("per_line_sec", settings.script_per_line_sec))

    await update_project(store, project_id, progress=PROGRESS_SCRIPT_RENDER)

    output_path = await script_video.synthesize(
        project.script,
        per_line_sec,
        style=style,
        background_audio=meta.get("background_audio"),
    )

    await update_project(
        store,
        project_id,
        progress=PROGRESS_DONE,
        output_path=str(output_path),
        status=ProjectStatus.DONE,
    )
    logger.info(f"[{project_id}] script video done: {output_path}")

