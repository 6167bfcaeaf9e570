"""Pydantic schemas for API requests and responses."""
from datetime import datetime
from typing import Any, Dict, List, Optional
from pydantic import BaseModel, Field, model_validator


# =============================================================================
# Project Schemas
# =============================================================================

class TranscriptSegment(BaseModel):
    """One timed line of a supplied transcript."""
    start: float = Field(..., ge=0)
    end: float = Field(..., gt=0)
    text: str = ""

    @model_validator(mode="after")
    def check_order(self):
        if self.end <= self.start:
            raise ValueError("end must be greater than start")
        return self


class ProjectCreateLocal(BaseModel):
    """Request to create a project from a local file."""
    file_path: str = Field(..., description="Path to local video file")
    name: Optional[str] = Field(None, description="Project name (uses filename if not provided)")
    transcript: Optional[List[TranscriptSegment]] = Field(None, description="Optional time-aligned transcript")


class ProjectCreateRemote(BaseModel):
    """Request to create a project from a remote video."""
    url: str = Field(..., description="Remote video URL")
    name: Optional[str] = Field(None, description="Project name (uses the URL if not provided)")


class ProjectSubmitResponse(BaseModel):
    """Acknowledgement of a submission."""
    project_id: str
    status: str


class ProjectResponse(BaseModel):
    """Project response."""
    id: str
    name: str
    created_at: Optional[datetime]
    updated_at: Optional[datetime]
    source_type: str
    source_path: Optional[str]
    remote_ref: Optional[str]
    status: str
    progress: int
    output_path: Optional[str]
    error: Optional[str]
    meta: Dict[str, Any] = {}

    class Config:
        from_attributes = True


class ProjectStatusResponse(BaseModel):
    """Polling response."""
    progress: int
    status: str
    done: bool
    error: Optional[str] = None


class RunAcceptedResponse(BaseModel):
    """Acknowledgement that a run was started."""
    ok: bool = True
    project_id: str


# =============================================================================
# Health Check
# =============================================================================

class HealthResponse(BaseModel):
    """Health check response."""
    status: str
    ffmpeg_available: bool
    ffprobe_available: bool
    ytdlp_available: bool
    message: Optional[str] = None
