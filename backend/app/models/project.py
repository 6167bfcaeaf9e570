"""Project model."""
import enum
import uuid
from datetime import datetime
from pathlib import Path

from sqlalchemy import Column, Integer, String, DateTime, Enum, Text, JSON

from app.config import settings
from app.db.database import Base


class SourceType(str, enum.Enum):
    """Source type enumeration."""
    FILE = "file"
    REMOTE = "remote"
    SCRIPT = "script"


class ProjectStatus(str, enum.Enum):
    """Project status enumeration."""
    IDLE = "idle"
    PROCESSING = "processing"
    DONE = "done"
    ERROR = "error"


TERMINAL_STATUSES = (ProjectStatus.DONE, ProjectStatus.ERROR)


def new_project_id() -> str:
    """Generate an opaque project identifier."""
    return uuid.uuid4().hex


class Project(Base):
    """Durable record of one end-to-end job: source, state, progress and result."""

    __tablename__ = "projects"

    id = Column(String(32), primary_key=True, default=new_project_id)
    name = Column(String(255), nullable=False)
    created_at = Column(DateTime, default=datetime.utcnow, nullable=False)
    updated_at = Column(DateTime, default=datetime.utcnow, onupdate=datetime.utcnow, nullable=False)

    # Source information (immutable once created)
    source_type = Column(Enum(SourceType), nullable=False)
    source_path = Column(String(4096), nullable=True)  # Uploaded or local file
    remote_ref = Column(String(2048), nullable=True)  # Remote URL
    script = Column(Text, nullable=True)  # Script videos
    source_transcript = Column(JSON, nullable=True)  # Optional [{start, end, text}] for files

    # Run state
    status = Column(Enum(ProjectStatus), default=ProjectStatus.IDLE, nullable=False)
    progress = Column(Integer, default=0, nullable=False)  # 0 to 100
    output_path = Column(String(4096), nullable=True)
    error = Column(Text, nullable=True)

    # Derived metadata (duration, chosen highlights, script options)
    meta = Column(JSON, nullable=False, default=dict)

    def __repr__(self):
        return f"<Project(id={self.id}, name='{self.name}', status={self.status}, progress={self.progress})>"

    @property
    def is_terminal(self) -> bool:
        return self.status in TERMINAL_STATUSES

    @property
    def work_dir(self) -> Path:
        """Scratch directory for the run's downloads and intermediate clips."""
        return settings.work_dir / str(self.id)
