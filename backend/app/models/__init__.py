# Models module
from app.models.project import Project, ProjectStatus, SourceType

__all__ = ["Project", "ProjectStatus", "SourceType"]
