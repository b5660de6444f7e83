"""Project file persistence."""

from .project_persistence import (
    ProjectFormatError,
    ProjectPersistence,
    canonical_json_dump,
    project_filename,
)

__all__ = ["ProjectFormatError", "ProjectPersistence", "canonical_json_dump", "project_filename"]
