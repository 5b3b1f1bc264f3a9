"""API response models."""

from pydantic import BaseModel, Field
from typing import Optional, Literal

from rasa_xref.validators.models import Issue, ValidationReport


class Diagnostic(BaseModel):
    """One editor diagnostic: an issue placed in a file's text.

    Positions are 0-based. An issue whose subject cannot be found in the
    file is placed at the start of the file.
    """

    file_path: str
    line: int = 0
    start_column: int = 0
    end_column: int = 0
    severity: Literal["error", "warning", "info"]
    message: str
    code: str
    subject_name: str
    source: str = "Rasa (Cross-File)"


class ValidateResponse(BaseModel):
    """Result of an on-demand validation pass."""

    report: ValidationReport
    issues_by_file: dict[str, list[Issue]] = Field(default_factory=dict)


class FilesChangedResponse(BaseModel):
    """Acknowledgement of a change notification."""

    accepted: int
    debounce_seconds: float
    enabled: bool = True


class DiagnosticsResponse(BaseModel):
    """Latest published diagnostics, per file."""

    generation: int = 0
    files: dict[str, list[Diagnostic]] = Field(default_factory=dict)


class HealthResponse(BaseModel):
    """Service health check response."""

    status: Literal["healthy", "unhealthy", "degraded"]
    version: str = "0.1.0"
    uptime_seconds: float
    workspace_root: str
    rasa_project: bool
    validation_state: str
    last_generation: int = 0
    last_validated_generation: Optional[int] = None
