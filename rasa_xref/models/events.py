"""Event models pushed to editor clients over the event bus / WebSocket."""

from pydantic import BaseModel, Field
from typing import Optional, Literal
from datetime import datetime

from rasa_xref.models.responses import Diagnostic


class BaseEvent(BaseModel):
    """Base event model for all pushed events."""

    type: str
    timestamp: datetime = None

    def model_post_init(self, __context):
        if self.timestamp is None:
            self.timestamp = datetime.utcnow()

    def model_dump(self, **kwargs):
        """Override to always serialize datetimes as ISO strings for JSON safety."""
        kwargs.setdefault("mode", "json")
        return super().model_dump(**kwargs)


class ValidationStartedEvent(BaseEvent):
    """Emitted when a validation pass begins."""

    type: Literal["validation_started"] = "validation_started"
    generation: int
    trigger: Literal["explicit", "debounced"]
    changed_files: list[str] = Field(default_factory=list)


class ValidationCompletedEvent(BaseEvent):
    """Emitted when a pass's result is published."""

    type: Literal["validation_completed"] = "validation_completed"
    generation: int
    summary: dict
    total_issues: int
    files_with_issues: int
    parse_failures: int
    duration_ms: float


class DiagnosticsPublishedEvent(BaseEvent):
    """Per-file diagnostics for one pass.

    Files that had issues in the previous published pass and have none now
    are listed with an empty list, so clients clear them.
    """

    type: Literal["diagnostics_published"] = "diagnostics_published"
    generation: int
    files: dict[str, list[Diagnostic]]


class ErrorEvent(BaseEvent):
    """Emitted when a pass fails outright."""

    type: Literal["error"] = "error"
    message: str
    generation: Optional[int] = None
    recoverable: bool = True
