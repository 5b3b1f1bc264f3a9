"""Health check endpoint."""

import time
from fastapi import APIRouter, Request

from rasa_xref.models.responses import HealthResponse

router = APIRouter()

_start_time = time.time()


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request):
    """Service health with project detection and validation state."""
    project_service = request.app.state.project_service
    validation_service = request.app.state.validation_service

    rasa_project = project_service.is_rasa_project()
    published = validation_service.published_generation

    return HealthResponse(
        status="healthy" if rasa_project else "degraded",
        uptime_seconds=round(time.time() - _start_time, 2),
        workspace_root=str(project_service.workspace_root),
        rasa_project=rasa_project,
        validation_state=validation_service.state.value,
        last_generation=validation_service.generation,
        last_validated_generation=published or None,
    )
