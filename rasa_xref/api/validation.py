"""Validation API — run passes, signal file changes, read diagnostics."""

from pathlib import Path

from fastapi import APIRouter, HTTPException, Query, Request

import structlog

from rasa_xref.models.requests import FilesChangedRequest
from rasa_xref.models.responses import (
    Diagnostic,
    DiagnosticsResponse,
    FilesChangedResponse,
    ValidateResponse,
)

logger = structlog.get_logger()

router = APIRouter()


def _resolve_path(workspace_root: Path, path: str) -> str:
    """Absolute path of a workspace file, as used for result keys.

    Raises ValueError for paths outside the workspace.
    """
    candidate = Path(path)
    if not candidate.is_absolute():
        candidate = workspace_root / candidate
    resolved = candidate.resolve()
    resolved.relative_to(workspace_root)
    return str(resolved)


@router.post("/validate", response_model=ValidateResponse)
async def validate(request: Request):
    """Run a validation pass now and return its report."""
    project_service = request.app.state.project_service
    validation_service = request.app.state.validation_service

    # The workspace may have become a Rasa project since startup
    if not project_service.is_rasa_project():
        await project_service.initialize()
    if not project_service.is_rasa_project():
        raise HTTPException(
            status_code=409,
            detail=f"No Rasa project found in {project_service.workspace_root}",
        )

    results, report = await validation_service.validate_project_with_report()

    logger.info("validate_requested", generation=report.generation, files_with_issues=len(results))
    return ValidateResponse(report=report, issues_by_file=results)


@router.post("/files-changed", status_code=202, response_model=FilesChangedResponse)
async def files_changed(body: FilesChangedRequest, request: Request):
    """Signal created, modified or deleted files; a pass follows after the quiet period."""
    validation_service = request.app.state.validation_service
    validation_service.on_files_changed(body.paths)

    return FilesChangedResponse(
        accepted=len(body.paths) if validation_service.enabled else 0,
        debounce_seconds=validation_service.debounce_seconds,
        enabled=validation_service.enabled,
    )


@router.get("/diagnostics", response_model=DiagnosticsResponse)
async def get_diagnostics(request: Request):
    """Latest published diagnostics for every file that has any."""
    validation_service = request.app.state.validation_service
    return DiagnosticsResponse(
        generation=validation_service.published_generation,
        files=validation_service.latest_diagnostics,
    )


@router.get("/diagnostics/file", response_model=list[Diagnostic])
async def get_file_diagnostics(request: Request, path: str = Query(..., min_length=1)):
    """Latest published diagnostics for one file (empty when it has none)."""
    project_service = request.app.state.project_service
    validation_service = request.app.state.validation_service

    file_path = _resolve_path(project_service.workspace_root, path)
    return validation_service.latest_diagnostics.get(file_path, [])
