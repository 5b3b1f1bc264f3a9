"""API request models."""

from pydantic import BaseModel, Field


class FilesChangedRequest(BaseModel):
    """Files the editor saw created, modified or deleted."""

    paths: list[str] = Field(
        default_factory=list,
        max_length=10000,
        description="Absolute or workspace-relative paths",
        examples=[["domain.yml", "data/stories.yml"]],
    )
