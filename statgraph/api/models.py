"""Request/Response models for API endpoints."""

from typing import Any

from pydantic import BaseModel, ConfigDict, Field, HttpUrl


class _CamelModel(BaseModel):
    model_config = ConfigDict(populate_by_name=True)


class ProcessRequest(_CamelModel):
    """Request model for job submission."""

    task_id: str = Field(..., alias="taskId", min_length=1, description="Caller-assigned job id")
    question: str = Field(..., min_length=1, description="Natural language question")
    callback_url: HttpUrl = Field(..., alias="callbackUrl", description="Where the result is POSTed")
    chat_id: str | None = Field(None, alias="chatId", description="Chat to notify on completion")


class ProcessResponse(_CamelModel):
    """Response model for job submission."""

    success: bool = True
    task_id: str = Field(..., alias="taskId")
    accepted: bool = Field(..., description="False when the id was already known")
    status: str = Field(..., description="Current job status")
    message: str


class ClarificationRequest(BaseModel):
    """Request model for the clarification endpoint."""

    question: str = Field(..., min_length=1)


class ClarificationResponse(BaseModel):
    """Response model for the clarification endpoint."""

    success: bool = True
    clarifications: dict[str, Any]


class QueueCounts(BaseModel):
    pending: int
    active: int
    failed: int


class HealthResponse(BaseModel):
    """Response model for health endpoint."""

    status: str = Field(..., description="Service status")
    version: str = Field(..., description="Application version")
    queue: QueueCounts
    notifications: QueueCounts


class RegionResolveRequest(BaseModel):
    names: list[str] = Field(..., min_length=1)


class RegionResolveResponse(BaseModel):
    codes: list[str]
