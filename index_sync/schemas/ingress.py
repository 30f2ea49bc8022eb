"""Pydantic schemas for the HTTP ingress responses."""

from pydantic import BaseModel, Field


class EnqueuedJobs(BaseModel):
    """Jobs accepted for asynchronous processing."""

    job_ids: list[str] = Field(default_factory=list, description="arq job ids")


class HealthResponse(BaseModel):
    """Dependency status. No error details are exposed."""

    status: str = Field(..., examples=["healthy", "degraded"])
    search: dict[str, str] = Field(default_factory=dict)
    redis: str = Field(..., examples=["healthy", "degraded"])
    retry_queue_depth: int | None = None
