"""API request/response schemas for job endpoints."""

from datetime import datetime

from pydantic import BaseModel, Field


class JobCreateRequest(BaseModel):
    title: str = Field(min_length=1, max_length=200)
    client_id: str = Field(min_length=1)
    budget: int = Field(gt=0)


class JobResponse(BaseModel):
    job_id: str
    title: str
    client_id: str
    budget: int
    is_paid: bool
    created_at: datetime | None = None
