"""
Pydantic schemas for the /jobs endpoints.

These are NOT database models — they define the HTTP API contract:
- JobCreate: what a producer sends to enqueue a job (request body)
- JobResponse: what we send back for a single job (response body)
- JobListResponse: paginated list of jobs
- JobStats: counts per status
- RequeueRequest: who re-enqueues a FAILED job

The payload is checked against its job type's model by the endpoint (the
shape depends on `type`, so it can't be a plain field annotation here).
"""

from pydantic import BaseModel, Field
from typing import Optional
from datetime import datetime

from models.enums import JobType


class JobCreate(BaseModel):
    """Request body for POST /jobs/."""

    type: JobType
    payload: dict = Field(
        default_factory=dict,
        examples=[{"kind": "onboarding", "id": 42, "to": ["a@x.cz"]}],
    )
    priority: Optional[int] = Field(
        default=None,
        ge=1,
        le=10,
        description="1 = most urgent; omitted → DEFAULT_PRIORITY",
    )
    send_at: Optional[datetime] = Field(
        default=None,
        description="Not dispatched before this instant; omitted → immediately",
    )
    created_by: str = Field(default="api", min_length=1, max_length=255)


class JobResponse(BaseModel):
    """Response body for a single job — returned by GET /jobs/{id} and POST /jobs/."""

    id: int
    type: str
    status: str
    priority: int
    payload: dict
    send_at: Optional[datetime] = None
    error: Optional[str] = None
    retry_count: int
    dedupe_key: Optional[str] = None
    created_by: str
    created_at: datetime
    claimed_at: Optional[datetime] = None
    sent_at: Optional[datetime] = None

    # from_attributes=True tells Pydantic to read from SQLAlchemy model attributes
    model_config = {"from_attributes": True}


class JobListResponse(BaseModel):
    """Paginated list of jobs — returned by GET /jobs/."""

    jobs: list[JobResponse]
    total: int       # total matching jobs (ignoring pagination)
    page: int        # current page number
    page_size: int   # jobs per page


class JobStats(BaseModel):
    """Counts per status — returned by GET /jobs/stats."""

    total_jobs: int
    queued: int
    processing: int
    sent: int
    failed: int


class RequeueRequest(BaseModel):
    created_by: str = Field(default="api", min_length=1, max_length=255)
