"""
Pydantic schemas for the /reports/monthly endpoints.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, Field

from api.schemas.dispatch import DispatchResponse


class MonthlyEnsureResponse(BaseModel):
    """Response body for POST /reports/monthly/ensure."""

    year: int
    month: int
    ensured: bool              # False → a job for the period already existed
    job_id: Optional[int] = None


class SendNowRequest(BaseModel):
    """Request body for POST /reports/monthly/send-now."""

    year: int = Field(..., ge=2000, le=2100)
    month: int = Field(..., ge=1, le=12)
    extra_recipients: list[str] = Field(default_factory=list)
    created_by: str = Field(default="api", min_length=1, max_length=255)


class SendNowResponse(BaseModel):
    year: int
    month: int
    queued: bool               # False → the period was already queued or sent
    job_id: Optional[int] = None
    dispatch: DispatchResponse


class SentPeriodsResponse(BaseModel):
    """Response body for GET /reports/monthly/sent — "YYYY-MM" strings, ascending."""

    periods: list[str]


class Candidate(BaseModel):
    id: int
    name: str
    position_name: Optional[str] = None
    department: Optional[str] = None
    date: Optional[datetime] = None
    already_sent: bool


class CandidateGroup(BaseModel):
    onboardings: list[Candidate]
    offboardings: list[Candidate]


class CandidatesResponse(BaseModel):
    """Response body for GET /reports/monthly/candidates."""

    year: int
    month: int
    monthly_report_sent: bool
    planned: CandidateGroup
    actual: CandidateGroup
