"""
Typed job payloads — one pydantic model per JobType.

The payload column is plain JSON, so every handler re-validates what it reads
back. Stored keys are camelCase (aliases) to match what producers have always
written, e.g. {"year": 2025, "month": 3, "extraRecipients": []}; Python code
uses the snake_case attribute names.
"""

from datetime import datetime
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from dispatch.errors import InvalidPayloadError, UnknownJobTypeError
from models.enums import JobType, RecipientChannel, RecordKind


class _Payload(BaseModel):
    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True, extra="allow")

    def to_json(self) -> dict:
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)


class EmployeeInfoPayload(_Payload):
    kind: RecordKind
    id: int
    to: list[str] = Field(default_factory=list)
    subject: Optional[str] = None
    content: Optional[str] = None


class MonthlySummaryPayload(_Payload):
    year: int = Field(ge=2000, le=2100)
    month: int = Field(ge=1, le=12)
    extra_recipients: list[str] = Field(default_factory=list)

    @property
    def period_key(self) -> str:
        return f"{self.year:04d}-{self.month:02d}"


class ProbationPayload(_Payload):
    """Shared by PROBATION_WARNING, PROBATION_REMINDER and PROBATION_ENDING."""
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    probation_end_date: datetime
    days_remaining: Optional[int] = None
    recipients: list[str] = Field(default_factory=list)
    subject: Optional[str] = None


class NoticeWarningPayload(_Payload):
    employee_id: int
    employee_name: str
    position: Optional[str] = None
    department: Optional[str] = None
    notice_end_date: datetime
    days_remaining: int
    recipients: list[str] = Field(default_factory=list)
    subject: Optional[str] = None


class SystemNotificationPayload(_Payload):
    subject: str
    content: Optional[str] = None
    recipients: list[str] = Field(default_factory=list)
    channel: Optional[RecipientChannel] = None


class ManualEmailPayload(_Payload):
    recipients: list[str] = Field(min_length=1)
    subject: str
    content: str
    record_kind: Optional[RecordKind] = None
    record_id: Optional[int] = None


PAYLOAD_MODELS: dict[JobType, type[_Payload]] = {
    JobType.EMPLOYEE_INFO: EmployeeInfoPayload,
    JobType.MONTHLY_SUMMARY: MonthlySummaryPayload,
    JobType.PROBATION_WARNING: ProbationPayload,
    JobType.PROBATION_REMINDER: ProbationPayload,
    JobType.PROBATION_ENDING: ProbationPayload,
    JobType.NOTICE_WARNING: NoticeWarningPayload,
    JobType.SYSTEM_NOTIFICATION: SystemNotificationPayload,
    JobType.MANUAL_EMAIL: ManualEmailPayload,
}


def parse_payload(job_type: JobType | str, raw: dict) -> _Payload:
    """Validate a raw payload against its job type's model."""
    try:
        model = PAYLOAD_MODELS[JobType(job_type)]
    except (ValueError, KeyError):
        raise UnknownJobTypeError(f"Unknown job type: '{job_type}'")
    try:
        return model.model_validate(raw or {})
    except ValidationError as e:
        raise InvalidPayloadError(f"Invalid {JobType(job_type).value} payload: {e}") from e


def period_key_for(job_type: JobType | str, raw: dict) -> Optional[str]:
    """Period a recurring job covers ("2025-03"), None for one-off job types."""
    try:
        if JobType(job_type) != JobType.MONTHLY_SUMMARY:
            return None
    except ValueError:
        return None
    year, month = (raw or {}).get("year"), (raw or {}).get("month")
    try:
        return f"{int(year):04d}-{int(month):02d}"
    except (TypeError, ValueError):
        return None
