"""
Shared enumerations used across the entire project.

Using Python enums (inheriting from str) means:
- They serialize to JSON automatically ("QUEUED", not "JobStatus.QUEUED")
- They work as SQLAlchemy column values
- They work as FastAPI query parameters
"""

import enum


class JobStatus(str, enum.Enum):
    QUEUED = "QUEUED"            # enqueued, waiting for sendAt / a dispatch cycle
    PROCESSING = "PROCESSING"    # claimed by exactly one dispatch cycle
    SENT = "SENT"                # mail delivered to the transport, audit written
    FAILED = "FAILED"            # terminal for this row; work may be re-enqueued


# Statuses that count as "this work already exists" for recurring jobs.
# FAILED is not listed: a failed attempt may be enqueued again.
ACTIVE_STATUSES = (JobStatus.QUEUED, JobStatus.PROCESSING, JobStatus.SENT)


class JobType(str, enum.Enum):
    EMPLOYEE_INFO = "EMPLOYEE_INFO"
    MONTHLY_SUMMARY = "MONTHLY_SUMMARY"
    PROBATION_WARNING = "PROBATION_WARNING"
    PROBATION_REMINDER = "PROBATION_REMINDER"
    PROBATION_ENDING = "PROBATION_ENDING"
    NOTICE_WARNING = "NOTICE_WARNING"
    SYSTEM_NOTIFICATION = "SYSTEM_NOTIFICATION"
    MANUAL_EMAIL = "MANUAL_EMAIL"


class RecipientChannel(str, enum.Enum):
    PLANNED = "planned"
    ACTUAL = "actual"
    ALL = "all"


class RecordKind(str, enum.Enum):
    ONBOARDING = "onboarding"
    OFFBOARDING = "offboarding"


class AuditAction(str, enum.Enum):
    MAIL_SENT = "MAIL_SENT"
