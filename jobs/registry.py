"""
Job handler registry — maps job type strings to handler instances.

When a dispatch cycle claims a job, it knows the job's type ("EMPLOYEE_INFO",
"MONTHLY_SUMMARY", ...) but needs the handler that prepares its mail. This
registry does that lookup. Every JobType must have exactly one handler; a gap
or a duplicate raises at import time.
"""

from dispatch.errors import UnknownJobTypeError
from jobs.base import AbstractJobHandler
from jobs.employee_info import EmployeeInfoJob
from jobs.message import ManualEmailJob, SystemNotificationJob
from jobs.monthly_summary import MonthlySummaryJob
from jobs.notice import NoticeWarningJob
from jobs.probation import ProbationEndingJob, ProbationReminderJob, ProbationWarningJob
from models.enums import JobType

# Each handler is instantiated once and reused (they're stateless)
_REGISTRY: dict[str, AbstractJobHandler] = {}


def _register_defaults() -> None:
    for handler_cls in [
        EmployeeInfoJob,
        MonthlySummaryJob,
        ProbationWarningJob,
        ProbationReminderJob,
        ProbationEndingJob,
        NoticeWarningJob,
        SystemNotificationJob,
        ManualEmailJob,
    ]:
        handler = handler_cls()
        key = handler.job_type.value
        if key in _REGISTRY:
            raise RuntimeError(f"Duplicate handler for job type {key}")
        _REGISTRY[key] = handler

    missing = {t.value for t in JobType} - set(_REGISTRY)
    if missing:
        raise RuntimeError(f"No handler registered for job types: {sorted(missing)}")


_register_defaults()


def get_job_handler(job_type: str) -> AbstractJobHandler:
    """Look up a handler by job type string. Raises UnknownJobTypeError if unknown."""
    handler = _REGISTRY.get(job_type)
    if handler is None:
        raise UnknownJobTypeError(
            f"Unknown job type: '{job_type}'. Available: {list(_REGISTRY.keys())}"
        )
    return handler
