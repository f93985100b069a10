"""
Abstract base class for job handlers.

Each JobType has exactly one handler. The executor calls
handler.prepare(payload, context) without knowing which type it is — it looks
up the handler from the registry by the job's type string.

A handler never sends mail and never writes to the database. It returns a
PreparedMail: the rendered subject/html, the resolved recipients, and the
audit rows to write IF the send succeeds. The executor owns the side effects,
which keeps "no audit without a successful send" in one place.

To add a new job type:
1. Add it to JobType and give it a payload model in jobs/payloads.py
2. Create a class that inherits AbstractJobHandler
3. Add it to the registry
"""

from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Optional

from pydantic import BaseModel
from sqlalchemy.orm import Session

from jobs.payloads import parse_payload
from mail.recipients import RecipientResolver
from models.enums import JobType, RecordKind


@dataclass
class AuditEntry:
    """One change-log row to append once the mail is out."""
    record_kind: RecordKind
    record_id: int
    field: str
    new_value: dict
    old_value: Optional[str] = None


@dataclass
class PreparedMail:
    subject: str
    html: str
    recipients: list[str]
    audit: list[AuditEntry] = field(default_factory=list)


@dataclass
class HandlerContext:
    """What a handler may read while preparing a mail."""
    session: Session
    resolver: RecipientResolver
    job_id: int
    created_by: str


class AbstractJobHandler(ABC):

    def parse(self, raw: dict) -> BaseModel:
        return parse_payload(self.job_type, raw)

    @abstractmethod
    def prepare(self, payload: BaseModel, context: HandlerContext) -> PreparedMail:
        """
        Render the mail and work out who gets it.

        Args:
            payload: the validated payload model for this job type
            context: read-only collaborators (DB session, recipient resolver)

        Raises:
            Any exception → the job is marked FAILED by the executor.
        """
        ...

    @property
    @abstractmethod
    def job_type(self) -> JobType:
        """The JobType this handler processes."""
        ...
