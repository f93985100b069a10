"""Exceptions raised by the mail queue."""


class MailQueueError(Exception):
    """Base class for mail queue errors."""


class EmptyRecipientsError(MailQueueError):
    """Recipient resolution produced no usable address; the job must fail."""


class UnknownJobTypeError(MailQueueError, ValueError):
    pass


class InvalidPayloadError(MailQueueError, ValueError):
    """Stored payload does not match the schema of its job type."""


class DuplicateJobError(MailQueueError):
    """A recurring job for the same period is already queued, running or sent."""

    def __init__(self, dedupe_key: str):
        super().__init__(f"Recurring job already exists: {dedupe_key}")
        self.dedupe_key = dedupe_key


class RecordNotFoundError(MailQueueError, LookupError):
    pass


class JobStateError(MailQueueError):
    """Operation is not allowed in the job's current status."""
