from __future__ import annotations


class PacedQueueError(Exception):
    """Base error for the paced queue and its clients."""


class ValidationError(PacedQueueError):
    """Raised when a constructor argument or input is invalid."""


class QueueDesyncError(PacedQueueError):
    """Raised when queue bookkeeping loses track of the running job.

    This is an internal defect, never a job failure. It is not retried.
    """

    def __init__(self, job_id: int) -> None:
        super().__init__(f"Queue desync: job #{job_id} is not in the running slot")
        self.job_id = job_id


class ExternalServiceError(PacedQueueError):
    """Raised when the remote API fails or cannot be reached."""


class NotFoundError(PacedQueueError):
    """Raised when the remote API reports a missing resource."""
