"""Exception hierarchy for the citation-network engine.

Recoverable "no data" outcomes (job error, job timeout) are represented by
JobFailedError / JobTimeoutError internally, but the search client converts
them into ``None`` results before they reach callers.
"""


class CitationNetworkError(Exception):
    """Base class for all engine errors."""


class ValidationError(CitationNetworkError, ValueError):
    """Caller input violates a structural constraint that cannot be repaired."""


class ExternalServiceError(CitationNetworkError):
    """The paper-search service was unreachable or rejected a request."""

    def __init__(self, message: str, status_code: int | None = None):
        super().__init__(message)
        self.message = message
        self.status_code = status_code


class JobFailedError(CitationNetworkError):
    """A polled search job reported status ``error``."""

    def __init__(self, job_id: str, message: str | None = None):
        super().__init__(message or f"Search job {job_id} failed")
        self.job_id = job_id


class JobTimeoutError(CitationNetworkError):
    """Polling exhausted its attempt budget without a terminal status."""

    def __init__(self, job_id: str, attempts: int, message: str | None = None):
        super().__init__(
            message or f"Search job {job_id} did not finish after {attempts} polls"
        )
        self.job_id = job_id
        self.attempts = attempts


class JobCancelledError(JobTimeoutError):
    """The caller stopped waiting for a search job."""

    def __init__(self, job_id: str, attempts: int):
        super().__init__(
            job_id,
            attempts,
            f"Stopped waiting for search job {job_id} after {attempts} polls",
        )


class GraphConstructionError(CitationNetworkError):
    """An internal invariant failed while assembling a graph."""


class NotFoundError(CitationNetworkError):
    """A referenced parent, paper or session does not exist."""
