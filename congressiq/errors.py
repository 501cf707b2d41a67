"""Error taxonomy for the ingestion and query paths.

UpstreamError and RateLimitExceeded propagate to the caller of the enclosing
operation. EnrichmentDegraded and IndexWriteError are reporting types: they
are built, logged, and collected, never raised past the stage that created
them.
"""


class UpstreamError(Exception):
    """Non-2xx (or transport-level) failure from the Congress.gov API.

    Attributes:
        status: HTTP status code, or 0 when no response was received.
        message: Reason text from the response or the transport error.
    """

    def __init__(self, status: int, message: str):
        self.status = status
        self.message = message
        super().__init__(f"Congress API error: {status} {message}".rstrip())


class RateLimitExceeded(UpstreamError):
    """HTTP 429 persisted after the retry budget was spent."""

    def __init__(self, attempts: int, url: str = ""):
        self.attempts = attempts
        self.url = url
        super().__init__(429, f"rate limited after {attempts} attempts")


class EnrichmentDegraded(Exception):
    """A bill sub-resource (detail, summaries, text) could not be fetched.

    Logged by the normalizer; the record continues with fallback values.
    """

    def __init__(self, bill_id: str, resource: str, cause: BaseException | None = None):
        self.bill_id = bill_id
        self.resource = resource
        self.cause = cause
        super().__init__(f"{bill_id}: {resource} unavailable ({cause})")


class IndexWriteError(Exception):
    """A single document in a bulk batch failed to write."""

    def __init__(self, doc_id: str, status: int, reason: str):
        self.doc_id = doc_id
        self.status = status
        self.reason = reason
        super().__init__(f"{doc_id}: HTTP {status} {reason}")


class TranslationError(Exception):
    """The text-generation collaborator failed or is not configured."""
