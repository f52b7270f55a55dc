"""
Failure taxonomy for the identification pipeline.

Every remote adapter raises one of these; the retry executor only looks at
``retryable`` to decide whether another attempt is worth making. The string
codes end up on ``RunOutcome.error_code`` and ``StatusStore.last_error``.
"""

ERR_INVALID_INPUT = "INVALID_INPUT"
ERR_OFFLINE = "OFFLINE"
ERR_USAGE_LIMIT = "USAGE_LIMIT"
ERR_UPLOAD = "UPLOAD_FAILED"
ERR_IDENTIFY = "IDENTIFICATION_FAILED"
ERR_BLOCKED = "CONTENT_BLOCKED"
ERR_RATE_LIMITED = "RATE_LIMITED"
ERR_TIMEOUT = "TIMEOUT"
ERR_UNKNOWN = "UNKNOWN"


class PipelineError(Exception):
    retryable = False
    code = ERR_UNKNOWN

    def __init__(self, message: str = "", code: str | None = None):
        super().__init__(message)
        if code is not None:
            self.code = code


class InvalidInputError(PipelineError):
    """Missing crop, missing image, blank prompt, no consent."""
    code = ERR_INVALID_INPUT


class TransientError(PipelineError):
    """Timeouts, 5xx, remote throttling. Worth another attempt."""
    retryable = True


class TimeoutFailure(TransientError):
    code = ERR_TIMEOUT


class PermanentError(PipelineError):
    """Auth, permission, quota or malformed request."""


class ContentBlockedError(PipelineError):
    code = ERR_BLOCKED

    def __init__(self, reason: str = "unspecified"):
        super().__init__(f"Content blocked due to: {reason}")
        self.reason = reason


class RateLimitedError(PipelineError):
    """Local sliding window exhausted; the call never left the process."""
    code = ERR_RATE_LIMITED


def is_retryable(err: BaseException) -> bool:
    if isinstance(err, PipelineError):
        return err.retryable
    # Raw timeouts from asyncio / sockets count as transient
    return isinstance(err, (TimeoutError, ConnectionError))


def classify_status(status_code: int, message: str) -> PipelineError:
    """Map an HTTP status from a storage/inference backend onto the taxonomy."""
    if status_code in (408, 429) or status_code >= 500:
        return TransientError(f"HTTP {status_code}: {message}")
    return PermanentError(f"HTTP {status_code}: {message}")
