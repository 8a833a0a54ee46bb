"""
Name: Retry Helper for AWS SDK Calls (Exponential Backoff + Jitter)

Responsibilities:
  - Classify transient vs permanent botocore failures
  - Provide a tenacity-based retry decorator for key source SDK calls
  - Log retry attempts for observability

Collaborators:
  - tenacity: Retry library with configurable strategies
  - config.Settings: Retry configuration (max_attempts, delays)
  - infrastructure/keys/secrets_manager_source.py (consumer)

Constraints:
  - Only retry transient errors (throttling, 5xx, timeouts, connection errors)
  - Never retry permanent errors (access denied, missing secret, bad request)

Notes:
  - Exponential backoff: delay = min(base * 2^attempt, max_delay)
  - reraise=True: callers see the SDK exception, not tenacity.RetryError
"""

from typing import Callable

from tenacity import (
    RetryCallState,
    retry,
    retry_if_exception,
    stop_after_attempt,
    wait_exponential_jitter,
)

from ..crosscutting.config import get_settings
from ..crosscutting.logger import logger

# R: botocore error codes that indicate a transient condition
TRANSIENT_ERROR_CODES: frozenset[str] = frozenset(
    {
        "Throttling",
        "ThrottlingException",
        "TooManyRequestsException",
        "RequestLimitExceeded",
        "InternalServiceError",
        "InternalFailure",
        "ServiceUnavailable",
    }
)

TRANSIENT_HTTP_CODES: frozenset[int] = frozenset({429, 500, 502, 503, 504})


def is_transient_error(exception: BaseException) -> bool:
    """
    R: Determine if an SDK exception is transient (should retry).

    ClientError carries the service error code and HTTP status in
    `response`; connection and timeout failures are botocore exception
    classes without a response.
    """
    response = getattr(exception, "response", None)
    if isinstance(response, dict):
        code = str(response.get("Error", {}).get("Code", ""))
        if code in TRANSIENT_ERROR_CODES:
            return True
        status = response.get("ResponseMetadata", {}).get("HTTPStatusCode")
        return status in TRANSIENT_HTTP_CODES

    exception_name = type(exception).__name__.lower()
    return any(p in exception_name for p in ("timeout", "connection", "endpoint"))


def _log_retry(retry_state: RetryCallState) -> None:
    fn_name = getattr(retry_state.fn, "__name__", "unknown")
    exc = retry_state.outcome.exception() if retry_state.outcome else None
    wait_time = retry_state.next_action.sleep if retry_state.next_action else 0

    logger.warning(
        f"Retry attempt {retry_state.attempt_number} for {fn_name}",
        extra={
            "function": fn_name,
            "attempt": retry_state.attempt_number,
            "wait_seconds": round(wait_time, 2),
            "error_type": type(exc).__name__ if exc else None,
        },
    )


def create_retry_decorator(
    max_attempts: int | None = None,
    base_delay: float | None = None,
    max_delay: float | None = None,
) -> Callable:
    """
    R: Create a retry decorator with exponential backoff + jitter.

    Uses settings from config unless overridden.
    """
    settings = get_settings()

    _max_attempts = max_attempts or settings.retry_max_attempts
    _base_delay = base_delay or settings.retry_base_delay_seconds
    _max_delay = max_delay or settings.retry_max_delay_seconds

    return retry(
        stop=stop_after_attempt(_max_attempts),
        wait=wait_exponential_jitter(
            initial=_base_delay,
            max=_max_delay,
            jitter=_base_delay,
        ),
        retry=retry_if_exception(is_transient_error),
        before_sleep=_log_retry,
        reraise=True,
    )
