"""Bounded retry for transient failures.

Only reads and outbound email go through ``retry_on_transient``; writes
are never retried automatically and validation/conflict errors are
never considered transient.
"""

from __future__ import annotations

import functools
import socket
import time
from typing import Any, Callable, Optional, TypeVar

import structlog
from django.conf import settings
from django.db import InterfaceError, OperationalError

from modules.core.exceptions import DomainError, TransientError

logger = structlog.get_logger(__name__)

F = TypeVar("F", bound=Callable[..., Any])

RETRYABLE_STATUS_CODES = frozenset({408, 429, 500, 502, 503, 504})
_RETRYABLE_MARKERS = ("network", "fetch", "connection", "timeout", "timed out")


def is_retryable_error(error: BaseException) -> bool:
    """Connection/timeout problems and 408/429/5xx answers are retryable."""
    if isinstance(error, DomainError) and not isinstance(error, TransientError):
        return False
    if isinstance(error, (TransientError, OperationalError, InterfaceError)):
        return True
    if isinstance(error, (ConnectionError, TimeoutError, socket.timeout)):
        return True

    status_code = getattr(error, "status_code", None) or getattr(error, "smtp_code", None)
    if status_code in RETRYABLE_STATUS_CODES:
        return True

    message = str(error).lower()
    return any(marker in message for marker in _RETRYABLE_MARKERS)


def backoff_delay(attempt: int, base_delay: float, max_delay: float) -> float:
    """Exponential delay for ``attempt`` (0-based), capped at ``max_delay``."""
    return min(base_delay * (2 ** attempt), max_delay)


def retry_on_transient(
    func: Optional[F] = None,
    *,
    max_retries: Optional[int] = None,
    base_delay: Optional[float] = None,
    max_delay: Optional[float] = None,
    sleep: Callable[[float], None] = time.sleep,
) -> Any:
    """Decorator retrying ``func`` on transient errors.

    Usable bare (``@retry_on_transient``) or with overrides.  Defaults come
    from ``RETRY_MAX_RETRIES`` / ``RETRY_BASE_DELAY`` / ``RETRY_MAX_DELAY``.
    When every attempt fails the last error is re-raised wrapped in
    ``TransientError``; non-retryable errors propagate immediately.
    """

    def decorator(fn: F) -> F:
        @functools.wraps(fn)
        def wrapper(*args: Any, **kwargs: Any) -> Any:
            retries = (
                max_retries
                if max_retries is not None
                else getattr(settings, "RETRY_MAX_RETRIES", 2)
            )
            base = (
                base_delay
                if base_delay is not None
                else getattr(settings, "RETRY_BASE_DELAY", 0.5)
            )
            cap = (
                max_delay
                if max_delay is not None
                else getattr(settings, "RETRY_MAX_DELAY", 5.0)
            )

            attempt = 0
            while True:
                try:
                    return fn(*args, **kwargs)
                except Exception as exc:
                    if not is_retryable_error(exc):
                        raise
                    if attempt >= retries:
                        logger.error(
                            "retry.exhausted",
                            operation=fn.__qualname__,
                            attempts=attempt + 1,
                            error=str(exc),
                        )
                        if isinstance(exc, TransientError):
                            raise
                        raise TransientError(str(exc)) from exc
                    delay = backoff_delay(attempt, base, cap)
                    logger.warning(
                        "retry.scheduled",
                        operation=fn.__qualname__,
                        attempt=attempt + 1,
                        delay=delay,
                        error=str(exc),
                    )
                    sleep(delay)
                    attempt += 1

        return wrapper  # type: ignore[return-value]

    if func is not None:
        return decorator(func)
    return decorator
