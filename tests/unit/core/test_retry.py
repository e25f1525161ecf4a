"""Unit tests for ``retry_on_transient``.

Covers:
- retryable vs non-retryable classification.
- bounded exponential back-off.
- exhaustion wraps the last error in ``TransientError``.
"""

from __future__ import annotations

import smtplib
from unittest.mock import MagicMock

import pytest
from django.db import OperationalError

from modules.core.exceptions import ConflictError, DomainValidationError, TransientError
from modules.core.retry import backoff_delay, is_retryable_error, retry_on_transient

pytestmark = pytest.mark.unit


class _HTTPError(Exception):
    def __init__(self, status_code):
        super().__init__(f"HTTP {status_code}")
        self.status_code = status_code


class TestIsRetryableError:
    @pytest.mark.parametrize(
        "error",
        [
            OperationalError("server closed the connection"),
            ConnectionError("reset"),
            TimeoutError(),
            _HTTPError(503),
            _HTTPError(429),
            _HTTPError(408),
            RuntimeError("Network unreachable"),
        ],
    )
    def test_transient(self, error):
        assert is_retryable_error(error)

    @pytest.mark.parametrize(
        "error",
        [
            DomainValidationError({"nombre": "x"}),
            ConflictError("El teléfono ya pertenece a otro cliente."),
            _HTTPError(404),
            ValueError("bad input"),
        ],
    )
    def test_permanent(self, error):
        assert not is_retryable_error(error)

    def test_smtp_server_error_is_transient(self):
        error = smtplib.SMTPDataError(503, b"try later")
        assert is_retryable_error(error)


class TestBackoffDelay:
    def test_doubles_and_caps(self):
        assert backoff_delay(0, 0.5, 5.0) == 0.5
        assert backoff_delay(1, 0.5, 5.0) == 1.0
        assert backoff_delay(2, 0.5, 5.0) == 2.0
        assert backoff_delay(10, 0.5, 5.0) == 5.0


def _flaky(*outcomes):
    """A callable that raises or returns ``outcomes`` in order."""
    pending = list(outcomes)
    calls = []

    def read():
        calls.append(1)
        outcome = pending.pop(0) if len(pending) > 1 else pending[0]
        if isinstance(outcome, BaseException):
            raise outcome
        return outcome

    read.calls = calls
    return read


class TestRetryOnTransient:
    def test_returns_first_success(self):
        sleep = MagicMock()
        func = _flaky(ConnectionError("down"), "ok")
        wrapped = retry_on_transient(func, max_retries=2, base_delay=0.5, sleep=sleep)

        assert wrapped() == "ok"
        assert len(func.calls) == 2
        sleep.assert_called_once_with(0.5)

    def test_exhaustion_raises_transient_error(self):
        sleep = MagicMock()
        func = _flaky(ConnectionError("down"))
        wrapped = retry_on_transient(func, max_retries=2, base_delay=0.5, sleep=sleep)

        with pytest.raises(TransientError) as exc_info:
            wrapped()

        assert len(func.calls) == 3
        assert [call.args[0] for call in sleep.call_args_list] == [0.5, 1.0]
        assert isinstance(exc_info.value.__cause__, ConnectionError)

    def test_non_retryable_propagates_immediately(self):
        sleep = MagicMock()
        func = _flaky(ConflictError("conflict"))
        wrapped = retry_on_transient(func, max_retries=2, sleep=sleep)

        with pytest.raises(ConflictError):
            wrapped()

        assert len(func.calls) == 1
        sleep.assert_not_called()

    def test_defaults_come_from_settings(self, settings):
        settings.RETRY_MAX_RETRIES = 1
        sleep = MagicMock()
        func = _flaky(TimeoutError())

        with pytest.raises(TransientError):
            retry_on_transient(func, sleep=sleep)()

        assert len(func.calls) == 2

    def test_bare_decorator(self):
        calls = []

        @retry_on_transient
        def read():
            calls.append(1)
            return "value"

        assert read() == "value"
        assert read.__name__ == "read"
        assert len(calls) == 1
