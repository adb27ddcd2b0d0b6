import pytest

from placesync.core.retry import retry_call


class Flaky:
    def __init__(self, failures, exc_type=RuntimeError):
        self.failures = failures
        self.exc_type = exc_type
        self.calls = 0

    def __call__(self):
        self.calls += 1
        if self.calls <= self.failures:
            raise self.exc_type(f"failure {self.calls}")
        return "ok"


def test_retry_call_recovers(no_sleep):
    fn = Flaky(failures=2)
    assert retry_call(fn, retries=3, delay=5) == "ok"
    assert fn.calls == 3
    assert no_sleep == [5, 5]


def test_retry_call_exhausts(no_sleep):
    fn = Flaky(failures=10)
    with pytest.raises(RuntimeError, match="failure 4"):
        retry_call(fn, retries=3, delay=1)
    assert fn.calls == 4
    assert no_sleep == [1, 1, 1]


def test_retry_call_stops_on_non_retryable(no_sleep):
    fn = Flaky(failures=10, exc_type=ValueError)
    with pytest.raises(ValueError):
        retry_call(fn, retries=3, delay=1, is_retryable=lambda exc: not isinstance(exc, ValueError))
    assert fn.calls == 1
    assert no_sleep == []
