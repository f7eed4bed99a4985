"""Test the async retry decorator"""

import pytest

from handwrite_ocr_pipeline.utils.retry import retry_with_backoff


class Flaky:
    def __init__(self, failures: int, error: Exception) -> None:
        self.failures = failures
        self.error = error
        self.calls = 0

    async def __call__(self) -> str:
        self.calls += 1
        if self.calls <= self.failures:
            raise self.error
        return "ok"


def fast_retry(**kwargs):
    delays: list[float] = []
    options = {
        "max_attempts": 4,
        "initial_delay": 0.001,
        "backoff_multiplier": 2.0,
        "max_delay": 0.003,
        "on_retry": lambda attempt, delay, error: delays.append(delay),
    }
    options.update(kwargs)
    return retry_with_backoff(**options), delays


@pytest.mark.asyncio
class TestRetryWithBackoff:
    async def test_succeeds_after_failures(self) -> None:
        decorator, delays = fast_retry()
        flaky = Flaky(3, ConnectionError("reset"))

        assert await decorator(flaky)() == "ok"
        assert flaky.calls == 4
        assert delays == [0.001, 0.002, 0.003]

    async def test_raises_after_last_attempt(self) -> None:
        decorator, delays = fast_retry(max_attempts=2)
        flaky = Flaky(5, ConnectionError("reset"))

        with pytest.raises(ConnectionError):
            await decorator(flaky)()
        assert flaky.calls == 2
        assert len(delays) == 1

    async def test_only_listed_exceptions_retried(self) -> None:
        decorator, delays = fast_retry(exceptions=(ConnectionError,))
        flaky = Flaky(1, ValueError("bad input"))

        with pytest.raises(ValueError):
            await decorator(flaky)()
        assert flaky.calls == 1
        assert delays == []


@pytest.mark.parametrize(
    "kwargs",
    [
        {"max_attempts": 0},
        {"initial_delay": 0},
        {"backoff_multiplier": -1},
        {"max_delay": 0.0005},
    ],
)
def test_invalid_parameters(kwargs) -> None:
    with pytest.raises(ValueError):
        fast_retry(**kwargs)
