"""
Page creation retry tests
"""

import asyncio

import pytest

from conftest import FakePlatform
from errors import PageCreationError, RateLimitedError
from page_creator import as_rate_limit, backoff_schedule, create_page_with_retry
from platform_communicator import CommandExecutionError


def _rate_limited():
    return CommandExecutionError({"code": "RATE_LIMITED", "message": "Too many requests"})


def _create(platform, sleeper, **kwargs):
    return asyncio.run(create_page_with_retry(platform.create_page, "Poster", 800, 600, [], sleep=sleeper, **kwargs))


def test_backoff_schedule():
    assert backoff_schedule(3.0, 5) == [3, 6, 12, 24, 48]


class TestRetry:
    def test_first_attempt_succeeds(self, sleeper):
        platform = FakePlatform()
        _create(platform, sleeper)
        assert platform.page_attempts == 1
        assert sleeper.calls == []
        assert platform.pages[0]["title"] == "Poster"

    def test_success_after_rate_limit(self, sleeper):
        platform = FakePlatform(page_errors=[_rate_limited(), _rate_limited()])
        _create(platform, sleeper)
        assert platform.page_attempts == 3
        assert sleeper.calls == [3.0, 6.0]
        assert len(platform.pages) == 1

    def test_gives_up_after_max_attempts(self, sleeper):
        platform = FakePlatform(page_errors=[_rate_limited() for _ in range(10)])
        with pytest.raises(PageCreationError) as exc:
            _create(platform, sleeper)
        assert platform.page_attempts == 5
        assert sleeper.calls == [3.0, 6.0, 12.0, 24.0]
        assert exc.value.attempts == 5
        assert exc.value.details["schedule"] == [3.0, 6.0, 12.0, 24.0, 48.0]
        assert exc.value.code == "page_creation_failed"

    def test_other_failure_is_fatal(self, sleeper):
        platform = FakePlatform(page_errors=[CommandExecutionError({"code": "invalid_element", "message": "bad shape"})])
        with pytest.raises(PageCreationError) as exc:
            _create(platform, sleeper)
        assert platform.page_attempts == 1
        assert sleeper.calls == []
        assert exc.value.attempts == 1

    def test_custom_base_and_attempts(self, sleeper):
        platform = FakePlatform(page_errors=[_rate_limited() for _ in range(3)])
        with pytest.raises(PageCreationError):
            _create(platform, sleeper, base_delay=1.0, max_attempts=3)
        assert sleeper.calls == [1.0, 2.0]


class TestClassification:
    @pytest.mark.parametrize("error", [
        RuntimeError("rate_limit exceeded"),
        RuntimeError("Request RATE_LIMITED by host"),
        RuntimeError("you are being rate limited"),
        CommandExecutionError({"code": "rate_limit", "message": "slow down"}),
        RateLimitedError("already classified"),
    ])
    def test_rate_limits(self, error):
        assert isinstance(as_rate_limit(error), RateLimitedError)

    @pytest.mark.parametrize("error", [
        RuntimeError("timeout"),
        CommandExecutionError({"code": "invalid_element", "message": "bad"}),
    ])
    def test_other_errors(self, error):
        assert as_rate_limit(error) is None
