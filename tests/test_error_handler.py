from __future__ import annotations

import json

from core.config import RetryPolicy
from core.error_handler import RetryingErrorHandler, is_retryable
from core.errors import MessageProcessingError
from core.retry import backoff_delays


class FakeDeadLetter:
    def __init__(self, fail: bool = False) -> None:
        self.published: list[tuple[str, object, BaseException]] = []
        self.fail = fail

    def publish(self, topic: str, value, error: BaseException) -> None:
        if self.fail:
            raise ConnectionError("broker unavailable")
        self.published.append((topic, value, error))


class FlakyCallback:
    def __init__(self, errors: list[Exception]) -> None:
        self.errors = errors
        self.calls = 0

    def __call__(self, topic: str, value) -> None:
        self.calls += 1
        if self.errors:
            raise self.errors.pop(0)


def _wrapped(cause: Exception) -> MessageProcessingError:
    try:
        raise MessageProcessingError("orders.created", "failed") from cause
    except MessageProcessingError as exc:
        return exc


def _handler(dead_letter: FakeDeadLetter, delays: list[float]) -> RetryingErrorHandler:
    policy = RetryPolicy(max_retries=3, initial_interval=1.0, multiplier=2.0, max_interval=10.0)
    return RetryingErrorHandler(policy, dead_letter, sleep=delays.append)


def test_backoff_delays_are_capped() -> None:
    assert list(backoff_delays(3, 1.0, 2.0, 10.0)) == [1.0, 2.0, 4.0]
    assert list(backoff_delays(5, 4.0, 2.0, 10.0)) == [4.0, 8.0, 10.0, 10.0, 10.0]
    assert list(backoff_delays(0, 1.0)) == []


def test_success_on_first_attempt() -> None:
    dead_letter = FakeDeadLetter()
    delays: list[float] = []
    callback = FlakyCallback([])

    assert _handler(dead_letter, delays).dispatch("orders.created", b"{}", callback) is True

    assert callback.calls == 1
    assert delays == []
    assert dead_letter.published == []


def test_transient_failure_is_retried() -> None:
    dead_letter = FakeDeadLetter()
    delays: list[float] = []
    callback = FlakyCallback([_wrapped(ConnectionError("db")), _wrapped(TimeoutError("db"))])

    assert _handler(dead_letter, delays).dispatch("orders.created", b"{}", callback) is True

    assert callback.calls == 3
    assert delays == [1.0, 2.0]
    assert dead_letter.published == []


def test_exhausted_retries_go_to_dead_letter() -> None:
    dead_letter = FakeDeadLetter()
    delays: list[float] = []
    callback = FlakyCallback([_wrapped(ConnectionError("db")) for _ in range(10)])

    assert _handler(dead_letter, delays).dispatch("orders.created", b"payload", callback) is False

    assert callback.calls == 4
    assert delays == [1.0, 2.0, 4.0]
    (published,) = dead_letter.published
    assert published[0] == "orders.created"
    assert published[1] == b"payload"


def test_non_retryable_cause_skips_straight_to_dead_letter() -> None:
    dead_letter = FakeDeadLetter()
    delays: list[float] = []
    callback = FlakyCallback([_wrapped(ValueError("bad argument"))])

    assert _handler(dead_letter, delays).dispatch("orders.created", b"{}", callback) is False

    assert callback.calls == 1
    assert delays == []
    assert len(dead_letter.published) == 1


def test_dead_letter_failure_is_logged_not_raised(caplog) -> None:
    dead_letter = FakeDeadLetter(fail=True)
    callback = FlakyCallback([TypeError("None has no attribute")])

    assert _handler(dead_letter, []).dispatch("orders.created", b"{}", callback) is False
    assert "dead-letter topic" in caplog.text


def test_is_retryable_inspects_the_cause_chain() -> None:
    assert is_retryable(_wrapped(ConnectionError("db")))
    assert not is_retryable(_wrapped(json.JSONDecodeError("bad", "{", 0)))
    assert not is_retryable(_wrapped(AttributeError("missing")))
    assert not is_retryable(ValueError("direct"))
