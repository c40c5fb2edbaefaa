"""Tests for the optimistic-concurrency retry helper."""

from __future__ import annotations

import pytest

from studyslot.errors import ConcurrentModification
from studyslot.retry import RetryExhaustedError, with_retry


class TestWithRetry:
    def test_succeeds_first_try(self):
        assert with_retry(lambda: 42, max_retries=3, base_delay=0.0) == 42

    def test_succeeds_after_conflicts(self):
        attempts = {"count": 0}

        def flaky():
            attempts["count"] += 1
            if attempts["count"] < 3:
                raise ConcurrentModification("lost the race")
            return "ok"

        result = with_retry(
            flaky, max_retries=3, base_delay=0.0, retryable=(ConcurrentModification,)
        )
        assert result == "ok"
        assert attempts["count"] == 3

    def test_exhausted_raises(self):
        def always_conflict():
            raise ConcurrentModification("again")

        with pytest.raises(RetryExhaustedError, match="Failed after 4 attempts") as exc_info:
            with_retry(
                always_conflict,
                max_retries=3,
                base_delay=0.0,
                retryable=(ConcurrentModification,),
            )
        assert isinstance(exc_info.value.__cause__, ConcurrentModification)

    def test_non_retryable_raises_immediately(self):
        attempts = {"count": 0}

        def precondition_fails():
            attempts["count"] += 1
            raise ValueError("session full")

        with pytest.raises(ValueError):
            with_retry(
                precondition_fails,
                max_retries=3,
                base_delay=0.0,
                retryable=(ConcurrentModification,),
            )
        assert attempts["count"] == 1

    def test_zero_retries_means_single_attempt(self):
        with pytest.raises(RetryExhaustedError, match="Failed after 1 attempts"):
            with_retry(lambda: (_ for _ in ()).throw(ValueError("x")), max_retries=0)

    def test_no_jitter(self):
        attempts = {"count": 0}

        def fail_once():
            attempts["count"] += 1
            if attempts["count"] < 2:
                raise ValueError("retry")
            return "done"

        assert with_retry(fail_once, max_retries=3, base_delay=0.001, jitter=False) == "done"
