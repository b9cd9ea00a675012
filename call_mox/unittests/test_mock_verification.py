"""Unit tests for the verification methods of :class:`call_mox.mock.Mock`."""

from __future__ import annotations

import asyncio
import threading

import pytest

from call_mox.failures import FailureCollector, SourceLocation
from call_mox.matchers import anything, equals, predicate
from call_mox.mock import Mock
from call_mox.polling import BackoffPolicy

HERE = SourceLocation("test_module.py", 7)


class TestVerify:
    """Unmatched expectations are reported at verification time."""

    def test_succeeds_if_all_interactions_match(self, failures: FailureCollector) -> None:
        """Wildcards, literals and predicates can be mixed."""
        mock: Mock[tuple[int, int]] = Mock(fail=failures)
        mock.expect((anything(), 1))
        mock.expect((anything(), predicate(lambda v: v == 2)))
        mock.record((0, 1))
        mock.record((0, 2))
        mock.verify()
        assert failures.messages == []

    def test_fails_if_an_expectation_is_not_matched(
        self, failures: FailureCollector
    ) -> None:
        """Remaining expectations are reported with their description."""
        mock: Mock[tuple[int, int]] = Mock()
        mock.expect((anything(), equals(3)))
        mock.verify(fail=failures)
        assert failures.messages == ["Expectation <(_, 3)> not matched"]

    def test_wildcard_tuple_rejects_other_values(
        self, failures: FailureCollector
    ) -> None:
        """``(_, 3)`` does not accept ``(0, 1)``."""
        mock: Mock[tuple[int, int]] = Mock(ordered=False, fail=failures)
        mock.expect((anything(), equals(3)))
        mock.record((0, 1))
        mock.verify()
        assert failures.messages == [
            "Interaction <(0, 1)> not expected",
            "Expectation <(_, 3)> not matched",
        ]

    def test_reports_each_remaining_expectation_in_order(
        self, failures: FailureCollector
    ) -> None:
        """One failure per unmatched expectation."""
        mock: Mock[int] = Mock(fail=failures)
        for value in (1, 2, 3):
            mock.expect(value)
        mock.record(1)
        mock.verify(location=HERE)
        assert failures.messages == [
            "Expectation <2> not matched",
            "Expectation <3> not matched",
        ]
        assert {failure.location for failure in failures.failures} == {HERE}

    def test_is_idempotent(self, failures: FailureCollector) -> None:
        """Verifying twice reports the same failures without consuming."""
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        mock.verify(location=HERE)
        first = failures.failures
        failures.clear()
        mock.verify(location=HERE)
        assert failures.failures == first
        assert len(mock.pending) == 1

    def test_empty_mock_verifies_cleanly(self, failures: FailureCollector) -> None:
        """Nothing expected means nothing to report."""
        Mock(fail=failures).verify()
        assert failures.messages == []

    def test_verified_until_the_mock_changes(self, failures: FailureCollector) -> None:
        """``verified`` holds between a verify and the next expect or record."""
        mock: Mock[int] = Mock(fail=failures)
        assert not mock.verified
        mock.expect(1)
        mock.verify()
        assert mock.verified
        mock.record(1)
        assert not mock.verified

    def test_explicit_sink_does_not_count_as_verified(
        self, failures: FailureCollector
    ) -> None:
        """Reporting elsewhere leaves the mock's own sink unaware."""
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        mock.verify(fail=FailureCollector())
        assert not mock.verified


class TestVerifyWithDelay:
    """Delayed verification polls with exponential backoff."""

    def test_sleeps_with_doubling_steps_until_budget_is_spent(
        self, failures: FailureCollector
    ) -> None:
        """The default one second budget takes seven polls."""
        sleeps: list[float] = []
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        mock.verify_with_delay(sleep=sleeps.append)
        assert sleeps == pytest.approx([0.01, 0.02, 0.04, 0.08, 0.16, 0.32, 0.64])
        assert failures.messages == ["Expectation <1> not matched"]

    def test_does_not_sleep_when_nothing_is_pending(
        self, failures: FailureCollector
    ) -> None:
        """A satisfied mock verifies immediately."""
        sleeps: list[float] = []
        Mock(fail=failures).verify_with_delay(sleep=sleeps.append)
        assert sleeps == []
        assert failures.messages == []

    def test_only_reports_expectations_still_unmatched(
        self, failures: FailureCollector
    ) -> None:
        """Interactions arriving while waiting are taken into account."""
        mock: Mock[str] = Mock(ordered=False, fail=failures)
        mock.expect("early")
        mock.expect("late")
        sleeps: list[float] = []

        def sleep(step: float) -> None:
            sleeps.append(step)
            if len(sleeps) == 2:
                mock.record("early")

        mock.verify_with_delay(0.5, sleep=sleep)
        assert failures.messages == ["Expectation <'late'> not matched"]

    def test_stops_polling_once_satisfied(self, failures: FailureCollector) -> None:
        """Polling ends as soon as every expectation is matched."""
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        sleeps: list[float] = []

        def sleep(step: float) -> None:
            sleeps.append(step)
            mock.record(1)

        mock.verify_with_delay(sleep=sleep)
        assert len(sleeps) == 1
        assert failures.messages == []

    def test_sees_interactions_from_another_thread(
        self, failures: FailureCollector
    ) -> None:
        """A background thread may satisfy expectations during the wait."""
        mock: Mock[tuple[str, int]] = Mock(fail=failures)
        mock.expect(("publish", 1))
        timer = threading.Timer(0.05, mock.record, args=(("publish", 1),))
        timer.start()
        try:
            mock.verify_with_delay(2.0)
        finally:
            timer.join()
        assert failures.messages == []

    def test_zero_delay_verifies_immediately(self, failures: FailureCollector) -> None:
        """No budget means no polling."""
        sleeps: list[float] = []
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        mock.verify_with_delay(0, sleep=sleeps.append)
        assert sleeps == []
        assert failures.messages == ["Expectation <1> not matched"]

    def test_uses_the_mock_backoff_policy(self, failures: FailureCollector) -> None:
        """The polling policy is configurable per mock."""
        sleeps: list[float] = []
        mock: Mock[int] = Mock(
            fail=failures, backoff=BackoffPolicy(initial_step=0.1, factor=1.0)
        )
        mock.expect(1)
        mock.verify_with_delay(0.3, sleep=sleeps.append)
        assert len(sleeps) in {3, 4}
        assert set(sleeps) == {0.1}

    @pytest.mark.parametrize(
        ("delay", "error"),
        [(-1.0, ValueError), (float("inf"), ValueError), (True, TypeError)],
    )
    def test_rejects_invalid_delays(
        self, delay: float, error: type[Exception]
    ) -> None:
        """Delays must be finite, non-negative numbers."""
        with pytest.raises(error):
            Mock().verify_with_delay(delay)

    def test_attributes_failures_to_the_caller(
        self, failures: FailureCollector
    ) -> None:
        """The delayed variant reports the line that called it."""
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        mock.verify_with_delay(0)
        assert failures.failures[0].location.file == __file__


class TestVerifyWithDelayAsync:
    """The coroutine variant yields to the event loop while waiting."""

    def test_sees_interactions_from_other_tasks(
        self, failures: FailureCollector
    ) -> None:
        """A task recording during the wait satisfies the expectation."""
        mock: Mock[str] = Mock(fail=failures)
        mock.expect("done")

        async def produce() -> None:
            await asyncio.sleep(0.02)
            mock.record("done")

        async def scenario() -> None:
            task = asyncio.create_task(produce())
            await mock.verify_with_delay_async(1.0)
            await task

        asyncio.run(scenario())
        assert failures.messages == []

    def test_reports_unmatched_after_budget(self, failures: FailureCollector) -> None:
        """Expectations still pending after the wait are reported."""
        sleeps: list[float] = []

        async def fake_sleep(step: float) -> None:
            sleeps.append(step)

        mock: Mock[str] = Mock(fail=failures)
        mock.expect("never")
        asyncio.run(mock.verify_with_delay_async(0.05, sleep=fake_sleep))
        assert sleeps == pytest.approx([0.01, 0.02, 0.04])
        assert failures.messages == ["Expectation <'never'> not matched"]

    def test_attributes_failures_to_the_caller(
        self, failures: FailureCollector
    ) -> None:
        """The location is taken where the coroutine is created."""
        mock: Mock[int] = Mock(fail=failures)
        mock.expect(1)
        asyncio.run(mock.verify_with_delay_async(0))
        location = failures.failures[0].location
        assert location.file == __file__

    def test_rejects_invalid_delays_before_awaiting(self) -> None:
        """Bad delays raise on call, without creating a coroutine."""
        with pytest.raises(ValueError, match="delay"):
            Mock().verify_with_delay_async(-1)
