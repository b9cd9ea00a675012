"""Recorder verifying observed interactions against declared expectations."""

from __future__ import annotations

import asyncio
import logging
import time
import typing as t

from ._validators import validate_delay
from .expectations import Expectation
from .failures import FailureSink, SourceLocation, caller_location, fail_test
from .matchers import describe
from .polling import (
    DEFAULT_BACKOFF,
    AsyncSleep,
    BackoffPolicy,
    Sleep,
    async_wait_until,
    wait_until,
)

logger = logging.getLogger(__name__)

T = t.TypeVar("T")


class Mock(t.Generic[T]):
    """A mock verifying that recorded interactions match its expectations.

    Expectations are consumed by the first interaction that matches them.
    Problems are never raised from here; they are handed to a failure sink
    together with the location they should be attributed to.

    Not thread-safe: callers recording from several threads must serialise
    :meth:`record` and :meth:`expect` themselves.
    """

    def __init__(
        self,
        *,
        strict: bool = True,
        ordered: bool = True,
        fail: FailureSink = fail_test,
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
    ) -> None:
        """Create a new mock.

        Parameters
        ----------
        strict:
            When ``True`` (the default), interactions that match no pending
            expectation, or arrive out of order, are reported as failures.
            Otherwise they are dropped silently.
        ordered:
            When ``True`` (the default), expectations must be matched in the
            order they were declared.
        fail:
            Default failure sink for :meth:`record` and the verification
            methods. Defaults to :func:`~call_mox.failures.fail_test`.
        backoff:
            Polling policy used by the delayed verification methods.
        """
        self._strict = strict
        self._ordered = ordered
        self._fail = fail
        self._backoff = backoff
        self._pending: list[Expectation[T]] = []
        self._revision = 0
        self._verified_revision: int | None = None

    @property
    def strict(self) -> bool:
        """Return whether unmatched interactions are failures."""
        return self._strict

    @property
    def ordered(self) -> bool:
        """Return whether expectations must be matched in declaration order."""
        return self._ordered

    @property
    def pending(self) -> tuple[Expectation[T], ...]:
        """Return the expectations not yet matched, in declaration order."""
        return tuple(self._pending)

    @property
    def verified(self) -> bool:
        """Return whether the mock was verified since it last changed.

        Only verification into the mock's own sink counts; calls with an
        explicit ``fail`` do not. :class:`~call_mox.controller.CallMox` skips
        verified mocks so their failures are not collected twice.
        """
        return self._verified_revision == self._revision

    def __repr__(self) -> str:
        """Return a debug representation."""
        return (
            f"Mock(strict={self._strict}, ordered={self._ordered}, "
            f"pending={len(self._pending)})"
        )

    def expect(self, expectation: object) -> Expectation[T]:
        """Append *expectation* to the pending expectations.

        Accepts an :class:`Expectation`, a matcher, a predicate, a tuple of any
        of these or a literal value compared by equality.
        """
        exp: Expectation[T] = Expectation.of(expectation)
        self._pending.append(exp)
        self._revision += 1
        logger.debug("Expecting <%s> (%d pending)", exp, len(self._pending))
        return exp

    def record(
        self,
        interaction: T,
        *,
        location: SourceLocation | None = None,
        fail: FailureSink | None = None,
    ) -> None:
        """Match *interaction* against the pending expectations.

        The first matching expectation is consumed. In strict ordered mode only
        the oldest pending expectation is tried, and a mismatch is reported
        straight away. At most one failure is reported per call.
        """
        self._revision += 1
        sink = fail if fail is not None else self._fail
        where = location if location is not None else caller_location()
        for index, exp in enumerate(self._pending):
            if exp.matches(interaction):
                del self._pending[index]
                logger.debug(
                    "Interaction <%s> matched expectation <%s>",
                    describe(interaction),
                    exp,
                )
                return
            if self._strict and self._ordered:
                sink(
                    f"Interaction <{describe(interaction)}> does not match "
                    f"expectation <{exp}>",
                    where,
                )
                return

        if self._strict:
            sink(f"Interaction <{describe(interaction)}> not expected", where)
        else:
            logger.debug("Ignoring unexpected interaction <%s>", describe(interaction))

    def verify(
        self,
        *,
        location: SourceLocation | None = None,
        fail: FailureSink | None = None,
    ) -> None:
        """Report every expectation that has not been matched.

        Pending expectations are left in place, so repeated calls report the
        same failures.
        """
        sink = fail if fail is not None else self._fail
        where = location if location is not None else caller_location()
        for exp in tuple(self._pending):
            sink(f"Expectation <{exp}> not matched", where)
        if fail is None:
            self._verified_revision = self._revision

    def _reset_verified(self) -> None:
        self._verified_revision = None

    def _is_satisfied(self) -> bool:
        return not self._pending

    def verify_with_delay(
        self,
        delay: float = 1.0,
        *,
        location: SourceLocation | None = None,
        fail: FailureSink | None = None,
        sleep: Sleep = time.sleep,
    ) -> None:
        """Wait up to *delay* seconds for pending expectations, then verify.

        Interactions recorded from another thread while waiting are taken into
        account. Polling backs off exponentially, so the last sleep may run
        past *delay*.
        """
        validate_delay(delay)
        where = location if location is not None else caller_location()
        wait_until(
            self._is_satisfied,
            delay,
            policy=self._backoff,
            sleep=sleep,
            logger=logger,
        )
        self.verify(location=where, fail=fail)

    def verify_with_delay_async(
        self,
        delay: float = 1.0,
        *,
        location: SourceLocation | None = None,
        fail: FailureSink | None = None,
        sleep: AsyncSleep = asyncio.sleep,
    ) -> t.Coroutine[t.Any, t.Any, None]:
        """Return an awaitable :meth:`verify_with_delay` yielding to the event loop.

        The delay is validated and the location captured when this is called,
        so failures point at the calling line rather than at the event loop.
        """
        validate_delay(delay)
        where = location if location is not None else caller_location()
        return self._verify_after_wait_async(delay, where, fail, sleep)

    async def _verify_after_wait_async(
        self,
        delay: float,
        where: SourceLocation,
        fail: FailureSink | None,
        sleep: AsyncSleep,
    ) -> None:
        await async_wait_until(
            self._is_satisfied,
            delay,
            policy=self._backoff,
            sleep=sleep,
            logger=logger,
        )
        self.verify(location=where, fail=fail)


__all__ = ["Mock"]
