"""CallMox controller owning the mocks of a single test."""

from __future__ import annotations

import types  # noqa: TC003
import typing as t

from ._validators import validate_delay
from .failures import FailureCollector, SourceLocation, caller_location
from .mock import Mock
from .polling import DEFAULT_BACKOFF, BackoffPolicy


class CallMox:
    """Create mocks sharing one failure collector and verify them together."""

    def __init__(
        self,
        *,
        verify_on_exit: bool = True,
        verify_delay: float = 0.0,
        backoff: BackoffPolicy = DEFAULT_BACKOFF,
    ) -> None:
        """Create a new controller.

        Parameters
        ----------
        verify_on_exit:
            When ``True`` (the default), :meth:`__exit__` will automatically
            call :meth:`verify` unless the block raised or :meth:`verify` was
            already called. Disable for explicit control.
        verify_delay:
            Seconds each mock may wait for outstanding interactions during
            :meth:`verify`. ``0`` verifies immediately.
        backoff:
            Polling policy handed to every mock created by :meth:`mock`.
        """
        validate_delay(verify_delay, name="verify_delay")
        self.failures = FailureCollector()
        self._verify_on_exit = verify_on_exit
        self._verify_delay = verify_delay
        self._backoff = backoff
        self._mocks: list[Mock[t.Any]] = []
        self._verified = False

    @property
    def mocks(self) -> tuple[Mock[t.Any], ...]:
        """Return every mock created by this controller."""
        return tuple(self._mocks)

    @property
    def verify_delay(self) -> float:
        """Return the wait budget used by :meth:`verify`."""
        return self._verify_delay

    def mock(self, *, strict: bool = True, ordered: bool = True) -> Mock[t.Any]:
        """Create a mock reporting into :attr:`failures`."""
        mock: Mock[t.Any] = Mock(
            strict=strict,
            ordered=ordered,
            fail=self.failures,
            backoff=self._backoff,
        )
        self._mocks.append(mock)
        self._verified = False
        return mock

    def verify(self, location: SourceLocation | None = None) -> None:
        """Verify every mock and raise if any failure was collected.

        Mocks already verified since they last changed are skipped, as their
        failures are in :attr:`failures` already. Unmatched expectations are
        attributed to *location*, defaulting to the calling line.

        Raises
        ------
        VerificationError
            Listing recording failures and unmatched expectations together.
        """
        where = location if location is not None else caller_location()
        for mock in self._mocks:
            if mock.verified:
                continue
            if self._verify_delay > 0:
                mock.verify_with_delay(
                    self._verify_delay, location=where, fail=self.failures
                )
            else:
                mock.verify(location=where, fail=self.failures)
        self._verified = True
        for mock in self._mocks:
            mock._reset_verified()
        self.failures.raise_if_failed()

    def __enter__(self) -> CallMox:
        """Enter the controller context."""
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: types.TracebackType | None,
    ) -> None:
        """Exit context, verifying unless the block raised."""
        if exc_type is not None or not self._verify_on_exit or self._verified:
            return
        self.verify()


__all__ = ["CallMox"]
