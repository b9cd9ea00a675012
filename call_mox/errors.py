"""Exception hierarchy for call-mox."""

from __future__ import annotations

import typing as t

if t.TYPE_CHECKING:  # pragma: no cover - used only for typing
    from .failures import Failure


class CallMoxError(Exception):
    """Base class for call-mox errors."""


class VerificationError(CallMoxError, AssertionError):
    """Raised when recorded interactions do not satisfy a mock's expectations.

    Subclasses :class:`AssertionError` so test runners report it as a test
    failure rather than an error.

    Attributes
    ----------
    failures : tuple[Failure, ...]
        Every failure reported to the sink, in reporting order.
    """

    def __init__(self, failures: t.Sequence[Failure]) -> None:
        from .failures import format_failures

        self.failures = tuple(failures)
        super().__init__(format_failures(self.failures))


__all__ = ["CallMoxError", "VerificationError"]
