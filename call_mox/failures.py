"""Failure sinks that receive the problems a mock detects.

A mock never raises while matching. Every problem is handed to a *failure
sink*: a callable accepting the message and the :class:`SourceLocation` the
failure should be attributed to. :func:`fail_test` forwards to pytest,
:func:`raise_failure` raises straight away and :class:`FailureCollector`
records failures so they can be inspected or raised together later.
"""

from __future__ import annotations

import dataclasses as dc
import inspect
import logging
import typing as t
from textwrap import indent

import pytest

from .errors import VerificationError

logger = logging.getLogger(__name__)


@dc.dataclass(frozen=True, slots=True)
class SourceLocation:
    """File and line a failure is attributed to."""

    file: str
    line: int

    def __str__(self) -> str:
        """Return ``file:line``."""
        return f"{self.file}:{self.line}"


UNKNOWN_LOCATION = SourceLocation("<unknown>", 0)


def caller_location(depth: int = 1) -> SourceLocation:
    """Return the location of the frame *depth* levels above the caller.

    ``caller_location()`` called inside ``record()`` yields the line that
    called ``record()``.
    """
    frame = inspect.currentframe()
    try:
        for _ in range(depth + 1):
            if frame is None:
                break
            frame = frame.f_back
        if frame is None:
            return UNKNOWN_LOCATION
        return SourceLocation(frame.f_code.co_filename, frame.f_lineno)
    finally:
        del frame


FailureSink: t.TypeAlias = t.Callable[[str, SourceLocation], None]


@dc.dataclass(frozen=True, slots=True)
class Failure:
    """A single reported failure."""

    message: str
    location: SourceLocation

    def __str__(self) -> str:
        """Return the message followed by its location."""
        return f"{self.message}\nat {self.location}"


def _numbered(entries: t.Sequence[str], *, start: int = 1) -> str:
    if not entries:
        return "(none)"
    lines: list[str] = []
    for index, entry in enumerate(entries, start=start):
        entry_lines = entry.splitlines() or [""]
        lines.append(f"{index}. {entry_lines[0]}")
        lines.extend(f"   {extra}" for extra in entry_lines[1:])
    return "\n".join(lines)


def _format_sections(title: str, sections: list[tuple[str, str]]) -> str:
    parts = [title]
    for label, body in sections:
        if not body:
            continue
        parts.append("")
        parts.append(f"{label}:")
        parts.append(indent(body, "  "))
    return "\n".join(parts)


def format_failures(failures: t.Sequence[Failure]) -> str:
    """Return a numbered report of *failures*."""
    noun = "failure" if len(failures) == 1 else "failures"
    return _format_sections(
        f"Mock verification failed with {len(failures)} {noun}.",
        [("Failures", _numbered([str(failure) for failure in failures]))],
    )


def fail_test(message: str, location: SourceLocation) -> None:
    """Fail the running pytest test with *message*."""
    pytest.fail(f"{message}\nat {location}", pytrace=False)


def raise_failure(message: str, location: SourceLocation) -> None:
    """Raise :class:`VerificationError` for a single failure."""
    raise VerificationError([Failure(message, location)])


class FailureCollector:
    """Failure sink that records failures instead of raising them."""

    def __init__(self) -> None:
        self._failures: list[Failure] = []

    def __call__(self, message: str, location: SourceLocation) -> None:
        """Record a failure reported at *location*."""
        logger.debug("Failure reported at %s: %s", location, message)
        self._failures.append(Failure(message, location))

    def __len__(self) -> int:
        """Return the number of recorded failures."""
        return len(self._failures)

    @property
    def failures(self) -> tuple[Failure, ...]:
        """Return the recorded failures in reporting order."""
        return tuple(self._failures)

    @property
    def messages(self) -> list[str]:
        """Return the recorded failure messages in reporting order."""
        return [failure.message for failure in self._failures]

    def clear(self) -> None:
        """Forget all recorded failures."""
        self._failures.clear()

    def raise_if_failed(self) -> None:
        """Raise :class:`VerificationError` if any failure was recorded.

        The recorded failures are drained before raising so a later call only
        reports failures collected after this one.
        """
        if not self._failures:
            return
        failures = tuple(self._failures)
        self._failures.clear()
        raise VerificationError(failures)


__all__ = [
    "UNKNOWN_LOCATION",
    "Failure",
    "FailureCollector",
    "FailureSink",
    "SourceLocation",
    "caller_location",
    "fail_test",
    "format_failures",
    "raise_failure",
]
