"""Expectations pending on a :class:`~call_mox.mock.Mock`."""

from __future__ import annotations

import dataclasses as dc
import typing as t

from .matchers import ExpectationConvertible, Matcher, matches

T = t.TypeVar("T")


@dc.dataclass(frozen=True, slots=True, eq=False)
class Expectation(t.Generic[T]):
    """One expected interaction, displayed through its matcher."""

    matcher: Matcher[T]

    @classmethod
    def of(cls, value: object) -> Expectation[t.Any]:
        """Build an expectation from a literal, predicate, tuple or matcher.

        Existing expectations are returned unchanged; everything else goes
        through :func:`call_mox.matchers.matches`.
        """
        if isinstance(value, Expectation):
            return value
        return cls(matches(value))

    def matches(self, interaction: T) -> bool:
        """Return ``True`` if *interaction* satisfies this expectation."""
        return self.matcher.matches(interaction)

    def to_matcher(self) -> Matcher[T]:
        """Return the wrapped matcher."""
        return self.matcher

    def __str__(self) -> str:
        """Return the matcher description."""
        return self.matcher.description


__all__ = ["Expectation", "ExpectationConvertible"]
