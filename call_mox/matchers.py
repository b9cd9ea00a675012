"""Composable matchers used to describe expected interactions."""

from __future__ import annotations

import abc
import dataclasses as dc
import re
import typing as t

T = t.TypeVar("T")


def describe(value: object) -> str:
    """Return the display form of *value* used in failure messages.

    Strings are quoted so ``'5'`` and ``5`` stay distinguishable; other values
    use ``str()`` which renders tuples as ``(4, 5)``.
    """
    if isinstance(value, str):
        return repr(value)
    return str(value)


class Matcher(abc.ABC, t.Generic[T]):
    """Predicate over a value paired with a human readable description."""

    __slots__ = ()

    @abc.abstractmethod
    def matches(self, value: T) -> bool:
        """Return ``True`` if *value* satisfies this matcher."""

    @property
    @abc.abstractmethod
    def description(self) -> str:
        """Return the text used to display this matcher."""

    def to_matcher(self) -> Matcher[T]:
        """Return ``self``; matchers convert to themselves."""
        return self

    def __call__(self, value: T) -> bool:
        """Alias for :meth:`matches` so matchers work as plain callables."""
        return self.matches(value)

    def __str__(self) -> str:
        """Return :attr:`description`."""
        return self.description


@t.runtime_checkable
class ExpectationConvertible(t.Protocol[T]):
    """Anything that can be turned into a matcher for an expectation."""

    def to_matcher(self) -> Matcher[T]:
        """Return the matcher describing the expected interaction."""
        ...


@dc.dataclass(frozen=True, slots=True)
class Equals(Matcher[T]):
    """Match values equal to ``value``."""

    value: T

    def matches(self, value: T) -> bool:
        """Return ``True`` when *value* equals the expected value."""
        return bool(value == self.value)

    @property
    def description(self) -> str:
        """Render the expected value."""
        return describe(self.value)


@dc.dataclass(frozen=True, slots=True)
class Any(Matcher[t.Any]):
    """Match any value."""

    def matches(self, value: object) -> bool:
        """Return ``True`` for any input."""
        return True

    @property
    def description(self) -> str:
        """Render as the wildcard ``_``."""
        return "_"


@dc.dataclass(frozen=True, slots=True)
class Predicate(Matcher[T]):
    """Use a custom ``func`` to determine a match."""

    func: t.Callable[[T], object]
    label: str | None = None

    def matches(self, value: T) -> bool:
        """Return ``True`` if ``func(value)`` is truthy."""
        return bool(self.func(value))

    @property
    def description(self) -> str:
        """Return ``label`` or a placeholder naming the function."""
        if self.label is not None:
            return self.label
        name = getattr(self.func, "__name__", None)
        if name is None or name == "<lambda>":
            return "<predicate>"
        return f"<{name}>"


@dc.dataclass(frozen=True, slots=True)
class TupleOf(Matcher[tuple[t.Any, ...]]):
    """Match fixed-arity tuples element by element."""

    elements: tuple[Matcher[t.Any], ...]

    def matches(self, value: object) -> bool:
        """Return ``True`` when every element matches its sub-matcher."""
        if not isinstance(value, tuple) or len(value) != len(self.elements):
            return False
        return all(
            matcher.matches(item)
            for matcher, item in zip(self.elements, value, strict=True)
        )

    @property
    def description(self) -> str:
        """Join the element descriptions like a tuple literal."""
        parts = [matcher.description for matcher in self.elements]
        if len(parts) == 1:
            return f"({parts[0]},)"
        return "(" + ", ".join(parts) + ")"


@dc.dataclass(frozen=True, slots=True)
class IsA(Matcher[t.Any]):
    """Match instances of ``typ``."""

    typ: type

    def matches(self, value: object) -> bool:
        """Return ``True`` when *value* is an instance of ``typ``."""
        return isinstance(value, self.typ)

    @property
    def description(self) -> str:
        """Render the expected type name."""
        return f"<{self.typ.__name__}>"


@dc.dataclass(frozen=True, slots=True)
class Regex(Matcher[t.Any]):
    """Match strings in which ``pattern`` is found."""

    pattern: str
    _compiled: re.Pattern[str] = dc.field(init=False, repr=False, compare=False)

    def __post_init__(self) -> None:
        """Compile ``pattern`` once; malformed patterns raise :class:`re.error`."""
        object.__setattr__(self, "_compiled", re.compile(self.pattern))

    def matches(self, value: object) -> bool:
        """Return ``True`` if *value* is a string the regex matches."""
        if not isinstance(value, str):
            return False
        return self._compiled.search(value) is not None

    @property
    def description(self) -> str:
        """Render the pattern."""
        return f"<matching {self.pattern!r}>"


@dc.dataclass(frozen=True, slots=True)
class Contains(Matcher[t.Any]):
    """Match containers holding ``item``."""

    item: object

    def matches(self, value: object) -> bool:
        """Return ``True`` if ``item`` is in *value*."""
        try:
            return self.item in value  # type: ignore[operator]
        except TypeError:
            return False

    @property
    def description(self) -> str:
        """Render the required member."""
        return f"<containing {self.item!r}>"


@dc.dataclass(frozen=True, slots=True)
class StartsWith(Matcher[t.Any]):
    """Match strings beginning with ``prefix``."""

    prefix: str

    def matches(self, value: object) -> bool:
        """Return ``True`` if *value* is a string starting with ``prefix``."""
        return isinstance(value, str) and value.startswith(self.prefix)

    @property
    def description(self) -> str:
        """Render the required prefix."""
        return f"<starting with {self.prefix!r}>"


def equals(value: T) -> Equals[T]:
    """Return a matcher accepting values equal to *value*."""
    return Equals(value)


def anything() -> Any:
    """Return the wildcard matcher."""
    return Any()


def predicate(func: t.Callable[[T], object], label: str | None = None) -> Predicate[T]:
    """Return a matcher delegating to *func*, displayed as *label*."""
    return Predicate(func, label)


def matches(value: object) -> Matcher[t.Any]:
    """Convert *value* into a matcher.

    Classes become an :class:`IsA` check. Objects providing ``to_matcher()``
    (matchers and expectations) convert themselves. Tuples become a
    :class:`TupleOf` whose elements are converted recursively, callables
    become a :class:`Predicate` and anything else is compared with
    :class:`Equals`. Use :func:`equals` to compare a callable, class or tuple
    literally.
    """
    if isinstance(value, type):
        return IsA(value)
    if isinstance(value, ExpectationConvertible):
        return t.cast("Matcher[t.Any]", value.to_matcher())
    if isinstance(value, tuple):
        return TupleOf(tuple(matches(item) for item in value))
    if callable(value):
        return Predicate(value)
    return Equals(value)


__all__ = [
    "Any",
    "Contains",
    "Equals",
    "ExpectationConvertible",
    "IsA",
    "Matcher",
    "Predicate",
    "Regex",
    "StartsWith",
    "TupleOf",
    "anything",
    "describe",
    "equals",
    "matches",
    "predicate",
]
