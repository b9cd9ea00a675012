"""Call-expectation verification for Python test suites.

Declare the interactions a collaborator should see on a :class:`Mock`, route
observed interactions into :meth:`Mock.record` and check with
:meth:`Mock.verify` that every expectation was matched.
"""

from __future__ import annotations

from .controller import CallMox
from .errors import CallMoxError, VerificationError
from .expectations import Expectation, ExpectationConvertible
from .failures import (
    Failure,
    FailureCollector,
    FailureSink,
    SourceLocation,
    fail_test,
    raise_failure,
)
from .matchers import (
    Any,
    Contains,
    Equals,
    IsA,
    Matcher,
    Predicate,
    Regex,
    StartsWith,
    TupleOf,
    anything,
    equals,
    matches,
    predicate,
)
from .mock import Mock
from .polling import DEFAULT_BACKOFF, BackoffPolicy

__all__ = [
    "DEFAULT_BACKOFF",
    "Any",
    "BackoffPolicy",
    "CallMox",
    "CallMoxError",
    "Contains",
    "Equals",
    "Expectation",
    "ExpectationConvertible",
    "Failure",
    "FailureCollector",
    "FailureSink",
    "IsA",
    "Matcher",
    "Mock",
    "Predicate",
    "Regex",
    "SourceLocation",
    "StartsWith",
    "TupleOf",
    "VerificationError",
    "anything",
    "equals",
    "fail_test",
    "matches",
    "predicate",
    "raise_failure",
]
