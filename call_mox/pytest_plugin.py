"""Pytest plugin providing the ``call_mox`` fixture."""

from __future__ import annotations

import logging
import typing as t

import pytest

from ._validators import validate_delay
from .controller import CallMox
from .errors import VerificationError
from .failures import SourceLocation

logger = logging.getLogger(__name__)

_SETTING_KEYS = ("auto_verify", "verify_delay")


def pytest_addoption(parser: pytest.Parser) -> None:
    """Register command-line and ini options for the plugin."""
    group = parser.getgroup("call_mox")
    group.addoption(
        "--call-mox-auto-verify",
        action="store_true",
        dest="call_mox_auto_verify",
        default=None,
        help=(
            "Verify every mock created through the call_mox fixture during "
            "teardown. Overrides the pytest.ini setting."
        ),
    )
    group.addoption(
        "--no-call-mox-auto-verify",
        action="store_false",
        dest="call_mox_auto_verify",
        default=None,
        help=(
            "Disable automatic verify() of the call_mox fixture's mocks. "
            "Overrides the pytest.ini setting."
        ),
    )
    group.addoption(
        "--call-mox-verify-delay",
        action="store",
        dest="call_mox_verify_delay",
        type=float,
        default=None,
        metavar="SECONDS",
        help=(
            "Seconds teardown verification waits for outstanding interactions. "
            "Overrides the pytest.ini setting."
        ),
    )
    parser.addini(
        "call_mox_auto_verify",
        "Automatically verify the call_mox fixture's mocks during teardown.",
        type="bool",
        default=True,
    )
    parser.addini(
        "call_mox_verify_delay",
        "Seconds teardown verification waits for outstanding interactions.",
        default="0",
    )


def pytest_configure(config: pytest.Config) -> None:
    """Register plugin-specific markers."""
    config.addinivalue_line(
        "markers",
        (
            "call_mox(auto_verify: bool = True, verify_delay: float = 0): "
            "override teardown verification for a single test."
        ),
    )


class _CallMoxItem(t.Protocol):
    """pytest item carrying call_mox teardown state."""

    rep_call: pytest.TestReport
    _call_mox_verify_error: VerificationError | None


@pytest.hookimpl(hookwrapper=True)
def pytest_runtest_makereport(
    item: pytest.Item, call: pytest.CallInfo[t.Any]
) -> t.Generator[None, None, None]:
    """Attach each phase's report to the item.

    The fixture teardown inspects ``rep_call`` to avoid piling a verification
    failure on top of a test that already failed; such failures are attached
    to the teardown report as a section instead.
    """
    del call
    outcome = yield
    rep = outcome.get_result()
    setattr(item, f"rep_{rep.when}", rep)
    if rep.when == "teardown":
        _apply_deferred_verify_failure(item, rep)


def _apply_deferred_verify_failure(
    item: pytest.Item, report: pytest.TestReport
) -> None:
    """Attach a verification error captured after the test body failed."""
    err = getattr(item, "_call_mox_verify_error", None)
    if err is None:
        return
    delattr(item, "_call_mox_verify_error")
    report.sections.append(("call_mox verification (teardown)", str(err)))


def _marker_setting(request: pytest.FixtureRequest, key: str) -> t.Any | None:
    """Return the ``call_mox`` marker's value for *key* if present."""
    marker = request.node.get_closest_marker("call_mox")
    if marker is None or key not in marker.kwargs:
        return None
    return marker.kwargs[key]


def _param_setting(request: pytest.FixtureRequest, key: str) -> t.Any | None:
    """Return the indirect fixture parameter's value for *key* if present."""
    param = getattr(request, "param", None)
    if param is None:
        return None
    if isinstance(param, dict):
        unknown = sorted(set(param) - set(_SETTING_KEYS))
        if unknown:
            msg = (
                "call_mox fixture param dict accepts only "
                f"{', '.join(_SETTING_KEYS)}; got unknown keys: {unknown}"
            )
            raise TypeError(msg)
        return param.get(key)
    if isinstance(param, bool):
        return param if key == "auto_verify" else None
    msg = (
        "call_mox fixture param must be a bool or a dict with 'auto_verify' "
        f"and/or 'verify_delay' keys, got {type(param).__name__}"
    )
    raise TypeError(msg)


def _auto_verify_enabled(request: pytest.FixtureRequest) -> bool:
    """Return whether the fixture should verify its mocks during teardown."""
    # Priority order: marker > fixture param > CLI option > INI setting
    for value in (
        _marker_setting(request, "auto_verify"),
        _param_setting(request, "auto_verify"),
        request.config.getoption("call_mox_auto_verify"),
    ):
        if value is not None:
            return bool(value)
    return bool(request.config.getini("call_mox_auto_verify"))


def _verify_delay(request: pytest.FixtureRequest) -> float:
    """Return the teardown verification delay in seconds."""
    for value in (
        _marker_setting(request, "verify_delay"),
        _param_setting(request, "verify_delay"),
        request.config.getoption("call_mox_verify_delay"),
    ):
        if value is not None:
            validate_delay(value, name="verify_delay")
            return float(value)
    raw = request.config.getini("call_mox_verify_delay")
    try:
        delay = float(raw)
    except ValueError as exc:
        msg = f"call_mox_verify_delay must be a number of seconds, got {raw!r}"
        raise ValueError(msg) from exc
    validate_delay(delay, name="call_mox_verify_delay")
    return delay


@pytest.fixture
def call_mox(request: pytest.FixtureRequest) -> t.Generator[CallMox, None, None]:
    """Provide a :class:`CallMox` whose mocks are verified during teardown."""
    try:
        mox = CallMox(verify_on_exit=False, verify_delay=_verify_delay(request))
        auto_verify = _auto_verify_enabled(request)
        yield mox
    except Exception:
        logger.exception("Error during call_mox fixture setup or test execution")
        raise
    if auto_verify:
        _teardown_verify(request.node, mox)


def _item_location(item: pytest.Item) -> SourceLocation:
    """Return the location of the test function behind *item*."""
    path, lineno, _ = item.reportinfo()
    return SourceLocation(str(path), (lineno or 0) + 1)


def _teardown_verify(item: pytest.Item, mox: CallMox) -> None:
    """Verify *mox*, failing the test unless its body already failed.

    Unmatched expectations are attributed to the test function.
    """
    report: str | None = None
    try:
        mox.verify(location=_item_location(item))
    except VerificationError as err:
        if _call_stage_failed(item):
            logger.debug("call_mox verification failed after test failure: %s", err)
            t.cast("_CallMoxItem", item)._call_mox_verify_error = err
        else:
            report = str(err)
    if report is not None:
        pytest.fail(report, pytrace=False)


def _call_stage_failed(item: pytest.Item) -> bool:
    """Return ``True`` when the test body has already failed."""
    rep_call = getattr(t.cast("_CallMoxItem", item), "rep_call", None)
    return bool(rep_call and rep_call.failed)


__all__ = ["call_mox"]
