"""Polling helpers with an exponential backoff policy."""

from __future__ import annotations

import asyncio
import dataclasses as dc
import logging
import math
import time
import typing as t

_logger = logging.getLogger(__name__)

Sleep: t.TypeAlias = t.Callable[[float], object]
AsyncSleep: t.TypeAlias = t.Callable[[float], t.Awaitable[object]]


@dc.dataclass(frozen=True, slots=True)
class BackoffPolicy:
    """
    Configuration for polling loops.

    Each poll sleeps for the current step, subtracts it from the remaining
    budget and multiplies the step by ``factor``. Polling stops once the
    budget is no longer positive.

    Attributes
    ----------
    initial_step : float
        First sleep interval in seconds (must be > 0 and finite).
    factor : float
        Multiplier applied to the step after each poll (must be >= 1).

    Raises
    ------
    ValueError
        If initial_step is not positive and finite, or factor < 1.
    """

    initial_step: float = 0.01
    factor: float = 2.0

    def __post_init__(self) -> None:
        """Validate backoff configuration values."""
        if not (self.initial_step > 0 and math.isfinite(self.initial_step)):
            msg = "initial_step must be > 0 and finite"
            raise ValueError(msg)
        if not self.factor >= 1:
            msg = "factor must be >= 1"
            raise ValueError(msg)

    def steps(self, budget: float) -> t.Iterator[float]:
        """Yield sleep intervals until *budget* seconds are used up.

        The final interval may overshoot the remaining budget.
        """
        step = self.initial_step
        remaining = budget
        while remaining > 0:
            yield step
            remaining -= step
            step *= self.factor


DEFAULT_BACKOFF = BackoffPolicy()


def _log_poll(logger: logging.Logger, attempt: int, step: float) -> None:
    """Log a poll that found the condition unmet."""
    logger.debug("Poll %d: condition not met, sleeping %.3fs", attempt, step)


def wait_until(
    condition: t.Callable[[], bool],
    budget: float,
    *,
    policy: BackoffPolicy = DEFAULT_BACKOFF,
    sleep: Sleep = time.sleep,
    logger: logging.Logger | None = None,
) -> bool:
    """
    Sleep with backoff until *condition* holds or *budget* runs out.

    Parameters
    ----------
    condition : Callable[[], bool]
        Checked before every sleep and once more after the last one.
    budget : float
        Total wait budget in seconds.
    policy : BackoffPolicy, optional
        Step sizes. Defaults to DEFAULT_BACKOFF.
    sleep : Callable[[float], object], optional
        Blocking sleep used between polls. Defaults to :func:`time.sleep`.
    logger : logging.Logger | None, optional
        Logger for poll attempts. Defaults to module logger.

    Returns
    -------
    bool
        The final value of *condition*.
    """
    log = logger or _logger
    for attempt, step in enumerate(policy.steps(budget), start=1):
        if condition():
            return True
        _log_poll(log, attempt, step)
        sleep(step)
    return condition()


async def async_wait_until(
    condition: t.Callable[[], bool],
    budget: float,
    *,
    policy: BackoffPolicy = DEFAULT_BACKOFF,
    sleep: AsyncSleep = asyncio.sleep,
    logger: logging.Logger | None = None,
) -> bool:
    """Awaitable variant of :func:`wait_until` yielding to the event loop."""
    log = logger or _logger
    for attempt, step in enumerate(policy.steps(budget), start=1):
        if condition():
            return True
        _log_poll(log, attempt, step)
        await sleep(step)
    return condition()


__all__ = [
    "DEFAULT_BACKOFF",
    "AsyncSleep",
    "BackoffPolicy",
    "Sleep",
    "async_wait_until",
    "wait_until",
]
