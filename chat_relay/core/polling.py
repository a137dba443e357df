"""Retry-with-timeout combinator: call an async operation until a predicate accepts its result or attempts run out."""
import asyncio
import logging
from dataclasses import dataclass
from typing import Awaitable, Callable, Generic, Optional, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar("T")

SleepFunc = Callable[[float], Awaitable[None]]


@dataclass(frozen=True)
class PollResult(Generic[T]):
    value: Optional[T]
    attempts: int
    found: bool


async def poll_until(
    operation: Callable[[int], Awaitable[T]],
    predicate: Callable[[T], bool],
    *,
    interval: float,
    max_attempts: int,
    initial_delay: float = 0.0,
    sleep: SleepFunc = asyncio.sleep,
    label: str = "poll",
) -> PollResult[T]:
    """
    Run operation(attempt) up to max_attempts times, sleeping `interval` between attempts and
    `initial_delay` before the first one. Stops at the first result accepted by predicate.
    An exception from a single attempt is logged and counted as a miss; cancellation is not caught.
    """
    if initial_delay > 0:
        await sleep(initial_delay)
    for attempt in range(1, max_attempts + 1):
        try:
            value = await operation(attempt)
        except Exception as e:
            logger.warning("%s attempt %d/%d failed: %s", label, attempt, max_attempts, e)
        else:
            if predicate(value):
                logger.info("%s succeeded on attempt %d/%d", label, attempt, max_attempts)
                return PollResult(value, attempt, True)
            logger.debug("%s attempt %d/%d: nothing yet", label, attempt, max_attempts)
        if attempt < max_attempts:
            await sleep(interval)
    return PollResult(None, max_attempts, False)
