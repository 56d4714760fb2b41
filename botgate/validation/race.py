from __future__ import annotations

import asyncio
import logging
from typing import Awaitable, Callable, Set, Tuple, TypeVar

from botgate.validation.errors import DecisionTimeout

T = TypeVar("T")

Sleep = Callable[[float], Awaitable[None]]

_log = logging.getLogger(__name__)

# Strong references to calls that lost the race, so the loop does not
# garbage-collect them while they are still running.
_ABANDONED: Set["asyncio.Future[object]"] = set()


def _settle_abandoned(fut: "asyncio.Future[object]") -> None:
    _ABANDONED.discard(fut)
    if fut.cancelled():
        return
    exc = fut.exception()
    if exc is not None:
        _log.debug("abandoned call finished with error: %r", exc)


def _abandon(fut: "asyncio.Future[object]") -> None:
    _ABANDONED.add(fut)
    fut.add_done_callback(_settle_abandoned)


def pending_abandoned() -> Tuple["asyncio.Future[object]", ...]:
    """Calls that lost a race and are still in flight."""
    return tuple(f for f in _ABANDONED if not f.done())


async def first_completed(
    call: Awaitable[T],
    timeout_s: float,
    *,
    sleep: Sleep = asyncio.sleep,
) -> T:
    """
    Await whichever of ``call`` and a ``timeout_s`` timer finishes first.

    Concurrency contract:
      - If ``call`` wins, its result is returned (or its exception raised)
        and the timer is cancelled.
      - If the timer wins, DecisionTimeout is raised. ``call`` is NOT
        cancelled: it keeps running on the loop and its eventual result or
        error is discarded.
      - ``sleep`` is injectable so tests can drive the timer with a fake clock.
    """
    call_fut: "asyncio.Future[T]" = asyncio.ensure_future(call)
    timer = asyncio.ensure_future(sleep(max(0.0, timeout_s)))
    try:
        await asyncio.wait({call_fut, timer}, return_when=asyncio.FIRST_COMPLETED)
    except asyncio.CancelledError:
        _abandon(call_fut)
        raise
    finally:
        if not timer.done():
            timer.cancel()

    if call_fut.done():
        return call_fut.result()

    _abandon(call_fut)
    raise DecisionTimeout(f"decision service exceeded {int(timeout_s * 1000)} ms")
