# stashcache/cache/invalidation.py
"""
Cache Invalidation Module.

Decides what a reader gets for a single cached record: a hit, a miss (the
reader must regenerate the value), or a stand-in value while somebody else
regenerates it. Each InvalidationMethod maps to a handler that only looks at
its inputs, so the policies can be exercised without a driver.
"""

from __future__ import annotations
import enum
import logging
import time
from dataclasses import dataclass
from typing import Any, Callable, Optional, TYPE_CHECKING

if TYPE_CHECKING:
    from ..config import CacheContext
    from ..drivers.interface import Record

logger = logging.getLogger(__name__)


class InvalidationMethod(enum.Enum):
    """How an item behaves when its record is stale or about to be."""

    # Stale data is a plain miss, with no stampede coordination.
    NONE = 0
    # Serve the expired value while another item regenerates it.
    OLD = 1
    # Serve a caller-supplied value while another item regenerates it.
    VALUE = 2
    # Wait for the regenerating item, then give up with a miss.
    SLEEP = 3
    # Pick one reader to regenerate shortly before the real expiration.
    PRECOMPUTE = 4


@dataclass(frozen=True)
class Outcome:
    """
    The verdict for one read.

    `retry_after` (seconds) is only set by the SLEEP policy: the caller should
    wait that long and read again with `attempts_left` as the new attempt count.
    """

    hit: bool
    value: Any = None
    retry_after: Optional[float] = None
    attempts_left: Optional[int] = None


def _is_number(value: Any) -> bool:
    return isinstance(value, (int, float)) and not isinstance(value, bool)


def record_value(record: Optional["Record"]) -> Any:
    """Extract the stored value from an item record, None when there is none."""
    if not record or not isinstance(record.data, dict):
        return None
    return record.data.get("return")


# --- Policy handlers (stale record, stampede flag already confirmed) ---


def _handle_value(record, arg1, arg2, context) -> Outcome:
    if arg1 is None:
        return Outcome(hit=False)
    return Outcome(hit=True, value=arg1)


def _handle_sleep(record, arg1, arg2, context) -> Outcome:
    wait_ms = arg1 if _is_number(arg1) else context.sleep_time
    attempts = arg2 if _is_number(arg2) else context.sleep_attempts
    if attempts <= 0:
        return Outcome(hit=False, value=None)
    return Outcome(
        hit=False,
        value=None,
        retry_after=wait_ms / 1000.0,
        attempts_left=int(attempts) - 1,
    )


def _handle_old(record, arg1, arg2, context) -> Outcome:
    value = record_value(record)
    return Outcome(hit=value is not None, value=value)


def _handle_unknown(record, arg1, arg2, context) -> Outcome:
    return Outcome(hit=False)


POLICY_HANDLERS: dict = {
    InvalidationMethod.VALUE: _handle_value,
    InvalidationMethod.SLEEP: _handle_sleep,
    InvalidationMethod.OLD: _handle_old,
}


def resolve(
    record: Optional["Record"],
    method: Any,
    arg1: Any,
    arg2: Any,
    stampede_active: Callable[[], bool],
    context: "CacheContext",
    now: Optional[float] = None,
) -> Outcome:
    """
    Apply an invalidation method to a freshly read record.

    Args:
        record: The record read from the driver (falsy when missing).
        method: The InvalidationMethod bound to the item. Anything that is not
                a known member degrades to a miss once the record is stale.
        arg1: First policy argument (PRECOMPUTE window, VALUE stand-in,
              SLEEP interval in ms).
        arg2: Second policy argument (SLEEP attempts).
        stampede_active: Called only when the stampede flag matters; returns
                         True if another item is regenerating this key.
        context: Supplies the policy defaults.
        now: Current epoch time, defaults to time.time().

    Returns:
        The Outcome for this read.
    """
    now = time.time() if now is None else now
    value = record_value(record)

    if record and (record.expiration is None or record.expiration - now > 0):
        if method is InvalidationMethod.PRECOMPUTE and record.expiration is not None:
            window = arg1 if _is_number(arg1) else context.precompute_time
            if record.expiration - now < window:
                # Somebody is already regenerating: everyone else keeps the
                # current value. Otherwise this reader regenerates early.
                return Outcome(hit=bool(stampede_active()), value=value)
        return Outcome(hit=True, value=value)

    if method is None or method is InvalidationMethod.NONE:
        return Outcome(hit=False, value=value)

    if not stampede_active():
        return Outcome(hit=False, value=value)

    handler = POLICY_HANDLERS.get(method, _handle_unknown)
    if handler is _handle_unknown:
        logger.debug(f"No stale-data handler for invalidation method {method!r}; treating as miss.")
    return handler(record, arg1, arg2, context)
