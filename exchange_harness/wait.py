"""
Polling-based Wait Utilities

The engine reclaims exchanges on its own timer threads, so a test cannot
check emptiness once and trust the answer. These helpers poll a condition
until it holds or a bounded budget runs out.

Usage:
    from exchange_harness.wait import wait_for_condition

    # Wait, then let the caller decide what a false condition means
    wait_for_condition(600, 60, store.is_empty)
    assert store.is_empty()
"""

import threading
import time
from typing import Callable, Optional

from .logger import get_logger
from .timing import compute_wait_budget


class WaitCancelled(Exception):
    """Raised when a wait is cancelled from outside before it finished."""
    pass


def _evaluate(condition: Callable[[], bool]):
    """Evaluate condition; an exception counts as not yet satisfied."""
    try:
        return bool(condition()), None
    except Exception as e:
        return False, e


def wait_for_condition(
    timeout_ms: int,
    interval_ms: int,
    condition: Callable[[], bool],
    cancel_event: Optional[threading.Event] = None,
    description: str = "condition"
) -> None:
    """
    Block until condition() is true or timeout_ms has elapsed.

    The condition is checked immediately, then at least every interval_ms,
    and once more right at the deadline. Nothing is returned and nothing is
    raised on timeout: the caller checks the condition itself.

    Args:
        timeout_ms: Maximum milliseconds to wait (> 0)
        interval_ms: Milliseconds between polls (> 0)
        condition: Zero-argument callable, may raise while state is in flux
        cancel_event: Setting this event stops the wait
        description: Description for log messages

    Raises:
        WaitCancelled: If cancel_event is set before the condition holds
    """
    if timeout_ms <= 0:
        raise ValueError(f"timeout must be positive, got {timeout_ms}ms")
    if interval_ms <= 0:
        raise ValueError(f"poll interval must be positive, got {interval_ms}ms")

    log = get_logger()
    log.wait_started(description, timeout_ms, interval_ms)

    start = time.monotonic()
    deadline = start + timeout_ms / 1000
    interval = interval_ms / 1000
    polls = 0
    last_exception = None

    while True:
        polls += 1
        satisfied, error = _evaluate(condition)
        if error is not None:
            last_exception = error
        remaining = deadline - time.monotonic()
        if satisfied or remaining <= 0:
            break
        pause = min(interval, remaining)
        if cancel_event is None:
            time.sleep(pause)
        elif cancel_event.wait(pause):
            elapsed_ms = (time.monotonic() - start) * 1000
            log.wait_cancelled(description, elapsed_ms)
            raise WaitCancelled(f"wait for {description} cancelled after {elapsed_ms:.0f}ms")

    elapsed_ms = (time.monotonic() - start) * 1000
    log.wait_finished(description, satisfied, elapsed_ms, polls)
    if not satisfied and last_exception is not None:
        log.error(
            "condition_error",
            f"{description}: last error {last_exception!r}",
            error_type=type(last_exception).__name__,
            description=description
        )


def wait_until_exchanges_reclaimed(
    exchange_lifetime: int,
    sweep_interval: int,
    condition: Callable[[], bool],
    cancel_event: Optional[threading.Event] = None
) -> None:
    """Wait as long as the engine may take to sweep its last exchange."""
    budget = compute_wait_budget(exchange_lifetime, sweep_interval)
    wait_for_condition(
        budget.timeout_ms,
        budget.poll_interval_ms,
        condition,
        cancel_event=cancel_event,
        description="exchanges should be reclaimed"
    )
