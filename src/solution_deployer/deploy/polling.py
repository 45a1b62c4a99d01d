"""Wait loop for asynchronous remote operations."""

from __future__ import annotations

import time
from typing import Callable

import structlog

from solution_deployer.core.exceptions import RemoteTimeoutError
from solution_deployer.deploy.models import AsyncOperation

logger = structlog.get_logger()


def wait_for_completion(
    fetch: Callable[[], AsyncOperation],
    *,
    poll_interval_ms: int,
    timeout_seconds: float,
    sleep: Callable[[float], None] = time.sleep,
    clock: Callable[[], float] = time.monotonic,
) -> AsyncOperation:
    """Poll ``fetch`` until the operation reaches a terminal state.

    The deadline is fixed when the wait starts. Timing out ends the wait only;
    the remote job may still be running.

    Args:
        fetch: Returns the current operation snapshot
        poll_interval_ms: Delay between checks
        timeout_seconds: Maximum total wait
        sleep: Sleep function (injectable for tests)
        clock: Monotonic clock (injectable for tests)

    Returns:
        The first terminal snapshot

    Raises:
        RemoteTimeoutError: If no terminal state is seen before the deadline
    """
    interval = poll_interval_ms / 1000.0
    deadline = clock() + timeout_seconds
    attempt = 0

    while True:
        attempt += 1
        operation = fetch()
        if operation.state.is_terminal:
            logger.debug("Async operation finished", job_id=operation.job_id, state=operation.state.value, attempts=attempt)
            return operation

        remaining = deadline - clock()
        if remaining <= 0:
            logger.warning(
                "Async operation timed out",
                job_id=operation.job_id,
                state=operation.state.value,
                attempts=attempt,
                timeout_seconds=timeout_seconds,
            )
            raise RemoteTimeoutError(
                f"Async operation {operation.job_id} did not finish within {timeout_seconds}s",
                code="timeout",
            )

        sleep(min(interval, remaining))
