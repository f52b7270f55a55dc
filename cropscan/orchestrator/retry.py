"""
Bounded retry with backoff for remote calls.

    res = await execute(lambda: store.upload(path, dest), max_attempts=3,
                        initial_delay=1.0, linear=True, timeout=30.0)
    if res.ok: url = res.value

The operation is invoked at most max_attempts times. Between failed attempts
it sleeps min(initial_delay * 2**attempt, max_delay), or
initial_delay * (attempt + 1) in linear mode. Non-retryable failures stop
immediately. Per-attempt timeouts count as retryable. Cancellation is never
swallowed.
"""
import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Optional

from cropscan.orchestrator.errors import TimeoutFailure, is_retryable


@dataclass
class Result:
    ok: bool
    value: Any = None
    error: Optional[BaseException] = None
    attempts: int = 0


@dataclass
class RetryState:
    attempt: int = 0
    current_delay: float = 0.0


def backoff_delay(attempt: int, initial_delay: float, max_delay: float, linear: bool = False) -> float:
    if linear:
        return min(initial_delay * (attempt + 1), max_delay)
    return min(initial_delay * (2 ** attempt), max_delay)


async def execute(
    operation: Callable[[], Awaitable[Any]],
    max_attempts: int = 3,
    initial_delay: float = 1.0,
    max_delay: float = 10.0,
    *,
    linear: bool = False,
    timeout: float | None = None,
    label: str = "op",
    status=None,
    sleep: Callable[[float], Awaitable[Any]] = asyncio.sleep,
) -> Result:
    state = RetryState(current_delay=initial_delay)
    last_error: Optional[BaseException] = None

    while state.attempt < max_attempts:
        try:
            if timeout is not None:
                value = await asyncio.wait_for(operation(), timeout)
            else:
                value = await operation()
            return Result(ok=True, value=value, attempts=state.attempt + 1)
        except asyncio.TimeoutError:
            last_error = TimeoutFailure(f"{label} timed out after {timeout}s")
        except Exception as e:
            last_error = e

        if status is not None:
            status.log(f"retry: {label} attempt {state.attempt + 1}/{max_attempts} failed: "
                       f"{type(last_error).__name__}: {last_error}")

        if not is_retryable(last_error):
            return Result(ok=False, error=last_error, attempts=state.attempt + 1)

        state.attempt += 1
        if state.attempt < max_attempts:
            state.current_delay = backoff_delay(state.attempt - 1, initial_delay, max_delay, linear)
            await sleep(state.current_delay)

    return Result(ok=False, error=last_error, attempts=state.attempt)
