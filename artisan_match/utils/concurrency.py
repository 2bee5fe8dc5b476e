"""
Structured concurrency helpers.

Fan-out/join over a thread pool where every task reports its own outcome,
plus a deadline wrapper for blocking calls to remote services.
"""

from concurrent.futures import Future, ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from dataclasses import dataclass
from typing import Any, Callable, Generic, Optional, TypeVar

from artisan_match.core.exceptions import OperationTimeoutError

T = TypeVar("T")


@dataclass
class TaskOutcome(Generic[T]):
    """Result of one task in a fan-out: either a value or the error it raised."""

    name: str
    value: Optional[T] = None
    error: Optional[BaseException] = None

    @property
    def ok(self) -> bool:
        return self.error is None


def run_concurrently(
    tasks: dict[str, Callable[[], T]],
    max_workers: Optional[int] = None,
) -> dict[str, TaskOutcome[T]]:
    """
    Run independent callables concurrently and wait for all of them.

    A failing task never cancels its siblings; its exception is captured in
    its outcome so the caller decides how to degrade.

    Args:
        tasks: Mapping of task name to zero-argument callable
        max_workers: Thread pool size (defaults to one worker per task)

    Returns:
        Mapping of task name to TaskOutcome, in the input order
    """
    if not tasks:
        return {}

    workers = max_workers or len(tasks)
    outcomes: dict[str, TaskOutcome[T]] = {}

    with ThreadPoolExecutor(max_workers=workers) as executor:
        futures: dict[str, Future] = {name: executor.submit(fn) for name, fn in tasks.items()}

        for name, future in futures.items():
            try:
                outcomes[name] = TaskOutcome(name=name, value=future.result())
            except Exception as e:
                outcomes[name] = TaskOutcome(name=name, error=e)

    return outcomes


def call_with_timeout(
    fn: Callable[..., T],
    timeout: Optional[float],
    operation: str,
    *args: Any,
    **kwargs: Any,
) -> T:
    """
    Call fn and bound the wait by timeout seconds.

    With no timeout the call runs inline. On expiry OperationTimeoutError is
    raised; the worker thread is left to finish in the background, so any
    cache writes it performs still land.
    """
    if timeout is None:
        return fn(*args, **kwargs)

    executor = ThreadPoolExecutor(max_workers=1)
    future = executor.submit(fn, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError as e:
        raise OperationTimeoutError(operation, timeout) from e
    finally:
        executor.shutdown(wait=False)
