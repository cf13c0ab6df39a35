"""
Per-call timeouts for blocking provider and store calls.

The call runs on a shared worker pool; when the budget elapses the caller gets
OperationTimeoutError and the worker is left to finish on its own.
"""

import logging
from concurrent.futures import ThreadPoolExecutor
from concurrent.futures import TimeoutError as FutureTimeoutError
from typing import Any, Callable, Optional

from experience_recall.errors import OperationTimeoutError

logger = logging.getLogger(__name__)

_executor = ThreadPoolExecutor(max_workers=8, thread_name_prefix="recall-timeout")


def call_with_timeout(
    func: Callable[..., Any],
    timeout: Optional[float],
    *args: Any,
    operation: str = "operation",
    **kwargs: Any
) -> Any:
    """
    Run func(*args, **kwargs) with a time budget.

    Args:
        func: Callable to run
        timeout: Seconds allowed; None or <= 0 runs inline without a budget
        operation: Name used in the timeout message

    Returns:
        The callable's result

    Raises:
        OperationTimeoutError: If the budget elapses first
        Exception: Whatever func raises
    """
    if timeout is None or timeout <= 0:
        return func(*args, **kwargs)

    future = _executor.submit(func, *args, **kwargs)
    try:
        return future.result(timeout=timeout)
    except FutureTimeoutError:
        future.cancel()
        logger.warning(f"{operation} timed out after {timeout:.1f}s")
        raise OperationTimeoutError(f"{operation} timed out after {timeout:.1f}s")
