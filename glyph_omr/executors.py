"""Shared worker pool for parallel system processing.

The pool is created lazily on first use and reused by every step, so the
number of threads working on systems stays bounded whatever the number of
steps in flight.
"""

import logging
import threading
from concurrent.futures import ThreadPoolExecutor

logger = logging.getLogger(__name__)

_executor: ThreadPoolExecutor | None = None
_executor_workers: int | None = None
_lock = threading.Lock()


def get_executor(max_workers: int | None = None) -> ThreadPoolExecutor:
    """Return the shared executor, creating it on first call.

    Args:
        max_workers: Pool size, only taken into account when the pool gets
            created. None uses the ThreadPoolExecutor default.

    Returns:
        The shared ThreadPoolExecutor.
    """
    global _executor, _executor_workers
    with _lock:
        if _executor is None:
            _executor = ThreadPoolExecutor(
                max_workers=max_workers, thread_name_prefix="system"
            )
            _executor_workers = max_workers
            logger.debug(f"Created system executor with max_workers={max_workers}")
        elif max_workers is not None and max_workers != _executor_workers:
            logger.warning(
                f"Ignoring max_workers={max_workers}, system executor already "
                f"created with max_workers={_executor_workers}"
            )
        return _executor


def shutdown_executor(wait: bool = True) -> None:
    """Shut the shared executor down. A later call to ``get_executor`` creates a new one.

    Args:
        wait: Whether to wait for running tasks to complete.
    """
    global _executor, _executor_workers
    with _lock:
        if _executor is not None:
            _executor.shutdown(wait=wait, cancel_futures=True)
            _executor = None
            _executor_workers = None
