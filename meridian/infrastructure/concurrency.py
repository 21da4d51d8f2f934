"""
Bounded task execution for fetch and resolution cycles.

Tasks run either sequentially on the calling thread or on a bounded worker
pool. Results always come back in task order, regardless of completion order.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')

DEFAULT_MAX_WORKERS = 8


def run_tasks(
    tasks: Sequence[Callable[[], T]],
    parallel: bool = False,
    max_workers: int = DEFAULT_MAX_WORKERS,
    name: str = "meridian"
) -> List[T]:
    """
    Run tasks and collect their results in order.

    Args:
        tasks: Zero-argument callables
        parallel: Run on a worker pool instead of the calling thread
        max_workers: Upper bound of the worker pool
        name: Thread name prefix for pool workers

    Returns:
        List of task results, in the same order as ``tasks``

    Raises:
        The first exception raised by a task (in task order). Tasks that have
        not started yet are cancelled.
    """
    if not tasks:
        return []

    if not parallel or len(tasks) == 1:
        return [task() for task in tasks]

    workers = max(1, min(max_workers, len(tasks)))
    logger.debug(f"Running {len(tasks)} tasks on {workers} workers")

    executor = ThreadPoolExecutor(max_workers=workers, thread_name_prefix=name)
    try:
        # each task runs in its own copy of the caller's context (refresh id)
        futures = [executor.submit(contextvars.copy_context().run, task) for task in tasks]
        return [future.result() for future in futures]
    finally:
        executor.shutdown(wait=True, cancel_futures=True)
