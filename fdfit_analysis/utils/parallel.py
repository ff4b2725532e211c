"""
Thread pool execution of independent fit tasks.

Per-curve fits, sweep cells and bootstrap iterations are independent and
side-effect free. run_tasks executes them sequentially or on a
ThreadPoolExecutor and always returns results in submission order: each
result is written to its own pre-sized slot.
"""

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

T = TypeVar('T')
R = TypeVar('R')


def run_tasks(
    func: Callable[[T], R],
    tasks: Sequence[T],
    parallel: bool = False,
    max_workers: int = 4
) -> List[R]:
    """
    Apply func to every task.

    Parameters
    ----------
    func : callable
        Function of one task; exceptions propagate to the caller
    tasks : sequence
        Task arguments
    parallel : bool, optional
        Use a thread pool (default: False)
    max_workers : int, optional
        Maximum number of threads (default: 4)

    Returns
    -------
    results : list
        func(task) for each task, in task order
    """
    results: List[R] = [None] * len(tasks)

    if parallel and len(tasks) > 1:
        with ThreadPoolExecutor(max_workers=max_workers) as executor:
            futures = {
                executor.submit(func, task): idx
                for idx, task in enumerate(tasks)
            }
            for future in as_completed(futures):
                results[futures[future]] = future.result()
    else:
        for idx, task in enumerate(tasks):
            results[idx] = func(task)

    return results


__all__ = [
    'run_tasks',
]
