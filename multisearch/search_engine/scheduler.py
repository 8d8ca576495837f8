import logging
from concurrent.futures import Future, ThreadPoolExecutor, as_completed
from typing import Callable, Iterator, Optional, Sequence, Tuple


class WorkerPool:
    """
    Bounded pool of evaluation workers.

    Use as a context manager; leaving the block (normally or through an
    exception) shuts the executor down and cancels pending work.

        with WorkerPool(4) as pool:
            futures = [pool.submit(task) for task in tasks]
            for index, result, error in pool.await_all(futures):
                ...
    """

    def __init__(self, num_slots: int = 1, logger: Optional[logging.Logger] = None):
        if num_slots < 1:
            raise ValueError(f"Number of execution slots must be at least 1, got {num_slots}")
        self.num_slots = num_slots
        self.logger = logger or logging.getLogger(__name__)
        self._executor: Optional[ThreadPoolExecutor] = None

    def __enter__(self) -> "WorkerPool":
        self._executor = ThreadPoolExecutor(max_workers=self.num_slots,
                                            thread_name_prefix="multisearch")
        self.logger.debug(f"Started worker pool with {self.num_slots} slot(s)")
        return self

    def __exit__(self, exc_type, exc, tb) -> None:
        self.shutdown(cancel=True)

    @property
    def active(self) -> bool:
        return self._executor is not None

    def submit(self, fn: Callable, *args, **kwargs) -> Future:
        if self._executor is None:
            raise RuntimeError("Worker pool is not running; use it as a context manager.")
        return self._executor.submit(fn, *args, **kwargs)

    def await_all(self, futures: Sequence[Future]) -> Iterator[Tuple[int, object, Optional[BaseException]]]:
        """
        Yield ``(index, result, exception)`` for every future in completion order.

        Each future is drained even if others failed; ``index`` refers to the
        position in ``futures``.
        """
        positions = {future: i for i, future in enumerate(futures)}
        for future in as_completed(futures):
            error = future.exception()
            yield positions[future], (None if error else future.result()), error

    def shutdown(self, cancel: bool = True) -> None:
        if self._executor is None:
            return
        self._executor.shutdown(wait=True, cancel_futures=cancel)
        self._executor = None
        self.logger.debug("Worker pool shut down")
