import logging
from dataclasses import dataclass
from typing import Any, List, Optional, Sequence, Union

from multisearch.data_manager.dataset import Dataset
from multisearch.evaluation.evaluator import CrossValidationEvaluator
from multisearch.evaluation.performance import Performance, PerformanceComparator
from multisearch.evaluation.task import EvaluationTask
from multisearch.search_engine.cache import PerformanceCache
from multisearch.search_engine.scheduler import WorkerPool
from multisearch.search_engine.trace import AuditLog, Trace
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.setup_generator.space import Point, Space
from multisearch.utils import constants
from multisearch.utils.exceptions import BatchExhaustionError, ConfigurationError


@dataclass(frozen=True)
class SearchContext:
    """Everything a search algorithm needs, passed in explicitly per search."""

    base_model: Any
    train: Dataset
    metric: str
    logger: logging.Logger
    evaluator: CrossValidationEvaluator
    test: Optional[Dataset] = None
    seed: int = constants.DEFAULT_SEED
    class_label: Union[int, str, None] = None
    audit_log: Optional[AuditLog] = None
    group: int = 0


@dataclass(frozen=True)
class SearchResult:
    """
    Terminal artifact of one search: the configured (untrained) model, its
    performance and the concrete values that produced it.
    """

    model: Any
    performance: Performance
    values: Point

    @property
    def point(self) -> Point:
        return self.performance.point


class AbstractSearch:
    """
    Base class for search algorithms.

    ``search`` runs check -> pre_search -> do_search -> post_search and always
    cleans up. Subclasses implement ``do_search`` and evaluate points through
    ``evaluate_points``, which takes care of the cache, the trace and
    failure accounting. Only the calling thread touches cache and trace.
    """

    def __init__(self, num_folds: int = constants.DEFAULT_NUM_FOLDS, num_execution_slots: int = 1):
        self.num_folds = num_folds
        self.num_execution_slots = num_execution_slots
        self.cache = PerformanceCache()
        self.trace = Trace()
        self.dispatched = 0

    def check(self, context: SearchContext, generator: SetupGenerator) -> None:
        if self.num_folds < 1:
            raise ConfigurationError(f"Number of folds must be at least 1, got {self.num_folds}")
        if self.num_execution_slots < 1:
            raise ConfigurationError(
                f"Number of execution slots must be at least 1, got {self.num_execution_slots}")
        generator.check(context.base_model)

    def pre_search(self, context: SearchContext, generator: SetupGenerator) -> None:
        self.cache.clear()
        self.trace.clear()
        self.dispatched = 0

    def do_search(self, context: SearchContext, generator: SetupGenerator) -> SearchResult:
        raise NotImplementedError("Subclasses must implement do_search.")

    def post_search(self, context: SearchContext, generator: SetupGenerator,
                    result: SearchResult) -> SearchResult:
        context.logger.info(
            f"{self.__class__.__name__} finished: {len(self.trace)} trace entries, "
            f"{self.dispatched} evaluation(s). Best {context.metric}="
            f"{result.performance.value(context.metric):.6g} at "
            f"{generator.settings(result.values)}"
        )
        return result

    def cleanup(self) -> None:
        """Hook for releasing resources, runs on success and on error."""

    def search(self, context: SearchContext, generator: SetupGenerator) -> SearchResult:
        try:
            self.check(context, generator)
            self.pre_search(context, generator)
            result = self.do_search(context, generator)
            return self.post_search(context, generator, result)
        finally:
            self.cleanup()

    # ------------------------------------------------------------------
    # Shared helpers
    # ------------------------------------------------------------------
    def comparator(self, context: SearchContext) -> PerformanceComparator:
        return PerformanceComparator(context.metric)

    def make_result(self, context: SearchContext, generator: SetupGenerator,
                    best: Performance) -> SearchResult:
        values = best.values if best.values is not None else generator.evaluate(best.point)
        model = best.model if best.model is not None else generator.setup(context.base_model, values)
        return SearchResult(model, best, values)

    def _record(self, context: SearchContext, generator: SetupGenerator, folds: int,
                performance: Performance, cached: bool) -> None:
        values = performance.values
        if values is None:
            values = generator.evaluate(performance.point)
        entry = self.trace.append(folds, performance, cached, generator.settings(values), context.group)
        if cached:
            context.logger.debug(f"Cache hit for ({performance.point}), folds={folds}")
        if context.audit_log is not None:
            context.audit_log.write(entry)

    def evaluate_points(self, pool: WorkerPool, context: SearchContext, generator: SetupGenerator,
                        points: Sequence[Point], folds: int,
                        train: Optional[Dataset] = None) -> List[Performance]:
        """
        Evaluate ``points`` as one batch and return their performances in input order.

        Cached points are not dispatched. The batch is always drained before
        cache and trace are updated in dispatch order, so the trace does not
        depend on completion order. An unexpected task exception is re-raised
        afterwards, and a batch in which every dispatched task failed raises
        BatchExhaustionError.
        """
        train = train if train is not None else context.train
        results: List[Optional[Performance]] = [None] * len(points)
        from_cache = [False] * len(points)
        futures = []
        slots = []

        for i, point in enumerate(points):
            cached = self.cache.get(folds, point)
            if cached is not None:
                results[i] = cached
                from_cache[i] = True
                continue
            task = EvaluationTask(
                generator, context.base_model, point, train, context.test, folds,
                context.metric, context.evaluator, context.seed, context.class_label,
                context.logger)
            futures.append(pool.submit(task))
            slots.append(i)
            self.dispatched += 1

        # Fan-in: only this thread writes cache and trace
        errors = {}
        for index, performance, error in pool.await_all(futures):
            if error is not None:
                context.logger.error(f"Evaluation task for ({points[slots[index]]}) raised: {error}")
                errors[index] = error
                continue
            results[slots[index]] = performance

        failed = 0
        for i, performance in enumerate(results):
            if performance is None:
                continue
            if not from_cache[i]:
                self.cache.put(folds, points[i], performance)
                failed += performance.failed
            self._record(context, generator, folds, performance, cached=from_cache[i])

        if errors:
            raise errors[min(errors)]
        if futures and failed == len(futures):
            raise BatchExhaustionError(
                f"All {len(futures)} evaluation(s) in the batch failed; aborting search.")
        return results

    def log_performances(self, context: SearchContext, space: Space,
                         performances: Sequence[Performance]) -> None:
        """Debug table of the round, best first."""
        if not context.logger.isEnabledFor(logging.DEBUG):
            return
        lines = [f"Performances ({context.metric}):", str(space)]
        for perf in self.comparator(context).sort(performances):
            lines.append(f"{perf.point}: {perf.value(context.metric)}")
        context.logger.debug("\n".join(lines))
