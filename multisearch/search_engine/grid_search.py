from typing import List, Optional

from multisearch.evaluation.performance import Performance
from multisearch.search_engine.base_search import AbstractSearch, SearchContext, SearchResult
from multisearch.search_engine.scheduler import WorkerPool
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.setup_generator.space import FunctionDimension, Space
from multisearch.utils import constants
from multisearch.utils.exceptions import ConfigurationError


class GridSearch(AbstractSearch):
    """
    Exhaustive grid search with iterative zoom.

    Every round evaluates all points of the current space (optionally capped
    by ``max_evaluations``). If the best point lies strictly inside every
    numeric axis, the next round searches the neighbourhood of that point at
    half the step size, with list axes fixed to their best value. Zooming
    stops when the best point is on a numeric border, the round was uniform,
    there is no numeric axis, the halved step would drop below ``min_step``,
    or ``max_rounds`` rounds have run. The best performance over all rounds wins.
    """

    def __init__(self, num_folds: int = constants.DEFAULT_NUM_FOLDS,
                 max_rounds: int = constants.DEFAULT_MAX_ROUNDS,
                 min_step: float = constants.DEFAULT_MIN_STEP,
                 max_evaluations: Optional[int] = None,
                 num_execution_slots: int = 1):
        super().__init__(num_folds, num_execution_slots)
        self.max_rounds = max_rounds
        self.min_step = min_step
        self.max_evaluations = max_evaluations
        self.rounds = 0

    def check(self, context: SearchContext, generator: SetupGenerator) -> None:
        super().check(context, generator)
        if self.max_rounds < 1:
            raise ConfigurationError(f"max_rounds must be at least 1, got {self.max_rounds}")
        if self.min_step <= 0:
            raise ConfigurationError(f"min_step must be positive, got {self.min_step}")
        if self.max_evaluations is not None and self.max_evaluations < 1:
            raise ConfigurationError(
                f"max_evaluations must be at least 1, got {self.max_evaluations}")

    def pre_search(self, context: SearchContext, generator: SetupGenerator) -> None:
        super().pre_search(context, generator)
        self.rounds = 0

    def do_search(self, context: SearchContext, generator: SetupGenerator) -> SearchResult:
        comparator = self.comparator(context)
        space: Optional[Space] = generator.space()
        best: Optional[Performance] = None

        with WorkerPool(self.num_execution_slots, context.logger) as pool:
            while space is not None:
                self.rounds += 1
                points = list(space.values())
                if self.max_evaluations is not None and len(points) > self.max_evaluations:
                    context.logger.warning(
                        f"Space has {len(points)} points, evaluating only the first "
                        f"{self.max_evaluations} (max_evaluations).")
                    points = points[:self.max_evaluations]
                context.logger.info(
                    f"Grid round {self.rounds}: evaluating {len(points)} point(s)\n{space}")

                performances = self.evaluate_points(pool, context, generator, points, self.num_folds)
                self.log_performances(context, space, performances)

                round_best = comparator.best(performances)
                if best is None or comparator.compare(round_best, best) < 0:
                    best = round_best
                space = self._next_space(context, space, round_best, performances)

        return self.make_result(context, generator, best)

    def _next_space(self, context: SearchContext, space: Space, best: Performance,
                    performances: List[Performance]) -> Optional[Space]:
        """Zoomed space around ``best``, or None if the search has converged."""
        logger = context.logger
        if len(performances) > 1 and self.comparator(context).is_uniform(performances):
            logger.warning("All performances are the same!")
            return None
        if self.rounds >= self.max_rounds:
            logger.info(f"Reached maximum number of rounds ({self.max_rounds}).")
            return None

        dimensions = [space.get_dimension(i) for i in range(space.dimensions())]
        numeric = [d for d in dimensions if isinstance(d, FunctionDimension)]
        if not numeric:
            return None

        locations = space.locations(best.point)
        for dim, location in zip(dimensions, locations):
            if isinstance(dim, FunctionDimension) and dim.is_on_border(location):
                logger.info(f"Best point ({best.point}) is on the border of '{dim.label}', stopping.")
                return None
        if any(dim.step / 2.0 < self.min_step for dim in numeric):
            logger.info(f"Step size cannot be halved below {self.min_step}, stopping.")
            return None

        zoomed = []
        for dim, location in zip(dimensions, locations):
            if isinstance(dim, FunctionDimension):
                zoomed.append(dim.refine(location))
            else:
                zoomed.append(dim.subdimension(location, location))
        logger.info(f"Zooming in on ({best.point})")
        return Space(zoomed)
