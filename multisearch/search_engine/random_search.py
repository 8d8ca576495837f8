import random
from typing import Optional

from multisearch.search_engine.base_search import AbstractSearch, SearchContext, SearchResult
from multisearch.search_engine.scheduler import WorkerPool
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.utils import constants
from multisearch.utils.exceptions import ConfigurationError


class RandomSearch(AbstractSearch):
    """
    Randomized search over a seeded shuffle of the full space.

    Evaluates the first ``min(space size, num_iterations)`` points of the
    shuffled enumeration, optionally on a ``sample_size_percent`` sub-sample
    of the training data. Identical seed, space and data give identical
    results.
    """

    def __init__(self, num_folds: int = constants.DEFAULT_NUM_FOLDS,
                 num_iterations: int = constants.DEFAULT_NUM_ITERATIONS,
                 sample_size_percent: float = constants.DEFAULT_SAMPLE_SIZE_PERCENT,
                 seed: int = constants.DEFAULT_SEED,
                 num_execution_slots: int = 1,
                 subsample_seed: Optional[int] = None):
        super().__init__(num_folds, num_execution_slots)
        self.num_iterations = num_iterations
        self.sample_size_percent = sample_size_percent
        self.seed = seed
        self.subsample_seed = seed if subsample_seed is None else subsample_seed

    def check(self, context: SearchContext, generator: SetupGenerator) -> None:
        super().check(context, generator)
        if self.num_iterations < 1:
            raise ConfigurationError(f"num_iterations must be at least 1, got {self.num_iterations}")
        if not 0 < self.sample_size_percent <= 100:
            raise ConfigurationError(
                f"sample_size_percent must be in (0, 100], got {self.sample_size_percent}")

    def do_search(self, context: SearchContext, generator: SetupGenerator) -> SearchResult:
        train = context.train
        if self.sample_size_percent != 100:
            train = train.subsample(self.sample_size_percent, self.subsample_seed)
            context.logger.info(
                f"Using {self.sample_size_percent}% sub-sample of the training data ({len(train)} rows)")

        space = generator.space()
        points = list(space.values())
        random.Random(self.seed).shuffle(points)
        points = points[:min(len(points), self.num_iterations)]
        context.logger.info(
            f"Random search: evaluating {len(points)} of {space.size()} point(s)\n{space}")

        with WorkerPool(self.num_execution_slots, context.logger) as pool:
            performances = self.evaluate_points(pool, context, generator, points, self.num_folds, train)
        self.log_performances(context, space, performances)

        best = self.comparator(context).best(performances)
        return self.make_result(context, generator, best)
