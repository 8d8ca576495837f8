import logging
from typing import Optional, Union

from multisearch.data_manager.dataset import Dataset
from multisearch.evaluation.evaluator import CrossValidationEvaluator
from multisearch.evaluation.performance import Performance
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.setup_generator.space import Point
from multisearch.utils.exceptions import EvaluationFailure, MultiSearchException


class EvaluationTask:
    """
    Unit of work run inside the worker pool: configure, train and evaluate one point.

    Training/evaluation errors are logged and returned as a failed
    Performance; project errors other than EvaluationFailure propagate.
    The task only reads shared state (base model, data, generator).
    """

    def __init__(self, generator: SetupGenerator, base_model, point: Point, train: Dataset,
                 test: Optional[Dataset], folds: int, metric: str,
                 evaluator: CrossValidationEvaluator, seed: int,
                 class_label: Union[int, str, None] = None,
                 logger: Optional[logging.Logger] = None):
        self.generator = generator
        self.base_model = base_model
        self.point = point
        self.train = train
        self.test = test
        self.folds = folds
        self.metric = metric
        self.evaluator = evaluator
        self.seed = seed
        self.class_label = class_label
        self.logger = logger or logging.getLogger(__name__)

    def __call__(self) -> Performance:
        values = None
        model = None
        try:
            values = self.generator.evaluate(self.point)
            model = self.generator.setup(self.base_model, values)
            metrics = self.evaluator.evaluate(
                model, self.train, self.test, self.folds, self.seed, self.class_label)
            return Performance(self.point, metrics, self.metric, model=model, values=values)
        except EvaluationFailure as e:
            failure = e
        except MultiSearchException:
            raise
        except Exception as e:
            failure = EvaluationFailure(f"{type(e).__name__}: {e}", self.point)

        self.logger.warning(f"Evaluation failed for point ({self.point}): {failure}")
        return Performance.failure(self.point, self.metric, str(failure), model=model, values=values)
