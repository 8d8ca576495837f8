import json
import logging
from typing import Any, Dict, List, Optional, Sequence, Tuple

import joblib

from multisearch.base.base_engine import BaseEngine
from multisearch.data_manager.dataset import Dataset
from multisearch.evaluation.evaluator import CrossValidationEvaluator
from multisearch.evaluation.metrics import (
    ANY,
    CLASSIFICATION,
    REGRESSION,
    default_metric,
    get_metric,
)
from multisearch.evaluation.performance import PerformanceComparator
from multisearch.search_engine.base_search import AbstractSearch, SearchContext, SearchResult
from multisearch.search_engine.grid_search import GridSearch
from multisearch.search_engine.random_search import RandomSearch
from multisearch.search_engine.trace import AuditLog, Trace
from multisearch.setup_generator.parameters import AbstractParameter, group_parameters
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.setup_generator.space import Point
from multisearch.utils import constants
from multisearch.utils.error_handling import handle_engine_errors
from multisearch.utils.exceptions import (
    ConfigurationError,
    ModelTrainingError,
    MultiSearchException,
)
from multisearch.utils.file_io import NumpyEncoder, save_dataframe


class SearchEngine(BaseEngine):
    """
    Orchestrates a complete hyperparameter search.

    Steps:
    1. Drop rows with a missing target.
    2. Split parameters into groups and validate every property path.
    3. Check that the test set (if any) matches the training header.
    4. Run the search algorithm once per group.
    5. Pick the best group result through the comparator.
    6. Retrain the best configuration on all training data.
    7. Persist trace, best configuration, audit log and model.

    The caller's base model is never modified; ``best_model`` is only set
    after the final retrain succeeded.
    """

    def __init__(self, config: Dict[str, Any], logger: logging.Logger,
                 evaluator: Optional[CrossValidationEvaluator] = None):
        super().__init__(config, logger)
        self.search_config = config.get('search', {})
        self.outputs_config = config.get('outputs', {})
        self.execution_config = config.get('execution', {})
        self.evaluator = evaluator or CrossValidationEvaluator(
            n_jobs=self.execution_config.get('n_jobs', 1), logger=logger)

        self.trace = Trace()
        self.parameters: List[AbstractParameter] = []
        self.metric: Optional[str] = None
        self.best_result: Optional[SearchResult] = None
        self.best_model = None
        self.best_settings: Dict[str, Any] = {}
        self.dispatched = 0

    def _get_engine_directory_name(self) -> str:
        return constants.SEARCH_DIR

    # ------------------------------------------------------------------
    # Setup helpers
    # ------------------------------------------------------------------
    def _seeds(self) -> Dict[str, int]:
        master = self.search_config.get('seed', constants.DEFAULT_SEED)
        seeds = self.config.get('_internal_seeds', {})
        return {
            'search': seeds.get('search', master),
            'cv': seeds.get('cv', master),
            'subsample': seeds.get('subsample', master),
        }

    def create_algorithm(self) -> AbstractSearch:
        """Instantiate the configured search algorithm (fresh per group)."""
        name = self.search_config.get('algorithm', 'grid')
        folds = self.search_config.get('num_folds', constants.DEFAULT_NUM_FOLDS)
        slots = self.execution_config.get('num_execution_slots', 1)
        seeds = self._seeds()

        if name == 'grid':
            grid = self.search_config.get('grid', {})
            return GridSearch(
                num_folds=folds,
                max_rounds=grid.get('max_rounds', constants.DEFAULT_MAX_ROUNDS),
                min_step=grid.get('min_step', constants.DEFAULT_MIN_STEP),
                max_evaluations=grid.get('max_evaluations'),
                num_execution_slots=slots,
            )
        if name == 'random':
            rnd = self.search_config.get('random', {})
            return RandomSearch(
                num_folds=folds,
                num_iterations=rnd.get('num_iterations', constants.DEFAULT_NUM_ITERATIONS),
                sample_size_percent=rnd.get('sample_size_percent', constants.DEFAULT_SAMPLE_SIZE_PERCENT),
                seed=seeds['search'],
                num_execution_slots=slots,
                subsample_seed=seeds['subsample'],
            )
        raise ConfigurationError(f"Unknown search algorithm: {name}. Available: ['grid', 'random']")

    def _resolve_metric(self, train: Dataset) -> str:
        metric = get_metric(self.search_config.get('metric') or default_metric(train.is_classification))
        expected = CLASSIFICATION if train.is_classification else REGRESSION
        if metric.task not in (ANY, expected):
            raise ConfigurationError(
                f"Metric {metric.id} ({metric.label}) is not applicable to {expected} targets.")
        return metric.id

    def _build_generators(self, base_model, parameters: Sequence[AbstractParameter]) -> List[SetupGenerator]:
        groups = group_parameters(parameters)
        multiple = len(groups) > 1
        generators = [SetupGenerator(group, self.logger, group_index=i if multiple else None)
                      for i, group in enumerate(groups)]

        problems = []
        for generator in generators:
            try:
                generator.check(base_model)
            except ConfigurationError as e:
                problems.append(str(e))
        if problems:
            raise ConfigurationError("Property path(s) in parameter(s) are invalid:\n- " + "\n- ".join(problems))

        max_size = self.config.get('resources', {}).get('max_space_size', constants.DEFAULT_MAX_SPACE_SIZE)
        for i, generator in enumerate(generators):
            size = generator.space().size()
            if size > max_size:
                raise ConfigurationError(
                    f"Search space of group #{i + 1} has {size} points, exceeding the limit of "
                    f"{max_size} (resources.max_space_size).")
        return generators

    def _audit_log(self) -> Optional[AuditLog]:
        if self.skip_dir_creation:
            return None
        if not self.outputs_config.get('save_audit_log', True):
            return None
        return AuditLog(self.output_dir / constants.AUDIT_LOG_FILE, self.logger)

    # ------------------------------------------------------------------
    # Execution
    # ------------------------------------------------------------------
    @handle_engine_errors("Hyperparameter Search")
    def execute(self, base_model, parameters: Sequence[AbstractParameter], train: Dataset,
                test: Optional[Dataset] = None) -> SearchResult:
        """
        Search for the best configuration of ``base_model``.

        Returns:
            SearchResult of the winning group (configured, untrained model).
        """
        self.logger.info("Starting hyperparameter search...")
        self.trace.clear()
        self.best_result = None
        self.best_model = None
        self.best_settings = {}
        self.dispatched = 0
        self.parameters = list(parameters)

        # 1. Clean data
        train = train.delete_incomplete()
        if test is not None:
            test = test.delete_incomplete()

        # 2. Groups and property paths (before any evaluation)
        generators = self._build_generators(base_model, self.parameters)

        # 3. Header compatibility
        if test is not None:
            train.check_compatible(test)

        self.metric = self._resolve_metric(train)
        seeds = self._seeds()
        audit_log = self._audit_log()

        # 4. Search each group
        results: List[Tuple[SearchResult, SetupGenerator]] = []
        for i, generator in enumerate(generators):
            if len(generators) > 1:
                self.logger.info(f"---> group #{i + 1}")
            context = SearchContext(
                base_model=base_model,
                train=train,
                metric=self.metric,
                logger=self.logger,
                evaluator=self.evaluator,
                test=test,
                seed=seeds['cv'],
                class_label=self.search_config.get('class_label'),
                audit_log=audit_log,
                group=i,
            )
            algorithm = self.create_algorithm()
            try:
                result = algorithm.search(context, generator)
            finally:
                self.trace.extend(algorithm.trace)
                self.dispatched += algorithm.dispatched
            results.append((result, generator))

        # 5. Best across groups
        comparator = PerformanceComparator(self.metric)
        best_performance = comparator.best([r.performance for r, _ in results])
        best_result, best_generator = next((r, g) for r, g in results if r.performance is best_performance)

        # 6. Retrain on all data
        self.logger.info(f"Training best configuration: {best_result.model!r}")
        self.best_model = self._train_best(best_generator, base_model, best_result.values, train)
        self.best_result = best_result
        self.best_settings = best_generator.settings(best_result.values)

        # 7. Artifacts
        self._save_artifacts()

        self.logger.info(
            f"Search complete. Best {self.metric}={best_result.performance.value():.6g} "
            f"with {self.best_settings} ({len(self.trace)} trace entries)")
        return best_result

    def _train_best(self, generator: SetupGenerator, base_model, values: Point, train: Dataset):
        try:
            model = generator.setup(base_model, values)
            model.fit(train.X, train.y)
        except Exception as e:
            raise ModelTrainingError(f"Training the best configuration failed: {e}") from e
        return model

    def _save_artifacts(self) -> None:
        if self.skip_dir_creation:
            return
        excel_copy = self.outputs_config.get('save_excel_copy', False)

        trace_path = save_dataframe(self.trace.to_frame(), self.output_dir / constants.TRACE_FILE,
                                    excel_copy=excel_copy, index=False)
        self.logger.info(f"Saved search trace to {trace_path}")

        performance = self.best_result.performance
        best_config = {
            'algorithm': self.search_config.get('algorithm', 'grid'),
            'metric': self.metric,
            'value': performance.value(),
            'metrics': dict(performance.metrics),
            'coordinates': list(self.best_coordinates),
            'settings': self.best_settings,
            'model': repr(self.best_result.model),
            'trace_size': self.trace_size(),
            'evaluations': self.dispatched,
        }
        with open(self.output_dir / constants.BEST_CONFIGURATION_FILE, 'w') as f:
            json.dump(best_config, f, indent=2, cls=NumpyEncoder)

        if self.outputs_config.get('save_model', True):
            model_path = self.artifact_dir(constants.FINAL_MODEL_DIR) / constants.FINAL_MODEL_FILE
            joblib.dump(self.best_model, model_path)
            self.logger.info(f"Saved trained model to {model_path}")

    # ------------------------------------------------------------------
    # Results
    # ------------------------------------------------------------------
    def _require_result(self) -> SearchResult:
        if self.best_result is None:
            raise MultiSearchException("No search performed yet.")
        return self.best_result

    @property
    def best_values(self) -> Point:
        return self._require_result().values

    @property
    def best_coordinates(self) -> Point:
        return self._require_result().point

    def trace_size(self) -> int:
        return len(self.trace)

    def trace_value(self, index: int) -> float:
        return self.trace[index].performance.value()

    def trace_folds(self, index: int) -> int:
        return self.trace[index].folds

    def trace_model_as_cli(self, index: int) -> str:
        model = self.trace[index].performance.model
        return repr(model) if model is not None else ""

    def trace_parameter_settings(self, index: int) -> List[Tuple[str, Any]]:
        return list(self.trace[index].settings.items())

    def enumerate_measures(self) -> List[str]:
        if self.best_result is None:
            return []
        return [f"measure-{i}" for i, value in enumerate(self.best_values) if isinstance(value, float)]

    def get_measure(self, name: str) -> float:
        if name.startswith("measure-"):
            return float(self.best_values[int(name[len("measure-"):])])
        raise ValueError(f"Measure '{name}' not supported!")

    def _features(self, X):
        return X.X if isinstance(X, Dataset) else X

    def predict(self, X):
        self._require_result()
        return self.best_model.predict(self._features(X))

    def predict_proba(self, X):
        self._require_result()
        if not hasattr(self.best_model, 'predict_proba'):
            raise MultiSearchException(f"{type(self.best_model).__name__} does not support predict_proba.")
        return self.best_model.predict_proba(self._features(X))

    def summary(self) -> str:
        if self.best_result is None:
            return "No search performed yet."
        lines = [
            f"{self.__class__.__name__}:",
            f"Model: {self.best_result.model!r}",
            "",
        ]
        for i, param in enumerate(self.parameters):
            lines.append(f"{i + 1}. parameter: {param!r}")
        lines += [
            f"Evaluation: {get_metric(self.metric).label}",
            f"Coordinates: {self.best_coordinates}",
            f"Values: {self.best_values}",
            f"Trace size: {self.trace_size()}",
        ]
        return "\n".join(lines)
