import logging
import threading
from unittest.mock import MagicMock

import pandas as pd
import pytest
from sklearn.linear_model import Ridge

from multisearch.data_manager.dataset import Dataset
from multisearch.search_engine.base_search import SearchContext
from multisearch.search_engine.grid_search import GridSearch
from multisearch.search_engine.trace import AuditLog
from multisearch.setup_generator.parameters import ListParameter, MathParameter
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.setup_generator.space import Point
from multisearch.utils.exceptions import (
    BatchExhaustionError,
    ConfigurationError,
)


class StubEvaluator:
    """Scores the configured model directly; counts calls across worker threads."""

    def __init__(self, score_fn):
        self.score_fn = score_fn
        self.calls = 0
        self._lock = threading.Lock()

    def evaluate(self, model, train, test=None, folds=2, seed=1, class_label=None):
        with self._lock:
            self.calls += 1
        return {'CC': self.score_fn(model)}


@pytest.fixture
def mock_logger():
    logger = MagicMock(spec=logging.Logger)
    logger.isEnabledFor.return_value = False
    return logger


@pytest.fixture
def train():
    return Dataset(pd.DataFrame({'x': [1.0, 2.0, 3.0, 4.0], 'y': [2.0, 4.0, 6.0, 8.0]}), 'y')


def alpha_generator(logger):
    param = MathParameter("alpha", min=-2, max=2, step=1, expression="I")
    return SetupGenerator([param], logger)


def make_context(train, logger, evaluator, base_model=None, **kwargs):
    return SearchContext(base_model if base_model is not None else Ridge(), train, 'CC', logger,
                         evaluator, **kwargs)


def points_of(search):
    return [entry.performance.point for entry in search.trace]


# --- Zooming ---

def test_zoom_converges_to_interior_optimum(train, mock_logger):
    evaluator = StubEvaluator(lambda m: -(m.alpha - 0.3) ** 2)
    search = GridSearch(num_folds=2, max_rounds=5)
    result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))

    assert result.values[0] == pytest.approx(0.3125)
    assert result.model.alpha == pytest.approx(0.3125)
    assert search.rounds == 5
    assert len(search.trace) == 25
    assert evaluator.calls == 13
    assert search.dispatched == 13
    assert sum(entry.cached for entry in search.trace) == 12


def test_zoom_second_round_reuses_cache(train, mock_logger):
    evaluator = StubEvaluator(lambda m: -(m.alpha - 0.3) ** 2)
    search = GridSearch(max_rounds=2)
    result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))

    assert result.values[0] == pytest.approx(0.5)
    assert len(search.trace) == 10
    assert evaluator.calls == 7
    second_round = search.trace.entries()[5:]
    assert [e.performance.point for e in second_round] == [
        Point([-1.0]), Point([-0.5]), Point([0.0]), Point([0.5]), Point([1.0])]
    assert [e.cached for e in second_round] == [True, False, True, False, True]


def test_zoom_with_fractional_step_hits_cache_for_revisited_points(train, mock_logger):
    evaluator = StubEvaluator(lambda m: -(m.alpha + 2.62) ** 2)
    generator = SetupGenerator([MathParameter("alpha", min=-3, max=-2, step=0.2, expression="I")],
                               mock_logger)
    search = GridSearch(max_rounds=2)
    result = search.search(make_context(train, mock_logger, evaluator), generator)

    assert result.values[0] == -2.6
    assert len(search.trace) == 11
    assert evaluator.calls == 8
    second_round = search.trace.entries()[6:]
    assert [e.performance.point for e in second_round] == [
        Point([-2.8]), Point([-2.7]), Point([-2.6]), Point([-2.5]), Point([-2.4])]
    assert [e.cached for e in second_round] == [True, False, True, False, True]
    evaluated = [e.performance.point for e in search.trace if not e.cached]
    assert len(evaluated) == len(set(evaluated))


def test_border_optimum_stops_after_first_round(train, mock_logger):
    evaluator = StubEvaluator(lambda m: m.alpha)
    search = GridSearch(max_rounds=5)
    result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))
    assert result.values[0] == 2.0
    assert search.rounds == 1
    assert len(search.trace) == 5


def test_uniform_round_stops_and_keeps_first(train, mock_logger):
    evaluator = StubEvaluator(lambda m: 0.5)
    search = GridSearch()
    result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))
    assert result.values[0] == -2.0
    assert len(search.trace) == 5
    mock_logger.warning.assert_any_call("All performances are the same!")


def test_min_step_stops_zoom(train, mock_logger):
    evaluator = StubEvaluator(lambda m: -(m.alpha - 0.3) ** 2)
    search = GridSearch(min_step=0.6)
    search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))
    assert search.rounds == 1
    assert len(search.trace) == 5


def test_max_evaluations_truncates_round(train, mock_logger):
    evaluator = StubEvaluator(lambda m: m.alpha)
    search = GridSearch(max_rounds=1, max_evaluations=3)
    result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))
    assert points_of(search) == [Point([-2.0]), Point([-1.0]), Point([0.0])]
    assert result.values[0] == 0.0
    mock_logger.warning.assert_any_call(
        "Space has 5 points, evaluating only the first 3 (max_evaluations).")


def test_list_only_space_single_round(train, mock_logger):
    evaluator = StubEvaluator(lambda m: 1.0 if m.fit_intercept else 0.0)
    generator = SetupGenerator([ListParameter("fit_intercept", [True, False])], mock_logger)
    search = GridSearch()
    result = search.search(make_context(train, mock_logger, evaluator), generator)
    assert len(search.trace) == 2
    assert not any(entry.cached for entry in search.trace)
    assert result.model.fit_intercept is True
    assert search.trace[1].settings == {'fit_intercept': 'False'}


# --- Ordering and concurrency ---

def test_trace_follows_enumeration_order_with_many_slots(train, mock_logger):
    generator = SetupGenerator([
        MathParameter("alpha", min=-2, max=2, step=1, expression="I"),
        ListParameter("fit_intercept", ["true", "false"]),
    ], mock_logger)
    evaluator = StubEvaluator(lambda m: m.alpha)
    search = GridSearch(num_execution_slots=4)
    search.search(make_context(train, mock_logger, evaluator), generator)
    assert points_of(search) == list(generator.space().values())


def test_repeated_runs_are_identical(train, mock_logger):
    def run():
        search = GridSearch(num_execution_slots=3)
        evaluator = StubEvaluator(lambda m: -(m.alpha - 0.3) ** 2)
        result = search.search(make_context(train, mock_logger, evaluator), alpha_generator(mock_logger))
        return result.values, points_of(search)

    assert run() == run()


# --- Failures ---

def test_invalid_property_path_evaluates_nothing(train, mock_logger):
    evaluator = StubEvaluator(lambda m: 1.0)
    generator = SetupGenerator([MathParameter("alpah", min=-1, max=1, step=1)], mock_logger)
    with pytest.raises(ConfigurationError, match="alpah"):
        GridSearch().search(make_context(train, mock_logger, evaluator), generator)
    assert evaluator.calls == 0


def test_all_failures_raise_batch_exhaustion(train, mock_logger):
    def explode(model):
        raise RuntimeError("diverged")

    base = Ridge(alpha=3.0)
    search = GridSearch(num_execution_slots=2)
    with pytest.raises(BatchExhaustionError):
        search.search(make_context(train, mock_logger, StubEvaluator(explode), base_model=base),
                      alpha_generator(mock_logger))
    assert base.alpha == 3.0
    assert len(search.trace) == 5
    assert all(entry.performance.failed for entry in search.trace)


def test_partial_failures_are_ranked_last(train, mock_logger):
    def score(model):
        if model.alpha > 0:
            raise RuntimeError("diverged")
        return -abs(model.alpha + 1)

    search = GridSearch(max_rounds=1)
    result = search.search(make_context(train, mock_logger, StubEvaluator(score)),
                           alpha_generator(mock_logger))
    assert result.values[0] == -1.0
    assert sum(entry.performance.failed for entry in search.trace) == 2


def test_unexpected_task_error_is_raised_after_recording(train, mock_logger):
    def score(model):
        if model.alpha == 1.0:
            raise ConfigurationError("bad setup")
        return model.alpha

    search = GridSearch(num_execution_slots=2)
    with pytest.raises(ConfigurationError, match="bad setup"):
        search.search(make_context(train, mock_logger, StubEvaluator(score)),
                      alpha_generator(mock_logger))
    assert points_of(search) == [Point([-2.0]), Point([-1.0]), Point([0.0]), Point([2.0])]


@pytest.mark.parametrize("kwargs", [
    {"num_folds": 0}, {"num_execution_slots": 0}, {"max_rounds": 0},
    {"min_step": 0}, {"max_evaluations": 0},
])
def test_invalid_options(train, mock_logger, kwargs):
    evaluator = StubEvaluator(lambda m: 1.0)
    with pytest.raises(ConfigurationError):
        GridSearch(**kwargs).search(make_context(train, mock_logger, evaluator),
                                    alpha_generator(mock_logger))
    assert evaluator.calls == 0


# --- Audit log ---

def test_audit_log_mirrors_trace(tmp_path, train, mock_logger):
    audit = AuditLog(tmp_path / "search_audit.jsonl", mock_logger)
    evaluator = StubEvaluator(lambda m: -(m.alpha - 0.3) ** 2)
    search = GridSearch(max_rounds=2)
    search.search(make_context(train, mock_logger, evaluator, audit_log=audit),
                  alpha_generator(mock_logger))
    records = audit.read()
    assert len(records) == len(search.trace)
    assert [r['cached'] for r in records] == [e.cached for e in search.trace]
