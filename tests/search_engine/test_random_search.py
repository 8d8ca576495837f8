import logging
import random
import threading
from unittest.mock import MagicMock

import pandas as pd
import pytest
from sklearn.linear_model import Ridge

from multisearch.data_manager.dataset import Dataset
from multisearch.search_engine.base_search import SearchContext
from multisearch.search_engine.random_search import RandomSearch
from multisearch.setup_generator.parameters import MathParameter
from multisearch.setup_generator.setup_generator import SetupGenerator
from multisearch.utils.exceptions import ConfigurationError


class RecordingEvaluator:
    """Scores by alpha + tol and remembers the training set sizes it saw."""

    def __init__(self):
        self.calls = 0
        self.train_sizes = []
        self._lock = threading.Lock()

    def evaluate(self, model, train, test=None, folds=2, seed=1, class_label=None):
        with self._lock:
            self.calls += 1
            self.train_sizes.append(len(train))
        return {'CC': model.alpha + model.tol}


@pytest.fixture
def mock_logger():
    logger = MagicMock(spec=logging.Logger)
    logger.isEnabledFor.return_value = False
    return logger


@pytest.fixture
def train():
    x = [float(i) for i in range(10)]
    return Dataset(pd.DataFrame({'x': x, 'y': [2 * v for v in x]}), 'y')


@pytest.fixture
def generator(mock_logger):
    return SetupGenerator([
        MathParameter("alpha", min=-2, max=2, step=1, expression="I"),
        MathParameter("tol", min=0, max=2, step=1, expression="I"),
    ], mock_logger)


def run(search, train, generator, logger, evaluator=None):
    evaluator = evaluator or RecordingEvaluator()
    context = SearchContext(Ridge(), train, 'CC', logger, evaluator)
    return search.search(context, generator), evaluator


def test_space_size(generator):
    assert generator.space().size() == 15


def test_evaluates_distinct_points_in_shuffled_order(train, generator, mock_logger):
    search = RandomSearch(num_iterations=5, seed=42)
    result, evaluator = run(search, train, generator, mock_logger)

    expected = list(generator.space().values())
    random.Random(42).shuffle(expected)
    traced = [entry.performance.point for entry in search.trace]
    assert traced == expected[:5]
    assert len(set(traced)) == 5
    assert evaluator.calls == 5
    best = max(traced, key=lambda p: p[0] + p[1])
    assert result.point == best


def test_same_seed_same_result(train, generator, mock_logger):
    first_search = RandomSearch(num_iterations=6, seed=7, num_execution_slots=3)
    second_search = RandomSearch(num_iterations=6, seed=7, num_execution_slots=3)
    first, _ = run(first_search, train, generator, mock_logger)
    second, _ = run(second_search, train, generator, mock_logger)
    assert first.point == second.point
    assert [e.performance.point for e in first_search.trace] == \
        [e.performance.point for e in second_search.trace]


def test_iterations_capped_by_space_size(train, generator, mock_logger):
    search = RandomSearch(num_iterations=100)
    result, evaluator = run(search, train, generator, mock_logger)
    assert len(search.trace) == 15
    assert evaluator.calls == 15
    assert result.values == (2.0, 2.0)


def test_sub_sampling(train, generator, mock_logger):
    search = RandomSearch(num_iterations=3, sample_size_percent=50, subsample_seed=3)
    _, evaluator = run(search, train, generator, mock_logger)
    assert evaluator.train_sizes == [5, 5, 5]


def test_full_sample_uses_training_data(train, generator, mock_logger):
    _, evaluator = run(RandomSearch(num_iterations=2), train, generator, mock_logger)
    assert evaluator.train_sizes == [10, 10]


@pytest.mark.parametrize("kwargs", [
    {"num_iterations": 0}, {"sample_size_percent": 0}, {"sample_size_percent": 120},
])
def test_invalid_options(train, generator, mock_logger, kwargs):
    evaluator = RecordingEvaluator()
    with pytest.raises(ConfigurationError):
        run(RandomSearch(**kwargs), train, generator, mock_logger, evaluator)
    assert evaluator.calls == 0
