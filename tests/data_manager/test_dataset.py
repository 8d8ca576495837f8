import numpy as np
import pandas as pd
import pytest

from multisearch.data_manager.dataset import Dataset
from multisearch.utils.exceptions import ConfigurationError, DataIncompatibilityError


@pytest.fixture
def regression_frame():
    return pd.DataFrame({
        'x1': [1.0, 2.0, 3.0, 4.0, 5.0, 6.0],
        'x2': [1, 0, 1, 0, 1, 0],
        'y': [1.5, 2.5, 3.5, np.nan, 5.5, 6.5],
    })


@pytest.fixture
def classification_frame():
    return pd.DataFrame({
        'x1': [0.1, 0.2, 0.3, 0.4],
        'label': ['b', 'a', 'b', 'a'],
    })


# --- Construction and accessors ---

def test_accessors(regression_frame):
    ds = Dataset(regression_frame, 'y')
    assert len(ds) == 6
    assert list(ds.X.columns) == ['x1', 'x2']
    assert ds.y.name == 'y'
    assert ds.feature_names == ['x1', 'x2']
    assert not ds.is_classification
    assert ds.classes == []


def test_missing_target_column(regression_frame):
    with pytest.raises(ConfigurationError, match="not found"):
        Dataset(regression_frame, 'target')


def test_invalid_task(regression_frame):
    with pytest.raises(ConfigurationError, match="Unknown task type"):
        Dataset(regression_frame, 'y', task='ranking')


def test_classification_inferred(classification_frame):
    ds = Dataset(classification_frame, 'label')
    assert ds.is_classification
    assert ds.classes == ['a', 'b']


def test_task_overrides_dtype():
    frame = pd.DataFrame({'x': [1, 2, 3], 'y': [0, 1, 0]})
    assert not Dataset(frame, 'y').is_classification
    ds = Dataset(frame, 'y', task='classification')
    assert ds.is_classification
    assert ds.classes == [0, 1]


# --- Loading ---

def test_from_file_csv(tmp_path, regression_frame):
    path = tmp_path / "train.csv"
    regression_frame.to_csv(path, index=False)
    ds = Dataset.from_file(path, 'y')
    assert len(ds) == 6
    assert ds.feature_names == ['x1', 'x2']


def test_from_file_missing(tmp_path):
    with pytest.raises(ConfigurationError, match="Data file not found"):
        Dataset.from_file(tmp_path / "nope.csv", 'y')


# --- Header compatibility ---

def test_header_compatible_int_and_float(regression_frame):
    other = regression_frame.copy()
    other['x2'] = other['x2'].astype(float)
    assert Dataset(regression_frame, 'y').header_compatible(Dataset(other, 'y'))


@pytest.mark.parametrize("mutate, message", [
    (lambda f: f.rename(columns={'x1': 'z1'}), "Column #1 differs in name"),
    (lambda f: f.drop(columns=['x2']), "Number of columns differ"),
    (lambda f: f.assign(x2=['a', 'b', 'c', 'd', 'e', 'f']), "Column 'x2' differs in type"),
])
def test_header_mismatch(regression_frame, mutate, message):
    train = Dataset(regression_frame, 'y')
    test = Dataset(mutate(regression_frame), 'y')
    assert message in train.header_mismatch(test)
    with pytest.raises(DataIncompatibilityError, match=message):
        train.check_compatible(test)


def test_header_mismatch_target(regression_frame):
    train = Dataset(regression_frame, 'y')
    test = Dataset(regression_frame, 'x1')
    assert train.header_mismatch(test).startswith("Target differs")


# --- Operations ---

def test_delete_incomplete(regression_frame):
    ds = Dataset(regression_frame, 'y').delete_incomplete()
    assert len(ds) == 5
    assert not ds.y.isna().any()
    assert list(ds.frame.index) == [0, 1, 2, 3, 4]


def test_subsample_size_and_determinism(regression_frame):
    ds = Dataset(regression_frame, 'y')
    a = ds.subsample(50, seed=7)
    b = ds.subsample(50, seed=7)
    assert len(a) == 3
    pd.testing.assert_frame_equal(a.frame, b.frame)
    assert list(a.frame.index) == [0, 1, 2]


def test_subsample_at_least_one_row(regression_frame):
    assert len(Dataset(regression_frame, 'y').subsample(1, seed=1)) == 1


def test_subsample_with_replacement_can_exceed(regression_frame):
    assert len(Dataset(regression_frame, 'y').subsample(200, seed=1)) == 12


def test_subsample_invalid(regression_frame):
    ds = Dataset(regression_frame, 'y')
    with pytest.raises(ConfigurationError):
        ds.subsample(0, seed=1)
    with pytest.raises(ConfigurationError, match="without replacement"):
        ds.subsample(200, seed=1, replace=False)


def test_operations_do_not_modify_original(regression_frame):
    ds = Dataset(regression_frame, 'y')
    ds.delete_incomplete()
    ds.subsample(50, seed=3)
    assert len(ds) == 6
    assert ds.y.isna().sum() == 1
