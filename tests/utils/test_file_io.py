import json

import numpy as np
import pandas as pd
import pytest

from multisearch.utils.file_io import NumpyEncoder, file_lock, read_dataframe, save_dataframe


def test_save_and_read_parquet(tmp_path):
    df = pd.DataFrame({'a': [1, 2], 'b': ['x', 'y']})
    path = save_dataframe(df, tmp_path / "nested" / "frame.parquet")
    assert path.exists()
    pd.testing.assert_frame_equal(read_dataframe(path), df)


def test_save_excel_copy(tmp_path):
    df = pd.DataFrame({'a': [1.5]})
    save_dataframe(df, tmp_path / "frame.parquet", excel_copy=True)
    assert (tmp_path / "frame.xlsx").exists()


def test_read_csv(tmp_path):
    path = tmp_path / "data.csv"
    path.write_text("a,b\n1,2\n3,4\n")
    assert read_dataframe(path)['b'].tolist() == [2, 4]


def test_read_unsupported(tmp_path):
    with pytest.raises(ValueError, match="Unsupported"):
        read_dataframe(tmp_path / "data.txt")


def test_numpy_encoder():
    payload = {'i': np.int64(3), 'f': np.float32(0.5), 'b': np.bool_(True),
               'arr': np.array([1, 2]), 't': (1, 2)}
    decoded = json.loads(json.dumps(payload, cls=NumpyEncoder))
    assert decoded == {'i': 3, 'f': 0.5, 'b': True, 'arr': [1, 2], 't': [1, 2]}


def test_file_lock_releases(tmp_path):
    target = tmp_path / "audit.jsonl"
    with file_lock(target):
        assert (tmp_path / "audit.jsonl.lock").exists()
    assert not (tmp_path / "audit.jsonl.lock").exists()
