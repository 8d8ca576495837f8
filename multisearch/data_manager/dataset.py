import logging
from pathlib import Path
from typing import List, Optional, Tuple

import numpy as np
import pandas as pd

from multisearch.utils.exceptions import ConfigurationError, DataIncompatibilityError
from multisearch.utils.file_io import read_dataframe

logger = logging.getLogger(__name__)


class Dataset:
    """
    Training/test data: a DataFrame plus the name of its target column.

    Instances are treated as immutable; every operation returns a new Dataset.
    Classification is inferred from the target dtype (object, category, bool)
    unless ``task`` is given explicitly ('classification' or 'regression').
    """

    def __init__(self, frame: pd.DataFrame, target: str, task: Optional[str] = None):
        if target not in frame.columns:
            raise ConfigurationError(f"Target column '{target}' not found in data.")
        if task not in (None, 'classification', 'regression'):
            raise ConfigurationError(f"Unknown task type: {task}")
        self.frame = frame
        self.target = target
        self.task = task

    @classmethod
    def from_file(cls, path, target: str, task: Optional[str] = None) -> "Dataset":
        path = Path(path)
        if not path.exists():
            raise ConfigurationError(f"Data file not found: {path}")
        logger.info(f"Loading data from {path}")
        return cls(read_dataframe(path), target, task)

    # ------------------------------------------------------------------
    # Accessors
    # ------------------------------------------------------------------
    @property
    def X(self) -> pd.DataFrame:
        return self.frame.drop(columns=[self.target])

    @property
    def y(self) -> pd.Series:
        return self.frame[self.target]

    @property
    def feature_names(self) -> List[str]:
        return [c for c in self.frame.columns if c != self.target]

    @property
    def is_classification(self) -> bool:
        if self.task is not None:
            return self.task == 'classification'
        dtype = self.frame[self.target].dtype
        return (pd.api.types.is_object_dtype(dtype)
                or isinstance(dtype, pd.CategoricalDtype)
                or pd.api.types.is_bool_dtype(dtype)
                or pd.api.types.is_string_dtype(dtype))

    @property
    def classes(self) -> List:
        """Sorted class labels (empty for regression targets)."""
        if not self.is_classification:
            return []
        return sorted(self.y.dropna().unique().tolist(), key=str)

    def __len__(self) -> int:
        return len(self.frame)

    def header(self) -> List[Tuple[str, str]]:
        return [(str(c), str(t)) for c, t in self.frame.dtypes.items()]

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------
    def header_compatible(self, other: "Dataset") -> bool:
        return self.header_mismatch(other) is None

    def header_mismatch(self, other: "Dataset") -> Optional[str]:
        """Describe the first header difference, or None if compatible."""
        if self.target != other.target:
            return f"Target differs: '{self.target}' != '{other.target}'"
        left, right = list(self.frame.columns), list(other.frame.columns)
        if len(left) != len(right):
            return f"Number of columns differ: {len(left)} != {len(right)}"
        for i, (a, b) in enumerate(zip(left, right)):
            if a != b:
                return f"Column #{i + 1} differs in name: '{a}' != '{b}'"
            kind_a = self.frame[a].dtype.kind
            kind_b = other.frame[b].dtype.kind
            # Integer and float columns are interchangeable
            if kind_a != kind_b and not {kind_a, kind_b} <= {'i', 'u', 'f'}:
                return f"Column '{a}' differs in type: {self.frame[a].dtype} != {other.frame[b].dtype}"
        return None

    def check_compatible(self, other: "Dataset") -> None:
        msg = self.header_mismatch(other)
        if msg is not None:
            raise DataIncompatibilityError(f"Test set not compatible with training set: {msg}")

    def subsample(self, percent: float, seed: int, replace: bool = True) -> "Dataset":
        """
        Draw ``percent`` % of the rows (bootstrap-style, with replacement by default).
        """
        if percent <= 0:
            raise ConfigurationError(f"Sample size percent must be positive, got {percent}")
        n = max(1, int(round(len(self.frame) * percent / 100.0)))
        if not replace and n > len(self.frame):
            raise ConfigurationError(
                f"Cannot draw {n} rows without replacement from {len(self.frame)} rows")
        rng = np.random.RandomState(seed)
        positions = rng.choice(len(self.frame), size=n, replace=replace)
        sampled = self.frame.iloc[positions].reset_index(drop=True)
        return Dataset(sampled, self.target, self.task)

    def delete_incomplete(self) -> "Dataset":
        """Drop rows whose target value is missing."""
        mask = self.frame[self.target].notna()
        dropped = int((~mask).sum())
        if dropped:
            logger.info(f"Removed {dropped} row(s) with missing target '{self.target}'")
        return Dataset(self.frame.loc[mask].reset_index(drop=True), self.target, self.task)

    def __repr__(self) -> str:
        return f"Dataset(rows={len(self.frame)}, columns={len(self.frame.columns)}, target={self.target!r})"
