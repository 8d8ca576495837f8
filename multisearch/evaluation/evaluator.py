import copy
import logging
from typing import Dict, List, Optional, Tuple, Union

import numpy as np
import pandas as pd
from joblib import Parallel, delayed
from sklearn.base import clone
from sklearn.model_selection import KFold, StratifiedKFold

from multisearch.data_manager.dataset import Dataset
from multisearch.evaluation.metrics import (
    classification_metrics,
    regression_metrics,
    resolve_class_index,
)
from multisearch.utils import constants


def fresh_model(model):
    """Unfitted copy of ``model`` with the same configuration."""
    if hasattr(model, 'get_params'):
        return clone(model)
    return copy.deepcopy(model)


class CrossValidationEvaluator:
    """
    Turns a configured model plus data into metric values.

    - held-out test set given: train on ``train``, evaluate on ``test``
    - ``folds >= 2``: k-fold cross-validation (stratified for classification),
      shuffled with ``seed``, metrics over the pooled out-of-fold predictions
    - otherwise: train and evaluate on ``train``

    Folds are run through ``joblib.Parallel`` (``n_jobs``, default 1 since the
    search already evaluates configurations concurrently).
    """

    def __init__(self, n_jobs: int = 1, logger: Optional[logging.Logger] = None):
        self.n_jobs = n_jobs
        self.logger = logger or logging.getLogger(__name__)

    def evaluate(self, model, train: Dataset, test: Optional[Dataset] = None,
                 folds: int = constants.DEFAULT_NUM_FOLDS, seed: int = constants.DEFAULT_SEED,
                 class_label: Union[int, str, None] = None) -> Dict[str, float]:
        classes = train.classes
        if test is not None:
            fitted = fresh_model(model).fit(train.X, train.y)
            y_true = test.y.to_numpy()
            y_pred, proba = self._predict(fitted, test.X, classes)
        elif folds >= 2:
            y_true, y_pred, proba = self._cross_validate(model, train, folds, seed, classes)
        else:
            fitted = fresh_model(model).fit(train.X, train.y)
            y_true = train.y.to_numpy()
            y_pred, proba = self._predict(fitted, train.X, classes)

        if train.is_classification:
            class_index = resolve_class_index(class_label, len(classes))
            return classification_metrics(y_true, y_pred, classes, proba, class_index)
        return regression_metrics(y_true, y_pred)

    def _splitter(self, train: Dataset, folds: int, seed: int):
        if folds > len(train):
            raise ValueError(f"Cannot run {folds}-fold CV on {len(train)} rows")
        if train.is_classification:
            cv = StratifiedKFold(n_splits=folds, shuffle=True, random_state=seed)
            try:
                return list(cv.split(train.X, train.y))
            except ValueError as e:
                self.logger.debug(f"Stratified split not possible ({e}), using plain KFold.")
        cv = KFold(n_splits=folds, shuffle=True, random_state=seed)
        return list(cv.split(train.X))

    def _cross_validate(self, model, train: Dataset, folds: int, seed: int,
                        classes: List) -> Tuple[np.ndarray, np.ndarray, Optional[np.ndarray]]:
        X, y = train.X, train.y
        splits = self._splitter(train, folds, seed)

        fold_results = Parallel(n_jobs=self.n_jobs)(
            delayed(self._run_single_fold)(model, X, y, train_idx, val_idx, classes)
            for train_idx, val_idx in splits
        )

        y_true = np.concatenate([y.iloc[val_idx].to_numpy() for _, val_idx in splits])
        y_pred = np.concatenate([preds for preds, _ in fold_results])
        probas = [proba for _, proba in fold_results]
        proba = np.vstack(probas) if all(p is not None for p in probas) else None
        return y_true, y_pred, proba

    def _run_single_fold(self, model, X: pd.DataFrame, y: pd.Series, train_idx, val_idx, classes):
        """Helper for parallel fold execution."""
        fitted = fresh_model(model).fit(X.iloc[train_idx], y.iloc[train_idx])
        return self._predict(fitted, X.iloc[val_idx], classes)

    @staticmethod
    def _predict(fitted, X: pd.DataFrame, classes: List) -> Tuple[np.ndarray, Optional[np.ndarray]]:
        preds = np.asarray(fitted.predict(X))
        if not classes or not hasattr(fitted, 'predict_proba'):
            return preds, None
        raw = np.asarray(fitted.predict_proba(X), dtype=float)
        # A fold may not see every class; align columns with the full label set
        proba = np.zeros((len(X), len(classes)))
        for column, label in enumerate(getattr(fitted, 'classes_', classes)):
            if label in classes:
                proba[:, classes.index(label)] = raw[:, column]
        return preds, proba
