"""
Evaluation metrics and their optimisation direction.

Metric values are computed from pooled predictions with numpy and
scikit-learn; the registry below is the only place that records whether a
metric is better when higher or lower. Percent-based metrics (ACC, RRSE, RAE)
are reported on a 0-100 scale.
"""

import math
from dataclasses import dataclass
from typing import Dict, List, Optional, Sequence, Union

import numpy as np
from sklearn.metrics import accuracy_score, cohen_kappa_score, f1_score, roc_auc_score

from multisearch.utils.exceptions import ConfigurationError

REGRESSION = 'regression'
CLASSIFICATION = 'classification'
ANY = 'any'


@dataclass(frozen=True)
class Metric:
    id: str
    label: str
    maximize: bool
    task: str = ANY
    uses_class_label: bool = False


METRICS: Dict[str, Metric] = {m.id: m for m in [
    Metric('CC', 'Correlation coefficient', True, REGRESSION),
    Metric('RMSE', 'Root mean squared error', False),
    Metric('RRSE', 'Root relative squared error', False, REGRESSION),
    Metric('MAE', 'Mean absolute error', False),
    Metric('RAE', 'Relative absolute error', False, REGRESSION),
    Metric('COMB', 'Combined = (1-abs(CC)) + RRSE + RAE', False, REGRESSION),
    Metric('ACC', 'Accuracy', True, CLASSIFICATION),
    Metric('KAP', 'Kappa', True, CLASSIFICATION),
    Metric('AUC', 'Area under ROC', True, CLASSIFICATION, uses_class_label=True),
    Metric('FM', 'F-measure', True, CLASSIFICATION, uses_class_label=True),
]}

DEFAULT_METRIC = 'CC'
DEFAULT_CLASSIFICATION_METRIC = 'ACC'


def get_metric(metric_id: str) -> Metric:
    try:
        return METRICS[metric_id.upper()]
    except (KeyError, AttributeError):
        raise ConfigurationError(
            f"Unknown evaluation metric: {metric_id}. Available: {list(METRICS)}") from None


def is_maximize(metric_id: str) -> bool:
    return get_metric(metric_id).maximize


def worst_value(metric_id: str) -> float:
    return -math.inf if is_maximize(metric_id) else math.inf


def worst_metrics() -> Dict[str, float]:
    """Metric values that lose every comparison."""
    return {m: worst_value(m) for m in METRICS}


def default_metric(is_classification: bool) -> str:
    return DEFAULT_CLASSIFICATION_METRIC if is_classification else DEFAULT_METRIC


def resolve_class_index(class_label: Union[int, str, None], num_classes: int) -> int:
    """
    Translate a 1-based class label index (or 'first'/'last') into a 0-based index.
    """
    if num_classes < 1:
        raise ConfigurationError("No class labels available.")
    if class_label is None or str(class_label).lower() == 'first':
        return 0
    if str(class_label).lower() == 'last':
        return num_classes - 1
    try:
        index = int(class_label) - 1
    except (TypeError, ValueError):
        raise ConfigurationError(f"Invalid class label index: {class_label}") from None
    if not 0 <= index < num_classes:
        raise ConfigurationError(
            f"Class label index {class_label} out of range (1..{num_classes})")
    return index


def _safe_ratio(numerator: float, denominator: float) -> float:
    if denominator == 0 or not np.isfinite(denominator):
        return math.nan
    return numerator / denominator


def regression_metrics(y_true, y_pred) -> Dict[str, float]:
    y_true = np.asarray(y_true, dtype=float)
    y_pred = np.asarray(y_pred, dtype=float).reshape(-1)
    if y_true.size == 0:
        return {m: math.nan for m in METRICS}

    error = y_pred - y_true
    deviation = y_true - y_true.mean()

    if np.std(y_true) == 0 or np.std(y_pred) == 0:
        cc = math.nan
    else:
        cc = float(np.corrcoef(y_true, y_pred)[0, 1])

    rmse = float(np.sqrt(np.mean(error ** 2)))
    mae = float(np.mean(np.abs(error)))
    squared_deviation = float(np.sum(deviation ** 2))
    rrse = 100.0 * math.sqrt(float(np.sum(error ** 2)) / squared_deviation) \
        if squared_deviation > 0 else math.nan
    rae = 100.0 * _safe_ratio(float(np.sum(np.abs(error))), float(np.sum(np.abs(deviation))))

    metrics = {m: math.nan for m in METRICS}
    metrics.update({
        'CC': cc,
        'RMSE': rmse,
        'RRSE': rrse,
        'MAE': mae,
        'RAE': rae,
        'COMB': (1 - abs(cc)) + rrse + rae,
    })
    return metrics


def classification_metrics(y_true, y_pred, classes: Sequence, proba: Optional[np.ndarray] = None,
                           class_index: int = 0) -> Dict[str, float]:
    """
    Metrics for nominal targets.

    ``proba`` holds one column per entry of ``classes``; when given, RMSE and
    MAE are computed over the class probability distributions and AUC is
    available for the class at ``class_index``.
    """
    y_true = np.asarray(y_true, dtype=object)
    y_pred = np.asarray(y_pred, dtype=object)
    metrics = {m: math.nan for m in METRICS}
    if y_true.size == 0:
        return metrics

    labels: List = list(classes)
    positive = labels[class_index]

    metrics['ACC'] = 100.0 * float(accuracy_score(y_true, y_pred))
    if len(set(y_true.tolist()) | set(y_pred.tolist())) > 1:
        metrics['KAP'] = float(cohen_kappa_score(y_true, y_pred, labels=labels))
    metrics['FM'] = float(f1_score(y_true, y_pred, labels=[positive], average=None,
                                   zero_division=0)[0])

    if proba is not None:
        actual = np.array([[1.0 if t == c else 0.0 for c in labels] for t in y_true])
        diff = np.asarray(proba, dtype=float) - actual
        metrics['RMSE'] = float(np.sqrt(np.mean(diff ** 2)))
        metrics['MAE'] = float(np.mean(np.abs(diff)))
        is_positive = actual[:, class_index]
        if 0 < is_positive.sum() < len(is_positive):
            metrics['AUC'] = float(roc_auc_score(is_positive, proba[:, class_index]))
    return metrics
