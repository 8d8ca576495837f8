"""
Evaluation Module
=================

Responsibility:
- Metric registry with optimisation direction (maximize / minimize).
- Cross-validation, held-out and training-set evaluation of configured models.
- Performance records and the comparator used for every ranking decision.
- Evaluation tasks executed by the worker pool.
"""

from .evaluator import CrossValidationEvaluator
from .metrics import METRICS, get_metric, is_maximize
from .performance import Performance, PerformanceComparator
from .task import EvaluationTask

__all__ = [
    'CrossValidationEvaluator', 'METRICS', 'get_metric', 'is_maximize',
    'Performance', 'PerformanceComparator', 'EvaluationTask',
]
