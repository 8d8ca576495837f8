import math
from dataclasses import dataclass
from types import MappingProxyType
from typing import Any, Iterable, List, Mapping, Optional

from multisearch.evaluation.metrics import get_metric, worst_metrics
from multisearch.setup_generator.space import Point


@dataclass(frozen=True, eq=False)
class Performance:
    """
    Outcome of evaluating one point.

    ``model`` is the configured (untrained) estimator and ``values`` the
    concrete values that were applied to it. Failed evaluations carry the
    worst possible value for every metric.
    """

    point: Point
    metrics: Mapping[str, float]
    metric: str
    model: Any = None
    values: Optional[Point] = None
    failed: bool = False
    error: Optional[str] = None

    def __post_init__(self):
        object.__setattr__(self, 'metrics', MappingProxyType(dict(self.metrics)))

    @classmethod
    def failure(cls, point: Point, metric: str, error: str, model=None,
                values: Optional[Point] = None) -> "Performance":
        return cls(point, worst_metrics(), metric, model=model, values=values,
                   failed=True, error=error)

    def value(self, metric: Optional[str] = None) -> float:
        return float(self.metrics.get(metric or self.metric, math.nan))

    def __repr__(self) -> str:
        status = "failed" if self.failed else f"{self.metric}={self.value():.6g}"
        return f"Performance({self.point!r}, {status})"


class PerformanceComparator:
    """
    Total order over performances for one metric.

    Values are normalised to "lower is better" (maximised metrics are
    negated); NaN and failed evaluations always rank last.
    """

    def __init__(self, metric: str):
        self.metric = get_metric(metric).id
        self.maximize = get_metric(metric).maximize

    def sort_key(self, performance: Performance) -> float:
        if performance.failed:
            return math.inf
        value = performance.value(self.metric)
        if math.isnan(value):
            return math.inf
        return -value if self.maximize else value

    def compare(self, a: Performance, b: Performance) -> int:
        ka, kb = self.sort_key(a), self.sort_key(b)
        if ka < kb:
            return -1
        if ka > kb:
            return 1
        return 0

    def sort(self, performances: Iterable[Performance]) -> List[Performance]:
        """Best first; ties keep their input order."""
        return sorted(performances, key=self.sort_key)

    def best(self, performances: Iterable[Performance]) -> Performance:
        performances = list(performances)
        if not performances:
            raise ValueError("No performances to rank!")
        return min(performances, key=self.sort_key)

    def is_uniform(self, performances: Iterable[Performance]) -> bool:
        """True if every performance has the same value for the metric."""
        keys = {self.sort_key(p) for p in performances}
        return len(keys) <= 1
