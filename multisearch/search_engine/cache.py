from typing import Dict, Optional, Tuple

from multisearch.evaluation.performance import Performance
from multisearch.setup_generator.space import Point


class PerformanceCache:
    """
    Memoizes performances by (number of folds, point).

    Keys compare structurally, so any value-equal point hits. Failed
    performances are cached as well and never retried within a search.
    Only the controlling search thread writes to the cache.
    """

    def __init__(self):
        self._cache: Dict[Tuple[int, Point], Performance] = {}

    @staticmethod
    def _key(folds: int, point) -> Tuple[int, Point]:
        return int(folds), Point(point)

    def get(self, folds: int, point) -> Optional[Performance]:
        return self._cache.get(self._key(folds, point))

    def put(self, folds: int, point, performance: Performance) -> None:
        self._cache[self._key(folds, point)] = performance

    def contains(self, folds: int, point) -> bool:
        return self._key(folds, point) in self._cache

    def clear(self) -> None:
        self._cache.clear()

    def __len__(self) -> int:
        return len(self._cache)

    def __contains__(self, key) -> bool:
        folds, point = key
        return self.contains(folds, point)
