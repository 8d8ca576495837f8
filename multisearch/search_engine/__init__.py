"""
Search Engine
=============

Responsibility:
- Grid search with iterative zoom and randomized search.
- Evaluation cache keyed by (folds, point) and the ordered search trace.
- Concurrent evaluation across a bounded worker pool.
- Orchestration across parameter groups, final retrain and artifact persistence.
"""

from .base_search import AbstractSearch, SearchContext, SearchResult
from .cache import PerformanceCache
from .grid_search import GridSearch
from .random_search import RandomSearch
from .scheduler import WorkerPool
from .search_engine import SearchEngine
from .trace import AuditLog, Trace, TraceEntry

__all__ = [
    'AbstractSearch', 'SearchContext', 'SearchResult', 'PerformanceCache',
    'GridSearch', 'RandomSearch', 'WorkerPool', 'SearchEngine',
    'AuditLog', 'Trace', 'TraceEntry',
]
