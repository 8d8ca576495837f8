"""
MultiSearch
===========

Hyperparameter search for scikit-learn estimators: grid search with iterative
zoom, randomized search, cached and concurrent evaluation, and a full trace of
every configuration tried.
"""

__version__ = "0.1.0"
