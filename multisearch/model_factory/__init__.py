"""
Model Factory
=============

Responsibility:
- Creating the base scikit-learn estimator of a search from its name and parameters.
- Optional feature scaling pipeline around the estimator.
"""

from .model_factory import ModelFactory

__all__ = ['ModelFactory']
