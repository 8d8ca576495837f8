"""
Data Manager Module
===================

Responsibility:
- Loading training/test data (CSV, Excel, Parquet) with a target column.
- Header compatibility checks between training and test sets.
- Sub-sampling and removal of rows with a missing target.
"""

from .dataset import Dataset

__all__ = ['Dataset']
