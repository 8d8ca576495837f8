"""
Setup Generator
===============

Responsibility:
- Parameter space model (dimensions, points, spaces).
- Search parameter definitions and expression evaluation.
- Fail-fast compilation of property paths against the base model.
- Building configured model copies for single points.
"""

from .parameters import (
    ListParameter,
    MathParameter,
    MLPLayersParameter,
    ParameterGroup,
    group_parameters,
    parameter_from_config,
)
from .property_path import PropertyPath, Settable
from .setup_generator import SetupGenerator
from .space import FunctionDimension, ListDimension, Point, Space

__all__ = [
    'FunctionDimension', 'ListDimension', 'Point', 'Space',
    'MathParameter', 'ListParameter', 'MLPLayersParameter', 'ParameterGroup',
    'group_parameters', 'parameter_from_config',
    'PropertyPath', 'Settable', 'SetupGenerator',
]
