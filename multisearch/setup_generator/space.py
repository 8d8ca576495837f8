"""
Parameter space data model: dimensions, points and spaces.

A dimension is one searchable axis. Two kinds exist:

- ``FunctionDimension``: a numeric axis ``min, min+step, ..., max``. The raw
  coordinate is later turned into the applied value by the owning parameter
  (e.g. ``pow(BASE, I)``).
- ``ListDimension``: a window ``min..max`` over a finite list of strings.

Dimensions are immutable; zooming creates new ones.
"""

import itertools
import math
from dataclasses import dataclass, field
from typing import Iterator, List, Sequence, Tuple, Union

# Tolerance used when checking that min + k*step lands on max.
AXIS_TOLERANCE = 1e-6

# Axis values are snapped to this many decimals so that a value reached
# through a zoomed axis equals the same value of the parent axis.
VALUE_DECIMALS = 12

Dimension = Union["FunctionDimension", "ListDimension"]


def _format_number(value: float) -> str:
    return repr(float(value))


@dataclass(frozen=True)
class FunctionDimension:
    """Numeric axis with an exact grid alignment of ``step``."""

    min: float
    max: float
    step: float
    label: str = ""

    def __post_init__(self):
        if self.min >= self.max:
            raise ValueError("Min must be smaller than Max!")
        if self.step <= 0:
            raise ValueError("Step must be a positive number!")
        calculated = self.min + (self.width() - 1) * self.step
        if not math.isclose(calculated, self.max, rel_tol=AXIS_TOLERANCE, abs_tol=AXIS_TOLERANCE):
            raise ValueError(
                f"Axis doesn't match! Provided max: {self.max}, "
                f"calculated max via min and step size: {calculated}"
            )

    def width(self) -> int:
        return int(round((self.max - self.min) / self.step)) + 1

    def get_value(self, x: int) -> float:
        if x < 0 or x >= self.width():
            raise IndexError(f"Index out of scope on axis ({x} >= {self.width()})!")
        return round(self.min + self.step * x, VALUE_DECIMALS)

    def get_location(self, value) -> int:
        """Index of the grid value nearest to ``value``."""
        offset = (float(value) - self.min) / self.step
        return min(max(int(round(offset)), 0), self.width() - 1)

    def is_on_border(self, location: int) -> bool:
        return location == 0 or location == self.width() - 1

    def subdimension(self, left: int, right: int) -> "FunctionDimension":
        return FunctionDimension(self.get_value(left), self.get_value(right), self.step, self.label)

    def refine(self, location: int) -> "FunctionDimension":
        """
        Zoom around an interior location: span the two neighbours with half the step.
        """
        if self.is_on_border(location):
            raise ValueError(f"Cannot refine '{self.label}' around border location {location}")
        return FunctionDimension(
            self.get_value(location - 1),
            self.get_value(location + 1),
            self.step / 2.0,
            self.label,
        )

    def __str__(self) -> str:
        return (f"dimension: function, label: {self.label}, min: {_format_number(self.min)}, "
                f"max: {_format_number(self.max)}, step: {_format_number(self.step)}")


@dataclass(frozen=True)
class ListDimension:
    """Window ``min..max`` (inclusive indices) over an explicit list of values."""

    min: int
    max: int
    values: Tuple[str, ...] = field(default_factory=tuple)
    label: str = ""

    def __post_init__(self):
        object.__setattr__(self, "values", tuple(str(v) for v in self.values))
        if self.min < 0:
            raise ValueError(f"Min must be non-negative (min={self.min})!")
        if self.min >= len(self.values):
            raise ValueError(
                f"Min must be smaller than list length (min={self.min}, list={len(self.values)})!")
        if self.max >= len(self.values):
            raise ValueError(
                f"Max must be smaller than list length (max={self.max}, list={len(self.values)})!")
        if self.min > self.max:
            raise ValueError(f"Min must be at most Max (min={self.min}, max={self.max})!")

    @property
    def step(self) -> int:
        return -1

    def width(self) -> int:
        return self.max - self.min + 1

    def get_value(self, x: int) -> str:
        if x < 0 or x >= self.width():
            raise IndexError(f"Index out of scope on axis ({x} >= {self.width()})!")
        return self.values[self.min + x]

    def get_location(self, value) -> int:
        value_str = str(value)
        for i in range(self.width()):
            if self.get_value(i) == value_str:
                return i
        return 0

    def is_on_border(self, location: int) -> bool:
        return location == 0 or location == self.width() - 1

    def subdimension(self, left: int, right: int) -> "ListDimension":
        return ListDimension(self.min + left, self.min + right, self.values, self.label)

    def __str__(self) -> str:
        return (f"dimension: list, label: {self.label}, min: {self.min}, max: {self.max}, "
                f"list: {list(self.values)}")


class Point(tuple):
    """One coordinate per dimension. Equality and hashing are structural."""

    def __new__(cls, values: Sequence = ()):
        return super().__new__(cls, tuple(values))

    def dimensions(self) -> int:
        return len(self)

    def get_value(self, index: int):
        return self[index]

    def __repr__(self) -> str:
        return "Point(" + ", ".join(repr(v) for v in self) + ")"

    def __str__(self) -> str:
        return ", ".join(str(v) for v in self)


class Space:
    """Cartesian product of dimensions."""

    def __init__(self, dimensions: Sequence[Dimension]):
        self._dimensions: Tuple[Dimension, ...] = tuple(dimensions)

    def dimensions(self) -> int:
        return len(self._dimensions)

    def get_dimension(self, index: int) -> Dimension:
        return self._dimensions[index]

    def labels(self) -> List[str]:
        return [dim.label for dim in self._dimensions]

    def size(self) -> int:
        result = 1
        for dim in self._dimensions:
            result *= dim.width()
        return result

    def values(self) -> Iterator[Point]:
        """Enumerate all points in row-major order (last dimension varies fastest)."""
        if not self._dimensions:
            return
        axes = [[dim.get_value(i) for i in range(dim.width())] for dim in self._dimensions]
        for combination in itertools.product(*axes):
            yield Point(combination)

    def locations(self, point: Point) -> Point:
        """Translate a point of values into a point of per-dimension indices."""
        return Point(dim.get_location(value) for dim, value in zip(self._dimensions, point))

    def is_on_border(self, point: Point) -> bool:
        locations = self.locations(point)
        return any(dim.is_on_border(loc) for dim, loc in zip(self._dimensions, locations))

    def subspace(self, left: Point, right: Point) -> "Space":
        """Sub-space bounded (inclusively) by two index-points."""
        if len(left) != self.dimensions() or len(right) != self.dimensions():
            raise ValueError("Index points must have one coordinate per dimension!")
        return Space(dim.subdimension(int(lo), int(hi))
                     for dim, lo, hi in zip(self._dimensions, left, right))

    def __eq__(self, other) -> bool:
        if not isinstance(other, Space):
            return NotImplemented
        return self._dimensions == other._dimensions

    def __hash__(self) -> int:
        return hash(self._dimensions)

    def __len__(self) -> int:
        return self.size()

    def __iter__(self) -> Iterator[Point]:
        return self.values()

    def __str__(self) -> str:
        lines = [f"{i + 1}. {dim}" for i, dim in enumerate(self._dimensions)]
        return "\n".join(lines)
