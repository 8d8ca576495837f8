"""
Search parameter definitions.

Each parameter names a property path on the base model and contributes one
dimension to the search space:

- MathParameter: numeric axis, applied value computed by an expression
  (default ``pow(BASE,I)``, i.e. a log-scale sweep).
- ListParameter: explicit list of values.
- MLPLayersParameter: generated list of hidden-layer layouts.
- ParameterGroup: a set of dependent parameters searched together.
"""

import logging
import math
import shlex
from typing import Any, Dict, List, Optional, Sequence

from multisearch.setup_generator.expression import Expression, ExpressionError
from multisearch.setup_generator.space import FunctionDimension, ListDimension
from multisearch.utils.exceptions import ConfigurationError

logger = logging.getLogger(__name__)


class AbstractParameter:
    """Base class of every search parameter."""

    def space_dimension(self):
        raise NotImplementedError("Subclasses must implement space_dimension.")

    def evaluate(self, point):
        """Turn a raw coordinate into the value applied to the model."""
        return point


class AbstractPropertyParameter(AbstractParameter):
    """Parameter bound to a property path of the base model."""

    def __init__(self, property: str = ""):
        self.property = property

    def __repr__(self) -> str:
        return f"{self.__class__.__name__}(property={self.property!r})"


class MathParameter(AbstractPropertyParameter):
    """
    Numeric parameter.

    The axis runs from ``min`` to ``max`` in steps of ``step``; the expression
    maps the current coordinate ``I`` to the applied value. Available
    variables: ``BASE``, ``FROM`` (= min), ``TO`` (= max), ``STEP``, ``I``.
    """

    def __init__(self, property: str = "", min: float = -10.0, max: float = 10.0,
                 step: float = 1.0, base: float = 10.0, expression: str = "pow(BASE,I)"):
        super().__init__(property)
        self.min = float(min)
        self.max = float(max)
        self.step = float(step)
        self.base = float(base)
        self.expression = expression
        self._compiled: Optional[Expression] = None

    def space_dimension(self) -> FunctionDimension:
        return FunctionDimension(self.min, self.max, self.step, self.property)

    def evaluate(self, point) -> float:
        try:
            if self._compiled is None or self._compiled.source != self.expression:
                self._compiled = Expression(self.expression)
            return self._compiled.evaluate({
                'BASE': self.base,
                'FROM': self.min,
                'TO': self.max,
                'STEP': self.step,
                'I': float(point),
            })
        except (ExpressionError, ArithmeticError, ValueError, TypeError) as e:
            logger.error(
                f"Failed to evaluate '{self.expression}' using base={self.base}, from={self.min}, "
                f"to={self.max}, step={self.step}, i={point}: {e}"
            )
            return math.nan

    def __repr__(self) -> str:
        return (f"MathParameter(property={self.property!r}, min={self.min}, max={self.max}, "
                f"step={self.step}, base={self.base}, expression={self.expression!r})")


class ListParameter(AbstractPropertyParameter):
    """
    Parameter with an explicit list of values.

    ``values`` may be a sequence or a single string; strings are split on
    blanks (shell-style quoting honoured) or on ``delimiter`` if one is set.
    """

    def __init__(self, property: str = "", values: Any = "", delimiter: str = ""):
        super().__init__(property)
        self.values = values
        self.delimiter = delimiter

    def get_items(self) -> List[str]:
        if not isinstance(self.values, str):
            return [str(v) for v in self.values]
        if self.delimiter:
            return self.values.split(self.delimiter)
        return shlex.split(self.values)

    def space_dimension(self) -> ListDimension:
        items = self.get_items()
        if not items:
            raise ConfigurationError(f"List parameter '{self.property}' has no values!")
        return ListDimension(0, len(items) - 1, tuple(items), self.property)

    def __repr__(self) -> str:
        text = f"ListParameter(property={self.property!r}, values={self.values!r}"
        if self.delimiter:
            text += f", delimiter={self.delimiter!r}"
        return text + ")"


class MLPLayersParameter(AbstractPropertyParameter):
    """
    Hidden-layer layouts for multi-layer perceptrons.

    Generates every comma-separated list of layer sizes with between
    ``min_layers`` and ``max_layers`` layers, each of size
    ``min_layer_size..max_layer_size``. The number of candidates grows
    exponentially with the number of layers, hence the hard cap.
    """

    MAX_CANDIDATES_TO_GENERATE = 10000

    def __init__(self, property: str = "", min_layers: int = 1, max_layers: int = 2,
                 min_layer_size: int = 8, max_layer_size: int = 128):
        super().__init__(property)
        self.min_layers = int(min_layers)
        self.max_layers = int(max_layers)
        self.min_layer_size = int(min_layer_size)
        self.max_layer_size = int(max_layer_size)
        self.check_structure_params()

    def check_structure_params(self) -> None:
        if self.max_layer_size < self.min_layer_size:
            raise ConfigurationError("minLayerSize should be smaller than or equal to maxLayerSize")
        if self.max_layers < self.min_layers:
            raise ConfigurationError("minLayers should be smaller than or equal to maxLayers")
        if self.max_layers == self.min_layers and self.max_layer_size == self.min_layer_size:
            raise ConfigurationError("no variation in layer structure possible")

    def calculate_number_of_candidates(self) -> int:
        sizes = self.max_layer_size - self.min_layer_size + 1
        return sum(sizes ** n for n in range(max(self.min_layers, 1), self.max_layers + 1))

    def get_items(self) -> List[str]:
        self.check_structure_params()
        result: List[str] = []
        self._generate_layers([], result)
        return result

    def _generate_layers(self, current: List[int], result: List[str]) -> None:
        if len(result) >= self.MAX_CANDIDATES_TO_GENERATE:
            return
        if current and len(current) >= self.min_layers:
            result.append(",".join(str(size) for size in current))
        if len(current) >= self.max_layers:
            return
        for size in range(self.min_layer_size, self.max_layer_size + 1):
            current.append(size)
            self._generate_layers(current, result)
            current.pop()
            if len(result) >= self.MAX_CANDIDATES_TO_GENERATE:
                return

    def space_dimension(self) -> ListDimension:
        items = self.get_items()
        return ListDimension(0, len(items) - 1, tuple(items), self.property)

    def __repr__(self) -> str:
        return (f"MLPLayersParameter(property={self.property!r}, min_layers={self.min_layers}, "
                f"max_layers={self.max_layers}, min_layer_size={self.min_layer_size}, "
                f"max_layer_size={self.max_layer_size})")


class ParameterGroup(AbstractParameter):
    """Dependent parameters that are searched together, independently of other groups."""

    def __init__(self, parameters: Sequence[AbstractPropertyParameter] = ()):
        self.parameters = list(parameters)

    def space_dimension(self):
        return None

    def __repr__(self) -> str:
        return f"ParameterGroup({self.parameters!r})"


def group_parameters(parameters: Sequence[AbstractParameter]) -> List[List[AbstractPropertyParameter]]:
    """
    Split top-level parameters into independently searched groups.

    Either all top-level parameters are groups (one search per group) or none
    is (a single search over all of them).
    """
    if not parameters:
        raise ConfigurationError("No search parameters provided!")
    group_count = sum(1 for p in parameters if isinstance(p, ParameterGroup))
    if group_count and group_count != len(parameters):
        raise ConfigurationError("Cannot mix ParameterGroup with other parameter types!")
    if group_count:
        groups = [list(p.parameters) for p in parameters]
        for i, group in enumerate(groups):
            if not group:
                raise ConfigurationError(f"Parameter group #{i + 1} is empty!")
            if any(isinstance(p, ParameterGroup) for p in group):
                raise ConfigurationError("Parameter groups cannot be nested!")
        return groups
    return [list(parameters)]


_PARAMETER_TYPES = {
    'math': MathParameter,
    'list': ListParameter,
    'mlp_layers': MLPLayersParameter,
}


def parameter_from_config(spec: Dict[str, Any]) -> AbstractParameter:
    """
    Build a parameter from its configuration dictionary, e.g.::

        {"type": "math", "property": "alpha", "min": -3, "max": 3, "step": 1}
        {"type": "list", "property": "fit_intercept", "values": ["true", "false"]}
        {"type": "group", "parameters": [...]}
    """
    spec = dict(spec)
    kind = spec.pop('type', None)
    if kind == 'group':
        return ParameterGroup([parameter_from_config(p) for p in spec.get('parameters', [])])
    if kind not in _PARAMETER_TYPES:
        raise ConfigurationError(
            f"Unknown parameter type: {kind}. Available: {sorted(_PARAMETER_TYPES) + ['group']}")
    if kind == 'list' and 'list' in spec:
        spec['values'] = spec.pop('list')
    try:
        return _PARAMETER_TYPES[kind](**spec)
    except TypeError as e:
        raise ConfigurationError(f"Invalid {kind} parameter {spec}: {e}") from e
