import copy
import logging
from typing import Dict, List, Optional, Sequence

from multisearch.setup_generator.parameters import (
    AbstractPropertyParameter,
    MathParameter,
)
from multisearch.setup_generator.property_path import PropertyPath
from multisearch.setup_generator.space import Point, Space
from multisearch.utils.exceptions import ConfigurationError


class SetupGenerator:
    """
    Turns points of the parameter space into configured model instances.

    Usage:
        generator = SetupGenerator(parameters, logger)
        generator.check(base_model)          # fails fast on bad property paths
        space = generator.space()
        values = generator.evaluate(point)   # raw coordinates -> applied values
        model = generator.setup(base_model, values)
    """

    def __init__(self, parameters: Sequence[AbstractPropertyParameter],
                 logger: Optional[logging.Logger] = None, group_index: Optional[int] = None):
        self.parameters: List[AbstractPropertyParameter] = list(parameters)
        self.logger = logger or logging.getLogger(__name__)
        self.group_index = group_index
        self._paths: Dict[int, PropertyPath] = {}

    def space(self) -> Space:
        return Space([p.space_dimension() for p in self.parameters])

    def evaluate(self, point: Point) -> Point:
        if len(point) != len(self.parameters):
            raise ValueError(
                f"Point has {len(point)} coordinates, expected {len(self.parameters)}")
        return Point(param.evaluate(value) for param, value in zip(self.parameters, point))

    def _position(self, index: int) -> str:
        if self.group_index is None:
            return f"#{index + 1}"
        return f"#{self.group_index + 1}.{index + 1}"

    def check(self, base_object) -> None:
        """
        Compile every property path against ``base_object``.

        Raises ConfigurationError listing all paths that do not resolve to a
        settable property. Nothing is evaluated before this succeeds.
        """
        invalid = []
        paths = {}
        for i, param in enumerate(self.parameters):
            compiled = PropertyPath.compile(base_object, param.property)
            if compiled is None:
                invalid.append(f"{self._position(i)} '{param.property}'")
            else:
                paths[i] = compiled
        if invalid:
            raise ConfigurationError(
                f"Invalid property path(s) for {type(base_object).__name__}: {', '.join(invalid)}")
        self._paths = paths
        self.logger.debug(f"Validated {len(paths)} property path(s) for {type(base_object).__name__}")

    def setup(self, base_object, values: Sequence):
        """Deep-copy ``base_object`` and apply ``values`` (one per parameter)."""
        if not self._paths:
            self.check(base_object)
        if len(values) != len(self.parameters):
            raise ValueError(
                f"Got {len(values)} values, expected {len(self.parameters)}")
        configured = copy.deepcopy(base_object)
        for i, value in enumerate(values):
            self._paths[i].resolve(configured).apply(value)
        return configured

    def settings(self, values: Sequence) -> Dict[str, object]:
        """Property path -> applied value, for reporting."""
        return {param.property: value for param, value in zip(self.parameters, values)}

    def has_function_dimensions(self) -> bool:
        return any(isinstance(p, MathParameter) for p in self.parameters)
