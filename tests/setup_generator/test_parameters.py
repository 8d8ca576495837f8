import math

import pytest

from multisearch.setup_generator.parameters import (
    ListParameter,
    MathParameter,
    MLPLayersParameter,
    ParameterGroup,
    group_parameters,
    parameter_from_config,
)
from multisearch.setup_generator.space import FunctionDimension, ListDimension
from multisearch.utils.exceptions import ConfigurationError


# --- MathParameter ---

def test_math_parameter_defaults():
    param = MathParameter("alpha")
    dim = param.space_dimension()
    assert isinstance(dim, FunctionDimension)
    assert dim.width() == 21
    assert dim.label == "alpha"
    assert param.evaluate(-3) == pytest.approx(0.001)


def test_math_parameter_custom_expression():
    param = MathParameter("tol", min=1, max=5, step=1, expression="I * STEP + FROM")
    assert param.evaluate(2) == 3.0


def test_math_parameter_failed_evaluation_gives_nan():
    param = MathParameter("alpha", expression="log(I)")
    assert math.isnan(param.evaluate(0))
    param.expression = "MISSING"
    assert math.isnan(param.evaluate(1))


# --- ListParameter ---

@pytest.mark.parametrize("values, delimiter, expected", [
    (["true", "false"], "", ["true", "false"]),
    ([1, 2.5], "", ["1", "2.5"]),
    ("a b 'c d'", "", ["a", "b", "c d"]),
    ("x;y;z", ";", ["x", "y", "z"]),
])
def test_list_parameter_items(values, delimiter, expected):
    assert ListParameter("p", values, delimiter).get_items() == expected


def test_list_parameter_dimension():
    dim = ListParameter("fit_intercept", [True, False]).space_dimension()
    assert isinstance(dim, ListDimension)
    assert dim.values == ("True", "False")
    assert dim.width() == 2


def test_list_parameter_without_values():
    with pytest.raises(ConfigurationError, match="has no values"):
        ListParameter("p", []).space_dimension()


# --- MLPLayersParameter ---

def test_mlp_layers_generation_order():
    param = MLPLayersParameter("hidden_layer_sizes", 1, 2, 1, 2)
    assert param.get_items() == ["1", "1,1", "1,2", "2", "2,1", "2,2"]
    assert param.calculate_number_of_candidates() == 6


def test_mlp_layers_respects_min_layers():
    param = MLPLayersParameter("hidden_layer_sizes", 2, 2, 1, 2)
    assert param.get_items() == ["1,1", "1,2", "2,1", "2,2"]


def test_mlp_layers_candidate_cap():
    param = MLPLayersParameter("hidden_layer_sizes", 1, 3, 1, 100)
    assert param.calculate_number_of_candidates() > MLPLayersParameter.MAX_CANDIDATES_TO_GENERATE
    items = param.get_items()
    assert len(items) == MLPLayersParameter.MAX_CANDIDATES_TO_GENERATE
    assert param.space_dimension().width() == MLPLayersParameter.MAX_CANDIDATES_TO_GENERATE


@pytest.mark.parametrize("kwargs, message", [
    ({"min_layer_size": 10, "max_layer_size": 5}, "minLayerSize"),
    ({"min_layers": 3, "max_layers": 2}, "minLayers"),
    ({"min_layers": 2, "max_layers": 2, "min_layer_size": 4, "max_layer_size": 4}, "no variation"),
])
def test_mlp_layers_invalid_structure(kwargs, message):
    with pytest.raises(ConfigurationError, match=message):
        MLPLayersParameter("hidden_layer_sizes", **kwargs)


# --- Grouping ---

def test_group_parameters_plain():
    params = [MathParameter("alpha"), ListParameter("fit_intercept", ["true"])]
    assert group_parameters(params) == [params]


def test_group_parameters_groups():
    a, b = MathParameter("alpha"), MathParameter("tol")
    groups = group_parameters([ParameterGroup([a]), ParameterGroup([b])])
    assert groups == [[a], [b]]


@pytest.mark.parametrize("params, message", [
    ([], "No search parameters"),
    ([ParameterGroup([MathParameter("alpha")]), MathParameter("tol")], "Cannot mix"),
    ([ParameterGroup([])], "empty"),
    ([ParameterGroup([ParameterGroup([MathParameter("alpha")])])], "nested"),
])
def test_group_parameters_invalid(params, message):
    with pytest.raises(ConfigurationError, match=message):
        group_parameters(params)


# --- Config factory ---

def test_parameter_from_config_math():
    param = parameter_from_config({"type": "math", "property": "alpha", "min": -3, "max": 3})
    assert isinstance(param, MathParameter)
    assert param.min == -3.0
    assert param.expression == "pow(BASE,I)"


def test_parameter_from_config_list_alias():
    param = parameter_from_config({"type": "list", "property": "solver", "list": "auto svd"})
    assert isinstance(param, ListParameter)
    assert param.get_items() == ["auto", "svd"]


def test_parameter_from_config_group():
    param = parameter_from_config({"type": "group", "parameters": [
        {"type": "math", "property": "alpha"},
        {"type": "mlp_layers", "property": "hidden_layer_sizes"},
    ]})
    assert isinstance(param, ParameterGroup)
    assert isinstance(param.parameters[1], MLPLayersParameter)


def test_parameter_from_config_errors():
    with pytest.raises(ConfigurationError, match="Unknown parameter type"):
        parameter_from_config({"type": "bogus", "property": "alpha"})
    with pytest.raises(ConfigurationError, match="Invalid math parameter"):
        parameter_from_config({"type": "math", "property": "alpha", "colour": "red"})
