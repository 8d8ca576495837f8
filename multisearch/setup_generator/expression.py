"""
Small numeric expression language used by ``MathParameter``.

Expressions are parsed with :mod:`ast` and interpreted over a whitelist of
node types, so no arbitrary Python code is ever executed. Supported:

- numbers and variables (e.g. ``BASE``, ``FROM``, ``TO``, ``STEP``, ``I``)
- ``+ - * / % **`` and ``^`` (power)
- comparisons, ``and``/``or``/``not``
- ``if(cond, a, b)`` and the functions in ``FUNCTIONS``
"""

import ast
import math
import re
from typing import Dict, Mapping

FUNCTIONS = {
    'abs': abs,
    'sqrt': math.sqrt,
    'log': math.log,
    'log10': math.log10,
    'exp': math.exp,
    'pow': math.pow,
    'sin': math.sin,
    'cos': math.cos,
    'tan': math.tan,
    'floor': math.floor,
    'ceil': math.ceil,
    'rint': round,
    'min': min,
    'max': max,
}

_BINARY_OPS = {
    ast.Add: lambda a, b: a + b,
    ast.Sub: lambda a, b: a - b,
    ast.Mult: lambda a, b: a * b,
    ast.Div: lambda a, b: a / b,
    ast.Mod: lambda a, b: a % b,
    ast.Pow: lambda a, b: math.pow(a, b),
    # '^' is rewritten to power before parsing, kept here for direct ASTs
    ast.BitXor: lambda a, b: math.pow(a, b),
}

# 'if' is a Python keyword, so if(...) calls are renamed before parsing
_IF_CALL = re.compile(r'\bif\s*\(')

_COMPARE_OPS = {
    ast.Eq: lambda a, b: a == b,
    ast.NotEq: lambda a, b: a != b,
    ast.Lt: lambda a, b: a < b,
    ast.LtE: lambda a, b: a <= b,
    ast.Gt: lambda a, b: a > b,
    ast.GtE: lambda a, b: a >= b,
}


class ExpressionError(ValueError):
    """Raised when an expression cannot be parsed or evaluated."""


class Expression:
    """A parsed expression that can be evaluated repeatedly with different variables."""

    def __init__(self, source: str):
        self.source = source
        try:
            prepared = _IF_CALL.sub('ifelse(', source.replace('^', '**'))
            self._tree = ast.parse(prepared, mode='eval')
        except SyntaxError as e:
            raise ExpressionError(f"Invalid expression '{source}': {e.msg}") from e

    def evaluate(self, variables: Mapping[str, float]) -> float:
        return float(self._eval(self._tree.body, variables))

    def _eval(self, node: ast.AST, variables: Mapping[str, float]):
        if isinstance(node, ast.Constant):
            if isinstance(node.value, (int, float)) and not isinstance(node.value, bool):
                return node.value
            raise ExpressionError(f"Unsupported constant: {node.value!r}")

        if isinstance(node, ast.Name):
            if node.id in variables:
                return variables[node.id]
            if node.id in ('pi', 'PI'):
                return math.pi
            if node.id in ('e', 'E'):
                return math.e
            raise ExpressionError(f"Unknown variable: {node.id}")

        if isinstance(node, ast.UnaryOp):
            operand = self._eval(node.operand, variables)
            if isinstance(node.op, ast.USub):
                return -operand
            if isinstance(node.op, ast.UAdd):
                return operand
            if isinstance(node.op, ast.Not):
                return not operand
            raise ExpressionError(f"Unsupported unary operator: {type(node.op).__name__}")

        if isinstance(node, ast.BinOp):
            op = _BINARY_OPS.get(type(node.op))
            if op is None:
                raise ExpressionError(f"Unsupported operator: {type(node.op).__name__}")
            return op(self._eval(node.left, variables), self._eval(node.right, variables))

        if isinstance(node, ast.BoolOp):
            values = [self._eval(v, variables) for v in node.values]
            if isinstance(node.op, ast.And):
                return all(values)
            return any(values)

        if isinstance(node, ast.Compare):
            left = self._eval(node.left, variables)
            for op, comparator in zip(node.ops, node.comparators):
                right = self._eval(comparator, variables)
                func = _COMPARE_OPS.get(type(op))
                if func is None:
                    raise ExpressionError(f"Unsupported comparison: {type(op).__name__}")
                if not func(left, right):
                    return False
                left = right
            return True

        if isinstance(node, ast.Call):
            if not isinstance(node.func, ast.Name) or node.keywords:
                raise ExpressionError("Only plain function calls are supported")
            name = node.func.id
            if name == 'ifelse':
                if len(node.args) != 3:
                    raise ExpressionError("if() expects exactly three arguments")
                cond = self._eval(node.args[0], variables)
                branch = node.args[1] if cond else node.args[2]
                return self._eval(branch, variables)
            func = FUNCTIONS.get(name)
            if func is None:
                raise ExpressionError(f"Unknown function: {name}")
            return func(*[self._eval(arg, variables) for arg in node.args])

        raise ExpressionError(f"Unsupported syntax: {type(node).__name__}")


def evaluate_expression(source: str, variables: Dict[str, float]) -> float:
    """Parse and evaluate ``source`` in one go."""
    return Expression(source).evaluate(variables)
