"""Compilation of parameter, transition and state value expressions.

Expressions are strings such as
``"Piecewise((0.003, model_time <= 6), (0, True))"``. They are parsed once
with sympy, every free identifier becomes a symbol, and the result is
lambdified against the ``math`` module. Evaluation takes an explicit
context mapping. There is no ambient "current cycle": ``model_time`` is
just another name in the context supplied by the caller.
"""

import keyword
import re
import sys
from dataclasses import dataclass
from tokenize import TokenError
from typing import Callable, FrozenSet, Mapping, Optional, Tuple, Union

import sympy as sp
from sympy.logic.boolalg import Boolean
from sympy.parsing.sympy_parser import auto_number, convert_xor, parse_expr

from ..errors import ExpressionError, UndefinedParameterError

MODEL_TIME = "model_time"

# Largest literal exponent accepted in ``a ** b``
MAX_EXPONENT = 1000


def rate_to_prob(rate, time=1):
    """Convert a constant event rate into a probability over ``time``."""
    return 1 - sp.exp(-rate * time)


def prob_to_prob(prob, from_=1, to=1):
    """Rescale a probability observed over ``from_`` to a period of ``to``."""
    return 1 - (1 - prob) ** (sp.sympify(to) / from_)


FUNCTIONS = {
    "exp": sp.exp,
    "log": sp.log,
    "log10": lambda x: sp.log(x, 10),
    "sqrt": sp.sqrt,
    "abs": sp.Abs,
    "Abs": sp.Abs,
    "min": sp.Min,
    "max": sp.Max,
    "Min": sp.Min,
    "Max": sp.Max,
    "Piecewise": sp.Piecewise,
    "pi": sp.pi,
    "rate_to_prob": rate_to_prob,
    "prob_to_prob": prob_to_prob,
}

RESERVED_NAMES = frozenset(FUNCTIONS) | {MODEL_TIME}

_IDENTIFIER = re.compile(r"(?<![\w.])[A-Za-z_][A-Za-z0-9_]*")
# Dunder names, strings, subscripts, statements and attribute access
_FORBIDDEN = re.compile(r"__|['\"\[\]{}:;\\]|\.\s*[A-Za-z_]")

_PARSE_ERRORS = (sp.SympifyError, SyntaxError, TokenError, TypeError, ValueError, AttributeError, NameError)
_EVAL_ERRORS = (ArithmeticError, ValueError, TypeError)


def _as_float(result, source: str) -> float:
    if isinstance(result, bool):
        result = int(result)
    if not isinstance(result, (int, float)):
        raise ExpressionError(f"Expression '{source}' produced non-numeric value {result!r}")
    return float(result)


def _check_powers(expr: sp.Basic, source: str) -> None:
    """Reject literal powers too large to evaluate; innermost first."""
    for node in sp.postorder_traversal(expr):
        if not isinstance(node, sp.Pow):
            continue
        if node.exp.is_number:
            exponent = node.exp.evalf()
            if exponent.is_finite is False or abs(exponent) > MAX_EXPONENT:
                raise ExpressionError(f"Exponent {node.exp} too large in '{source}'")
        if node.is_number:
            value = node.evalf()
            if value.is_finite is False or abs(value) > sys.float_info.max:
                raise ExpressionError(f"'{node}' is out of floating point range in '{source}'")


@dataclass(frozen=True)
class Expression:
    """A compiled expression with its free names."""
    source: str
    names: FrozenSet[str]
    arguments: Tuple[str, ...] = ()
    func: Optional[Callable[..., object]] = None
    constant: Optional[float] = None

    @property
    def is_constant(self) -> bool:
        return self.func is None

    def evaluate(self, context: Mapping[str, float]) -> float:
        """
        Evaluate against a name -> value mapping.

        Args:
            context: Values for every name in ``self.names``

        Returns:
            Result as float

        Raises:
            UndefinedParameterError: A free name is missing from ``context``
            ExpressionError: Evaluation failed or produced a non-number
        """
        if self.func is None:
            return self.constant
        missing = [name for name in self.arguments if name not in context]
        if missing:
            raise UndefinedParameterError(
                f"Reference to undefined name '{missing[0]}' in '{self.source}'"
            )
        try:
            result = self.func(*(context[name] for name in self.arguments))
        except _EVAL_ERRORS as e:
            raise ExpressionError(f"Failed to evaluate '{self.source}': {e}") from e
        return _as_float(result, self.source)

    def __str__(self) -> str:
        return self.source


def compile_expression(value: Union[str, int, float, "Expression"]) -> Expression:
    """
    Compile a number or expression string.

    Args:
        value: Numeric literal, expression string, or an already compiled Expression

    Returns:
        Compiled Expression

    Raises:
        ExpressionError: If the string cannot be parsed or uses unsupported syntax
    """
    if isinstance(value, Expression):
        return value
    if isinstance(value, bool):
        raise ExpressionError(f"Boolean {value!r} is not a valid expression")
    if isinstance(value, (int, float)):
        return Expression(source=repr(value), names=frozenset(), constant=float(value))
    if not isinstance(value, str):
        raise ExpressionError(f"Unsupported expression type: {type(value).__name__}")

    source = value.strip()
    if not source:
        raise ExpressionError("Empty expression")
    if _FORBIDDEN.search(source):
        raise ExpressionError(f"Unsupported syntax in expression '{source}'")

    local_dict = dict(FUNCTIONS)
    for token in _IDENTIFIER.findall(source):
        if token not in local_dict and not keyword.iskeyword(token):
            local_dict[token] = sp.Symbol(token)

    try:
        sym_expr = parse_expr(
            source,
            local_dict=local_dict,
            transformations=(auto_number, convert_xor),
            evaluate=False,
        )
    except _PARSE_ERRORS as e:
        raise ExpressionError(f"Invalid expression '{source}': {e}") from e
    if not isinstance(sym_expr, (sp.Expr, Boolean)):
        raise ExpressionError(f"Expression '{source}' is not a scalar")
    try:
        _check_powers(sym_expr, source)
    except TypeError as e:
        raise ExpressionError(f"Invalid expression '{source}': {e}") from e

    free_symbols = sorted(sym_expr.free_symbols, key=lambda s: s.name)
    arguments = tuple(s.name for s in free_symbols)
    func = sp.lambdify(free_symbols, sym_expr, modules=["math"])

    if not arguments:
        try:
            result = func()
        except _EVAL_ERRORS as e:
            raise ExpressionError(f"Failed to evaluate '{source}': {e}") from e
        return Expression(source=source, names=frozenset(), constant=_as_float(result, source))

    return Expression(source=source, names=frozenset(arguments), arguments=arguments, func=func)
