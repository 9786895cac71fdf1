"""Textual front end: parses linear constraints such as "x + 2 <= y - 1" with SymPy."""

import re
from fractions import Fraction
from typing import Iterable, List

from sympy import Poly, Symbol, expand
from sympy.polys.polyerrors import PolynomialError
from sympy.parsing.sympy_parser import (
    parse_expr, standard_transformations, implicit_multiplication, convert_xor,
    rationalize
)

from rational_vectors import add, constant, factor_for_variable, to_fraction

TRANSFORMATIONS = standard_transformations + (
    implicit_multiplication,
    convert_xor,
    rationalize,  # "0.5" becomes Rational(1, 2), never a float
)

_IDENTIFIER = re.compile(r'[A-Za-z_][A-Za-z_0-9]*')
_RELATION = re.compile(r'(<=|>=|==|!=|<|>|=)')


def _parse_side(text: str, local: dict):
    s = text.strip()
    if not s:
        raise ValueError("Empty side in linear expression")
    try:
        return parse_expr(s, local_dict=local, transformations=TRANSFORMATIONS)
    except Exception as e:
        raise ValueError(f"Could not parse expression: '{text}'. Error: {e}")


def _to_vector(expr, symbols: List[Symbol], indices: List[int], text: str) -> List[Fraction]:
    expr = expand(expr)
    if not symbols:
        return constant(to_fraction(expr))
    try:
        poly = Poly(expr, *symbols)
    except PolynomialError:
        raise ValueError(f"Expression is not linear: '{text}'")

    vector = constant(0)
    for monom, coeff in poly.terms():
        degree = sum(monom)
        if degree > 1:
            raise ValueError(f"Expression is not linear: '{text}'")
        try:
            value = to_fraction(coeff)
        except ValueError:
            raise ValueError(f"Coefficient {coeff} in '{text}' is not rational")
        if degree == 0:
            vector = add(vector, constant(value))
        else:
            vector = add(vector, factor_for_variable(indices[monom.index(1)], value))
    return vector


def _parse_sides(builder, texts: List[str]) -> List[List[Fraction]]:
    """Parse several expressions over one registry.

    Variables are registered in order of first appearance across `texts`,
    and only once every text has parsed and proved linear.
    """
    names = []
    for text in texts:
        for name in _IDENTIFIER.findall(text):
            if name not in names:
                names.append(name)
    local = {name: Symbol(name) for name in names}
    exprs = [_parse_side(text, local) for text in texts]

    free = set()
    for expr in exprs:
        free |= expr.free_symbols
    symbols = [local[name] for name in names if local[name] in free]

    # Check linearity before the registry grows.
    for expr, text in zip(exprs, texts):
        _to_vector(expr, symbols, list(range(1, len(symbols) + 1)), text)

    state = builder.solving_state
    indices = [state.register_or_lookup(sym.name) for sym in symbols]
    return [_to_vector(expr, symbols, indices, text) for expr, text in zip(exprs, texts)]


def parse_linear_expression(builder, text: str) -> List[Fraction]:
    """Coefficient vector for `text`, registering its variables in `builder`."""
    return _parse_sides(builder, [text])[0]


def parse_constraint(builder, text: str):
    """Add the constraint in `text` (<=, >= or =) to `builder`."""
    parts = _RELATION.split(text)
    if len(parts) != 3:
        raise ValueError(f"Expected exactly one comparison in '{text}'")
    lhs_text, op, rhs_text = parts
    if op in ('<', '>', '!='):
        raise ValueError(f"Unsupported comparison '{op}' in '{text}'")

    lhs, rhs = _parse_sides(builder, [lhs_text, rhs_text])
    if op == '<=':
        builder.add_le_constraint(lhs, rhs)
    elif op == '>=':
        builder.add_ge_constraint(lhs, rhs)
    else:
        builder.add_eq_constraint(lhs, rhs)


def add_constraints(builder, texts: Iterable[str]):
    for text in texts:
        parse_constraint(builder, text)
