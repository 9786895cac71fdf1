"""
Exact rational coefficient vectors.

A coefficient vector is a plain list of Fractions. Slot 0 holds the constant
term and slot i (i >= 1) the coefficient of the variable with registry index i.
Vectors built before a variable existed are shorter; every binary operation
zero-extends the shorter operand first, so variables can be introduced lazily.
"""

from fractions import Fraction
from typing import List, Sequence

from sympy import Rational, sympify


def to_fraction(x) -> Fraction:
    """Convert input to Fraction while preserving exact values.

    Args:
        x: Fraction, int, sympy Rational, or a string such as "5/8" or "10^100+1"

    Returns:
        Exact Fraction representation

    Floats are rejected: a binary float is never an exact rational input.
    """
    if isinstance(x, Fraction):
        return x
    if isinstance(x, bool):
        raise ValueError(f"Cannot convert {type(x)} to Fraction")
    if isinstance(x, int):
        return Fraction(x)
    if isinstance(x, str):
        try:
            value = sympify(x.replace('^', '**'), rational=True)
        except Exception as e:
            raise ValueError(f"Could not parse expression: {x}. Error: {str(e)}")
        return to_fraction(value)
    if isinstance(x, Rational):
        return Fraction(int(x.p), int(x.q))
    raise ValueError(f"Cannot convert {type(x)} to Fraction")


def zero_extend(v: Sequence[Fraction], length: int) -> List[Fraction]:
    if length < len(v):
        raise ValueError(f"Cannot shrink vector of length {len(v)} to {length}")
    return list(v) + [Fraction(0)] * (length - len(v))


def add(a: Sequence[Fraction], b: Sequence[Fraction]) -> List[Fraction]:
    """Component-wise sum, zero-extending the shorter operand."""
    n = max(len(a), len(b))
    return [x + y for x, y in zip(zero_extend(a, n), zero_extend(b, n))]


def subtract(a: Sequence[Fraction], b: Sequence[Fraction]) -> List[Fraction]:
    """Component-wise difference a - b, zero-extending the shorter operand."""
    n = max(len(a), len(b))
    return [x - y for x, y in zip(zero_extend(a, n), zero_extend(b, n))]


def scale(factor, v: Sequence[Fraction]) -> List[Fraction]:
    factor = to_fraction(factor)
    return [factor * x for x in v]


def constant(value) -> List[Fraction]:
    return [to_fraction(value)]


def factor_for_variable(index: int, factor=1) -> List[Fraction]:
    """Unit vector for registry index `index`, scaled by `factor`."""
    if index < 1:
        raise ValueError(f"Invalid variable index {index}; index 0 is the constant slot")
    result = [Fraction(0)] * (index + 1)
    result[index] = to_fraction(factor)
    return result


def evaluate(v: Sequence[Fraction], values: Sequence[Fraction]) -> Fraction:
    """Value of sum_{i>=1} v[i] * values[i]; the constant slot is ignored.

    `values` is indexed by registry index, so values[0] is never read.
    """
    total = Fraction(0)
    for i in range(1, len(v)):
        if v[i] != 0:
            total += v[i] * values[i]
    return total
