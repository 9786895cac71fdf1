from fractions import Fraction

import pytest
from sympy import Rational

from rational_vectors import (
    add, constant, evaluate, factor_for_variable, scale, subtract, to_fraction,
    zero_extend
)


# ── to_fraction ──────────────────────────────────────────────────────────

class TestToFraction:
    def test_fraction_passthrough(self):
        value = Fraction(5, 8)
        assert to_fraction(value) is value

    def test_int(self):
        assert to_fraction(7) == Fraction(7)

    @pytest.mark.parametrize(
        "raw,expected",
        [
            ("5/8", Fraction(5, 8)),
            ("-3", Fraction(-3)),
            ("0.5", Fraction(1, 2)),
            ("10^100+1", Fraction(10**100 + 1)),
            ("(2**3)/3", Fraction(8, 3)),
        ],
    )
    def test_strings_are_exact(self, raw, expected):
        assert to_fraction(raw) == expected

    def test_sympy_rational(self):
        assert to_fraction(Rational(3, 4)) == Fraction(3, 4)

    @pytest.mark.parametrize("bad", [0.5, True, None, "pi", "x + 1", "1 +", [1]])
    def test_rejects_inexact_or_non_numeric(self, bad):
        with pytest.raises(ValueError):
            to_fraction(bad)


# ── vector operations ────────────────────────────────────────────────────

def test_constant_and_unit_vectors():
    assert constant(3) == [Fraction(3)]
    assert factor_for_variable(3) == [0, 0, 0, 1]
    assert factor_for_variable(2, "1/2") == [0, 0, Fraction(1, 2)]
    with pytest.raises(ValueError):
        factor_for_variable(0)


def test_add_and_subtract_zero_extend_shorter_operand():
    assert add([1], [0, 2]) == [1, 2]
    assert add([0, 0, 5], [1]) == [1, 0, 5]
    assert subtract([1, 2], [3]) == [-2, 2]
    assert subtract([3], [0, 0, 4]) == [3, 0, -4]


def test_scale_is_exact():
    assert scale(2, [1, 3]) == [2, 6]
    assert scale("1/3", [3, 1]) == [1, Fraction(1, 3)]


def test_zero_extend():
    assert zero_extend([1], 3) == [1, 0, 0]
    with pytest.raises(ValueError):
        zero_extend([1, 2, 3], 2)


def test_evaluate_ignores_constant_slot():
    assert evaluate([7, 2, 3], [None, 1, 2]) == 8
    assert evaluate([7], [None]) == 0
