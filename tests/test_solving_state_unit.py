from fractions import Fraction

import pytest

from rational_vectors import add, constant, scale, subtract
from solving_state import Constraint, ProblemBuilder, SolvingState


# ── variable registry ────────────────────────────────────────────────────

class TestRegistry:
    def test_indices_are_dense_in_first_use_order(self):
        state = SolvingState()
        assert state.register_or_lookup("y") == 1
        assert state.register_or_lookup("x") == 2
        assert state.register_or_lookup("y") == 1
        assert state.variable_names == ["", "y", "x"]
        assert state.num_vars == 2
        assert state.index_of("x") == 2
        assert state.index_of("z") is None

    def test_empty_name_is_reserved_for_the_sentinel(self):
        with pytest.raises(ValueError):
            SolvingState().register_or_lookup("")

    def test_default_bounds(self):
        state = SolvingState()
        state.register_or_lookup("x")
        assert state.lower_bound(1) == 0
        assert state.upper_bound(1) is None


# ── constraint normalization ─────────────────────────────────────────────

class TestNormalizer:
    def test_le_constraint_canonical_form(self):
        b = ProblemBuilder()
        x = b.variable("x")
        y = b.variable("y")
        b.add_le_constraint(add(x, constant(2)), subtract(y, constant(1)))
        assert b.solving_state.constraints == [Constraint([-3, 1, -1], False)]

    def test_scalar_right_hand_side(self):
        b = ProblemBuilder()
        b.add_le_constraint(scale(2, b.variable("x")), 10)
        assert b.solving_state.constraints[0].data == [10, 2]
        assert b.solving_state.constraints[0].equality is False

    def test_ge_constraint_swaps_sides(self):
        b = ProblemBuilder()
        b.add_ge_constraint(b.variable("x"), 5)
        assert b.solving_state.constraints[0].data == [-5, -1]

    def test_eq_constraint(self):
        b = ProblemBuilder()
        x = b.variable("x")
        y = b.variable("y")
        b.add_eq_constraint(x, add(y, constant(10)))
        assert b.solving_state.constraints == [Constraint([10, 1, -1], True)]

    def test_expressions_built_before_a_new_variable_still_combine(self):
        b = ProblemBuilder()
        x = b.variable("x")
        early = add(scale(3, x), constant(1))
        z = b.variable("z")
        b.add_le_constraint(early, z)
        assert b.solving_state.constraints[0].data == [-1, 3, -1]

    def test_set_bounds_registers_and_converts(self):
        b = ProblemBuilder()
        b.set_bounds("x", lower="1/2", upper=3)
        state = b.solving_state
        assert state.variable_names == ["", "x"]
        assert state.lower_bound(1) == Fraction(1, 2)
        assert state.upper_bound(1) == 3


# ── validation ───────────────────────────────────────────────────────────

class TestValidate:
    def _state(self):
        state = SolvingState()
        state.register_or_lookup("x")
        return state

    def test_well_formed_state_passes(self):
        state = self._state()
        state.constraints.append(Constraint([Fraction(1), Fraction(1)]))
        state.bounds[1] = (None, Fraction(4))
        state.validate()

    def test_missing_sentinel(self):
        state = self._state()
        state.variable_names[0] = "c"
        with pytest.raises(ValueError):
            state.validate()

    def test_duplicate_names(self):
        state = self._state()
        state.variable_names.append("x")
        with pytest.raises(ValueError):
            state.validate()

    def test_constraint_beyond_registry(self):
        state = self._state()
        state.constraints.append(Constraint([Fraction(1), Fraction(0), Fraction(1)]))
        with pytest.raises(ValueError, match="references variable index 2"):
            state.validate()

    def test_empty_constraint_vector(self):
        state = self._state()
        state.constraints.append(Constraint([]))
        with pytest.raises(ValueError):
            state.validate()

    def test_float_coefficient(self):
        state = self._state()
        state.constraints.append(Constraint([Fraction(1), 0.5]))
        with pytest.raises(ValueError):
            state.validate()

    @pytest.mark.parametrize("index", [0, 2, -1, "x"])
    def test_bounds_for_unknown_index(self, index):
        state = self._state()
        state.bounds[index] = (None, None)
        with pytest.raises(ValueError):
            state.validate()


# ── push / pop and snapshots ─────────────────────────────────────────────

class TestCheckpoints:
    def test_pop_restores_constraints_and_bounds(self):
        b = ProblemBuilder()
        x = b.variable("x")
        b.add_le_constraint(x, 20)
        b.push()
        b.add_le_constraint(x, 5)
        b.set_bounds("x", lower=1)
        b.variable("y")
        b.pop()
        state = b.solving_state
        assert len(state.constraints) == 1
        assert state.bounds == {}
        # The registry is append-only.
        assert state.variable_names == ["", "x", "y"]

    def test_pop_without_push(self):
        with pytest.raises(IndexError):
            ProblemBuilder().pop()

    def test_state_is_an_independent_copy(self):
        b = ProblemBuilder()
        b.add_le_constraint(b.variable("x"), 3)
        snapshot = b.state()
        snapshot.constraints[0].data[0] = Fraction(99)
        snapshot.register_or_lookup("z")
        assert b.solving_state.constraints[0].data[0] == 3
        assert b.solving_state.variable_names == ["", "x"]
