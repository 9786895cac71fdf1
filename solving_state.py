"""
Problem description handed to the LP solver.

Key Components:
1. Constraint: a coefficient vector in canonical form plus an equality flag
2. SolvingState: variable registry, constraints and per-variable bounds
3. ProblemBuilder: expression construction, constraint normalization and a
   push/pop checkpoint stack that re-submits the full state on every check

Canonical form: the user comparison L <= R (or L = R) is stored as D = L - R
with the constant slot negated, i.e. sum_{i>=1} D[i] * x_i <= D[0] (or =).
"""

from copy import deepcopy
from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from lp_solver import LPSolver
from rational_vectors import constant, factor_for_variable, subtract, to_fraction

Bounds = Tuple[Optional[Fraction], Optional[Fraction]]


class Constraint:
    """Row `sum_{i>=1} data[i] * x_i <= data[0]`, or `=` when `equality` is set."""

    def __init__(self, data: List[Fraction], equality: bool = False):
        self.data = data
        self.equality = equality

    def __eq__(self, other):
        if not isinstance(other, Constraint):
            return NotImplemented
        return self.data == other.data and self.equality == other.equality

    def __repr__(self):
        return f"Constraint({[str(x) for x in self.data]}, equality={self.equality})"


class SolvingState:
    """Complete, self-contained description of one feasibility query."""

    def __init__(self):
        # Index 0 is the sentinel for the constant slot.
        self.variable_names: List[str] = [""]
        self.constraints: List[Constraint] = []
        # Registry index -> (lower, upper); None means 0 below / unbounded above.
        self.bounds: Dict[int, Bounds] = {}
        self._index: Dict[str, int] = {}

    def register_or_lookup(self, name: str) -> int:
        if not name:
            raise ValueError("Variable name must be non-empty")
        index = self._index.get(name)
        if index is None:
            index = len(self.variable_names)
            self.variable_names.append(name)
            self._index[name] = index
        return index

    def index_of(self, name: str) -> Optional[int]:
        return self._index.get(name)

    @property
    def num_vars(self) -> int:
        return len(self.variable_names) - 1

    def lower_bound(self, index: int) -> Fraction:
        lo, _ = self.bounds.get(index, (None, None))
        return to_fraction(lo) if lo is not None else Fraction(0)

    def upper_bound(self, index: int) -> Optional[Fraction]:
        _, hi = self.bounds.get(index, (None, None))
        return to_fraction(hi) if hi is not None else None

    def validate(self):
        """Raise ValueError if the state could not have come from the registry and normalizer."""
        if not self.variable_names or self.variable_names[0] != "":
            raise ValueError("variable_names[0] must be the empty sentinel name")
        seen = set()
        for i, name in enumerate(self.variable_names[1:], start=1):
            if not name:
                raise ValueError(f"Variable at index {i} has an empty name")
            if name in seen:
                raise ValueError(f"Duplicate variable name '{name}' at index {i}")
            seen.add(name)

        width = len(self.variable_names)
        for k, constraint in enumerate(self.constraints):
            if len(constraint.data) == 0:
                raise ValueError(f"Constraint {k+1} has an empty coefficient vector")
            if len(constraint.data) > width:
                raise ValueError(
                    f"Constraint {k+1} references variable index {len(constraint.data)-1}, "
                    f"but only {width-1} variables are registered")
            for x in constraint.data:
                to_fraction(x)

        for index, bound in self.bounds.items():
            if not isinstance(index, int) or isinstance(index, bool) or not 1 <= index < width:
                raise ValueError(f"Bounds given for unknown variable index {index!r}")
            lo, hi = bound
            if lo is not None:
                to_fraction(lo)
            if hi is not None:
                to_fraction(hi)


class ProblemBuilder:
    """Builds a SolvingState from linear expressions.

    Incremental use keeps the logical constraint list here and re-submits a
    fresh copy of the whole state on every check; the solver keeps nothing.
    """

    def __init__(self):
        self.solving_state = SolvingState()
        self._checkpoints: List[Tuple[int, Dict[int, Bounds]]] = []

    def constant(self, value) -> List[Fraction]:
        return constant(value)

    def variable(self, name: str) -> List[Fraction]:
        return factor_for_variable(self.solving_state.register_or_lookup(name), 1)

    def _as_vector(self, expr) -> List[Fraction]:
        if isinstance(expr, list):
            return expr
        return constant(expr)

    def _add_constraint(self, lhs, rhs, equality: bool):
        data = subtract(self._as_vector(lhs), self._as_vector(rhs))
        data[0] = -data[0]
        self.solving_state.constraints.append(Constraint(data, equality))

    def add_le_constraint(self, lhs, rhs):
        """Adds the constraint lhs <= rhs."""
        self._add_constraint(lhs, rhs, False)

    def add_ge_constraint(self, lhs, rhs):
        """Adds the constraint lhs >= rhs."""
        self._add_constraint(rhs, lhs, False)

    def add_eq_constraint(self, lhs, rhs):
        """Adds the constraint lhs = rhs."""
        self._add_constraint(lhs, rhs, True)

    def set_bounds(self, name: str, lower=None, upper=None):
        """Set the bounds of `name`; None keeps the default (0 below, unbounded above)."""
        index = self.solving_state.register_or_lookup(name)
        self.solving_state.bounds[index] = (
            to_fraction(lower) if lower is not None else None,
            to_fraction(upper) if upper is not None else None,
        )

    def push(self):
        self._checkpoints.append((len(self.solving_state.constraints), dict(self.solving_state.bounds)))

    def pop(self):
        if not self._checkpoints:
            raise IndexError("pop() without matching push()")
        num_constraints, bounds = self._checkpoints.pop()
        del self.solving_state.constraints[num_constraints:]
        self.solving_state.bounds = bounds

    def state(self) -> SolvingState:
        return deepcopy(self.solving_state)

    def check(self, solver=None):
        if solver is None:
            solver = LPSolver()
        return solver.check(self.state())
