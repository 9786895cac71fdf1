"""
Exact Fraction Feasibility Checker using a Bounded-Variable Two-Phase Simplex Method

This implementation handles:
- Exact arithmetic using fractions (no floating-point rounding errors)
- Equality and inequality constraints in canonical form (see solving_state.py)
- Lower and upper bounds on variables, kept out of the constraint matrix
- Two-phase simplex method with artificial variables
- Bland's rule for entering and leaving variables (no cycling, reproducible vertices)
- Option to convert upper bounds to <= inequality constraints (CP_UB_as_LE)
- Option to shift lower bounds away with x = x' + L (CP_LB_treatment)

Key Components:
1. LPSolver: stateless entry point, check(state) -> (verdict, model)
2. SimplexProblem class: one standardized problem per check call
   - Presolve: bound conflicts, lower bound shift, upper bounds as rows
   - create_phase1_problem: slack and artificial columns, initial basis
   - simplex_kernel: core bounded-variable simplex iteration
   - create_phase2_problem: drives artificials out of the basis, drops them
   - solve: manages the two-phase process and model extraction
   - _validate_solution: exact check of the model against the input
   - print_problem: displays the problem formulation

Phase 2 maximizes the sum of all variables that occur in some constraint. The
verdict only promises a feasible point; the objective makes the witness the
same vertex on every run. When Phase 2 meets an unbounded ray it stops and
reports the current vertex, which is already feasible.
"""

from fractions import Fraction
from typing import Dict, List, Optional, Tuple

from rational_vectors import to_fraction, zero_extend

FEASIBLE = 'feasible'
INFEASIBLE = 'infeasible'


class SimplexProblem:
    """Standardized bounded-variable LP built from one SolvingState."""

    def __init__(self, state, Print_Debug=0, CP_UB_as_LE=0, CP_LB_treatment=2):
        """Copy the problem out of `state` into exact working data.

        Args:
            state: SolvingState (already validated)
            Print_Debug: Debug level (0=none, 1=basic, 2=detailed, 3=verbose)
            CP_UB_as_LE: Control parameter (0/1)
                        0: keep upper bounds as bounds
                        1: convert upper bounds to <= constraints
            CP_LB_treatment: Control parameter (0/2)
                        0: treat lower bounds as bounds
                        2: transform x = L + x' (default)
        """
        self.Print_Debug = Print_Debug
        self.CP_UB_as_LE = CP_UB_as_LE
        self.CP_LB_treatment = CP_LB_treatment

        self.variable_names = list(state.variable_names)
        self.num_vars = len(self.variable_names) - 1
        width = len(self.variable_names)

        # Column j of A belongs to registry index j + 1.
        self.A: List[List[Fraction]] = []
        self.b: List[Fraction] = []
        self.rel: List[str] = []
        for constraint in state.constraints:
            data = zero_extend([to_fraction(x) for x in constraint.data], width)
            self.A.append(data[1:])
            self.b.append(data[0])
            self.rel.append('=' if constraint.equality else '<=')
        self.num_constraints = len(self.A)

        self.lower_bounds = [state.lower_bound(j + 1) for j in range(self.num_vars)]
        self.upper_bounds = [state.upper_bound(j + 1) for j in range(self.num_vars)]
        self.shift = [Fraction(0)] * self.num_vars

        self.original_data = {
            'A': [row.copy() for row in self.A],
            'b': self.b.copy(),
            'rel': self.rel.copy(),
            'lower': self.lower_bounds.copy(),
            'upper': self.upper_bounds.copy(),
        }

        # Objective: sum of the variables mentioned by some constraint.
        self.c = [
            Fraction(1) if any(row[j] != 0 for row in self.A) else Fraction(0)
            for j in range(self.num_vars)
        ]

        # Working tableau, filled by create_phase1_problem
        self.tableau: List[List[Fraction]] = []
        self.basis: List[int] = []
        self.values: List[Fraction] = []
        self.col_lower: List[Fraction] = []
        self.col_upper: List[Optional[Fraction]] = []
        self.var_names: List[str] = []
        self.var_types: List[str] = []

        if self.Print_Debug >= 1:
            self.print_problem()

    def Presolve(self):
        """Check bound conflicts and apply the configured bound transformations.

        Returns 'infeasible' or 'continue'.
        """
        if self.Print_Debug >= 2:
            print("\n=== Running Presolve ===")

        # 1. Conflicting bounds
        for j in range(self.num_vars):
            hi = self.upper_bounds[j]
            if hi is not None and self.lower_bounds[j] > hi:
                if self.Print_Debug >= 1:
                    print(f"Problem is infeasible - variable {self.variable_names[j+1]} has "
                          f"lower bound {self.lower_bounds[j]} > upper bound {hi}")
                return 'infeasible'

        # 2. Transform lower bounds (x = x' + L)
        if self.CP_LB_treatment == 2:
            for j in range(self.num_vars):
                lo = self.lower_bounds[j]
                if lo == 0:
                    continue
                for i in range(self.num_constraints):
                    if self.A[i][j] != 0:
                        self.b[i] -= self.A[i][j] * lo
                if self.upper_bounds[j] is not None:
                    self.upper_bounds[j] -= lo
                self.shift[j] = lo
                self.lower_bounds[j] = Fraction(0)
                if self.Print_Debug >= 2:
                    print(f"  {self.variable_names[j+1]} = {self.variable_names[j+1]}' + {lo}")

        # 3. Convert upper bounds to constraints
        if self.CP_UB_as_LE == 1:
            for j in range(self.num_vars):
                hi = self.upper_bounds[j]
                if hi is None:
                    continue
                row = [Fraction(0)] * self.num_vars
                row[j] = Fraction(1)
                self.A.append(row)
                self.b.append(hi)
                self.rel.append('<=')
                self.upper_bounds[j] = None
                if self.Print_Debug >= 2:
                    print(f"  Upper bound {self.variable_names[j+1]} <= {hi} added as constraint")
            self.num_constraints = len(self.A)

        return 'continue'

    def create_phase1_problem(self):
        """Set up the Phase 1 tableau with slack and artificial variables.

        Structural variables start non-basic at their lower bound. A row whose
        slack can absorb the residual at that point keeps the slack basic;
        every other row gets an artificial column with coefficient +1 or -1
        so that the artificial starts at |residual|.

        Returns:
            phase1_c: Phase 1 objective coefficients (1 on artificials)
        """
        n = self.num_vars
        num_slack = sum(1 for r in self.rel if r == '<=')

        residuals = []
        needs_artificial = []
        for i in range(self.num_constraints):
            r = self.b[i]
            for j in range(n):
                if self.A[i][j] != 0:
                    r -= self.A[i][j] * self.lower_bounds[j]
            residuals.append(r)
            needs_artificial.append(self.rel[i] == '=' or r < 0)
        num_artificial = sum(needs_artificial)
        total_vars = n + num_slack + num_artificial

        self.var_names = self.variable_names[1:]
        self.var_types = ['decision'] * n
        for k in range(num_slack):
            self.var_names.append(f's_{k+1}')
            self.var_types.append('slack')
        for k in range(num_artificial):
            self.var_names.append(f'a_{k+1}')
            self.var_types.append('artificial')

        self.col_lower = self.lower_bounds + [Fraction(0)] * (num_slack + num_artificial)
        self.col_upper = self.upper_bounds + [None] * (num_slack + num_artificial)
        self.values = self.lower_bounds + [Fraction(0)] * (num_slack + num_artificial)

        self.tableau = []
        self.basis = []
        slack_idx = n
        artificial_idx = n + num_slack
        for i in range(self.num_constraints):
            row = self.A[i] + [Fraction(0)] * (total_vars - n)
            if self.rel[i] == '<=':
                row[slack_idx] = Fraction(1)
                if not needs_artificial[i]:
                    self.basis.append(slack_idx)
                    self.values[slack_idx] = residuals[i]
                slack_idx += 1
            if needs_artificial[i]:
                if residuals[i] < 0:
                    # Keep the basic column a unit vector.
                    row = [-x for x in row]
                row[artificial_idx] = Fraction(1)
                self.basis.append(artificial_idx)
                self.values[artificial_idx] = abs(residuals[i])
                artificial_idx += 1
            self.tableau.append(row)

        phase1_c = [Fraction(0)] * total_vars
        for j in range(n + num_slack, total_vars):
            phase1_c[j] = Fraction(1)

        if self.Print_Debug >= 2:
            print(f"Phase 1: {n} decision, {num_slack} slack, {num_artificial} artificial variables")
        return phase1_c

    def _reduced_costs(self, c):
        reduced = list(c)
        for i, basic in enumerate(self.basis):
            cb = c[basic]
            if cb == 0:
                continue
            row = self.tableau[i]
            for j in range(len(reduced)):
                if row[j] != 0:
                    reduced[j] -= cb * row[j]
        return reduced

    def _select_entering(self, reduced, sense):
        """Lowest-index non-basic column whose move improves the objective.

        Returns (column, direction) with direction +1 (increase from the
        lower bound) or -1 (decrease from the upper bound), or (None, 0).
        """
        in_basis = set(self.basis)
        for j, rc in enumerate(reduced):
            if j in in_basis or rc == 0:
                continue
            lo, hi = self.col_lower[j], self.col_upper[j]
            if hi is not None and hi == lo:
                continue
            wants_increase = rc > 0 if sense == 'max' else rc < 0
            if wants_increase and self.values[j] == lo:
                return j, 1
            if not wants_increase and hi is not None and self.values[j] == hi:
                return j, -1
        return None, 0

    def _ratio_test(self, entering, direction):
        """Bounded minimum-ratio test.

        Returns (row, step): row is None for a bound flip of the entering
        column itself; step is None if nothing limits the move.
        """
        best = None
        hi = self.col_upper[entering]
        if hi is not None:
            best = (hi - self.col_lower[entering], entering, None)

        for i, basic in enumerate(self.basis):
            a_ij = self.tableau[i][entering]
            if a_ij == 0:
                continue
            rate = -direction * a_ij
            if rate < 0:
                limit = (self.values[basic] - self.col_lower[basic]) / -rate
            elif self.col_upper[basic] is not None:
                limit = (self.col_upper[basic] - self.values[basic]) / rate
            else:
                continue
            candidate = (limit, basic, i)
            if best is None or candidate[:2] < best[:2]:
                best = candidate

        if best is None:
            return None, None
        return best[2], best[0]

    def _pivot(self, leaving_row, entering_col):
        pivot_val = self.tableau[leaving_row][entering_col]
        assert pivot_val != 0, "pivot on zero entry"
        pivot_row = [x / pivot_val for x in self.tableau[leaving_row]]
        self.tableau[leaving_row] = pivot_row
        for i in range(len(self.tableau)):
            if i != leaving_row:
                factor = self.tableau[i][entering_col]
                if factor != 0:
                    self.tableau[i] = [a - factor * p for a, p in zip(self.tableau[i], pivot_row)]

        leaving = self.basis[leaving_row]
        self.basis[leaving_row] = entering_col
        if self.var_types[leaving] == 'artificial':
            # An artificial that left the basis never comes back.
            self.col_upper[leaving] = Fraction(0)

    def simplex_kernel(self, c, sense, phase=1):
        """Core bounded-variable simplex iteration with exact Fractions.

        Args:
            c: Objective coefficients, one per tableau column
            sense: 'min' or 'max'
            phase: 1 or 2 (for debugging)

        Returns:
            'optimal' or 'unbounded'
        """
        iteration = 0
        while True:
            iteration += 1
            reduced = self._reduced_costs(c)

            if self.Print_Debug >= 3:
                print(f"\n--- Iteration {iteration} (Phase {phase}) ---")
                print("Basis:", [self.var_names[k] for k in self.basis])
                print("Solution:", [str(self.values[k]) for k in self.basis])
                print("Reduced Costs:")
                for j in range(len(reduced)):
                    if j not in self.basis:
                        print(f"{self.var_names[j]}: {reduced[j]}")

            entering_col, direction = self._select_entering(reduced, sense)
            if entering_col is None:
                if self.Print_Debug >= 1:
                    print(f"Optimal after {iteration} iterations (Phase {phase})")
                return 'optimal'

            leaving_row, step = self._ratio_test(entering_col, direction)
            if step is None:
                if self.Print_Debug >= 1:
                    print(f"Unbounded along {self.var_names[entering_col]} after "
                          f"{iteration} iterations (Phase {phase})")
                return 'unbounded'

            delta = direction * step
            if delta != 0:
                self.values[entering_col] += delta
                for i, basic in enumerate(self.basis):
                    a_ij = self.tableau[i][entering_col]
                    if a_ij != 0:
                        self.values[basic] -= a_ij * delta

            if leaving_row is None:
                if self.Print_Debug >= 3:
                    print(f"Bound flip: {self.var_names[entering_col]} = {self.values[entering_col]}")
                continue

            if self.Print_Debug >= 3:
                print(f"Pivot: {self.var_names[entering_col]} enters, "
                      f"{self.var_names[self.basis[leaving_row]]} leaves (step {step})")
            self._pivot(leaving_row, entering_col)

    def create_phase2_problem(self):
        """Remove artificial variables after a successful Phase 1.

        Artificials still basic at zero are pivoted out on the lowest-index
        non-artificial column of their row; a row without one is linearly
        dependent on the others and is dropped.

        Returns:
            phase2_c: Phase 2 objective coefficients
        """
        dependent_rows = []
        for i in range(len(self.basis)):
            if self.var_types[self.basis[i]] != 'artificial':
                continue
            assert self.values[self.basis[i]] == 0
            in_basis = set(self.basis)
            entering_col = None
            for j, var_type in enumerate(self.var_types):
                if var_type != 'artificial' and j not in in_basis and self.tableau[i][j] != 0:
                    entering_col = j
                    break
            if entering_col is None:
                if self.Print_Debug >= 2:
                    print(f"Dropping dependent row {i+1} ({self.var_names[self.basis[i]]} stays zero)")
                dependent_rows.append(i)
            else:
                if self.Print_Debug >= 2:
                    print(f"Pivoting {self.var_names[self.basis[i]]} out for {self.var_names[entering_col]}")
                self._pivot(i, entering_col)

        for i in reversed(dependent_rows):
            del self.tableau[i]
            del self.basis[i]

        keep = sum(1 for t in self.var_types if t != 'artificial')
        self.tableau = [row[:keep] for row in self.tableau]
        self.values = self.values[:keep]
        self.col_lower = self.col_lower[:keep]
        self.col_upper = self.col_upper[:keep]
        self.var_names = self.var_names[:keep]
        self.var_types = self.var_types[:keep]

        return self.c + [Fraction(0)] * (keep - self.num_vars)

    def _validate_solution(self, solution):
        """Verify exactly that the solution satisfies the original constraints and bounds."""
        feasible = True
        for j in range(self.num_vars):
            val = solution[j]
            lo = self.original_data['lower'][j]
            hi = self.original_data['upper'][j]
            if val < lo or (hi is not None and val > hi):
                if self.Print_Debug >= 1:
                    print(f"Variable {self.variable_names[j+1]} = {val} violates bounds [{lo}, {hi}]")
                feasible = False

        for i, row in enumerate(self.original_data['A']):
            lhs = sum((a * v for a, v in zip(row, solution) if a != 0), Fraction(0))
            rhs = self.original_data['b'][i]
            rel = self.original_data['rel'][i]
            if (rel == '<=' and lhs > rhs) or (rel == '=' and lhs != rhs):
                if self.Print_Debug >= 1:
                    print(f"Constraint {i+1} violated: {lhs} {rel} {rhs}")
                feasible = False
        return feasible

    def solve(self) -> Tuple[str, Dict[str, Fraction]]:
        """Run presolve, Phase 1 and Phase 2; return (verdict, model)."""
        if self.Presolve() == 'infeasible':
            return INFEASIBLE, {}

        phase1_c = self.create_phase1_problem()
        if any(t == 'artificial' for t in self.var_types):
            if self.Print_Debug >= 1:
                print("\n=== Starting Phase 1 ===")
            self.simplex_kernel(phase1_c, sense='min', phase=1)
            infeasibility = sum(
                (self.values[j] for j, t in enumerate(self.var_types) if t == 'artificial'),
                Fraction(0))
            if infeasibility != 0:
                if self.Print_Debug >= 1:
                    print(f"Phase 1 optimum {infeasibility} > 0: problem is infeasible")
                return INFEASIBLE, {}
            if self.Print_Debug >= 1:
                print("=== Phase 1 Completed Successfully ===")

        phase2_c = self.create_phase2_problem()
        if self.Print_Debug >= 1:
            print("\n=== Starting Phase 2 ===")
        status = self.simplex_kernel(phase2_c, sense='max', phase=2)

        solution = [self.values[j] + self.shift[j] for j in range(self.num_vars)]
        assert self._validate_solution(solution), "simplex returned a point violating the input"

        model = {self.variable_names[j + 1]: solution[j] for j in range(self.num_vars)}
        if self.Print_Debug >= 1:
            print(f"\n=== Feasible Solution ({status}) ===")
            for name, val in model.items():
                print(f"{name} = {val}")
        return FEASIBLE, model

    def print_problem(self):
        """Print the problem formulation."""
        print("\n" + "=" * 60)
        print("LINEAR FEASIBILITY PROBLEM")
        print("=" * 60)
        print(f"Variables: {self.num_vars}, Constraints: {self.num_constraints}\n")

        print("Variable bounds:")
        for j in range(self.num_vars):
            hi = self.upper_bounds[j]
            print(f"  {self.lower_bounds[j]} <= {self.variable_names[j+1]} <= "
                  f"{hi if hi is not None else '+Inf'}")

        print("\nSubject to:")
        for i in range(self.num_constraints):
            constr_parts = []
            for j, a in enumerate(self.A[i]):
                if a != 0:
                    sign = " + " if a > 0 and constr_parts else ""
                    constr_parts.append(f"{sign}{a} {self.variable_names[j+1]}")
            print(f"{''.join(constr_parts) if constr_parts else '0'} {self.rel[i]} {self.b[i]}")
        print("=" * 60 + "\n")


class LPSolver:
    """Decides feasibility of a SolvingState and returns a witness.

    The solver holds configuration only; every check starts from scratch.
    """

    def __init__(self, Print_Debug=0, CP_UB_as_LE=0, CP_LB_treatment=2):
        if CP_UB_as_LE not in (0, 1):
            raise ValueError("CP_UB_as_LE must be 0 or 1")
        if CP_LB_treatment not in (0, 2):
            raise ValueError("CP_LB_treatment must be 0 or 2")
        self.Print_Debug = Print_Debug
        self.CP_UB_as_LE = CP_UB_as_LE
        self.CP_LB_treatment = CP_LB_treatment

    def check(self, state) -> Tuple[str, Dict[str, Fraction]]:
        """Return (FEASIBLE, model) or (INFEASIBLE, {}) for `state`.

        Raises ValueError if `state` is malformed.
        """
        state.validate()
        problem = SimplexProblem(
            state,
            Print_Debug=self.Print_Debug,
            CP_UB_as_LE=self.CP_UB_as_LE,
            CP_LB_treatment=self.CP_LB_treatment)
        return problem.solve()


if __name__ == "__main__":
    from rational_vectors import add
    from solving_state import ProblemBuilder

    # Example problem with numbers beyond any machine word
    builder = ProblemBuilder()
    x = builder.variable("x")
    y = builder.variable("y")
    builder.add_le_constraint(add(x, y), "10^100+1")
    builder.add_eq_constraint(x, add(y, builder.constant(1)))
    builder.set_bounds("y", lower="10^99")

    result, model = LPSolver(Print_Debug=3).check(builder.state())

    print(f"\nResult: {result}")
    for name, value in model.items():
        print(f"{name} = {value}")
