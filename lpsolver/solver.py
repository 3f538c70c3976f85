"""
Two-phase simplex driver for general linear programs.

- Problems are rewritten to slack form: non-negative columns, "<=" rows, maximize.
  Free variables become a pair of columns (x+ and x-), ">=" rows are negated,
  "=" rows become one "<=" row and one negated row, minimization flips the
  objective sign.
- Phase I runs only when the origin violates some row, using one helper column.
- Phase II optimizes the real objective from the basis phase I left behind.
- Reported values are recomputed from the original objective expression.
"""

import logging
from dataclasses import dataclass
from typing import Dict, List, Optional, Tuple

from .config import EPS, SolverOptions
from .errors import TableauError
from .problem import EQ, GE, LE, Problem, Variable
from .solution import INFEASIBLE, ITERATION_LIMIT, OPTIMAL, UNBOUNDED, Solution
from .tableau import Tableau

logger = logging.getLogger(__name__)

FEASIBLE = "feasible"

# slot of the phase I helper variable inside the auxiliary tableau
HELPER = 0


@dataclass
class Encoding:
    problem: Problem
    tableau: Tableau
    # variable -> (column of x+, column of x- or None)
    columns: Dict[Variable, Tuple[int, Optional[int]]]
    # 1.0 when the problem maximizes, -1.0 when it minimizes
    direction: float


def encode(problem: Problem) -> Encoding:
    columns: Dict[Variable, Tuple[int, Optional[int]]] = {}
    n = 0
    for v in problem.variables:
        if v.free:
            columns[v] = (n, n + 1)
            n += 2
        else:
            columns[v] = (n, None)
            n += 1

    # (terms, factor, rhs): factor -1 stores the row negated
    rows = []
    for con in problem.constraints:
        rhs = con.rhs - con.expression.free
        if con.sign in (LE, EQ):
            rows.append((con.expression.terms, 1.0, rhs))
        if con.sign in (GE, EQ):
            rows.append((con.expression.terms, -1.0, rhs))

    tab = Tableau(n, len(rows))
    for r, (terms, factor, rhs) in enumerate(rows):
        row = tab.A[r]
        for v, coeff in terms.items():
            plus, minus = columns[v]
            row[plus] += factor * coeff
            if minus is not None:
                row[minus] -= factor * coeff
        tab.b[r] = factor * rhs

    direction = 1.0 if problem.objective.maximize else -1.0
    for v, coeff in problem.objective.expression.terms.items():
        plus, minus = columns[v]
        tab.c[plus] += direction * coeff
        if minus is not None:
            tab.c[minus] -= direction * coeff

    logger.debug("Encoded %d variables into %d columns and %d rows",
                 len(problem.variables), n, len(rows))
    return Encoding(problem, tab, columns, direction)


def decode(encoding: Encoding, x: List[float]) -> Tuple[float, Dict[Variable, float]]:
    """Map slot values back to problem variables and evaluate the objective."""
    values: Dict[Variable, float] = {}
    for v in encoding.problem.variables:
        plus, minus = encoding.columns[v]
        values[v] = x[plus] - (x[minus] if minus is not None else 0.0)
    return encoding.problem.objective.expression.evaluate(values), values


def tableau_value(encoding: Encoding, tableau: Tableau) -> float:
    """Objective value as tracked by the tableau itself (``v``), in problem terms."""
    return encoding.direction * tableau.v + encoding.problem.objective.expression.free


def find_feasible_basis(tableau: Tableau, force: bool = False,
                        max_iterations: Optional[int] = None) -> Tuple[str, int, bool]:
    """Phase I. Turn ``tableau`` into an equivalent one whose basic solution is feasible.

    Returns (status, pivots, used_auxiliary) where status is feasible,
    infeasible or iteration_limit. On infeasible/iteration_limit the tableau is
    left untouched. With ``force`` the auxiliary tableau is built even when the
    origin is already feasible.
    """
    # basic slot with the smallest b
    k = None
    for i, row in tableau.basic():
        if k is None or tableau.b[tableau.pos_b[k]] > tableau.b[row]:
            k = i
    origin_infeasible = k is not None and tableau.b[tableau.pos_b[k]] < -EPS
    if not origin_infeasible and not force:
        return FEASIBLE, 0, False

    n = tableau.n
    aux = Tableau(n + 1, tableau.m)
    aux.trace = tableau.trace
    tableau.copy_to(aux)
    for i in range(aux.s):
        aux.pos_n[i] = -1
        aux.pos_b[i] = -1
    # helper takes slot 0 and the spare column n; original slot i becomes i + 1
    aux.pos_n[HELPER] = n
    for i in range(tableau.s):
        aux.pos_n[i + 1] = tableau.pos_n[i]
        aux.pos_b[i + 1] = tableau.pos_b[i]
    for _, row in aux.basic():
        aux.A[row][n] = -1.0
    for j in range(aux.s):
        aux.c[j] = 0.0
    aux.c[n] = -1.0
    aux.v = 0.0

    iterations = 0
    if origin_infeasible:
        logger.debug("Phase I: row of slot %d has b = %g", k, tableau.b[tableau.pos_b[k]])
        aux.pivot(k + 1, HELPER)
        iterations += 1
    status, it = aux.optimize(max_iterations)
    iterations += it
    if status == ITERATION_LIMIT:
        return ITERATION_LIMIT, iterations, True
    if status == UNBOUNDED:
        raise TableauError("Auxiliary problem cannot be unbounded")
    if abs(aux.x[HELPER]) > EPS:
        logger.debug("Phase I: helper stays at %g, no feasible point", aux.x[HELPER])
        return INFEASIBLE, iterations, True

    if aux.is_basic(HELPER):
        # degenerate: helper is basic at zero, push it out before dropping it
        p0 = aux.pos_b[HELPER]
        entering = None
        for j, pj in aux.nonbasic():
            if abs(aux.A[p0][pj]) > EPS:
                entering = j
                break
        if entering is None:
            raise TableauError("Helper variable cannot leave the basis")
        aux.pivot(HELPER, entering)
        iterations += 1

    for i in range(tableau.s):
        tableau.pos_n[i] = -1
        tableau.pos_b[i] = aux.pos_b[i + 1]
        tableau.b[i] = aux.b[i]
    col = 0
    for i in range(tableau.s):
        pi = aux.pos_n[i + 1]
        if pi == -1:
            continue
        tableau.pos_n[i] = col
        for r in range(tableau.s):
            tableau.A[r][col] = aux.A[r][pi]
        tableau.c[col] = aux.c[pi]
        col += 1
    tableau.check_invariants()
    return FEASIBLE, iterations, True


def restore_objective(tableau: Tableau, original: Tableau):
    """Rewrite the original cost row in terms of the current basis of ``tableau``.

    Must run exactly once, after phase I and before phase II.
    """
    for j in range(tableau.n):
        tableau.c[j] = 0.0
    for p, col in original.nonbasic():
        cost = original.c[col]
        if tableau.pos_n[p] != -1:
            tableau.c[tableau.pos_n[p]] += cost
            continue
        row = tableau.A[tableau.pos_b[p]]
        tableau.v += cost * tableau.b[tableau.pos_b[p]]
        for _, pk in tableau.nonbasic():
            tableau.c[pk] -= cost * row[pk]


def simplex_two_phase(original: Tableau, options: SolverOptions) -> Tuple[str, Tableau, Dict[str, object]]:
    """Solve the slack-form tableau. ``original`` is not modified."""
    work = original.clone()
    work.trace = options.trace
    status, iters1, used = find_feasible_basis(work, force=options.force_phase_one,
                                               max_iterations=options.max_iterations)
    details: Dict[str, object] = {"phase_one": used, "phase_one_iterations": iters1}
    if status != FEASIBLE:
        details["phase_two_iterations"] = 0
        return status, work, details

    restore_objective(work, original)
    status, iters2 = work.optimize(options.max_iterations)
    details["phase_two_iterations"] = iters2
    return status, work, details


def solve(problem: Problem, options: Optional[SolverOptions] = None) -> Solution:
    options = options or SolverOptions()
    encoding = encode(problem)
    status, tab, details = simplex_two_phase(encoding.tableau, options)
    iterations = details["phase_one_iterations"] + details["phase_two_iterations"]

    if status != OPTIMAL:
        logger.info("Solve finished: %s after %d pivots", status, iterations)
        return Solution(status=status, iterations=iterations, details=details)

    value, values = decode(encoding, tab.x)
    details["tableau_value"] = tableau_value(encoding, tab)
    logger.info("Solve finished: optimal value %g after %d pivots", value, iterations)
    return Solution(status=OPTIMAL, optimal_value=value, values=values,
                    iterations=iterations, details=details)
