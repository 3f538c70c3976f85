"""Tests for the two-phase driver, the encoder/decoder and the public solve().

Covers:
1. Basic solving (maximization, minimization, free terms)
2. Phase I handling (equalities, lower bounds, the feasible-origin shortcut)
3. Edge cases (infeasible, unbounded, iteration cap)
4. Consistency between decoded values and the tableau's own objective value
"""

import random

import pytest

from lpsolver import (
    INFEASIBLE,
    ITERATION_LIMIT,
    OPTIMAL,
    UNBOUNDED,
    Problem,
    ProblemBuilder,
    SolverOptions,
    solve,
)
from lpsolver.config import EPS
from lpsolver.solver import (
    FEASIBLE,
    decode,
    encode,
    find_feasible_basis,
    restore_objective,
    simplex_two_phase,
)


def textbook_problem():
    return Problem.from_matrix(
        c=[3, 1, 2],
        A=[[1, 1, 3], [2, 2, 5], [4, 1, 2]],
        b=[30, 24, 36],
        senses=["<=", "<=", "<="],
    )


def equality_problem():
    """maximize 3x + 2y  subject to  2x + y = 18,  2x + 3y <= 42.  Optimum x=3, y=12, z=33."""
    return Problem.from_matrix(c=[3, 2], A=[[2, 1], [2, 3]], b=[18, 42], senses=["=", "<="])


def assert_feasible(problem, solution, tol=1e-7):
    for con in problem.constraints:
        assert con.is_satisfied(solution.values, tol), con
    for v in problem.variables:
        if not v.free:
            assert solution[v] >= -tol


def test_textbook_instance():
    problem = textbook_problem()
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == pytest.approx(28)
    assert res.details["phase_one"] is False
    assert_feasible(problem, res)


def test_infeasible_upper_bound_below_zero():
    lp = ProblemBuilder()
    x = lp.variable("x")
    lp.add_constraint(x.le(-1))
    lp.maximize(x)
    res = solve(lp.build())
    assert res.status == INFEASIBLE
    assert res.optimal_value is None
    assert res.values is None


def test_unbounded():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y")
    lp.add_constraint((y - x).le(3))
    lp.maximize(x)
    assert solve(lp.build()).status == UNBOUNDED


def test_unbounded_without_constraints():
    lp = ProblemBuilder()
    x = lp.variable("x")
    lp.maximize(x)
    assert solve(lp.build()).status == UNBOUNDED


def test_equality_constraint():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y")
    lp.add_constraint((x + y).eq(5))
    lp.maximize(x + y)
    problem = lp.build()
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == pytest.approx(5)
    assert res.details["phase_one"] is True
    assert_feasible(problem, res)


def test_equality_with_inequality():
    problem = equality_problem()
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == pytest.approx(33)
    assert res.by_name() == pytest.approx({"x1": 3, "x2": 12})


def test_free_variable_minimized():
    lp = ProblemBuilder()
    y = lp.variable("y", free=True)
    lp.add_constraint(y.le(10))
    lp.add_constraint((-y).le(10))
    lp.minimize(y)
    res = solve(lp.build())
    assert res.status == OPTIMAL
    assert res.optimal_value == pytest.approx(-10)
    assert res[y] == pytest.approx(-10)


def test_free_variable_with_ge_constraint():
    lp = ProblemBuilder()
    y = lp.variable("y", free=True)
    lp.add_constraint(y.ge(-10))
    lp.add_constraint(y.le(10))
    lp.minimize(2 * y + 1)
    res = solve(lp.build())
    assert res.optimal_value == pytest.approx(-19)


def test_free_variable_without_bound_is_unbounded():
    lp = ProblemBuilder()
    y = lp.variable("y", free=True)
    lp.add_constraint(y.le(10))
    lp.minimize(y)
    assert solve(lp.build()).status == UNBOUNDED


def test_minimize_with_ge_constraints():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y")
    lp.add_constraint((x + y).ge(4))
    lp.add_constraint(x.ge(1))
    lp.minimize(2 * x + 3 * y)
    problem = lp.build()
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == pytest.approx(8)
    assert res[x] == pytest.approx(4)
    assert res[y] == pytest.approx(0, abs=1e-9)
    assert_feasible(problem, res)


def test_objective_free_term_is_reported():
    lp = ProblemBuilder()
    x = lp.variable("x")
    lp.add_constraint(x.ge(2))
    lp.minimize(x + 5)
    res = solve(lp.build())
    assert res.optimal_value == pytest.approx(7)


def test_constraint_free_term_moves_to_rhs():
    lp = ProblemBuilder()
    x = lp.variable("x")
    # x + 3 <= 5  ->  x <= 2
    lp.add_constraint((x + 3).le(5))
    lp.maximize(x)
    res = solve(lp.build())
    assert res.optimal_value == pytest.approx(2)


def test_infeasible_equalities():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y")
    lp.add_constraint((x + y).eq(1))
    lp.add_constraint((x + y).eq(2))
    lp.maximize(x)
    assert solve(lp.build()).status == INFEASIBLE


def test_negative_costs_without_constraints_stay_at_origin():
    problem = Problem.from_matrix(c=[-1, -2], A=[], b=[], senses=[])
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == 0
    assert res.by_name() == {"x1": 0.0, "x2": 0.0}


def test_empty_problem():
    problem = Problem.from_matrix(c=[], A=[], b=[], senses=[])
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.optimal_value == 0
    assert res.values == {}


@pytest.mark.parametrize("make_problem", [textbook_problem, equality_problem])
def test_forced_phase_one_gives_same_result(make_problem):
    problem = make_problem()
    plain = solve(problem)
    forced = solve(problem, SolverOptions(force_phase_one=True))
    assert forced.status == plain.status == OPTIMAL
    assert forced.details["phase_one"] is True
    assert forced.optimal_value == pytest.approx(plain.optimal_value)
    assert forced.by_name() == pytest.approx(plain.by_name())


def test_feasible_origin_skips_auxiliary_tableau():
    enc = encode(textbook_problem())
    tab = enc.tableau.clone()
    status, iterations, used = find_feasible_basis(tab)
    assert (status, iterations, used) == (FEASIBLE, 0, False)
    assert tab.pos_b == enc.tableau.pos_b
    assert tab.A == enc.tableau.A


def test_forced_bootstrap_on_feasible_origin_keeps_system():
    enc = encode(textbook_problem())
    tab = enc.tableau.clone()
    status, iterations, used = find_feasible_basis(tab, force=True)
    assert (status, iterations, used) == (FEASIBLE, 0, True)
    assert tab.pos_n == enc.tableau.pos_n
    assert tab.pos_b == enc.tableau.pos_b
    assert tab.b[:3] == enc.tableau.b[:3]
    assert [row[:3] for row in tab.A[:3]] == [row[:3] for row in enc.tableau.A[:3]]


def test_bootstrap_produces_feasible_basis():
    enc = encode(equality_problem())
    tab = enc.tableau.clone()
    assert min(tab.b[:tab.m]) < 0
    status, iterations, used = find_feasible_basis(tab)
    assert status == FEASIBLE
    assert used
    assert iterations >= 1
    tab.check_invariants()
    for _, row in tab.basic():
        assert tab.b[row] >= -EPS


def test_bootstrap_leaves_tableau_untouched_when_infeasible():
    lp = ProblemBuilder()
    x = lp.variable("x")
    lp.add_constraint(x.le(-1))
    lp.maximize(x)
    enc = encode(lp.build())
    tab = enc.tableau.clone()
    status, _, used = find_feasible_basis(tab)
    assert status == INFEASIBLE
    assert used
    assert tab.b == enc.tableau.b
    assert tab.pos_b == enc.tableau.pos_b


def test_bootstrap_drives_degenerate_helper_out_of_basis():
    # x >= 1 and x <= 1 - 1e-10: phase I ends with the helper basic at a value within EPS
    lp = ProblemBuilder()
    x = lp.variable("x")
    lp.add_constraint(x.ge(1))
    lp.add_constraint(x.le(1 - 1e-10))
    lp.maximize(x)
    problem = lp.build()

    enc = encode(problem)
    tab = enc.tableau.clone()
    status, iterations, used = find_feasible_basis(tab)
    assert status == FEASIBLE
    assert used
    # helper pivot in, one optimizer pivot, helper pivot out
    assert iterations == 3
    tab.check_invariants()
    # x and the first slack are basic, the second slack is the only column
    assert tab.is_basic(0) and tab.is_basic(1)
    assert tab.pos_n[2] == 0
    for _, row in tab.basic():
        assert tab.b[row] >= -EPS

    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.details["phase_one_iterations"] == 3
    assert res.optimal_value == pytest.approx(1)
    assert res.optimal_value == pytest.approx(res.details["tableau_value"])


def test_restore_objective_on_untouched_basis_is_identity():
    enc = encode(textbook_problem())
    tab = enc.tableau.clone()
    restore_objective(tab, enc.tableau)
    assert tab.c == enc.tableau.c
    assert tab.v == 0.0


def test_encode_layout():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y", free=True)
    z = lp.variable("z")
    lp.add_constraint((x + 2 * y).le(4))
    lp.add_constraint((y - z).ge(1))
    lp.add_constraint((x + z).eq(3))
    lp.minimize(x - y + 7)
    enc = encode(lp.build())
    tab = enc.tableau

    assert enc.columns == {x: (0, None), y: (1, 2), z: (3, None)}
    assert enc.direction == -1.0
    assert (tab.n, tab.m) == (4, 4)
    assert [row[:4] for row in tab.A[:4]] == [
        [1.0, 2.0, -2.0, 0.0],
        [0.0, -1.0, 1.0, 1.0],
        [1.0, 0.0, 0.0, 1.0],
        [-1.0, 0.0, 0.0, -1.0],
    ]
    assert tab.b[:4] == [4.0, -1.0, 3.0, -3.0]
    assert tab.c[:4] == [-1.0, 1.0, -1.0, 0.0]
    assert tab.v == 0.0


def test_decode_recombines_split_columns():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y", free=True)
    lp.minimize(x + 3 * y - 1)
    enc = encode(lp.build())
    value, values = decode(enc, [2.0, 1.0, 4.0])
    assert values == {x: 2.0, y: -3.0}
    assert value == pytest.approx(2 - 9 - 1)


@pytest.mark.parametrize("make_problem", [textbook_problem, equality_problem])
def test_decoded_value_matches_tableau_value(make_problem):
    res = solve(make_problem())
    assert res.optimal_value == pytest.approx(res.details["tableau_value"], rel=1e-6)


def test_decoded_value_matches_tableau_value_when_minimizing():
    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y", free=True)
    lp.add_constraint((x + y).ge(-4))
    lp.add_constraint((x - y).le(6))
    lp.add_constraint(x.le(3))
    lp.minimize(2 * x + y - 2.5)
    problem = lp.build()
    res = solve(problem)
    assert res.status == OPTIMAL
    assert_feasible(problem, res)
    assert res.optimal_value == pytest.approx(res.details["tableau_value"], rel=1e-6)
    enc = encode(problem)
    assert res.optimal_value == pytest.approx(problem.objective.expression.evaluate(res.values))
    assert enc.direction == -1.0


def test_iteration_limit_is_reported():
    res = solve(textbook_problem(), SolverOptions(max_iterations=0))
    assert res.status == ITERATION_LIMIT
    assert res.values is None


def test_iteration_limit_in_phase_one():
    res = solve(equality_problem(), SolverOptions(max_iterations=0))
    assert res.status == ITERATION_LIMIT
    assert res.details["phase_one"] is True


def test_solve_does_not_mutate_encoded_tableau():
    enc = encode(equality_problem())
    snapshot = enc.tableau.clone()
    status, work, _ = simplex_two_phase(enc.tableau, SolverOptions())
    assert status == OPTIMAL
    assert work is not enc.tableau
    assert enc.tableau.A == snapshot.A
    assert enc.tableau.b == snapshot.b
    assert enc.tableau.c == snapshot.c


def test_trace_logs_tableaux(caplog):
    caplog.set_level("DEBUG", logger="lpsolver")
    solve(equality_problem(), SolverOptions(trace=True))
    assert "state: n = " in caplog.text
    assert "Solve finished: optimal" in caplog.text


def random_bounded_problem(rng, n, m):
    """Positive "<=" rows bound every variable; a ">=" row cuts off the origin."""
    lp = ProblemBuilder()
    xs = [lp.variable(f"x{j + 1}") for j in range(n)]
    for _ in range(m):
        row = sum(rng.randint(1, 9) * x for x in xs)
        lp.add_constraint(row.le(rng.randint(10, 50)))
    lp.add_constraint(sum(xs).ge(1))
    objective = sum(rng.randint(-5, 5) * x for x in xs) + rng.randint(-3, 3)
    if rng.random() < 0.5:
        lp.maximize(objective)
    else:
        lp.minimize(objective)
    return lp.build()


@pytest.mark.parametrize("seed", range(25))
def test_decoded_value_matches_tableau_value_on_random_problems(seed):
    rng = random.Random(seed)
    problem = random_bounded_problem(rng, rng.randint(1, 4), rng.randint(1, 4))
    res = solve(problem)
    assert res.status == OPTIMAL
    assert res.details["phase_one"] is True
    assert_feasible(problem, res)
    assert res.optimal_value == pytest.approx(res.details["tableau_value"], rel=1e-6, abs=1e-9)

    forced = solve(problem, SolverOptions(force_phase_one=True))
    assert forced.optimal_value == pytest.approx(res.optimal_value, rel=1e-6, abs=1e-9)
