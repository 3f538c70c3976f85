import io
import json
import logging

import streamlit as st

from lpsolver import SolverOptions, solve
from lpsolver.cli import fmt_out
from lpsolver.errors import InvalidProblemError
from lpsolver.problem import EQ, GE, LE
from lpsolver.serialization import problem_from_dict, solution_to_dict

st.set_page_config(page_title="LP Solver", layout="wide")
st.title("Two-phase Simplex: Solve & Visualize")

# Sidebar options
with st.sidebar:
    st.header("Options")
    is_min = st.checkbox("Minimize (default: Maximize)", value=False)
    force_phase_one = st.checkbox("Force phase I", value=False)
    show_trace = st.checkbox("Show pivot trace", value=True)
    show_graph = st.checkbox("Show graph (2 variables only)", value=True)
    max_iterations = st.number_input("Pivot cap per phase", min_value=1, value=10_000, step=1000)

# Default JSON template
default_json = {
    "c": [3, 1, 2],
    "A": [[1, 1, 3], [2, 2, 5], [4, 1, 2]],
    "b": [30, 24, 36],
    "senses": ["<=", "<=", "<="],
    "maximize": True,
    "free": [False, False, False],
}

st.subheader("Model JSON")
json_text = st.text_area("Edit LP JSON here", json.dumps(default_json, indent=2), height=300)

col_run, col_reset = st.columns([1, 1])
run = col_run.button("Solve")
if col_reset.button("Reset to template"):
    st.rerun()


def plot_2d(problem, res):
    import matplotlib.pyplot as plt
    import numpy as np

    if len(problem.variables) != 2:
        return None
    vx, vy = problem.variables

    # each constraint as a1 x + a2 y <sign> rhs
    rows = []
    for con in problem.constraints:
        e = con.expression
        rows.append((e.terms.get(vx, 0.0), e.terms.get(vy, 0.0), con.rhs - e.free, con.sign))

    def feasible_mask(X, Y, tol=1e-9):
        mask = np.ones_like(X, dtype=bool)
        for a1, a2, rhs, sign in rows:
            lhs = a1 * X + a2 * Y
            if sign == LE:
                mask &= lhs <= rhs + tol
            elif sign == GE:
                mask &= lhs >= rhs - tol
            else:
                mask &= np.abs(lhs - rhs) <= tol
        if not vx.free:
            mask &= X >= -tol
        if not vy.free:
            mask &= Y >= -tol
        return mask

    # candidate corners: pairwise intersections of constraint lines and sign bounds
    lines = [(a1, a2, rhs) for a1, a2, rhs, _ in rows]
    if not vx.free:
        lines.append((1.0, 0.0, 0.0))
    if not vy.free:
        lines.append((0.0, 1.0, 0.0))
    corners = []
    for i in range(len(lines)):
        for j in range(i + 1, len(lines)):
            a1, a2, bi = lines[i]
            c1, c2, bj = lines[j]
            det = a1 * c2 - a2 * c1
            if abs(det) < 1e-12:
                continue
            x = (bi * c2 - a2 * bj) / det
            y = (a1 * bj - bi * c1) / det
            if feasible_mask(np.array([x]), np.array([y]), tol=1e-7)[0]:
                if not any(abs(x - x2) < 1e-7 and abs(y - y2) < 1e-7 for x2, y2 in corners):
                    corners.append((x, y))

    pts = corners[:] or [(0.0, 0.0)]
    if res is not None and res.is_optimal:
        pts.append((res[vx], res[vy]))
    xs = [p[0] for p in pts]
    ys = [p[1] for p in pts]
    span = max(1.0, max(xs) - min(xs), max(ys) - min(ys))
    xmin, xmax = min(xs) - 0.2 * span, max(xs) + 0.2 * span
    ymin, ymax = min(ys) - 0.2 * span, max(ys) + 0.2 * span

    fig, ax = plt.subplots(figsize=(6, 6))
    grid_x = np.linspace(xmin, xmax, 400)

    color_cycle = plt.rcParams.get('axes.prop_cycle', None)
    colors = color_cycle.by_key()['color'] if color_cycle else [f'C{i}' for i in range(10)]
    for i, (a1, a2, rhs, sign) in enumerate(rows):
        c = colors[i % len(colors)]
        label = f"Constraint {i+1}: {fmt_out(a1)}{vx.name} + {fmt_out(a2)}{vy.name} {sign} {fmt_out(rhs)}"
        if abs(a2) < 1e-12:
            if abs(a1) < 1e-12:
                continue
            ax.axvline(rhs / a1, color=c, alpha=0.7, label=label)
        else:
            ax.plot(grid_x, (rhs - a1 * grid_x) / a2, color=c, alpha=0.7, label=label)

    X, Y = np.meshgrid(np.linspace(xmin, xmax, 200), np.linspace(ymin, ymax, 200))
    if not any(sign == EQ for _, _, _, sign in rows):
        ax.contourf(X, Y, feasible_mask(X, Y), levels=[0.5, 1.5], colors=['#e8f7ff'], alpha=0.5)

    if corners:
        ax.scatter([p[0] for p in corners], [p[1] for p in corners], s=25, color='#444444',
                   alpha=0.9, label='BFS')

    # Iso-profit line through the optimum
    if res is not None and res.is_optimal:
        obj = problem.objective.expression
        c1, c2 = obj.terms.get(vx, 0.0), obj.terms.get(vy, 0.0)
        xopt, yopt = res[vx], res[vy]
        level = c1 * xopt + c2 * yopt
        if abs(c2) > 1e-12:
            ax.plot(grid_x, (level - c1 * grid_x) / c2, 'r--', label='iso-profit (through optimum)')
        elif abs(c1) > 1e-12:
            ax.axvline(level / c1, color='red', linestyle='--', label='iso-profit')
        ax.plot([xopt], [yopt], 'ro', label=f"optimal ({xopt:.3g}, {yopt:.3g})")
        ax.annotate(f"Z* = {res.optimal_value:.4g}", (xopt, yopt), textcoords="offset points", xytext=(8, 8))

    ax.set_xlim(xmin, xmax)
    ax.set_ylim(ymin, ymax)
    ax.set_xlabel(vx.name)
    ax.set_ylabel(vy.name)
    ax.set_title('Constraints, Feasible Region, Iso-profit')
    ax.legend(loc='best', fontsize=8)
    ax.grid(True, alpha=0.3)
    fig.tight_layout()
    return fig


def solve_with_trace(problem, options):
    """Solve while collecting the solver's DEBUG log into a string."""
    buf = io.StringIO()
    handler = logging.StreamHandler(buf)
    handler.setFormatter(logging.Formatter("%(message)s"))
    log = logging.getLogger("lpsolver")
    old_level = log.level
    log.addHandler(handler)
    log.setLevel(logging.DEBUG if options.trace else logging.INFO)
    try:
        res = solve(problem, options)
    finally:
        log.removeHandler(handler)
        log.setLevel(old_level)
    return res, buf.getvalue()


if run:
    try:
        cfg = json.loads(json_text)
    except json.JSONDecodeError as e:
        st.error(f"Invalid JSON: {e}")
    else:
        try:
            problem = problem_from_dict(cfg, maximize=False if is_min else None)
        except InvalidProblemError as e:
            st.error(f"Invalid LP fields: {e}")
        else:
            options = SolverOptions(max_iterations=int(max_iterations),
                                    force_phase_one=force_phase_one, trace=show_trace)
            res, text_out = solve_with_trace(problem, options)

            if show_trace:
                st.subheader("Iterations / Tableaux")
                st.code(text_out or "(no pivots)")
            st.subheader("Result")
            st.json(solution_to_dict(res))

            st.subheader("Graph")
            if show_graph and len(problem.variables) == 2:
                fig = plot_2d(problem, res)
                if fig is not None:
                    st.pyplot(fig)
                else:
                    st.info("No feasible region to plot or numerical issue.")
            else:
                st.info("Graph available only for 2 variables.")
