"""Solver constants and run options."""

from dataclasses import dataclass
from typing import Optional

# Tolerance for every sign/zero test in the engine (pivot eligibility,
# optimality, feasibility). Part of the solver contract, not a knob.
EPS = 1e-9

DEFAULT_MAX_ITERATIONS = 100_000

# Relative tolerance used when comparing objective values (test packs, CLI checks)
VALUE_RTOL = 1e-6


@dataclass
class SolverOptions:
    # pivots allowed per optimizer run (phase 1 and phase 2 are counted separately)
    max_iterations: Optional[int] = DEFAULT_MAX_ITERATIONS
    # go through the auxiliary tableau even when the origin is already feasible
    force_phase_one: bool = False
    # dump the tableau after every pivot (DEBUG level)
    trace: bool = False
