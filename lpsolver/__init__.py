from .config import EPS, SolverOptions
from .errors import InvalidProblemError, LPError, TableauError
from .problem import (
    EQ,
    GE,
    LE,
    Constraint,
    LinearExpression,
    Objective,
    Problem,
    ProblemBuilder,
    Variable,
)
from .solution import INFEASIBLE, ITERATION_LIMIT, OPTIMAL, UNBOUNDED, Solution
from .solver import solve
from .tableau import Tableau

__version__ = "0.1.0"
