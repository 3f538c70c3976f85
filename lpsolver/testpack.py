"""
Test packs: plain-text LP cases with their expected verdicts.

Case layout (whitespace separated after the first line):

    <expected>            "Unbounded", "No solution" or the optimal value
    n m
    a11 .. a1n b1         m rows, each read as  sum a_ij x_j <= b_i
    ...
    c1 .. cn              objective, maximized, all x_j >= 0

A pack is a directory of case files or a .zip archive of them.
"""

import logging
import os
import zipfile
from dataclasses import dataclass
from typing import Iterator, List, Tuple

from .config import VALUE_RTOL
from .errors import InvalidProblemError
from .problem import LE, Constraint, LinearExpression, Objective, Problem, Variable
from .solution import INFEASIBLE, OPTIMAL, UNBOUNDED, Solution

logger = logging.getLogger(__name__)


@dataclass
class TestCase:
    pack: str
    name: str
    text: str

    # not a pytest class
    __test__ = False

    def __str__(self):
        return f"Pack {self.pack}, case {self.name}"


def parse_case(text: str) -> Tuple[Problem, Solution]:
    first, _, rest = text.strip().partition("\n")
    first = first.strip()
    if first == "Unbounded":
        expected = Solution(status=UNBOUNDED)
    elif first == "No solution":
        expected = Solution(status=INFEASIBLE)
    else:
        try:
            expected = Solution(status=OPTIMAL, optimal_value=float(first))
        except ValueError as e:
            raise InvalidProblemError(f"Bad expected result line {first!r}") from e

    tokens = rest.split()
    pos = 0

    def take() -> float:
        nonlocal pos
        if pos >= len(tokens):
            raise InvalidProblemError("Unexpected end of test case")
        tok = tokens[pos]
        pos += 1
        try:
            return float(tok)
        except ValueError as e:
            raise InvalidProblemError(f"Bad number {tok!r}") from e

    n, m = int(take()), int(take())
    variables = [Variable(f"x{j}") for j in range(n)]

    def read_terms() -> LinearExpression:
        return LinearExpression({v: take() for v in variables})

    constraints = []
    for _ in range(m):
        terms = read_terms()
        constraints.append(Constraint(terms, LE, take()))
    objective = Objective(read_terms(), maximize=True)
    return Problem(variables, constraints, objective), expected


def matches(expected: Solution, actual: Solution, rtol: float = VALUE_RTOL) -> bool:
    if expected.status != actual.status:
        return False
    if expected.status != OPTIMAL:
        return True
    e, a = expected.optimal_value, actual.optimal_value
    return abs(e - a) / max(1.0, abs(e), abs(a)) < rtol


def discover(path: str) -> Iterator[TestCase]:
    """Yield every case of a pack directory or .zip archive, sorted by name."""
    if os.path.isdir(path):
        for name in sorted(os.listdir(path)):
            full = os.path.join(path, name)
            if os.path.isfile(full) and not name.startswith("."):
                with open(full, "r") as f:
                    yield TestCase(path, name, f.read())
    elif zipfile.is_zipfile(path):
        with zipfile.ZipFile(path) as zf:
            for info in sorted(zf.infolist(), key=lambda i: i.filename):
                if info.is_dir():
                    continue
                yield TestCase(path, os.path.basename(info.filename), zf.read(info).decode("utf-8"))
    else:
        raise InvalidProblemError(f"Not a test pack directory or zip archive: {path}")


def run_pack(path: str, solve_fn) -> List[Tuple[TestCase, bool, Solution]]:
    results = []
    for case in discover(path):
        problem, expected = parse_case(case.text)
        actual = solve_fn(problem)
        ok = matches(expected, actual)
        if not ok:
            logger.warning("%s: expected %s %s, got %s %s", case, expected.status,
                           expected.optimal_value, actual.status, actual.optimal_value)
        results.append((case, ok, actual))
    return results
