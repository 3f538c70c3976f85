"""
Dense simplex tableau in slack form.

Slots 0..s-1 name every variable of the system. A slot is either non-basic
(``pos_n[slot]`` is its column) or basic (``pos_b[slot]`` is its row); the
other entry is -1. Initially slots 0..n-1 are the structural variables
(columns 0..n-1) and slots n..s-1 the slacks (rows 0..m-1).

Row ``r`` reads  x_basic(r) = b[r] - sum_j A[r][j] * x_nonbasic(j)
and the objective reads  z = v + sum_j c[j] * x_nonbasic(j),  maximized.
"""

import logging
from typing import Iterator, List, Optional, Tuple

from .config import EPS
from .errors import TableauError
from .printer import format_tableau
from .solution import ITERATION_LIMIT, OPTIMAL, UNBOUNDED

logger = logging.getLogger(__name__)


class Tableau:
    def __init__(self, n: int, m: int):
        self.n = n
        self.m = m
        s = n + m
        self.A: List[List[float]] = [[0.0] * s for _ in range(s)]
        self.b: List[float] = [0.0] * s  # by row
        self.c: List[float] = [0.0] * s  # by column
        self.v = 0.0
        self.x: List[float] = [0.0] * s  # by slot, filled on optimal termination
        self.pos_n: List[int] = [i if i < n else -1 for i in range(s)]
        self.pos_b: List[int] = [-1 if i < n else i - n for i in range(s)]
        self.iter = 0
        self.trace = False

    @property
    def s(self) -> int:
        return self.n + self.m

    def basic(self) -> Iterator[Tuple[int, int]]:
        """(slot, row) for basic slots in slot order."""
        for i in range(self.s):
            if self.pos_b[i] != -1:
                yield i, self.pos_b[i]

    def nonbasic(self) -> Iterator[Tuple[int, int]]:
        """(slot, column) for non-basic slots in slot order."""
        for i in range(self.s):
            if self.pos_n[i] != -1:
                yield i, self.pos_n[i]

    def is_basic(self, slot: int) -> bool:
        return self.pos_b[slot] != -1

    def copy_to(self, target: "Tableau"):
        if target.s < self.s:
            raise TableauError(f"Cannot copy a tableau with {self.s} slots into one with {target.s}")
        for i in range(self.s):
            row, trow = self.A[i], target.A[i]
            for j in range(self.s):
                trow[j] = row[j]
            target.b[i] = self.b[i]
            target.c[i] = self.c[i]
            target.pos_n[i] = self.pos_n[i]
            target.pos_b[i] = self.pos_b[i]
        target.v = self.v

    def clone(self) -> "Tableau":
        t = Tableau(self.n, self.m)
        self.copy_to(t)
        t.x = self.x[:]
        return t

    def check_invariants(self):
        nb = sum(1 for p in self.pos_n if p != -1)
        bs = sum(1 for p in self.pos_b if p != -1)
        for i in range(self.s):
            if (self.pos_n[i] == -1) == (self.pos_b[i] == -1):
                raise TableauError(f"Slot {i} must be exactly one of basic/non-basic")
        if nb != self.n or bs != self.m:
            raise TableauError(f"Expected {self.n} non-basic and {self.m} basic slots, got {nb} and {bs}")
        if sorted(p for p in self.pos_n if p != -1) != list(range(self.n)):
            raise TableauError("Non-basic columns are not numbered 0..n-1")
        if sorted(p for p in self.pos_b if p != -1) != list(range(self.m)):
            raise TableauError("Basic rows are not numbered 0..m-1")

    def pivot(self, leaving: int, entering: int):
        """Exchange basic slot ``leaving`` with non-basic slot ``entering``."""
        pl = self.pos_b[leaving]
        pe = self.pos_n[entering]
        if pl == -1:
            raise TableauError(f"Leaving slot {leaving} is not basic")
        if pe == -1:
            raise TableauError(f"Entering slot {entering} is not non-basic")
        A, b, c = self.A, self.b, self.c
        t = A[pl][pe]
        if abs(t) <= EPS:
            raise TableauError(f"Zero pivot encountered at row {pl}, column {pe}")

        cols = [pj for j, pj in self.nonbasic() if j != entering]

        # normalize the pivot row
        prow = A[pl]
        b[pl] /= t
        for pj in cols:
            prow[pj] /= t
        prow[pe] = 1 / t

        # eliminate the entering column from the other rows
        for i, pi in self.basic():
            if i == leaving:
                continue
            row = A[pi]
            k = row[pe]
            b[pi] -= k * b[pl]
            for pj in cols:
                row[pj] -= k * prow[pj]
            row[pe] = -k * prow[pe]

        # objective row
        ce = c[pe]
        for pj in cols:
            c[pj] -= ce * prow[pj]
        self.v += ce * b[pl]
        c[pe] = -ce * prow[pe]

        self.pos_n[entering] = -1
        self.pos_n[leaving] = pe
        self.pos_b[leaving] = -1
        self.pos_b[entering] = pl

    def choose_entering(self) -> Optional[int]:
        # first non-basic slot (by slot index) with a positive reduced cost
        for j, pj in self.nonbasic():
            if self.c[pj] > EPS:
                return j
        return None

    def choose_leaving(self, entering: int) -> Optional[int]:
        # minimum ratio; the first minimizer found keeps ties
        pe = self.pos_n[entering]
        best = None
        best_ratio = 0.0
        for i, pi in self.basic():
            a = self.A[pi][pe]
            if a <= EPS:
                continue
            ratio = self.b[pi] / a
            if best is None or best_ratio > ratio:
                best = i
                best_ratio = ratio
        return best

    def extract_solution(self) -> List[float]:
        for i in range(self.s):
            self.x[i] = self.b[self.pos_b[i]] if self.pos_b[i] != -1 else 0.0
        return self.x

    def optimize(self, max_iterations: Optional[int] = None) -> Tuple[str, int]:
        """Run the simplex loop from the current (feasible) basis.

        Returns the terminal status (optimal, unbounded or iteration_limit) and
        the number of pivots performed. ``x`` is populated on optimal only.
        """
        iterations = 0
        while True:
            entering = self.choose_entering()
            if entering is None:
                self.extract_solution()
                return OPTIMAL, iterations
            leaving = self.choose_leaving(entering)
            if leaving is None:
                logger.debug("No leaving row for entering slot %d: unbounded", entering)
                return UNBOUNDED, iterations
            if max_iterations is not None and iterations >= max_iterations:
                logger.warning("Iteration limit (%d) reached before convergence", max_iterations)
                return ITERATION_LIMIT, iterations
            iterations += 1
            self.iter += 1
            logger.debug("Iteration %d: slot %d enters, slot %d leaves", self.iter, entering, leaving)
            self.pivot(leaving, entering)
            if self.trace and logger.isEnabledFor(logging.DEBUG):
                logger.debug("\n%s", format_tableau(self))
