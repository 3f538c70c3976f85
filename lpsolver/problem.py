from __future__ import annotations

"""
Linear programming problem model.

- Variables are non-negative unless created with ``free=True``.
- Expressions are immutable-by-convention mappings variable -> coefficient plus
  a free term; arithmetic always returns a new expression.
- Constraints read ``expression <sign> rhs`` with sign in {"<=", ">=", "="}.
- The objective is maximized unless ``maximize=False``.

Example:

    lp = ProblemBuilder()
    x = lp.variable("x")
    y = lp.variable("y", free=True)
    lp.add_constraint((x + y).le(2))
    lp.minimize(y - x)
    problem = lp.build()
"""

from dataclasses import dataclass, field
from typing import Dict, List, Optional, Sequence, Union

from .errors import InvalidProblemError

LE = "<="
GE = ">="
EQ = "="
SIGNS = (LE, GE, EQ)

Number = Union[int, float]


@dataclass(frozen=True)
class Variable:
    name: str
    free: bool = False

    def __post_init__(self):
        if not self.name:
            raise InvalidProblemError("Variable name must not be empty")
        if self.name.startswith("_"):
            raise InvalidProblemError(f"Variable names starting with underscore are reserved: {self.name!r}")

    def as_expression(self) -> "LinearExpression":
        return LinearExpression({self: 1.0})

    # algebra is delegated to LinearExpression
    def __add__(self, other):
        return self.as_expression() + other

    __radd__ = __add__

    def __sub__(self, other):
        return self.as_expression() - other

    def __rsub__(self, other):
        return -self.as_expression() + other

    def __mul__(self, k: Number):
        return self.as_expression() * k

    __rmul__ = __mul__

    def __neg__(self):
        return -self.as_expression()

    def __pos__(self):
        return self.as_expression()

    def le(self, other) -> "Constraint":
        return self.as_expression().le(other)

    def ge(self, other) -> "Constraint":
        return self.as_expression().ge(other)

    def eq(self, other) -> "Constraint":
        return self.as_expression().eq(other)


def _merge(a: Dict[Variable, float], b: Dict[Variable, float], k: float = 1.0) -> Dict[Variable, float]:
    out = dict(a)
    for v, coeff in b.items():
        out[v] = out.get(v, 0.0) + k * coeff
    return out


@dataclass
class LinearExpression:
    terms: Dict[Variable, float] = field(default_factory=dict)
    free: float = 0.0

    @staticmethod
    def of(x: Union["LinearExpression", Variable, Number]) -> "LinearExpression":
        if isinstance(x, LinearExpression):
            return x
        if isinstance(x, Variable):
            return x.as_expression()
        if isinstance(x, (int, float)):
            return LinearExpression({}, float(x))
        raise TypeError(f"Cannot use {type(x).__name__} in a linear expression")

    @property
    def variables(self):
        return self.terms.keys()

    def evaluate(self, values: Dict[Variable, float]) -> float:
        return self.free + sum(coeff * values.get(v, 0.0) for v, coeff in self.terms.items())

    def __add__(self, other):
        other = LinearExpression.of(other)
        return LinearExpression(_merge(self.terms, other.terms), self.free + other.free)

    __radd__ = __add__

    def __neg__(self):
        return LinearExpression({v: -coeff for v, coeff in self.terms.items()}, -self.free)

    def __pos__(self):
        return self

    def __sub__(self, other):
        other = LinearExpression.of(other)
        return LinearExpression(_merge(self.terms, other.terms, -1.0), self.free - other.free)

    def __rsub__(self, other):
        return -self + other

    def __mul__(self, k: Number):
        if not isinstance(k, (int, float)):
            return NotImplemented
        return LinearExpression({v: coeff * k for v, coeff in self.terms.items()}, self.free * k)

    __rmul__ = __mul__

    def _compare(self, other, sign: str) -> "Constraint":
        if isinstance(other, (int, float)):
            return Constraint(self, sign, float(other))
        return Constraint(self - other, sign, 0.0)

    def le(self, other) -> "Constraint":
        return self._compare(other, LE)

    def ge(self, other) -> "Constraint":
        return self._compare(other, GE)

    def eq(self, other) -> "Constraint":
        return self._compare(other, EQ)


@dataclass
class Constraint:
    expression: LinearExpression
    sign: str
    rhs: float = 0.0

    def __post_init__(self):
        self.expression = LinearExpression.of(self.expression)
        if self.sign not in SIGNS:
            raise InvalidProblemError(f"sign must be one of <=, >=, = (got {self.sign!r})")

    def is_satisfied(self, values: Dict[Variable, float], tol: float = 1e-7) -> bool:
        lhs = self.expression.evaluate(values)
        if self.sign == LE:
            return lhs <= self.rhs + tol
        if self.sign == GE:
            return lhs >= self.rhs - tol
        return abs(lhs - self.rhs) <= tol


@dataclass
class Objective:
    expression: LinearExpression
    maximize: bool = True

    def __post_init__(self):
        self.expression = LinearExpression.of(self.expression)


@dataclass
class Problem:
    variables: List[Variable]
    constraints: List[Constraint]
    objective: Objective

    def __post_init__(self):
        self.variables = list(self.variables)
        self.constraints = list(self.constraints)
        names = set()
        for v in self.variables:
            if v.name in names:
                raise InvalidProblemError(f"Duplicate variable name {v.name!r}")
            names.add(v.name)
        declared = set(self.variables)
        for i, con in enumerate(self.constraints):
            for v in con.expression.variables:
                if v not in declared:
                    raise InvalidProblemError(f"Constraint {i+1} uses undeclared variable {v.name!r}")
        for v in self.objective.expression.variables:
            if v not in declared:
                raise InvalidProblemError(f"Objective uses undeclared variable {v.name!r}")

    def variable(self, name: str) -> Variable:
        for v in self.variables:
            if v.name == name:
                return v
        raise KeyError(name)

    @classmethod
    def from_matrix(
        cls,
        c: Sequence[Number],
        A: Sequence[Sequence[Number]],
        b: Sequence[Number],
        senses: Sequence[str],
        maximize: bool = True,
        free: Optional[Sequence[bool]] = None,
        names: Optional[Sequence[str]] = None,
    ) -> "Problem":
        """Build a problem from the dense ``c, A, b, senses`` form.

        Variables are named x1..xn unless ``names`` is given; ``free`` marks
        sign-unrestricted columns.
        """
        n = len(c)
        if len(A) != len(b) or len(A) != len(senses):
            raise InvalidProblemError("A, b and senses must have the same number of rows")
        if free is None:
            free = [False] * n
        if names is None:
            names = [f"x{j+1}" for j in range(n)]
        if len(free) != n or len(names) != n:
            raise InvalidProblemError("free/names must have one entry per objective coefficient")
        variables = [Variable(names[j], bool(free[j])) for j in range(n)]
        constraints = []
        for i, row in enumerate(A):
            if len(row) != n:
                raise InvalidProblemError(f"Row {i+1} of A has {len(row)} entries, expected {n}")
            terms = {variables[j]: float(row[j]) for j in range(n) if row[j] != 0}
            constraints.append(Constraint(LinearExpression(terms), senses[i], float(b[i])))
        obj = LinearExpression({variables[j]: float(c[j]) for j in range(n) if c[j] != 0})
        return cls(variables, constraints, Objective(obj, maximize))


class ProblemBuilder:
    """Accumulates variables, constraints and the objective, then builds a Problem."""

    def __init__(self):
        self._variables: Dict[str, Variable] = {}
        self._constraints: List[Constraint] = []
        self._objective: Optional[Objective] = None

    @property
    def variables(self) -> List[Variable]:
        return list(self._variables.values())

    @property
    def constraints(self) -> List[Constraint]:
        return list(self._constraints)

    @property
    def objective(self) -> Optional[Objective]:
        return self._objective

    @objective.setter
    def objective(self, value: Objective):
        if value is None:
            raise InvalidProblemError("Objective must not be None")
        self._check_registered(value.expression)
        self._objective = value

    def _check_registered(self, expr: LinearExpression):
        for v in expr.variables:
            if self._variables.get(v.name) != v:
                raise InvalidProblemError(f"Unregistered variable {v.name!r}")

    def add_variable(self, v: Variable) -> Variable:
        if v.name in self._variables:
            raise InvalidProblemError(f"Variable with name {v.name!r} already added")
        self._variables[v.name] = v
        return v

    def variable(self, name: str, free: bool = False) -> Variable:
        return self.add_variable(Variable(name, free))

    def add_constraint(self, con: Constraint) -> Constraint:
        if con in self._constraints:
            raise InvalidProblemError("Constraint already added")
        self._check_registered(con.expression)
        self._constraints.append(con)
        return con

    def maximize(self, expr):
        self.objective = Objective(LinearExpression.of(expr), maximize=True)

    def minimize(self, expr):
        self.objective = Objective(LinearExpression.of(expr), maximize=False)

    def build(self) -> Problem:
        if self._objective is None:
            raise InvalidProblemError("Objective must be provided")
        return Problem(self.variables, self.constraints, self._objective)
