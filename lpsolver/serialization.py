"""
JSON documents for problems and solutions.

Two problem shapes are accepted:

- named form:
    {"variables": [{"name": "x", "free": false}, ...],
     "constraints": [{"terms": {"x": 1, "y": 2}, "free": 0, "sign": "<=", "rhs": 4}, ...],
     "objective": {"terms": {"x": 3}, "free": 0, "sense": "max"}}
- dense form (variables x1..xn):
    {"c": [...], "A": [[...], ...], "b": [...], "senses": ["<=", ...],
     "maximize": true, "free": [false, ...]}
"""

import json
from typing import Dict, Optional

from .errors import InvalidProblemError
from .problem import Constraint, LinearExpression, Objective, Problem, Variable
from .solution import Solution


def _expression(doc: dict, variables: Dict[str, Variable], where: str) -> LinearExpression:
    raw = doc.get("terms") or {}
    if not isinstance(raw, dict):
        raise InvalidProblemError(f"{where} terms must be an object mapping names to coefficients")
    terms = {}
    for name, coeff in raw.items():
        if name not in variables:
            raise InvalidProblemError(f"{where} uses undeclared variable {name!r}")
        terms[variables[name]] = float(coeff)
    return LinearExpression(terms, float(doc.get("free", 0.0)))


def _sense_to_maximize(sense: str) -> bool:
    if sense not in ("max", "min"):
        raise InvalidProblemError(f"objective sense must be 'max' or 'min' (got {sense!r})")
    return sense == "max"


def problem_from_dict(cfg: dict, maximize: Optional[bool] = None) -> Problem:
    """Build a Problem from either JSON shape. ``maximize`` overrides the document."""
    if not isinstance(cfg, dict):
        raise InvalidProblemError("Problem document must be a JSON object")
    try:
        if "c" in cfg:
            if maximize is None:
                maximize = bool(cfg.get("maximize", True))
            return Problem.from_matrix(
                c=cfg["c"],
                A=cfg.get("A", []),
                b=cfg.get("b", []),
                senses=cfg.get("senses", []),
                maximize=maximize,
                free=cfg.get("free"),
                names=cfg.get("names"),
            )

        variables: Dict[str, Variable] = {}
        for item in cfg["variables"]:
            if isinstance(item, str):
                item = {"name": item}
            v = Variable(item["name"], bool(item.get("free", False)))
            if v.name in variables:
                raise InvalidProblemError(f"Duplicate variable name {v.name!r}")
            variables[v.name] = v

        constraints = []
        for i, con in enumerate(cfg.get("constraints", [])):
            expr = _expression(con, variables, f"Constraint {i+1}")
            constraints.append(Constraint(expr, con["sign"], float(con.get("rhs", 0.0))))

        obj = cfg["objective"]
        if maximize is None:
            maximize = _sense_to_maximize(obj.get("sense", "max"))
        objective = Objective(_expression(obj, variables, "Objective"), maximize)
        return Problem(list(variables.values()), constraints, objective)
    except InvalidProblemError:
        raise
    except KeyError as e:
        raise InvalidProblemError(f"Missing field {e.args[0]!r}") from e
    except (AttributeError, TypeError, ValueError) as e:
        raise InvalidProblemError(f"Invalid problem document: {e}") from e


def problem_to_dict(problem: Problem) -> dict:
    def expr(e: LinearExpression) -> dict:
        return {"terms": {v.name: coeff for v, coeff in e.terms.items()}, "free": e.free}

    return {
        "variables": [{"name": v.name, "free": v.free} for v in problem.variables],
        "constraints": [dict(expr(con.expression), sign=con.sign, rhs=con.rhs)
                        for con in problem.constraints],
        "objective": dict(expr(problem.objective.expression),
                          sense="max" if problem.objective.maximize else "min"),
    }


def load_problem(path: str, maximize: Optional[bool] = None) -> Problem:
    with open(path, "r") as f:
        try:
            cfg = json.load(f)
        except json.JSONDecodeError as e:
            raise InvalidProblemError(f"Invalid JSON in {path}: {e}") from e
    return problem_from_dict(cfg, maximize=maximize)


def solution_to_dict(solution: Solution) -> dict:
    return {
        "status": solution.status,
        "optimal_value": solution.optimal_value,
        "values": solution.by_name() if solution.values is not None else None,
        "iterations": solution.iterations,
        "phase_one": bool(solution.details.get("phase_one", False)),
    }
