from dataclasses import dataclass, field
from typing import Dict, Optional

from .problem import Variable

OPTIMAL = "optimal"
INFEASIBLE = "infeasible"
UNBOUNDED = "unbounded"
ITERATION_LIMIT = "iteration_limit"

STATUSES = (OPTIMAL, INFEASIBLE, UNBOUNDED, ITERATION_LIMIT)


@dataclass
class Solution:
    status: str  # optimal | infeasible | unbounded | iteration_limit
    optimal_value: Optional[float] = None
    values: Optional[Dict[Variable, float]] = None  # every problem variable, optimal only
    iterations: int = 0
    details: Dict[str, object] = field(default_factory=dict)

    @property
    def is_optimal(self) -> bool:
        return self.status == OPTIMAL

    def by_name(self) -> Dict[str, float]:
        if self.values is None:
            return {}
        return {v.name: x for v, x in self.values.items()}

    def __getitem__(self, v: Variable) -> float:
        if self.values is None:
            raise KeyError(f"No values for a {self.status} solution")
        return self.values[v]
