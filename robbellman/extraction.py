from __future__ import annotations

import dataclasses
import logging
from typing import List, Sequence, Tuple

import numpy as np

from .ambiguity import NATURE
from .errors import SolverError, SolverInfeasible, SolverUnbounded
from .lp import INFEASIBLE, UNBOUNDED, LPResult

logger = logging.getLogger(__name__)


@dataclasses.dataclass
class Solution:
    """
    Result of one s-rectangular Bellman update.

    objective: robust value max_d min_p sum_a d_a z_a^T p_a.
    policy: decision maker's randomized policy over actions.
    budgets: shadow prices of the budget constraints; one per (action, outcome)
        for L1, one per action for L-infinity.
    worst_case: nature's worst-case transition row for every action.
    """

    objective: float
    policy: np.ndarray
    budgets: np.ndarray
    worst_case: List[np.ndarray]

    def as_tuple(self) -> Tuple[float, np.ndarray, np.ndarray]:
        return self.objective, self.policy, self.budgets


def extract_solution(result: LPResult, counts: Sequence[int], budget_role: str) -> Solution:
    if not result.optimal:
        message = f"LP not solved to optimality (status={result.raw_status})"
        logger.warning(message)
        if result.status == INFEASIBLE:
            raise SolverInfeasible(message, status=result.raw_status)
        if result.status == UNBOUNDED:
            raise SolverUnbounded(message, status=result.raw_status)
        raise SolverError(message, status=result.raw_status)

    missing = [role for role in (budget_role, NATURE) if role not in result.duals]
    if result.objective is None or "d" not in result.primal or missing:
        raise SolverError(f"solver returned no values for {missing or ['d']}", status=result.raw_status)

    policy = np.atleast_1d(result.primal["d"]).astype(float)
    nature = result.duals[NATURE]
    worst_case = np.split(nature, np.cumsum(counts)[:-1])
    return Solution(
        objective=float(result.objective),
        policy=policy,
        budgets=result.duals[budget_role].copy(),
        worst_case=[row.copy() for row in worst_case],
    )
