from __future__ import annotations

import dataclasses
import logging
from typing import Dict, List, Optional, Union

import cvxpy as cp
import numpy as np

from .errors import SolverError

logger = logging.getLogger(__name__)

OPTIMAL = "optimal"
INFEASIBLE = "infeasible"
UNBOUNDED = "unbounded"
ERROR = "error"

_STATUS_MAP = {
    cp.OPTIMAL: OPTIMAL,
    cp.INFEASIBLE: INFEASIBLE,
    cp.INFEASIBLE_INACCURATE: INFEASIBLE,
    cp.UNBOUNDED: UNBOUNDED,
    cp.UNBOUNDED_INACCURATE: UNBOUNDED,
}


def normalize_status(raw_status: Optional[str]) -> str:
    """Collapse a cvxpy status into optimal / infeasible / unbounded / error."""
    return _STATUS_MAP.get(raw_status, ERROR)


@dataclasses.dataclass
class LPResult:
    status: str
    raw_status: Optional[str]
    objective: Optional[float]
    primal: Dict[str, np.ndarray]
    duals: Dict[str, np.ndarray]

    @property
    def optimal(self) -> bool:
        return self.status == OPTIMAL


class LinearProgram:
    """
    Continuous LP assembled from cvxpy expressions.

    Constraints may carry a role tag; after solving, `LPResult.duals[role]` holds the
    concatenated shadow prices of every constraint registered under that role, in the
    order they were added. The underlying cvxpy problem only exists inside `solve`.

    Usage:
        lp = LinearProgram("example")
        x = lp.add_variable("x", 2, lb=0.0)
        lp.add_constraint(cp.sum(x) <= 1, role="cap")
        lp.set_objective(x[0] + 2 * x[1])
        result = lp.solve()
    """

    def __init__(self, name: str = "lp"):
        self.name = name
        self.variables: Dict[str, cp.Variable] = {}
        self.constraints: List[cp.Constraint] = []
        self.roles: Dict[str, List[cp.Constraint]] = {}
        self._objective: Optional[Union[cp.Maximize, cp.Minimize]] = None

    def add_variable(
        self, name: str, size: Optional[int] = None, lb: float = -np.inf, ub: float = np.inf
    ) -> cp.Variable:
        if name in self.variables:
            raise ValueError(f"variable {name!r} already defined")
        var = cp.Variable(size, name=name) if size is not None else cp.Variable(name=name)
        if np.isfinite(lb):
            self.constraints.append(var >= lb)
        if np.isfinite(ub):
            self.constraints.append(var <= ub)
        self.variables[name] = var
        return var

    def add_constraint(self, constraint: cp.Constraint, role: Optional[str] = None) -> cp.Constraint:
        self.constraints.append(constraint)
        if role is not None:
            self.roles.setdefault(role, []).append(constraint)
        return constraint

    def set_objective(self, expr: cp.Expression, maximize: bool = True) -> None:
        self._objective = cp.Maximize(expr) if maximize else cp.Minimize(expr)

    @property
    def num_variables(self) -> int:
        return int(sum(v.size for v in self.variables.values()))

    @property
    def num_constraints(self) -> int:
        return int(sum(c.size for c in self.constraints))

    def solve(self, solver: Optional[str] = None, **solver_options) -> LPResult:
        if self._objective is None:
            raise ValueError("objective not set")
        problem = cp.Problem(self._objective, self.constraints)
        logger.debug(
            "solving %s: %d variables, %d constraint rows, solver=%s",
            self.name,
            self.num_variables,
            self.num_constraints,
            solver or "default",
        )
        try:
            problem.solve(solver=solver, **solver_options)
        except cp.SolverError as exc:
            logger.warning("%s: solver %s failed: %s", self.name, solver or "default", exc)
            raise SolverError(f"LP solver failed on {self.name}: {exc}") from exc

        raw_status = problem.status
        status = normalize_status(raw_status)
        logger.debug("%s finished with status %s, objective %s", self.name, raw_status, problem.value)
        if status != OPTIMAL:
            return LPResult(status=status, raw_status=raw_status, objective=None, primal={}, duals={})

        primal = {
            name: np.asarray(var.value, dtype=float) for name, var in self.variables.items() if var.value is not None
        }
        duals = {}
        for role, constraints in self.roles.items():
            values = [c.dual_value for c in constraints]
            if any(v is None for v in values):
                continue
            duals[role] = np.concatenate([np.atleast_1d(np.asarray(v, dtype=float)).ravel() for v in values])
        return LPResult(
            status=status,
            raw_status=raw_status,
            objective=float(problem.value),
            primal=primal,
            duals=duals,
        )
