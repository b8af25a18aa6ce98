from __future__ import annotations

import logging
from typing import List, Optional, Sequence

import numpy as np

from .ambiguity import AmbiguitySet, SRectL1Set, SRectLinfSet
from .extraction import Solution, extract_solution
from .validation import Rows, as_ragged, validate

logger = logging.getLogger(__name__)


def _normalized(pbar: Rows) -> List[np.ndarray]:
    # validation accepts sums within 1e-6 of one; the dual LP needs exact distributions
    return [row / row.sum() for row in as_ragged(pbar, "pbar")]


def _solve(
    ambiguity: AmbiguitySet,
    z: Rows,
    policy_eval: Optional[Sequence[float]],
    solver: Optional[str],
    solver_options: dict,
) -> Solution:
    lp = ambiguity.build_dual(z, policy_eval=policy_eval)
    result = lp.solve(solver=solver, **solver_options)
    solution = extract_solution(result, ambiguity.counts, ambiguity.budget_role)
    logger.debug("%s: objective=%.6g policy=%s", ambiguity.name, solution.objective, solution.policy)
    return solution


def solve_srect_l1(
    z: Rows,
    pbar: Rows,
    kappa: float,
    w: Optional[Rows] = None,
    policy_eval: Optional[Sequence[float]] = None,
    *,
    solver: Optional[str] = None,
    **solver_options,
) -> Solution:
    """
    Robust Bellman update for the s-rectangular L1 set
        sum_a ||p_a - pbar_a||_{1, w_a} <= kappa.

    When policy_eval is given the policy is pinned to it and the objective is that
    policy's robust value; otherwise the policy is optimized.
    `solver` and `solver_options` are forwarded to cvxpy's Problem.solve.
    """
    validate(z, pbar, w, kappa, policy_eval)
    ambiguity = SRectL1Set(_normalized(pbar), kappa, w)
    pinned = None
    if policy_eval is not None:
        pinned = np.asarray(policy_eval, dtype=float)
        pinned = pinned / pinned.sum()
    solution = _solve(ambiguity, z, pinned, solver, solver_options)
    if policy_eval is not None:
        solution.policy = np.array(policy_eval, dtype=float)
    return solution


def solve_srect_linf(
    z: Rows,
    pbar: Rows,
    kappa: float,
    w: Optional[Rows] = None,
    *,
    solver: Optional[str] = None,
    **solver_options,
) -> Solution:
    """
    Robust Bellman update for the s-rectangular L-infinity set
        sum_a max_s w[a][s] |p[a][s] - pbar[a][s]| <= kappa.

    Weights must be strictly positive; omitted weights are all ones. The policy is
    always optimized.
    """
    validate(z, pbar, w, kappa)
    ambiguity = SRectLinfSet(_normalized(pbar), kappa, w)
    return _solve(ambiguity, z, None, solver, solver_options)


def nominal_value(z: Rows, pbar: Rows, policy_eval: Optional[Sequence[float]] = None) -> float:
    """Non-robust value: best action's expected return, or the expectation under policy_eval."""
    validate(z, pbar, policy_eval=policy_eval)
    values = np.array([zr @ pr for zr, pr in zip(as_ragged(z, "z"), as_ragged(pbar, "pbar"))])
    if policy_eval is not None:
        return float(np.asarray(policy_eval, dtype=float) @ values)
    return float(values.max())
