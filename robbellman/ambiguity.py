from __future__ import annotations

import abc
import logging
from typing import List, Optional, Sequence

import cvxpy as cp
import numpy as np

from .errors import InvalidWeights
from .lp import LinearProgram
from .validation import as_ragged, is_probability_dist

logger = logging.getLogger(__name__)

# Role tags for the constraints of the dual LP.
POLICY = "policy"
NATURE = "nature"
PSI = "psi"
THETA = "theta"


class AmbiguitySet(abc.ABC):
    """
    s-rectangular ambiguity set around nominal transitions at a single state.

    Nature may pick any transition rows p_a (one distribution per action) whose
    total weighted deviation sum_a ||p_a - pbar_a||_{w_a} stays within kappa.
    """

    supports_policy_eval = False

    def __init__(self, pbar: Sequence[Sequence[float]], kappa: float, weights: Optional[Sequence[Sequence[float]]] = None):
        self.pbar = as_ragged(pbar, "pbar")
        self.kappa = float(kappa)
        if weights is None:
            self.weights = [np.ones_like(row) for row in self.pbar]
        else:
            self.weights = as_ragged(weights, "w")

    @property
    @abc.abstractmethod
    def name(self) -> str:
        ...

    @property
    @abc.abstractmethod
    def budget_role(self) -> str:
        """Role tag of the constraints whose duals are nature's budget allocation."""

    @abc.abstractmethod
    def action_norm(self, deviation: np.ndarray, weights: np.ndarray) -> float:
        """Weighted deviation of a single action's transition row."""

    @abc.abstractmethod
    def _add_budget_constraints(
        self, lp: LinearProgram, yp: cp.Variable, yn: cp.Variable, lam: cp.Variable, owner: np.ndarray
    ) -> None:
        ...

    @property
    def counts(self) -> List[int]:
        return [row.shape[0] for row in self.pbar]

    @property
    def num_actions(self) -> int:
        return len(self.pbar)

    def owner_matrix(self) -> np.ndarray:
        """(total outcomes x actions) 0/1 matrix mapping each (a, s) pair to its action a."""
        owner = np.zeros((sum(self.counts), self.num_actions))
        owner[np.arange(owner.shape[0]), np.repeat(np.arange(self.num_actions), self.counts)] = 1.0
        return owner

    def norm(self, p: Sequence[Sequence[float]]) -> float:
        rows = as_ragged(p, "p")
        return float(
            sum(self.action_norm(row - nominal, w) for row, nominal, w in zip(rows, self.pbar, self.weights))
        )

    def contains(self, p: Sequence[Sequence[float]], tol: float = 1e-6) -> bool:
        rows = as_ragged(p, "p")
        if [row.shape[0] for row in rows] != self.counts:
            return False
        # entries down to -tol are accepted
        if any(np.any(row < -tol) or not is_probability_dist(np.clip(row, 0.0, None), tol=tol) for row in rows):
            return False
        return self.norm(rows) <= self.kappa + tol

    def sample(self, n: int, rng: Optional[np.random.Generator] = None) -> List[List[np.ndarray]]:
        """
        Draw n feasible transition sets. Each action moves from pbar towards a
        Dirichlet target, stopping once it has used its (Dirichlet) share of kappa.
        """
        rng = rng or np.random.default_rng()
        samples = []
        for _ in range(n):
            shares = rng.dirichlet(np.ones(self.num_actions)) * self.kappa
            rows = []
            for nominal, w, share in zip(self.pbar, self.weights, shares):
                delta = rng.dirichlet(np.ones(nominal.shape[0])) - nominal
                dist = self.action_norm(delta, w)
                step = 1.0 if dist <= share else share / dist
                rows.append(nominal + step * delta)
            samples.append(rows)
        return samples

    def build_dual(self, z: Sequence[Sequence[float]], policy_eval: Optional[Sequence[float]] = None) -> LinearProgram:
        """
        Build the LP whose optimum is max_d min_{p in set} sum_a d_a z_a^T p_a.

        Nature's inner minimization is replaced by its LP dual:
          x_a        free, dual of 1^T p_a = 1
          y+, y-     >= 0, duals of the two sides of |p_a - pbar_a| <= theta
          lambda     >= 0, dual of the aggregate budget
        and d is the decision maker's policy, optimized jointly with the duals.
        """
        if policy_eval is not None and not self.supports_policy_eval:
            raise ValueError(f"{self.name} does not support a fixed policy_eval")
        z_flat = np.concatenate(as_ragged(z, "z"))
        pbar_flat = np.concatenate(self.pbar)
        owner = self.owner_matrix()
        nactions, noutcomes = self.num_actions, pbar_flat.shape[0]

        lp = LinearProgram(self.name)
        x = lp.add_variable("x", nactions)
        yp = lp.add_variable("y_pos", noutcomes, lb=0.0)
        yn = lp.add_variable("y_neg", noutcomes, lb=0.0)
        lam = lp.add_variable("lambda", lb=0.0)
        d = lp.add_variable("d", nactions, lb=0.0, ub=1.0)

        if policy_eval is not None:
            lp.add_constraint(d == np.asarray(policy_eval, dtype=float), role=POLICY)
        else:
            lp.add_constraint(cp.sum(d) == 1, role=POLICY)
        # dual of nature's p_{a,s}
        lp.add_constraint(owner @ x - yp + yn <= cp.multiply(z_flat, owner @ d), role=NATURE)
        self._add_budget_constraints(lp, yp, yn, lam, owner)

        lp.set_objective(cp.sum(x) - pbar_flat @ (yp - yn) - self.kappa * lam, maximize=True)
        logger.debug("built %s dual LP: %d actions, %d outcomes, kappa=%g", self.name, nactions, noutcomes, self.kappa)
        return lp


class SRectL1Set(AmbiguitySet):
    """sum_a sum_s w[a][s] |p[a][s] - pbar[a][s]| <= kappa."""

    supports_policy_eval = True

    @property
    def name(self) -> str:
        return "srect_l1"

    @property
    def budget_role(self) -> str:
        return PSI

    def action_norm(self, deviation: np.ndarray, weights: np.ndarray) -> float:
        return float(np.sum(weights * np.abs(deviation)))

    def _add_budget_constraints(self, lp, yp, yn, lam, owner) -> None:
        w_flat = np.concatenate(self.weights)
        lp.add_constraint(yp + yn - lam * w_flat <= 0, role=PSI)


class SRectLinfSet(AmbiguitySet):
    """
    sum_a max_s w[a][s] |p[a][s] - pbar[a][s]| <= kappa.

    Each outcome weight scales its deviation inside the per-action max, so the
    dual carries 1 / w[a][s] on y+ and y-; unit weights give
    sum_s (y+ + y-) <= lambda for every action.
    """

    def __init__(self, pbar, kappa, weights=None):
        super().__init__(pbar, kappa, weights)
        for a, row in enumerate(self.weights):
            if np.any(row <= 0):
                raise InvalidWeights(f"w[{a}] must be strictly positive for the L-infinity set")

    @property
    def name(self) -> str:
        return "srect_linf"

    @property
    def budget_role(self) -> str:
        return THETA

    def action_norm(self, deviation: np.ndarray, weights: np.ndarray) -> float:
        if deviation.size == 0:
            return 0.0
        return float(np.max(weights * np.abs(deviation)))

    def _add_budget_constraints(self, lp, yp, yn, lam, owner) -> None:
        inv_w = 1.0 / np.concatenate(self.weights)
        lp.add_constraint(owner.T @ cp.multiply(inv_w, yp + yn) - lam <= 0, role=THETA)
