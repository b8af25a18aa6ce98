from __future__ import annotations

from typing import Optional


class RobustBellmanError(Exception):
    """Base class for every failure raised by robbellman."""


class ValidationError(RobustBellmanError, ValueError):
    """Input rejected before any LP is constructed."""


class ShapeMismatch(ValidationError):
    pass


class InvalidDistribution(ValidationError):
    pass


class InvalidBudget(ValidationError):
    pass


class InvalidReturns(ValidationError):
    pass


class InvalidWeights(ValidationError):
    pass


class LPSolveError(RobustBellmanError, RuntimeError):
    """
    The LP backend did not report an optimal solution.
    `status` holds the raw cvxpy status string (None if the solver raised).
    """

    def __init__(self, message: str, status: Optional[str] = None):
        super().__init__(message)
        self.status = status


class SolverInfeasible(LPSolveError):
    pass


class SolverUnbounded(LPSolveError):
    pass


class SolverError(LPSolveError):
    pass
