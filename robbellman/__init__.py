"""
Robbellman: s-rectangular robust Bellman updates via linear programming.

Exposes:
- solve_srect_l1 / solve_srect_linf, the robust update at a single MDP state.
- L1 and L-infinity s-rectangular AmbiguitySet classes that build the dual LP.
- LinearProgram, a role-tagged LP adapter over cvxpy.
- Input validation and the error taxonomy.
- Robustness curve and budget visualization utilities.
"""

from .errors import (
    RobustBellmanError,
    ValidationError,
    ShapeMismatch,
    InvalidDistribution,
    InvalidBudget,
    InvalidReturns,
    InvalidWeights,
    LPSolveError,
    SolverInfeasible,
    SolverUnbounded,
    SolverError,
)
from .validation import validate, is_probability_dist
from .lp import LinearProgram, LPResult
from .ambiguity import AmbiguitySet, SRectL1Set, SRectLinfSet
from .extraction import Solution, extract_solution
from .bellman import solve_srect_l1, solve_srect_linf, nominal_value

__all__ = [
    "RobustBellmanError",
    "ValidationError",
    "ShapeMismatch",
    "InvalidDistribution",
    "InvalidBudget",
    "InvalidReturns",
    "InvalidWeights",
    "LPSolveError",
    "SolverInfeasible",
    "SolverUnbounded",
    "SolverError",
    "validate",
    "is_probability_dist",
    "LinearProgram",
    "LPResult",
    "AmbiguitySet",
    "SRectL1Set",
    "SRectLinfSet",
    "Solution",
    "extract_solution",
    "solve_srect_l1",
    "solve_srect_linf",
    "nominal_value",
]
