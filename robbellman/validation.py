from __future__ import annotations

from typing import List, Optional, Sequence

import numpy as np

from .errors import InvalidBudget, InvalidDistribution, InvalidReturns, InvalidWeights, ShapeMismatch

# Tolerance on the sum of a probability distribution.
EPSILON = 1e-6

Rows = Sequence[Sequence[float]]


def as_ragged(rows: Rows, name: str) -> List[np.ndarray]:
    """
    Convert a (possibly ragged) sequence of rows into a list of 1-D float arrays.
    A rectangular 2-D numpy array is accepted as well.
    """
    if isinstance(rows, np.ndarray) and rows.ndim != 2:
        raise ShapeMismatch(f"{name} must be a sequence of rows, got array with ndim={rows.ndim}")
    out = []
    for a, row in enumerate(rows):
        arr = np.asarray(row, dtype=float)
        if arr.ndim != 1:
            raise ShapeMismatch(f"{name}[{a}] must be one-dimensional, got shape {arr.shape}")
        out.append(arr)
    return out


def is_probability_dist(values, tol: float = EPSILON) -> bool:
    """True when values are finite, non-negative and sum to 1 within tol."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0 or not np.all(np.isfinite(arr)):
        return False
    if np.any(arr < 0):
        return False
    return abs(float(arr.sum()) - 1.0) <= tol


def _check_shape(rows: List[np.ndarray], counts: List[int], name: str) -> None:
    if len(rows) != len(counts):
        raise ShapeMismatch(f"{name} has {len(rows)} actions, expected {len(counts)}")
    for a, (row, n) in enumerate(zip(rows, counts)):
        if row.shape[0] != n:
            raise ShapeMismatch(f"{name}[{a}] has {row.shape[0]} outcomes, expected {n}")


def validate(
    z: Rows,
    pbar: Rows,
    w: Optional[Rows] = None,
    kappa: float = 0.0,
    policy_eval: Optional[Sequence[float]] = None,
) -> None:
    """
    Check the inputs of an s-rectangular Bellman update.

    Raises ShapeMismatch, InvalidDistribution, InvalidBudget, InvalidReturns or
    InvalidWeights. Nothing is returned and nothing is modified.
    """
    pbar_rows = as_ragged(pbar, "pbar")
    if len(pbar_rows) == 0:
        raise ShapeMismatch("at least one action is required")
    counts = [row.shape[0] for row in pbar_rows]
    for a, n in enumerate(counts):
        if n == 0:
            raise ShapeMismatch(f"action {a} has no outcomes")

    z_rows = as_ragged(z, "z")
    _check_shape(z_rows, counts, "z")
    if w is not None:
        w_rows = as_ragged(w, "w")
        _check_shape(w_rows, counts, "w")
    else:
        w_rows = []
    if policy_eval is not None:
        pe = np.asarray(policy_eval, dtype=float)
        if pe.ndim != 1 or pe.shape[0] != len(counts):
            raise ShapeMismatch(f"policy_eval must have {len(counts)} entries, got shape {pe.shape}")

    try:
        kappa_f = float(kappa)
    except (TypeError, ValueError) as exc:
        raise InvalidBudget(f"kappa must be a real scalar, got {kappa!r}") from exc
    if not np.isfinite(kappa_f) or kappa_f < 0:
        raise InvalidBudget(f"kappa must be finite and non-negative, got {kappa}")

    for a, row in enumerate(pbar_rows):
        if not is_probability_dist(row):
            raise InvalidDistribution(f"pbar[{a}] is not a probability distribution (sum={row.sum():.8g})")
    if policy_eval is not None and not is_probability_dist(pe):
        raise InvalidDistribution(f"policy_eval is not a probability distribution (sum={pe.sum():.8g})")

    for a, row in enumerate(z_rows):
        if not np.all(np.isfinite(row)):
            raise InvalidReturns(f"z[{a}] contains non-finite values")
    for a, row in enumerate(w_rows):
        if not np.all(np.isfinite(row)) or np.any(row < 0):
            raise InvalidWeights(f"w[{a}] must be finite and non-negative")
