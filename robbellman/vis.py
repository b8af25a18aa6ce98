from __future__ import annotations

from typing import Optional, Sequence

import matplotlib.pyplot as plt
import numpy as np

from .extraction import Solution


def plot_robustness_curve(
    kappas: Sequence[float],
    objectives: Sequence[float],
    nominal: Optional[float] = None,
    ax: Optional[plt.Axes] = None,
    label: str = "robust value",
    title: str = "Robust value vs. budget",
):
    if ax is None:
        _, ax = plt.subplots()
    ax.plot(np.asarray(kappas), np.asarray(objectives), marker="o", label=label)
    if nominal is not None:
        ax.axhline(nominal, color="gray", linestyle="--", label="nominal value")
    ax.set_xlabel("kappa")
    ax.set_ylabel("objective")
    ax.set_title(title)
    ax.legend()
    ax.grid(True, linestyle="--", alpha=0.5)
    return ax


def plot_budget_allocation(solution: Solution, ax: Optional[plt.Axes] = None, color: str = "C0"):
    """Bar chart of nature's budget allocation, one bar per budget constraint."""
    if ax is None:
        _, ax = plt.subplots()
    budgets = np.asarray(solution.budgets)
    if budgets.shape[0] == len(solution.worst_case):
        labels = [f"a{a}" for a in range(budgets.shape[0])]
    else:
        labels = [f"a{a}s{s}" for a, row in enumerate(solution.worst_case) for s in range(row.shape[0])]
    ax.bar(np.arange(budgets.shape[0]), budgets, color=color)
    ax.set_xticks(np.arange(budgets.shape[0]))
    ax.set_xticklabels(labels)
    ax.set_ylabel("budget")
    ax.set_title("Budget allocation")
    return ax
