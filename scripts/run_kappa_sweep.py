"""
Sweep the budget kappa on a random single-state instance and report robust values.
"""

import argparse
import logging
from typing import List, Tuple

import numpy as np

from robbellman import RobustBellmanError, nominal_value, solve_srect_l1, solve_srect_linf


def random_instance(
    rng: np.random.Generator, num_actions: int, max_outcomes: int
) -> Tuple[List[np.ndarray], List[np.ndarray]]:
    counts = rng.integers(1, max_outcomes + 1, size=num_actions)
    z = [rng.normal(size=n) for n in counts]
    pbar = [rng.dirichlet(np.ones(n)) for n in counts]
    return z, pbar


def main():
    parser = argparse.ArgumentParser(description="Robust value of one MDP state as a function of kappa.")
    parser.add_argument("--norm", choices=["l1", "linf"], default="l1")
    parser.add_argument("--actions", type=int, default=3)
    parser.add_argument("--outcomes", type=int, default=4, help="Maximum number of outcomes per action")
    parser.add_argument("--max-kappa", type=float, default=2.0)
    parser.add_argument("--points", type=int, default=9)
    parser.add_argument("--seed", type=int, default=0)
    parser.add_argument("--solver", default=None, help="cvxpy solver name, e.g. CLARABEL or HIGHS")
    parser.add_argument("--plot", default=None, help="Save a robustness curve to this path")
    parser.add_argument("--verbose", action="store_true")
    args = parser.parse_args()

    logging.basicConfig(level=logging.DEBUG if args.verbose else logging.WARNING)
    rng = np.random.default_rng(args.seed)
    z, pbar = random_instance(rng, args.actions, args.outcomes)
    solve = solve_srect_l1 if args.norm == "l1" else solve_srect_linf

    kappas = np.linspace(0.0, args.max_kappa, args.points)
    objectives = []
    print(f"{'kappa':>8} {'objective':>10}  policy")
    for kappa in kappas:
        try:
            sol = solve(z, pbar, kappa, solver=args.solver)
        except RobustBellmanError as e:
            raise SystemExit(f"kappa={kappa:.3f} failed: {e}")
        objectives.append(sol.objective)
        print(f"{kappa:8.3f} {sol.objective:10.4f}  {np.round(sol.policy, 3)}")

    nominal = nominal_value(z, pbar)
    print(f"\nNominal value: {nominal:.4f}")
    print(f"Worst-outcome value: {max(row.min() for row in z):.4f}")

    if args.plot:
        import matplotlib.pyplot as plt

        from robbellman import vis

        ax = vis.plot_robustness_curve(kappas, objectives, nominal=nominal)
        ax.figure.savefig(args.plot, dpi=150)
        plt.close(ax.figure)
        print(f"Saved {args.plot}")


if __name__ == "__main__":
    main()
