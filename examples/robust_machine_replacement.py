"""
Robust value iteration on a machine-replacement MDP.

States are wear levels 0..n-1; "continue" earns a reward and may wear the machine
one level further, "replace" pays a fixed cost and resets it to level 0. Each sweep
applies the s-rectangular robust Bellman update at every state, feeding nature
only the reachable next states (so the return rows are ragged). Compares the
robust policy with the nominal one and saves a robustness curve.
"""

import argparse
from typing import Dict, List, Tuple

import numpy as np

from robbellman import solve_srect_l1, solve_srect_linf
from robbellman import vis


def build_mdp(num_states: int = 8, wear_prob: float = 0.3, replace_cost: float = 1.5):
    """
    Returns, for each state, a list over actions of (next_states, probabilities, reward).
    """
    mdp = []
    for s in range(num_states):
        broken = s == num_states - 1
        reward = -2.0 if broken else 1.0 - 0.1 * s
        if broken:
            cont = (np.array([s]), np.array([1.0]), reward)
        else:
            cont = (np.array([s, s + 1]), np.array([1.0 - wear_prob, wear_prob]), reward)
        replace = (np.array([0]), np.array([1.0]), -replace_cost)
        mdp.append([cont, replace])
    return mdp


def bellman_inputs(mdp, values: np.ndarray, discount: float, state: int) -> Tuple[List[np.ndarray], List[np.ndarray]]:
    z, pbar = [], []
    for next_states, probs, reward in mdp[state]:
        z.append(reward + discount * values[next_states])
        pbar.append(probs)
    return z, pbar


def robust_value_iteration(
    mdp, kappa: float, norm: str = "l1", discount: float = 0.9, iters: int = 200, tol: float = 1e-6
) -> Tuple[np.ndarray, np.ndarray]:
    solve = solve_srect_l1 if norm == "l1" else solve_srect_linf
    values = np.zeros(len(mdp))
    policy = np.zeros((len(mdp), 2))
    for _ in range(iters):
        new_values = np.empty_like(values)
        for s in range(len(mdp)):
            z, pbar = bellman_inputs(mdp, values, discount, s)
            sol = solve(z, pbar, kappa)
            new_values[s] = sol.objective
            policy[s] = sol.policy
        if np.max(np.abs(new_values - values)) < tol:
            values = new_values
            break
        values = new_values
    return values, policy


def replace_from(policy: np.ndarray) -> int:
    """First wear level where replacing is preferred, or -1 if the machine is never replaced."""
    mask = policy[:, 1] > 0.5
    if not np.any(mask):
        return -1
    return int(np.argmax(mask))


def run_experiment(kappa: float = 0.2, norm: str = "l1", num_states: int = 8, discount: float = 0.9) -> Dict[str, float]:
    mdp = build_mdp(num_states)
    robust_v, robust_pi = robust_value_iteration(mdp, kappa, norm=norm, discount=discount)
    nominal_v, nominal_pi = robust_value_iteration(mdp, 0.0, norm=norm, discount=discount)
    return {
        "robust_value": float(robust_v[0]),
        "nominal_value": float(nominal_v[0]),
        "robust_replace_from": replace_from(robust_pi),
        "nominal_replace_from": replace_from(nominal_pi),
    }


def main():
    parser = argparse.ArgumentParser(description="Robust value iteration on machine replacement.")
    parser.add_argument("--kappa", type=float, default=0.2, help="Perturbation budget per state")
    parser.add_argument("--norm", choices=["l1", "linf"], default="l1")
    parser.add_argument("--states", type=int, default=8, help="Number of wear levels")
    parser.add_argument("--discount", type=float, default=0.9)
    parser.add_argument("--plot", default="robustness_curve.png", help="Where to save the robustness curve")
    args = parser.parse_args()

    results = run_experiment(kappa=args.kappa, norm=args.norm, num_states=args.states, discount=args.discount)
    for key, val in results.items():
        print(f"{key:>22}: {val}")

    kappas = np.linspace(0.0, 1.0, 6)
    mdp = build_mdp(args.states)
    objectives = [
        robust_value_iteration(mdp, k, norm=args.norm, discount=args.discount)[0][0] for k in kappas
    ]
    import matplotlib.pyplot as plt

    ax = vis.plot_robustness_curve(kappas, objectives, nominal=results["nominal_value"], title="Value of a new machine")
    ax.figure.tight_layout()
    ax.figure.savefig(args.plot, dpi=150)
    plt.close(ax.figure)
    print(f"Saved {args.plot}")


if __name__ == "__main__":
    main()
