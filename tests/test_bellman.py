from concurrent.futures import ThreadPoolExecutor

import cvxpy as cp
import numpy as np
import pytest

from robbellman import (
    InvalidBudget,
    InvalidDistribution,
    InvalidWeights,
    ShapeMismatch,
    SolverError,
    SRectL1Set,
    SRectLinfSet,
    nominal_value,
    solve_srect_l1,
    solve_srect_linf,
)

Z_SWAP = [[1.0, 0.0], [0.0, 1.0]]
P_UNIFORM = [[0.5, 0.5], [0.5, 0.5]]

Z_RAGGED = [[1.0, 2.0, 3.0], [2.0, 2.0]]
P_RAGGED = [[0.2, 0.3, 0.5], [0.5, 0.5]]


def _random_instance(rng, nactions=3):
    counts = rng.integers(2, 5, size=nactions)
    z = [rng.normal(size=n) for n in counts]
    pbar = [rng.dirichlet(np.ones(n)) for n in counts]
    return z, pbar


def test_concrete_scenario_zero_budget():
    sol = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.0)
    assert np.isclose(sol.objective, 0.5, atol=1e-6)


@pytest.mark.parametrize("solve", [solve_srect_l1, solve_srect_linf])
def test_zero_budget_matches_nominal(solve):
    sol = solve(Z_RAGGED, P_RAGGED, 0.0)
    # action values are 2.3 and 2.0
    assert np.isclose(sol.objective, nominal_value(Z_RAGGED, P_RAGGED), atol=1e-6)
    assert np.isclose(sol.objective, 2.3, atol=1e-6)
    assert np.isclose(sol.policy[0], 1.0, atol=1e-5)


@pytest.mark.parametrize("solve, kappa", [(solve_srect_l1, 4.0), (solve_srect_linf, 2.0), (solve_srect_l1, 10.0)])
def test_large_budget_gives_worst_outcome(solve, kappa):
    z = [[1.0, 5.0], [2.0, 3.0, 4.0]]
    pbar = [[0.5, 0.5], [0.2, 0.3, 0.5]]
    sol = solve(z, pbar, kappa)
    assert np.isclose(sol.objective, 2.0, atol=1e-5)
    assert np.isclose(sol.policy[1], 1.0, atol=1e-5)


@pytest.mark.parametrize("solve", [solve_srect_l1, solve_srect_linf])
def test_policy_is_distribution(solve):
    rng = np.random.default_rng(0)
    for _ in range(5):
        z, pbar = _random_instance(rng)
        sol = solve(z, pbar, float(rng.uniform(0.0, 1.5)))
        assert np.all(sol.policy >= -1e-6)
        assert abs(sol.policy.sum() - 1.0) <= 1e-6


def test_policy_eval_is_pinned():
    policy_eval = [0.3, 0.7]
    sol = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.2, policy_eval=policy_eval)
    # nature spends everything on the heavier action: 0.5 - 0.7 * 0.1
    assert np.isclose(sol.objective, 0.43, atol=1e-6)
    assert np.array_equal(sol.policy, np.array(policy_eval))


def test_optimized_policy_beats_pinned():
    pinned = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.2, policy_eval=[0.3, 0.7])
    optimized = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.2)
    assert np.isclose(optimized.objective, 0.45, atol=1e-6)
    assert np.allclose(optimized.policy, [0.5, 0.5], atol=1e-5)
    assert optimized.objective >= pinned.objective - 1e-8


@pytest.mark.parametrize("solve", [solve_srect_l1, solve_srect_linf])
def test_objective_non_increasing_in_kappa(solve):
    rng = np.random.default_rng(1)
    z, pbar = _random_instance(rng, nactions=4)
    objectives = [solve(z, pbar, kappa).objective for kappa in np.linspace(0.0, 3.0, 13)]
    assert np.all(np.diff(objectives) <= 1e-6)


def test_l1_budgets_exhaust_kappa_when_binding():
    w = [[2.0, 2.0], [1.0, 1.0]]
    sol = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.3, w=w)
    # nature's rate is max(d1 / 4, d2 / 2); balanced at d = (2/3, 1/3)
    assert np.isclose(sol.objective, 0.45, atol=1e-6)
    assert np.allclose(sol.policy, [2 / 3, 1 / 3], atol=1e-5)
    assert sol.budgets.shape == (4,)
    assert np.all(sol.budgets >= -1e-6)
    assert np.isclose(np.dot(np.concatenate(w), sol.budgets), 0.3, atol=1e-5)


def test_l1_budgets_never_exceed_kappa():
    rng = np.random.default_rng(2)
    for _ in range(5):
        z, pbar = _random_instance(rng)
        w = [rng.uniform(0.5, 2.0, size=len(row)) for row in pbar]
        kappa = float(rng.uniform(0.0, 1.0))
        sol = solve_srect_l1(z, pbar, kappa, w=w)
        assert np.all(sol.budgets >= -1e-6)
        assert np.dot(np.concatenate(w), sol.budgets) <= kappa + 1e-5


def test_linf_value_and_budgets():
    sol = solve_srect_linf(Z_SWAP, P_UNIFORM, 0.2)
    assert np.isclose(sol.objective, 0.4, atol=1e-6)
    assert sol.budgets.shape == (2,)
    assert np.all(sol.budgets >= -1e-6)
    assert np.isclose(sol.budgets.sum(), 0.2, atol=1e-5)


def test_linf_weights_scale_deviation():
    sol = solve_srect_linf(Z_SWAP, P_UNIFORM, 0.3, w=[[2.0, 2.0], [1.0, 1.0]])
    # constraint 2 * delta_1 + delta_2 <= kappa; balanced at d = (2/3, 1/3)
    assert np.isclose(sol.objective, 0.4, atol=1e-6)
    assert np.allclose(sol.policy, [2 / 3, 1 / 3], atol=1e-5)


def test_linf_rejects_zero_weight():
    with pytest.raises(InvalidWeights):
        solve_srect_linf(Z_SWAP, P_UNIFORM, 0.1, w=[[1.0, 0.0], [1.0, 1.0]])


@pytest.mark.parametrize(
    "solve, ambiguity_cls",
    [(solve_srect_l1, SRectL1Set), (solve_srect_linf, SRectLinfSet)],
)
def test_worst_case_is_feasible_and_attains_objective(solve, ambiguity_cls):
    rng = np.random.default_rng(3)
    z, pbar = _random_instance(rng)
    kappa = 0.4
    sol = solve(z, pbar, kappa)
    ambiguity = ambiguity_cls(pbar, kappa)
    assert ambiguity.contains(sol.worst_case, tol=1e-5)
    value = sum(d * zr @ pr for d, zr, pr in zip(sol.policy, z, sol.worst_case))
    assert np.isclose(value, sol.objective, atol=1e-5)


@pytest.mark.parametrize(
    "solve, ambiguity_cls",
    [(solve_srect_l1, SRectL1Set), (solve_srect_linf, SRectLinfSet)],
)
def test_sampled_transitions_never_beat_robust_value(solve, ambiguity_cls):
    rng = np.random.default_rng(4)
    z, pbar = _random_instance(rng)
    kappa = 0.5
    sol = solve(z, pbar, kappa)
    for p in ambiguity_cls(pbar, kappa).sample(200, rng=rng):
        value = sum(d * zr @ pr for d, zr, pr in zip(sol.policy, z, p))
        assert value >= sol.objective - 1e-6


def test_invalid_distribution_fails_before_lp(monkeypatch):
    def fail(*args, **kwargs):
        raise AssertionError("LP constructed for invalid input")

    monkeypatch.setattr("robbellman.ambiguity.LinearProgram", fail)
    with pytest.raises(InvalidDistribution):
        solve_srect_l1(Z_SWAP, [[0.5, 0.4], [0.5, 0.5]], 0.0)


@pytest.mark.parametrize(
    "z, pbar, kappa, exc",
    [
        ([[1.0, 0.0]], P_UNIFORM, 0.1, ShapeMismatch),
        ([[1.0, 0.0, 2.0], [0.0, 1.0]], P_UNIFORM, 0.1, ShapeMismatch),
        ([], [], 0.1, ShapeMismatch),
        (Z_SWAP, P_UNIFORM, -0.1, InvalidBudget),
        (Z_SWAP, P_UNIFORM, float("nan"), InvalidBudget),
        (Z_SWAP, [[1.2, -0.2], [0.5, 0.5]], 0.1, InvalidDistribution),
    ],
)
def test_invalid_inputs(z, pbar, kappa, exc):
    with pytest.raises(exc):
        solve_srect_l1(z, pbar, kappa)
    with pytest.raises(exc):
        solve_srect_linf(z, pbar, kappa)


def test_pbar_within_tolerance_is_accepted_at_zero_budget():
    pbar = [[0.5, 0.5 - 5e-7], [0.5, 0.5]]
    sol = solve_srect_l1(Z_SWAP, pbar, 0.0)
    assert np.isclose(sol.objective, 0.5, atol=1e-5)


@pytest.mark.parametrize(
    "policy_eval, expected",
    [([1.0 + 5e-7, 0.0], 0.45), ([0.5, 0.5 - 9e-7], 0.475)],
)
def test_policy_eval_within_tolerance_is_pinned(policy_eval, expected):
    sol = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.1, policy_eval=policy_eval)
    assert np.isclose(sol.objective, expected, atol=1e-5)
    assert np.array_equal(sol.policy, np.array(policy_eval))


def test_unknown_solver_raises_solver_error():
    with pytest.raises(SolverError) as info:
        solve_srect_l1(Z_SWAP, P_UNIFORM, 0.1, solver="NOT_A_SOLVER")
    assert isinstance(info.value.__cause__, cp.SolverError)


def test_concurrent_calls_match_serial():
    rng = np.random.default_rng(5)
    instances = [_random_instance(rng) for _ in range(6)]
    serial = [solve_srect_l1(z, pbar, 0.3).objective for z, pbar in instances]
    with ThreadPoolExecutor(max_workers=3) as pool:
        threaded = list(pool.map(lambda inst: solve_srect_l1(inst[0], inst[1], 0.3).objective, instances))
    assert np.allclose(serial, threaded, atol=1e-6)


def test_as_tuple_unpacks():
    objective, policy, budgets = solve_srect_l1(Z_SWAP, P_UNIFORM, 0.0).as_tuple()
    assert np.isclose(objective, 0.5, atol=1e-6)
    assert policy.shape == (2,)
    assert budgets.shape == (4,)
