"""
Tests for the MPC cost and constraint evaluator.
"""

import math

import casadi as ca
import numpy as np
import pytest

from models import KinematicBicycleModel, VehicleParams
from planning import CostWeights, DecisionLayout, MPCFormulation, MPCParams, STATE_KINDS


STATE = [1.0, 2.0, 0.5, 10.0, 0.3, -0.2]
COEFFS = [1.0, 0.5, 0.0, 0.0]


def test_initial_guess_residuals_match_hand_computation(formulation, builder, layout):
    problem = builder.build(STATE)
    g = formulation.constraints(problem.x0, COEFFS)

    assert g.shape == (layout.n_constraints,)

    # Initial-state slots reproduce the state
    for kind, value in zip(STATE_KINDS, STATE):
        assert g[layout.offset(kind)] == pytest.approx(value)

    # t = 1: from the initial state to all-zero next state, zero actuation
    assert g[layout.index("x", 1)] == pytest.approx(-(1.0 + 10.0 * math.cos(0.5) * 0.1))
    assert g[layout.index("y", 1)] == pytest.approx(-(2.0 + 10.0 * math.sin(0.5) * 0.1))
    assert g[layout.index("psi", 1)] == pytest.approx(-0.5)
    assert g[layout.index("v", 1)] == pytest.approx(-10.0)
    assert g[layout.index("cte", 1)] == pytest.approx(-((1.5 - 2.0) + 10.0 * math.sin(-0.2) * 0.1))
    assert g[layout.index("epsi", 1)] == pytest.approx(-(0.5 - math.atan(0.5)))

    # t >= 2: zero state to zero state, only the path offset and slope remain
    for t in range(2, layout.N):
        assert g[layout.index("x", t)] == pytest.approx(0.0)
        assert g[layout.index("y", t)] == pytest.approx(0.0)
        assert g[layout.index("psi", t)] == pytest.approx(0.0)
        assert g[layout.index("v", t)] == pytest.approx(0.0)
        assert g[layout.index("cte", t)] == pytest.approx(-1.0)
        assert g[layout.index("epsi", t)] == pytest.approx(math.atan(0.5))


def test_initial_guess_cost(formulation, builder):
    problem = builder.build(STATE)

    # Only the tracking terms are active: 800*cte^2 + 800*epsi^2 + (v - 100)^2
    expected = 800 * 0.3**2 + 800 * 0.2**2 + (10.0 - 100.0)**2 + 9 * 100.0**2
    assert float(formulation.cost(problem.x0)) == pytest.approx(expected)


def test_cost_terms_use_weights():
    layout = DecisionLayout(3)
    params = MPCParams(horizon_n=3, ref_v=0.0, weights=CostWeights(
        cte=0.0, epsi=0.0, v=0.0, steer_speed=2.0, steer=3.0, accel=5.0, steer_rate=7.0, accel_rate=11.0,
    ))
    formulation = MPCFormulation(layout, KinematicBicycleModel(VehicleParams()), params)

    vars = np.zeros(layout.n_vars)
    vars[layout.index("v", 0)] = 2.0
    vars[layout.index("delta", 0)] = 0.1
    vars[layout.index("delta", 1)] = 0.3
    vars[layout.index("a", 1)] = 0.5

    expected = (
        2.0 * (0.1 * 2.0)**2
        + 3.0 * (0.1**2 + 0.3**2)
        + 5.0 * 0.5**2
        + 7.0 * (0.3 - 0.1)**2
        + 11.0 * (0.5 - 0.0)**2
    )
    assert float(formulation.cost(vars)) == pytest.approx(expected)


def test_feasible_rollout_has_zero_residuals(formulation, model, layout):
    rng = np.random.default_rng(0)
    deltas = rng.uniform(-0.3, 0.3, layout.N - 1)
    accels = rng.uniform(-1.0, 1.0, layout.N - 1)

    vars = np.zeros(layout.n_vars)
    vars[layout.block("delta")] = deltas
    vars[layout.block("a")] = accels

    state = list(STATE)
    for kind, value in zip(STATE_KINDS, state):
        vars[layout.index(kind, 0)] = value
    for t in range(1, layout.N):
        k = formulation.actuation_step(t)
        state = [float(s) for s in model.step(*state, deltas[k], accels[k], COEFFS)]
        for kind, value in zip(STATE_KINDS, state):
            vars[layout.index(kind, t)] = value

    g = formulation.constraints(vars, COEFFS)
    initial = list(layout.initial_state_indices)
    assert g[initial] == pytest.approx(np.array(STATE))
    assert np.delete(g, initial) == pytest.approx(np.zeros(layout.n_constraints - 6), abs=1e-12)


def test_transitions_read_delayed_actuation(formulation, layout, params):
    # Constant speed, zero heading everywhere: the psi residual at step t is
    # v/Lf * delta_k * dt, which identifies the control pair k that was read.
    v = 10.0
    deltas = 0.01 * np.arange(1, layout.N)

    vars = np.zeros(layout.n_vars)
    vars[layout.block("v")] = v
    vars[layout.block("delta")] = deltas

    g = formulation.constraints(vars, [0.0, 0.0, 0.0, 0.0])
    scale = v / formulation.model.params.lf_m * params.dt_s

    read = [int(round(g[layout.index("psi", t)] / scale / 0.01)) - 1 for t in range(1, layout.N)]
    assert read[:3] == [0, 0, 1]
    assert read == [0] + list(range(layout.N - 2))


def test_evaluates_out_of_bound_points(formulation, layout):
    vars = np.full(layout.n_vars, 1e6)
    cost, g = formulation.fg(vars, [1e3, -1e3, 1e2, -1e1])
    assert np.isfinite(float(cost))
    assert np.all(np.isfinite(g))


def test_symbolic_evaluation_matches_numeric(formulation, builder, layout):
    x_sym = ca.SX.sym("vars", layout.n_vars)
    p_sym = ca.SX.sym("coeffs", 4)
    cost, g = formulation.fg(x_sym, p_sym)
    f = ca.Function("fg", [x_sym, p_sym], [cost, g])

    x0 = builder.build(STATE).x0
    cost_num, g_num = f(x0, COEFFS)

    assert float(cost_num) == pytest.approx(float(formulation.cost(x0)))
    assert np.array(g_num).flatten() == pytest.approx(formulation.constraints(x0, COEFFS))

    # Constraint Jacobian w.r.t. every decision variable is available
    jac = ca.Function("g_jac", [x_sym, p_sym], [ca.jacobian(g, x_sym)])
    assert jac(x0, COEFFS).shape == (layout.n_constraints, layout.n_vars)


def test_mismatched_dt_rejected(layout, vehicle):
    with pytest.raises(ValueError):
        MPCFormulation(layout, KinematicBicycleModel(vehicle, dt_s=0.05), MPCParams(dt_s=0.1))


def test_mismatched_horizon_rejected(model):
    with pytest.raises(ValueError):
        MPCFormulation(DecisionLayout(5), model, MPCParams(horizon_n=10))
