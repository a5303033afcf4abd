"""
Tests for the initial guess and bound construction.
"""

import numpy as np
import pytest

from models import VehicleParams
from planning import DecisionLayout, MPCParams, ProblemBuilder, STATE_KINDS

STATE = [0.5, -0.2, 0.05, 12.0, 0.4, -0.1]


def test_initial_guess_is_zero_except_initial_state(builder, layout):
    problem = builder.build(STATE)

    assert problem.x0.shape == (layout.n_vars,)
    for kind, value in zip(STATE_KINDS, STATE):
        assert problem.x0[layout.index(kind, 0)] == value

    mask = np.ones(layout.n_vars, dtype=bool)
    mask[list(layout.initial_state_indices)] = False
    assert np.all(problem.x0[mask] == 0.0)


def test_variable_bounds(builder, layout):
    problem = builder.build(STATE)

    assert np.all(problem.lbx[layout.state_slice] == -1e23)
    assert np.all(problem.ubx[layout.state_slice] == 1e23)
    assert np.all(problem.lbx[layout.block("delta")] == -0.436332)
    assert np.all(problem.ubx[layout.block("delta")] == 0.436332)
    assert np.all(problem.lbx[layout.block("a")] == -1.0)
    assert np.all(problem.ubx[layout.block("a")] == 1.0)


def test_constraint_bounds_pin_initial_state(builder, layout):
    problem = builder.build(STATE)

    assert problem.lbg.shape == problem.ubg.shape == (layout.n_constraints,)
    for kind, value in zip(STATE_KINDS, STATE):
        idx = layout.offset(kind)
        assert problem.lbg[idx] == value
        assert problem.ubg[idx] == value

    mask = np.ones(layout.n_constraints, dtype=bool)
    mask[list(layout.initial_state_indices)] = False
    assert np.all(problem.lbg[mask] == 0.0)
    assert np.all(problem.ubg[mask] == 0.0)


def test_solver_args_names(builder):
    args = builder.build(STATE).as_solver_args()
    assert set(args) == {"x0", "lbx", "ubx", "lbg", "ubg"}


@pytest.mark.parametrize("bad_state", [
    [0.0, 0.0, 0.0, 10.0, 0.0],
    [0.0, 0.0, 0.0, 10.0, 0.0, 0.0, 0.0],
    [0.0, 0.0, np.nan, 10.0, 0.0, 0.0],
    [0.0, 0.0, 0.0, np.inf, 0.0, 0.0],
])
def test_malformed_state_rejected(builder, bad_state):
    with pytest.raises(ValueError):
        builder.build(bad_state)


def test_mismatched_horizon_rejected():
    with pytest.raises(ValueError):
        ProblemBuilder(DecisionLayout(5), VehicleParams(), MPCParams(horizon_n=10))
