"""
Initial guess and bounds for one MPC solve.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Sequence

import numpy as np

from models.vehicle import VehicleParams
from .layout import DecisionLayout
from .mpc_params import MPCParams

STATE_SIZE = 6
N_COEFFS = 4


@dataclass
class NLPProblem:
    """Numeric inputs to ca.nlpsol, named as nlpsol expects them."""
    x0: np.ndarray      # Initial guess [n_vars]
    lbx: np.ndarray     # Variable lower bounds [n_vars]
    ubx: np.ndarray     # Variable upper bounds [n_vars]
    lbg: np.ndarray     # Constraint lower bounds [n_constraints]
    ubg: np.ndarray     # Constraint upper bounds [n_constraints]

    def as_solver_args(self) -> dict:
        return {
            'x0': self.x0,
            'lbx': self.lbx,
            'ubx': self.ubx,
            'lbg': self.lbg,
            'ubg': self.ubg,
        }


def validate_state(state: Sequence[float]) -> np.ndarray:
    """Return the state as a float array, rejecting wrong length or non-finite values."""
    arr = np.asarray(state, dtype=float).reshape(-1)
    if arr.shape != (STATE_SIZE,):
        raise ValueError(
            f"State must have {STATE_SIZE} entries [x, y, psi, v, cte, epsi], got shape {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"State contains non-finite values: {arr}")
    return arr


def validate_coeffs(coeffs: Sequence[float]) -> np.ndarray:
    """Return the cubic coefficients as a float array, rejecting malformed input."""
    arr = np.asarray(coeffs, dtype=float).reshape(-1)
    if arr.shape != (N_COEFFS,):
        raise ValueError(
            f"Reference polynomial must have {N_COEFFS} coefficients, got shape {arr.shape}"
        )
    if not np.all(np.isfinite(arr)):
        raise ValueError(f"Polynomial coefficients contain non-finite values: {arr}")
    return arr


class ProblemBuilder:
    """
    Builds the initial guess, variable bounds and constraint bounds.

    States are free (bounded by +/- state_bound), steering and acceleration
    carry the actuator limits, and every constraint is an equality at zero
    except the initial-state slots, which are pinned to the measured state.
    """

    def __init__(self, layout: DecisionLayout, vehicle: VehicleParams, params: MPCParams):
        if layout.N != params.horizon_n:
            raise ValueError(
                f"Layout horizon (N={layout.N}) does not match controller horizon (N={params.horizon_n})"
            )
        self.layout = layout
        self.vehicle = vehicle
        self.params = params

    def variable_bounds(self):
        L = self.layout
        lbx = np.zeros(L.n_vars)
        ubx = np.zeros(L.n_vars)

        lbx[L.state_slice] = -self.params.state_bound
        ubx[L.state_slice] = self.params.state_bound

        lbx[L.block("delta")] = -self.vehicle.max_delta_rad
        ubx[L.block("delta")] = self.vehicle.max_delta_rad

        lbx[L.block("a")] = self.vehicle.min_accel
        ubx[L.block("a")] = self.vehicle.max_accel
        return lbx, ubx

    def constraint_bounds(self, state: np.ndarray):
        L = self.layout
        lbg = np.zeros(L.n_constraints)
        ubg = np.zeros(L.n_constraints)
        for idx, value in zip(L.initial_state_indices, state):
            lbg[idx] = value
            ubg[idx] = value
        return lbg, ubg

    def initial_guess(self, state: np.ndarray) -> np.ndarray:
        L = self.layout
        x0 = np.zeros(L.n_vars)
        for idx, value in zip(L.initial_state_indices, state):
            x0[idx] = value
        return x0

    def build(self, state: Sequence[float]) -> NLPProblem:
        state = validate_state(state)
        lbx, ubx = self.variable_bounds()
        lbg, ubg = self.constraint_bounds(state)
        return NLPProblem(
            x0=self.initial_guess(state),
            lbx=lbx,
            ubx=ubx,
            lbg=lbg,
            ubg=ubg,
        )
