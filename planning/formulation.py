"""
Cost and constraint evaluator for the kinematic MPC.

The NLP solver evaluates (and differentiates) this repeatedly during its
search, so it must accept any real-valued decision vector, including points
outside the variable bounds. Arithmetic is generic: passing NumPy arrays gives
floats, passing CasADi SX/MX gives expressions for automatic differentiation.
"""

from typing import Sequence, Tuple

import casadi as ca
import numpy as np

from models.vehicle import KinematicBicycleModel
from .layout import DecisionLayout, STATE_KINDS
from .mpc_params import MPCParams


def _is_casadi(vars) -> bool:
    return isinstance(vars, (ca.SX, ca.MX, ca.DM))


class MPCFormulation:
    """
    Objective + dynamics defects over one flat decision vector.

    fg(vars, coeffs) returns (cost, g) where g has one residual per state
    variable per timestep:
        g[offset(kind) + 0] = initial state value (pinned by the bounds)
        g[offset(kind) + t] = next - predicted, for t in [1, N)
    """

    def __init__(self, layout: DecisionLayout, model: KinematicBicycleModel, params: MPCParams):
        if abs(model.dt_s - params.dt_s) > 1e-12:
            raise ValueError(
                f"Model dt ({model.dt_s}) does not match controller dt ({params.dt_s})"
            )
        if layout.N != params.horizon_n:
            raise ValueError(
                f"Layout horizon (N={layout.N}) does not match controller horizon (N={params.horizon_n})"
            )
        self.layout = layout
        self.model = model
        self.params = params

    @staticmethod
    def actuation_step(t: int) -> int:
        return DecisionLayout.actuation_step(t)

    # -------------------------------------------------------------------------
    # Objective
    # -------------------------------------------------------------------------

    def cost(self, vars):
        L = self.layout
        w = self.params.weights
        N = L.N
        ref_v = self.params.ref_v

        cost = 0

        # Tracking errors and speed
        for t in range(N):
            cost += w.cte * vars[L.idx_cte + t]**2
            cost += w.epsi * vars[L.idx_epsi + t]**2
            cost += w.v * (vars[L.idx_v + t] - ref_v)**2

        # Actuator use; steering is weighted harder at speed
        for t in range(N - 1):
            cost += w.steer_speed * (vars[L.idx_delta + t] * vars[L.idx_v + t])**2
            cost += w.steer * vars[L.idx_delta + t]**2
            cost += w.accel * vars[L.idx_a + t]**2

        # Smoothness between consecutive actuations
        for t in range(N - 2):
            cost += w.steer_rate * (vars[L.idx_delta + t + 1] - vars[L.idx_delta + t])**2
            cost += w.accel_rate * (vars[L.idx_a + t + 1] - vars[L.idx_a + t])**2

        return cost

    # -------------------------------------------------------------------------
    # Constraints
    # -------------------------------------------------------------------------

    def constraints(self, vars, coeffs: Sequence):
        L = self.layout
        N = L.N
        offsets = [L.offset(kind) for kind in STATE_KINDS]

        g = [0] * L.n_constraints

        # Initial state; the constraint bounds pin these to the measured state
        for off in offsets:
            g[off] = vars[off]

        for t in range(1, N):
            state0 = [vars[off + t - 1] for off in offsets]
            state1 = [vars[off + t] for off in offsets]

            k = self.actuation_step(t)
            delta0 = vars[L.idx_delta + k]
            a0 = vars[L.idx_a + k]

            predicted = self.model.step(*state0, delta0, a0, coeffs)

            for off, next_val, pred_val in zip(offsets, state1, predicted):
                g[off + t] = next_val - pred_val

        if _is_casadi(vars):
            return ca.vertcat(*g)
        return np.array([float(v) for v in g])

    def fg(self, vars, coeffs: Sequence) -> Tuple:
        return self.cost(vars), self.constraints(vars, coeffs)
