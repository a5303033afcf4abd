"""
Kinematic Bicycle Model - discrete-time, path-relative

State vector (vehicle frame, relative to a locally fitted path):
- [x, y, psi, v, cte, epsi] (6 states)

Control: [delta, a] (2 inputs)

Reference path (passed separately): cubic y = f(x) with coefficients [c0, c1, c2, c3]

All math goes through CasADi functions, which accept plain floats as well as
SX/MX symbols. The same step function is therefore evaluated numerically in
simulation and symbolically when the NLP solver differentiates it.
"""

from __future__ import annotations
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Sequence, Tuple, Union

import casadi as ca
import numpy as np
from yaml import safe_load


# =============================================================================
# Vehicle Parameters
# =============================================================================

@dataclass(frozen=True)
class VehicleParams:
    """
    Vehicle parameters - immutable dataclass.
    """

    name: str = "sim_car"

    # Distance from front axle to CoG [m]. Tuned until the turning radius of
    # the kinematic model matched a constant-steer circle driven in the simulator.
    lf_m: float = 2.67

    # Actuator limits
    max_delta_rad: float = 0.436332     # 25 deg
    max_accel: float = 1.0              # normalized throttle
    min_accel: float = -1.0             # normalized brake

    def __post_init__(self):
        if self.lf_m <= 0.0:
            raise ValueError(f"lf_m must be positive, got {self.lf_m}")
        if self.max_delta_rad <= 0.0:
            raise ValueError(f"max_delta_rad must be positive, got {self.max_delta_rad}")
        if self.min_accel >= self.max_accel:
            raise ValueError(
                f"min_accel ({self.min_accel}) must be below max_accel ({self.max_accel})"
            )

    @staticmethod
    def load_from_yaml(yaml_file: Union[str, Path]) -> VehicleParams:
        """
        Load vehicle parameters from YAML file.

        Args:
            yaml_file: Path to YAML config file with a ``vehicle`` section

        Returns:
            VehicleParams instance
        """
        with open(yaml_file, "r") as stream:
            data = safe_load(stream)
        veh_dict = data.get("vehicle", {}) or {}

        # Filter to only include fields that VehicleParams accepts
        valid_fields = {f.name for f in VehicleParams.__dataclass_fields__.values()}
        filtered_dict = {k: v for k, v in veh_dict.items() if k in valid_fields}

        return VehicleParams(**filtered_dict)


# =============================================================================
# Reference polynomial helpers
# =============================================================================

def polyeval(coeffs: Sequence, x):
    """Evaluate the cubic reference path f(x) = c0 + c1*x + c2*x^2 + c3*x^3."""
    return coeffs[0] + coeffs[1] * x + coeffs[2] * x**2 + coeffs[3] * x**3


def polyheading(coeffs: Sequence, x):
    """Tangent heading of the reference path: atan(f'(x))."""
    return ca.atan(coeffs[1] + 2 * coeffs[2] * x + 3 * coeffs[3] * x**2)


# =============================================================================
# Kinematic Bicycle Model
# =============================================================================

class KinematicBicycleModel:
    """
    Discrete kinematic bicycle model used as the MPC prediction model.

    Steering sign convention: positive delta turns clockwise, i.e. the heading
    rate is -(v / Lf) * delta. Heading error follows the same convention.
    """

    def __init__(self, params: VehicleParams, dt_s: float = 0.1):
        """
        Initialize the model.

        Args:
            params: Vehicle parameters
            dt_s: Discretization period [s]
        """
        if dt_s <= 0.0:
            raise ValueError(f"dt_s must be positive, got {dt_s}")
        self.params = params
        self.dt_s = dt_s

    def step(self, x, y, psi, v, cte, epsi, delta, a, coeffs: Sequence) -> Tuple:
        """
        Advance the path-relative state by one period.

        Args:
            x, y, psi, v, cte, epsi: state at step t-1
            delta: steering angle [rad]
            a: acceleration command [-]
            coeffs: reference polynomial coefficients [c0, c1, c2, c3]

        Returns:
            Tuple: (x, y, psi, v, cte, epsi) at step t
        """
        dt = self.dt_s
        lf = self.params.lf_m

        f0 = polyeval(coeffs, x)
        psides0 = polyheading(coeffs, x)

        x_next = x + v * ca.cos(psi) * dt
        y_next = y + v * ca.sin(psi) * dt
        psi_next = psi - v / lf * delta * dt
        v_next = v + a * dt
        cte_next = (f0 - y) + v * ca.sin(epsi) * dt
        epsi_next = (psi - psides0) - v / lf * delta * dt

        return x_next, y_next, psi_next, v_next, cte_next, epsi_next

    def global_step(self, x, y, psi, v, delta, a, dt_s: Optional[float] = None) -> Tuple[float, float, float, float]:
        """
        Advance only the physical states (x, y, psi, v) in a global frame.

        Used as the plant in closed-loop simulation, where the path-relative
        errors are recomputed from the road each cycle.
        """
        dt = self.dt_s if dt_s is None else dt_s
        lf = self.params.lf_m
        x_next = x + v * np.cos(psi) * dt
        y_next = y + v * np.sin(psi) * dt
        psi_next = psi - v / lf * delta * dt
        v_next = v + a * dt
        return float(x_next), float(y_next), float(psi_next), float(v_next)

    def __repr__(self):
        return f"KinematicBicycleModel({self.params.name}, lf={self.params.lf_m} m, dt={self.dt_s} s)"
