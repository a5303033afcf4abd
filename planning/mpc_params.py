"""
Controller configuration for the kinematic MPC.

Both parameter containers are frozen so one instance can be shared by the
problem builder, the cost/constraint evaluator and the solver bridge.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Union

from yaml import safe_load


HESSIAN_MODES = ("exact", "limited-memory")


@dataclass(frozen=True)
class CostWeights:
    # Tracking terms, summed over all N steps
    cte: float = 800.0
    epsi: float = 800.0
    v: float = 1.0

    # Actuation terms, summed over N-1 control steps
    steer_speed: float = 450.0  # (delta * v)^2
    steer: float = 20.0
    accel: float = 1.0

    # Actuation change terms, summed over N-2 steps
    steer_rate: float = 1.0
    accel_rate: float = 1.0


@dataclass(frozen=True)
class MPCParams:
    # Horizon
    horizon_n: int = 10
    dt_s: float = 0.1

    # Reference speed, same units as the measured speed
    ref_v: float = 100.0

    weights: CostWeights = field(default_factory=CostWeights)

    # Stand-in for +/- infinity on state variables. IPOPT treats anything
    # beyond 1e19 as unbounded.
    state_bound: float = 1.0e23

    # Solver settings (IPOPT)
    max_cpu_time_s: float = 0.5
    max_iter: int = 3000
    print_level: int = 0
    hessian_approximation: str = "exact"
    verbose: bool = False

    def __post_init__(self):
        if self.horizon_n < 3:
            raise ValueError(f"horizon_n must be at least 3, got {self.horizon_n}")
        if self.dt_s <= 0.0:
            raise ValueError(f"dt_s must be positive, got {self.dt_s}")
        if self.max_cpu_time_s <= 0.0:
            raise ValueError(f"max_cpu_time_s must be positive, got {self.max_cpu_time_s}")
        if self.hessian_approximation not in HESSIAN_MODES:
            raise ValueError(
                f"Unsupported hessian_approximation={self.hessian_approximation}. "
                f"Use one of {HESSIAN_MODES}."
            )

    def ipopt_options(self) -> dict:
        """Options dict for ca.nlpsol(..., 'ipopt', ...)."""
        return {
            'ipopt.print_level': self.print_level,
            'ipopt.max_cpu_time': self.max_cpu_time_s,
            'ipopt.max_iter': self.max_iter,
            'ipopt.hessian_approximation': self.hessian_approximation,
            'ipopt.sb': 'yes',
            'print_time': False,
            'error_on_fail': False,
        }

    @staticmethod
    def load_from_yaml(yaml_file: Union[str, Path]) -> MPCParams:
        """
        Load controller parameters from the ``mpc`` section of a YAML file.

        Unknown keys are ignored, as are unknown cost weight names.
        """
        with open(yaml_file, "r") as stream:
            data = safe_load(stream)
        mpc_dict = dict(data.get("mpc", {}) or {})

        weight_fields = {f.name for f in CostWeights.__dataclass_fields__.values()}
        weights_dict = mpc_dict.pop("weights", None) or {}
        weights = CostWeights(**{k: float(v) for k, v in weights_dict.items() if k in weight_fields})

        valid_fields = {f.name for f in MPCParams.__dataclass_fields__.values()} - {"weights"}
        filtered_dict = {k: v for k, v in mpc_dict.items() if k in valid_fields}

        return MPCParams(weights=weights, **filtered_dict)
