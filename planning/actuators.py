"""Decode a solved decision vector into actuator commands."""

from __future__ import annotations

from dataclasses import dataclass
from typing import List

import numpy as np

from .layout import DecisionLayout


@dataclass
class ActuatorCommand:
    steering: float             # Steering to issue now [rad]
    acceleration: float         # Acceleration to issue now [-]
    predicted_x: np.ndarray     # Predicted x for t = 1..N-1
    predicted_y: np.ndarray     # Predicted y for t = 1..N-1

    def to_list(self) -> List[float]:
        """[steering, acceleration, x_1, y_1, ..., x_{N-1}, y_{N-1}]"""
        out = [self.steering, self.acceleration]
        for px, py in zip(self.predicted_x, self.predicted_y):
            out.append(float(px))
            out.append(float(py))
        return out


def extract_actuators(solution: np.ndarray, layout: DecisionLayout) -> ActuatorCommand:
    """
    Read the first scheduled actuation and the predicted path.

    The pinned initial point (t = 0) is left out of the predicted path.
    """
    x = np.asarray(solution, dtype=float).reshape(-1)
    if x.shape != (layout.n_vars,):
        raise ValueError(f"Solution must have {layout.n_vars} entries, got shape {x.shape}")

    N = layout.N
    return ActuatorCommand(
        steering=float(x[layout.idx_delta]),
        acceleration=float(x[layout.idx_a]),
        predicted_x=x[layout.idx_x + 1:layout.idx_x + N].copy(),
        predicted_y=x[layout.idx_y + 1:layout.idx_y + N].copy(),
    )
