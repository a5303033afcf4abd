"""
Kinematic MPC solved with IPOPT through CasADi.

The cost and constraints are traced once into a CasADi SX graph with the
reference polynomial as the NLP parameter vector, so CasADi supplies exact
sparse Jacobians and Hessians and the solver is built once per controller.
Each call still starts from a fresh initial guess; nothing from a previous
solution is reused.
"""

from __future__ import annotations

import time
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Sequence, Union

import casadi as ca
import numpy as np

from models import DEFAULT_CONFIG_FILE, KinematicBicycleModel, VehicleParams
from .actuators import ActuatorCommand, extract_actuators
from .formulation import MPCFormulation
from .layout import DecisionLayout
from .mpc_params import MPCParams
from .problem import NLPProblem, ProblemBuilder, N_COEFFS, validate_coeffs


@dataclass
class MPCResult:
    """Container for one MPC solve."""
    success: bool
    status: str               # IPOPT return status
    cost: float               # Objective at the returned point
    x: np.ndarray             # Decision vector [n_vars]
    g: np.ndarray             # Constraint values [n_constraints]
    iterations: int           # Solver iterations
    solve_time: float         # Wall clock time [s]
    command: ActuatorCommand

    @property
    def commands(self) -> List[float]:
        return self.command.to_list()


class MPCSolveError(RuntimeError):
    """Raised by strict solves when IPOPT does not report success."""

    def __init__(self, result: MPCResult):
        super().__init__(f"MPC solve did not converge (status={result.status})")
        self.result = result


class MPCSolver:
    """
    Path-tracking MPC: steering + acceleration over a short horizon.

    Usage:
        >>> solver = MPCSolver.from_yaml()
        >>> cmds = solver.solve_commands([0, 0, 0, 10, 0, 0], [0, 0, 0, 0])
        >>> steering, acceleration = cmds[:2]
    """

    def __init__(self, model: KinematicBicycleModel, params: Optional[MPCParams] = None):
        self.params = params or MPCParams()
        self.model = model
        self.layout = DecisionLayout(self.params.horizon_n)
        self.formulation = MPCFormulation(self.layout, model, self.params)
        self.builder = ProblemBuilder(self.layout, model.params, self.params)

        self._build_solver()

    @classmethod
    def from_yaml(cls, yaml_file: Union[str, Path] = DEFAULT_CONFIG_FILE) -> MPCSolver:
        params = MPCParams.load_from_yaml(yaml_file)
        vehicle = VehicleParams.load_from_yaml(yaml_file)
        return cls(KinematicBicycleModel(vehicle, dt_s=params.dt_s), params)

    def _build_solver(self) -> None:
        x_sym = ca.SX.sym("vars", self.layout.n_vars)
        p_sym = ca.SX.sym("coeffs", N_COEFFS)

        cost, g = self.formulation.fg(x_sym, p_sym)

        nlp = {'x': x_sym, 'p': p_sym, 'f': cost, 'g': g}
        self.nlp_solver = ca.nlpsol("kinematic_mpc", "ipopt", nlp, self.params.ipopt_options())

    def build_problem(self, state: Sequence[float]) -> NLPProblem:
        return self.builder.build(state)

    def solve(self, state: Sequence[float], coeffs: Sequence[float]) -> MPCResult:
        """
        Solve one control cycle.

        Args:
            state: [x, y, psi, v, cte, epsi] in the vehicle frame
            coeffs: cubic reference path [c0, c1, c2, c3]

        Returns:
            MPCResult. On non-convergence ``success`` is False and the best
            point IPOPT reached is still decoded.
        """
        problem = self.build_problem(state)
        coeffs = validate_coeffs(coeffs)

        t_start = time.time()
        sol = self.nlp_solver(p=coeffs, **problem.as_solver_args())
        solve_time = time.time() - t_start

        stats = self.nlp_solver.stats()
        success = bool(stats.get('success', False))
        status = str(stats.get('return_status', 'unknown'))
        iterations = int(stats.get('iter_count', -1))

        x_opt = np.array(sol['x']).flatten()
        g_opt = np.array(sol['g']).flatten()
        cost_opt = float(sol['f'])

        if self.params.verbose:
            print(f"MPC: status={status}, cost={cost_opt:.4f}, iter={iterations}, time={solve_time * 1e3:.1f} ms")
            if not success:
                print(f"MPC: warning, solver did not converge ({status}); using best-effort solution")

        return MPCResult(
            success=success,
            status=status,
            cost=cost_opt,
            x=x_opt,
            g=g_opt,
            iterations=iterations,
            solve_time=solve_time,
            command=extract_actuators(x_opt, self.layout),
        )

    def solve_commands(
        self,
        state: Sequence[float],
        coeffs: Sequence[float],
        strict: bool = False
    ) -> List[float]:
        """
        [steering, acceleration, x_1, y_1, ..., x_{N-1}, y_{N-1}]

        With ``strict`` a non-converged solve raises MPCSolveError instead of
        returning best-effort commands.
        """
        result = self.solve(state, coeffs)
        if strict and not result.success:
            raise MPCSolveError(result)
        return result.commands
