from .layout import DecisionLayout, STATE_KINDS, CONTROL_KINDS
from .mpc_params import MPCParams, CostWeights
from .formulation import MPCFormulation
from .problem import ProblemBuilder, NLPProblem
from .actuators import ActuatorCommand, extract_actuators
from .mpc_solver import MPCSolver, MPCResult, MPCSolveError

__all__ = [
    'DecisionLayout',
    'STATE_KINDS',
    'CONTROL_KINDS',
    'MPCParams',
    'CostWeights',
    'MPCFormulation',
    'ProblemBuilder',
    'NLPProblem',
    'ActuatorCommand',
    'extract_actuators',
    'MPCSolver',
    'MPCResult',
    'MPCSolveError',
]
