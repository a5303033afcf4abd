"""
Vehicle models for the kinematic MPC path-tracking controller.
"""

from pathlib import Path
from typing import Union

from .vehicle import VehicleParams, KinematicBicycleModel, polyeval, polyheading

__all__ = [
    'VehicleParams',
    'KinematicBicycleModel',
    'polyeval',
    'polyheading',
    'load_vehicle_from_yaml',
    'DEFAULT_CONFIG_FILE',
]

DEFAULT_CONFIG_FILE = Path(__file__).parent / "config" / "mpc_config.yaml"


def load_vehicle_from_yaml(
    yaml_file: Union[str, Path] = DEFAULT_CONFIG_FILE,
    dt_s: float = 0.1
) -> KinematicBicycleModel:
    """
    Load the prediction model (vehicle parameters + discretization) from YAML.

    Args:
        yaml_file: Path to YAML config file (e.g., models/config/mpc_config.yaml)
        dt_s: Discretization period [s]; normally MPCParams.dt_s

    Returns:
        KinematicBicycleModel ready for use in the MPC formulation

    Example:
        >>> from models import load_vehicle_from_yaml
        >>> model = load_vehicle_from_yaml()
        >>> print(model)
        KinematicBicycleModel(sim_car, lf=2.67 m, dt=0.1 s)
    """
    params = VehicleParams.load_from_yaml(yaml_file)
    return KinematicBicycleModel(params, dt_s=dt_s)
