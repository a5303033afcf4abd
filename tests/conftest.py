import sys
from pathlib import Path

import pytest

# Add project root to path
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))

from models import KinematicBicycleModel, VehicleParams
from planning import DecisionLayout, MPCFormulation, MPCParams, ProblemBuilder


@pytest.fixture
def vehicle():
    return VehicleParams()


@pytest.fixture
def model(vehicle):
    return KinematicBicycleModel(vehicle, dt_s=0.1)


@pytest.fixture
def params():
    return MPCParams()


@pytest.fixture
def layout(params):
    return DecisionLayout(params.horizon_n)


@pytest.fixture
def formulation(layout, model, params):
    return MPCFormulation(layout, model, params)


@pytest.fixture
def builder(layout, vehicle, params):
    return ProblemBuilder(layout, vehicle, params)
