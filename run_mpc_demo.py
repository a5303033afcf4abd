#!/usr/bin/env python3
"""
Single MPC solve from the command line.

Usage:
    python run_mpc_demo.py
    python run_mpc_demo.py --state 0 0 0 10 1.0 0 --coeffs 1.0 0 0 0
    python run_mpc_demo.py --ref-v 10 --strict
"""

import argparse
import dataclasses
import os
import sys
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from models import DEFAULT_CONFIG_FILE, KinematicBicycleModel, VehicleParams
from planning import MPCParams, MPCSolveError, MPCSolver


def parse_args():
    parser = argparse.ArgumentParser(description="Solve one kinematic MPC control cycle.")
    parser.add_argument("--config", type=str, default=None, help="YAML config (default: models/config/mpc_config.yaml).")
    parser.add_argument("--state", type=float, nargs=6, default=[0.0, 0.0, 0.0, 10.0, 0.0, 0.0],
                        metavar=("X", "Y", "PSI", "V", "CTE", "EPSI"), help="Vehicle-frame state.")
    parser.add_argument("--coeffs", type=float, nargs=4, default=[0.0, 0.0, 0.0, 0.0],
                        metavar=("C0", "C1", "C2", "C3"), help="Cubic reference path coefficients.")
    parser.add_argument("--n", type=int, default=None, help="Override the horizon length.")
    parser.add_argument("--ref-v", type=float, default=None, help="Override the reference speed.")
    parser.add_argument("--max-cpu-time", type=float, default=None, help="Override the IPOPT time budget [s].")
    parser.add_argument("--strict", action="store_true", help="Fail instead of printing best-effort commands.")
    return parser.parse_args()


def main():
    args = parse_args()

    config_file = Path(args.config or os.environ.get("MPC_CONFIG") or DEFAULT_CONFIG_FILE)
    params = MPCParams.load_from_yaml(config_file)

    overrides = {"verbose": True}
    if args.n is not None:
        overrides["horizon_n"] = args.n
    if args.ref_v is not None:
        overrides["ref_v"] = args.ref_v
    if args.max_cpu_time is not None:
        overrides["max_cpu_time_s"] = args.max_cpu_time
    params = dataclasses.replace(params, **overrides)

    model = KinematicBicycleModel(VehicleParams.load_from_yaml(config_file), dt_s=params.dt_s)
    solver = MPCSolver(model, params)

    print("=" * 70)
    print("KINEMATIC MPC (SINGLE SOLVE)")
    print("=" * 70)
    print(f"State  [x, y, psi, v, cte, epsi] = {args.state}")
    print(f"Coeffs [c0, c1, c2, c3]          = {args.coeffs}")

    try:
        commands = solver.solve_commands(args.state, args.coeffs, strict=args.strict)
    except MPCSolveError as err:
        print(f"Error: {err}")
        return 1

    steering, acceleration = commands[0], commands[1]
    print(f"\nSteering:     {steering:+.5f} rad ({np.rad2deg(steering):+.2f} deg)")
    print(f"Acceleration: {acceleration:+.5f}")
    print("Predicted path:")
    for t, (px, py) in enumerate(zip(commands[2::2], commands[3::2]), start=1):
        print(f"  t={t * params.dt_s:.1f}s  x={px:8.3f}  y={py:8.3f}")
    return 0


if __name__ == "__main__":
    sys.exit(main())
