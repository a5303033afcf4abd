#!/usr/bin/env python3
"""
Closed-loop MPC path tracking simulation

Drives the kinematic plant along a reference road. Each control period the
waypoints ahead are fitted with a cubic in the vehicle frame, the MPC is
solved, and the resulting command reaches the plant one period late
(simulated actuator latency).

Usage:
    python simulate_mpc.py
    python simulate_mpc.py --duration 20 --ref-v 15 --amplitude 8
    python simulate_mpc.py --waypoints-csv my_road.csv --log-file sim.log
"""

import argparse
import dataclasses
import os
import sys
from collections import deque
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path

import numpy as np

# Add project root to path
project_root = Path(__file__).parent
sys.path.insert(0, str(project_root))

from models import DEFAULT_CONFIG_FILE, KinematicBicycleModel, VehicleParams
from planning import MPCParams, MPCSolver
from world import ReferenceRoad


class TeeStream:
    """Write to terminal and log file at the same time."""
    def __init__(self, terminal_stream, log_file):
        self.terminal_stream = terminal_stream
        self.log_file = log_file

    def write(self, data):
        self.terminal_stream.write(data)
        self.log_file.write(data)

    def flush(self):
        self.terminal_stream.flush()
        self.log_file.flush()


@dataclass
class SimulationResult:
    """Container for closed-loop results."""
    t: np.ndarray          # Time [s]
    x: np.ndarray          # Global x [m]
    y: np.ndarray          # Global y [m]
    psi: np.ndarray        # Heading [rad]
    v: np.ndarray          # Speed
    cte: np.ndarray        # Cross-track error at solve time
    epsi: np.ndarray       # Heading error at solve time
    delta: np.ndarray      # Applied steering [rad]
    accel: np.ndarray      # Applied acceleration [-]
    cost: np.ndarray       # MPC objective
    success: np.ndarray    # IPOPT success flag
    solve_time: np.ndarray # Solve wall time [s]


def simulate(
    solver: MPCSolver,
    road: ReferenceRoad,
    duration: float = 15.0,
    initial_speed: float = 10.0,
    latency_steps: int = 1,
    lookahead_m: float = 30.0,
) -> SimulationResult:
    """
    Run the controller against the kinematic plant.

    Args:
        solver: MPCSolver instance
        road: Reference road to follow
        duration: Simulated time [s]
        initial_speed: Initial speed
        latency_steps: Control periods between solve and actuation
        lookahead_m: Road distance fitted each cycle [m]

    Returns:
        SimulationResult with per-cycle logs
    """
    model = solver.model
    dt = solver.params.dt_s
    n_steps = int(round(duration / dt))
    if n_steps < 1:
        raise ValueError(f"duration ({duration} s) must cover at least one control period ({dt} s)")
    if latency_steps < 0:
        raise ValueError(f"latency_steps must be non-negative, got {latency_steps}")

    # Start on the road, aligned with it
    x = float(road.data["posX_m"][0])
    y = float(road.data["posY_m"][0])
    psi = float(road.data["psi_rad"][0])
    v = float(initial_speed)

    pending = deque([(0.0, 0.0)] * latency_steps)
    log = {k: np.zeros(n_steps) for k in SimulationResult.__dataclass_fields__}

    for i in range(n_steps):
        coeffs, cte, epsi = road.fit_reference(x, y, psi, lookahead_m=lookahead_m)

        # Vehicle frame: the vehicle sits at the origin with zero heading
        result = solver.solve([0.0, 0.0, 0.0, v, cte, epsi], coeffs)
        pending.append((result.command.steering, result.command.acceleration))
        delta, accel = pending.popleft()

        log["t"][i] = i * dt
        log["x"][i] = x
        log["y"][i] = y
        log["psi"][i] = psi
        log["v"][i] = v
        log["cte"][i] = cte
        log["epsi"][i] = epsi
        log["delta"][i] = delta
        log["accel"][i] = accel
        log["cost"][i] = result.cost
        log["success"][i] = float(result.success)
        log["solve_time"][i] = result.solve_time

        x, y, psi, v = model.global_step(x, y, psi, v, delta, accel, dt)

        if road.nearest_s(x, y) >= road.length_m - lookahead_m:
            print(f"  Reached end of road at t={(i + 1) * dt:.1f}s")
            log = {k: arr[:i + 1] for k, arr in log.items()}
            break

    log["success"] = log["success"].astype(bool)
    return SimulationResult(**log)


def print_summary(result: SimulationResult):
    n = len(result.t)
    print(f"\nSimulation Results ({n} control cycles):")
    print(f"  Final position: ({result.x[-1]:.1f}, {result.y[-1]:.1f}) m")
    print(f"  Final speed: {result.v[-1]:.2f}")
    print(f"  Mean |cte|: {np.mean(np.abs(result.cte)):.3f} m")
    print(f"  Max |cte|: {np.max(np.abs(result.cte)):.3f} m")
    print(f"  Max |epsi|: {np.rad2deg(np.max(np.abs(result.epsi))):.2f} deg")
    print(f"  Max |steering|: {np.rad2deg(np.max(np.abs(result.delta))):.2f} deg")
    print(f"  Failed solves: {int(np.sum(~result.success))}/{n}")
    print(f"  Mean solve time: {np.mean(result.solve_time) * 1e3:.1f} ms "
          f"(max {np.max(result.solve_time) * 1e3:.1f} ms)")


def parse_args():
    parser = argparse.ArgumentParser(description="Closed-loop kinematic MPC path tracking simulation")
    parser.add_argument("--config", type=str, default=None, help="YAML config (default: models/config/mpc_config.yaml).")
    parser.add_argument("--duration", type=float, default=15.0, help="Simulation duration [s].")
    parser.add_argument("--initial-speed", type=float, default=10.0, help="Initial speed.")
    parser.add_argument("--ref-v", type=float, default=None, help="Override the reference speed.")
    parser.add_argument("--latency-steps", type=int, default=1, help="Actuation delay in control periods.")
    parser.add_argument("--amplitude", type=float, default=5.0, help="Sinusoid road amplitude [m].")
    parser.add_argument("--wavelength", type=float, default=120.0, help="Sinusoid road wavelength [m].")
    parser.add_argument("--road-length", type=float, default=400.0, help="Sinusoid road length [m].")
    parser.add_argument("--waypoints-csv", type=str, default=None, help="Load road waypoints (x,y) from CSV.")
    parser.add_argument("--verbose", action=argparse.BooleanOptionalAction, default=None, help="Print every MPC solve.")
    parser.add_argument("--log-file", type=str, default=None, help="Also write console output to this file.")
    return parser.parse_args()


def run(args):
    print(f"[{datetime.now().isoformat(timespec='seconds')}] Closed-loop MPC simulation")
    print("=" * 70)

    # CLI arg first, then MPC_CONFIG env var.
    config_file = Path(args.config or os.environ.get("MPC_CONFIG") or DEFAULT_CONFIG_FILE)
    if not config_file.exists():
        print(f"Error: config file not found: {config_file}")
        return 1

    params = MPCParams.load_from_yaml(config_file)
    overrides = {}
    if args.ref_v is not None:
        overrides["ref_v"] = args.ref_v
    if args.verbose is not None:
        overrides["verbose"] = args.verbose
    if overrides:
        params = dataclasses.replace(params, **overrides)

    vehicle = VehicleParams.load_from_yaml(config_file)
    model = KinematicBicycleModel(vehicle, dt_s=params.dt_s)

    print(f"\n1. Config: {config_file}")
    print(f"   {model}")
    print(f"   N = {params.horizon_n}, dt = {params.dt_s} s, ref_v = {params.ref_v}")
    print(f"   IPOPT budget = {params.max_cpu_time_s} s, hessian = {params.hessian_approximation}")

    if args.waypoints_csv:
        road = ReferenceRoad.load_from_csv(args.waypoints_csv)
    else:
        road = ReferenceRoad.sinusoid(
            length_m=args.road_length,
            amplitude_m=args.amplitude,
            wavelength_m=args.wavelength,
        )
    print(f"\n2. Road: {road}")

    print("\n3. Building solver...")
    solver = MPCSolver(model, params)
    print(f"   Decision variables = {solver.layout.n_vars}, constraints = {solver.layout.n_constraints}")

    print(f"\n4. Simulating for {args.duration}s (latency = {args.latency_steps} period(s))...")
    try:
        result = simulate(
            solver,
            road,
            duration=args.duration,
            initial_speed=args.initial_speed,
            latency_steps=args.latency_steps,
        )
    except ValueError as err:
        print(f"Error: {err}")
        return 1
    print_summary(result)
    return 0


def main():
    args = parse_args()
    if args.log_file is None:
        return run(args)

    log_file = Path(args.log_file)
    log_file.parent.mkdir(parents=True, exist_ok=True)
    with open(log_file, "w", encoding="utf-8") as lf:
        original_stdout = sys.stdout
        sys.stdout = TeeStream(original_stdout, lf)
        try:
            print(f"Logging to: {log_file}")
            return run(args)
        finally:
            sys.stdout = original_stdout


if __name__ == "__main__":
    sys.exit(main())
