"""
GaitIQ bench runner.

Drives a GaitSession from the simulated walker or from a real accelerometer
driver and prints live metrics.

Usage:
    python run_gait.py --simulate --seconds 20
    python run_gait.py --simulate --intervals 500 700
    python run_gait.py --driver imu_driver:IMU
"""

import argparse
import asyncio
import importlib
import time

from gait import (
    DriverAccelerometerSource,
    GaitConfig,
    GaitSession,
    SimulatedAccelerometer,
)
from gait.config import LOG_LEVEL
from gait.logging_setup import configure_logging


def load_driver(spec: str):
    """Instantiate a driver from "module:Class"."""
    module_name, _, class_name = spec.partition(":")
    if not class_name:
        raise SystemExit(f"--driver expects module:Class, got {spec!r}")
    module = importlib.import_module(module_name)
    return getattr(module, class_name)()


def print_metrics(payload: dict):
    print(
        f"cadence={payload['cadence']:3d} spm  symmetry={payload['symmetry']:3d}%  "
        f"intervals={len(payload['stepIntervals'])}"
    )


async def run(args) -> dict:
    config = GaitConfig.from_env(sample_rate=args.rate)

    if args.driver:
        source = DriverAccelerometerSource(load_driver(args.driver), sample_rate=config.sample_rate)
    else:
        source = SimulatedAccelerometer(
            sample_rate=config.sample_rate,
            step_intervals_ms=args.intervals,
            seed=args.seed,
        )

    session = GaitSession(source, config, on_metrics_updated=print_metrics)

    print("\n--- GAIT TRACKER ---")
    print(f"source={source.kind}  rate={config.sample_rate} Hz. Ctrl+C to stop.\n")

    if not await session.request_access():
        print("Sensor not available:", session.error)
        return session.stats()

    session.start()
    t0 = time.time()
    last_print = 0.0
    try:
        while session.is_running and (args.seconds <= 0 or time.time() - t0 < args.seconds):
            t = time.time() - t0
            if t - last_print > 1.0:
                print(f"steps={session.step_count:4d}  state={session.state.value}  error={session.error}")
                last_print = t
            await asyncio.sleep(0.1)
    finally:
        session.stop()
        if isinstance(source, DriverAccelerometerSource):
            source.close()

    stats = session.stats()
    print("\n--- STOP ---")
    for key, value in stats.items():
        print(f"{key}: {value}")
    return stats


def main():
    parser = argparse.ArgumentParser(description="GaitIQ bench runner")
    parser.add_argument("--driver", help="Accelerometer driver as module:Class")
    parser.add_argument("--simulate", action="store_true", help="Use the simulated walker (default)")
    parser.add_argument("--intervals", type=float, nargs="+", default=[600.0],
                        help="Simulated step intervals in ms, cycled")
    parser.add_argument("--seed", type=int, default=None, help="Simulation noise seed")
    parser.add_argument("--rate", type=int, default=60, help="Sample rate in Hz")
    parser.add_argument("--seconds", type=float, default=30.0, help="Run time, 0 = until Ctrl+C")
    args = parser.parse_args()

    configure_logging(LOG_LEVEL)
    try:
        asyncio.run(run(args))
    except KeyboardInterrupt:
        print("\n--- STOP ---")


if __name__ == "__main__":
    main()
