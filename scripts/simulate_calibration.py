#!/usr/bin/env python3
"""
Glove Calibration Simulation

Drives a GloveCalibrationController with a simulated glove that opens and
closes its hand, and prints the calibration verdicts as they change.

Usage:
    # First run: no stored range, so a quick calibration starts right away
    python scripts/simulate_calibration.py --save-range range.txt

    # Second run: check the stored range against the same hand
    python scripts/simulate_calibration.py --last-range range.txt

    # A smaller hand on a Nova glove, guided calibration
    python scripts/simulate_calibration.py --device nova --flex-max 1800 --guided
"""

import argparse
import json
import sys
from pathlib import Path

# Add project root to path
sys.path.insert(0, str(Path(__file__).parent.parent))

from src.calibration import (
    CalibrationStage,
    CalibrationType,
    GloveCalibrationController,
    SensorRange,
)
from src.core.config_loader import load_and_validate_config
from src.drivers.glove_source import DeviceKind, SimulatedGlove
from src.platform.logging_utils import setup_logger
from src.version import __version__

# Sweep limits per family when none are given
DEFAULT_SWEEPS = {
    DeviceKind.SENSEGLOVE: (0.0, 1.6),
    DeviceKind.NOVA: (200.0, 2400.0),
}


def build_glove(args) -> SimulatedGlove:
    device_kind = DeviceKind(args.device)
    flex_min, flex_max = DEFAULT_SWEEPS.get(device_kind, (0.0, 1.0))
    if args.flex_min is not None:
        flex_min = args.flex_min
    if args.flex_max is not None:
        flex_max = args.flex_max

    ticks_per_cycle = max(2, int(args.rate * args.cycle_time))
    return SimulatedGlove.open_close(
        device_kind,
        flex_min=flex_min,
        flex_max=flex_max,
        cycles=max(1, args.ticks // ticks_per_cycle),
        ticks_per_cycle=ticks_per_cycle,
        noise_std=args.noise,
        is_right=not args.left,
        seed=args.seed,
    )


def main() -> int:
    """Main entry point."""
    parser = argparse.ArgumentParser(description="Glove Calibration Simulation")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--device", type=str, default=DeviceKind.SENSEGLOVE.value,
                        help="Glove family (senseglove, nova, unknown)")
    parser.add_argument("--config", type=str, default="config/config.yaml",
                        help="Path to the calibration config")
    parser.add_argument("--ticks", type=int, default=1200,
                        help="Number of simulated ticks")
    parser.add_argument("--rate", type=float, default=60.0,
                        help="Tick rate in Hz")
    parser.add_argument("--cycle-time", type=float, default=1.0,
                        help="Seconds per open/close cycle")
    parser.add_argument("--flex-min", type=float, default=None,
                        help="Flexion value with the hand open")
    parser.add_argument("--flex-max", type=float, default=None,
                        help="Flexion value with the hand closed")
    parser.add_argument("--noise", type=float, default=0.0,
                        help="Gaussian sensor noise (std)")
    parser.add_argument("--seed", type=int, default=None,
                        help="Random seed for the noise")
    parser.add_argument("--left", action="store_true",
                        help="Simulate a left-hand glove")
    parser.add_argument("--guided", action="store_true",
                        help="Run a guided calibration instead of a quick one")
    parser.add_argument("--step-every", type=float, default=2.0,
                        help="Guided: seconds between simulated confirmations")
    parser.add_argument("--last-range", type=str, default=None,
                        help="File holding a serialized range from a previous run")
    parser.add_argument("--save-range", type=str, default=None,
                        help="Write the resulting range to this file")

    args = parser.parse_args()

    config = load_and_validate_config(args.config)
    logger = setup_logger("simulate_calibration", config.system.log_file, config.system.log_level)

    last_range = None
    if args.last_range:
        last_range = SensorRange.load(args.last_range)
        if last_range is None:
            logger.warning(f"Could not read {args.last_range}, treating the glove as uncalibrated")
        else:
            logger.info(f"Loaded last range: {last_range.to_string()}")

    glove = build_glove(args)
    controller = GloveCalibrationController(
        glove,
        last_range=last_range,
        calibration_type=CalibrationType.GUIDED if args.guided else CalibrationType.QUICK,
        config=config,
        auto_start=not args.guided,
    )
    controller.set_stage_callback(lambda stage: print(f"[stage] {stage.value}"))

    dt = 1.0 / args.rate
    step_ticks = max(1, int(args.step_every * args.rate))
    verdict = controller.start_check()
    for tick in range(args.ticks):
        if controller.stage == CalibrationStage.DONE:
            break
        if args.guided and tick % step_ticks == step_ticks - 1:
            controller.next_step()
        verdict = controller.update(dt)

    print(f"Verdict: {verdict.describe()}")
    print(json.dumps(controller.get_status(), indent=2))

    if args.save_range:
        sensor_range = controller.last_range
        if sensor_range is None:
            logger.error("No range to save")
            return 1
        sensor_range.save(args.save_range)
        logger.info(f"Saved range to {args.save_range}")

    return 0 if controller.stage == CalibrationStage.DONE else 1


if __name__ == "__main__":
    sys.exit(main())
