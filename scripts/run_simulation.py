#!/usr/bin/env python3
"""
Headless Simulation Script
==========================

Runs a full game session on simulated time with synthetic particle
traffic, without rendering or a server.

This script:
    1. Starts a run (Menu → Starting → Running)
    2. Each frame, emits rate * dt particles and blocks a fraction of them
    3. Logs telemetry every report interval of simulated time
    4. Stops when the leak wins (or the duration cap is reached)
    5. Reports the final run summary

Usage:
    python scripts/run_simulation.py --duration 900
    python scripts/run_simulation.py --block-ratio 0.9 --seed 7
"""

import argparse
import logging
import os
import sys

import numpy as np

# Add src to path for imports
sys.path.insert(0, os.path.join(os.path.dirname(__file__), "..", "src"))

from futility_core.config import load_config
from futility_core.models.phase import FlowPhase
from futility_core.models.source import PhysicsBody
from futility_core.session import GameSession


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    datefmt="%Y-%m-%dT%H:%M:%S",
)
logger = logging.getLogger(__name__)


class SimulatedClock:
    """Manually advanced clock handed to the session."""

    def __init__(self) -> None:
        self.now = 0.0

    def __call__(self) -> float:
        return self.now

    def advance(self, dt: float) -> None:
        self.now += dt


def run_simulation(
    duration: float,
    block_ratio: float,
    frame_rate: float,
    report_interval: float,
    seed: int,
    config_path: str = None,
) -> dict:
    """
    Run one simulated game.

    Args:
        duration: Simulated seconds before giving up
        block_ratio: Fraction of emitted particles the synthetic player blocks
        frame_rate: Simulated frames per second
        report_interval: Simulated seconds between telemetry reports
        seed: Seed for the synthetic traffic
        config_path: Optional config.yaml path

    Returns:
        Final summary dict
    """
    settings = load_config(config_path)
    clock = SimulatedClock()
    rng = np.random.default_rng(seed)

    def body_query(center, radius):
        # A handful of debris bodies scattered around each source
        offsets = rng.uniform(-radius, radius, size=(8, 3))
        return [
            PhysicsBody(
                body_id=f"debris-{i}",
                position=tuple(float(c) for c in np.asarray(center) + offset),
            )
            for i, offset in enumerate(offsets)
        ]

    impulses_applied = []
    session = GameSession(
        settings,
        body_query=body_query,
        impulse_sink=impulses_applied.extend,
        clock=clock,
    )

    logger.info("=" * 60)
    logger.info("Headless Simulation")
    logger.info("=" * 60)
    logger.info(f"Duration cap: {duration:.0f}s simulated")
    logger.info(f"Block ratio: {block_ratio:.2f}")
    logger.info(f"Frame rate: {frame_rate:.0f} Hz")
    logger.info("=" * 60)

    session.start_game()
    dt = 1.0 / frame_rate
    last_report = 0.0
    carry = 0.0

    while clock.now < duration and session.phase == FlowPhase.Running:
        clock.advance(dt)

        rate = sum(source.current_rate for source in session.sources.managed_sources)
        carry += rate * dt
        emitted = int(carry)
        carry -= emitted

        if emitted:
            blocked = int(rng.binomial(emitted, block_ratio))
            session.on_particle_blocked(blocked)
            session.on_particle_escaped(emitted - blocked)

        session.update()

        if clock.now - last_report >= report_interval:
            snap = session.telemetry()
            logger.info("-" * 40)
            logger.info(f"Progress Report (t={clock.now:.0f}s)")
            logger.info(f"  Emission rate: {snap.difficulty.emission_rate:.2f}/s")
            logger.info(f"  Multiplier: {snap.difficulty.multiplier:.2f}")
            logger.info(f"  Rubber band: {snap.difficulty.rubber_band:.3f}")
            logger.info(f"  Sources: {snap.emission.active_sources}")
            logger.info(f"  Pressure: {snap.emission.pressure_percentage:.0%}")
            logger.info(f"  Bursting: {snap.emission.bursting}")
            logger.info(
                f"  Escaped: {snap.session.particles_escaped}/{snap.session.max_escaped}"
            )
            last_report = clock.now

    if session.phase == FlowPhase.Running:
        logger.info(f"Duration cap ({duration:.0f}s) reached, ending run")
        session.end_game()

    summary = session.summary
    logger.info("=" * 60)
    logger.info("FINAL SUMMARY")
    logger.info("=" * 60)
    logger.info(f"Phase: {session.phase.name}")
    if summary is not None:
        logger.info(f"Survived: {summary.survival_seconds:.1f}s")
        logger.info(f"Blocked: {summary.particles_blocked}")
        logger.info(f"Escaped: {summary.particles_escaped}")
        logger.info(f"Peak multiplier: {summary.peak_multiplier:.2f}")
        logger.info(f"Bursts: {summary.bursts}")
        logger.info(f"Sources spawned: {summary.sources_spawned}")
        logger.info(f"Ended by failure: {summary.ended_by_failure}")
    logger.info(f"Impulses applied: {len(impulses_applied)}")
    logger.info("=" * 60)

    result = summary.model_dump() if summary is not None else {}
    result["impulses_applied"] = len(impulses_applied)
    return result


def main():
    parser = argparse.ArgumentParser(
        description="Headless simulated run of the futility core"
    )
    parser.add_argument(
        "--duration",
        type=float,
        default=900.0,
        help="Simulated seconds before giving up (default: 900)",
    )
    parser.add_argument(
        "--block-ratio",
        type=float,
        default=0.6,
        help="Fraction of particles blocked (default: 0.6)",
    )
    parser.add_argument(
        "--frame-rate",
        type=float,
        default=30.0,
        help="Simulated frames per second (default: 30)",
    )
    parser.add_argument(
        "--report-interval",
        type=float,
        default=30.0,
        help="Simulated seconds between reports (default: 30)",
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=0,
        help="Traffic seed (default: 0)",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=os.environ.get("FUTILITY_CONFIG"),
        help="Path to config.yaml",
    )

    args = parser.parse_args()

    result = run_simulation(
        duration=args.duration,
        block_ratio=args.block_ratio,
        frame_rate=args.frame_rate,
        report_interval=args.report_interval,
        seed=args.seed,
        config_path=args.config,
    )

    sys.exit(0 if result else 1)


if __name__ == "__main__":
    main()
