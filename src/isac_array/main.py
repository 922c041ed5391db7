"""
ISAC Array Engine - Validation Entry Point

Runs a Monte Carlo RMSE / success-rate sweep for one estimator and prints
the report as JSON.
"""

import json
import logging
import argparse

import numpy as np

from .engine import create_engine
from .evaluation import monte_carlo_simulation

logging.basicConfig(
    level=logging.INFO,
    format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
)

logger = logging.getLogger(__name__)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Monte Carlo validation of ULA direction-of-arrival estimators"
    )
    parser.add_argument(
        "--num-elements",
        type=int,
        default=16,
        help="Number of array elements (default: 16)"
    )
    parser.add_argument(
        "--spacing",
        type=float,
        default=0.5,
        help="Element spacing in wavelengths (default: 0.5)"
    )
    parser.add_argument(
        "--method",
        choices=["music", "esprit", "tls_esprit"],
        default="esprit",
        help="Estimation method (default: esprit)"
    )
    parser.add_argument(
        "--angles",
        type=float,
        nargs="+",
        default=[-30.0, 10.0, 45.0],
        help="True source directions in degrees (default: -30 10 45)"
    )
    parser.add_argument(
        "--snr",
        type=float,
        nargs="+",
        default=[0.0, 10.0, 20.0],
        help="SNR points in dB (default: 0 10 20)"
    )
    parser.add_argument(
        "--trials",
        type=int,
        default=100,
        help="Trials per SNR point (default: 100)"
    )
    parser.add_argument(
        "--snapshots",
        type=int,
        default=256,
        help="Snapshots per trial (default: 256)"
    )
    parser.add_argument(
        "--seed",
        type=int,
        default=None,
        help="Random seed for reproducible runs"
    )
    parser.add_argument(
        "--forward-backward",
        action="store_true",
        help="Use forward-backward averaged covariance"
    )
    parser.add_argument(
        "--debug",
        action="store_true",
        help="Enable debug logging"
    )
    return parser


def main(argv=None):
    """Main entry point for the validation CLI"""
    args = build_parser().parse_args(argv)

    if args.debug:
        logging.getLogger().setLevel(logging.DEBUG)

    config = {
        "array": {
            "num_elements": args.num_elements,
            "element_spacing": args.spacing,
        },
        "doa": {
            "num_sources": len(args.angles),
            "method": args.method,
            "forward_backward": args.forward_backward,
        },
    }

    logger.info(
        f"Validating {args.method} on M={args.num_elements}, "
        f"sources at {args.angles} deg, {args.trials} trials per SNR"
    )

    engine = create_engine(config)
    true_angles = np.radians(args.angles)

    results = monte_carlo_simulation(
        engine.estimator,
        true_angles,
        args.snr,
        args.trials,
        num_snapshots=args.snapshots,
        seed=args.seed,
    )

    report = {
        "method": args.method,
        "num_elements": args.num_elements,
        "element_spacing": args.spacing,
        "true_angles_deg": args.angles,
        "num_snapshots": args.snapshots,
        "seed": args.seed,
        "results": [result.to_dict() for result in results.values()],
    }
    print(json.dumps(report, indent=2))
    return report


if __name__ == "__main__":
    main()
